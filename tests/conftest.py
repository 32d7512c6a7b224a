import struct

import pytest
import ubjson

from slippikit.event import Command, Frame, Frames, PlayerFrame, PostFrameUpdate, PreFrameUpdate
from slippikit.stats.computer import PlayerPermutation

# Payload sizes, command byte excluded
DEFAULT_SIZES = {
    Command.GAME_START: 0x1A4,
    Command.PRE_FRAME_UPDATE: 0x3F,
    Command.POST_FRAME_UPDATE: 0x33,
    Command.GAME_END: 0x2,
    Command.ITEM_UPDATE: 0x23,
    Command.FRAME_BOOKEND: 0x8,
}

FOX_CSS = 2
MARTH_CSS = 9
FOX_INTERNAL = 1
MARTH_INTERNAL = 18


class SlpBuilder:
    """Encodes replay events and containers byte-for-byte."""

    sizes = DEFAULT_SIZES

    @staticmethod
    def message_sizes(sizes=None) -> bytes:
        sizes = DEFAULT_SIZES if sizes is None else sizes
        body = b"".join(struct.pack(">BH", int(command), size) for command, size in sizes.items())
        return bytes([Command.MESSAGE_SIZES, len(body) + 1]) + body

    @staticmethod
    def game_start(
        version=(3, 12, 0),
        players=((0, FOX_CSS), (1, MARTH_CSS)),
        game_mode=2,
        stage_id=31,
        is_teams=False,
        is_pal=False,
        scene=2,
        nametags=None,
        controller_fix=None,
        size=0x1A4,
    ) -> bytes:
        """`players` holds (index, character) or (index, character, color, stocks, team) tuples"""
        buf = bytearray(size + 1)
        buf[0] = Command.GAME_START
        buf[1:4] = bytes(version)
        buf[0xD] = int(is_teams)
        struct.pack_into(">H", buf, 0x13, stage_id)

        # Every slot starts empty
        for i in range(4):
            buf[0x66 + i * 0x24] = 3

        for i, character, *extra in players:
            color, stocks, team = extra or (0, 4, i)
            offset = i * 0x24
            buf[0x65 + offset] = character
            buf[0x66 + offset] = 0
            buf[0x67 + offset] = stocks
            buf[0x68 + offset] = color
            buf[0x6E + offset] = team

        for i, (dashback, shield_drop) in (controller_fix or {}).items():
            struct.pack_into(">II", buf, 0x141 + i * 0x8, dashback, shield_drop)

        for i, raw in (nametags or {}).items():
            start = 0x161 + i * 0x10
            buf[start : start + len(raw)] = raw

        if len(buf) > 0x1A1:
            buf[0x1A1] = int(is_pal)
        if len(buf) > 0x1A4:
            buf[0x1A3] = scene
            buf[0x1A4] = game_mode
        return bytes(buf)

    @staticmethod
    def pre_frame(
        frame,
        player_index,
        action_state=14,
        joystick=(0.0, 0.0),
        cstick=(0.0, 0.0),
        buttons=0,
        physical_buttons=0,
        l_trigger=0.0,
        r_trigger=0.0,
        percent=0.0,
        is_follower=False,
    ) -> bytes:
        buf = bytearray(0x40)
        buf[0] = Command.PRE_FRAME_UPDATE
        struct.pack_into(">iBB", buf, 0x1, frame, player_index, int(is_follower))
        struct.pack_into(">H", buf, 0xB, action_state)
        struct.pack_into(">ffff", buf, 0x19, joystick[0], joystick[1], cstick[0], cstick[1])
        struct.pack_into(">IH", buf, 0x2D, buttons, physical_buttons)
        struct.pack_into(">ff", buf, 0x33, l_trigger, r_trigger)
        struct.pack_into(">f", buf, 0x3C, percent)
        return bytes(buf)

    @staticmethod
    def post_frame(
        frame,
        player_index,
        character=FOX_INTERNAL,
        action_state=14,
        percent=0.0,
        stocks=4,
        last_attack_landed=0,
        action_state_counter=0.0,
        is_follower=False,
    ) -> bytes:
        buf = bytearray(0x34)
        buf[0] = Command.POST_FRAME_UPDATE
        struct.pack_into(">iBBBH", buf, 0x1, frame, player_index, int(is_follower), character, action_state)
        struct.pack_into(">f", buf, 0x16, percent)
        buf[0x1E] = last_attack_landed
        buf[0x21] = stocks
        struct.pack_into(">f", buf, 0x22, action_state_counter)
        return bytes(buf)

    @staticmethod
    def item_update(frame, type_id=0x30, spawn_id=0) -> bytes:
        buf = bytearray(0x24)
        buf[0] = Command.ITEM_UPDATE
        struct.pack_into(">iH", buf, 0x1, frame, type_id)
        struct.pack_into(">I", buf, 0x20, spawn_id)
        return bytes(buf)

    @staticmethod
    def bookend(frame, latest_finalized_frame=None) -> bytes:
        if latest_finalized_frame is None:
            latest_finalized_frame = frame
        return bytes([Command.FRAME_BOOKEND]) + struct.pack(">ii", frame, latest_finalized_frame)

    @staticmethod
    def game_end(method=2, lras_initiator=-1) -> bytes:
        return bytes([Command.GAME_END, method]) + struct.pack(">b", lras_initiator)

    @classmethod
    def frames(cls, first=Frames.FIRST, last=0, characters=(FOX_INTERNAL, MARTH_INTERNAL), bookends=True) -> bytes:
        """Pre and post updates for both players on every frame, standing still at 0%"""
        events = []
        for num in range(first, last + 1):
            for index, character in enumerate(characters):
                events.append(cls.pre_frame(num, index))
                events.append(cls.post_frame(num, index, character=character))
            if bookends:
                events.append(cls.bookend(num))
        return b"".join(events)

    @classmethod
    def game(cls, last=0, **game_start) -> bytes:
        """Raw event data for a complete game"""
        return cls.message_sizes() + cls.game_start(**game_start) + cls.frames(last=last) + cls.game_end()

    @staticmethod
    def replay(raw: bytes, metadata=None, raw_length=None) -> bytes:
        if raw_length is None:
            raw_length = len(raw)
        data = b"{U\x03raw[$U#l" + struct.pack(">I", raw_length) + raw
        if metadata is not None:
            data += b"U\x08metadata" + ubjson.dumpb(metadata) + b"}"
        return data


@pytest.fixture
def slp():
    return SlpBuilder


@pytest.fixture
def permutations():
    return [PlayerPermutation(0, 0, 1), PlayerPermutation(1, 1, 0)]


def make_post(frame, player_index, action_state=14, percent=0.0, stocks=4, last_attack_landed=0, counter=None):
    return PostFrameUpdate(
        frame=frame,
        player_index=player_index,
        is_follower=False,
        internal_character_id=FOX_INTERNAL,
        action_state_id=action_state,
        percent=percent,
        stocks_remaining=stocks,
        last_attack_landed=last_attack_landed,
        action_state_counter=counter,
    )


def make_pre(frame, player_index, **fields):
    return PreFrameUpdate(frame=frame, player_index=player_index, is_follower=False, **fields)


class FrameFeeder:
    """Builds Frame objects and pushes them through a set of computers in order, the way the stats engine does."""

    def __init__(self, permutations, *computers):
        self.computers = computers
        self.frames = {}
        self.num = Frames.FIRST
        for computer in computers:
            computer.set_player_permutations(permutations)

    def push(self, p0=None, p1=None, pre0=None, pre1=None):
        """Adds the next frame. `p0`/`p1` are post-frame keyword dicts, `pre0`/`pre1` are pre-frame keyword dicts"""
        frame = Frame(self.num)
        for index, post, pre in ((0, p0, pre0), (1, p1, pre1)):
            frame.players[index] = PlayerFrame(
                pre=make_pre(self.num, index, **(pre or {})),
                post=make_post(self.num, index, **(post or {})),
            )
        self.frames[self.num] = frame
        for computer in self.computers:
            computer.process_frame(frame, self.frames)
        self.num += 1
        return frame

    def repeat(self, count, **kwargs):
        for _ in range(count):
            self.push(**kwargs)


@pytest.fixture
def feeder(permutations):
    def _feeder(*computers):
        return FrameFeeder(permutations, *computers)

    return _feeder
