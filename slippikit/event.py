from __future__ import annotations

from collections.abc import Sequence
from functools import total_ordering

from .enums.stage import Stage
from .util import Base, Enum, FieldReader, IntEnum, try_enum


class Frames:
    """Frame index constants.

    The first frame of the game is indexed -123, counting up to zero (which is when the word "GO" appears).
    Players actually get control at -39, well before "GO"."""

    FIRST = -123
    FIRST_PLAYABLE = -39


FIRST_FRAME_INDEX = Frames.FIRST
PLAYER_CONTROL_INDEX = Frames.FIRST_PLAYABLE

# Maximum number of frames an online game can roll back and re-send before a frame is guaranteed final
MAX_ROLLBACK_FRAMES = 7


class Command(IntEnum):
    """Command bytes that can appear in a replay's raw event stream."""

    MESSAGE_SPLITTER = 0x10
    MESSAGE_SIZES = 0x35
    GAME_START = 0x36
    PRE_FRAME_UPDATE = 0x37
    POST_FRAME_UPDATE = 0x38
    GAME_END = 0x39
    FRAME_START = 0x3A
    ITEM_UPDATE = 0x3B
    FRAME_BOOKEND = 0x3C
    GECKO_LIST = 0x3D


class GameMode(IntEnum):
    VS = 0x02
    ONLINE = 0x08


class ControllerFix(Enum):
    """UCF dashback/shield drop toggles, collapsed into a single value per player."""

    NONE = "None"
    UCF = "UCF"
    DWEEN = "Dween"
    MIXED = "Mixed"

    @classmethod
    def from_toggles(cls, dashback: int | None, shield_drop: int | None) -> ControllerFix:
        if dashback != shield_drop:
            return cls.MIXED
        if dashback == 1:
            return cls.UCF
        if dashback == 2:
            return cls.DWEEN
        return cls.NONE


# Fullwidth ASCII variants (U+FF01 - U+FF5E) sit at a fixed offset from their halfwidth counterparts.
# The ideographic space is the only other character that needs folding.
_HALFWIDTH_TABLE = {codepoint: codepoint - 0xFF00 + 0x20 for codepoint in range(0xFF01, 0xFF5F)}
_HALFWIDTH_TABLE[0x3000] = 0x20


def to_halfwidth(text: str) -> str:
    """Folds fullwidth characters (as typed on a Japanese nametag keyboard) to their ASCII equivalents."""
    return text.translate(_HALFWIDTH_TABLE)


def _decode_nametag(raw: bytes | None) -> str | None:
    if raw is None:
        return None
    try:
        raw = raw[: raw.index(0)]
    except ValueError:
        pass
    return to_halfwidth(raw.decode("shift_jis", errors="replace"))


@total_ordering
class SlippiVersion(Base):
    """Version of the recorder that generated the replay.

    Can be compared to tuples (1, 6, 0), strings '1.6.0', or other SlippiVersion objects. Major releases:

    v0.1.0 Initial Release

    v1.0.0 Dolphin Slippi Release

    v2.0.0 Slippi Rollback Release

    v3.0.0 Slippi Ranked Pre-release
    """

    __slots__ = ("major", "minor", "revision")

    major: int
    minor: int
    revision: int

    def __init__(self, major: int, minor: int, revision: int = 0):
        self.major = major
        self.minor = minor
        self.revision = revision

    def __repr__(self):
        return f"{self.major}.{self.minor}.{self.revision}"

    def __str__(self):
        return self.__repr__()

    def __hash__(self):
        return hash(self.as_tuple())

    def as_tuple(self) -> tuple[int, int, int]:
        return (self.major, self.minor, self.revision)

    @staticmethod
    def _coerce(other) -> tuple[int, int, int]:
        if isinstance(other, SlippiVersion):
            return other.as_tuple()
        if isinstance(other, str):
            other = [int(n) for n in other.split(".", 2)]
        if isinstance(other, Sequence):
            if len(other) != 3:
                raise ValueError(
                    f"Incorrect Sequence {other} for SlippiVersion. Must have 3 elements (major, minor, revision)"
                )
            return tuple(other)
        raise NotImplementedError(
            f"Incorrect type {type(other)} for comparison to SlippiVersion, "
            "accepted types are SlippiVersion, str, and 3-element Sequences"
        )

    def __eq__(self, other):
        return self.as_tuple() == self._coerce(other)

    def __lt__(self, other):
        return self.as_tuple() < self._coerce(other)


class Capabilities(Base):
    """Format features a replay supports, derived once from its version and game mode.

    Attributes:
        has_character_fix : bool
            GAME_START already carries the correct Sheik/Zelda character. `Minimum Replay Version: 1.6.0`
        has_bookend : bool
            Frames are explicitly closed by a FRAME_BOOKEND event. Replays at or below 2.2.0 have no bookend, so a
            frame is only known to be done once the next frame starts.
        supports_rollback_finalization : bool
            The bookend's `latest_finalized_frame` can be trusted to decide when a frame can no longer be rolled back.
            Only meaningful for online games.
    """

    __slots__ = ("has_character_fix", "has_bookend", "supports_rollback_finalization")

    CHARACTER_FIX_VERSION = (1, 6, 0)
    LAST_VERSION_WITHOUT_BOOKEND = (2, 2, 0)

    def __init__(self, has_character_fix: bool, has_bookend: bool, supports_rollback_finalization: bool):
        self.has_character_fix = has_character_fix
        self.has_bookend = has_bookend
        self.supports_rollback_finalization = supports_rollback_finalization

    @classmethod
    def from_game_start(cls, start: GameStart) -> Capabilities:
        version = start.slp_version
        has_bookend = version > cls.LAST_VERSION_WITHOUT_BOOKEND
        return cls(
            has_character_fix=version >= cls.CHARACTER_FIX_VERSION,
            has_bookend=has_bookend,
            supports_rollback_finalization=has_bookend and start.game_mode == GameMode.ONLINE,
        )


class GameStart(Base):
    """Information used to initialize the game such as the game mode, settings, characters & stage.

    Attributes:
        slp_version : SlippiVersion
            Version of the recorder that generated the replay
        is_teams : bool | None
        is_pal : bool | None
            True if recorded on the PAL version of Melee. `Minimum Replay Version: 1.5.0`
        stage_id : int | None
            Raw stage ID. `stage` holds the same value as a Stage enum when it is a known stage
        players : list[GameStart.Player]
            One entry per port. Empty slots are removed by the parser once settings are captured
        scene : int | None
            Major scene number. `Minimum Replay Version: 3.7.0`
        game_mode : GameMode | int | None
            `Minimum Replay Version: 3.7.0`
    """

    slp_version: SlippiVersion
    is_teams: bool | None
    is_pal: bool | None
    stage_id: int | None
    stage: Stage | int | None
    players: list[GameStart.Player]
    scene: int | None
    game_mode: GameMode | int | None

    def __init__(
        self,
        slp_version: SlippiVersion,
        is_teams: bool | None,
        is_pal: bool | None,
        stage_id: int | None,
        players: list[GameStart.Player],
        scene: int | None = None,
        game_mode: int | None = None,
    ):
        self.slp_version = slp_version
        self.is_teams = is_teams
        self.is_pal = is_pal
        self.stage_id = stage_id
        self.stage = try_enum(Stage, stage_id) if stage_id is not None else None
        self.players = players
        self.scene = scene
        self.game_mode = try_enum(GameMode, game_mode) if game_mode is not None else None

    @classmethod
    def _parse(cls, reader: FieldReader) -> GameStart:
        slp_version = SlippiVersion(reader.uint8(0x1) or 0, reader.uint8(0x2) or 0, reader.uint8(0x3) or 0)

        return cls(
            slp_version=slp_version,
            is_teams=reader.bool(0xD),
            is_pal=reader.bool(0x1A1),
            stage_id=reader.uint16(0x13),
            players=[cls.Player._parse(reader, i) for i in range(4)],
            scene=reader.uint8(0x1A3),
            game_mode=reader.uint8(0x1A4),
        )

    def get_player(self, player_index: int) -> GameStart.Player | None:
        for player in self.players:
            if player.player_index == player_index:
                return player
        return None

    class Player(Base):
        """Contains metadata about the player from the console's perspective.

        Attributes:
            player_index : int
                0-indexed port
            port : int
                1-indexed port, as printed on the console
            character_id : int | None
                CSS character ID, see enums.CSSCharacter. Amended for Sheik/Zelda on replays older than 1.6.0
            character_color : int | None
            start_stocks : int | None
            type : GameStart.Player.Type | int | None
                Human, CPU, Demo, or Empty
            team_id : int | None
        `Minimum Replay Version: 1.0.0`:
            controller_fix : ControllerFix
                UCF dashback/shield drop setting
        `Minimum Replay Version: 1.3.0`:
            nametag : str | None
                In-game tag, decoded and folded to halfwidth characters
        """

        player_index: int
        port: int
        character_id: int | None
        character_color: int | None
        start_stocks: int | None
        type: GameStart.Player.Type | int | None
        team_id: int | None
        controller_fix: ControllerFix
        nametag: str | None

        def __init__(
            self,
            player_index: int,
            character_id: int | None,
            character_color: int | None,
            start_stocks: int | None,
            type: int | None,
            team_id: int | None,
            controller_fix: ControllerFix = ControllerFix.NONE,
            nametag: str | None = None,
        ):
            self.player_index = player_index
            self.port = player_index + 1
            self.character_id = character_id
            self.character_color = character_color
            self.start_stocks = start_stocks
            self.type = try_enum(self.Type, type) if type is not None else None
            self.team_id = team_id
            self.controller_fix = controller_fix
            self.nametag = nametag

        @classmethod
        def _parse(cls, reader: FieldReader, player_index: int) -> GameStart.Player:
            offset = player_index * 0x24
            cf_offset = player_index * 0x8
            nametag_start = 0x161 + player_index * 0x10

            return cls(
                player_index=player_index,
                character_id=reader.uint8(0x65 + offset),
                character_color=reader.uint8(0x68 + offset),
                start_stocks=reader.uint8(0x67 + offset),
                type=reader.uint8(0x66 + offset),
                team_id=reader.uint8(0x6E + offset),
                controller_fix=ControllerFix.from_toggles(
                    reader.uint32(0x141 + cf_offset), reader.uint32(0x145 + cf_offset)
                ),
                nametag=_decode_nametag(reader.bytes(nametag_start, 16)),
            )

        @property
        def is_empty(self) -> bool:
            return self.type == self.Type.EMPTY

        class Type(IntEnum):
            """The game's classification of the type of player: Human, CPU, Demo, or Empty"""

            HUMAN = 0
            CPU = 1
            DEMO = 2
            EMPTY = 3


class PreFrameUpdate(Base):
    """Pre-frame update, collected right before controller inputs are used to figure out the character's next action.
    Contains the inputs as the game saw them, plus enough state to restore the character."""

    __slots__ = (
        "frame",
        "player_index",
        "is_follower",
        "seed",
        "action_state_id",
        "position_x",
        "position_y",
        "facing_direction",
        "joystick_x",
        "joystick_y",
        "cstick_x",
        "cstick_y",
        "trigger",
        "buttons",
        "physical_buttons",
        "physical_l_trigger",
        "physical_r_trigger",
        "percent",
    )

    frame: int | None
    player_index: int | None
    is_follower: bool | None
    seed: int | None
    action_state_id: int | None
    position_x: float | None
    position_y: float | None
    facing_direction: float | None
    joystick_x: float | None
    joystick_y: float | None
    cstick_x: float | None
    cstick_y: float | None
    trigger: float | None
    buttons: int | None
    physical_buttons: int | None
    physical_l_trigger: float | None
    physical_r_trigger: float | None
    percent: float | None  #: `Minimum Replay Version: 1.4.0`

    def __init__(self, **fields):
        for slot in self.__slots__:
            setattr(self, slot, fields.get(slot))

    @classmethod
    def _parse(cls, reader: FieldReader) -> PreFrameUpdate:
        return cls(
            frame=reader.int32(0x1),
            player_index=reader.uint8(0x5),
            is_follower=reader.bool(0x6),
            seed=reader.uint32(0x7),
            action_state_id=reader.uint16(0xB),
            position_x=reader.float(0xD),
            position_y=reader.float(0x11),
            facing_direction=reader.float(0x15),
            joystick_x=reader.float(0x19),
            joystick_y=reader.float(0x1D),
            cstick_x=reader.float(0x21),
            cstick_y=reader.float(0x25),
            trigger=reader.float(0x29),
            buttons=reader.uint32(0x2D),
            physical_buttons=reader.uint16(0x31),
            physical_l_trigger=reader.float(0x33),
            physical_r_trigger=reader.float(0x37),
            percent=reader.float(0x3C),
        )


class PostFrameUpdate(Base):
    """Post-frame update, collected at the end of the Collision detection which is the last consideration of the game
    engine. Useful for making decisions about game states, such as computing stats."""

    __slots__ = (
        "frame",
        "player_index",
        "is_follower",
        "internal_character_id",
        "action_state_id",
        "position_x",
        "position_y",
        "facing_direction",
        "percent",
        "shield_size",
        "last_attack_landed",
        "current_combo_count",
        "last_hit_by",
        "stocks_remaining",
        "action_state_counter",
        "l_cancel_status",
    )

    frame: int | None
    player_index: int | None
    is_follower: bool | None
    internal_character_id: int | None
    action_state_id: int | None
    position_x: float | None
    position_y: float | None
    facing_direction: float | None
    percent: float | None
    shield_size: float | None
    last_attack_landed: int | None
    current_combo_count: int | None
    last_hit_by: int | None
    stocks_remaining: int | None
    action_state_counter: float | None  #: `Minimum Replay Version: 0.2.0`
    l_cancel_status: int | None  #: `Minimum Replay Version: 2.0.0`

    def __init__(self, **fields):
        for slot in self.__slots__:
            setattr(self, slot, fields.get(slot))

    @classmethod
    def _parse(cls, reader: FieldReader) -> PostFrameUpdate:
        return cls(
            frame=reader.int32(0x1),
            player_index=reader.uint8(0x5),
            is_follower=reader.bool(0x6),
            internal_character_id=reader.uint8(0x7),
            action_state_id=reader.uint16(0x8),
            position_x=reader.float(0xA),
            position_y=reader.float(0xE),
            facing_direction=reader.float(0x12),
            percent=reader.float(0x16),
            shield_size=reader.float(0x1A),
            last_attack_landed=reader.uint8(0x1E),
            current_combo_count=reader.uint8(0x1F),
            last_hit_by=reader.uint8(0x20),
            stocks_remaining=reader.uint8(0x21),
            action_state_counter=reader.float(0x22),
            l_cancel_status=reader.uint8(0x33),
        )


class ItemUpdate(Base):
    """An active item (includes projectiles). `Minimum Replay Version: 3.0.0`"""

    __slots__ = (
        "frame",
        "type_id",
        "state",
        "facing_direction",
        "velocity_x",
        "velocity_y",
        "position_x",
        "position_y",
        "damage_taken",
        "expiration_timer",
        "spawn_id",
    )

    frame: int | None
    type_id: int | None
    state: int | None
    facing_direction: float | None
    velocity_x: float | None
    velocity_y: float | None
    position_x: float | None
    position_y: float | None
    damage_taken: int | None
    expiration_timer: int | None
    spawn_id: int | None  #: Unique ID per item spawned (0, 1, 2, ...)

    def __init__(self, **fields):
        for slot in self.__slots__:
            setattr(self, slot, fields.get(slot))

    @classmethod
    def _parse(cls, reader: FieldReader) -> ItemUpdate:
        return cls(
            frame=reader.int32(0x1),
            type_id=reader.uint16(0x5),
            state=reader.uint8(0x7),
            facing_direction=reader.float(0x8),
            velocity_x=reader.float(0xC),
            velocity_y=reader.float(0x10),
            position_x=reader.float(0x14),
            position_y=reader.float(0x18),
            damage_taken=reader.uint16(0x1C),
            expiration_timer=reader.uint16(0x1E),
            spawn_id=reader.uint32(0x20),
        )


class FrameBookend(Base):
    """Marks the end of a frame's data. `Minimum Replay Version: 3.0.0`

    `latest_finalized_frame` was added in 3.7.0 and is None on older replays."""

    __slots__ = ("frame", "latest_finalized_frame")

    frame: int | None
    latest_finalized_frame: int | None

    def __init__(self, frame: int | None, latest_finalized_frame: int | None = None):
        self.frame = frame
        self.latest_finalized_frame = latest_finalized_frame

    @classmethod
    def _parse(cls, reader: FieldReader) -> FrameBookend:
        return cls(frame=reader.int32(0x1), latest_finalized_frame=reader.int32(0x5))


class GameEnd(Base):
    """Information about the end of the game.

    Attributes:
        game_end_method : GameEnd.Method | int | None
    `Minimum Replay Version: 2.0.0`:
        lras_initiator_index : int | None
            Index of the player that LRAS'd, -1 if not applicable
    """

    __slots__ = ("game_end_method", "lras_initiator_index")

    game_end_method: GameEnd.Method | int | None
    lras_initiator_index: int | None

    def __init__(self, game_end_method: int | None, lras_initiator_index: int | None = None):
        self.game_end_method = try_enum(self.Method, game_end_method) if game_end_method is not None else None
        self.lras_initiator_index = lras_initiator_index

    @classmethod
    def _parse(cls, reader: FieldReader) -> GameEnd:
        return cls(game_end_method=reader.uint8(0x1), lras_initiator_index=reader.int8(0x2))

    class Method(IntEnum):
        INCONCLUSIVE = 0
        TIME = 1
        GAME = 2
        CONCLUSIVE = 3
        NO_CONTEST = 7


class PlayerFrame(Base):
    """Pre and post updates for one character on one frame. Either may still be None while the frame is in flight."""

    __slots__ = ("pre", "post")

    pre: PreFrameUpdate | None
    post: PostFrameUpdate | None

    def __init__(self, pre: PreFrameUpdate | None = None, post: PostFrameUpdate | None = None):
        self.pre = pre
        self.post = post


class Frame(Base):
    """A single frame of the game, built up one event at a time.

    Attributes:
        frame : int
            -123 indexed frame counter
        players : dict[int, PlayerFrame]
            Leader data keyed by player index
        followers : dict[int, PlayerFrame]
            Follower (Nana) data keyed by player index
        items : list[ItemUpdate]
            Every item update received for this frame, in arrival order
        is_transfer_complete : bool | None
            False while waiting for the bookend, True once it arrives. None for replays without bookends
    """

    __slots__ = ("frame", "players", "followers", "items", "is_transfer_complete")

    frame: int
    players: dict[int, PlayerFrame]
    followers: dict[int, PlayerFrame]
    items: list[ItemUpdate]
    is_transfer_complete: bool | None

    def __init__(self, frame: int):
        self.frame = frame
        self.players = {}
        self.followers = {}
        self.items = []
        self.is_transfer_complete = None

    def get_post(self, player_index: int) -> PostFrameUpdate | None:
        player = self.players.get(player_index)
        return player.post if player is not None else None

    def get_pre(self, player_index: int) -> PreFrameUpdate | None:
        player = self.players.get(player_index)
        return player.pre if player is not None else None


# Jump table for parse_message, skips a chain of conditionals on a very hot path
MESSAGE_PARSERS = {
    Command.GAME_START: GameStart._parse,
    Command.PRE_FRAME_UPDATE: PreFrameUpdate._parse,
    Command.POST_FRAME_UPDATE: PostFrameUpdate._parse,
    Command.ITEM_UPDATE: ItemUpdate._parse,
    Command.FRAME_BOOKEND: FrameBookend._parse,
    Command.GAME_END: GameEnd._parse,
}


def parse_message(command: int, payload: bytes | bytearray | memoryview):
    """Decodes one event. `payload` includes the command byte at offset 0.

    Returns None for commands that carry nothing this library decodes (message sizes, gecko codes, etc.)"""
    parser = MESSAGE_PARSERS.get(command)
    if parser is None:
        return None
    return parser(FieldReader(payload))
