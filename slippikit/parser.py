from __future__ import annotations

from typing import Any, Callable

from .enums.character import SHEIK_ZELDA_FIX
from .event import (
    MAX_ROLLBACK_FRAMES,
    Capabilities,
    Command,
    Frame,
    FrameBookend,
    Frames,
    GameEnd,
    GameStart,
    ItemUpdate,
    PlayerFrame,
    PostFrameUpdate,
    PreFrameUpdate,
)
from .log import log
from .util import Enum


class ParseEvent(Enum):
    """Parser events, used as keys for event handlers.

    SETTINGS -> GameStart, fired once the player list and characters are final
    FRAME -> Frame, fired every time a frame receives new data (may fire repeatedly for the same frame on rollback)
    FINALIZED_FRAME -> Frame, fired exactly once per frame, in order, once the frame can no longer change
    END -> GameEnd
    """

    SETTINGS = "settings"
    FRAME = "frame"
    FINALIZED_FRAME = "finalized-frame"
    END = "end"


class StrictFinalizationError(Exception):
    """A frame could not be finalized with complete data while the parser was in strict mode."""

    pass


class SlpParser:
    """Assembles decoded events into frames and decides when each frame is final.

    Online games roll back: a frame's pre/post updates can be re-sent several times before they settle. Frames are
    only passed on as FINALIZED_FRAME once the bookend says they can't change anymore (or, for replays without
    rollback information, once they're far enough behind the newest frame).

    Attributes:
        strict : bool
            Raise StrictFinalizationError on incomplete or out-of-window frames instead of passing them through
        handlers : dict[ParseEvent, Callable]
            One handler per event, called with the event's payload
        frames : dict[int, Frame]
            Every frame seen so far, keyed by frame number
        settings : GameStart | None
        game_end : GameEnd | None
        latest_frame_index : int | None
            Highest frame number seen. Rollback re-sends of older frames don't move it backwards
        settings_complete : bool
        last_finalized_frame : int
        capabilities : Capabilities | None
    """

    strict: bool
    handlers: dict[ParseEvent, Callable[[Any], None]]
    frames: dict[int, Frame]
    settings: GameStart | None
    game_end: GameEnd | None
    latest_frame_index: int | None
    settings_complete: bool
    last_finalized_frame: int
    capabilities: Capabilities | None

    def __init__(self, strict: bool = False, handlers: dict[ParseEvent, Callable[[Any], None]] | None = None):
        self.strict = strict
        self.handlers = dict(handlers) if handlers else {}
        self.reset()

    def reset(self):
        """Resets the parser state to its default values. Handlers are kept."""
        self.frames = {}
        self.settings = None
        self.game_end = None
        self.latest_frame_index = None
        self.settings_complete = False
        self.last_finalized_frame = Frames.FIRST - 1
        self.capabilities = None

    def on(self, event: ParseEvent, handler: Callable[[Any], None]):
        self.handlers[event] = handler

    def _emit(self, event: ParseEvent, payload):
        handler = self.handlers.get(event)
        if handler is not None:
            handler(payload)

    def handle_command(self, command: int, payload):
        """Feeds a single decoded event to the parser. Commands the parser doesn't track are ignored."""
        if payload is None:
            return

        # Ordered by frequency
        if command == Command.PRE_FRAME_UPDATE:
            self._handle_frame_update(payload)
        elif command == Command.POST_FRAME_UPDATE:
            # Post updates can complete the settings, which has to happen before the frame update fires
            self._handle_post_frame_update(payload)
            self._handle_frame_update(payload)
        elif command == Command.ITEM_UPDATE:
            self._handle_item_update(payload)
        elif command == Command.FRAME_BOOKEND:
            self._handle_frame_bookend(payload)
        elif command == Command.GAME_START:
            self._handle_game_start(payload)
        elif command == Command.GAME_END:
            self._handle_game_end(payload)

    def get_latest_frame_number(self) -> int | None:
        return self.latest_frame_index

    def get_playable_frame_count(self) -> int:
        if self.latest_frame_index is None or self.latest_frame_index < Frames.FIRST_PLAYABLE:
            return 0
        return self.latest_frame_index - Frames.FIRST_PLAYABLE

    def get_latest_frame(self) -> Frame | None:
        """Returns the newest frame that is likely to have complete data.

        While the game is running the newest frame might still be receiving updates, so the one before it is returned
        instead."""
        frame_index = self.latest_frame_index if self.latest_frame_index is not None else Frames.FIRST
        index_to_use = frame_index if self.game_end is not None else frame_index - 1
        return self.frames.get(index_to_use)

    def get_settings(self) -> GameStart | None:
        return self.settings if self.settings_complete else None

    def get_game_end(self) -> GameEnd | None:
        return self.game_end

    def get_frames(self) -> dict[int, Frame]:
        return self.frames

    def get_frame(self, num: int) -> Frame | None:
        return self.frames.get(num)

    def _get_or_create_frame(self, num: int) -> Frame:
        frame = self.frames.get(num)
        if frame is None:
            frame = Frame(num)
            self.frames[num] = frame
        return frame

    def _handle_game_start(self, payload: GameStart):
        payload.players = [player for player in payload.players if player.type != GameStart.Player.Type.EMPTY]
        self.settings = payload
        self.capabilities = Capabilities.from_game_start(payload)

        # Replays made after the sheik fix already have the right character, no need to wait for the first frame
        if self.capabilities.has_character_fix:
            self._complete_settings()

    def _handle_post_frame_update(self, payload: PostFrameUpdate):
        if self.settings_complete or self.settings is None or payload.frame is None:
            return

        if payload.frame <= Frames.FIRST:
            character_id = SHEIK_ZELDA_FIX.get(payload.internal_character_id)
            player = self.settings.get_player(payload.player_index)
            if character_id is not None and player is not None:
                player.character_id = int(character_id)

        if payload.frame > Frames.FIRST:
            self._complete_settings()

    def _handle_frame_update(self, payload: PreFrameUpdate | PostFrameUpdate):
        num = payload.frame
        if num is None or payload.player_index is None:
            log.debug("dropping frame update without a frame number or player index")
            return

        if self.latest_frame_index is None or num > self.latest_frame_index:
            self.latest_frame_index = num

        frame = self._get_or_create_frame(num)
        group = frame.followers if payload.is_follower else frame.players
        player_frame = group.get(payload.player_index)
        if player_frame is None:
            player_frame = PlayerFrame()
            group[payload.player_index] = player_frame

        if isinstance(payload, PreFrameUpdate):
            if player_frame.pre is not None:
                log.debug(f"rollback: overwriting pre-frame update for frame {num}, player {payload.player_index}")
            player_frame.pre = payload
        else:
            if player_frame.post is not None:
                log.debug(f"rollback: overwriting post-frame update for frame {num}, player {payload.player_index}")
            player_frame.post = payload

        if self.capabilities is None or not self.capabilities.has_bookend:
            self._emit(ParseEvent.FRAME, frame)
            # Without bookends, seeing frame N is the only sign that frame N - 1 is done
            self._finalize_frames(num - 1)
        else:
            frame.is_transfer_complete = False

    def _handle_item_update(self, payload: ItemUpdate):
        if payload.frame is None:
            return
        self._get_or_create_frame(payload.frame).items.append(payload)

    def _handle_frame_bookend(self, payload: FrameBookend):
        num = payload.frame
        if num is None:
            return

        frame = self._get_or_create_frame(num)
        frame.is_transfer_complete = True
        self._emit(ParseEvent.FRAME, frame)

        latest_finalized = payload.latest_finalized_frame
        if (
            self.capabilities is not None
            and self.capabilities.supports_rollback_finalization
            and latest_finalized is not None
            and latest_finalized >= Frames.FIRST
        ):
            if self.strict and latest_finalized < num - MAX_ROLLBACK_FRAMES:
                raise StrictFinalizationError(
                    f"latest_finalized_frame should be within {MAX_ROLLBACK_FRAMES} frames of {num}"
                )
            self._finalize_frames(latest_finalized)
        else:
            # No trustworthy finalized frame, anything older than the rollback window can't change
            self._finalize_frames(num - MAX_ROLLBACK_FRAMES)

    def _handle_game_end(self, payload: GameEnd):
        if self.latest_frame_index is not None and self.latest_frame_index != self.last_finalized_frame:
            self._finalize_frames(self.latest_frame_index)

        self.game_end = payload
        self._emit(ParseEvent.END, payload)

    def _check_frame_complete(self, frame: Frame, target: int):
        players = self.settings.players if self.settings is not None else []
        for player in players:
            player_frame = frame.players.get(player.player_index)
            # Eliminated players stop sending updates in games with more than 2 players
            if player_frame is None and len(players) > 2:
                continue

            pre = player_frame.pre if player_frame is not None else None
            post = player_frame.post if player_frame is not None else None
            if pre is None or post is None:
                missing = "pre" if pre is None else "post"
                raise StrictFinalizationError(
                    f"Could not finalize frame {frame.frame} of {target}: "
                    f"missing {missing}-frame update for player {player.player_index}"
                )

    def _finalize_frames(self, num: int):
        """Fires FINALIZED_FRAME for every frame up to and including `num` that hasn't been finalized yet."""
        while self.last_finalized_frame < num:
            to_finalize = self.last_finalized_frame + 1
            frame = self.frames.get(to_finalize)

            if frame is None:
                if self.strict:
                    raise StrictFinalizationError(f"Could not finalize frame {to_finalize} of {num}: frame is missing")
                log.debug(f"skipping finalization of missing frame {to_finalize}")
                self.last_finalized_frame = to_finalize
                continue

            if self.strict:
                self._check_frame_complete(frame, num)

            self._emit(ParseEvent.FINALIZED_FRAME, frame)
            self.last_finalized_frame = to_finalize

    def _complete_settings(self):
        if not self.settings_complete:
            self.settings_complete = True
            self._emit(ParseEvent.SETTINGS, self.settings)
