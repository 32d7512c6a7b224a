from __future__ import annotations

import os
from datetime import datetime, timezone
from typing import Any, Callable

import ubjson

from .event import Command, PostFrameUpdate
from .log import log
from .parse import RAW_HEADER
from .stream import SlpStream, StreamEvent, StreamMode
from .util import Enum, pack_uint32

DEFAULT_NICKNAME = "unknown"
# Offset of the raw data length, patched once the game is over
RAW_LENGTH_OFFSET = len(RAW_HEADER)
# lastFrame before any POST_FRAME_UPDATE is seen
NO_FRAME = -124


def format_start_at(date: datetime) -> str:
    """ISO 8601 in UTC with millisecond precision, e.g. `2023-01-01T12:00:00.000Z`"""
    date = date.astimezone(timezone.utc)
    return date.strftime("%Y-%m-%dT%H:%M:%S.") + f"{date.microsecond // 1000:03d}Z"


def default_filename(folder: str | os.PathLike, date: datetime) -> str:
    return os.path.join(folder, f"Game_{date.strftime('%Y%m%dT%H%M%S')}.slp")


class SlpWriter:
    """Writes a single replay file from raw event bytes.

    The header is written with a placeholder length, events are appended as they arrive, and `close()` writes the
    metadata block and patches in the final length. Feed decoded events to `on_command()` so the metadata reflects
    the game's last frame and character usage.

    Attributes:
        file_path : str
        start_at : datetime
        console_nickname : str
        last_frame : int
        players : dict[int, dict[int, int]]
            Frames played per internal character id, by player index
        raw_data_length : int
    """

    def __init__(self, file_path: str | os.PathLike, console_nickname: str = DEFAULT_NICKNAME):
        self.file_path = os.fspath(file_path)
        self.start_at = datetime.now(timezone.utc)
        self.console_nickname = console_nickname
        self.last_frame = NO_FRAME
        self.players = {}
        self.raw_data_length = 0

        self.file = open(self.file_path, "wb")
        self.file.write(RAW_HEADER + bytes(4))

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()

    @property
    def closed(self) -> bool:
        return self.file.closed

    def write(self, data: bytes):
        self.file.write(data)
        self.raw_data_length += len(data)

    def on_command(self, command: int, payload: Any):
        if command != Command.POST_FRAME_UPDATE:
            return

        post: PostFrameUpdate = payload
        # Nana's frames would double count Ice Climbers
        if post.is_follower:
            return

        self.last_frame = post.frame
        usage = self.players.setdefault(post.player_index, {})
        usage[post.internal_character_id] = usage.get(post.internal_character_id, 0) + 1

    def metadata(self) -> dict:
        return {
            "startAt": format_start_at(self.start_at),
            "lastFrame": self.last_frame,
            "consoleNick": self.console_nickname or DEFAULT_NICKNAME,
            "players": {
                str(index): {"characters": {str(char_id): frames for char_id, frames in usage.items()}}
                for index, usage in self.players.items()
            },
            "playedOn": "network",
        }

    def close(self):
        if self.file.closed:
            return

        self.file.write(b"U\x08metadata" + ubjson.dumpb(self.metadata()) + b"}")
        self.file.seek(RAW_LENGTH_OFFSET)
        self.file.write(pack_uint32(self.raw_data_length))
        self.file.close()
        log.debug(f"wrote {self.raw_data_length} bytes of raw data to {self.file_path}")


class WriterEvent(Enum):
    NEW_FILE = "new-file"
    FILE_COMPLETE = "file-complete"


class SlpFileWriter(SlpStream):
    """An SlpStream that also writes every game it sees to its own replay file.

    A file is opened when a game's MESSAGE_SIZES event arrives and completed after its GAME_END. Writer handlers
    receive the file's path.

    :param folder: directory new replays are written to
    :param console_nickname: written to each replay's metadata
    :param output_files: when False, behaves like a plain SlpStream
    :param new_filename: called with (folder, start time) to name each new replay
    """

    current_file: SlpWriter | None

    def __init__(
        self,
        folder: str | os.PathLike = ".",
        console_nickname: str = DEFAULT_NICKNAME,
        output_files: bool = True,
        new_filename: Callable[[str | os.PathLike, datetime], str] = default_filename,
        mode: StreamMode = StreamMode.AUTO,
        suppress_errors: bool = False,
        handlers: dict[StreamEvent, Callable[[int, Any], None]] | None = None,
        writer_handlers: dict[WriterEvent, Callable[[str], None]] | None = None,
    ):
        super().__init__(mode=mode, suppress_errors=suppress_errors, handlers=handlers)
        self.folder = folder
        self.console_nickname = console_nickname
        self.output_files = output_files
        self.new_filename = new_filename
        self.writer_handlers = dict(writer_handlers) if writer_handlers else {}
        self.current_file = None

    def on_writer(self, event: WriterEvent, handler: Callable[[str], None]):
        self.writer_handlers[event] = handler

    def _emit_writer(self, event: WriterEvent, path: str):
        handler = self.writer_handlers.get(event)
        if handler is not None:
            handler(path)

    def _emit(self, event: StreamEvent, command: int, payload):
        if event == StreamEvent.RAW:
            self._on_raw(command, payload)
        elif event == StreamEvent.COMMAND and self.current_file is not None:
            self.current_file.on_command(command, payload)
        super()._emit(event, command, payload)

    def _on_raw(self, command: int, raw: bytes):
        if command == Command.MESSAGE_SIZES:
            self._handle_new_game()

        if self.current_file is not None:
            self.current_file.write(raw)

        # GAME_END's COMMAND event follows its RAW one, the file isn't needed for it
        if command == Command.GAME_END:
            self._handle_end_game()

    def get_current_filename(self) -> str | None:
        if self.current_file is None:
            return None
        return os.path.abspath(self.current_file.file_path)

    def _handle_new_game(self):
        if not self.output_files:
            return

        # A game that never ended still gets a valid file
        if self.current_file is not None:
            self._handle_end_game()

        file_path = self.new_filename(self.folder, datetime.now())
        self.current_file = SlpWriter(file_path, console_nickname=self.console_nickname)
        log.debug(f"Creating new file at: {file_path}")
        self._emit_writer(WriterEvent.NEW_FILE, file_path)

    def _handle_end_game(self):
        if self.current_file is None:
            return

        self.current_file.console_nickname = self.console_nickname
        self.current_file.close()
        log.debug(f"Finished writing file: {self.current_file.file_path}")
        self._emit_writer(WriterEvent.FILE_COMPLETE, self.current_file.file_path)
        self.current_file = None
