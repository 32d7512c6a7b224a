from __future__ import annotations

import mmap
import os
from pathlib import Path
from typing import Any, Callable

import ubjson

from .event import Command, parse_message
from .log import log
from .parser import ParseEvent, SlpParser
from .util import FieldReader

# Replays start with the opening of a UBJSON object whose first key is `raw`, an array of uint8 with a big-endian
# int32 length. The event stream starts right after the length.
RAW_HEADER = b"{U\x03raw[$U#l"
RAW_HEADER_SIZE = len(RAW_HEADER) + 4
# `U\x08metadata` sits between the end of the raw array and the metadata object
METADATA_KEY_SIZE = 10

# Replays older than 0.1.0 have no message size event. The sizes never changed for those versions.
LEGACY_MESSAGE_SIZES = {
    Command.GAME_START: 0x140,
    Command.PRE_FRAME_UPDATE: 0x6,
    Command.POST_FRAME_UPDATE: 0x46,
    Command.GAME_END: 0x1,
}


class ParseError(IOError):
    def __init__(self, message, filename=None, pos=None):
        super().__init__(message)
        self.filename = filename
        self.pos = pos

    def __str__(self):
        return f'Parse error ({self.filename or "?"} {self.pos if self.pos else "?"}): {super().__str__()}'


def parse_message_sizes(buffer, position: int = 0) -> dict[int, int]:
    """Reads a MESSAGE_SIZES event at `position`.

    Returns a mapping of command byte -> payload size (excluding the command byte). The MESSAGE_SIZES command maps to
    its own payload length. An empty dict is returned if there is no valid table at `position`."""
    reader = FieldReader(buffer)
    if reader.uint8(position) != Command.MESSAGE_SIZES:
        return {}

    payload_length = reader.uint8(position + 1)
    # includes the length byte itself, every following entry is 3 bytes
    if payload_length is None or (payload_length - 1) % 3 != 0 or not reader.can_read(position + 1, payload_length):
        log.warning(f"malformed message size table at {position}, length {payload_length}")
        return {}

    sizes = {int(Command.MESSAGE_SIZES): payload_length}
    for i in range(0, payload_length - 1, 3):
        entry = position + 2 + i
        command = reader.uint8(entry)
        sizes[command] = reader.uint16(entry + 1)
        try:
            Command(command)
        except ValueError:
            log.info("ignoring unknown command in message sizes: 0x%02x" % command)

    return sizes


def get_raw_data_position(buffer) -> int | None:
    """Offset of the first event. 0 for legacy replays, which are bare event data, and None if the buffer starts with
    neither a replay header nor a GAME_START event."""
    if len(buffer) == 0 or buffer[0] == Command.GAME_START:
        return 0
    if buffer[0] != RAW_HEADER[0]:
        return None
    return RAW_HEADER_SIZE


def get_raw_data_length(buffer, position: int) -> int:
    file_size = len(buffer)
    if position == 0:
        return file_size

    # Games that are still being written (or were severed) have a 0 length, fall back on the file size
    raw_length = FieldReader(buffer).uint32(position - 4)
    if raw_length:
        return raw_length
    return max(file_size - position, 0)


class SlpFile:
    """A replay opened for reading, backed by either a memory map of a file on disk or an in-memory buffer.

    Layout information is computed once on open. Use as a context manager (or call `close()`) to release the memory
    map.

    Attributes:
        buffer : bytes | mmap.mmap
        file_path : Path | None
            Source path, None for in-memory replays
        raw_data_position : int
            Offset of the first event
        raw_data_length : int
        metadata_position : int
        metadata_length : int
            Can be zero or negative for a replay that is still being written. Zero, like raw_data_length, when the
            header isn't recognized
        message_sizes : dict[int, int]
            Payload sizes (excluding the command byte) for every command in the replay
    """

    buffer: bytes | mmap.mmap
    file_path: Path | None
    raw_data_position: int
    raw_data_length: int
    metadata_position: int
    metadata_length: int
    message_sizes: dict[int, int]

    def __init__(self, buffer: bytes | mmap.mmap, file_path: Path | None = None):
        self.buffer = buffer
        self.file_path = file_path

        raw_data_position = get_raw_data_position(buffer)
        if raw_data_position is None:
            log.warning(f"unrecognized replay header in {file_path or 'buffer'}, treating it as empty")
            self.raw_data_position = 0
            self.raw_data_length = 0
            self.metadata_position = 0
            self.metadata_length = 0
            self.message_sizes = {}
            return

        self.raw_data_position = raw_data_position
        self.raw_data_length = get_raw_data_length(buffer, self.raw_data_position)
        self.metadata_position = self.raw_data_position + self.raw_data_length + METADATA_KEY_SIZE
        self.metadata_length = len(buffer) - self.metadata_position - 1

        if self.raw_data_position == 0:
            self.message_sizes = {int(k): v for k, v in LEGACY_MESSAGE_SIZES.items()}
        else:
            self.message_sizes = parse_message_sizes(buffer, self.raw_data_position)

    def __len__(self):
        return len(self.buffer)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()

    def close(self):
        if isinstance(self.buffer, mmap.mmap):
            self.buffer.close()


def open_slp_file(source: str | os.PathLike | bytes | bytearray | memoryview) -> SlpFile:
    """Opens a replay from a path or an in-memory buffer."""
    if isinstance(source, (bytes, bytearray, memoryview)):
        return SlpFile(bytes(source))

    path = Path(source)
    try:
        with open(path, "rb") as f:
            # mmap can't map an empty file
            if os.fstat(f.fileno()).st_size == 0:
                return SlpFile(b"", path)
            # The map stays valid after the file object is closed
            return SlpFile(mmap.mmap(f.fileno(), 0, access=mmap.ACCESS_READ), path)
    except OSError as e:
        raise ParseError(str(e), filename=str(path)) from e


def iterate_events(
    slp_file: SlpFile,
    callback: Callable[[int, Any], bool | None],
    start_pos: int | None = None,
) -> int:
    """Walks the raw event stream, decoding each event and passing (command, payload) to `callback`.

    Stops at the end of the raw data, at a command with no known size, or at an event that isn't fully written yet.
    If `callback` returns a truthy value, iteration stops after that event.

    Returns the offset of the first event that was not consumed. Passing it back in as `start_pos` resumes exactly
    where iteration left off."""
    buffer = slp_file.buffer
    message_sizes = slp_file.message_sizes
    read_position = slp_file.raw_data_position if start_pos is None else start_pos
    stop_reading_at = slp_file.raw_data_position + slp_file.raw_data_length
    stop_reading_at = min(stop_reading_at, len(buffer))

    while read_position < stop_reading_at:
        command = buffer[read_position]
        size = message_sizes.get(command)
        if size is None:
            log.debug(f"stopping at unknown command 0x{command:02x} at {read_position}")
            return read_position

        event_length = size + 1
        if event_length > stop_reading_at - read_position:
            log.debug(f"stopping at incomplete command 0x{command:02x} at {read_position}")
            return read_position

        payload = parse_message(command, buffer[read_position : read_position + event_length])
        read_position += event_length

        if callback(command, payload):
            break

    return read_position


def get_metadata(slp_file: SlpFile) -> dict | None:
    """Decodes the metadata block. Returns None if it is missing (e.g. the game is still in progress) or corrupt."""
    if slp_file.metadata_length <= 0:
        return None

    start = slp_file.metadata_position
    try:
        return ubjson.loadb(bytes(slp_file.buffer[start : start + slp_file.metadata_length]))
    except ubjson.DecoderException:
        log.debug("could not decode metadata")
        return None


def parse(
    source: str | os.PathLike | bytes,
    handlers: dict[ParseEvent, Callable[..., None]],
    strict: bool = False,
) -> SlpParser:
    """Parse a Slippi replay.

    :param source: replay path or raw replay bytes
    :param handlers: dict of ParseEvent keys to handler functions. Each event will be passed to the corresponding
        handler as it occurs.
    :param strict: raise StrictFinalizationError on incomplete frames
    """
    parser = SlpParser(strict=strict, handlers=handlers)
    with open_slp_file(source) as slp_file:

        def feed(command, payload):
            parser.handle_command(command, payload)

        iterate_events(slp_file, feed)
    return parser
