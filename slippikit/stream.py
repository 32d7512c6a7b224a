from __future__ import annotations

from typing import Any, Callable

from .event import Command, parse_message
from .log import log
from .parse import parse_message_sizes
from .util import Enum

# Relays and the console inject this between events to keep the connection alive
NETWORK_MESSAGE = b"HELO\x00"


class StreamMode(Enum):
    AUTO = "auto"  # Re-learn message sizes after each game end
    MANUAL = "manual"  # Stop processing after a game end until restart() is called


class StreamEvent(Enum):
    RAW = "slp-raw"
    COMMAND = "slp-command"


class SlpStream:
    """Push-based demuxer for replay data arriving in arbitrary chunks (e.g. from a console connection).

    Partial events are held over until the next `write()` completes them. Keep-alive messages are skipped.

    Handlers receive `(command, payload)`:
        StreamEvent.RAW : the raw event bytes, command byte included
        StreamEvent.COMMAND : the decoded event, or the message size table for MESSAGE_SIZES

    Attributes:
        mode : StreamMode
        suppress_errors : bool
            Log and skip events that fail to decode instead of raising
        game_ended : bool
            Only ever set in MANUAL mode
        message_sizes : dict[int, int] | None
            None until the current game's MESSAGE_SIZES event has been seen
    """

    mode: StreamMode
    suppress_errors: bool
    game_ended: bool
    message_sizes: dict[int, int] | None

    def __init__(
        self,
        mode: StreamMode = StreamMode.AUTO,
        suppress_errors: bool = False,
        handlers: dict[StreamEvent, Callable[[int, Any], None]] | None = None,
    ):
        self.mode = mode
        self.suppress_errors = suppress_errors
        self.handlers = dict(handlers) if handlers else {}
        self.game_ended = False
        self.message_sizes = None
        self._carry = b""
        self._decoded = []

    def on(self, event: StreamEvent, handler: Callable[[int, Any], None]):
        self.handlers[event] = handler

    def _emit(self, event: StreamEvent, command: int, payload):
        if event == StreamEvent.COMMAND:
            self._decoded.append((command, payload))
        handler = self.handlers.get(event)
        if handler is not None:
            handler(command, payload)

    def restart(self):
        self.game_ended = False
        self.message_sizes = None

    def _payload_size(self, command: int) -> int:
        if self.message_sizes is None:
            return 0
        return self.message_sizes.get(command, 0)

    def write(self, chunk: bytes | bytearray | memoryview) -> list[tuple[int, Any]]:
        """Feeds the next chunk of data. Returns the (command, payload) pairs decoded from it, in order."""
        data = self._carry + bytes(chunk)
        self._carry = b""
        self._decoded = []

        index = 0
        while index < len(data):
            if data[index : index + len(NETWORK_MESSAGE)] == NETWORK_MESSAGE:
                index += len(NETWORK_MESSAGE)
                continue

            command = data[index]
            remaining = len(data) - index
            if command == Command.MESSAGE_SIZES and self.message_sizes is None:
                # The table's own length is its first byte
                size = data[index + 1] if remaining > 1 else None
                if size is None or remaining < size + 1:
                    self._carry = data[index:]
                    break
            else:
                size = self._payload_size(command)
                if remaining < size + 1:
                    self._carry = data[index:]
                    break

            if self.mode == StreamMode.MANUAL and self.game_ended:
                break

            try:
                consumed = self.process_command(command, data, index)
            except Exception as e:
                if not self.suppress_errors:
                    raise
                log.warning(f"skipping command 0x{command:02x} that failed to decode: {e}")
                consumed = 0

            index += 1 + consumed

        return self._decoded

    def process_command(self, command: int, data: bytes, index: int) -> int:
        """Handles the event starting at `index`. Returns the payload size consumed, excluding the command byte."""
        if command == Command.MESSAGE_SIZES and self.message_sizes is None:
            size = data[index + 1]
            self.message_sizes = parse_message_sizes(data, index)
            self._emit(StreamEvent.RAW, command, data[index : index + size + 1])
            self._emit(StreamEvent.COMMAND, command, self.message_sizes)
            return size

        size = self._payload_size(command)
        if size == 0:
            return 0

        raw = data[index : index + size + 1]
        self._emit(StreamEvent.RAW, command, raw)
        payload = parse_message(command, raw)
        if payload is None:
            return size

        if command == Command.GAME_END:
            if self.mode == StreamMode.MANUAL:
                self.game_ended = True
            else:
                self.message_sizes = None

        self._emit(StreamEvent.COMMAND, command, payload)
        return size
