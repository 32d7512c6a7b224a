from __future__ import annotations

from typing import Any, Callable

import ubjson

from .log import log
from .stream import NETWORK_MESSAGE
from .util import Enum, IntEnum, pack_uint32, unpack_uint32

DEFAULT_CONNECTION_TIMEOUT_MS = 20000
DEFAULT_CONSOLE_NICKNAME = "unknown"

# Start of a UBJSON object whose first key is `type` with a uint8 value
MESSAGE_OPENING = b"{i\x04typeU\x01"


class CommunicationType(IntEnum):
    HANDSHAKE = 1
    REPLAY = 2
    KEEP_ALIVE = 3


class CommunicationState(Enum):
    INITIAL = "initial"
    LEGACY = "legacy"
    NORMAL = "normal"


class ConnectionStatus(IntEnum):
    DISCONNECTED = 0
    CONNECTING = 1
    CONNECTED = 2
    RECONNECT_WAIT = 3


class Ports(IntEnum):
    DEFAULT = 51441
    LEGACY = 666
    RELAY_START = 53741


class ConnectionEvent(Enum):
    HANDSHAKE = "handshake"
    STATUS_CHANGE = "statusChange"
    DATA = "data"


class PositionMismatchError(Exception):
    """Replay data arrived for a different position than the one the connection is waiting on."""

    pass


class ConsoleCommunication:
    """Splits the console's byte stream into messages.

    Each message is a 4-byte big-endian length followed by that many bytes of UBJSON."""

    def __init__(self):
        self.receive_buf = b""
        self.messages = []

    def receive(self, data: bytes | bytearray):
        self.receive_buf += bytes(data)

        while len(self.receive_buf) >= 4:
            msg_size = unpack_uint32(self.receive_buf, 0)[0]
            if len(self.receive_buf) < msg_size + 4:
                return

            message = ubjson.loadb(self.receive_buf[4 : msg_size + 4])
            self.messages.append(message)
            self.receive_buf = self.receive_buf[msg_size + 4 :]

    def get_receive_buffer(self) -> bytes:
        return self.receive_buf

    def get_messages(self) -> list[dict]:
        messages = self.messages
        self.messages = []
        return messages

    def gen_handshake_out(self, cursor: bytes, client_token: int, is_realtime: bool = False) -> bytes:
        message = {
            "type": int(CommunicationType.HANDSHAKE),
            "payload": {
                "cursor": bytes(cursor),
                "clientToken": pack_uint32(client_token),
                "isRealtime": is_realtime,
            },
        }
        buf = ubjson.dumpb(message)
        return pack_uint32(len(buf)) + buf


class ConnectionDetails:
    def __init__(self):
        self.console_nick = DEFAULT_CONSOLE_NICKNAME
        self.game_data_cursor = bytes(8)
        self.version = ""
        self.client_token = 0


def get_initial_comm_state(data: bytes) -> CommunicationState:
    """Consoles speaking the current protocol open with a handshake message. Anything else is an old Nintendont or
    a relay, which send bare replay data."""
    if len(data) < 13:
        return CommunicationState.LEGACY
    return CommunicationState.NORMAL if data[4:13] == MESSAGE_OPENING else CommunicationState.LEGACY


class ConsoleConnection:
    """Protocol state for one connection to a Wii or a Slippi relay.

    The socket is owned by the caller: feed everything it receives to `handle_data()`, send `handshake_out()` on
    connect, and subscribe to `ConnectionEvent.DATA` for the replay bytes (typically into an SlpStream).

    Errors from `handle_data()` mean the connection should be dropped and re-established, which sends a fresh
    handshake with the current cursor."""

    def __init__(
        self,
        ip_address: str = "0.0.0.0",
        port: int = Ports.DEFAULT,
        handlers: dict[ConnectionEvent, Callable[[Any], None]] | None = None,
    ):
        self.ip_address = ip_address
        self.port = port
        self.handlers = dict(handlers) if handlers else {}
        self.connection_status = ConnectionStatus.DISCONNECTED
        self.details = ConnectionDetails()
        self.comm_state = CommunicationState.INITIAL
        self.comms = ConsoleCommunication()

    def on(self, event: ConnectionEvent, handler: Callable[[Any], None]):
        self.handlers[event] = handler

    def _emit(self, event: ConnectionEvent, value):
        handler = self.handlers.get(event)
        if handler is not None:
            handler(value)

    def get_status(self) -> ConnectionStatus:
        return self.connection_status

    def get_settings(self) -> dict:
        return {"ip_address": self.ip_address, "port": self.port}

    def get_details(self) -> ConnectionDetails:
        return self.details

    def set_status(self, status: ConnectionStatus):
        self.connection_status = status
        self._emit(ConnectionEvent.STATUS_CHANGE, status)

    def connecting(self):
        """Resets per-connection state before a new (re)connection attempt."""
        self.comm_state = CommunicationState.INITIAL
        self.comms = ConsoleCommunication()
        self.set_status(ConnectionStatus.CONNECTING)

    def disconnect(self):
        self.set_status(ConnectionStatus.DISCONNECTED)

    def handshake_out(self) -> bytes:
        return self.comms.gen_handshake_out(self.details.game_data_cursor, self.details.client_token)

    def handle_data(self, data: bytes):
        if self.comm_state == CommunicationState.INITIAL:
            self.comm_state = get_initial_comm_state(data)
            log.info(f"Connected to {self.ip_address}:{self.port} with type: {self.comm_state.value}")
            self.set_status(ConnectionStatus.CONNECTED)

        if self.comm_state == CommunicationState.LEGACY:
            self._emit(ConnectionEvent.DATA, bytes(data))
            return

        self.comms.receive(data)
        for message in self.comms.get_messages():
            self.process_message(message)

    def process_message(self, message: dict):
        payload = message.get("payload", {})
        match message.get("type"):
            case CommunicationType.KEEP_ALIVE:
                # Lets relay connections see keep-alives from the main connection
                self._emit(ConnectionEvent.DATA, NETWORK_MESSAGE)
            case CommunicationType.REPLAY:
                read_pos = bytes(payload["pos"])
                force_pos = payload.get("forcePos", False)
                if not force_pos and read_pos != self.details.game_data_cursor:
                    raise PositionMismatchError(
                        f"Position of received data is incorrect. Expected {self.details.game_data_cursor.hex()}, "
                        f"received {read_pos.hex()}"
                    )
                if force_pos:
                    log.warning(
                        "Overflow occurred in Nintendont, data has likely been skipped and replay corrupted. "
                        f"Expected {self.details.game_data_cursor.hex()}, received {read_pos.hex()}"
                    )

                self.details.game_data_cursor = bytes(payload["nextPos"])
                self._emit(ConnectionEvent.DATA, bytes(payload["data"]))
            case CommunicationType.HANDSHAKE:
                self.details.console_nick = payload["nick"]
                self.details.client_token = unpack_uint32(bytes(payload["clientToken"]), 0)[0]
                self.details.version = payload["nintendontVersion"]
                self.details.game_data_cursor = bytes(payload["pos"])
                self._emit(ConnectionEvent.HANDSHAKE, self.details)
            case _:
                log.debug(f"ignoring console message of type {message.get('type')}")
