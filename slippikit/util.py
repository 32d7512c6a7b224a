from __future__ import annotations

import enum
import re
import struct
from functools import lru_cache
from typing import Any

from .log import log


# Pre-allocating these prevents python from recreating the Struct on every call, which adds up over the tens of
# thousands of payloads in a single replay. `unpack_from` reads at an offset without slicing the payload first.
unpack_uint8 = struct.Struct(">B").unpack_from

unpack_uint16 = struct.Struct(">H").unpack_from

unpack_uint32 = struct.Struct(">I").unpack_from

unpack_int8 = struct.Struct(">b").unpack_from

unpack_int32 = struct.Struct(">i").unpack_from

unpack_float = struct.Struct(">f").unpack_from

pack_uint32 = struct.Struct(">I").pack

pack_int32 = struct.Struct(">i").pack


class FieldReader:
    """Bounds-checked big-endian reads from a fixed-layout payload.

    Offsets are relative to the start of the buffer, which for Slippi payloads is the command byte itself. A read
    that would run past the end of the buffer returns None instead of raising: older replays carry shorter payloads
    for the same command, and fields added later simply don't exist in them."""

    __slots__ = ("buffer", "length")

    def __init__(self, buffer: bytes | bytearray | memoryview):
        self.buffer = buffer
        self.length = len(buffer)

    def can_read(self, offset: int, size: int) -> bool:
        return offset >= 0 and offset + size <= self.length

    def uint8(self, offset: int) -> int | None:
        if not self.can_read(offset, 1):
            return None
        return unpack_uint8(self.buffer, offset)[0]

    def int8(self, offset: int) -> int | None:
        if not self.can_read(offset, 1):
            return None
        return unpack_int8(self.buffer, offset)[0]

    def uint16(self, offset: int) -> int | None:
        if not self.can_read(offset, 2):
            return None
        return unpack_uint16(self.buffer, offset)[0]

    def uint32(self, offset: int) -> int | None:
        if not self.can_read(offset, 4):
            return None
        return unpack_uint32(self.buffer, offset)[0]

    def int32(self, offset: int) -> int | None:
        if not self.can_read(offset, 4):
            return None
        return unpack_int32(self.buffer, offset)[0]

    def float(self, offset: int) -> float | None:
        if not self.can_read(offset, 4):
            return None
        return unpack_float(self.buffer, offset)[0]

    def bool(self, offset: int) -> bool | None:
        if not self.can_read(offset, 1):
            return None
        return self.buffer[offset] != 0

    def bytes(self, offset: int, size: int) -> bytes | None:
        if not self.can_read(offset, size):
            return None
        return bytes(self.buffer[offset : offset + size])


def _indent(s):
    return re.sub(r"^", "    ", s, flags=re.MULTILINE)


def _format_collection(coll, delim_open, delim_close):
    elements = [_format(x) for x in coll]
    if elements and "\n" in elements[0]:
        return delim_open + "\n" + ",\n".join(_indent(e) for e in elements) + delim_close
    else:
        return delim_open + ", ".join(elements) + delim_close


def _format(obj):
    if isinstance(obj, float):
        return "%.02f" % obj
    elif isinstance(obj, tuple):
        return _format_collection(obj, "(", ")")
    elif isinstance(obj, list):
        return _format_collection(obj, "[", "]")
    elif isinstance(obj, enum.Enum):
        return repr(obj)
    else:
        return str(obj)


class Base:
    """Multi-line repr of every public, non-callable attribute. Works with both `__dict__` and `__slots__`."""

    def _attr_repr(self, attr):
        return attr + "=" + _format(getattr(self, attr))

    def __repr__(self):
        attrs = []
        for attr in dir(self):
            # uppercase names are nested classes
            if attr.startswith("_") or attr[0].isupper() or not hasattr(self, attr):
                continue
            if callable(getattr(self, attr)):
                continue
            s = self._attr_repr(attr)
            if s:
                attrs.append(_indent(s))

        return "%s(\n%s)" % (self.__class__.__name__, ",\n".join(attrs))


class Enum(enum.Enum):
    def __repr__(self):
        return f"{self.value}:{self.name}"


class IntEnum(enum.IntEnum):
    def __repr__(self):
        return f"{self._value_}:{self._name_}"

    @classmethod
    def _missing_(cls, value):
        val_desc = f"0x{value:x}" if isinstance(value, int) else f"{value}"
        raise ValueError(f"{val_desc} is not a valid {cls.__name__}") from None


@lru_cache(maxsize=512)
def try_enum(enum_type, val) -> Enum | Any:
    """Attempts Enum(val). If the value is invalid, returns the given value."""
    try:
        return enum_type(val)
    except ValueError:
        log.info("unknown %s: %s" % (enum_type.__name__, val))
        return val
