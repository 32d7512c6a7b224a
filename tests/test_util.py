import struct

from slippikit.enums.stage import Stage
from slippikit.util import FieldReader, try_enum


def test_field_reader_reads_big_endian_fields():
    buf = struct.pack(">BbHIif?", 0xFF, -2, 0x1234, 0xDEADBEEF, -5, 1.5, True)
    reader = FieldReader(buf)

    assert reader.uint8(0) == 0xFF
    assert reader.int8(1) == -2
    assert reader.uint16(2) == 0x1234
    assert reader.uint32(4) == 0xDEADBEEF
    assert reader.int32(8) == -5
    assert reader.float(12) == 1.5
    assert reader.bool(16) is True
    assert reader.bytes(2, 2) == b"\x12\x34"


def test_field_reader_out_of_range_is_none():
    reader = FieldReader(b"\x01\x02\x03")

    assert reader.uint8(2) == 3
    assert reader.uint8(3) is None
    assert reader.uint16(2) is None
    assert reader.uint32(0) is None
    assert reader.int32(-1) is None
    assert reader.float(0) is None
    assert reader.bool(5) is None
    assert reader.bytes(1, 3) is None


def test_field_reader_short_payload_keeps_in_range_fields():
    reader = FieldReader(struct.pack(">iB", 42, 7))

    assert reader.int32(0) == 42
    assert reader.uint8(4) == 7
    assert reader.int32(5) is None


def test_try_enum():
    assert try_enum(Stage, 31) is Stage.BATTLEFIELD
    assert try_enum(Stage, 0xFFFF) == 0xFFFF
