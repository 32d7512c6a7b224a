import pytest

from slippikit.event import Command, GameStart, PreFrameUpdate
from slippikit.parse import (
    LEGACY_MESSAGE_SIZES,
    ParseError,
    get_metadata,
    get_raw_data_length,
    get_raw_data_position,
    iterate_events,
    open_slp_file,
    parse,
    parse_message_sizes,
)
from slippikit.parser import ParseEvent

from conftest import DEFAULT_SIZES


def collect(slp_file, start_pos=None, stop_after=None):
    events = []

    def callback(command, payload):
        events.append((command, payload))
        return stop_after is not None and command == stop_after

    position = iterate_events(slp_file, callback, start_pos)
    return events, position


def test_message_sizes(slp):
    sizes = parse_message_sizes(slp.message_sizes())

    assert sizes[Command.MESSAGE_SIZES] == 1 + 3 * len(DEFAULT_SIZES)
    for command, size in DEFAULT_SIZES.items():
        assert sizes[command] == size


def test_message_sizes_at_offset(slp):
    buffer = b"\x00" * 15 + slp.message_sizes()
    assert parse_message_sizes(buffer, 15)[Command.GAME_START] == 0x1A4


def test_message_sizes_unknown_command_is_kept(slp):
    sizes = parse_message_sizes(slp.message_sizes({0x36: 0x1A4, 0x42: 0x10}))
    assert sizes[0x42] == 0x10


@pytest.mark.parametrize(
    "buffer",
    [
        b"\x36\x04\x36\x01\xa4",  # not a message size event
        b"\x35\x05\x36\x01\xa4\x00",  # length isn't 1 + a multiple of 3
        b"\x35\x07\x36\x01\xa4",  # shorter than its declared length
        b"\x35",
        b"",
    ],
)
def test_malformed_message_sizes_are_empty(buffer):
    assert parse_message_sizes(buffer) == {}


def test_raw_data_layout(slp):
    raw = slp.message_sizes() + slp.game_start()
    data = slp.replay(raw)

    assert get_raw_data_position(data) == 15
    assert get_raw_data_length(data, 15) == len(raw)


def test_zero_raw_length_falls_back_to_file_size(slp):
    raw = slp.message_sizes() + slp.game_start()
    data = slp.replay(raw, raw_length=0)

    assert get_raw_data_length(data, 15) == len(raw)


def test_legacy_layout(slp):
    data = slp.game_start(version=(0, 1, 0), size=0x140)

    assert get_raw_data_position(data) == 0
    assert get_raw_data_length(data, 0) == len(data)

    slp_file = open_slp_file(data)
    assert slp_file.message_sizes == {int(k): v for k, v in LEGACY_MESSAGE_SIZES.items()}
    events, _ = collect(slp_file)
    assert [command for command, _ in events] == [Command.GAME_START]


def test_unrecognized_header_is_empty():
    assert get_raw_data_position(b"garbage") is None
    assert get_raw_data_position(b"") == 0

    slp_file = open_slp_file(bytes([Command.GAME_END, 0x02, 0xFF]) + b"junk")
    assert slp_file.raw_data_length == 0
    assert slp_file.metadata_length == 0
    assert slp_file.message_sizes == {}
    assert get_metadata(slp_file) is None

    events, position = collect(slp_file)
    assert events == []
    assert position == 0


def test_iterate_events_in_order(slp):
    raw = slp.message_sizes() + slp.game_start() + slp.frames(first=-123, last=-122) + slp.game_end()
    events, position = collect(open_slp_file(slp.replay(raw)))

    commands = [command for command, _ in events]
    assert commands[0] == Command.MESSAGE_SIZES
    assert commands[1] == Command.GAME_START
    assert commands[-1] == Command.GAME_END
    assert commands.count(Command.PRE_FRAME_UPDATE) == 4
    assert commands.count(Command.FRAME_BOOKEND) == 2
    assert position == 15 + len(raw)

    # MESSAGE_SIZES is consumed but not decoded
    assert events[0][1] is None
    assert isinstance(events[1][1], GameStart)


def test_iterate_events_stop_and_resume(slp):
    raw = slp.message_sizes() + slp.game_start() + slp.frames(first=-123, last=-123)
    slp_file = open_slp_file(slp.replay(raw))

    first, position = collect(slp_file, stop_after=Command.GAME_START)
    assert first[-1][0] == Command.GAME_START
    assert position == 15 + len(slp.message_sizes() + slp.game_start())

    rest, end = collect(slp_file, start_pos=position)
    assert rest[0][0] == Command.PRE_FRAME_UPDATE
    assert all(command != Command.GAME_START for command, _ in rest)
    assert end == 15 + len(raw)


def test_iterate_events_stops_at_truncated_event(slp):
    complete = slp.message_sizes() + slp.game_start()
    partial = slp.pre_frame(-123, 0)[:10]
    data = slp.replay(complete + partial, raw_length=0)

    events, position = collect(open_slp_file(data))
    assert [command for command, _ in events] == [Command.MESSAGE_SIZES, Command.GAME_START]
    assert position == 15 + len(complete)

    # The rest of the event arrives, reading resumes where it left off
    grown = slp.replay(complete + slp.pre_frame(-123, 0), raw_length=0)
    events, _ = collect(open_slp_file(grown), start_pos=position)
    assert len(events) == 1
    assert isinstance(events[0][1], PreFrameUpdate)


def test_iterate_events_stops_at_unknown_command(slp):
    raw = slp.message_sizes() + b"\x99" + slp.game_start()
    events, position = collect(open_slp_file(slp.replay(raw)))

    assert [command for command, _ in events] == [Command.MESSAGE_SIZES]
    assert position == 15 + len(slp.message_sizes())


def test_empty_message_sizes_stop_immediately(slp):
    raw = b"\x35\x05\x36\x01\xa4\x00" + slp.game_start()
    events, position = collect(open_slp_file(slp.replay(raw)))

    assert events == []
    assert position == 15


def test_metadata(slp):
    metadata = {"startAt": "2023-01-01T12:00:00Z", "lastFrame": 0, "playedOn": "dolphin"}
    data = slp.replay(slp.message_sizes() + slp.game_start(), metadata=metadata)

    with open_slp_file(data) as slp_file:
        assert get_metadata(slp_file) == metadata


def test_missing_metadata(slp):
    data = slp.replay(slp.message_sizes() + slp.game_start(), raw_length=0)
    assert get_metadata(open_slp_file(data)) is None


def test_corrupt_metadata(slp):
    data = slp.replay(slp.message_sizes()) + b"U\x08metadata" + b"\xff\xff\xff" + b"}"
    assert get_metadata(open_slp_file(data)) is None


def test_open_from_path(slp, tmp_path):
    path = tmp_path / "game.slp"
    path.write_bytes(slp.replay(slp.game()))

    with open_slp_file(path) as slp_file:
        assert slp_file.file_path == path
        events, _ = collect(slp_file)
    assert events[-1][0] == Command.GAME_END


def test_open_empty_file(tmp_path):
    path = tmp_path / "empty.slp"
    path.write_bytes(b"")

    with open_slp_file(path) as slp_file:
        assert len(slp_file) == 0
        assert collect(slp_file) == ([], 0)


def test_open_missing_file(tmp_path):
    with pytest.raises(ParseError) as exc_info:
        open_slp_file(tmp_path / "missing.slp")
    assert "missing.slp" in str(exc_info.value)


def test_parse_dispatches_events(slp):
    seen = {event: [] for event in ParseEvent}
    handlers = {event: seen[event].append for event in ParseEvent}

    parser = parse(slp.replay(slp.game(last=-100)), handlers)

    assert len(seen[ParseEvent.SETTINGS]) == 1
    assert len(seen[ParseEvent.END]) == 1
    finalized = [frame.frame for frame in seen[ParseEvent.FINALIZED_FRAME]]
    assert finalized == list(range(-123, -99))
    assert parser.get_latest_frame_number() == -100
