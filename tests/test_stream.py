import pytest

from slippikit.event import Command, GameEnd, GameStart, PostFrameUpdate
from slippikit.stream import NETWORK_MESSAGE, SlpStream, StreamEvent, StreamMode


def commands(decoded):
    return [command for command, _ in decoded]


def test_whole_game_in_one_write(slp):
    stream = SlpStream()
    decoded = stream.write(slp.game(last=-122))

    assert commands(decoded)[:2] == [Command.MESSAGE_SIZES, Command.GAME_START]
    assert commands(decoded)[-1] == Command.GAME_END
    assert isinstance(decoded[1][1], GameStart)
    assert decoded[0][1][Command.GAME_START] == 0x1A4


def test_byte_at_a_time_matches_single_write(slp):
    data = slp.game(last=-121)
    expected = commands(SlpStream().write(data))

    stream = SlpStream()
    decoded = []
    for i in range(len(data)):
        decoded.extend(stream.write(data[i : i + 1]))

    assert commands(decoded) == expected


def test_partial_event_is_carried_over(slp):
    stream = SlpStream()
    stream.write(slp.message_sizes() + slp.game_start())

    post = slp.post_frame(-123, 0, percent=5.0)
    assert stream.write(post[:20]) == []

    decoded = stream.write(post[20:])
    assert commands(decoded) == [Command.POST_FRAME_UPDATE]
    assert isinstance(decoded[0][1], PostFrameUpdate)
    assert decoded[0][1].percent == 5.0


def test_keep_alive_is_skipped(slp):
    stream = SlpStream()
    data = NETWORK_MESSAGE + slp.message_sizes() + NETWORK_MESSAGE + slp.game_start() + NETWORK_MESSAGE
    decoded = stream.write(data)

    assert commands(decoded) == [Command.MESSAGE_SIZES, Command.GAME_START]


def test_raw_and_command_handlers(slp):
    raw = []
    decoded = []
    stream = SlpStream(
        handlers={
            StreamEvent.RAW: lambda command, payload: raw.append((command, payload)),
            StreamEvent.COMMAND: lambda command, payload: decoded.append(command),
        }
    )
    data = slp.game(last=-123)
    stream.write(data)

    assert b"".join(payload for _, payload in raw) == data
    assert decoded == [command for command, _ in raw]


def test_manual_mode_stops_after_game_end(slp):
    stream = SlpStream(mode=StreamMode.MANUAL)
    first = stream.write(slp.game(last=-123))
    assert first[-1][0] == Command.GAME_END
    assert stream.game_ended

    assert stream.write(slp.game(last=-123)) == []

    stream.restart()
    assert not stream.game_ended
    assert stream.message_sizes is None
    second = stream.write(slp.game(last=-123))
    assert commands(second) == commands(first)


def test_auto_mode_relearns_sizes_for_next_game(slp):
    stream = SlpStream(mode=StreamMode.AUTO)
    first = stream.write(slp.game(last=-123))
    assert stream.message_sizes is None

    second = stream.write(slp.game(last=-123))
    assert commands(second) == commands(first)
    assert isinstance(second[-1][1], GameEnd)


def test_decode_errors_propagate_by_default(slp):
    def explode(command, payload):
        raise RuntimeError("handler failed")

    stream = SlpStream(handlers={StreamEvent.COMMAND: explode})
    with pytest.raises(RuntimeError):
        stream.write(slp.message_sizes())


def test_suppressed_errors_skip_one_byte(slp, caplog):
    failures = []

    def flaky(command, payload):
        if command == Command.GAME_START:
            failures.append(command)
            raise RuntimeError("handler failed")

    stream = SlpStream(suppress_errors=True, handlers={StreamEvent.COMMAND: flaky})
    stream.write(slp.message_sizes() + slp.game_start())

    assert failures
    assert "failed to decode" in caplog.text


def test_commands_before_message_sizes_advance_one_byte(slp):
    stream = SlpStream()
    decoded = stream.write(b"\x37\x00\x00" + slp.message_sizes() + slp.game_start())

    assert commands(decoded) == [Command.MESSAGE_SIZES, Command.GAME_START]
