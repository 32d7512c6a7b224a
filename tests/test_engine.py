import pytest

from slippikit.event import Command, Frame, Frames, PlayerFrame, parse_message
from slippikit.stats.computer import (
    ComputerBase,
    PlayerCountError,
    get_singles_permutations,
    require_singles_permutations,
)
from slippikit.stats.engine import Stats

from conftest import make_post


class FrameRecorder(ComputerBase):
    def _new_state(self, permutation):
        return []

    def _process(self, state, permutation, frame, all_frames):
        state.append(frame.frame)

    def fetch(self):
        return self.state


def make_frame(num, players=(0, 1)):
    frame = Frame(num)
    for index in players:
        frame.players[index] = PlayerFrame(post=make_post(num, index))
    return frame


def engine(permutations, process_on_the_fly=False):
    recorder = FrameRecorder()
    stats = Stats(process_on_the_fly=process_on_the_fly)
    stats.register(recorder)
    stats.set_player_permutations(permutations)
    return stats, recorder


def test_frames_are_processed_in_order(permutations):
    stats, recorder = engine(permutations)
    for num in (Frames.FIRST + 2, Frames.FIRST, Frames.FIRST + 1):
        stats.add_frame(make_frame(num))
    stats.process()

    expected = [Frames.FIRST, Frames.FIRST + 1, Frames.FIRST + 2]
    assert recorder.fetch() == [expected, expected]


def test_processing_pauses_at_gaps(permutations):
    stats, recorder = engine(permutations, process_on_the_fly=True)
    stats.add_frame(make_frame(Frames.FIRST))
    stats.add_frame(make_frame(Frames.FIRST + 2))
    assert recorder.fetch()[0] == [Frames.FIRST]

    stats.add_frame(make_frame(Frames.FIRST + 1))
    assert recorder.fetch()[0] == [Frames.FIRST, Frames.FIRST + 1, Frames.FIRST + 2]
    assert stats.last_processed_frame == Frames.FIRST + 2


def test_processing_pauses_at_incomplete_frames(permutations):
    stats, recorder = engine(permutations, process_on_the_fly=True)
    stats.add_frame(make_frame(Frames.FIRST, players=(0,)))
    assert recorder.fetch()[0] == []

    stats.add_frame(make_frame(Frames.FIRST))
    assert recorder.fetch()[0] == [Frames.FIRST]


def test_nothing_is_processed_without_permutations():
    recorder = FrameRecorder()
    stats = Stats(process_on_the_fly=True)
    stats.register(recorder)
    stats.add_frame(make_frame(Frames.FIRST))

    assert stats.last_processed_frame is None


def test_singles_permutations(slp):
    singles = parse_message(Command.GAME_START, slp.game_start(players=((0, 2), (3, 9))))
    singles.players = [player for player in singles.players if not player.is_empty]

    first, second = get_singles_permutations(singles)
    assert (first.id, first.player_index, first.opponent_index) == (0, 0, 3)
    assert (second.id, second.player_index, second.opponent_index) == (1, 3, 0)

    doubles = parse_message(Command.GAME_START, slp.game_start(players=((0, 2), (1, 9), (2, 2))))
    doubles.players = [player for player in doubles.players if not player.is_empty]
    assert get_singles_permutations(doubles) == []
    with pytest.raises(PlayerCountError, match="Got 3 players, expected 2"):
        require_singles_permutations(doubles)
