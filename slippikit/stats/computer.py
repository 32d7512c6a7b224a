from abc import ABC, abstractmethod
from dataclasses import dataclass

from ..event import Frame, GameStart


class PlayerCountError(Exception):
    """The game's player count is not 2"""

    pass


@dataclass(frozen=True)
class PlayerPermutation:
    """An ordered (player, opponent) pair. Stats are computed once in each direction.

    `id` is the index of this permutation's state in every computer."""

    id: int
    player_index: int
    opponent_index: int


def get_singles_permutations(settings: GameStart | None) -> list[PlayerPermutation]:
    """Returns both permutations of a 2 player game, or an empty list for any other player count."""
    if settings is None or len(settings.players) != 2:
        return []

    first, second = settings.players
    return [
        PlayerPermutation(0, first.player_index, second.player_index),
        PlayerPermutation(1, second.player_index, first.player_index),
    ]


def require_singles_permutations(settings: GameStart | None) -> list[PlayerPermutation]:
    """Same as get_singles_permutations, but raises PlayerCountError instead of returning an empty list."""
    permutations = get_singles_permutations(settings)
    if not permutations:
        player_count = len(settings.players) if settings is not None else 0
        raise PlayerCountError(f"Got {player_count} players, expected 2")
    return permutations


class ComputerBase(ABC):
    """Base for stat computers. A computer is a small state machine run once per player permutation per frame.

    Attributes:
        player_permutations : list[PlayerPermutation]
        state : list
            Per-permutation state, indexed by PlayerPermutation.id

    Methods:
        set_player_permutations -> None
            Resets all state for a new set of permutations
        process_frame -> None
            Advances every permutation's state by one frame
        fetch
            Returns the computer's results so far
    """

    player_permutations: list[PlayerPermutation]
    state: list

    def __init__(self):
        self.player_permutations = []
        self.state = []

    def set_player_permutations(self, permutations: list[PlayerPermutation]):
        self.player_permutations = permutations
        self.state = [self._new_state(permutation) for permutation in permutations]

    def process_frame(self, frame: Frame, all_frames: dict[int, Frame]):
        for permutation in self.player_permutations:
            self._process(self.state[permutation.id], permutation, frame, all_frames)

    @abstractmethod
    def _new_state(self, permutation: PlayerPermutation):
        pass

    @abstractmethod
    def _process(self, state, permutation: PlayerPermutation, frame: Frame, all_frames: dict[int, Frame]):
        pass

    @abstractmethod
    def fetch(self):
        pass
