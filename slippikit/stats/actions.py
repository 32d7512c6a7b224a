from collections import deque

from ..enums.state import ActionState
from ..event import Frame
from .common import is_wavedash_initiation, just_entered_state
from .computer import ComputerBase, PlayerPermutation
from .stat_types import ActionCounts

DASH_DANCE_PATTERN = [ActionState.DASH, ActionState.TURN, ActionState.DASH]

# Long enough to cover jumpsquat + airdodge + landing for any character
WAVEDASH_WINDOW = 8


class _ActionTracker:
    __slots__ = ("counts", "history")

    def __init__(self, counts: ActionCounts):
        self.counts = counts
        self.history = deque(maxlen=WAVEDASH_WINDOW)


class ActionsComputer(ComputerBase):
    """Counts movement and defensive options: wavedashes, wavelands, airdodges, dash dances, spot dodges, ledge grabs,
    and rolls."""

    def _new_state(self, permutation: PlayerPermutation):
        return _ActionTracker(ActionCounts(permutation.player_index, permutation.opponent_index))

    def _process(self, state: _ActionTracker, permutation: PlayerPermutation, frame: Frame, all_frames):
        post = frame.get_post(permutation.player_index)
        if post is None:
            return

        counts = state.counts
        state.history.append(post.action_state_id)

        history = list(state.history)
        curr_state = history[-1]
        prev_state = history[-2] if len(history) >= 2 else None

        if history[-3:] == DASH_DANCE_PATTERN:
            counts.dash_dance_count += 1

        if (curr_state == ActionState.ESCAPE_F or curr_state == ActionState.ESCAPE_B) and not (
            prev_state == ActionState.ESCAPE_F or prev_state == ActionState.ESCAPE_B
        ):
            counts.roll_count += 1

        if just_entered_state(ActionState.ESCAPE, curr_state, prev_state):
            counts.spot_dodge_count += 1

        if just_entered_state(ActionState.ESCAPE_AIR, curr_state, prev_state):
            counts.air_dodge_count += 1

        if just_entered_state(ActionState.CLIFF_CATCH, curr_state, prev_state):
            counts.ledgegrab_count += 1

        self._handle_wavedash(counts, history)

    @staticmethod
    def _handle_wavedash(counts: ActionCounts, history: list[int]):
        if len(history) < 2:
            return
        if history[-1] != ActionState.LAND_FALL_SPECIAL or not is_wavedash_initiation(history[-2]):
            return

        recent = set(history[-WAVEDASH_WINDOW:])

        # Airdodge is a long animation. If it's the only other state in the window, this was a late airdodge into
        # the ground rather than a wavedash
        if len(recent) == 2 and ActionState.ESCAPE_AIR in recent:
            # the airdodge stays counted
            return

        # The airdodge that started the wavedash was already counted as an airdodge
        if ActionState.ESCAPE_AIR in recent:
            counts.air_dodge_count -= 1

        if ActionState.KNEE_BEND in recent:
            counts.wavedash_count += 1
        else:
            counts.waveland_count += 1

    def fetch(self) -> list[ActionCounts]:
        return [state.counts for state in self.state]
