from .common import COMBO_STRING_RESET_FRAMES, is_downed, is_dying, is_teching
from .computer import PlayerPermutation
from .punish import PunishComputerBase, _PunishTracker
from .stat_types import ComboData, Combos


class ComboComputer(PunishComputerBase):
    """Tracks combos. A combo continues as long as the opponent is damaged, grabbed, teching, downed, or dying, and
    ends after the opponent spends more than 45 frames outside of those states."""

    reset_frames = COMBO_STRING_RESET_FRAMES

    def _new_record(self, permutation: PlayerPermutation, start_frame, start_percent, current_percent):
        return ComboData(
            player_index=permutation.player_index,
            opponent_index=permutation.opponent_index,
            start_frame=start_frame,
            start_percent=start_percent,
            current_percent=current_percent,
        )

    def _update_reset_counter(self, tracker: _PunishTracker, opponent_state, opponent_stunned):
        if opponent_stunned or is_teching(opponent_state) or is_downed(opponent_state) or is_dying(opponent_state):
            tracker.reset_counter = 0
        else:
            tracker.reset_counter += 1

    def fetch(self) -> Combos:
        return Combos(self.records)
