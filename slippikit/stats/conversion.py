from itertools import groupby

from .common import PUNISH_RESET_FRAMES, is_in_control
from .computer import PlayerPermutation
from .punish import PunishComputerBase, _PunishTracker
from .stat_types import ConversionData, Conversions, OpeningType


class ConversionComputer(PunishComputerBase):
    """Tracks conversions (punishes). The reset timer only starts once the opponent is back in a controllable state,
    so a conversion can outlast a combo that was dropped.

    Opening types are assigned when results are fetched, since deciding between a trade, a counter-attack and a
    neutral win needs both players' conversions.

    Attributes:
        last_end_frame_by_index : dict[int, int | None]
            End frame of each player's most recently classified conversion. Kept across fetches, so conversions that
            finish later are classified relative to the ones before them
    """

    reset_frames = PUNISH_RESET_FRAMES

    last_end_frame_by_index: dict[int, int | None]

    def __init__(self):
        super().__init__()
        self.last_end_frame_by_index = {}

    def set_player_permutations(self, permutations: list[PlayerPermutation]):
        super().set_player_permutations(permutations)
        self.last_end_frame_by_index = {}

    def _new_record(self, permutation: PlayerPermutation, start_frame, start_percent, current_percent):
        return ConversionData(
            player_index=permutation.player_index,
            opponent_index=permutation.opponent_index,
            start_frame=start_frame,
            start_percent=start_percent,
            current_percent=current_percent,
        )

    def _update_reset_counter(self, tracker: _PunishTracker, opponent_state, opponent_stunned):
        if opponent_stunned:
            tracker.reset_counter = 0

        # Start counting once the opponent is actionable again, then keep counting no matter what they do
        if (tracker.reset_counter == 0 and is_in_control(opponent_state)) or tracker.reset_counter > 0:
            tracker.reset_counter += 1

    def _populate_opening_types(self):
        unclassified = [c for c in self.records if c.opening_type is OpeningType.UNKNOWN]
        unclassified.sort(key=lambda c: c.start_frame)

        for _, group in groupby(unclassified, key=lambda c: c.start_frame):
            group = list(group)
            is_trade = len(group) >= 2

            for conversion in group:
                self.last_end_frame_by_index[conversion.player_index] = conversion.end_frame

                if is_trade:
                    conversion.opening_type = OpeningType.TRADE
                    continue

                opponent_end_frame = self.last_end_frame_by_index.get(conversion.opponent_index)
                if opponent_end_frame is not None and opponent_end_frame > conversion.start_frame:
                    conversion.opening_type = OpeningType.COUNTER_ATTACK
                else:
                    conversion.opening_type = OpeningType.NEUTRAL_WIN

    def fetch(self) -> Conversions:
        self._populate_opening_types()
        return Conversions(self.records)
