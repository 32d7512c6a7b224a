from ..event import Frame
from .common import did_lose_stock, get_percent, get_prev_post, is_dying
from .computer import ComputerBase, PlayerPermutation
from .stat_types import StockData, Stocks


class _StockTracker:
    __slots__ = ("stock",)

    def __init__(self):
        self.stock = None


class StockComputer(ComputerBase):
    """Tracks each player's stocks. A stock starts on the first frame the player is out of the dying animation and
    ends on the frame their stock count goes down."""

    stocks: list[StockData]

    def __init__(self):
        super().__init__()
        self.stocks = []

    def set_player_permutations(self, permutations: list[PlayerPermutation]):
        super().set_player_permutations(permutations)
        self.stocks = []

    def _new_state(self, permutation: PlayerPermutation):
        return _StockTracker()

    def _process(self, tracker: _StockTracker, permutation: PlayerPermutation, frame: Frame, all_frames):
        player = frame.get_post(permutation.player_index)
        if player is None:
            return
        prev_player = get_prev_post(all_frames, frame.frame, permutation.player_index)

        if tracker.stock is None:
            # Wait until the player has respawned
            if is_dying(player.action_state_id):
                return

            tracker.stock = StockData(
                player_index=permutation.player_index,
                opponent_index=permutation.opponent_index,
                start_frame=frame.frame,
                count=player.stocks_remaining,
            )
            self.stocks.append(tracker.stock)

        elif did_lose_stock(player, prev_player):
            tracker.stock.end_frame = frame.frame
            tracker.stock.end_percent = get_percent(prev_player)
            tracker.stock.death_animation = player.action_state_id
            tracker.stock = None

        else:
            tracker.stock.current_percent = get_percent(player)

    def fetch(self) -> Stocks:
        return Stocks(self.stocks)
