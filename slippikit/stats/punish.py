from abc import abstractmethod

from ..event import Frame
from .common import (
    calc_damage_taken,
    did_lose_stock,
    get_percent,
    get_prev_post,
    is_damaged,
    is_grabbed,
)
from .computer import ComputerBase, PlayerPermutation
from .stat_types import ComboData, MoveLanded


class _PunishTracker:
    __slots__ = ("record", "move", "reset_counter", "last_hit_animation")

    def __init__(self):
        self.record = None
        self.move = None
        self.reset_counter = 0
        self.last_hit_animation = None


class PunishComputerBase(ComputerBase):
    """Shared state machine for combos and conversions.

    A record opens when the opponent is hit or grabbed and stays open until the opponent loses a stock or the reset
    counter runs past `reset_frames`. Subclasses decide what advances the reset counter.

    Attributes:
        records : list
            Every record opened so far, in the order they were opened
        reset_frames : int
    """

    records: list
    reset_frames: int

    def __init__(self):
        super().__init__()
        self.records = []

    def set_player_permutations(self, permutations: list[PlayerPermutation]):
        super().set_player_permutations(permutations)
        self.records = []

    def _new_state(self, permutation: PlayerPermutation):
        return _PunishTracker()

    @abstractmethod
    def _new_record(
        self, permutation: PlayerPermutation, start_frame: int, start_percent: float, current_percent: float
    ) -> ComboData:
        pass

    @abstractmethod
    def _update_reset_counter(self, tracker: _PunishTracker, opponent_state: int | None, opponent_stunned: bool):
        pass

    def _process(self, tracker: _PunishTracker, permutation: PlayerPermutation, frame: Frame, all_frames):
        player = frame.get_post(permutation.player_index)
        opponent = frame.get_post(permutation.opponent_index)
        if player is None or opponent is None:
            return

        frame_number = frame.frame
        prev_player = get_prev_post(all_frames, frame_number, permutation.player_index)
        prev_opponent = get_prev_post(all_frames, frame_number, permutation.opponent_index)

        opponent_state = opponent.action_state_id
        opponent_stunned = is_damaged(opponent_state) or is_grabbed(opponent_state)
        damage_taken = calc_damage_taken(opponent, prev_opponent)

        # Repeating the same move quickly (e.g. jab) keeps the action state but restarts its frame counter. Old
        # replays have no counter, so only the action state change applies to them.
        prev_counter = prev_player.action_state_counter if prev_player is not None else None
        counter_reset = (
            player.action_state_counter is not None
            and prev_counter is not None
            and player.action_state_counter < prev_counter
        )
        if player.action_state_id != tracker.last_hit_animation or counter_reset:
            tracker.last_hit_animation = None

        if opponent_stunned:
            if tracker.record is None:
                tracker.record = self._new_record(
                    permutation, frame_number, get_percent(prev_opponent), get_percent(opponent)
                )
                self.records.append(tracker.record)

            if damage_taken:
                # A cleared last hit animation means this is a new move rather than another hit of the same one
                if tracker.last_hit_animation is None:
                    tracker.move = MoveLanded(frame_number, player.last_attack_landed)
                    tracker.record.moves.append(tracker.move)

                if tracker.move is not None:
                    tracker.move.hit_count += 1
                    tracker.move.damage += damage_taken

                # The previous frame's animation is the one that connected
                tracker.last_hit_animation = prev_player.action_state_id if prev_player is not None else None

        if tracker.record is None:
            return

        opponent_lost_stock = did_lose_stock(opponent, prev_opponent)
        if not opponent_lost_stock:
            tracker.record.current_percent = get_percent(opponent)

        self._update_reset_counter(tracker, opponent_state, opponent_stunned)

        should_terminate = False

        if opponent_lost_stock:
            tracker.record.did_kill = True
            should_terminate = True

        if tracker.reset_counter > self.reset_frames:
            should_terminate = True

        if should_terminate:
            tracker.record.end_frame = frame_number
            tracker.record.end_percent = get_percent(prev_opponent)
            tracker.record = None
            tracker.move = None
