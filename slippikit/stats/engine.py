from ..event import Frame, Frames
from ..log import log
from .computer import ComputerBase, PlayerPermutation


class Stats:
    """Buffers finalized frames and runs every registered computer over them in frame order.

    Processing starts at the first frame of the game and stops at the first missing or incomplete frame, picking up
    from the same spot once more frames arrive.

    Attributes:
        process_on_the_fly : bool
            Run the computers every time a frame is added, instead of only when `process()` is called
        frames : dict[int, Frame]
        last_processed_frame : int | None
        player_permutations : list[PlayerPermutation]
        computers : list[ComputerBase]
    """

    process_on_the_fly: bool
    frames: dict[int, Frame]
    last_processed_frame: int | None
    player_permutations: list[PlayerPermutation]
    computers: list[ComputerBase]

    def __init__(self, process_on_the_fly: bool = False):
        self.process_on_the_fly = process_on_the_fly
        self.frames = {}
        self.last_processed_frame = None
        self.player_permutations = []
        self.computers = []

    def register(self, *computers: ComputerBase):
        self.computers.extend(computers)

    def set_player_permutations(self, permutations: list[PlayerPermutation]):
        self.player_permutations = permutations
        for computer in self.computers:
            computer.set_player_permutations(permutations)

    def _is_completed_frame(self, frame: Frame) -> bool:
        # Follower frames aren't checked, no computer uses them
        permutation = self.player_permutations[0]
        return (
            frame.get_post(permutation.player_index) is not None
            and frame.get_post(permutation.opponent_index) is not None
        )

    def process(self):
        if not self.player_permutations:
            return

        i = self.last_processed_frame + 1 if self.last_processed_frame is not None else Frames.FIRST
        while i in self.frames:
            frame = self.frames[i]
            if not self._is_completed_frame(frame):
                log.debug(f"stats processing paused at incomplete frame {i}")
                return

            for computer in self.computers:
                computer.process_frame(frame, self.frames)
            self.last_processed_frame = i
            i += 1

    def add_frame(self, frame: Frame):
        self.frames[frame.frame] = frame
        if self.process_on_the_fly:
            self.process()
