from ..controller import new_presses, trigger_pressed
from ..event import Frame, Frames
from .common import JoystickRegion, count_set_bits, get_joystick_region, get_prev_pre
from .computer import ComputerBase, PlayerPermutation
from .stat_types import InputCounts


class InputComputer(ComputerBase):
    """Counts discrete inputs (for APM). An input is:

    * a digital button going from released to pressed
    * either stick moving into a new region, other than back to the dead zone
    * either analog trigger being pressed past 30%

    Nothing before players gain control is counted."""

    def _new_state(self, permutation: PlayerPermutation):
        return InputCounts(permutation.player_index, permutation.opponent_index)

    def _process(self, counts: InputCounts, permutation: PlayerPermutation, frame: Frame, all_frames):
        if frame.frame < Frames.FIRST_PLAYABLE:
            return

        player = frame.get_pre(permutation.player_index)
        if player is None:
            return
        prev_player = get_prev_pre(all_frames, frame.frame, permutation.player_index)

        prev_buttons = prev_player.physical_buttons if prev_player is not None else None
        counts.input_count += count_set_bits(new_presses(prev_buttons, player.physical_buttons))

        sticks = (
            ("joystick_x", "joystick_y"),
            ("cstick_x", "cstick_y"),
        )
        for x_attr, y_attr in sticks:
            region = get_joystick_region(getattr(player, x_attr), getattr(player, y_attr))
            if prev_player is not None:
                prev_region = get_joystick_region(getattr(prev_player, x_attr), getattr(prev_player, y_attr))
            else:
                prev_region = JoystickRegion.DEAD_ZONE

            if region != prev_region and region != JoystickRegion.DEAD_ZONE:
                counts.input_count += 1

        if prev_player is not None:
            if trigger_pressed(prev_player.physical_l_trigger, player.physical_l_trigger):
                counts.input_count += 1
            if trigger_pressed(prev_player.physical_r_trigger, player.physical_r_trigger):
                counts.input_count += 1

    def fetch(self) -> list[InputCounts]:
        return list(self.state)
