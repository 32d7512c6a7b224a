from ..enums.state import ActionRange, ActionState
from ..event import Frame, PostFrameUpdate, PreFrameUpdate
from ..util import IntEnum

# ---------------------------------------------------------------------------- #
#                                    Timers                                    #
# ---------------------------------------------------------------------------- #

# Frames an opponent can spend out of stun before a punish or combo is considered over
PUNISH_RESET_FRAMES = 45
COMBO_STRING_RESET_FRAMES = 45

# 60 frames per second
FRAMES_PER_MINUTE = 3600


# ---------------------------------------------------------------------------- #
#                                 State Helpers                                #
# ---------------------------------------------------------------------------- #


def just_entered_state(action_state: int, curr_state: int | None, prev_state: int | None) -> bool:
    """Takes a desired action state, a current state, and a previous state. Returns True if the current state is the
    desired state and the previous state was not"""
    return curr_state == action_state and prev_state != action_state


def is_damaged(action_state: int | None) -> bool:
    """Takes action state, returns whether or not the player is in a damaged state."""
    return action_state is not None and ActionRange.DAMAGE_START <= action_state <= ActionRange.DAMAGE_END


def is_grabbed(action_state: int | None) -> bool:
    """Takes action state, returns whether or not player is being held by a grab"""
    return action_state is not None and ActionRange.CAPTURE_START <= action_state <= ActionRange.CAPTURE_END


def is_teching(action_state: int | None) -> bool:
    return action_state is not None and ActionRange.TECH_START <= action_state <= ActionRange.TECH_END


def is_downed(action_state: int | None) -> bool:
    """Takes action state, returns whether or not player is downed (i.e. missed tech)"""
    return action_state is not None and ActionRange.DOWN_START <= action_state <= ActionRange.DOWN_END


def is_dying(action_state: int | None) -> bool:
    """Takes action state, returns whether or not player is in the dying animation from any blast zone"""
    return action_state is not None and ActionRange.DYING_START <= action_state <= ActionRange.DYING_END


def is_in_control(action_state: int | None) -> bool:
    """Takes action state, returns whether or not the player is actionable on the ground.

    Standing/walking/dashing, crouching, any grounded attack other than jab 1, or a grab."""
    if action_state is None:
        return False
    return (
        ActionRange.GROUNDED_CONTROL_START <= action_state <= ActionRange.GROUNDED_CONTROL_END
        or ActionRange.SQUAT_START <= action_state <= ActionRange.SQUAT_END
        or ActionRange.GROUND_ATTACK_START < action_state <= ActionRange.GROUND_ATTACK_END
        or action_state == ActionState.CATCH
    )


def is_wavedash_initiation(action_state: int | None) -> bool:
    """Airdodge, or anything in the jumpsquat/jump/fall range that can lead into a special landing"""
    if action_state is None:
        return False
    return (
        action_state == ActionState.ESCAPE_AIR
        or ActionRange.CONTROLLED_JUMP_START <= action_state <= ActionRange.CONTROLLED_JUMP_END
    )


def did_lose_stock(curr_frame: PostFrameUpdate | None, prev_frame: PostFrameUpdate | None) -> bool:
    """Takes current and previous frame, returns True if the stock count went down between the two"""
    if curr_frame is None or prev_frame is None:
        return False
    if curr_frame.stocks_remaining is None or prev_frame.stocks_remaining is None:
        return False
    return prev_frame.stocks_remaining - curr_frame.stocks_remaining > 0


def calc_damage_taken(curr_frame: PostFrameUpdate, prev_frame: PostFrameUpdate | None) -> float:
    """Percent gained between the previous frame and this one. A missing previous frame counts as 0%."""
    return get_percent(curr_frame) - get_percent(prev_frame)


def get_percent(post: PostFrameUpdate | None) -> float:
    if post is None or post.percent is None:
        return 0.0
    return post.percent


def get_prev_post(all_frames: dict[int, Frame], frame_number: int, player_index: int) -> PostFrameUpdate | None:
    prev = all_frames.get(frame_number - 1)
    return prev.get_post(player_index) if prev is not None else None


def get_prev_pre(all_frames: dict[int, Frame], frame_number: int, player_index: int) -> PreFrameUpdate | None:
    prev = all_frames.get(frame_number - 1)
    return prev.get_pre(player_index) if prev is not None else None


def get_death_direction(action_state: int) -> str | None:
    match action_state:
        case 0:
            return "Bottom"
        case 1:
            return "Left"
        case 2:
            return "Right"
        case 3 | 4 | 5 | 6 | 7 | 8 | 9 | 10:
            return "Top"
        case _:
            return None


# ---------------------------------------------------------------------------- #
#                                    Inputs                                    #
# ---------------------------------------------------------------------------- #


class JoystickRegion(IntEnum):
    """Generalized control stick positions. Diagonals are numbered before the cardinal directions

    * DEAD_ZONE
    * UP_RIGHT
    * DOWN_RIGHT
    * DOWN_LEFT
    * UP_LEFT
    * UP
    * RIGHT
    * DOWN
    * LEFT
    """

    DEAD_ZONE = 0
    UP_RIGHT = 1
    """stick_x >= 0.2875 and stick_y >= 0.2875"""
    DOWN_RIGHT = 2
    """stick_x >= 0.2875 and stick_y <= -0.2875"""
    DOWN_LEFT = 3
    """stick_x <= -0.2875 and stick_y <= -0.2875"""
    UP_LEFT = 4
    """stick_x <= -0.2875 and stick_y >= 0.2875"""
    UP = 5
    """(-0.2875 < stick_x < 0.2875) and stick_y >= 0.2875"""
    RIGHT = 6
    """stick_x >= 0.2875 and (-0.2875 < stick_y < 0.2875)"""
    DOWN = 7
    """(-0.2875 < stick_x < 0.2875) and stick_y <= -0.2875"""
    LEFT = 8
    """stick_x <= -0.2875 and (-0.2875 < stick_y < 0.2875)"""


STICK_REGION_THRESHOLD = 0.2875


def get_joystick_region(stick_x: float | None, stick_y: float | None) -> JoystickRegion:
    """Classifies a stick position. Missing coordinates are treated as resting in the dead zone."""
    region = JoystickRegion.DEAD_ZONE

    if stick_x is None or stick_y is None:
        return region

    if stick_x >= STICK_REGION_THRESHOLD and stick_y >= STICK_REGION_THRESHOLD:
        region = JoystickRegion.UP_RIGHT

    elif stick_x >= STICK_REGION_THRESHOLD and stick_y <= -STICK_REGION_THRESHOLD:
        region = JoystickRegion.DOWN_RIGHT

    elif stick_x <= -STICK_REGION_THRESHOLD and stick_y <= -STICK_REGION_THRESHOLD:
        region = JoystickRegion.DOWN_LEFT

    elif stick_x <= -STICK_REGION_THRESHOLD and stick_y >= STICK_REGION_THRESHOLD:
        region = JoystickRegion.UP_LEFT

    elif stick_y >= STICK_REGION_THRESHOLD:
        region = JoystickRegion.UP

    elif stick_x >= STICK_REGION_THRESHOLD:
        region = JoystickRegion.RIGHT

    elif stick_y <= -STICK_REGION_THRESHOLD:
        region = JoystickRegion.DOWN

    elif stick_x <= -STICK_REGION_THRESHOLD:
        region = JoystickRegion.LEFT

    return region


def count_set_bits(bits: int) -> int:
    """Hamming weight of a non-negative integer"""
    count = 0
    while bits:
        bits &= bits - 1
        count += 1
    return count
