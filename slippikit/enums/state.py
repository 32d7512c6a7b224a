from ..util import IntEnum

# Use reference: https://docs.google.com/spreadsheets/d/1JX2w-r2fuvWuNgGb6D3Cs4wHQKLFegZe2jhbBuIhCG8/edit#gid=13


class ActionRange(IntEnum):
    """Action state ID ranges, inclusive on both ends. Used to simplify checks for the stat computers."""

    DYING_START = 0
    DYING_END = 10
    GROUNDED_CONTROL_START = 14
    GROUNDED_CONTROL_END = 24
    CONTROLLED_JUMP_START = 24
    CONTROLLED_JUMP_END = 34
    SQUAT_START = 39
    SQUAT_END = 41
    # The start is exclusive for control checks: jab 1 itself does not count as being back in control
    GROUND_ATTACK_START = 44
    GROUND_ATTACK_END = 64
    DAMAGE_START = 75
    DAMAGE_END = 91
    GUARD_START = 178
    GUARD_END = 182
    DOWN_START = 183
    DOWN_END = 198
    TECH_START = 199
    TECH_END = 204
    CAPTURE_START = 223
    CAPTURE_END = 232


class ActionState(IntEnum):
    """Individual action state IDs referenced by the stat computers."""

    DEAD_DOWN = 0  # Bottom blast zone death
    DEAD_LEFT = 1  # Left blast zone death
    DEAD_RIGHT = 2  # Right blast zone death
    DEAD_UP = 3  # Up blast zone death, start of the "Top" deaths
    DEAD_UP_FALL_HIT_CAMERA_ICE = 10  # Last dying state

    WAIT = 14  # Default standing state
    TURN = 18
    DASH = 20
    KNEE_BEND = 24  # Jumpsquat
    JUMP_F = 25
    JUMP_B = 26
    FALL_F = 30
    FALL_B = 31
    LAND_FALL_SPECIAL = 43  # Landing from FALL_SPECIAL[_F/B], i.e. wavedash/waveland landing lag

    GUARD_ON = 178
    DOWN_BOUND_U = 183  # Missed tech, facing up
    DOWN_BOUND_D = 191  # Missed tech, facing down
    CATCH = 212  # Grab
    ESCAPE_F = 233  # Shield roll forward
    ESCAPE_B = 234  # Shield roll backward
    ESCAPE = 235  # Spot dodge
    ESCAPE_AIR = 236  # Airdodge
    PASS = 244  # Drop through platform
    CLIFF_CATCH = 252  # Ledge grab
