from slippikit.controller import Buttons, new_presses, trigger_pressed
from slippikit.event import Frames
from slippikit.stats.common import JoystickRegion, get_joystick_region
from slippikit.stats.inputs import InputComputer

# Decoded payloads hold plain ints
A = int(Buttons.Physical.A)
B = int(Buttons.Physical.B)
START = int(Buttons.Physical.START)


def neutral(**fields):
    pre = {
        "physical_buttons": 0,
        "joystick_x": 0.0,
        "joystick_y": 0.0,
        "cstick_x": 0.0,
        "cstick_y": 0.0,
        "physical_l_trigger": 0.0,
        "physical_r_trigger": 0.0,
    }
    pre.update(fields)
    return pre


def test_input_counting(feeder):
    computer = InputComputer()
    frames = feeder(computer)
    frames.num = Frames.FIRST_PLAYABLE - 1

    # Before players have control
    frames.push(pre0=neutral(physical_buttons=A))
    assert computer.fetch()[0].input_count == 0

    # B pressed (A held), stick to the right
    frames.push(pre0=neutral(physical_buttons=A | B, joystick_x=1.0))
    assert computer.fetch()[0].input_count == 2

    # Stick up-right, c-stick down, L pressed
    frames.push(
        pre0=neutral(
            physical_buttons=A | B,
            joystick_x=1.0,
            joystick_y=1.0,
            cstick_y=-1.0,
            physical_l_trigger=0.5,
        )
    )
    assert computer.fetch()[0].input_count == 5

    # Start isn't counted, returning to the dead zone isn't counted, R pressed
    frames.push(
        pre0=neutral(physical_buttons=START, cstick_y=-1.0, physical_l_trigger=0.5, physical_r_trigger=1.0)
    )
    assert computer.fetch()[0].input_count == 6

    frames.push(pre0=neutral(physical_buttons=A))
    assert computer.fetch()[0].input_count == 7

    assert computer.fetch()[1].input_count == 0


def test_joystick_regions():
    assert get_joystick_region(0.0, 0.0) is JoystickRegion.DEAD_ZONE
    assert get_joystick_region(0.3, 0.3) is JoystickRegion.UP_RIGHT
    assert get_joystick_region(0.2875, -0.2875) is JoystickRegion.DOWN_RIGHT
    assert get_joystick_region(-1.0, -1.0) is JoystickRegion.DOWN_LEFT
    assert get_joystick_region(-0.5, 0.5) is JoystickRegion.UP_LEFT
    assert get_joystick_region(0.0, 0.3) is JoystickRegion.UP
    assert get_joystick_region(0.3, 0.0) is JoystickRegion.RIGHT
    assert get_joystick_region(0.28, -1.0) is JoystickRegion.DOWN
    assert get_joystick_region(-1.0, 0.28) is JoystickRegion.LEFT
    assert get_joystick_region(None, 1.0) is JoystickRegion.DEAD_ZONE


def test_joystick_regions_cover_the_plane():
    steps = [i / 20 for i in range(-20, 21)]
    for x in steps:
        for y in steps:
            assert isinstance(get_joystick_region(x, y), JoystickRegion)


def test_new_presses():
    assert new_presses(0, A) == A
    assert new_presses(A, A) == 0
    assert new_presses(None, A | START) == A
    assert new_presses(A, None) == 0


def test_trigger_pressed():
    assert trigger_pressed(0.0, 0.3)
    assert not trigger_pressed(0.3, 1.0)
    assert not trigger_pressed(0.0, 0.29)
    assert not trigger_pressed(None, 1.0)
