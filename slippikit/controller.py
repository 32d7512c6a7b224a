from __future__ import annotations

from enum import IntFlag


# Analog trigger travel (0.0 - 1.0) past which a physical press is counted as an input
TRIGGER_PRESS_THRESHOLD = 0.3


class Buttons:
    """Button bitmasks as recorded in PRE_FRAME_UPDATE."""

    class Logical(IntFlag):
        """Processed button state. Includes bits for stick directions and analog trigger, set by the game itself."""

        TRIGGER_ANALOG = 2**31
        CSTICK_RIGHT = 2**23
        CSTICK_LEFT = 2**22
        CSTICK_DOWN = 2**21
        CSTICK_UP = 2**20
        JOYSTICK_RIGHT = 2**19
        JOYSTICK_LEFT = 2**18
        JOYSTICK_DOWN = 2**17
        JOYSTICK_UP = 2**16
        START = 2**12
        Y = 2**11
        X = 2**10
        B = 2**9
        A = 2**8
        L = 2**6
        R = 2**5
        Z = 2**4
        DPAD_UP = 2**3
        DPAD_DOWN = 2**2
        DPAD_RIGHT = 2**1
        DPAD_LEFT = 2**0
        NONE = 0

    class Physical(IntFlag):
        """Buttons the player is actually holding down. Only the low 12 bits are digital buttons."""

        START = 2**12
        Y = 2**11
        X = 2**10
        B = 2**9
        A = 2**8
        L = 2**6
        R = 2**5
        Z = 2**4
        DPAD_UP = 2**3
        DPAD_DOWN = 2**2
        DPAD_RIGHT = 2**1
        DPAD_LEFT = 2**0
        NONE = 0

        def pressed(self) -> list[Buttons.Physical]:
            """Returns a list of all buttons being pressed."""
            pressed = []
            for button in self.__class__:
                if button and self & button:
                    pressed.append(button)
            return pressed


# Start (bit 12) falls outside the mask
INPUT_BUTTON_MASK = 0xFFF


def new_presses(previous: int | None, current: int | None) -> int:
    """Bitmask of buttons that went from released to pressed between two frames.

    A missing previous frame is treated as nothing held."""
    return (~(previous or 0)) & (current or 0) & INPUT_BUTTON_MASK


def trigger_pressed(previous: float | None, current: float | None) -> bool:
    """True if an analog trigger crossed the press threshold this frame. Missing values never count as a press."""
    if previous is None or current is None:
        return False
    return previous < TRIGGER_PRESS_THRESHOLD and current >= TRIGGER_PRESS_THRESHOLD
