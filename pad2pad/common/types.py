"""Common types and data structures for pad2pad"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Button:
    """Button bit assignments (XInput layout)"""
    DPAD_UP = 0x0001
    DPAD_DOWN = 0x0002
    DPAD_LEFT = 0x0004
    DPAD_RIGHT = 0x0008
    START = 0x0010
    BACK = 0x0020
    LEFT_THUMB = 0x0040
    RIGHT_THUMB = 0x0080
    LEFT_SHOULDER = 0x0100
    RIGHT_SHOULDER = 0x0200
    GUIDE = 0x0400
    A = 0x1000
    B = 0x2000
    X = 0x4000
    Y = 0x8000


class Flag:
    """Packet flag bits (compact layout only)"""
    HAS_GYRO = 0x01
    HAS_RUMBLE = 0x02
    HEARTBEAT = 0x04
    KEYBOARD = 0x08
    MOUSE = 0x10


class SendPolicyName(Enum):
    """Sender transmission strategies"""
    ALWAYS = "always"
    ON_CHANGE = "on_change"


# Stick values inside this band count as resting, on the 8-bit axis scale.
# Wider layouts scale it with WireLayout.noise_threshold.
STICK_NOISE_THRESHOLD: int = 10


@dataclass(frozen=True)
class StateRecord:
    """One instant of gamepad state.

    Axes are ordered (left X, left Y, right X, right Y) and use the value
    range of the active wire layout. Y axes are up-positive.
    """
    buttons: int = 0
    triggers: tuple[int, int] = (0, 0)
    axes: tuple[int, int, int, int] = (0, 0, 0, 0)
    slot_hint: int = 0
    sequence: int = 0
    flags: int = 0

    @classmethod
    def neutral(cls) -> "StateRecord":
        """Return the all-zero record ("no input")"""
        return cls()

    def button_isPressed(self, button: int) -> bool:
        """Check if every bit of `button` is set"""
        return (self.buttons & button) == button and button != 0

    def input_isActive(self, threshold: int = STICK_NOISE_THRESHOLD) -> bool:
        """
        Check whether the record carries any input beyond stick noise

        Args:
            threshold: Absolute axis value at or below which a stick is resting

        Returns:
            True if a button, trigger, or stick is engaged
        """
        if self.buttons != 0 or any(self.triggers):
            return True
        return any(abs(axis) > threshold for axis in self.axes)

    def payload_equals(self, other: "StateRecord") -> bool:
        """Compare input content, ignoring sequence, slot hint and flags"""
        return (
            self.buttons == other.buttons
            and self.triggers == other.triggers
            and self.axes == other.axes
        )

    def __str__(self) -> str:
        lx, ly, rx, ry = self.axes
        lt, rt = self.triggers
        return (
            f"[Seq: {self.sequence}] Buttons: 0x{self.buttons:04X}, "
            f"LT: {lt}, RT: {rt}, LS: ({lx},{ly}), RS: ({rx},{ry})"
        )
