"""Linux gamepad backends using python-evdev (capture) and uinput (output)."""

from __future__ import annotations

import logging
import threading
from typing import Optional

from evdev import AbsInfo, InputDevice, UInput, ecodes

from pad2pad.common.errors import DeviceError
from pad2pad.common.types import Button, StateRecord
from pad2pad.protocol.codec import WireLayout

logger = logging.getLogger(__name__)

# Xbox 360 controller identity, so games pick a sensible default mapping
VIRTUAL_VENDOR_ID: int = 0x045E
VIRTUAL_PRODUCT_ID: int = 0x028E
VIRTUAL_VERSION: int = 0x0110

BUTTON_CODES: dict[int, int] = {
    Button.A: ecodes.BTN_A,
    Button.B: ecodes.BTN_B,
    Button.X: ecodes.BTN_X,
    Button.Y: ecodes.BTN_Y,
    Button.LEFT_SHOULDER: ecodes.BTN_TL,
    Button.RIGHT_SHOULDER: ecodes.BTN_TR,
    Button.BACK: ecodes.BTN_SELECT,
    Button.START: ecodes.BTN_START,
    Button.GUIDE: ecodes.BTN_MODE,
    Button.LEFT_THUMB: ecodes.BTN_THUMBL,
    Button.RIGHT_THUMB: ecodes.BTN_THUMBR,
}

DPAD_KEY_CODES: dict[int, int] = {
    Button.DPAD_UP: ecodes.BTN_DPAD_UP,
    Button.DPAD_DOWN: ecodes.BTN_DPAD_DOWN,
    Button.DPAD_LEFT: ecodes.BTN_DPAD_LEFT,
    Button.DPAD_RIGHT: ecodes.BTN_DPAD_RIGHT,
}

# Record axis order: left X, left Y, right X, right Y
STICK_CODES: tuple[int, int, int, int] = (
    ecodes.ABS_X, ecodes.ABS_Y, ecodes.ABS_RX, ecodes.ABS_RY,
)
TRIGGER_CODES: tuple[int, int] = (ecodes.ABS_Z, ecodes.ABS_RZ)
# evdev Y axes grow downward; records are up-positive
INVERTED_AXES: frozenset[int] = frozenset({1, 3})


def value_rescale(value: int, source_min: int, source_max: int, target_min: int, target_max: int) -> int:
    """
    Linearly map a value between two integer ranges, clamped to the target

    Args:
        value: Raw value
        source_min: Lower bound of the raw range
        source_max: Upper bound of the raw range
        target_min: Lower bound of the output range
        target_max: Upper bound of the output range

    Returns:
        Rescaled integer
    """
    if source_max <= source_min:
        return value_clamp(0, target_min, target_max)
    ratio: float = (value - source_min) / (source_max - source_min)
    scaled: int = int(round(target_min + ratio * (target_max - target_min)))
    return value_clamp(scaled, target_min, target_max)


def value_clamp(value: int, low: int, high: int) -> int:
    """Clamp value into [low, high]"""
    return max(low, min(high, value))


def axis_invert(value: int, low: int, high: int) -> int:
    """Flip an axis direction, clamping the asymmetric extreme"""
    return value_clamp(-value, low, high)


def hatButtons_get(hat_x: int, hat_y: int) -> int:
    """
    Convert d-pad hat values to d-pad button bits

    Args:
        hat_x: -1 left, 0 centre, 1 right
        hat_y: -1 up, 0 centre, 1 down

    Returns:
        Button bit-set
    """
    buttons = 0
    if hat_x < 0:
        buttons |= Button.DPAD_LEFT
    elif hat_x > 0:
        buttons |= Button.DPAD_RIGHT
    if hat_y < 0:
        buttons |= Button.DPAD_UP
    elif hat_y > 0:
        buttons |= Button.DPAD_DOWN
    return buttons


def hatValues_get(buttons: int) -> tuple[int, int]:
    """
    Convert d-pad button bits to hat values

    Opposite directions pressed together cancel out.

    Args:
        buttons: Button bit-set

    Returns:
        Tuple of (hat_x, hat_y)
    """
    hat_x = int(bool(buttons & Button.DPAD_RIGHT)) - int(bool(buttons & Button.DPAD_LEFT))
    hat_y = int(bool(buttons & Button.DPAD_DOWN)) - int(bool(buttons & Button.DPAD_UP))
    return hat_x, hat_y


class EvdevCaptureBackend:
    """Polls a physical gamepad's current state through evdev ioctls."""

    def __init__(self, device_path: str, layout: WireLayout) -> None:
        """
        Initialize capture backend

        Args:
            device_path: Event device path, e.g. /dev/input/event5
            layout: Wire layout whose axis range samples are scaled into
        """
        self.device_path: str = device_path
        self.layout: WireLayout = layout
        self._device: Optional[InputDevice] = None
        self._abs_codes: set[int] = set()

    def sample(self) -> Optional[StateRecord]:
        """
        Read the current device state

        Returns:
            Snapshot with sequence 0, or None when the device is unavailable
        """
        if self._device is None and not self.connected_check():
            return None
        device = self._device
        if device is None:
            return None
        try:
            active: set[int] = set(device.active_keys())
            buttons = 0
            for bit, code in BUTTON_CODES.items():
                if code in active:
                    buttons |= bit
            for bit, code in DPAD_KEY_CODES.items():
                if code in active:
                    buttons |= bit
            if ecodes.ABS_HAT0X in self._abs_codes:
                buttons |= hatButtons_get(
                    device.absinfo(ecodes.ABS_HAT0X).value,
                    device.absinfo(ecodes.ABS_HAT0Y).value,
                )
            triggers = tuple(self._trigger_read(device, code) for code in TRIGGER_CODES)
            axes = tuple(
                self._axis_read(device, index, code) for index, code in enumerate(STICK_CODES)
            )
        except OSError as e:
            logger.warning(f"Lost capture device {self.device_path}: {e}")
            self.connection_close()
            return None

        return StateRecord(buttons=buttons, triggers=triggers, axes=axes)

    def connected_check(self) -> bool:
        """
        Open the device if needed

        Returns:
            True if the device is open
        """
        if self._device is not None:
            return True
        try:
            device = InputDevice(self.device_path)
        except OSError as e:
            logger.debug(f"Capture device {self.device_path} unavailable: {e}")
            return False
        self._device = device
        self._abs_codes = {code for code, _info in device.capabilities().get(ecodes.EV_ABS, [])}
        logger.info(f"Capture device opened: {device.name} ({self.device_path})")
        return True

    def connection_close(self) -> None:
        """Close the device handle"""
        if self._device is None:
            return
        try:
            self._device.close()
        except OSError as e:
            logger.debug(f"Error closing {self.device_path}: {e}")
        finally:
            self._device = None
            self._abs_codes = set()

    def _axis_read(self, device: InputDevice, index: int, code: int) -> int:
        if code not in self._abs_codes:
            return 0
        info = device.absinfo(code)
        value = value_rescale(info.value, info.min, info.max, self.layout.axis_min, self.layout.axis_max)
        if index in INVERTED_AXES:
            value = axis_invert(value, self.layout.axis_min, self.layout.axis_max)
        return value

    def _trigger_read(self, device: InputDevice, code: int) -> int:
        if code not in self._abs_codes:
            return 0
        info = device.absinfo(code)
        return value_rescale(info.value, info.min, info.max, 0, 255)


class UInputDeviceBackend:
    """One uinput virtual gamepad per slot, created on first use."""

    def __init__(self, layout: WireLayout, name_prefix: str = "pad2pad virtual gamepad") -> None:
        """
        Initialize backend

        Args:
            layout: Wire layout; its axis range is advertised by each device
            name_prefix: Device name, suffixed with the slot number
        """
        self.layout: WireLayout = layout
        self.name_prefix: str = name_prefix
        self._lock: threading.Lock = threading.Lock()
        self._devices: dict[int, UInput] = {}

    def apply(self, slot: int, record: StateRecord) -> None:
        """
        Write a full state report to a slot's device

        Args:
            slot: Target slot
            record: State to present

        Raises:
            DeviceError: If the device could not be created or written
        """
        with self._lock:
            try:
                device = self._device_getOrCreate(slot)
                self._report_write(device, record)
            except (OSError, ValueError) as e:
                raise DeviceError(f"Slot #{slot}: {e}") from e

    def reset(self, slot: int) -> None:
        """Write the neutral state to an existing slot device"""
        with self._lock:
            device = self._devices.get(slot)
            if device is None:
                return
            try:
                self._report_write(device, StateRecord.neutral())
            except OSError as e:
                raise DeviceError(f"Slot #{slot} reset failed: {e}") from e

    def release(self, slot: int) -> None:
        """Destroy a slot's device"""
        with self._lock:
            device = self._devices.pop(slot, None)
        if device is None:
            return
        try:
            device.close()
            logger.info(f"Removed virtual gamepad #{slot}")
        except OSError as e:
            raise DeviceError(f"Slot #{slot} release failed: {e}") from e

    def connection_close(self) -> None:
        """Reset and remove every device"""
        for slot in sorted(self._devices):
            try:
                self.reset(slot)
                self.release(slot)
            except DeviceError as e:
                logger.error(f"Error disconnecting gamepad #{slot}: {e}")

    def capabilities_build(self) -> dict[int, list]:
        """
        Describe the virtual gamepad to uinput

        Returns:
            evdev capability mapping
        """
        stick_info = AbsInfo(
            value=0, min=self.layout.axis_min, max=self.layout.axis_max,
            fuzz=0, flat=0, resolution=0,
        )
        trigger_info = AbsInfo(value=0, min=0, max=255, fuzz=0, flat=0, resolution=0)
        hat_info = AbsInfo(value=0, min=-1, max=1, fuzz=0, flat=0, resolution=0)
        abs_caps = [(code, stick_info) for code in STICK_CODES]
        abs_caps += [(code, trigger_info) for code in TRIGGER_CODES]
        abs_caps += [(ecodes.ABS_HAT0X, hat_info), (ecodes.ABS_HAT0Y, hat_info)]
        return {
            ecodes.EV_KEY: sorted(BUTTON_CODES.values()),
            ecodes.EV_ABS: abs_caps,
        }

    def _device_getOrCreate(self, slot: int) -> UInput:
        """Caller holds the lock"""
        device = self._devices.get(slot)
        if device is None:
            device = UInput(
                self.capabilities_build(),
                name=f"{self.name_prefix} #{slot}",
                vendor=VIRTUAL_VENDOR_ID,
                product=VIRTUAL_PRODUCT_ID,
                version=VIRTUAL_VERSION,
                bustype=ecodes.BUS_USB,
            )
            self._devices[slot] = device
            logger.info(f"Created virtual gamepad #{slot}")
        return device

    def _report_write(self, device: UInput, record: StateRecord) -> None:
        for bit, code in BUTTON_CODES.items():
            device.write(ecodes.EV_KEY, code, 1 if record.buttons & bit else 0)
        hat_x, hat_y = hatValues_get(record.buttons)
        device.write(ecodes.EV_ABS, ecodes.ABS_HAT0X, hat_x)
        device.write(ecodes.EV_ABS, ecodes.ABS_HAT0Y, hat_y)
        for code, value in zip(TRIGGER_CODES, record.triggers):
            device.write(ecodes.EV_ABS, code, value)
        for index, (code, value) in enumerate(zip(STICK_CODES, record.axes)):
            if index in INVERTED_AXES:
                value = axis_invert(value, self.layout.axis_min, self.layout.axis_max)
            device.write(ecodes.EV_ABS, code, value)
        device.syn()
