"""Backend factory functions."""

from __future__ import annotations

from typing import Optional

from pad2pad.input.backend import CaptureBackend, VirtualDeviceBackend
from pad2pad.input.log_backend import LoggingDeviceBackend
from pad2pad.protocol.codec import WireLayout

RELAY_BACKENDS: tuple[str, ...] = ("uinput", "log")
SENDER_BACKENDS: tuple[str, ...] = ("evdev",)


def relayBackend_create(backend_name: str, layout: WireLayout) -> VirtualDeviceBackend:
    """
    Create the relay-side virtual device backend.

    Args:
        backend_name: Backend identifier ("uinput" or "log")
        layout: Active wire layout (sets the advertised axis range)

    Returns:
        VirtualDeviceBackend
    """
    backend = backend_name.lower()

    if backend == "uinput":
        from pad2pad.input.evdev_backend import UInputDeviceBackend

        return UInputDeviceBackend(layout=layout)

    if backend == "log":
        return LoggingDeviceBackend()

    raise ValueError(
        f"Unsupported relay backend '{backend_name}'. Supported: {', '.join(RELAY_BACKENDS)}."
    )


def senderBackend_create(
    backend_name: str,
    device_path: Optional[str],
    layout: WireLayout,
) -> CaptureBackend:
    """
    Create the sender-side capture backend.

    Args:
        backend_name: Backend identifier ("evdev")
        device_path: Input device path
        layout: Active wire layout (sets the sampled axis range)

    Returns:
        CaptureBackend
    """
    backend = backend_name.lower()

    if backend == "evdev":
        if not device_path:
            raise ValueError("The evdev capture backend requires a device path (--device)")
        from pad2pad.input.evdev_backend import EvdevCaptureBackend

        return EvdevCaptureBackend(device_path=device_path, layout=layout)

    raise ValueError(
        f"Unsupported sender backend '{backend_name}'. Supported: {', '.join(SENDER_BACKENDS)}."
    )
