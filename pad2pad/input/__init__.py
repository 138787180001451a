"""Backend abstraction layer for gamepad capture and virtual devices."""

from pad2pad.input.backend import CaptureBackend, VirtualDeviceBackend
from pad2pad.input.factory import relayBackend_create, senderBackend_create

__all__ = [
    "CaptureBackend",
    "VirtualDeviceBackend",
    "relayBackend_create",
    "senderBackend_create",
]
