"""Backend protocols for gamepad capture and virtual device output."""

from __future__ import annotations

from typing import Optional, Protocol

from pad2pad.common.types import StateRecord


class CaptureBackend(Protocol):
    """Physical gamepad polled by the sender."""

    def sample(self) -> Optional[StateRecord]:
        """
        Read the current device state.

        Returns:
            Snapshot with sequence 0, or None when the device is disconnected.
        """

    def connected_check(self) -> bool:
        """
        Probe the device, reopening it if it came back.

        Returns:
            True if the device can be sampled.
        """

    def connection_close(self) -> None:
        """Release the device handle."""


class VirtualDeviceBackend(Protocol):
    """Slot-addressed virtual gamepads driven by the relay."""

    def apply(self, slot: int, record: StateRecord) -> None:
        """
        Apply a full state snapshot to a slot atomically.

        Args:
            slot: Target slot.
            record: State to present.

        Raises:
            DeviceError: If the device rejected the update.
        """

    def reset(self, slot: int) -> None:
        """
        Put a slot back to the neutral state.

        Args:
            slot: Target slot.
        """

    def release(self, slot: int) -> None:
        """
        Tear down the device behind a slot.

        Args:
            slot: Target slot.
        """

    def connection_close(self) -> None:
        """Release every slot and backend resources."""
