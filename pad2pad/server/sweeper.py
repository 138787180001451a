"""Timeout sweeper: evicts silent senders and neutralizes their slots."""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Optional

from pad2pad.input.backend import VirtualDeviceBackend
from pad2pad.server.session import SessionTable

logger = logging.getLogger(__name__)


class TimeoutSweeper:
    """
    Periodically evicts sessions silent past the timeout.

    For each evicted slot the device is reset to neutral, then released, and
    only then is the slot handed back to the table for reuse. A dead sender
    therefore never leaves a stuck button or axis behind.
    """

    def __init__(
        self,
        table: SessionTable,
        device: VirtualDeviceBackend,
        timeout: float,
        interval: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize sweeper

        Args:
            table: Shared session table
            device: Virtual device backend
            timeout: Silence threshold in seconds
            interval: Delay between sweeps in seconds
            clock: Time source matching the table's timestamps
        """
        self.table: SessionTable = table
        self.device: VirtualDeviceBackend = device
        self.timeout: float = timeout
        self.interval: float = interval
        self._clock: Callable[[], float] = clock
        self.evictions: int = 0

    def run(self, stop_event: threading.Event) -> None:
        """
        Sweep on a fixed interval until stop_event is set

        Args:
            stop_event: Cooperative stop signal; wakes the wait immediately
        """
        while not stop_event.wait(self.interval):
            try:
                self.sweep_once()
            except Exception as e:
                logger.error(f"Timeout sweep failed: {e}")

    def sweep_once(self, now: Optional[float] = None) -> list[int]:
        """
        Evict expired sessions and neutralize their slots

        Args:
            now: Current timestamp (defaults to the clock)

        Returns:
            Evicted slots
        """
        current = self._clock() if now is None else now
        slots = self.table.expired_sweep(current, self.timeout)
        for slot in slots:
            self.slot_neutralize(slot)
        self.evictions += len(slots)
        return slots

    def slot_neutralize(self, slot: int) -> None:
        """
        Reset and release a slot's device, then free the slot

        The slot is freed even when the backend fails, so a broken device
        never costs the relay capacity.

        Args:
            slot: Slot evicted from the table
        """
        try:
            try:
                self.device.reset(slot)
            except Exception as e:
                logger.error(f"Error resetting gamepad #{slot}: {e}")
            try:
                self.device.release(slot)
            except Exception as e:
                logger.error(f"Error removing gamepad #{slot}: {e}")
        finally:
            self.table.slot_release(slot)
