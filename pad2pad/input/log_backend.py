"""Virtual device backend that only logs, for dry runs without uinput."""

from __future__ import annotations

import logging

from pad2pad.common.types import StateRecord

logger = logging.getLogger(__name__)


class LoggingDeviceBackend:
    """Logs state changes per slot instead of driving a device."""

    def __init__(self) -> None:
        self._last_applied: dict[int, StateRecord] = {}

    def apply(self, slot: int, record: StateRecord) -> None:
        previous = self._last_applied.get(slot)
        self._last_applied[slot] = record
        if previous is None or not previous.payload_equals(record):
            logger.info(f"[SLOT {slot}] {record}")
        else:
            logger.debug(f"[SLOT {slot}] {record}")

    def reset(self, slot: int) -> None:
        if slot in self._last_applied:
            self._last_applied[slot] = StateRecord.neutral()
        logger.info(f"[SLOT {slot}] reset to neutral")

    def release(self, slot: int) -> None:
        self._last_applied.pop(slot, None)
        logger.info(f"[SLOT {slot}] released")

    def connection_close(self) -> None:
        for slot in sorted(self._last_applied):
            self.release(slot)
