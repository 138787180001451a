"""
Sender transmission policies.

A policy looks at each sampled record and decides whether it goes on the
wire. The sender owns sequence numbering, so both policies keep the relay's
ordering guarantee intact.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional, Protocol

from pad2pad.common.config import SenderConfig
from pad2pad.common.types import SendPolicyName, StateRecord
from pad2pad.protocol.codec import FULL_LAYOUT, WireLayout


class SendDecision(Enum):
    """Outcome of a policy check"""

    SEND = "send"
    HEARTBEAT = "heartbeat"
    SKIP = "skip"


class SendPolicy(Protocol):
    """Strategy contract used by the Sender."""

    def decide(self, record: StateRecord, now: float) -> SendDecision:
        """Decide whether `record` sampled at `now` should be transmitted."""
        ...

    def transmitted(self, record: StateRecord, now: float) -> None:
        """Note that `record` was successfully transmitted at `now`."""
        ...


class AlwaysSendPolicy:
    """Transmit every sample; any lost packet self-heals on the next frame."""

    def decide(self, record: StateRecord, now: float) -> SendDecision:
        return SendDecision.SEND

    def transmitted(self, record: StateRecord, now: float) -> None:
        pass


class SendOnChangePolicy:
    """
    Transmit only when the state moved, plus periodic heartbeats.

    A change is any button or trigger difference, or an axis moving further
    than `deadzone` from its last transmitted value. When nothing changed for
    `heartbeat` seconds the unchanged state is re-sent so the relay neither
    times the sender out nor stays on a stale state after a lost packet.
    """

    def __init__(self, deadzone: int, heartbeat: float) -> None:
        """
        Initialize policy

        Args:
            deadzone: Axis movement (record units) that counts as a change
            heartbeat: Seconds between keep-alive frames; 0 disables them
        """
        self.deadzone: int = deadzone
        self.heartbeat: float = heartbeat
        self._last_sent: Optional[StateRecord] = None
        self._last_sent_at: float = 0.0

    def decide(self, record: StateRecord, now: float) -> SendDecision:
        if self._last_sent is None or self.changed_check(record):
            return SendDecision.SEND
        if self.heartbeat > 0 and now - self._last_sent_at >= self.heartbeat:
            return SendDecision.HEARTBEAT
        return SendDecision.SKIP

    def transmitted(self, record: StateRecord, now: float) -> None:
        self._last_sent = record
        self._last_sent_at = now

    def changed_check(self, record: StateRecord) -> bool:
        """
        Compare against the last transmitted record

        Args:
            record: Fresh sample

        Returns:
            True if the sample differs beyond the deadzone
        """
        last = self._last_sent
        if last is None:
            return True
        if record.buttons != last.buttons or record.triggers != last.triggers:
            return True
        return any(
            abs(current - previous) > self.deadzone
            for current, previous in zip(record.axes, last.axes)
        )


def sendPolicy_create(config: SenderConfig, layout: WireLayout = FULL_LAYOUT) -> SendPolicy:
    """
    Build the configured send policy

    The deadzone is configured in 16-bit stick units and scaled to the
    layout's axis range, so the same setting behaves alike on both layouts.

    Args:
        config: Sender configuration
        layout: Active wire layout

    Returns:
        Policy instance
    """
    if config.send_policy == SendPolicyName.ON_CHANGE:
        deadzone = config.deadzone * layout.axis_max // FULL_LAYOUT.axis_max
        return SendOnChangePolicy(
            deadzone=deadzone,
            heartbeat=config.heartbeat_ms / 1000.0,
        )
    return AlwaysSendPolicy()
