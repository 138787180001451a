"""
Sender runtime: sample, stamp, encode, transmit.

Sequence numbers advance once per transmission attempt, never per sample,
and wrap at the wire layout's sequence width. A disconnected capture device
pauses transmission; the sender keeps probing for it and resumes on its own.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, replace
from typing import Callable, Optional, Protocol

from pad2pad.client.policy import SendDecision, SendPolicy
from pad2pad.common.types import Flag, StateRecord
from pad2pad.input.backend import CaptureBackend
from pad2pad.protocol.codec import StateCodec

logger = logging.getLogger(__name__)


class DatagramSink(Protocol):
    """Minimal transmit contract used by the sender."""

    def datagram_send(self, data: bytes) -> None:
        """Transmit one packet synchronously."""
        ...


@dataclass
class SenderStats:
    """Running sender counters"""
    samples: int = 0
    packets_sent: int = 0
    send_errors: int = 0
    suppressed: int = 0


class Sender:
    """Producer side of the state stream"""

    def __init__(
        self,
        capture: CaptureBackend,
        network: DatagramSink,
        codec: StateCodec,
        policy: SendPolicy,
        sample_interval: float = 0.008,
        slot_hint: int = 0,
        reconnect_poll: float = 1.0,
        stats_interval: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize sender

        Args:
            capture: Physical gamepad backend
            network: Transport for encoded packets
            codec: Encoder for the active wire layout
            policy: Transmission strategy
            sample_interval: Seconds between samples
            slot_hint: Slot requested from the relay (advisory)
            reconnect_poll: Seconds between reconnection probes while paused
            stats_interval: Seconds between statistics lines (0 disables)
            clock: Monotonic time source
        """
        self.capture: CaptureBackend = capture
        self.network: DatagramSink = network
        self.codec: StateCodec = codec
        self.policy: SendPolicy = policy
        self.sample_interval: float = sample_interval
        self.slot_hint: int = slot_hint
        self.reconnect_poll: float = reconnect_poll
        self.stats_interval: float = stats_interval
        self._clock: Callable[[], float] = clock

        self.sequence: int = 0
        self.paused: bool = False
        self.stats: SenderStats = SenderStats()
        self.last_record: Optional[StateRecord] = None
        self._next_probe_at: float = 0.0

    def tick(self, now: Optional[float] = None) -> bool:
        """
        Sample once and transmit if the policy says so

        Args:
            now: Current time (defaults to the clock)

        Returns:
            True if a packet was handed to the network successfully
        """
        current = self._clock() if now is None else now

        if self.paused and not self.reconnection_check(current):
            return False

        record = self.capture.sample()
        if record is None:
            self.paused = True
            self._next_probe_at = current + self.reconnect_poll
            logger.warning("Controller disconnected, pausing transmission")
            return False

        self.stats.samples += 1
        self.last_record = record
        decision = self.policy.decide(record, current)
        if decision == SendDecision.SKIP:
            self.stats.suppressed += 1
            return False

        outgoing = self.record_stamp(record, decision)
        packet = self.codec.encode(outgoing)
        try:
            self.network.datagram_send(packet)
        except OSError as e:
            self.stats.send_errors += 1
            logger.error(f"Network error: {e}")
            return False

        self.policy.transmitted(record, current)
        self.stats.packets_sent += 1
        if self.stats.packets_sent <= 5:
            logger.debug(f"Sent {outgoing}")
        return True

    def reconnection_check(self, now: float) -> bool:
        """
        Probe a paused capture device, rate-limited to reconnect_poll

        Args:
            now: Current time

        Returns:
            True if the device is back and sampling may resume
        """
        if now < self._next_probe_at:
            return False
        self._next_probe_at = now + self.reconnect_poll
        if not self.capture.connected_check():
            return False
        self.paused = False
        logger.info("Controller reconnected, resuming transmission")
        return True

    def record_stamp(self, record: StateRecord, decision: SendDecision) -> StateRecord:
        """
        Assign the next sequence number and sender fields

        Args:
            record: Sampled record
            decision: Policy outcome (heartbeats are flagged when the layout allows)

        Returns:
            Record ready for encoding
        """
        self.sequence = (self.sequence + 1) % self.codec.layout.sequence_modulus
        flags = record.flags if self.codec.layout.has_flags else 0
        if decision == SendDecision.HEARTBEAT and self.codec.layout.has_flags:
            flags |= Flag.HEARTBEAT
        return replace(record, sequence=self.sequence, slot_hint=self.slot_hint, flags=flags)

    def run(self, stop_event: threading.Event) -> None:
        """
        Sample on a fixed cadence until stop_event is set

        Args:
            stop_event: Cooperative stop signal
        """
        started_at = self._clock()
        next_tick = started_at
        last_stats_at = started_at
        while not stop_event.is_set():
            now = self._clock()
            self.tick(now)

            if self.stats_interval > 0 and now - last_stats_at >= self.stats_interval:
                self.stats_log(now - started_at)
                last_stats_at = now

            next_tick += self.sample_interval
            delay = next_tick - self._clock()
            if delay <= 0:
                # Fell behind; resynchronize rather than bursting
                next_tick = self._clock()
                continue
            stop_event.wait(delay)

    def stats_log(self, elapsed: float) -> None:
        """
        Log transmission statistics

        Args:
            elapsed: Seconds since the sender started
        """
        rate = self.stats.packets_sent / elapsed if elapsed > 0 else 0.0
        active = (
            self.last_record.input_isActive(self.codec.layout.noise_threshold)
            if self.last_record is not None
            else False
        )
        state = "paused" if self.paused else f"active={active}"
        logger.info(
            f"Packets sent: {self.stats.packets_sent} | Rate: {rate:.1f} pps | "
            f"Suppressed: {self.stats.suppressed} | Errors: {self.stats.send_errors} | {state}"
        )
