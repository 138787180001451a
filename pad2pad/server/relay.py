"""
Relay receive loop.

Each datagram runs through decode -> resolve -> gate -> touch -> apply.
Every failure before `apply` drops the datagram and bumps a counter; none of
them stop the loop. Device failures are logged and the session stays alive so
the next accepted packet retries naturally. Any other exception raised while
processing a datagram is logged and counted, and the loop moves on.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional, Protocol

from pad2pad.common.errors import CodecError, NoCapacity
from pad2pad.common.types import StateRecord
from pad2pad.input.backend import VirtualDeviceBackend
from pad2pad.protocol.codec import StateCodec
from pad2pad.server.gate import SequenceGate
from pad2pad.server.session import SenderIdentity, SessionTable

logger = logging.getLogger(__name__)

# Minimum seconds between "relay full" warnings
CAPACITY_WARNING_INTERVAL: float = 5.0


class DatagramSource(Protocol):
    """Minimal receive contract used by the relay loop."""

    def datagram_receive(self, timeout: float) -> Optional[tuple[bytes, SenderIdentity]]:
        """Return one datagram or None after at most timeout seconds."""
        ...


@dataclass(frozen=True)
class RelayCounters:
    """Relay-wide packet counters"""
    received: int = 0
    accepted: int = 0
    rejected: int = 0
    capacity_dropped: int = 0
    stale_dropped: int = 0
    device_errors: int = 0
    loop_errors: int = 0


class RelayLoop:
    """Forwards the newest state of each sender to its virtual device slot"""

    def __init__(
        self,
        codec: StateCodec,
        table: SessionTable,
        gate: SequenceGate,
        device: VirtualDeviceBackend,
        poll_interval: float = 0.1,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize relay loop

        Args:
            codec: Decoder for the active wire layout
            table: Shared session table
            gate: Sequence gate matching the layout's sequence width
            device: Virtual device backend
            poll_interval: Maximum receive wait per iteration, in seconds
            clock: Time source for session timestamps
        """
        self.codec: StateCodec = codec
        self.table: SessionTable = table
        self.gate: SequenceGate = gate
        self.device: VirtualDeviceBackend = device
        self.poll_interval: float = poll_interval
        self._clock: Callable[[], float] = clock
        self._counts_lock: threading.Lock = threading.Lock()
        self._counts: dict[str, int] = {name: 0 for name in RelayCounters.__dataclass_fields__}
        self._capacity_warned_at: Optional[float] = None

    def run(self, source: DatagramSource, stop_event: threading.Event) -> None:
        """
        Receive and process datagrams until stop_event is set

        Args:
            source: Datagram source (RelayNetwork)
            stop_event: Cooperative stop signal, checked every poll interval
        """
        logger.info("Relay loop started. Waiting for gamepad data...")
        while not stop_event.is_set():
            received = source.datagram_receive(self.poll_interval)
            if received is None:
                continue
            data, identity = received
            try:
                self.datagram_process(data, identity)
            except Exception as e:
                self._count("loop_errors")
                logger.error(f"Error processing datagram from {identity[0]}:{identity[1]}: {e}")
        logger.info("Relay loop stopped.")

    def datagram_process(self, data: bytes, identity: SenderIdentity) -> Optional[StateRecord]:
        """
        Run one datagram through the relay pipeline

        Args:
            data: Raw datagram payload
            identity: Sender (host, port)

        Returns:
            The record forwarded to the device, or None if dropped
        """
        self._count("received")

        try:
            record = self.codec.decode(data)
        except CodecError as e:
            self._count("rejected")
            logger.debug(f"Rejected datagram from {identity[0]}:{identity[1]}: {e}")
            return None

        try:
            session = self.table.resolve(identity, now=self._clock())
        except NoCapacity as e:
            self._count("capacity_dropped")
            self._capacityWarning_log(e)
            return None

        if not self.gate.accept(session, record.sequence):
            self.table.reject(session)
            self._count("stale_dropped")
            logger.debug(
                f"Stale sequence {record.sequence} from slot #{session.slot} "
                f"(last {session.last_sequence})"
            )
            return None

        if not self.table.touch(session, record, now=self._clock()):
            # Evicted between resolve and touch; the next packet starts a new session
            logger.debug(f"Session for {identity[0]}:{identity[1]} evicted mid-packet")
            return None

        self._count("accepted")
        try:
            self.device.apply(session.slot, record)
        except Exception as e:
            self._count("device_errors")
            logger.error(f"Error updating gamepad #{session.slot}: {e}")
        return record

    def counters_get(self) -> RelayCounters:
        """
        Snapshot the relay counters

        Returns:
            RelayCounters copy
        """
        with self._counts_lock:
            return RelayCounters(**self._counts)

    def _capacityWarning_log(self, e: NoCapacity) -> None:
        """Warn about a capacity drop at most once per CAPACITY_WARNING_INTERVAL"""
        now = self._clock()
        warned_at = self._capacity_warned_at
        if warned_at is not None and now - warned_at < CAPACITY_WARNING_INTERVAL:
            logger.debug(str(e))
            return
        self._capacity_warned_at = now
        logger.warning(str(e))

    def _count(self, name: str) -> None:
        with self._counts_lock:
            self._counts[name] += 1
