"""
Relay session tracking.

The SessionTable owns every Session. It binds each sender identity
(host, port) to a slot on the virtual device backend, records liveness, and
evicts silent senders. It never calls the device backend itself: callers pair
each eviction with a reset and then hand the slot back via `slot_release`.

Every method runs under one lock per table. The lock is released before
returning, so callers never hold it across device I/O.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

from pad2pad.common.errors import NoCapacity
from pad2pad.common.types import StateRecord

logger = logging.getLogger(__name__)

SenderIdentity = tuple[str, int]


@dataclass
class Session:
    """Mutable tracking record for one sender (table-owned)"""
    identity: SenderIdentity
    slot: int
    created_at: float
    last_seen: float
    last_sequence: Optional[int] = None
    packets_accepted: int = 0
    packets_rejected: int = 0


@dataclass(frozen=True)
class SessionSnapshot:
    """Read-only copy of a session for reporting"""
    identity: SenderIdentity
    slot: int
    last_seen: float
    last_sequence: Optional[int]
    packets_accepted: int
    packets_rejected: int


class SessionTable:
    """Slot allocation and liveness tracking for relay senders"""

    def __init__(self, max_slots: int, clock: Callable[[], float] = time.monotonic) -> None:
        """
        Initialize table

        Args:
            max_slots: Number of slots on the virtual device backend
            clock: Monotonic time source in seconds
        """
        if max_slots < 1:
            raise ValueError(f"max_slots must be positive, got {max_slots}")
        self.max_slots: int = max_slots
        self._clock: Callable[[], float] = clock
        self._lock: threading.Lock = threading.Lock()
        self._sessions: dict[SenderIdentity, Session] = {}
        self._occupied: set[int] = set()
        self._draining: set[int] = set()

    def resolve(self, identity: SenderIdentity, now: Optional[float] = None) -> Session:
        """
        Return the session for identity, allocating one if needed

        New sessions get the lowest slot that is neither occupied nor draining.

        Args:
            identity: Sender (host, port)
            now: Timestamp for a newly created session

        Returns:
            Existing or newly created Session

        Raises:
            NoCapacity: If identity is unknown and no slot is free
        """
        with self._lock:
            session = self._sessions.get(identity)
            if session is not None:
                return session

            slot = self._freeSlot_find()
            if slot is None:
                raise NoCapacity(
                    f"All {self.max_slots} slots in use, dropping packet from "
                    f"{identity[0]}:{identity[1]}"
                )

            timestamp = self._clock() if now is None else now
            session = Session(identity=identity, slot=slot, created_at=timestamp, last_seen=timestamp)
            self._sessions[identity] = session
            self._occupied.add(slot)

        logger.info(f"New sender {identity[0]}:{identity[1]} -> slot #{slot}")
        return session

    def touch(self, session: Session, record: StateRecord, now: Optional[float] = None) -> bool:
        """
        Record an accepted packet

        Must only be called after the SequenceGate accepted `record`.

        Args:
            session: Session returned by resolve
            record: Accepted record
            now: Arrival timestamp

        Returns:
            False if the session was evicted in the meantime (nothing updated)
        """
        with self._lock:
            if self._sessions.get(session.identity) is not session:
                return False
            session.last_seen = self._clock() if now is None else now
            session.last_sequence = record.sequence
            session.packets_accepted += 1
            return True

    def reject(self, session: Session) -> None:
        """
        Count a stale packet against a session

        Args:
            session: Session the packet belonged to
        """
        with self._lock:
            session.packets_rejected += 1

    def expired_sweep(self, now: Optional[float], timeout: float) -> list[int]:
        """
        Remove sessions silent for longer than timeout

        Evicted slots are held back from allocation until `slot_release`.

        Args:
            now: Current timestamp (None reads the table clock)
            timeout: Silence threshold in seconds

        Returns:
            Slots of evicted sessions, in ascending order
        """
        evicted: list[Session] = []
        with self._lock:
            current = self._clock() if now is None else now
            for identity, session in list(self._sessions.items()):
                if current - session.last_seen > timeout:
                    del self._sessions[identity]
                    self._occupied.discard(session.slot)
                    self._draining.add(session.slot)
                    evicted.append(session)

        for session in evicted:
            logger.info(
                f"Sender timeout: {session.identity[0]}:{session.identity[1]} "
                f"(slot #{session.slot}), accepted={session.packets_accepted} "
                f"rejected={session.packets_rejected}"
            )
        return sorted(session.slot for session in evicted)

    def slot_release(self, slot: int) -> None:
        """
        Make a drained slot allocatable again

        Args:
            slot: Slot previously returned by expired_sweep
        """
        with self._lock:
            self._draining.discard(slot)

    def sessions_snapshot(self) -> list[SessionSnapshot]:
        """
        Copy current sessions for reporting

        Returns:
            Snapshots ordered by slot
        """
        with self._lock:
            snapshots = [
                SessionSnapshot(
                    identity=session.identity,
                    slot=session.slot,
                    last_seen=session.last_seen,
                    last_sequence=session.last_sequence,
                    packets_accepted=session.packets_accepted,
                    packets_rejected=session.packets_rejected,
                )
                for session in self._sessions.values()
            ]
        return sorted(snapshots, key=lambda snapshot: snapshot.slot)

    def sessions_count(self) -> int:
        """Number of live sessions"""
        with self._lock:
            return len(self._sessions)

    def _freeSlot_find(self) -> Optional[int]:
        """Lowest free slot; caller holds the lock"""
        for slot in range(self.max_slots):
            if slot not in self._occupied and slot not in self._draining:
                return slot
        return None
