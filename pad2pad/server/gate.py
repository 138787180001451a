"""Sequence gating with wraparound-aware serial-number comparison"""

from __future__ import annotations

from typing import Optional, Protocol


class SequencedSession(Protocol):
    """Anything carrying the last accepted sequence number."""

    last_sequence: Optional[int]


class SequenceGate:
    """
    Accept/reject incoming sequence numbers against a session's last one.

    Sequence numbers live on a ring of 2**bits values. `incoming` is newer
    than `last` when the forward distance (incoming - last) mod 2**bits is
    nonzero and strictly less than half the ring. A distance of exactly half
    the ring is not newer, so such a packet is rejected as stale.
    """

    def __init__(self, bits: int) -> None:
        """
        Initialize gate

        Args:
            bits: Sequence field width in bits
        """
        if bits < 2:
            raise ValueError(f"Sequence width must be at least 2 bits, got {bits}")
        self.bits: int = bits
        self.modulus: int = 1 << bits
        self.half: int = self.modulus >> 1

    def isNewer_check(self, incoming: int, last: int) -> bool:
        """
        Serial-number comparison

        Args:
            incoming: Sequence number of the arriving record
            last: Last accepted sequence number

        Returns:
            True if incoming is strictly newer than last
        """
        distance: int = (incoming - last) % self.modulus
        return 0 < distance < self.half

    def accept(self, session: SequencedSession, incoming_sequence: int) -> bool:
        """
        Decide whether a record may supersede the session's current state

        Args:
            session: Session holding `last_sequence` (None before first accept)
            incoming_sequence: Sequence number of the arriving record

        Returns:
            True to accept, False to drop as stale or duplicate
        """
        if session.last_sequence is None:
            return True
        return self.isNewer_check(incoming_sequence, session.last_sequence)
