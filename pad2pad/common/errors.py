"""Exception taxonomy for pad2pad.

Nothing raised from here is fatal to a running relay or sender. Codec and
capacity errors drop the offending datagram; device errors are logged and
the session stays alive.
"""

from __future__ import annotations


class Pad2PadError(Exception):
    """Base class for all pad2pad errors."""


class CodecError(Pad2PadError, ValueError):
    """A datagram could not be decoded as a state packet."""


class FramingError(CodecError):
    """Datagram is shorter than the fixed packet size."""

    def __init__(self, length: int, expected: int) -> None:
        super().__init__(f"Packet too short: {length} bytes, expected {expected}")
        self.length = length
        self.expected = expected


class BadMarker(CodecError):
    """Frame marker does not match; foreign traffic."""

    def __init__(self, marker: int) -> None:
        super().__init__(f"Bad frame marker 0x{marker:08X}")
        self.marker = marker


class VersionMismatch(CodecError):
    """Protocol version byte differs from the codec's version."""

    def __init__(self, version: int, expected: int) -> None:
        super().__init__(f"Protocol version {version} does not match {expected}")
        self.version = version
        self.expected = expected


class NoCapacity(Pad2PadError):
    """Every slot is occupied; no session was created."""


class DeviceError(Pad2PadError):
    """Virtual device backend failed to apply a state."""
