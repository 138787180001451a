"""Binary wire codec for pad2pad state packets"""

from __future__ import annotations

import struct
from dataclasses import dataclass

from pad2pad.common.errors import BadMarker, FramingError, VersionMismatch
from pad2pad.common.types import STICK_NOISE_THRESHOLD, StateRecord

FRAME_MARKER: int = 0x52504C59  # "RPLY"

_HEADER = struct.Struct("<IB")


@dataclass(frozen=True)
class WireLayout:
    """Fixed packet layout bound to one protocol version byte"""

    name: str
    version: int
    body: struct.Struct
    axis_min: int
    axis_max: int
    sequence_bits: int
    has_flags: bool

    @property
    def size(self) -> int:
        """Total packet size including marker and version"""
        return _HEADER.size + self.body.size

    @property
    def sequence_modulus(self) -> int:
        """Number of distinct sequence values"""
        return 1 << self.sequence_bits

    @property
    def noise_threshold(self) -> int:
        """Resting-stick band scaled from the 8-bit reference to this layout"""
        return STICK_NOISE_THRESHOLD * self.axis_max // 127


# buttons, lt, rt, lx, ly, rx, ry, slot_hint, sequence -> 22 bytes
FULL_LAYOUT = WireLayout(
    name="full",
    version=2,
    body=struct.Struct("<HBBhhhhBI"),
    axis_min=-32768,
    axis_max=32767,
    sequence_bits=32,
    has_flags=False,
)

# buttons, lt, rt, lx, ly, rx, ry, slot_hint, sequence, flags -> 16 bytes
COMPACT_LAYOUT = WireLayout(
    name="compact",
    version=1,
    body=struct.Struct("<HBBbbbbBBB"),
    axis_min=-128,
    axis_max=127,
    sequence_bits=8,
    has_flags=True,
)

LAYOUTS: dict[str, WireLayout] = {
    FULL_LAYOUT.name: FULL_LAYOUT,
    COMPACT_LAYOUT.name: COMPACT_LAYOUT,
}


def layout_forName(name: str) -> WireLayout:
    """
    Resolve a wire layout from its configuration name

    Args:
        name: Layout name ("full" or "compact")

    Returns:
        Matching WireLayout

    Raises:
        ValueError: If the name is unknown
    """
    try:
        return LAYOUTS[name.lower()]
    except KeyError:
        raise ValueError(
            f"Unknown protocol layout '{name}'. Supported: {', '.join(sorted(LAYOUTS))}"
        ) from None


class StateCodec:
    """Encodes and decodes StateRecords for one wire layout.

    A codec only ever decodes packets carrying its own version byte. Packets
    from the other layout are rejected as VersionMismatch, never reinterpreted.
    """

    def __init__(self, layout: WireLayout = FULL_LAYOUT) -> None:
        """
        Initialize codec

        Args:
            layout: Wire layout this codec reads and writes
        """
        self.layout: WireLayout = layout

    @property
    def packet_size(self) -> int:
        """Fixed packet size for this codec's layout"""
        return self.layout.size

    def encode(self, record: StateRecord) -> bytes:
        """
        Serialize record into a fixed-size packet

        Args:
            record: State to serialize

        Returns:
            Packet bytes

        Raises:
            ValueError: If any field is outside the layout's range
        """
        self.record_validate(record)
        lt, rt = record.triggers
        lx, ly, rx, ry = record.axes
        fields: list[int] = [
            record.buttons, lt, rt, lx, ly, rx, ry, record.slot_hint, record.sequence,
        ]
        if self.layout.has_flags:
            fields.append(record.flags)
        return _HEADER.pack(FRAME_MARKER, self.layout.version) + self.layout.body.pack(*fields)

    def decode(self, data: bytes) -> StateRecord:
        """
        Parse a packet into a StateRecord

        Trailing bytes past the fixed packet size are ignored.

        Args:
            data: Raw datagram

        Returns:
            Decoded StateRecord

        Raises:
            FramingError: If data is shorter than the packet size
            BadMarker: If the frame marker does not match
            VersionMismatch: If the version byte differs from this layout's
        """
        if len(data) < self.packet_size:
            raise FramingError(len(data), self.packet_size)

        marker, version = _HEADER.unpack_from(data, 0)
        if marker != FRAME_MARKER:
            raise BadMarker(marker)
        if version != self.layout.version:
            raise VersionMismatch(version, self.layout.version)

        values = self.layout.body.unpack_from(data, _HEADER.size)
        buttons, lt, rt, lx, ly, rx, ry, slot_hint, sequence = values[:9]
        flags: int = values[9] if self.layout.has_flags else 0
        return StateRecord(
            buttons=buttons,
            triggers=(lt, rt),
            axes=(lx, ly, rx, ry),
            slot_hint=slot_hint,
            sequence=sequence,
            flags=flags,
        )

    def record_validate(self, record: StateRecord) -> None:
        """
        Check every field fits this layout

        Args:
            record: Record to check

        Raises:
            ValueError: Naming the first offending field
        """
        if len(record.triggers) != 2 or len(record.axes) != 4:
            raise ValueError("Record must carry exactly 2 triggers and 4 axes")
        _range_check("buttons", record.buttons, 0, 0xFFFF)
        for index, trigger in enumerate(record.triggers):
            _range_check(f"triggers[{index}]", trigger, 0, 0xFF)
        for index, axis in enumerate(record.axes):
            _range_check(f"axes[{index}]", axis, self.layout.axis_min, self.layout.axis_max)
        _range_check("slot_hint", record.slot_hint, 0, 0xFF)
        _range_check("sequence", record.sequence, 0, self.layout.sequence_modulus - 1)
        if self.layout.has_flags:
            _range_check("flags", record.flags, 0, 0xFF)
        elif record.flags:
            raise ValueError(f"Layout '{self.layout.name}' does not carry flags")


def _range_check(field: str, value: int, low: int, high: int) -> None:
    if not low <= value <= high:
        raise ValueError(f"{field}={value} outside [{low}, {high}]")
