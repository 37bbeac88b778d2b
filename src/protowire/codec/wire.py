"""Wire-level primitives for the Protocol Buffers binary format.

This module provides varint, zigzag, fixed-width and tag encoding, plus the
buffer classes the encoder and decoder are built on. Varints are base-128 with
the least-significant group first; fixed-width values are little-endian.
"""

from __future__ import annotations

import enum
import struct
from typing import NamedTuple, Union

from ..exceptions import MalformedVarint, TruncatedInput, UnsupportedWireType

Buffer = Union[bytes, bytearray, memoryview]

MAX_VARINT_BYTES = 10
UINT32_MASK = (1 << 32) - 1
UINT64_MASK = (1 << 64) - 1

# Legacy start/end group markers
_GROUP_WIRE_TYPES = (3, 4)


class WireType(enum.IntEnum):
    """Wire types supported on the byte boundary."""

    VARINT = 0
    FIXED64 = 1
    LENGTH_DELIMITED = 2
    FIXED32 = 5


class UnknownFieldRecord(NamedTuple):
    """A field with no descriptor in the consuming schema.

    ``data`` holds the exact bytes that followed the tag on the wire. For
    LENGTH_DELIMITED fields this includes the length prefix.
    """

    number: int
    wire_type: WireType
    data: bytes


def encode_varint(value: int) -> bytes:
    """Encode an unsigned 64-bit integer as a base-128 varint.

    Args:
        value: Integer in [0, 2^64 - 1]. Signed values must be converted
            (two's complement or zigzag) before calling.

    Returns:
        Encoded bytes (1-10 bytes)

    Raises:
        ValueError: If value is negative or wider than 64 bits

    Example:
        >>> encode_varint(300)
        b'\\xac\\x02'
    """
    if value < 0 or value > UINT64_MASK:
        raise ValueError(f"Varint value must be in [0, 2^64 - 1], got {value}")

    result = bytearray()
    while True:
        byte = value & 0x7F
        value >>= 7
        if value:
            result.append(byte | 0x80)
        else:
            result.append(byte)
            return bytes(result)


def decode_varint(data: Buffer, offset: int = 0) -> tuple[int, int]:
    """Decode a varint from ``data`` starting at ``offset``.

    Args:
        data: Buffer to decode from
        offset: Starting position in data

    Returns:
        Tuple of (decoded_value, bytes_consumed)

    Raises:
        TruncatedInput: If the buffer ends before the varint terminates
        MalformedVarint: If no terminating byte appears within 10 bytes
    """
    result = 0
    shift = 0
    position = offset
    end = len(data)

    while position - offset < MAX_VARINT_BYTES:
        if position >= end:
            raise TruncatedInput(f"Input ended inside a varint at offset {position}")
        byte = data[position]
        result |= (byte & 0x7F) << shift
        position += 1
        if not byte & 0x80:
            return result & UINT64_MASK, position - offset
        shift += 7

    raise MalformedVarint(
        f"Varint at offset {offset} does not terminate within {MAX_VARINT_BYTES} bytes"
    )


def varint_size(value: int) -> int:
    """Return the number of bytes ``encode_varint(value)`` produces."""
    if value < 0 or value > UINT64_MASK:
        raise ValueError(f"Varint value must be in [0, 2^64 - 1], got {value}")
    return max(1, (value.bit_length() + 6) // 7)


def zigzag_encode(value: int, bits: int = 64) -> int:
    """Map a signed integer onto an unsigned one, keeping small magnitudes small.

    Args:
        value: Signed integer that fits in ``bits``
        bits: 32 or 64

    Example:
        >>> [zigzag_encode(n) for n in (0, -1, 1, -2)]
        [0, 1, 2, 3]
    """
    return ((value << 1) ^ (value >> (bits - 1))) & ((1 << bits) - 1)


def zigzag_decode(value: int) -> int:
    """Inverse of :func:`zigzag_encode`."""
    return (value >> 1) ^ -(value & 1)


def to_signed(value: int, bits: int) -> int:
    """Reinterpret the low ``bits`` of an unsigned integer as two's complement."""
    value &= (1 << bits) - 1
    if value & (1 << (bits - 1)):
        return value - (1 << bits)
    return value


def encode_fixed32(value: int) -> bytes:
    """Encode an unsigned 32-bit integer as 4 little-endian bytes."""
    if value < 0 or value > UINT32_MASK:
        raise ValueError(f"fixed32 value must be in [0, 2^32 - 1], got {value}")
    return struct.pack("<I", value)


def encode_fixed64(value: int) -> bytes:
    """Encode an unsigned 64-bit integer as 8 little-endian bytes."""
    if value < 0 or value > UINT64_MASK:
        raise ValueError(f"fixed64 value must be in [0, 2^64 - 1], got {value}")
    return struct.pack("<Q", value)


def decode_fixed32(data: Buffer, offset: int = 0) -> tuple[int, int]:
    """Decode 4 little-endian bytes.

    Returns:
        Tuple of (value, bytes_consumed)

    Raises:
        TruncatedInput: If fewer than 4 bytes remain
    """
    if len(data) - offset < 4:
        raise TruncatedInput(f"Need 4 bytes for fixed32 at offset {offset}")
    return struct.unpack_from("<I", data, offset)[0], 4


def decode_fixed64(data: Buffer, offset: int = 0) -> tuple[int, int]:
    """Decode 8 little-endian bytes.

    Returns:
        Tuple of (value, bytes_consumed)

    Raises:
        TruncatedInput: If fewer than 8 bytes remain
    """
    if len(data) - offset < 8:
        raise TruncatedInput(f"Need 8 bytes for fixed64 at offset {offset}")
    return struct.unpack_from("<Q", data, offset)[0], 8


def pack_tag(field_number: int, wire_type: int) -> int:
    """Combine a field number and wire type into a tag value."""
    return (field_number << 3) | int(wire_type)


def unpack_tag(tag: int) -> tuple[int, WireType]:
    """Split a tag value into (field_number, wire_type).

    Raises:
        UnsupportedWireType: For group markers (3, 4) and undefined wire types
    """
    raw_wire_type = tag & 0x07
    if raw_wire_type in _GROUP_WIRE_TYPES:
        raise UnsupportedWireType(f"Group wire type {raw_wire_type} is not supported")
    try:
        wire_type = WireType(raw_wire_type)
    except ValueError:
        raise UnsupportedWireType(f"Undefined wire type {raw_wire_type}") from None
    return tag >> 3, wire_type


def encode_tag(field_number: int, wire_type: int) -> bytes:
    """Encode a field tag as a varint."""
    return encode_varint(pack_tag(field_number, wire_type))


class WireWriter:
    """Accumulates encoded fields into a byte buffer.

    Example:
        >>> writer = WireWriter()
        >>> writer.write_tag(1, WireType.VARINT)
        >>> writer.write_varint(150)
        >>> writer.to_bytes()
        b'\\x08\\x96\\x01'
    """

    def __init__(self) -> None:
        self._buffer = bytearray()

    def write_varint(self, value: int) -> None:
        self._buffer += encode_varint(value)

    def write_tag(self, field_number: int, wire_type: int) -> None:
        self._buffer += encode_tag(field_number, wire_type)

    def write_fixed32(self, value: int) -> None:
        self._buffer += encode_fixed32(value)

    def write_fixed64(self, value: int) -> None:
        self._buffer += encode_fixed64(value)

    def write_float(self, value: float) -> None:
        self._buffer += struct.pack("<f", value)

    def write_double(self, value: float) -> None:
        self._buffer += struct.pack("<d", value)

    def write_length_delimited(self, data: Buffer) -> None:
        """Write a varint length prefix followed by ``data``."""
        self._buffer += encode_varint(len(data))
        self._buffer += data

    def write_raw(self, data: Buffer) -> None:
        self._buffer += data

    def byte_length(self) -> int:
        return len(self._buffer)

    def to_bytes(self) -> bytes:
        return bytes(self._buffer)


class WireReader:
    """Reads encoded fields from a byte buffer, left to right.

    Every read either consumes exactly the bytes of one value or raises
    :class:`TruncatedInput`; the reader never backtracks.

    Example:
        >>> reader = WireReader(b"\\x08\\x96\\x01")
        >>> reader.read_tag()
        (1, <WireType.VARINT: 0>)
        >>> reader.read_varint()
        150
    """

    def __init__(self, data: Buffer) -> None:
        self._data = memoryview(data)
        self._position = 0

    def at_end(self) -> bool:
        return self._position >= len(self._data)

    def bytes_remaining(self) -> int:
        return len(self._data) - self._position

    def position(self) -> int:
        return self._position

    def read_varint(self) -> int:
        value, consumed = decode_varint(self._data, self._position)
        self._position += consumed
        return value

    def read_tag(self) -> tuple[int, WireType]:
        return unpack_tag(self.read_varint())

    def read_fixed32(self) -> int:
        value, consumed = decode_fixed32(self._data, self._position)
        self._position += consumed
        return value

    def read_fixed64(self) -> int:
        value, consumed = decode_fixed64(self._data, self._position)
        self._position += consumed
        return value

    def read_float(self) -> float:
        return float(struct.unpack("<f", self.read_bytes(4))[0])

    def read_double(self) -> float:
        return float(struct.unpack("<d", self.read_bytes(8))[0])

    def read_bytes(self, num_bytes: int) -> bytes:
        """Read exactly ``num_bytes`` raw bytes.

        Raises:
            TruncatedInput: If fewer bytes remain
        """
        if num_bytes > self.bytes_remaining():
            raise TruncatedInput(
                f"Need {num_bytes} bytes at offset {self._position}, "
                f"have {self.bytes_remaining()}"
            )
        start = self._position
        self._position += num_bytes
        return bytes(self._data[start : self._position])

    def read_length_delimited(self) -> bytes:
        """Read a varint length prefix and the payload it announces."""
        return self.read_bytes(self.read_varint())

    def skip_field(self, wire_type: WireType) -> bytes:
        """Consume one value of ``wire_type`` and return its raw bytes.

        For LENGTH_DELIMITED values the length prefix is part of the result,
        so the bytes can be written back verbatim after the tag.
        """
        start = self._position
        if wire_type is WireType.VARINT:
            self.read_varint()
        elif wire_type is WireType.FIXED64:
            self.read_bytes(8)
        elif wire_type is WireType.FIXED32:
            self.read_bytes(4)
        elif wire_type is WireType.LENGTH_DELIMITED:
            self.read_length_delimited()
        else:
            raise UnsupportedWireType(f"Cannot skip wire type {wire_type}")
        return bytes(self._data[start : self._position])
