"""Binary encoder for protowire messages.

This module provides the encode() function that converts a message instance
to the Protocol Buffers binary wire format.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable, cast

from ..exceptions import EncodeError
from .schema import FieldDescriptor, Kind, Schema
from .wire import UINT32_MASK, UINT64_MASK, WireWriter, zigzag_encode

if TYPE_CHECKING:
    from ..models.base import Message

logger = logging.getLogger(__name__)


def encode(message: Message, schema: Schema | None = None) -> bytes:
    """Encode a message to the binary wire format.

    Known fields are written in ascending field-number order, each repeated
    element as its own tag/value pair, followed by any unknown fields the
    message retained from decoding.

    Args:
        message: Message instance to encode
        schema: Schema to encode against (defaults to the message's own schema)

    Returns:
        Encoded bytes

    Raises:
        MissingRequiredField: If a required field is unset at any nesting level.
            No bytes are produced.
        EncodeError: If ``schema`` is not the message's schema

    Examples:
        ```python
        from protowire import Message, encode

        class User(Message):
            pass

        User.required("string", "name", 1)
        User.required("string", "email", 2)
        User.optional("int32", "logins", 3)
        User.finalize()

        encode(User(name="a", email="b"))  # b"\\x0a\\x01a\\x12\\x01b"
        ```
    """
    if schema is not None and schema is not type(message).schema:
        raise EncodeError(
            f"Cannot encode {type(message).__name__} against schema {schema.name}"
        )

    writer = WireWriter()
    _encode_message(writer, message)
    encoded = writer.to_bytes()

    logger.debug("Encoded %s into %d bytes", type(message).__name__, len(encoded))
    return encoded


def varint_value(kind: Kind, value: Any) -> int:
    """Unsigned integer written on the wire for a varint-kind value."""
    return _VARINT_TRANSFORMS[kind](value)


def _encode_message(writer: WireWriter, message: Message) -> None:
    message.validate_required()

    for descriptor, value in message.list_fields():
        if descriptor.is_repeated:
            for element in value:
                _encode_field(writer, descriptor, element)
        else:
            _encode_field(writer, descriptor, value)

    for record in message.unknown_fields():
        writer.write_tag(record.number, record.wire_type)
        writer.write_raw(record.data)


def _encode_field(writer: WireWriter, descriptor: FieldDescriptor, value: Any) -> None:
    """Encode a single tag/value pair.

    Args:
        writer: WireWriter to write to
        descriptor: Schema information for the field
        value: Field value (one element for repeated fields)
    """
    writer.write_tag(descriptor.number, descriptor.wire_type)

    # Embedded message: length prefix, then the nested encoding
    if descriptor.is_message:
        nested = WireWriter()
        _encode_message(nested, value)
        writer.write_length_delimited(nested.to_bytes())
        return

    # Enum: int32 on the wire, named or not
    if descriptor.is_enum:
        writer.write_varint(value & UINT64_MASK)
        return

    kind = cast(Kind, descriptor.kind)

    if kind in _VARINT_TRANSFORMS:
        writer.write_varint(_VARINT_TRANSFORMS[kind](value))
    elif kind is Kind.FIXED32:
        writer.write_fixed32(value)
    elif kind is Kind.SFIXED32:
        writer.write_fixed32(value & UINT32_MASK)
    elif kind is Kind.FIXED64:
        writer.write_fixed64(value)
    elif kind is Kind.SFIXED64:
        writer.write_fixed64(value & UINT64_MASK)
    elif kind is Kind.FLOAT:
        writer.write_float(value)
    elif kind is Kind.DOUBLE:
        writer.write_double(value)
    elif kind is Kind.STRING:
        writer.write_length_delimited(value.encode("utf-8"))
    elif kind is Kind.BYTES:
        writer.write_length_delimited(value)
    else:
        raise EncodeError(f"Field {descriptor.name}: unsupported kind {kind}")


# Signed int32/int64 are written as 64-bit two's complement, so negative
# values always take 10 bytes; sint kinds use zigzag instead.
_VARINT_TRANSFORMS: dict[Kind, Callable[[Any], int]] = {
    Kind.INT32: lambda value: value & UINT64_MASK,
    Kind.INT64: lambda value: value & UINT64_MASK,
    Kind.UINT32: lambda value: value,
    Kind.UINT64: lambda value: value,
    Kind.SINT32: lambda value: zigzag_encode(value, 32),
    Kind.SINT64: lambda value: zigzag_encode(value, 64),
    Kind.BOOL: lambda value: 1 if value else 0,
}
