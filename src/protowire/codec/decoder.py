"""Binary decoder for protowire messages.

This module provides the decode() function that converts wire-format bytes
back to a message instance, and merge() for decoding into an existing one.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable, TypeVar, cast, overload

from ..exceptions import DecodeError, RecursionLimitExceeded, WireTypeMismatch
from .config import DEFAULT_CONFIG, CodecConfig
from .schema import FieldDescriptor, Kind, Schema
from .wire import UINT32_MASK, UnknownFieldRecord, WireReader, to_signed, zigzag_decode

if TYPE_CHECKING:
    from ..models.base import Message

logger = logging.getLogger(__name__)

M = TypeVar("M", bound="Message")


@overload
def decode(data: bytes, schema: type[M], config: CodecConfig | None = None) -> M: ...


@overload
def decode(data: bytes, schema: Schema, config: CodecConfig | None = None) -> Message: ...


def decode(
    data: bytes,
    schema: Schema | type[Message],
    config: CodecConfig | None = None,
) -> Message:
    """Decode wire-format bytes into a new message.

    The input is consumed exactly once, left to right. Fields the schema does
    not declare are kept as unknown fields and written back on re-encode.
    Required fields are not checked; call ``validate_required()`` on the
    result when that matters.

    Args:
        data: Encoded message (no outer length prefix)
        schema: Schema or Message subclass to decode against
        config: Decoding limits and policies (defaults to CodecConfig())

    Returns:
        Decoded message instance

    Raises:
        TruncatedInput: If the data ends in the middle of a field
        MalformedVarint: If a varint runs past 10 bytes
        UnsupportedWireType: If a tag carries a group or undefined wire type
        WireTypeMismatch: If a known field arrives with the wrong wire type
        RecursionLimitExceeded: If messages nest deeper than the configured limit
        DecodeError: For any other malformed input (e.g. invalid UTF-8)

    Examples:
        ```python
        from protowire import decode

        user = decode(b"\\x0a\\x01a\\x12\\x01b", User)
        user.validate_required()
        user.is_set("logins")  # False
        user.logins  # 0
        ```
    """
    config = config or DEFAULT_CONFIG
    message_class = schema.message_class if isinstance(schema, Schema) else schema
    message = message_class()

    _decode_into(message, WireReader(data), config, depth=0)

    logger.debug("Decoded %s from %d bytes", message_class.__name__, len(data))
    return message


def merge(message: Message, data: bytes, config: CodecConfig | None = None) -> None:
    """Decode ``data`` and merge the result into ``message``.

    Decoding happens into a fresh instance first, so ``message`` is unchanged
    if the data is malformed.
    """
    decoded = decode(data, type(message), config)
    message.merge_from(decoded)


def _decode_into(message: Message, reader: WireReader, config: CodecConfig, depth: int) -> None:
    schema = message._schema()

    while not reader.at_end():
        number, wire_type = reader.read_tag()
        if number == 0:
            raise DecodeError(f"Invalid field number 0 at offset {reader.position()}")

        descriptor = schema.lookup_by_number(number)
        if descriptor is None:
            raw = reader.skip_field(wire_type)
            if not config.discard_unknown_fields:
                message._append_unknown(UnknownFieldRecord(number, wire_type, raw))
                logger.debug(
                    "Retained unknown field %d (%s) in %s", number, wire_type.name, schema.name
                )
            continue

        if wire_type is not descriptor.wire_type:
            raise WireTypeMismatch(
                f"Field {descriptor.name} ({number}) of {schema.name} expects "
                f"{descriptor.wire_type.name}, got {wire_type.name}"
            )

        value = _decode_field(reader, descriptor, config, depth)

        if descriptor.is_repeated:
            message.append_repeated(number, value)
        elif descriptor.is_message and message.is_set(number):
            # A singular message seen twice merges
            message.get(number).merge_from(value)
        else:
            message.set_scalar(number, value)


def _decode_field(
    reader: WireReader, descriptor: FieldDescriptor, config: CodecConfig, depth: int
) -> Any:
    """Decode a single field value.

    Args:
        reader: WireReader positioned just after the field's tag
        descriptor: Schema information for the field
        config: Active decoding configuration
        depth: Current embedded-message nesting depth

    Returns:
        Decoded field value
    """
    # Embedded message
    if descriptor.is_message:
        if depth >= config.recursion_limit:
            raise RecursionLimitExceeded(
                f"Field {descriptor.name}: messages nested deeper than {config.recursion_limit}"
            )
        payload = reader.read_length_delimited()
        nested = cast(Schema, descriptor.kind).message_class()
        _decode_into(nested, WireReader(payload), config, depth + 1)
        return nested

    # Enum: kept as an int even without a matching symbol
    if descriptor.is_enum:
        return to_signed(reader.read_varint(), 32)

    kind = cast(Kind, descriptor.kind)

    if kind is Kind.STRING:
        raw = reader.read_length_delimited()
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise DecodeError(f"Field {descriptor.name}: invalid UTF-8 encoding: {e}") from e

    return _SCALAR_READERS[kind](reader)


_SCALAR_READERS: dict[Kind, Callable[[WireReader], Any]] = {
    Kind.INT32: lambda reader: to_signed(reader.read_varint(), 32),
    Kind.INT64: lambda reader: to_signed(reader.read_varint(), 64),
    Kind.UINT32: lambda reader: reader.read_varint() & UINT32_MASK,
    Kind.UINT64: lambda reader: reader.read_varint(),
    Kind.SINT32: lambda reader: zigzag_decode(reader.read_varint() & UINT32_MASK),
    Kind.SINT64: lambda reader: zigzag_decode(reader.read_varint()),
    Kind.BOOL: lambda reader: reader.read_varint() != 0,
    Kind.FIXED32: lambda reader: reader.read_fixed32(),
    Kind.SFIXED32: lambda reader: to_signed(reader.read_fixed32(), 32),
    Kind.FIXED64: lambda reader: reader.read_fixed64(),
    Kind.SFIXED64: lambda reader: to_signed(reader.read_fixed64(), 64),
    Kind.FLOAT: lambda reader: reader.read_float(),
    Kind.DOUBLE: lambda reader: reader.read_double(),
    Kind.BYTES: lambda reader: reader.read_length_delimited(),
}
