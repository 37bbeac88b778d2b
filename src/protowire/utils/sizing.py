"""Message size calculation utilities.

This module provides functions to calculate the encoded size of messages
without actually encoding them.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, cast

from ..codec.encoder import varint_value
from ..codec.schema import FieldDescriptor, Kind
from ..codec.wire import pack_tag, varint_size

if TYPE_CHECKING:
    from ..models.base import Message

_FIXED_SIZES = {
    Kind.FIXED32: 4,
    Kind.SFIXED32: 4,
    Kind.FLOAT: 4,
    Kind.FIXED64: 8,
    Kind.SFIXED64: 8,
    Kind.DOUBLE: 8,
}


def encoded_size(message: Message) -> int:
    """Calculate the encoded size of a message in bytes.

    The result equals ``len(encode(message))`` for a message whose required
    fields are set. Required fields are not checked here, so partially built
    messages can be measured too.

    Args:
        message: Message instance to measure

    Returns:
        Size in bytes

    Example:
        >>> user = User(name="a", email="b")
        >>> encoded_size(user)
        6
    """
    total = sum(field_sizes(message).values())
    for record in message.unknown_fields():
        total += varint_size(pack_tag(record.number, record.wire_type)) + len(record.data)
    return total


def field_sizes(message: Message) -> dict[str, int]:
    """Get the encoded size in bytes of each set field, tags included.

    Args:
        message: Message instance to analyze

    Returns:
        Dictionary mapping field names to their size in bytes

    Example:
        >>> field_sizes(User(name="a", email="bc"))
        {'name': 3, 'email': 4}
    """
    sizes: dict[str, int] = {}
    for descriptor, value in message.list_fields():
        tag_size = varint_size(pack_tag(descriptor.number, descriptor.wire_type))
        if descriptor.is_repeated:
            sizes[descriptor.name] = sum(
                tag_size + _value_size(descriptor, element) for element in value
            )
        else:
            sizes[descriptor.name] = tag_size + _value_size(descriptor, value)
    return sizes


def _value_size(descriptor: FieldDescriptor, value: Any) -> int:
    if descriptor.is_message:
        return _length_delimited_size(encoded_size(value))
    if descriptor.is_enum:
        return varint_size(varint_value(Kind.INT32, value))

    kind = cast(Kind, descriptor.kind)
    if kind in _FIXED_SIZES:
        return _FIXED_SIZES[kind]
    if kind is Kind.STRING:
        return _length_delimited_size(len(value.encode("utf-8")))
    if kind is Kind.BYTES:
        return _length_delimited_size(len(value))
    return varint_size(varint_value(kind, value))


def _length_delimited_size(length: int) -> int:
    return varint_size(length) + length
