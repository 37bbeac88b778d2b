"""Exception hierarchy for protowire.

This module defines all custom exceptions used throughout the package.
All exceptions inherit from ProtowireError for easy catching of any protowire-specific error.
"""

from __future__ import annotations

from typing import Sequence


class ProtowireError(Exception):
    """Base exception for all protowire errors."""

    pass


class SchemaError(ProtowireError):
    """Raised when a message schema is invalid or cannot be changed.

    Examples:
        - Field number out of range or reserved
        - Duplicate field number or name
        - Default value on a required or repeated field
        - Adding fields to a finalized schema
    """

    pass


class InvalidFieldNumber(SchemaError):
    """Field number is non-positive, too large, or inside the reserved range."""

    pass


class DuplicateFieldNumber(SchemaError):
    """Field number is already registered in the schema."""

    pass


class DuplicateFieldName(SchemaError):
    """Field name is already registered in the schema."""

    pass


class SchemaFinalized(SchemaError):
    """Schema was finalized and no longer accepts fields."""

    pass


class FieldError(ProtowireError):
    """Raised when a message field is read or written incorrectly.

    Examples:
        - Assigning a string to an integer field
        - Assigning a sequence to a non-repeated field
        - Addressing a field the schema does not declare
        - Reading a required field that was never set
    """

    pass


class TypeMismatch(FieldError):
    """Value does not match the kind or label of the field."""

    pass


class UnknownField(FieldError):
    """Schema has no field with the given number or name."""

    pass


class FieldNotSet(FieldError):
    """Required field was read before being set."""

    pass


class EncodeError(ProtowireError):
    """Raised when encoding a message fails.

    Examples:
        - Required field not set
        - Message encoded against a different schema than its own
    """

    pass


class MissingRequiredField(EncodeError):
    """One or more required fields are not set.

    Attributes:
        field_number: The lowest missing field number
        missing: Every missing field number, ascending
    """

    def __init__(self, missing: Sequence[int], message_name: str = "") -> None:
        self.missing = tuple(sorted(missing))
        self.field_number = self.missing[0]
        where = f" in {message_name}" if message_name else ""
        numbers = ", ".join(str(number) for number in self.missing)
        super().__init__(f"Missing required field(s){where}: {numbers}")


class DecodeError(ProtowireError):
    """Raised when decoding binary data fails.

    Examples:
        - Truncated data (insufficient bytes)
        - Varint longer than 10 bytes
        - Legacy group wire types
        - Wire type that does not fit a known field
        - Invalid UTF-8 in a string field
    """

    pass


class MalformedVarint(DecodeError):
    """Varint did not terminate within 10 bytes."""

    pass


class TruncatedInput(DecodeError):
    """Input ended in the middle of a field."""

    pass


class UnsupportedWireType(DecodeError):
    """Wire type is a legacy group marker or otherwise undefined."""

    pass


class WireTypeMismatch(DecodeError):
    """Wire type on the wire does not match the known field's kind."""

    pass


class RecursionLimitExceeded(DecodeError):
    """Embedded messages are nested deeper than the configured limit."""

    pass
