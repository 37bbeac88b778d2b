"""Field value validation for protowire messages.

Each scalar kind maps to a pydantic constrained type. Values assigned to a
message are validated through these types in strict mode, so ``"1"`` is not
accepted for an integer field and ``True`` is not accepted for an int32.
"""

from __future__ import annotations

import enum
import struct
from typing import Annotated, Any, Mapping, cast

from pydantic import Field, TypeAdapter, ValidationError

from ..codec.schema import INT32_MAX, INT32_MIN, EnumDefinition, FieldDescriptor, Kind, Schema
from ..exceptions import TypeMismatch

UINT32_MAX = (1 << 32) - 1
INT64_MIN = -(1 << 63)
INT64_MAX = (1 << 63) - 1
UINT64_MAX = (1 << 64) - 1


def BoundedInt(*, ge: int, le: int) -> Any:
    """Strict integer type limited to [ge, le]."""
    return Annotated[int, Field(strict=True, ge=ge, le=le)]


Int32 = BoundedInt(ge=INT32_MIN, le=INT32_MAX)
UInt32 = BoundedInt(ge=0, le=UINT32_MAX)
Int64 = BoundedInt(ge=INT64_MIN, le=INT64_MAX)
UInt64 = BoundedInt(ge=0, le=UINT64_MAX)
StrictBool = Annotated[bool, Field(strict=True)]
StrictFloat = Annotated[float, Field(strict=True)]
StrictStr = Annotated[str, Field(strict=True)]
StrictBytes = Annotated[bytes, Field(strict=True)]

_INT32_ADAPTER: TypeAdapter[int] = TypeAdapter(Int32)
_UINT32_ADAPTER: TypeAdapter[int] = TypeAdapter(UInt32)
_INT64_ADAPTER: TypeAdapter[int] = TypeAdapter(Int64)
_UINT64_ADAPTER: TypeAdapter[int] = TypeAdapter(UInt64)
_FLOAT_ADAPTER: TypeAdapter[float] = TypeAdapter(StrictFloat)

_ADAPTERS: dict[Kind, TypeAdapter[Any]] = {
    Kind.INT32: _INT32_ADAPTER,
    Kind.SINT32: _INT32_ADAPTER,
    Kind.SFIXED32: _INT32_ADAPTER,
    Kind.UINT32: _UINT32_ADAPTER,
    Kind.FIXED32: _UINT32_ADAPTER,
    Kind.INT64: _INT64_ADAPTER,
    Kind.SINT64: _INT64_ADAPTER,
    Kind.SFIXED64: _INT64_ADAPTER,
    Kind.UINT64: _UINT64_ADAPTER,
    Kind.FIXED64: _UINT64_ADAPTER,
    Kind.BOOL: TypeAdapter(StrictBool),
    Kind.FLOAT: _FLOAT_ADAPTER,
    Kind.DOUBLE: _FLOAT_ADAPTER,
    Kind.STRING: TypeAdapter(StrictStr),
    Kind.BYTES: TypeAdapter(StrictBytes),
}

_ZERO_VALUES: dict[Kind, Any] = {
    Kind.BOOL: False,
    Kind.FLOAT: 0.0,
    Kind.DOUBLE: 0.0,
    Kind.STRING: "",
    Kind.BYTES: b"",
}


def coerce_value(descriptor: FieldDescriptor, value: Any) -> Any:
    """Validate a single value for ``descriptor`` and return its stored form.

    For repeated fields this checks one element, not the whole sequence.

    Args:
        descriptor: Field the value is assigned to
        value: Candidate value

    Returns:
        The value as stored in the message (enum members become ints,
        mappings become messages, 32-bit floats are narrowed)

    Raises:
        TypeMismatch: If the value does not fit the field's kind
    """
    if descriptor.is_message:
        return _coerce_message(descriptor, value)
    if descriptor.is_enum:
        return _coerce_enum(descriptor, value)

    kind = cast(Kind, descriptor.kind)
    try:
        result = _ADAPTERS[kind].validate_python(value)
    except ValidationError as err:
        raise TypeMismatch(
            f"Field {descriptor.name}: expected {kind.proto_name}, got {type(value).__name__} "
            f"({err.errors()[0]['msg']})"
        ) from err

    if kind is Kind.FLOAT:
        return _narrow_float32(descriptor, result)
    if kind is Kind.DOUBLE:
        return float(result)
    if kind is Kind.STRING:
        try:
            result.encode("utf-8")
        except UnicodeEncodeError as err:
            raise TypeMismatch(f"Field {descriptor.name}: string is not valid UTF-8: {err}") from err
    return result


def default_value(descriptor: FieldDescriptor) -> Any:
    """Value read from an unset optional field.

    This is the declared default if any, otherwise the kind's zero value. Enums
    fall back to their first declared value. Message fields produce a new, empty
    message that is not attached to any container.
    """
    if descriptor.default is not None:
        return descriptor.default
    if descriptor.is_message:
        return cast(Schema, descriptor.kind).message_class()
    if descriptor.is_enum:
        return cast(EnumDefinition, descriptor.kind).default_value
    return _ZERO_VALUES.get(cast(Kind, descriptor.kind), 0)


def _coerce_enum(descriptor: FieldDescriptor, value: Any) -> int:
    enum_def = cast(EnumDefinition, descriptor.kind)
    if isinstance(value, enum.Enum):
        value = value.value
    if isinstance(value, str):
        try:
            return enum_def.value_of(value)
        except KeyError:
            raise TypeMismatch(
                f"Field {descriptor.name}: {value!r} is not a symbol of {descriptor.type_name}"
            ) from None
    try:
        return _INT32_ADAPTER.validate_python(value)
    except ValidationError as err:
        raise TypeMismatch(
            f"Field {descriptor.name}: expected {descriptor.type_name} value, "
            f"got {type(value).__name__}"
        ) from err


def _coerce_message(descriptor: FieldDescriptor, value: Any) -> Any:
    schema = cast(Schema, descriptor.kind)
    if not isinstance(value, type) and getattr(type(value), "schema", None) is schema:
        return value
    if isinstance(value, Mapping):
        return schema.message_class(value)
    raise TypeMismatch(
        f"Field {descriptor.name}: expected {descriptor.type_name} message, "
        f"got {type(value).__name__}"
    )


def _narrow_float32(descriptor: FieldDescriptor, value: float) -> float:
    try:
        return float(struct.unpack("<f", struct.pack("<f", value))[0])
    except (OverflowError, struct.error) as err:
        raise TypeMismatch(f"Field {descriptor.name}: {value} does not fit in a float") from err
