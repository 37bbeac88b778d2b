"""Schema registration for protowire messages.

This module provides the field descriptors, enum definitions and message
schemas that drive encoding and decoding. A schema is created empty by
:func:`begin_schema`, populated with :func:`add_field` and closed with
:func:`finalize`. Its identity is fixed at creation, so embedded-message fields
can reference a schema (including the schema being built) before its fields
are declared.
"""

from __future__ import annotations

import dataclasses
import enum
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Iterable, Iterator, Mapping, Union

from ..exceptions import (
    DuplicateFieldName,
    DuplicateFieldNumber,
    InvalidFieldNumber,
    SchemaError,
    SchemaFinalized,
    TypeMismatch,
)
from .wire import WireType

if TYPE_CHECKING:
    from ..models.base import Message

logger = logging.getLogger(__name__)

MIN_FIELD_NUMBER = 1
MAX_FIELD_NUMBER = (1 << 29) - 1
RESERVED_FIELD_NUMBERS = range(19000, 20000)

INT32_MIN = -(1 << 31)
INT32_MAX = (1 << 31) - 1


class Label(enum.Enum):
    """Field cardinality."""

    REQUIRED = "required"
    OPTIONAL = "optional"
    REPEATED = "repeated"


class Kind(enum.Enum):
    """Scalar field kinds and the wire type each is encoded with."""

    INT32 = ("int32", WireType.VARINT)
    INT64 = ("int64", WireType.VARINT)
    UINT32 = ("uint32", WireType.VARINT)
    UINT64 = ("uint64", WireType.VARINT)
    SINT32 = ("sint32", WireType.VARINT)
    SINT64 = ("sint64", WireType.VARINT)
    BOOL = ("bool", WireType.VARINT)
    FIXED32 = ("fixed32", WireType.FIXED32)
    SFIXED32 = ("sfixed32", WireType.FIXED32)
    FLOAT = ("float", WireType.FIXED32)
    FIXED64 = ("fixed64", WireType.FIXED64)
    SFIXED64 = ("sfixed64", WireType.FIXED64)
    DOUBLE = ("double", WireType.FIXED64)
    STRING = ("string", WireType.LENGTH_DELIMITED)
    BYTES = ("bytes", WireType.LENGTH_DELIMITED)

    def __init__(self, proto_name: str, wire_type: WireType) -> None:
        self.proto_name = proto_name
        self.wire_type = wire_type

    @classmethod
    def from_name(cls, proto_name: str) -> Kind:
        """Look up a kind by its .proto spelling (e.g. ``"sint64"``)."""
        for kind in cls:
            if kind.proto_name == proto_name:
                return kind
        raise SchemaError(f"Unknown scalar kind {proto_name!r}")


class EnumDefinition:
    """Symbolic names for signed 32-bit integer values.

    Several names may share one value. Integers without a name are still valid
    field values; the definition only provides the symbolic view.

    Example:
        >>> color = EnumDefinition("Color", {"RED": 0, "GREEN": 1, "BLUE": 2})
        >>> color.GREEN
        1
        >>> color.name_of(2)
        'BLUE'
        >>> color.name_of(7) is None
        True
    """

    def __init__(
        self, name: str, values: Mapping[str, int] | Iterable[tuple[str, int]]
    ) -> None:
        self.name = name
        self._values: dict[str, int] = {}
        self._names: dict[int, str] = {}

        items = values.items() if isinstance(values, Mapping) else values
        for symbol, number in items:
            if isinstance(number, bool) or not isinstance(number, int):
                raise SchemaError(f"Enum {name}.{symbol}: value must be an int, got {number!r}")
            if not INT32_MIN <= number <= INT32_MAX:
                raise SchemaError(f"Enum {name}.{symbol}: value {number} is outside int32")
            if symbol in self._values:
                raise SchemaError(f"Enum {name}: duplicate symbol {symbol}")
            self._values[symbol] = number
            # First declared name wins for aliased values
            self._names.setdefault(number, symbol)

    @classmethod
    def from_enum(cls, enum_type: type[enum.Enum], name: str | None = None) -> EnumDefinition:
        """Build a definition from a Python enum whose values are ints."""
        return cls(
            name or enum_type.__name__,
            [(symbol, member.value) for symbol, member in enum_type.__members__.items()],
        )

    def value_of(self, symbol: str) -> int:
        """Return the integer for ``symbol``.

        Raises:
            KeyError: If the symbol is not declared
        """
        return self._values[symbol]

    def name_of(self, number: int) -> str | None:
        """Return the first symbol declared for ``number``, or None."""
        return self._names.get(number)

    @property
    def default_value(self) -> int:
        """First declared value, or 0 for an empty definition."""
        for number in self._values.values():
            return number
        return 0

    def items(self) -> list[tuple[str, int]]:
        return list(self._values.items())

    def __getattr__(self, symbol: str) -> int:
        values = self.__dict__.get("_values", {})
        if symbol in values:
            return values[symbol]
        raise AttributeError(f"Enum {self.__dict__.get('name')!r} has no symbol {symbol!r}")

    def __contains__(self, item: object) -> bool:
        if isinstance(item, str):
            return item in self._values
        return item in self._names

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"EnumDefinition({self.name!r}, {self._values!r})"


FieldKind = Union[Kind, "Schema", EnumDefinition]


@dataclass(frozen=True)
class FieldDescriptor:
    """Schema information for a single field.

    Attributes:
        number: Field number, unique within the owning schema
        name: Field name, unique within the owning schema
        label: REQUIRED, OPTIONAL or REPEATED
        kind: A scalar Kind, a Schema (embedded message) or an EnumDefinition
        default: Declared default, only for OPTIONAL scalar and enum fields
    """

    number: int
    name: str
    label: Label
    kind: FieldKind
    default: Any = None

    def __post_init__(self) -> None:
        if not isinstance(self.label, Label):
            raise SchemaError(f"Field {self.name}: invalid label {self.label!r}")
        if not isinstance(self.kind, (Kind, Schema, EnumDefinition)):
            raise SchemaError(f"Field {self.name}: invalid kind {self.kind!r}")
        if not isinstance(self.name, str) or not self.name:
            raise SchemaError(f"Field {self.number}: name must be a non-empty string")

    @property
    def wire_type(self) -> WireType:
        if isinstance(self.kind, Schema):
            return WireType.LENGTH_DELIMITED
        if isinstance(self.kind, EnumDefinition):
            return WireType.VARINT
        return self.kind.wire_type

    @property
    def is_message(self) -> bool:
        return isinstance(self.kind, Schema)

    @property
    def is_enum(self) -> bool:
        return isinstance(self.kind, EnumDefinition)

    @property
    def is_repeated(self) -> bool:
        return self.label is Label.REPEATED

    @property
    def is_required(self) -> bool:
        return self.label is Label.REQUIRED

    @property
    def type_name(self) -> str:
        """Type as spelled in a .proto declaration."""
        if isinstance(self.kind, Kind):
            return self.kind.proto_name
        return self.kind.name


class Schema:
    """Field layout for one message type.

    Fields keep their declaration order; encoding walks them in ascending
    field-number order. After :meth:`finalize` the schema is read-only and can
    be shared freely between threads.

    Examples:
        ```python
        user = begin_schema("example.User")
        user.declare(Label.REQUIRED, Kind.STRING, "name", 1)
        user.declare(Label.OPTIONAL, Kind.INT32, "logins", 3)
        user.finalize()

        user.lookup_by_name("logins").number  # 3
        ```
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._fields: list[FieldDescriptor] = []
        self._by_number: dict[int, FieldDescriptor] = {}
        self._by_name: dict[str, FieldDescriptor] = {}
        self._ordered: tuple[FieldDescriptor, ...] | None = None
        self._finalized = False
        self._message_class: type[Message] | None = None

    @property
    def fields(self) -> tuple[FieldDescriptor, ...]:
        """Descriptors in declaration order."""
        return tuple(self._fields)

    @property
    def fields_by_number(self) -> tuple[FieldDescriptor, ...]:
        """Descriptors in ascending field-number order."""
        if self._ordered is not None:
            return self._ordered
        return tuple(sorted(self._fields, key=lambda descriptor: descriptor.number))

    @property
    def required_fields(self) -> tuple[FieldDescriptor, ...]:
        return tuple(d for d in self.fields_by_number if d.is_required)

    @property
    def is_finalized(self) -> bool:
        return self._finalized

    def add_field(self, descriptor: FieldDescriptor) -> FieldDescriptor:
        """Register a field.

        Args:
            descriptor: Field to add

        Returns:
            The registered descriptor (defaults normalized to the field's kind)

        Raises:
            SchemaFinalized: If the schema was already finalized
            InvalidFieldNumber: If the number is out of range or reserved
            DuplicateFieldNumber: If the number is already registered
            DuplicateFieldName: If the name is already registered
            SchemaError: If the default is not allowed or does not fit the kind
        """
        if self._finalized:
            raise SchemaFinalized(f"Schema {self.name} is finalized; cannot add {descriptor.name}")

        _check_field_number(self.name, descriptor.number)
        if descriptor.number in self._by_number:
            raise DuplicateFieldNumber(
                f"Schema {self.name}: field number {descriptor.number} is already used "
                f"by {self._by_number[descriptor.number].name}"
            )
        if descriptor.name in self._by_name:
            raise DuplicateFieldName(f"Schema {self.name}: field name {descriptor.name} is already used")

        descriptor = _normalize_default(descriptor)

        self._fields.append(descriptor)
        self._by_number[descriptor.number] = descriptor
        self._by_name[descriptor.name] = descriptor
        return descriptor

    def declare(
        self,
        label: Label | str,
        kind: Any,
        name: str,
        number: int,
        default: Any = None,
    ) -> FieldDescriptor:
        """Register a field from the positional declaration form.

        ``label`` and scalar ``kind`` may be given by their .proto spelling
        (``"optional"``, ``"int32"``). ``kind`` may also be a Schema, an
        EnumDefinition, or a Message subclass.
        """
        if isinstance(label, str):
            try:
                label = Label(label)
            except ValueError:
                raise SchemaError(f"Field {name}: unknown label {label!r}") from None
        return self.add_field(FieldDescriptor(number, name, label, _resolve_kind(kind), default))

    def finalize(self) -> Schema:
        """Close the schema for further field additions."""
        if not self._finalized:
            self._ordered = tuple(sorted(self._fields, key=lambda descriptor: descriptor.number))
            self._finalized = True
            logger.debug("Finalized schema %s with %d field(s)", self.name, len(self._fields))
        return self

    def lookup_by_number(self, number: int) -> FieldDescriptor | None:
        return self._by_number.get(number)

    def lookup_by_name(self, name: str) -> FieldDescriptor | None:
        return self._by_name.get(name)

    def bind(self, message_class: type[Message]) -> None:
        """Associate the class that decoded instances of this schema are built from."""
        if self._message_class is None:
            self._message_class = message_class

    @property
    def message_class(self) -> type[Message]:
        """Class used to instantiate this schema, created on first use if unbound."""
        if self._message_class is None:
            # Import here to avoid circular dependency
            from ..models.base import Message

            class_name = self.name.rsplit(".", 1)[-1]
            self._message_class = type(
                class_name, (Message,), {"schema": self, "__module__": Message.__module__}
            )
        return self._message_class

    def __contains__(self, key: object) -> bool:
        if isinstance(key, str):
            return key in self._by_name
        return key in self._by_number

    def __iter__(self) -> Iterator[FieldDescriptor]:
        return iter(self._fields)

    def __len__(self) -> int:
        return len(self._fields)

    def __repr__(self) -> str:
        state = "finalized" if self._finalized else "open"
        return f"<Schema {self.name} ({len(self._fields)} fields, {state})>"


def _check_field_number(schema_name: str, number: Any) -> None:
    if isinstance(number, bool) or not isinstance(number, int):
        raise InvalidFieldNumber(f"Schema {schema_name}: field number must be an int, got {number!r}")
    if number < MIN_FIELD_NUMBER or number > MAX_FIELD_NUMBER:
        raise InvalidFieldNumber(
            f"Schema {schema_name}: field number {number} is outside "
            f"[{MIN_FIELD_NUMBER}, {MAX_FIELD_NUMBER}]"
        )
    if number in RESERVED_FIELD_NUMBERS:
        raise InvalidFieldNumber(
            f"Schema {schema_name}: field number {number} is reserved "
            f"({RESERVED_FIELD_NUMBERS.start}-{RESERVED_FIELD_NUMBERS.stop - 1})"
        )


def _resolve_kind(kind: Any) -> FieldKind:
    if isinstance(kind, (Kind, Schema, EnumDefinition)):
        return kind
    if isinstance(kind, str):
        return Kind.from_name(kind)
    if isinstance(kind, type) and isinstance(getattr(kind, "schema", None), Schema):
        return kind.schema
    raise SchemaError(f"Cannot use {kind!r} as a field kind")


def _normalize_default(descriptor: FieldDescriptor) -> FieldDescriptor:
    if descriptor.default is None:
        return descriptor
    if descriptor.label is not Label.OPTIONAL:
        raise SchemaError(
            f"Field {descriptor.name}: defaults are only allowed on optional fields"
        )
    if descriptor.is_message:
        raise SchemaError(f"Field {descriptor.name}: message fields cannot have a default")

    # Import here to avoid circular dependency
    from ..models.fields import coerce_value

    try:
        default = coerce_value(descriptor, descriptor.default)
    except TypeMismatch as err:
        raise SchemaError(f"Field {descriptor.name}: invalid default: {err}") from err
    return dataclasses.replace(descriptor, default=default)


def begin_schema(qualified_name: str) -> Schema:
    """Create an empty schema usable immediately for forward references."""
    return Schema(qualified_name)


def add_field(schema: Schema, descriptor: FieldDescriptor) -> FieldDescriptor:
    """Register ``descriptor`` in ``schema``. See :meth:`Schema.add_field`."""
    return schema.add_field(descriptor)


def finalize(schema: Schema) -> Schema:
    """Close ``schema`` for further field additions."""
    return schema.finalize()


def lookup_by_number(schema: Schema, number: int) -> FieldDescriptor | None:
    return schema.lookup_by_number(number)


def lookup_by_name(schema: Schema, name: str) -> FieldDescriptor | None:
    return schema.lookup_by_name(name)
