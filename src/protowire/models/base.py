"""Base message class and per-instance field storage.

This module provides the Message class that all protowire messages inherit from.
Each subclass owns a forward-declared Schema; fields are declared against it
with the class-level ``required``/``optional``/``repeated`` helpers and the
schema is closed with ``finalize``.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any, BinaryIO, ClassVar, Mapping, TypeVar, Union, cast

from ..codec.config import CodecConfig
from ..codec.decoder import decode, merge
from ..codec.encoder import encode
from ..codec.schema import FieldDescriptor, Label, Schema, begin_schema
from ..codec.wire import UnknownFieldRecord
from ..exceptions import FieldNotSet, MissingRequiredField, SchemaError, TypeMismatch, UnknownField
from .fields import coerce_value, default_value
from .repeated import RepeatedField

FieldKey = Union[int, str]
M = TypeVar("M", bound="Message")


class Message:
    """Base class for all protowire messages.

    Subclasses get an empty schema at class-creation time, named after
    ``full_name`` if set, otherwise the class ``__qualname__``. Because the
    schema exists before any field is declared, fields may reference the class
    itself or classes declared later.

    Examples:
        ```python
        class User(Message):
            full_name = "example.User"

        User.required("string", "name", 1)
        User.required("string", "email", 2)
        User.optional("int32", "logins", 3)
        User.finalize()

        User(name="a", email="b").serialize_to_bytes()  # b"\\n\\x01a\\x12\\x01b"
        User.parse(b"\\n\\x01a\\x12\\x01b").logins  # 0
        ```

    Attributes:
        schema: Field layout shared by all instances of the class
        full_name: Qualified schema name (optional, defaults to ``__qualname__``)
    """

    schema: ClassVar[Schema | None] = None
    full_name: ClassVar[str | None] = None

    def __init_subclass__(cls, **kwargs: Any) -> None:
        """Hook called when a subclass is created.

        Binds the subclass to a schema given explicitly as a class attribute,
        or begins a new one. A subclass of a declared message that sets neither
        ``schema`` nor ``full_name`` shares its parent's schema.
        """
        super().__init_subclass__(**kwargs)

        schema = cls.__dict__.get("schema")
        if schema is None:
            if cls.schema is not None and "full_name" not in cls.__dict__:
                return
            schema = begin_schema(cls.__dict__.get("full_name") or cls.__qualname__)
            cls.schema = schema
        elif not isinstance(schema, Schema):
            raise SchemaError(f"{cls.__name__}.schema must be a Schema, got {schema!r}")
        schema.bind(cls)

    # Schema declaration

    @classmethod
    def required(cls, kind: Any, name: str, number: int) -> FieldDescriptor:
        return cls._schema().declare(Label.REQUIRED, kind, name, number)

    @classmethod
    def optional(cls, kind: Any, name: str, number: int, default: Any = None) -> FieldDescriptor:
        return cls._schema().declare(Label.OPTIONAL, kind, name, number, default)

    @classmethod
    def repeated(cls, kind: Any, name: str, number: int) -> FieldDescriptor:
        return cls._schema().declare(Label.REPEATED, kind, name, number)

    @classmethod
    def finalize(cls: type[M]) -> type[M]:
        """Close the schema; fields can no longer be added."""
        cls._schema().finalize()
        return cls

    @classmethod
    def _schema(cls) -> Schema:
        if cls.schema is None:
            raise SchemaError("Message has no schema; subclass Message to declare one")
        return cls.schema

    # Construction

    def __init__(self, fields: Mapping[FieldKey, Any] | None = None, /, **kwargs: Any) -> None:
        """Create a message, optionally populated from a field map.

        The map is positional-only, so a schema field called ``fields`` can
        still be passed by keyword. Fields whose names collide with Message
        attributes (``get``, ``clear``, ``schema``, ...) are reachable through
        ``get``/``set_scalar`` and the keyword form, but not as attributes.

        Args:
            fields: Mapping of field name or number to value
            **kwargs: Field values by name

        Raises:
            UnknownField: If a key names no field of the schema
            TypeMismatch: If a value does not fit its field
        """
        self._schema()
        object.__setattr__(self, "_values", {})
        object.__setattr__(self, "_unknown", [])

        initial: dict[FieldKey, Any] = dict(fields or {})
        initial.update(kwargs)
        for key, value in initial.items():
            self.set_scalar(key, value)

    # Field access

    def set_scalar(self, key: FieldKey, value: Any) -> None:
        """Set a field's value.

        For repeated fields ``value`` must be a sequence and replaces the current
        elements.

        Raises:
            UnknownField: If the schema has no such field
            TypeMismatch: If the value does not fit the field's kind or label
        """
        descriptor = self._descriptor(key)
        if descriptor.is_repeated:
            if isinstance(value, (str, bytes, bytearray, Mapping)) or not isinstance(
                value, Iterable
            ):
                raise TypeMismatch(
                    f"Field {descriptor.name} is repeated; expected a sequence, "
                    f"got {type(value).__name__}"
                )
            self._values[descriptor.number] = RepeatedField(descriptor, value)
            return
        self._values[descriptor.number] = coerce_value(descriptor, value)

    def get(self, key: FieldKey) -> Any:
        """Return a field's value.

        Unset optional fields read as their default (or the kind's zero value).
        Repeated fields return their live, possibly empty, sequence.

        Raises:
            UnknownField: If the schema has no such field
            FieldNotSet: If the field is required and not set
        """
        descriptor = self._descriptor(key)
        if descriptor.is_repeated:
            return self._repeated(descriptor)
        try:
            return self._values[descriptor.number]
        except KeyError:
            pass
        if descriptor.is_required:
            raise FieldNotSet(f"Required field {descriptor.name} of {self._schema().name} is not set")
        return default_value(descriptor)

    def append_repeated(self, key: FieldKey, value: Any) -> None:
        """Append one element to a repeated field.

        Raises:
            UnknownField: If the schema has no such field
            TypeMismatch: If the field is not repeated or the value does not fit
        """
        descriptor = self._descriptor(key)
        if not descriptor.is_repeated:
            raise TypeMismatch(f"Field {descriptor.name} is not repeated")
        self._repeated(descriptor).append(value)

    def is_set(self, key: FieldKey) -> bool:
        """Presence query; repeated fields are set when non-empty."""
        descriptor = self._descriptor(key)
        value = self._values.get(descriptor.number)
        if descriptor.is_repeated:
            return bool(value)
        return descriptor.number in self._values

    def clear_field(self, key: FieldKey) -> None:
        self._values.pop(self._descriptor(key).number, None)

    def clear(self) -> None:
        """Unset every field and drop retained unknown fields."""
        self._values.clear()
        self._unknown.clear()

    def list_fields(self) -> list[tuple[FieldDescriptor, Any]]:
        """Return (descriptor, value) for every set field, by ascending number."""
        result = []
        for descriptor in self._schema().fields_by_number:
            value = self._values.get(descriptor.number)
            if descriptor.is_repeated:
                if value:
                    result.append((descriptor, value))
            elif descriptor.number in self._values:
                result.append((descriptor, value))
        return result

    def validate_required(self) -> None:
        """Check that every required field is set.

        Raises:
            MissingRequiredField: Listing all missing numbers in ascending order
        """
        schema = self._schema()
        missing = [d.number for d in schema.required_fields if d.number not in self._values]
        if missing:
            raise MissingRequiredField(missing, schema.name)

    def is_initialized(self) -> bool:
        try:
            self.validate_required()
        except MissingRequiredField:
            return False
        return True

    def unknown_fields(self) -> tuple[UnknownFieldRecord, ...]:
        """Fields retained by the decoder that the schema does not declare."""
        return tuple(self._unknown)

    def _append_unknown(self, record: UnknownFieldRecord) -> None:
        self._unknown.append(record)

    def to_dict(self) -> dict[str, Any]:
        """Set fields as a plain dict keyed by field name, recursively."""
        result: dict[str, Any] = {}
        for descriptor, value in self.list_fields():
            if descriptor.is_message and descriptor.is_repeated:
                result[descriptor.name] = [item.to_dict() for item in value]
            elif descriptor.is_message:
                result[descriptor.name] = value.to_dict()
            elif descriptor.is_repeated:
                result[descriptor.name] = list(value)
            else:
                result[descriptor.name] = value
        return result

    # Serialization

    def serialize_to_bytes(self) -> bytes:
        return encode(self)

    def serialize(self, output: BinaryIO) -> int:
        """Write the encoded message to ``output``.

        Returns:
            Number of bytes written
        """
        data = encode(self)
        output.write(data)
        return len(data)

    @classmethod
    def parse(cls: type[M], data: bytes, config: CodecConfig | None = None) -> M:
        """Decode ``data`` into a new instance of this class."""
        return decode(data, cls, config)

    def merge_from_bytes(self, data: bytes, config: CodecConfig | None = None) -> None:
        """Decode ``data`` and merge it into this message.

        The message is left unchanged if decoding fails.
        """
        merge(self, data, config)

    def merge_from(self, other: Message) -> None:
        """Merge set fields of ``other`` into this message.

        Singular scalars are overwritten, repeated fields are extended, embedded
        messages are merged recursively and unknown fields are appended.
        """
        if other.schema is not self.schema:
            raise TypeMismatch(f"Cannot merge {other.schema!r} into {self.schema!r}")
        for descriptor, value in other.list_fields():
            if descriptor.is_repeated and descriptor.is_message:
                self._repeated(descriptor).extend(_copy_message(descriptor, item) for item in value)
            elif descriptor.is_repeated:
                self._repeated(descriptor).extend(value)
            elif descriptor.is_message:
                target = self._values.get(descriptor.number)
                if target is None:
                    self._values[descriptor.number] = _copy_message(descriptor, value)
                else:
                    target.merge_from(value)
            else:
                self._values[descriptor.number] = value
        self._unknown.extend(other._unknown)

    # Helpers

    def _descriptor(self, key: FieldKey) -> FieldDescriptor:
        schema = self._schema()
        descriptor = None
        if isinstance(key, str):
            descriptor = schema.lookup_by_name(key)
        elif isinstance(key, int) and not isinstance(key, bool):
            descriptor = schema.lookup_by_number(key)
        if descriptor is None:
            raise UnknownField(f"{schema.name} has no field {key!r}")
        return descriptor

    def _repeated(self, descriptor: FieldDescriptor) -> RepeatedField:
        values = self._values.get(descriptor.number)
        if values is None:
            values = RepeatedField(descriptor)
            self._values[descriptor.number] = values
        return values

    def __getattr__(self, name: str) -> Any:
        schema = type(self).schema
        descriptor = None
        if not name.startswith("_") and schema is not None:
            descriptor = schema.lookup_by_name(name)
        if descriptor is None:
            raise AttributeError(f"{type(self).__name__!r} object has no attribute {name!r}")
        return self.get(descriptor.number)

    def __setattr__(self, name: str, value: Any) -> None:
        if name.startswith("_"):
            object.__setattr__(self, name, value)
            return
        self.set_scalar(name, value)

    def __delattr__(self, name: str) -> None:
        if name.startswith("_"):
            object.__delattr__(self, name)
            return
        self.clear_field(name)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Message):
            return NotImplemented
        if type(self).schema is not type(other).schema:
            return False
        return self._comparable() == other._comparable()

    __hash__ = None  # type: ignore[assignment]

    def _comparable(self) -> tuple[Any, ...]:
        fields = tuple((descriptor.number, value) for descriptor, value in self.list_fields())
        return fields, tuple(self._unknown)

    def __repr__(self) -> str:
        parts = [f"{descriptor.name}={value!r}" for descriptor, value in self.list_fields()]
        if self._unknown:
            parts.append(f"<{len(self._unknown)} unknown>")
        return f"{type(self).__name__}({', '.join(parts)})"


def _copy_message(descriptor: FieldDescriptor, value: Message) -> Message:
    copy = cast(Schema, descriptor.kind).message_class()
    copy.merge_from(value)
    return copy
