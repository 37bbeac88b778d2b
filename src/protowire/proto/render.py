"""Render registered schemas as .proto declarations.

This module produces proto2 text for a schema and every message and enum it
references, which is useful for documentation and for checking a hand-written
schema against its .proto source.
"""

from __future__ import annotations

from typing import Any

from ..codec.schema import EnumDefinition, FieldDescriptor, Kind, Schema
from ..exceptions import SchemaError


def to_proto_schema(
    schema: Schema | type[Any],
    *,
    package: str = "",
) -> str:
    """Generate proto2 text for a schema and everything it references.

    Enums come first, then messages in the order they are first reached from
    ``schema``. Nested names are flattened to the last component of their
    qualified name.

    Args:
        schema: Schema or Message subclass to render
        package: Optional package name

    Returns:
        .proto source as a string

    Raises:
        SchemaError: If ``schema`` is neither a Schema nor a Message subclass

    Example:
        >>> print(to_proto_schema(User, package="example"))
        syntax = "proto2";
        package example;
        <BLANKLINE>
        message User {
          required string name = 1;
          required string email = 2;
          optional int32 logins = 3;
        }
    """
    root = _as_schema(schema)

    messages: list[Schema] = []
    enums: list[EnumDefinition] = []
    _collect(root, messages, enums)

    lines = ['syntax = "proto2";']
    if package:
        lines.append(f"package {package};")
    lines.append("")

    for enum_def in enums:
        lines.extend(_enum_to_proto(enum_def))
        lines.append("")

    for index, message in enumerate(messages):
        if index:
            lines.append("")
        lines.append(f"message {_short_name(message.name)} {{")
        for descriptor in message.fields:
            lines.append(f"  {_field_to_proto(descriptor)}")
        lines.append("}")

    return "\n".join(lines)


def _as_schema(schema: Any) -> Schema:
    if isinstance(schema, Schema):
        return schema
    if isinstance(schema, type) and isinstance(getattr(schema, "schema", None), Schema):
        return schema.schema
    raise SchemaError(f"Cannot render {schema!r}: expected a Schema or Message subclass")


def _collect(schema: Schema, messages: list[Schema], enums: list[EnumDefinition]) -> None:
    if any(seen is schema for seen in messages):
        return
    messages.append(schema)
    for descriptor in schema.fields:
        if isinstance(descriptor.kind, EnumDefinition):
            if not any(seen is descriptor.kind for seen in enums):
                enums.append(descriptor.kind)
        elif isinstance(descriptor.kind, Schema):
            _collect(descriptor.kind, messages, enums)


def _field_to_proto(descriptor: FieldDescriptor) -> str:
    type_name = descriptor.type_name
    if not isinstance(descriptor.kind, Kind):
        type_name = _short_name(type_name)

    line = f"{descriptor.label.value} {type_name} {descriptor.name} = {descriptor.number}"
    if descriptor.default is not None:
        line += f" [default = {_default_to_proto(descriptor)}]"
    return line + ";"


def _default_to_proto(descriptor: FieldDescriptor) -> str:
    """Format a default value the way protoc parses it back."""
    value = descriptor.default
    if isinstance(descriptor.kind, EnumDefinition):
        return descriptor.kind.name_of(value) or str(value)
    if descriptor.kind is Kind.BOOL:
        return "true" if value else "false"
    if descriptor.kind is Kind.STRING:
        return '"' + "".join(_escape_byte(byte) for byte in value.encode("utf-8")) + '"'
    if descriptor.kind is Kind.BYTES:
        return '"' + "".join(_escape_byte(byte) for byte in value) + '"'
    if isinstance(value, float):
        if value != value:
            return "nan"
        if value in (float("inf"), float("-inf")):
            return "inf" if value > 0 else "-inf"
        return repr(value)
    return str(value)


def _escape_byte(byte: int) -> str:
    char = chr(byte)
    if char in ('"', "\\"):
        return "\\" + char
    if 0x20 <= byte < 0x7F:
        return char
    return f"\\{byte:03o}"


def _enum_to_proto(enum_def: EnumDefinition) -> list[str]:
    """Convert an EnumDefinition to a proto enum block."""
    lines = [f"enum {_short_name(enum_def.name)} {{"]
    values = [number for _, number in enum_def.items()]
    if len(values) != len(set(values)):
        lines.append("  option allow_alias = true;")
    for symbol, number in enum_def.items():
        lines.append(f"  {symbol} = {number};")
    lines.append("}")
    return lines


def _short_name(qualified_name: str) -> str:
    return qualified_name.rsplit(".", 1)[-1]
