"""protowire: Protocol Buffers wire-format codec

A Python library for schema-driven binary serialization compatible with the
Protocol Buffers binary wire format. Schemas are declared at runtime with a
small builder API; messages are validated on assignment and round-trip any
data their schema does not know about.

Key Features:
- Declarative schema registration with forward references
- Pydantic-validated field values
- Unknown-field preservation for forward compatibility
- Pure Python implementation (no protoc or C++ dependencies)

Quick Start:
    >>> from protowire import Message
    >>>
    >>> class User(Message):
    ...     full_name = "example.User"
    >>>
    >>> _ = User.required("string", "name", 1)
    >>> _ = User.required("string", "email", 2)
    >>> _ = User.optional("int32", "logins", 3)
    >>> _ = User.finalize()
    >>>
    >>> data = User(name="a", email="b").serialize_to_bytes()
    >>> decoded = User.parse(data)
"""

from __future__ import annotations

from .codec import (
    CodecConfig,
    EnumDefinition,
    FieldDescriptor,
    Kind,
    Label,
    Schema,
    UnknownFieldRecord,
    WireType,
    add_field,
    begin_schema,
    decode,
    encode,
    finalize,
    lookup_by_name,
    lookup_by_number,
    merge,
)
from .exceptions import (
    DecodeError,
    DuplicateFieldName,
    DuplicateFieldNumber,
    EncodeError,
    FieldError,
    FieldNotSet,
    InvalidFieldNumber,
    MalformedVarint,
    MissingRequiredField,
    ProtowireError,
    RecursionLimitExceeded,
    SchemaError,
    SchemaFinalized,
    TruncatedInput,
    TypeMismatch,
    UnknownField,
    UnsupportedWireType,
    WireTypeMismatch,
)
from .models import Message, RepeatedField
from .proto import to_proto_schema
from .utils import encoded_size, field_sizes

__version__ = "0.1.0"

__all__ = [
    # Core API
    "Message",
    "RepeatedField",
    "encode",
    "decode",
    "merge",
    "CodecConfig",
    # Schema
    "Schema",
    "FieldDescriptor",
    "EnumDefinition",
    "Kind",
    "Label",
    "WireType",
    "UnknownFieldRecord",
    "begin_schema",
    "add_field",
    "finalize",
    "lookup_by_number",
    "lookup_by_name",
    # Exceptions
    "ProtowireError",
    "SchemaError",
    "InvalidFieldNumber",
    "DuplicateFieldNumber",
    "DuplicateFieldName",
    "SchemaFinalized",
    "FieldError",
    "TypeMismatch",
    "UnknownField",
    "FieldNotSet",
    "EncodeError",
    "MissingRequiredField",
    "DecodeError",
    "MalformedVarint",
    "TruncatedInput",
    "UnsupportedWireType",
    "WireTypeMismatch",
    "RecursionLimitExceeded",
    # Sizing
    "encoded_size",
    "field_sizes",
    # Rendering
    "to_proto_schema",
    # Version
    "__version__",
]
