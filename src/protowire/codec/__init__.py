"""Wire-format codec for protowire.

This module provides schema registration, wire primitives, and the encoder and
decoder for the Protocol Buffers binary format.
"""

from __future__ import annotations

from .config import CodecConfig
from .decoder import decode, merge
from .encoder import encode
from .schema import (
    EnumDefinition,
    FieldDescriptor,
    Kind,
    Label,
    Schema,
    add_field,
    begin_schema,
    finalize,
    lookup_by_name,
    lookup_by_number,
)
from .wire import UnknownFieldRecord, WireType

__all__ = [
    "encode",
    "decode",
    "merge",
    "CodecConfig",
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
]
