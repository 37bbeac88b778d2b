"""Schema rendering for protowire.

This module renders registered schemas back to .proto declaration text.
"""

from __future__ import annotations

from .render import to_proto_schema

__all__ = [
    "to_proto_schema",
]
