"""Message modeling for protowire.

This module provides the Message class and the per-kind value validation used
by its field accessors.
"""

from __future__ import annotations

from .base import Message
from .repeated import RepeatedField

__all__ = [
    "Message",
    "RepeatedField",
]
