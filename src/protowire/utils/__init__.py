"""Utility functions for protowire.

This module provides size calculation for encoded messages.
"""

from __future__ import annotations

from .sizing import encoded_size, field_sizes

__all__ = [
    "encoded_size",
    "field_sizes",
]
