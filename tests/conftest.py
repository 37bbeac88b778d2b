"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import pytest

from protowire import Schema, begin_schema


@pytest.fixture
def user_bytes() -> bytes:
    """Wire encoding of User(name="a", email="b")."""
    return b"\x0a\x01a\x12\x01b"


@pytest.fixture
def open_schema() -> Schema:
    """Empty schema that has not been finalized."""
    return begin_schema("test.Scratch")
