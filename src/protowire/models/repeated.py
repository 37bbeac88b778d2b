"""Ordered, type-checked storage for repeated fields."""

from __future__ import annotations

from collections.abc import MutableSequence
from typing import Any, Iterable, overload

from ..codec.schema import FieldDescriptor
from .fields import coerce_value


class RepeatedField(MutableSequence):  # type: ignore[type-arg]
    """A list-like sequence that validates every element it receives.

    Elements keep insertion order, which is also their order on the wire.

    Example:
        >>> scores = message.get("scores")
        >>> scores.append(3)
        >>> scores.extend([4, 5])
        >>> scores.append("six")
        Traceback (most recent call last):
        ...
        protowire.exceptions.TypeMismatch: Field scores: expected int32, got str ...
    """

    __slots__ = ("_descriptor", "_values")

    def __init__(self, descriptor: FieldDescriptor, values: Iterable[Any] = ()) -> None:
        self._descriptor = descriptor
        self._values: list[Any] = [coerce_value(descriptor, value) for value in values]

    @property
    def descriptor(self) -> FieldDescriptor:
        return self._descriptor

    @overload
    def __getitem__(self, index: int) -> Any: ...

    @overload
    def __getitem__(self, index: slice) -> list[Any]: ...

    def __getitem__(self, index: int | slice) -> Any:
        return self._values[index]

    def __setitem__(self, index: int | slice, value: Any) -> None:
        if isinstance(index, slice):
            self._values[index] = [coerce_value(self._descriptor, item) for item in value]
        else:
            self._values[index] = coerce_value(self._descriptor, value)

    def __delitem__(self, index: int | slice) -> None:
        del self._values[index]

    def __len__(self) -> int:
        return len(self._values)

    def insert(self, index: int, value: Any) -> None:
        self._values.insert(index, coerce_value(self._descriptor, value))

    def __eq__(self, other: object) -> bool:
        if isinstance(other, RepeatedField):
            return self._values == other._values
        if isinstance(other, (list, tuple)):
            return self._values == list(other)
        return NotImplemented

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return repr(self._values)
