from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence
    from typing import Self

    from ndmat.core.descriptor import Descriptor

__all__ = ["Cursor", "iter_indices", "iter_offsets"]


class Cursor:
    """
    A row-major traversal cursor over a descriptor.

    The cursor holds one position per dimension, starting at all zeros. ``advance``
    increments the last position and carries leftward on overflow; carrying past
    dimension 0 leaves the cursor at the end sentinel, where position 0 equals
    ``extents[0]`` and all other positions are 0. Two cursors compare equal when their
    positions are equal, whatever their strides.

    An order-0 descriptor is walked as a single dimension of extent 1, and an empty
    descriptor starts at the end.

    Iterating a cursor yields the flat offset of every element from the current position
    to the end, advancing the cursor as it goes.
    """

    __slots__ = ("_extents", "_index", "_start", "_strides", "offset")

    def __init__(self, descriptor: Descriptor, index: Sequence[int] | None = None) -> None:
        self._start = descriptor.start
        if descriptor.order == 0:
            self._extents: tuple[int, ...] = (1 if descriptor.size else 0,)
            self._strides: tuple[int, ...] = (0,)
        else:
            self._extents = descriptor.extents
            self._strides = descriptor.strides

        if index is None:
            self._index = [0] * len(self._extents)
            if descriptor.size == 0:
                self._index[0] = self._extents[0]
        else:
            self._index = list(index)
            if len(self._index) != len(self._extents):
                raise ValueError(
                    f"cursor index {tuple(index)} does not match order {descriptor.order}"
                )
        self.offset = self._compute_offset()

    @classmethod
    def end(cls, descriptor: Descriptor) -> Self:
        """Return the end sentinel of ``descriptor``."""
        cursor = cls(descriptor)
        cursor._index = [cursor._extents[0]] + [0] * (len(cursor._extents) - 1)
        cursor.offset = cursor._compute_offset()
        return cursor

    @property
    def index(self) -> tuple[int, ...]:
        return tuple(self._index)

    @property
    def is_end(self) -> bool:
        return self._index[0] >= self._extents[0]

    def _compute_offset(self) -> int:
        offset = self._start
        for i, stride in zip(self._index, self._strides, strict=True):
            offset += i * stride
        return offset

    def advance(self) -> Self:
        """Move to the next position in row-major order and recompute the offset."""
        if self.is_end:
            raise IndexError("cannot advance a cursor past the end")
        dim = len(self._index) - 1
        self._index[dim] += 1
        while dim > 0 and self._index[dim] == self._extents[dim]:
            self._index[dim] = 0
            dim -= 1
            self._index[dim] += 1
        self.offset = self._compute_offset()
        return self

    def copy(self) -> Self:
        other = object.__new__(type(self))
        other._start = self._start
        other._extents = self._extents
        other._strides = self._strides
        other._index = list(self._index)
        other.offset = self.offset
        return other

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Cursor):
            return NotImplemented
        return self._index == other._index

    def __iter__(self) -> Iterator[int]:
        return self

    def __next__(self) -> int:
        if self.is_end:
            raise StopIteration
        offset = self.offset
        self.advance()
        return offset

    def __repr__(self) -> str:
        return f"Cursor(index={self.index}, offset={self.offset})"


def iter_offsets(descriptor: Descriptor) -> Iterator[int]:
    """Yield the flat offset of every element addressed by ``descriptor`` in row-major order."""
    return Cursor(descriptor)


def iter_indices(descriptor: Descriptor) -> Iterator[tuple[int, ...]]:
    """Yield the index of every element addressed by ``descriptor`` in row-major order."""
    cursor = Cursor(descriptor)
    while not cursor.is_end:
        yield cursor.index if descriptor.order else ()
        cursor.advance()
