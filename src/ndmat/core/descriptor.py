from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Self

from ndmat.core.common import checked_product, is_integer, parse_shapelike, product
from ndmat.errors import IndexOutOfRangeError, InvalidShapeError

if TYPE_CHECKING:
    from collections.abc import Sequence

    from ndmat.core.common import ShapeLike

__all__ = [
    "Descriptor",
    "check_bounds",
    "compute_size",
    "derive_along_axis",
    "flat_offset",
    "row_major_strides",
    "same_extents",
]


def row_major_strides(extents: Sequence[int]) -> tuple[int, ...]:
    """
    Compute the strides of a contiguous row-major layout, in elements.

    The last dimension has stride 1 and every other dimension has the stride of the next
    dimension multiplied by the extent of the next dimension.

    Examples
    --------
    >>> row_major_strides((3, 4, 5))
    (20, 5, 1)
    >>> row_major_strides(())
    ()
    """
    strides = [1] * len(extents)
    for i in range(len(extents) - 2, -1, -1):
        strides[i] = strides[i + 1] * extents[i + 1]
    return tuple(strides)


def compute_size(extents: Sequence[int]) -> int:
    return product(tuple(extents))


@dataclass(frozen=True)
class Descriptor:
    """
    A model of the mapping from an N-dimensional index to a flat storage offset.

    Parameters
    ----------
    start : int
        Flat offset of the element at index ``(0, ..., 0)`` in the buffer addressed.
    extents : tuple[int, ...]
        Number of valid indices along each dimension.
    strides : tuple[int, ...]
        Flat offset increment per unit increase of the index along each dimension.
    size : int
        Number of elements reachable through this descriptor. Always the product of
        ``extents``, except for the empty descriptor of a moved-from array, which is 0.
    """

    start: int
    extents: tuple[int, ...]
    strides: tuple[int, ...]
    size: int

    def __init__(
        self,
        start: int,
        extents: Sequence[int],
        strides: Sequence[int],
        size: int | None = None,
    ) -> None:
        extents_parsed = tuple(int(e) for e in extents)
        strides_parsed = tuple(int(s) for s in strides)
        if len(extents_parsed) != len(strides_parsed):
            raise InvalidShapeError(
                extents_parsed,
                f"got {len(strides_parsed)} strides for {len(extents_parsed)} extents",
            )
        if size is None:
            size = checked_product(extents_parsed)

        object.__setattr__(self, "start", int(start))
        object.__setattr__(self, "extents", extents_parsed)
        object.__setattr__(self, "strides", strides_parsed)
        object.__setattr__(self, "size", int(size))

    @classmethod
    def from_extents(cls, extents: ShapeLike) -> Self:
        """
        Create the descriptor of a freshly allocated row-major array.

        Raises
        ------
        InvalidShapeError
            If any extent is not a positive integer, or the product of the extents does not
            fit in the offset type.
        """
        extents_parsed = parse_shapelike(extents)
        size = checked_product(extents_parsed)
        return cls(0, extents_parsed, row_major_strides(extents_parsed), size)

    @classmethod
    def empty(cls, order: int) -> Self:
        """The descriptor left behind in an array whose buffer was moved or released."""
        return cls(0, (0,) * order, (0,) * order, 0)

    @property
    def order(self) -> int:
        return len(self.extents)

    @property
    def is_empty(self) -> bool:
        return self.size == 0

    @property
    def is_contiguous(self) -> bool:
        return self.strides == row_major_strides(self.extents)

    def offset(self, indices: Sequence[int]) -> int:
        return flat_offset(self, indices)

    def check_bounds(self, indices: Sequence[int]) -> bool:
        return check_bounds(self, indices)

    def row(self, n: int) -> Descriptor:
        return derive_along_axis(0, n, self)

    def column(self, n: int) -> Descriptor:
        return derive_along_axis(1, n, self)


def flat_offset(descriptor: Descriptor, indices: Sequence[int]) -> int:
    offset = descriptor.start
    for i, stride in zip(indices, descriptor.strides, strict=True):
        offset += i * stride
    return offset


def check_bounds(descriptor: Descriptor, indices: Sequence[int]) -> bool:
    if len(indices) != descriptor.order:
        return False
    return all(0 <= i < e for i, e in zip(indices, descriptor.extents, strict=True))


def derive_along_axis(axis: int, fixed_index: int, parent: Descriptor) -> Descriptor:
    """
    Derive the descriptor of order N-1 obtained by fixing the index along one axis.

    The child starts at ``parent.start + fixed_index * parent.strides[axis]``. Its i-th
    extent and stride are the parent's at position ``i`` when ``i < axis`` and at position
    ``i + 1`` otherwise, so the child addresses the same storage as the parent with the
    same physical layout.

    Parameters
    ----------
    axis : int
        0 for a row, 1 for a column. A column requires a parent of order 2 or more.
    fixed_index : int
        Position along ``axis``; must be less than ``parent.extents[axis]``.
    parent : Descriptor

    Raises
    ------
    IndexOutOfRangeError
        If the parent has no such axis, or ``fixed_index`` is out of range.

    Examples
    --------
    >>> d = Descriptor.from_extents((3, 4, 5))
    >>> derive_along_axis(1, 2, d)
    Descriptor(start=10, extents=(3, 5), strides=(20, 1), size=15)
    """
    if axis not in (0, 1) or axis >= parent.order:
        raise IndexOutOfRangeError(
            f"axis {axis} is not a derivable axis of a descriptor of order {parent.order}"
        )
    if not is_integer(fixed_index):
        raise TypeError(f"Expected an integer index. Got {fixed_index!r} instead.")
    fixed_index = int(fixed_index)
    extent = parent.extents[axis]
    if not 0 <= fixed_index < extent:
        raise IndexOutOfRangeError(fixed_index, axis, extent)

    start = parent.start + fixed_index * parent.strides[axis]
    extents = parent.extents[:axis] + parent.extents[axis + 1 :]
    strides = parent.strides[:axis] + parent.strides[axis + 1 :]
    return Descriptor(start, extents, strides, product(extents))


def same_extents(a: Descriptor, b: Descriptor) -> bool:
    return a.extents == b.extents
