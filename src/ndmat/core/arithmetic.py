from __future__ import annotations

from typing import TYPE_CHECKING, Any, TypeVar

from ndmat.core.descriptor import same_extents
from ndmat.core.iterator import Cursor
from ndmat.errors import ShapeMismatchError

if TYPE_CHECKING:
    from collections.abc import Callable

    from ndmat.core.array import StridedArray

__all__ = ["apply_in_place", "apply_pairwise"]

S = TypeVar("S", bound="StridedArray")


def apply_in_place(target: S, fn: Callable[[Any], Any]) -> S:
    """
    Replace every element of ``target`` by ``fn(element)``, in row-major order.

    Returns ``target``, so that calls can be chained.
    """
    data = target.buffer.as_numpy_array()
    for offset in Cursor(target.descriptor):
        data[offset] = fn(data[offset])
    return target


def apply_pairwise(target: S, other: StridedArray, fn: Callable[[Any, Any], Any]) -> S:
    """
    Replace every element ``a`` of ``target`` by ``fn(a, b)``, where ``b`` is the element of
    ``other`` at the same index.

    The two operands must have identical extents; their strides may differ. Both are walked
    in row-major order, in lockstep.

    Raises
    ------
    ShapeMismatchError
        If the extents differ. Nothing is written in that case.
    """
    if not same_extents(target.descriptor, other.descriptor):
        raise ShapeMismatchError(target.descriptor.extents, other.descriptor.extents)
    data = target.buffer.as_numpy_array()
    other_data = other.buffer.as_numpy_array()
    values: Any = (other_data[j] for j in Cursor(other.descriptor))
    if other.buffer is target.buffer:
        # operands may overlap; read every right-hand element before the first write
        values = list(values)
    for i, b in zip(Cursor(target.descriptor), values, strict=True):
        data[i] = fn(data[i], b)
    return target
