from __future__ import annotations

from typing import TYPE_CHECKING, Any

from ndmat.core.array import Array, ArrayView, _ArrayAccess
from ndmat.core.common import is_integer
from ndmat.core.literal import is_nested
from ndmat.errors import ShapeMismatchError

if TYPE_CHECKING:
    from ndmat.core.array import StridedArray
    from ndmat.core.common import DTypeLike, ShapeLike
    from ndmat.core.literal import NestedLiteral

__all__ = ["array", "from_array", "from_view", "full", "make", "zeros"]


def _check_order(result: Array, order: int | None) -> Array:
    if order is not None and result.order != order:
        raise ShapeMismatchError(f"expected an array of order {order}, got order {result.order}")
    return result


def _parse_extents(extents: tuple[Any, ...]) -> ShapeLike:
    # accept both zeros(2, 3) and zeros((2, 3))
    if len(extents) == 1 and not is_integer(extents[0]):
        return extents[0]  # type: ignore[no-any-return]
    return extents


def make(*args: Any, dtype: DTypeLike | None = None, order: int | None = None) -> Array:
    """
    Create an array from explicit extents or from a nested literal.

    Parameters
    ----------
    *args
        Either the extents, one integer per dimension, or a single nested literal. No
        arguments make an order-0 array holding zero. With ``order=0`` a single
        scalar argument is the value of the order-0 array.
    dtype : DTypeLike, optional
        The element type. For explicit extents this defaults to ``array.dtype`` in the
        configuration; for a literal it is inferred from the elements.
    order : int, optional
        The expected order. A literal is measured to exactly this depth.

    Returns
    -------
    Array

    Examples
    --------
    >>> make(2, 2, dtype="int32").shape
    (2, 2)
    >>> make([[9, 3], [6, 7]], dtype="float64").at(1, 0)
    np.float64(6.0)
    >>> make(13, order=0).value
    np.int64(13)
    """
    if len(args) == 1 and (is_nested(args[0]) or isinstance(args[0], _ArrayAccess)):
        return array(args[0], dtype=dtype, order=order)
    if len(args) == 1 and order == 0:
        return array(args[0], dtype=dtype, order=order)
    return _check_order(Array(args, dtype=dtype), order)


def array(
    literal: NestedLiteral, dtype: DTypeLike | None = None, order: int | None = None
) -> Array:
    """
    Create an array from a nested literal. A bare scalar makes an order-0 array.

    Raises
    ------
    JaggedLiteralError
        If sibling sequences at some depth differ in length.
    """
    return _check_order(Array.from_literal(literal, order=order, dtype=dtype), order)


def zeros(*extents: Any, dtype: DTypeLike | None = None) -> Array:
    return Array(_parse_extents(extents), dtype=dtype)


def full(extents: ShapeLike, fill_value: Any, dtype: DTypeLike | None = None) -> Array:
    return Array.full(extents, fill_value, dtype=dtype)


def from_view(view: ArrayView, dtype: DTypeLike | None = None) -> Array:
    """Copy the elements addressed by a view into a new array, detaching them from its source."""
    return Array.from_array(view, dtype=dtype)


def from_array(other: StridedArray, dtype: DTypeLike | None = None) -> Array:
    """Deep-copy an array, converting its elements to ``dtype`` if given."""
    return Array.from_array(other, dtype=dtype)
