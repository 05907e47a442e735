from __future__ import annotations

from typing import Any

__all__ = [
    "AllocationFailureError",
    "BaseNdmatError",
    "EmptyArrayError",
    "IncompatibleDtypeError",
    "IndexOutOfRangeError",
    "InvalidShapeError",
    "JaggedLiteralError",
    "ShapeMismatchError",
]


class BaseNdmatError(ValueError):
    """
    Base error which all ndmat errors are sub-classed from.
    """

    _msg: str = "{}"

    def __init__(self, *args: object) -> None:
        """
        If a single argument is passed, treat it as a pre-formatted message.

        If multiple arguments are passed, they are used as arguments for a template string class
        variable.
        """
        if len(args) == 1:
            super().__init__(args[0])
        else:
            super().__init__(self._msg.format(*args))


class InvalidShapeError(BaseNdmatError):
    """
    Raised when a descriptor is built from a zero or negative extent, or from extents whose
    product does not fit in the offset type.
    """

    _msg = "invalid extents {!r}: {}"


class JaggedLiteralError(BaseNdmatError):
    """
    Raised when sibling sub-sequences of a nested literal disagree in length.
    """

    _msg = "jagged literal at depth {}: expected length {}, got {}"


class ShapeMismatchError(BaseNdmatError):
    """
    Raised when two operands must have identical extents and do not.
    """

    _msg = "extents do not match: {!r} != {!r}"


class IndexOutOfRangeError(BaseNdmatError, IndexError):
    """
    Raised when an index is not less than the extent of its dimension.
    """

    _msg = "index {} out of range for dimension {} with extent {}"


class AllocationFailureError(BaseNdmatError, MemoryError):
    """
    Raised when the storage for an owning array cannot be allocated.
    """

    _msg = "could not allocate {} elements of dtype {}"


class IncompatibleDtypeError(BaseNdmatError, TypeError):
    """
    Raised when the elements of a source cannot be converted to the element type of a target.
    """

    _msg = "cannot convert elements of dtype {} to dtype {} under casting rule {!r}"


class EmptyArrayError(BaseNdmatError):
    """Raised when an array whose buffer was moved or released is accessed."""

    _msg = "{} of order {} has no buffer; it was moved from or released"


def err_too_many_indices(indices: Any, extents: tuple[int, ...]) -> None:
    raise IndexError(
        f"wrong number of indices for array; expected {len(extents)}, got {len(indices)}"
    )
