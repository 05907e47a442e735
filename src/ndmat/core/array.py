from __future__ import annotations

import logging
import operator
from typing import TYPE_CHECKING, Any, Protocol

import numpy as np

from ndmat.core.arithmetic import apply_in_place, apply_pairwise
from ndmat.core.buffer import get_buffer_class
from ndmat.core.common import check_convertible, is_integer, parse_dtype
from ndmat.core.config import config as ndmat_config
from ndmat.core.descriptor import Descriptor, derive_along_axis
from ndmat.core.iterator import Cursor, iter_indices
from ndmat.core.literal import is_nested, parse_literal
from ndmat.errors import (
    EmptyArrayError,
    IndexOutOfRangeError,
    ShapeMismatchError,
    err_too_many_indices,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator
    from typing import Self

    import numpy.typing as npt

    from ndmat.core.buffer import Buffer
    from ndmat.core.common import DTypeLike, ShapeLike
    from ndmat.core.literal import NestedLiteral

__all__ = ["Array", "ArrayView", "StridedArray"]

logger = logging.getLogger(__name__)


class StridedArray(Protocol):
    """The capabilities shared by owning arrays and views: a descriptor over a buffer."""

    @property
    def descriptor(self) -> Descriptor: ...

    @property
    def buffer(self) -> Buffer: ...

    @property
    def dtype(self) -> np.dtype[Any]: ...


class _ArrayAccess:
    """
    Element access, sub-views, iteration and arithmetic in terms of ``descriptor`` and
    ``buffer``. Holds no state of its own.
    """

    __slots__ = ()

    # numpy defers to our reflected operators instead of converting us
    __array_ufunc__ = None

    @property
    def descriptor(self) -> Descriptor:
        raise NotImplementedError

    @property
    def buffer(self) -> Buffer:
        raise NotImplementedError

    @property
    def dtype(self) -> np.dtype[Any]:
        return self.buffer.dtype

    @property
    def order(self) -> int:
        return self.descriptor.order

    @property
    def shape(self) -> tuple[int, ...]:
        return self.descriptor.extents

    @property
    def size(self) -> int:
        return self.descriptor.size

    @property
    def nbytes(self) -> int:
        return self.size * self.dtype.itemsize

    @property
    def data(self) -> npt.NDArray[Any]:
        """
        The flat numpy array holding the elements, without copying. Element
        ``(0, ..., 0)`` of this object is at ``descriptor.start``.
        """
        return self.buffer.as_numpy_array()

    def extent(self, dim: int) -> int:
        if not 0 <= dim < self.order:
            raise IndexOutOfRangeError(f"dimension {dim} out of range for order {self.order}")
        return self.descriptor.extents[dim]

    @property
    def rows(self) -> int:
        return self.descriptor.extents[0] if self.order > 0 else 0

    @property
    def columns(self) -> int:
        return self.descriptor.extents[1] if self.order > 1 else self.order

    # element access

    def _offset(self, indices: tuple[Any, ...]) -> int:
        descriptor = self.descriptor
        if len(indices) != descriptor.order:
            err_too_many_indices(indices, descriptor.extents)
        for i in indices:
            if not is_integer(i):
                raise TypeError(f"Expected integer indices. Got {i!r} instead.")
        indices = tuple(int(i) for i in indices)
        if ndmat_config.get("array.boundscheck") and not descriptor.check_bounds(indices):
            for dim, (i, e) in enumerate(zip(indices, descriptor.extents, strict=True)):
                if not 0 <= i < e:
                    raise IndexOutOfRangeError(i, dim, e)
        return descriptor.offset(indices)

    def at(self, *indices: int) -> Any:
        """
        Return the element at ``indices``.

        Exactly ``order`` integer indices are required.

        Raises
        ------
        IndexError
            If the number of indices differs from the order.
        IndexOutOfRangeError
            If bounds checking is enabled and an index is not less than its extent.
        """
        offset = self._offset(indices)
        return self.buffer[offset]

    def set_at(self, *args: Any) -> None:
        """Write the last argument to the element at the index given by the others."""
        if not args:
            raise TypeError("set_at() requires a value")
        *indices, value = args
        offset = self._offset(tuple(indices))
        self.buffer[offset] = value

    def ref(self, *indices: int) -> ArrayView:
        """Return an order-0 view of the element at ``indices``, which reads and writes through."""
        offset = self._offset(indices)
        return ArrayView._from_parts(Descriptor(offset, (), (), 1), self.buffer)

    @property
    def value(self) -> Any:
        """The single element of an order-0 array or view."""
        if self.order != 0:
            raise TypeError(
                f"only order-0 arrays have a single value, this one has order {self.order}"
            )
        return self.at()

    @value.setter
    def value(self, value: Any) -> None:
        if self.order != 0:
            raise TypeError(
                f"only order-0 arrays have a single value, this one has order {self.order}"
            )
        self.set_at(value)

    def __call__(self, *indices: int) -> Any:
        return self.at(*indices)

    def row(self, n: int | None = None) -> Any:
        """
        Return row ``n``.

        For order 2 or more this is a view of order ``order - 1`` sharing this object's
        storage. An order-1 array has no lower dimension to view, so its rows are its
        elements; the single row of an order-0 array is its value.
        """
        if self.order == 0:
            if n not in (None, 0):
                raise IndexOutOfRangeError(n, 0, 1)
            return self.at()
        if n is None:
            raise TypeError("row() of an array of order >= 1 requires an index")
        if self.order == 1:
            return self.at(n)
        return ArrayView._from_parts(derive_along_axis(0, n, self.descriptor), self.buffer)

    def column(self, n: int) -> ArrayView:
        """Return column ``n``, a view of order ``order - 1``. Requires order >= 2."""
        return ArrayView._from_parts(derive_along_axis(1, n, self.descriptor), self.buffer)

    @staticmethod
    def _normalize_key(key: Any) -> tuple[int, ...]:
        if not isinstance(key, tuple):
            key = (key,)
        for k in key:
            if not is_integer(k):
                raise IndexError(
                    f"only integer indices are supported, got {k!r}; range slicing is not"
                )
        return key

    def __getitem__(self, key: Any) -> Any:
        key = self._normalize_key(key)
        if len(key) > self.order:
            err_too_many_indices(key, self.shape)
        if len(key) == self.order:
            return self.at(*key)
        result: Any = self
        for i in key:
            result = result.row(i)
        return result

    def __setitem__(self, key: Any, value: Any) -> None:
        key = self._normalize_key(key)
        if len(key) > self.order:
            err_too_many_indices(key, self.shape)
        if len(key) == self.order:
            self.set_at(*key, value)
        else:
            self[key].assign(value)

    # iteration

    def begin(self) -> Cursor:
        return Cursor(self.descriptor)

    def end(self) -> Cursor:
        return Cursor.end(self.descriptor)

    def iter_offsets(self) -> Iterator[int]:
        return Cursor(self.descriptor)

    def iter_indices(self) -> Iterator[tuple[int, ...]]:
        return iter_indices(self.descriptor)

    def __iter__(self) -> Iterator[Any]:
        if self.descriptor.is_empty:
            return
        data = self.buffer.as_numpy_array()
        for offset in Cursor(self.descriptor):
            yield data[offset]

    # conversion

    def view(self) -> ArrayView:
        return ArrayView(self)

    def copy(self) -> Array:
        """Return a new owning array holding a copy of the elements."""
        return Array.from_array(self)

    def to_numpy(self) -> npt.NDArray[Any]:
        """Return a numpy array of the elements, copied out of this object's strided layout."""
        descriptor = self.descriptor
        data = self.buffer.as_numpy_array()
        strided = np.lib.stride_tricks.as_strided(
            data[descriptor.start :],
            shape=descriptor.extents,
            strides=tuple(s * data.itemsize for s in descriptor.strides),
            writeable=False,
        )
        return strided.copy()

    def __array__(
        self, dtype: DTypeLike | None = None, copy: bool | None = None
    ) -> npt.NDArray[Any]:
        out = self.to_numpy()
        if dtype is not None:
            out = out.astype(dtype)
        return out

    def tolist(self) -> Any:
        """Return the elements as nested lists, the inverse of building from a nested literal."""
        return self.to_numpy().tolist()

    # arithmetic

    def apply(self, fn: Callable[[Any], Any]) -> Self:
        """
        Replace every element ``x`` by ``fn(x)`` in row-major order and return self.
        """
        return apply_in_place(self, fn)

    def apply_with(self, other: Any, fn: Callable[[Any, Any], Any]) -> Self:
        """
        Replace every element ``a`` by ``fn(a, b)``, where ``b`` is the element of ``other``
        at the same index, and return self.

        ``other`` is an array, a view or a nested literal with the same extents as self.
        """
        return apply_pairwise(self, _as_operand(other, self.order), fn)

    def fill(self, value: Any) -> Self:
        return self.apply(lambda _: value)

    def _compound(self, other: Any, op: Callable[[Any, Any], Any]) -> Self:
        if isinstance(other, _ArrayAccess) or is_nested(other):
            return self.apply_with(other, op)
        return self.apply(lambda a: op(a, other))

    def _binary(self, other: Any, op: Callable[[Any, Any], Any]) -> Array:
        if isinstance(other, _ArrayAccess) or is_nested(other):
            operand = _as_operand(other, self.order)
            if operand.shape != self.shape:
                raise ShapeMismatchError(self.shape, operand.shape)
            return self.copy().apply_with(operand, op)
        return self.copy().apply(lambda a: op(a, other))

    def _reflected(self, other: Any, op: Callable[[Any, Any], Any]) -> Array:
        if is_nested(other):
            operand = _as_operand(other, self.order)
            if operand.shape != self.shape:
                raise ShapeMismatchError(operand.shape, self.shape)
            return self.copy().apply_with(operand, lambda a, b: op(b, a))
        return self.copy().apply(lambda a: op(other, a))

    def __iadd__(self, other: Any) -> Self:
        return self._compound(other, operator.add)

    def __isub__(self, other: Any) -> Self:
        return self._compound(other, operator.sub)

    def __imul__(self, other: Any) -> Self:
        return self._compound(other, operator.mul)

    def __itruediv__(self, other: Any) -> Self:
        return self._compound(other, operator.truediv)

    def __ifloordiv__(self, other: Any) -> Self:
        return self._compound(other, operator.floordiv)

    def __imod__(self, other: Any) -> Self:
        return self._compound(other, operator.mod)

    def __add__(self, other: Any) -> Array:
        return self._binary(other, operator.add)

    def __sub__(self, other: Any) -> Array:
        return self._binary(other, operator.sub)

    def __mul__(self, other: Any) -> Array:
        return self._binary(other, operator.mul)

    def __truediv__(self, other: Any) -> Array:
        return self._binary(other, operator.truediv)

    def __floordiv__(self, other: Any) -> Array:
        return self._binary(other, operator.floordiv)

    def __mod__(self, other: Any) -> Array:
        return self._binary(other, operator.mod)

    def __radd__(self, other: Any) -> Array:
        return self._reflected(other, operator.add)

    def __rsub__(self, other: Any) -> Array:
        return self._reflected(other, operator.sub)

    def __rmul__(self, other: Any) -> Array:
        return self._reflected(other, operator.mul)

    def __rtruediv__(self, other: Any) -> Array:
        return self._reflected(other, operator.truediv)

    def __rfloordiv__(self, other: Any) -> Array:
        return self._reflected(other, operator.floordiv)

    def __rmod__(self, other: Any) -> Array:
        return self._reflected(other, operator.mod)

    def __neg__(self) -> Array:
        return self.copy().apply(operator.neg)

    def __pos__(self) -> Array:
        return self.copy()

    def __repr__(self) -> str:
        return f"<{type(self).__name__} shape={self.shape} dtype={self.dtype}>"


def _as_operand(other: Any, order: int) -> _ArrayAccess:
    if isinstance(other, _ArrayAccess):
        return other
    if is_nested(other):
        return Array.from_literal(other, order=order)
    raise TypeError(f"Expected an array, a view or a nested literal. Got {other!r} instead.")


class Array(_ArrayAccess):
    """
    An N-dimensional array that owns a contiguous row-major buffer of its elements.

    Parameters
    ----------
    extents : ShapeLike, default=()
        The number of indices along each dimension. An empty tuple makes an order-0
        (scalar) array.
    dtype : DTypeLike, optional
        The element type. Defaults to the ``array.dtype`` configuration value.

    Notes
    -----
    Elements are zero-initialized. Use ``Array.from_literal`` to build from nested
    sequences and ``Array.from_array`` to copy another array or view.

    Rows, columns and ``ref`` return views that share this array's storage: writes through
    a view are visible through the array and vice versa.
    """

    __slots__ = ("_buffer", "_descriptor", "_dtype")

    _descriptor: Descriptor
    _buffer: Buffer | None
    _dtype: np.dtype[Any]

    def __init__(self, extents: ShapeLike = (), dtype: DTypeLike | None = None) -> None:
        descriptor = Descriptor.from_extents(extents)
        dtype_parsed = parse_dtype(dtype)
        buffer = get_buffer_class().create_zeros(descriptor.size, dtype_parsed)
        self._set_parts(descriptor, buffer)

    def _set_parts(self, descriptor: Descriptor, buffer: Buffer | None, dtype: Any = None) -> None:
        self._descriptor = descriptor
        self._buffer = buffer
        self._dtype = buffer.dtype if buffer is not None else dtype

    @classmethod
    def _from_parts(cls, descriptor: Descriptor, buffer: Buffer) -> Self:
        array = object.__new__(cls)
        array._set_parts(descriptor, buffer)
        return array

    @classmethod
    def from_literal(
        cls,
        literal: NestedLiteral,
        order: int | None = None,
        dtype: DTypeLike | None = None,
    ) -> Self:
        """
        Create an array from a nested literal.

        Parameters
        ----------
        literal
            A scalar (order 0) or nested sequences of equal length at every depth.
        order : int, optional
            The expected nesting depth. Discovered from the literal if None.
        dtype : DTypeLike, optional
            The element type. Inferred by numpy from the elements if None.

        Raises
        ------
        JaggedLiteralError
            If sibling sequences at some depth differ in length.

        Examples
        --------
        >>> Array.from_literal([[1, 2, 3], [4, 5, 6]]).shape
        (2, 3)
        """
        if isinstance(literal, _ArrayAccess):
            if order is not None and literal.order != order:
                raise ShapeMismatchError(f"expected order {order}, got order {literal.order}")
            return cls.from_array(literal, dtype=dtype)
        extents, flat = parse_literal(literal, order)
        descriptor = Descriptor.from_extents(extents)
        dtype_parsed = np.dtype(dtype) if dtype is not None else None
        buffer = get_buffer_class().from_values(flat, descriptor.size, dtype_parsed)
        return cls._from_parts(descriptor, buffer)

    @classmethod
    def from_array(cls, source: StridedArray, dtype: DTypeLike | None = None) -> Self:
        """
        Create an array holding a copy of the elements of another array or view.

        The new array has the extents of ``source`` and a contiguous row-major layout,
        whatever the strides of ``source``. Elements are copied in iteration order.

        Raises
        ------
        IncompatibleDtypeError
            If the elements of ``source`` cannot be converted to ``dtype`` under the
            ``array.casting`` rule.
        """
        target_dtype = np.dtype(dtype) if dtype is not None else source.dtype
        check_convertible(source.dtype, target_dtype)
        source_descriptor = source.descriptor
        source_data = source.buffer.as_numpy_array()
        descriptor = Descriptor.from_extents(source_descriptor.extents)
        buffer = get_buffer_class().create_zeros(descriptor.size, target_dtype)
        data = buffer.as_numpy_array()
        for i, offset in enumerate(Cursor(source_descriptor)):
            data[i] = source_data[offset]
        return cls._from_parts(descriptor, buffer)

    @classmethod
    def full(cls, extents: ShapeLike, fill_value: Any, dtype: DTypeLike | None = None) -> Self:
        descriptor = Descriptor.from_extents(extents)
        dtype_parsed = parse_dtype(dtype)
        buffer = get_buffer_class().create_full(descriptor.size, dtype_parsed, fill_value)
        return cls._from_parts(descriptor, buffer)

    @property
    def descriptor(self) -> Descriptor:
        return self._descriptor

    @property
    def buffer(self) -> Buffer:
        if self._buffer is None:
            raise EmptyArrayError(type(self).__name__, self._descriptor.order)
        return self._buffer

    @property
    def dtype(self) -> np.dtype[Any]:
        return self._dtype

    @property
    def is_empty(self) -> bool:
        """True once the buffer has been moved out or released."""
        return self._buffer is None

    # lifecycle

    def move(self) -> Self:
        """
        Transfer the buffer to a new array and leave this one empty.

        The empty array keeps its order and element type but has size 0; every element
        access on it raises ``EmptyArrayError``. Views taken before the move keep sharing
        the buffer with the new owner.
        """
        moved = type(self)._from_parts(self._descriptor, self.buffer)
        logger.debug("Moved buffer of %s elements out of %r", self.size, self)
        self._set_parts(Descriptor.empty(self.order), None, self._dtype)
        return moved

    def release(self) -> None:
        """Drop the buffer, leaving this array empty."""
        logger.debug("Releasing buffer of %s elements of %r", self.size, self)
        self._set_parts(Descriptor.empty(self.order), None, self._dtype)

    def assign(self, value: Any) -> Self:
        """
        Assign to this array.

        An array, view or nested literal of the same order replaces the descriptor and the
        buffer wholesale with a copy, so the extents may change. Any other value is a scalar
        written to every element.

        Raises
        ------
        ShapeMismatchError
            If the order of ``value`` differs from the order of this array.
        """
        if isinstance(value, _ArrayAccess) or is_nested(value):
            if isinstance(value, _ArrayAccess):
                if value.order != self.order:
                    raise ShapeMismatchError(
                        f"cannot assign an array of order {value.order} "
                        f"to one of order {self.order}"
                    )
                replacement = Array.from_array(value, dtype=self._dtype)
            else:
                replacement = Array.from_literal(value, order=self.order, dtype=self._dtype)
            logger.debug("Replacing %r with extents %s", self, replacement.shape)
            self._set_parts(replacement._descriptor, replacement._buffer)
            return self
        return self.fill(value)

    def resize(self, *extents: Any) -> Self:
        """Rebuild this array at new extents of the same order, zero-initialized."""
        if len(extents) == 1 and not is_integer(extents[0]):
            extents = tuple(extents[0])
        if len(extents) != self.order:
            raise ShapeMismatchError(
                f"cannot resize an array of order {self.order} to extents {extents}"
            )
        descriptor = Descriptor.from_extents(extents)
        buffer = get_buffer_class().create_zeros(descriptor.size, self._dtype)
        logger.debug("Resizing %r to extents %s", self, descriptor.extents)
        self._set_parts(descriptor, buffer)
        return self

    def __copy__(self) -> Array:
        return self.copy()

    def __deepcopy__(self, memo: dict[int, Any]) -> Array:
        return self.copy()


class ArrayView(_ArrayAccess):
    """
    An N-dimensional view of the storage of an array or of another view.

    A view holds a descriptor and a reference to the buffer it addresses; it never
    allocates. Creating one is O(1) whatever the number of elements. Element writes and
    in-place arithmetic through a view change the source's elements.

    Parameters
    ----------
    source : Array | ArrayView
        The object whose descriptor and buffer the view takes.
    """

    __slots__ = ("_buffer", "_descriptor")

    _descriptor: Descriptor
    _buffer: Buffer

    def __init__(self, source: StridedArray) -> None:
        self._descriptor = source.descriptor
        self._buffer = source.buffer

    @classmethod
    def _from_parts(cls, descriptor: Descriptor, buffer: Buffer) -> Self:
        view = object.__new__(cls)
        view._descriptor = descriptor
        view._buffer = buffer
        return view

    @property
    def descriptor(self) -> Descriptor:
        return self._descriptor

    @property
    def buffer(self) -> Buffer:
        return self._buffer

    @property
    def base(self) -> Buffer:
        """The buffer this view borrows."""
        return self._buffer

    def materialize(self) -> Array:
        """Copy the elements of this view into a new, independent array."""
        return Array.from_array(self)

    def assign(self, value: Any) -> Self:
        """
        Write through this view.

        An array, view or nested literal must have the same extents as this view and is
        copied element by element; any other value is written to every element.

        Raises
        ------
        ShapeMismatchError
            If the extents differ. Nothing is written in that case.
        IncompatibleDtypeError
            If the source elements cannot be converted to this view's element type.
        """
        if isinstance(value, _ArrayAccess) or is_nested(value):
            operand = _as_operand(value, self.order)
            check_convertible(operand.dtype, self.dtype)
            return self.apply_with(operand, lambda _, b: b)
        return self.fill(value)
