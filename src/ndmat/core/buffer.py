from __future__ import annotations

import importlib
import logging
from typing import TYPE_CHECKING, Any

import numpy as np
import numpy.typing as npt

from ndmat.core.config import BadConfigError, config
from ndmat.errors import AllocationFailureError, ShapeMismatchError

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable
    from typing import Self

__all__ = [
    "Buffer",
    "fully_qualified_name",
    "get_buffer_class",
    "register_buffer",
]

logger = logging.getLogger(__name__)


class Buffer:
    """A flat contiguous block of typed elements

    We use Buffer to represent the storage exclusively owned by an ``ndmat.Array``. Views
    of that array hold a reference to the same Buffer object, so the storage stays alive for
    as long as any of them does.

    A Buffer is backed by a 1-dim numpy array. Offsets are counted in elements.

    Parameters
    ----------
    array_like
        numpy array that must be 1-dim.
    """

    def __init__(self, array_like: npt.NDArray[Any]) -> None:
        if array_like.ndim != 1:
            raise ValueError("array_like: only 1-dim allowed")
        self._data = array_like

    @classmethod
    def _allocate(
        cls, size: int, dtype: np.dtype[Any] | None, factory: Callable[[], npt.NDArray[Any]]
    ) -> Self:
        logger.debug("Allocating buffer of %s elements of dtype %s", size, dtype)
        try:
            data = factory()
        except MemoryError as e:
            raise AllocationFailureError(size, dtype) from e
        except ValueError as e:
            # numpy refuses sizes it knows cannot be satisfied with "array is too big"
            if "too big" in str(e):
                raise AllocationFailureError(size, dtype) from e
            raise
        return cls(data)

    @classmethod
    def create_zeros(cls, size: int, dtype: np.dtype[Any]) -> Self:
        """Create a buffer of ``size`` zero (default) initialized elements"""
        return cls._allocate(size, dtype, lambda: np.zeros(size, dtype=dtype))

    @classmethod
    def create_full(cls, size: int, dtype: np.dtype[Any] | None, fill_value: Any) -> Self:
        return cls._allocate(size, dtype, lambda: np.full(size, fill_value, dtype=dtype))

    @classmethod
    def from_values(cls, values: Iterable[Any], size: int, dtype: np.dtype[Any] | None) -> Self:
        """Create a new buffer holding ``values`` in order

        Parameters
        ----------
        values
            iterable producing exactly ``size`` elements.
        size
            expected number of elements.
        dtype
            element type; inferred by numpy from the values if None.

        Returns
        -------
            New buffer holding a copy of the values
        """
        logger.debug("Allocating buffer of %s elements from values", size)
        try:
            data = np.array(list(values), dtype=dtype)
        except MemoryError as e:
            raise AllocationFailureError(size, dtype) from e
        if data.ndim != 1 or data.shape[0] != size:
            raise ShapeMismatchError(f"expected {size} values, got array of shape {data.shape}")
        return cls(data)

    def as_numpy_array(self) -> npt.NDArray[Any]:
        """Returns the buffer as a NumPy array, without copying"""
        return self._data

    @property
    def dtype(self) -> np.dtype[Any]:
        return self._data.dtype

    @property
    def nbytes(self) -> int:
        return int(self._data.nbytes)

    def __len__(self) -> int:
        return self._data.shape[0]

    def __getitem__(self, offset: int) -> Any:
        return self._data[offset]

    def __setitem__(self, offset: int, value: Any) -> None:
        self._data[offset] = value

    def copy(self) -> Self:
        return self.__class__(self._data.copy())

    def __repr__(self) -> str:
        return f"<{type(self).__name__} size={len(self)} dtype={self.dtype}>"


class _Registry(dict[str, type[Buffer]]):
    def register(self, cls: type[Buffer], qualname: str | None = None) -> None:
        if qualname is None:
            qualname = fully_qualified_name(cls)
        self[qualname] = cls


__buffer_registry = _Registry()


def fully_qualified_name(cls: type) -> str:
    module = cls.__module__
    return module + "." + cls.__qualname__


def register_buffer(cls: type[Buffer], qualname: str | None = None) -> None:
    __buffer_registry.register(cls, qualname)


def get_buffer_class() -> type[Buffer]:
    path = config.get("buffer")
    buffer_class = __buffer_registry.get(path)
    if buffer_class:
        return buffer_class

    module_name, _, class_name = path.rpartition(".")
    try:
        buffer_class = getattr(importlib.import_module(module_name), class_name)
    except (ImportError, AttributeError, ValueError) as e:
        raise BadConfigError(
            f"Buffer class '{path}' not found in registered buffers: {list(__buffer_registry)}."
        ) from e
    if not (isinstance(buffer_class, type) and issubclass(buffer_class, Buffer)):
        raise BadConfigError(f"'{path}' is not a subclass of {fully_qualified_name(Buffer)}.")
    __buffer_registry.register(buffer_class, path)
    return buffer_class


register_buffer(Buffer)
