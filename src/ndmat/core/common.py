from __future__ import annotations

import functools
import numbers
import operator
from collections.abc import Iterable
from typing import Any, Final

import numpy as np
import numpy.typing as npt

from ndmat.core.config import config as ndmat_config
from ndmat.core.config import parse_casting
from ndmat.errors import IncompatibleDtypeError, InvalidShapeError

ShapeLike = Iterable[int] | int
Extents = tuple[int, ...]
Indices = tuple[int, ...]
DTypeLike = npt.DTypeLike

# offsets and sizes are numpy.intp; nothing addressable may exceed this
MAX_OFFSET: Final = int(np.iinfo(np.intp).max)


def product(tup: tuple[int, ...]) -> int:
    return functools.reduce(operator.mul, tup, 1)


def is_integer(x: Any) -> bool:
    return isinstance(x, numbers.Integral) and not isinstance(x, bool)


def checked_product(extents: tuple[int, ...]) -> int:
    """
    Multiply extents together, raising ``InvalidShapeError`` as soon as the running product
    no longer fits in the offset type.
    """
    result = 1
    for e in extents:
        result *= e
        if result > MAX_OFFSET:
            raise InvalidShapeError(extents, f"element count exceeds {MAX_OFFSET}")
    return result


def parse_shapelike(data: ShapeLike) -> tuple[int, ...]:
    if is_integer(data):
        data = (data,)  # type: ignore[assignment]
    try:
        data_tuple = tuple(data)  # type: ignore[arg-type]
    except TypeError as e:
        msg = f"Expected an integer or an iterable of integers. Got {data!r} instead."
        raise InvalidShapeError(msg) from e

    if not all(is_integer(v) for v in data_tuple):
        raise InvalidShapeError(data_tuple, "extents must be integers")
    data_tuple = tuple(int(v) for v in data_tuple)
    if not all(v > 0 for v in data_tuple):
        raise InvalidShapeError(data_tuple, "every extent must be greater than zero")
    return data_tuple


def parse_dtype(dtype: DTypeLike | None) -> np.dtype[Any]:
    if dtype is None:
        dtype = ndmat_config.get("array.dtype")
    return np.dtype(dtype)


def check_convertible(source: np.dtype[Any], target: np.dtype[Any]) -> None:
    """
    Raise ``IncompatibleDtypeError`` unless elements of ``source`` can be stored as ``target``
    under the casting rule in ``array.casting``.
    """
    casting = parse_casting(ndmat_config.get("array.casting"))
    if not np.can_cast(source, target, casting=casting):
        raise IncompatibleDtypeError(source, target, casting)
