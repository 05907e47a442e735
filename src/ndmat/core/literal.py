from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import numpy as np

from ndmat.core.common import product
from ndmat.errors import JaggedLiteralError, ShapeMismatchError

__all__ = ["flatten_literal", "infer_extents", "is_nested", "parse_literal"]

# A nested literal is a scalar (order 0) or a sequence of nested literals of one less order.
NestedLiteral = Any


def is_nested(node: Any) -> bool:
    """
    Return True if ``node`` is a level of a nested literal rather than a leaf.

    Strings and bytes are leaves. Numpy arrays of at least one dimension are levels.
    """
    if isinstance(node, np.ndarray):
        return node.ndim > 0
    if isinstance(node, str | bytes | bytearray):
        return False
    return isinstance(node, Sequence)


def _measure(literal: NestedLiteral, order: int | None) -> list[int]:
    # lengths along the chain of first elements, outermost first
    extents: list[int] = []
    node = literal
    while (order is None and is_nested(node)) or (order is not None and len(extents) < order):
        if not is_nested(node):
            raise JaggedLiteralError(
                f"expected a nested sequence at depth {len(extents)}, got {node!r}"
            )
        if len(node) == 0:
            raise JaggedLiteralError(f"empty sequence at depth {len(extents)}")
        extents.append(len(node))
        node = node[0]
    return extents


def _walk(node: NestedLiteral, depth: int, extents: list[int], out: list[Any] | None) -> None:
    if depth == len(extents):
        if is_nested(node):
            raise JaggedLiteralError(f"expected a scalar at depth {depth}, got {node!r}")
        if out is not None:
            out.append(node)
        return
    if not is_nested(node):
        raise JaggedLiteralError(f"expected a nested sequence at depth {depth}, got {node!r}")
    if len(node) != extents[depth]:
        raise JaggedLiteralError(depth, extents[depth], len(node))
    for child in node:
        _walk(child, depth + 1, extents, out)


def infer_extents(literal: NestedLiteral, order: int | None = None) -> tuple[int, ...]:
    """
    Infer the extents of a nested literal.

    Parameters
    ----------
    literal
        A scalar, or a (nested) sequence of scalars.
    order : int | None, default=None
        The number of nesting levels to measure. If None, the depth is discovered by
        following the first element of every level.

    Returns
    -------
    tuple[int, ...]
        The length of every nesting level, outermost first.

    Raises
    ------
    JaggedLiteralError
        If two sibling sub-sequences at the same depth differ in length, if a level is
        empty, or if the nesting is shallower or deeper than ``order``.

    Examples
    --------
    >>> infer_extents([[1, 2, 3], [4, 5, 6]])
    (2, 3)
    >>> infer_extents(7)
    ()
    """
    extents = _measure(literal, order)
    _walk(literal, 0, extents, None)
    return tuple(extents)


def parse_literal(
    literal: NestedLiteral, order: int | None = None
) -> tuple[tuple[int, ...], list[Any]]:
    """
    Infer the extents of a nested literal and collect its leaves in row-major order, in a
    single descent.

    Raises
    ------
    JaggedLiteralError
        As for ``infer_extents``.
    ShapeMismatchError
        If the number of leaves collected differs from the product of the extents.
    """
    extents = _measure(literal, order)
    flat: list[Any] = []
    _walk(literal, 0, extents, flat)
    if len(flat) != product(tuple(extents)):
        raise ShapeMismatchError(
            f"literal has {len(flat)} elements but its extents {tuple(extents)} "
            f"require {product(tuple(extents))}"
        )
    return tuple(extents), flat


def flatten_literal(literal: NestedLiteral, order: int | None = None) -> list[Any]:
    """
    Return the leaves of a nested literal depth-first, left to right: the order in which a
    row-major layout stores them.

    Examples
    --------
    >>> flatten_literal([[1, 2], [3, 4]])
    [1, 2, 3, 4]
    """
    return parse_literal(literal, order)[1]
