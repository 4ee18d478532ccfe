"""
Shape and stride algebra.

Strides are counted in elements. Every array built by this library is
row-major: the last axis has stride 1 and each preceding stride is the
next stride times the next extent.
"""
from __future__ import annotations

import operator
from functools import reduce
from typing import Iterable, Sequence, Union

ShapeLike = Union[int, Sequence[int]]


def normalize_shape(args: Sequence[ShapeLike]) -> tuple[int, ...]:
    """Turn ``(2, 3)`` or ``((2, 3),)`` or ``([2, 3],)`` into ``(2, 3)``.

    Raises:
        ValueError: If an extent is negative.
        TypeError: If an extent is not an integer.
    """
    if len(args) == 1 and hasattr(args[0], "__iter__"):
        args = tuple(args[0])
    shape = tuple(operator.index(dim) for dim in args)
    for dim in shape:
        if dim < 0:
            raise ValueError(f"Negative dimension {dim} in shape {shape}")
    return shape


def size_for_shape(shape: Iterable[int]) -> int:
    """Number of elements of an array with the given shape."""
    return reduce(operator.mul, shape, 1)


def strides_for_shape(shape: Sequence[int]) -> tuple[int, ...]:
    """Row-major element strides for ``shape``.

    Example:
        >>> strides_for_shape((1, 2, 3, 4, 5))
        (120, 60, 20, 5, 1)
    """
    if not shape:
        return ()
    strides = [0] * len(shape)
    strides[-1] = 1
    for k in range(len(shape) - 2, -1, -1):
        strides[k] = strides[k + 1] * shape[k + 1]
    return tuple(strides)


def compute_offset(strides: Sequence[int], indices: Sequence[int]) -> int:
    """Linear element offset of leading ``indices`` (no base offset)."""
    return sum(i * s for i, s in zip(indices, strides))


def max_linear_index(shape: Sequence[int], strides: Sequence[int], offset: int) -> int:
    """Largest storage element index an array can address.

    Returns ``offset - 1`` for an array with no elements.
    """
    if size_for_shape(shape) == 0:
        return offset - 1
    return offset + sum((dim - 1) * stride for dim, stride in zip(shape, strides))
