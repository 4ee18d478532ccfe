"""
Axis permutation with a fresh copy.

``transpose(a, "ijk->kij")`` returns an owning array ``r`` with
``r[k, i, j] == a[i, j, k]``. The result is contiguous row-major, so it
can be sliced, reshaped and viewed like any other array.
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ndstride.patterns import parse_transpose_pattern

if TYPE_CHECKING:
    from ndstride.core.ndarray import NDArray, StridedArray

logger = logging.getLogger(__name__)


def transpose(array: "StridedArray", pattern: str) -> "NDArray":
    """Permute the axes of ``array`` as described by ``pattern``.

    Args:
        array: Source array; left unchanged.
        pattern: Pattern such as ``"ijkl->ikjl"``.

    Returns:
        New owning array of the permuted shape, same element type and mode.

    Raises:
        PatternSyntaxError: If the pattern is malformed for this array.
    """
    from ndstride.core.ndarray import NDArray

    perm = parse_transpose_pattern(pattern, array.ndim, checked=array.checked)

    new_shape = [0] * array.ndim
    for axis, target in enumerate(perm):
        new_shape[target] = array.shape[axis]

    result = NDArray._allocate(tuple(new_shape), array.dtype, array._validator, zero=False)
    if result.size:
        # permuting the result's axes lines them up with the source's
        result.to_torch().permute(perm).copy_(array.to_torch())

    logger.debug(
        "Transposed %s -> %s with pattern %r",
        array.shape,
        result.shape,
        pattern,
    )
    return result
