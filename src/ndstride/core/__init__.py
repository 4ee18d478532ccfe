"""
ndstride core: storage, shape algebra, validation and the array classes.
"""
from __future__ import annotations

from ndstride.core.allocator import (
    HostAllocator,
    get_allocator,
    set_allocator,
)
from ndstride.core.checks import (
    CHECKED,
    UNCHECKED,
    ArrayValidator,
    UncheckedValidator,
    validator_for,
)
from ndstride.core.ndarray import (
    NDArray,
    NDArrayRef,
    StridedArray,
)
from ndstride.core.shape import (
    compute_offset,
    max_linear_index,
    normalize_shape,
    size_for_shape,
    strides_for_shape,
)
from ndstride.core.storage import (
    Storage,
    as_byte_region,
)

__all__ = [
    # Allocation
    "HostAllocator",
    "get_allocator",
    "set_allocator",
    # Validation
    "ArrayValidator",
    "UncheckedValidator",
    "CHECKED",
    "UNCHECKED",
    "validator_for",
    # Arrays
    "StridedArray",
    "NDArray",
    "NDArrayRef",
    # Shapes
    "normalize_shape",
    "size_for_shape",
    "strides_for_shape",
    "compute_offset",
    "max_linear_index",
    # Storage
    "Storage",
    "as_byte_region",
]
