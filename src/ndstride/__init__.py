"""
ndstride - Strided N-dimensional arrays over shared storage

A small array library built on reference-counted raw storage. Slices,
reshapes and element-type views share memory with the array they come
from; copies, arithmetic results and transposes get fresh memory.

Main APIs:
- nds.NDArray(...): Zero-filled array owning its memory
- nds.NDArrayRef(ref, ...): Array over caller-owned memory (tensor, NumPy
  array or writable buffer)
- nds.transpose(): Axis permutation from a pattern such as "ijk->kij"
- nds.configure() / nds.checked(): Switch checked and unchecked mode
"""

__version__ = "0.1.0"

from ndstride.config import (
    NDStrideConfig,
    checked,
    checks_enabled,
    configure,
    get_config,
    load_config,
)
from ndstride.core import (
    HostAllocator,
    NDArray,
    NDArrayRef,
    Storage,
    StridedArray,
    get_allocator,
    set_allocator,
    strides_for_shape,
)
from ndstride.dtypes import (
    SUPPORTED_DTYPES,
    common_type,
    resolve_dtype,
)
from ndstride.enums import (
    Ownership,
    ReleasePolicy,
)
from ndstride.exceptions import (
    AlignmentError,
    AllocationError,
    ConfigurationError,
    DimensionMismatchError,
    NDStrideError,
    OutOfRangeError,
    PatternSyntaxError,
    ShapeMismatchError,
    TypeMismatchError,
)
from ndstride.patterns import parse_transpose_pattern
from ndstride.transpose import transpose

__all__ = [
    "__version__",
    # Arrays
    "StridedArray",
    "NDArray",
    "NDArrayRef",
    "transpose",
    "parse_transpose_pattern",
    # Storage
    "Storage",
    "HostAllocator",
    "get_allocator",
    "set_allocator",
    "strides_for_shape",
    # Types
    "SUPPORTED_DTYPES",
    "resolve_dtype",
    "common_type",
    # Enums
    "Ownership",
    "ReleasePolicy",
    # Configuration
    "NDStrideConfig",
    "configure",
    "get_config",
    "load_config",
    "checks_enabled",
    "checked",
    # Exceptions
    "NDStrideError",
    "DimensionMismatchError",
    "OutOfRangeError",
    "ShapeMismatchError",
    "AlignmentError",
    "AllocationError",
    "TypeMismatchError",
    "PatternSyntaxError",
    "ConfigurationError",
]
