"""
Scalar element types.

Arrays hold arithmetic or complex scalars only. Element types are carried
as ``torch.dtype`` objects; NumPy dtypes, Python types and string names are
resolved to them on input.

This module provides:
- resolve_dtype(): Normalize a dtype-like value to a supported torch.dtype
- itemsize(), is_integral(), is_scalar()
- common_type(): Widest type two element types convert to without loss
- result_type(): Element type of an array combined with a scalar
- convert_scalar(): Convert a scalar value to an element type
"""
from __future__ import annotations

from typing import Any, Final, Union

import numpy as np
import torch

from ndstride.exceptions import TypeMismatchError

DTypeLike = Union[torch.dtype, np.dtype, type, str]
Scalar = Union[int, float, complex, np.number, torch.Tensor]

SUPPORTED_DTYPES: Final[tuple[torch.dtype, ...]] = (
    torch.uint8,
    torch.int8,
    torch.int16,
    torch.int32,
    torch.int64,
    torch.float16,
    torch.float32,
    torch.float64,
    torch.complex64,
    torch.complex128,
)

_NUMPY_TO_TORCH: Final[dict[np.dtype, torch.dtype]] = {
    np.dtype(np.uint8): torch.uint8,
    np.dtype(np.int8): torch.int8,
    np.dtype(np.int16): torch.int16,
    np.dtype(np.int32): torch.int32,
    np.dtype(np.int64): torch.int64,
    np.dtype(np.float16): torch.float16,
    np.dtype(np.float32): torch.float32,
    np.dtype(np.float64): torch.float64,
    np.dtype(np.complex64): torch.complex64,
    np.dtype(np.complex128): torch.complex128,
}

_ITEMSIZE: Final[dict[torch.dtype, int]] = {
    dtype: torch.empty(0, dtype=dtype).element_size() for dtype in SUPPORTED_DTYPES
}


def resolve_dtype(dtype: DTypeLike) -> torch.dtype:
    """Normalize a dtype-like value to a supported ``torch.dtype``.

    Args:
        dtype: torch dtype, NumPy dtype (or scalar type), Python type
               (int, float, complex) or a name such as "float64" or "double".

    Returns:
        The matching torch dtype.

    Raises:
        TypeMismatchError: If the value does not name a supported scalar type.
    """
    if isinstance(dtype, torch.dtype):
        if dtype in _ITEMSIZE:
            return dtype
        raise TypeMismatchError(f"Unsupported element type: {dtype}")

    try:
        np_dtype = np.dtype(dtype)
    except TypeError as err:
        if isinstance(dtype, str):
            candidate = getattr(torch, dtype, None)
            if isinstance(candidate, torch.dtype) and candidate in _ITEMSIZE:
                return candidate
        raise TypeMismatchError(f"Unsupported element type: {dtype!r}") from err

    try:
        return _NUMPY_TO_TORCH[np_dtype]
    except KeyError:
        raise TypeMismatchError(f"Unsupported element type: {dtype!r}") from None


def to_numpy_dtype(dtype: torch.dtype) -> np.dtype:
    """Get the NumPy dtype matching a supported torch dtype."""
    for np_dtype, torch_dtype in _NUMPY_TO_TORCH.items():
        if torch_dtype == dtype:
            return np_dtype
    raise TypeMismatchError(f"Unsupported element type: {dtype}")


def itemsize(dtype: torch.dtype) -> int:
    """Size of one element in bytes."""
    return _ITEMSIZE[dtype]


def is_integral(dtype: torch.dtype) -> bool:
    """Check if dtype is an integer type."""
    return not (dtype.is_floating_point or dtype.is_complex)


def is_scalar(value: Any) -> bool:
    """Check if value is an arithmetic or complex scalar.

    Python numbers, NumPy numeric scalars and 0-d tensors of a supported
    type count as scalars.
    """
    if isinstance(value, (int, float, complex, np.number)):
        return True
    if isinstance(value, torch.Tensor):
        return value.dim() == 0 and value.dtype in _ITEMSIZE
    return False


def common_type(first: torch.dtype, second: torch.dtype) -> torch.dtype:
    """Widest type both element types convert to without loss.

    Example:
        >>> common_type(torch.float64, torch.complex128)
        torch.complex128
    """
    result = torch.promote_types(first, second)
    if result not in _ITEMSIZE:
        raise TypeMismatchError(
            f"No supported common type for {first} and {second}"
        )
    return result


def result_type(dtype: torch.dtype, value: Scalar) -> torch.dtype:
    """Element type of an array of ``dtype`` combined with a scalar.

    The result is the common type of both operands. Python ``int``,
    ``float`` and ``complex`` count as int64, float64 and complex128, so a
    uint8 array plus a Python int gives int64 and a float32 array plus a
    Python float gives float64. NumPy scalars and 0-d tensors carry their
    own type.

    Args:
        dtype: Array element type.
        value: Scalar operand.

    Returns:
        Element type of the result.

    Raises:
        TypeMismatchError: If value is not a scalar.
    """
    if isinstance(value, (np.generic, torch.Tensor)):
        return common_type(dtype, resolve_dtype(value.dtype))
    for kind in (complex, float, int):
        if isinstance(value, kind):
            return common_type(dtype, resolve_dtype(kind))
    raise TypeMismatchError(f"Value of type {type(value).__name__} is not a scalar")


def _python_scalar(value: Scalar) -> Union[int, float, complex]:
    if isinstance(value, (np.generic, torch.Tensor)):
        return value.item()
    return value


def _wrap_integer(value: int, dtype: torch.dtype) -> int:
    bits = 8 * _ITEMSIZE[dtype]
    if dtype == torch.uint8:
        return value % (1 << bits)
    half = 1 << (bits - 1)
    return ((value + half) % (1 << bits)) - half


def convert_scalar(value: Scalar, dtype: torch.dtype) -> Union[int, float, complex]:
    """Convert a scalar to the Python value stored for ``dtype``.

    Real values converted to a complex type get a zero imaginary part.
    Real values converted to an integer type truncate toward zero and wrap
    around like a C cast.

    Raises:
        TypeMismatchError: If value is not a scalar, or is complex and
                           dtype is real.
    """
    if not is_scalar(value):
        raise TypeMismatchError(f"Value of type {type(value).__name__} is not a scalar")
    value = _python_scalar(value)

    if dtype.is_complex:
        return complex(value)
    if isinstance(value, complex):
        raise TypeMismatchError(
            f"Complex value {value} can not be converted into real type {dtype}"
        )
    if dtype.is_floating_point:
        return float(value)
    try:
        return _wrap_integer(int(value), dtype)
    except (ValueError, OverflowError) as err:
        raise TypeMismatchError(f"Value {value} can not be converted into {dtype}") from err
