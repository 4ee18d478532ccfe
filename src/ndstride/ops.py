"""
Elementwise arithmetic and comparison.

Every array is a contiguous row-major window of its storage, so all
operations here run on the flat ``data`` tensors of their operands with
torch kernels.

Binary operations on two arrays require equal shapes (validated in the
mode of the left operand) and produce a new owning array of the common
type. Operations with a scalar produce the type given by ``result_type``.
In-place operations keep the element type of the target and convert the
right-hand side to it first.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Optional

import torch

from ndstride.config import get_config
from ndstride.dtypes import Scalar, common_type, convert_scalar, is_integral, result_type
from ndstride.exceptions import TypeMismatchError

if TYPE_CHECKING:
    from ndstride.core.ndarray import NDArray, StridedArray


def _result_like(array: "StridedArray", dtype: torch.dtype) -> "NDArray":
    from ndstride.core.ndarray import NDArray

    return NDArray._allocate(array.shape, dtype, array._validator, zero=False)


def _values(array: "StridedArray", dtype: torch.dtype) -> torch.Tensor:
    return array.data.to(dtype)


def _rhs_values(target: "StridedArray", other: "StridedArray") -> torch.Tensor:
    """Right-hand side of an in-place update, converted to the target type."""
    target._validator.same_shape(target.shape, other.shape)
    if other.dtype.is_complex and not target.dtype.is_complex:
        raise TypeMismatchError(
            f"Complex array of type {other.dtype} can not be combined in place "
            f"with real type {target.dtype}"
        )
    values = other.data
    if target.storage.shares_memory(other.storage):
        values = values.clone()
    return values.to(target.dtype)


def _divide(values: torch.Tensor, divisor: object, integral: bool) -> torch.Tensor:
    if integral:
        return torch.div(values, divisor, rounding_mode="trunc")
    return torch.div(values, divisor)


# =============================================================================
# Array with array
# =============================================================================


def add(first: "StridedArray", second: "StridedArray") -> "NDArray":
    """Elementwise sum of two arrays of equal shape.

    Raises:
        ShapeMismatchError: If shapes differ (checked mode).
    """
    first._validator.same_shape(first.shape, second.shape)
    dtype = common_type(first.dtype, second.dtype)
    result = _result_like(first, dtype)
    if result.size:
        torch.add(_values(first, dtype), _values(second, dtype), out=result.data)
    return result


def subtract(first: "StridedArray", second: "StridedArray") -> "NDArray":
    """Elementwise difference of two arrays of equal shape.

    Raises:
        ShapeMismatchError: If shapes differ (checked mode).
    """
    first._validator.same_shape(first.shape, second.shape)
    dtype = common_type(first.dtype, second.dtype)
    result = _result_like(first, dtype)
    if result.size:
        torch.sub(_values(first, dtype), _values(second, dtype), out=result.data)
    return result


def iadd(target: "StridedArray", other: "StridedArray") -> "StridedArray":
    """Add ``other`` into ``target`` in place.

    If both share memory the right-hand side is copied first, so the
    result equals the out-of-place sum.

    Raises:
        ShapeMismatchError: If shapes differ (checked mode).
        TypeMismatchError: If other is complex and target is real.
    """
    values = _rhs_values(target, other)
    if target.size:
        target.data.add_(values)
    return target


def isub(target: "StridedArray", other: "StridedArray") -> "StridedArray":
    """Subtract ``other`` from ``target`` in place."""
    values = _rhs_values(target, other)
    if target.size:
        target.data.sub_(values)
    return target


# =============================================================================
# Array with scalar
# =============================================================================


def add_scalar(array: "StridedArray", value: Scalar) -> "NDArray":
    """``array + value`` (also ``value + array``)."""
    dtype = result_type(array.dtype, value)
    scalar = convert_scalar(value, dtype)
    result = _result_like(array, dtype)
    if result.size:
        torch.add(_values(array, dtype), scalar, out=result.data)
    return result


def subtract_scalar(array: "StridedArray", value: Scalar) -> "NDArray":
    """``array - value``."""
    dtype = result_type(array.dtype, value)
    scalar = convert_scalar(value, dtype)
    result = _result_like(array, dtype)
    if result.size:
        torch.sub(_values(array, dtype), scalar, out=result.data)
    return result


def scalar_subtract(value: Scalar, array: "StridedArray") -> "NDArray":
    """``value - array``."""
    dtype = result_type(array.dtype, value)
    scalar = convert_scalar(value, dtype)
    result = _result_like(array, dtype)
    if result.size:
        result.data.copy_(torch.rsub(_values(array, dtype), scalar))
    return result


def multiply_scalar(array: "StridedArray", value: Scalar) -> "NDArray":
    """``array * value`` (also ``value * array``)."""
    dtype = result_type(array.dtype, value)
    scalar = convert_scalar(value, dtype)
    result = _result_like(array, dtype)
    if result.size:
        torch.mul(_values(array, dtype), scalar, out=result.data)
    return result


def divide_scalar(array: "StridedArray", value: Scalar) -> "NDArray":
    """``array / value``; integer results truncate toward zero."""
    dtype = result_type(array.dtype, value)
    scalar = convert_scalar(value, dtype)
    result = _result_like(array, dtype)
    if result.size:
        result.data.copy_(_divide(_values(array, dtype), scalar, is_integral(dtype)))
    return result


def scalar_divide(value: Scalar, array: "StridedArray") -> "NDArray":
    """``value / array`` elementwise; integer results truncate toward zero."""
    dtype = result_type(array.dtype, value)
    scalar = convert_scalar(value, dtype)
    result = _result_like(array, dtype)
    if result.size:
        values = _values(array, dtype)
        numerator = torch.full_like(values, scalar)
        result.data.copy_(_divide(numerator, values, is_integral(dtype)))
    return result


def iadd_scalar(array: "StridedArray", value: Scalar) -> "StridedArray":
    """``array += value``, keeping the element type."""
    scalar = convert_scalar(value, array.dtype)
    if array.size:
        array.data.add_(scalar)
    return array


def isub_scalar(array: "StridedArray", value: Scalar) -> "StridedArray":
    """``array -= value``, keeping the element type."""
    scalar = convert_scalar(value, array.dtype)
    if array.size:
        array.data.sub_(scalar)
    return array


def imul_scalar(array: "StridedArray", value: Scalar) -> "StridedArray":
    """``array *= value``, keeping the element type."""
    scalar = convert_scalar(value, array.dtype)
    if array.size:
        array.data.mul_(scalar)
    return array


def idiv_scalar(array: "StridedArray", value: Scalar) -> "StridedArray":
    """``array /= value``, keeping the element type."""
    scalar = convert_scalar(value, array.dtype)
    if array.size:
        data = array.data
        if is_integral(array.dtype):
            data.div_(scalar, rounding_mode="trunc")
        else:
            data.div_(scalar)
    return array


# =============================================================================
# Unary and comparison
# =============================================================================


def negate(array: "StridedArray") -> "NDArray":
    """Elementwise negation in a new array of the same type."""
    result = _result_like(array, array.dtype)
    if result.size:
        torch.neg(array.data, out=result.data)
    return result


def equal(lhs: "StridedArray", rhs: "StridedArray", tolerance: Optional[float] = None) -> bool:
    """Check if two arrays hold the same values.

    Elements are compared in iteration order after conversion to the common
    type; they are equal when ``|a - b| < tolerance``.

    Args:
        lhs: Left array; its mode decides what a shape mismatch does.
        rhs: Right array.
        tolerance: Absolute tolerance, defaults to the configured one.

    Returns:
        True if every pair of elements is within tolerance.

    Raises:
        ShapeMismatchError: If shapes differ (checked mode). Unchecked
                            arrays of different shapes compare unequal.
    """
    if lhs.shape != rhs.shape:
        lhs._validator.same_shape(lhs.shape, rhs.shape)
        return False
    if tolerance is None:
        tolerance = get_config().tolerance
    if not lhs.size:
        return True
    dtype = common_type(lhs.dtype, rhs.dtype)
    difference = (_values(lhs, dtype) - _values(rhs, dtype)).abs()
    return bool((difference < tolerance).all())
