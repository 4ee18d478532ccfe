"""
Strided arrays over shared storage.

An array is a shape, row-major strides, an element offset and a handle on
a ``Storage``. Slicing, reshaping and type views only recompute this
metadata and share the storage; ``copy``, ``resize``, ``astype``,
arithmetic and ``transpose`` produce arrays with fresh storage.

Two ownership modes exist as separate classes:
- NDArray: allocates (and zero-fills) its own storage at construction
- NDArrayRef: wraps memory supplied by the caller and never frees it;
  the memory can be replaced with ``set_ref``

Each array captures checked or unchecked mode when it is built and passes
it on to every array derived from it.

Example:
    a = NDArray(2, 3, 4)
    row = a.slice_at(1)          # shape (3, 4), shares storage with a
    row.set_element((0, 0), 5.0)
    assert a.element_at(1, 0, 0) == 5.0
"""
from __future__ import annotations

import logging
import operator
from typing import Any, ClassVar, Iterator, Optional, Sequence, Union

import numpy as np
import torch

from ndstride.config import get_config
from ndstride.core.checks import ArrayValidator, validator_for
from ndstride.core.shape import (
    ShapeLike,
    compute_offset,
    normalize_shape,
    size_for_shape,
    strides_for_shape,
)
from ndstride.core.storage import Storage, as_byte_region
from ndstride.dtypes import (
    DTypeLike,
    Scalar,
    convert_scalar,
    is_scalar,
    itemsize,
    resolve_dtype,
)
from ndstride.enums import Ownership, ReleasePolicy
from ndstride.exceptions import (
    AlignmentError,
    DimensionMismatchError,
    ShapeMismatchError,
    TypeMismatchError,
)

logger = logging.getLogger(__name__)


def _default_dtype(dtype: Optional[DTypeLike]) -> torch.dtype:
    if dtype is None:
        dtype = get_config().default_dtype
    return resolve_dtype(dtype)


def _require_ndim(shape: Sequence[int]) -> None:
    if len(shape) == 0:
        raise DimensionMismatchError(1, 0, message="Arrays need at least one dimension")


class StridedArray:
    """Base class of NDArray and NDArrayRef.

    Attributes:
        shape: Extent of every axis.
        strides: Element stride of every axis.
        size: Number of elements.
        offset: Storage element index of the first element.
        dtype: Element type.
        storage: Handle on the shared storage.
        checked: Whether this array validates its inputs.
    """

    ownership: ClassVar[Ownership]

    __slots__ = (
        "_shape",
        "_strides",
        "_size",
        "_offset",
        "_dtype",
        "_storage",
        "_validator",
    )

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        raise TypeError("StridedArray can not be built directly; use NDArray or NDArrayRef")

    def _init_parts(
        self,
        shape: tuple[int, ...],
        strides: tuple[int, ...],
        offset: int,
        dtype: torch.dtype,
        storage: Storage,
        validator: ArrayValidator,
    ) -> None:
        self._shape = shape
        self._strides = strides
        self._size = size_for_shape(shape)
        self._offset = offset
        self._dtype = dtype
        self._storage = storage
        self._validator = validator

    @classmethod
    def _from_parts(
        cls,
        shape: tuple[int, ...],
        strides: tuple[int, ...],
        offset: int,
        dtype: torch.dtype,
        storage: Storage,
        validator: ArrayValidator,
    ) -> "StridedArray":
        array = object.__new__(cls)
        array._init_parts(shape, strides, offset, dtype, storage, validator)
        return array

    def _derive(
        self,
        shape: tuple[int, ...],
        strides: tuple[int, ...],
        offset: int,
        dtype: Optional[torch.dtype] = None,
    ) -> "StridedArray":
        """Array of the same class sharing this array's storage."""
        return type(self)._from_parts(
            shape,
            strides,
            offset,
            dtype if dtype is not None else self._dtype,
            self._storage.copy(),
            self._validator,
        )

    def _reset_to_default(self) -> None:
        ndim = len(self._shape)
        self._shape = (0,) * ndim
        self._strides = (0,) * ndim
        self._size = 0
        self._offset = 0

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def shape(self) -> tuple[int, ...]:
        """Extent of every axis."""
        return self._shape

    @property
    def strides(self) -> tuple[int, ...]:
        """Element stride of every axis."""
        return self._strides

    @property
    def size(self) -> int:
        """Total number of elements."""
        return self._size

    @property
    def offset(self) -> int:
        """Storage element index of the first element."""
        return self._offset

    @property
    def ndim(self) -> int:
        """Number of axes."""
        return len(self._shape)

    def dim(self) -> int:
        """Number of axes."""
        return len(self._shape)

    @property
    def dtype(self) -> torch.dtype:
        """Element type."""
        return self._dtype

    @property
    def itemsize(self) -> int:
        """Size of one element in bytes."""
        return itemsize(self._dtype)

    @property
    def nbytes(self) -> int:
        """Size of the elements in bytes."""
        return self._size * itemsize(self._dtype)

    @property
    def storage(self) -> Storage:
        """Handle on the shared storage."""
        return self._storage

    @property
    def checked(self) -> bool:
        """Whether this array validates its inputs."""
        return self._validator.enabled

    # ------------------------------------------------------------------
    # Raw data access
    # ------------------------------------------------------------------

    def _typed_storage(self) -> Optional[torch.Tensor]:
        return self._storage.get(self._dtype, checked=self._validator.enabled)

    def _available_elements(self) -> Optional[int]:
        region = self._storage.region
        if region is None:
            return None
        return region.numel() // itemsize(self._dtype)

    def _unbound(self) -> ValueError:
        return ValueError(f"{type(self).__name__} of shape {self._shape} is not bound to memory")

    @property
    def data(self) -> torch.Tensor:
        """Flat 1-D tensor over the elements, sharing memory with the array.

        Elements appear in row-major order, starting at ``offset``.
        """
        flat = self._typed_storage()
        if flat is None:
            if self._size == 0:
                return torch.empty(0, dtype=self._dtype)
            raise self._unbound()
        return flat.narrow(0, self._offset, self._size)

    def to_torch(self) -> torch.Tensor:
        """Tensor view with this array's shape and strides (zero-copy)."""
        flat = self._typed_storage()
        if flat is None:
            if self._size == 0:
                return torch.empty(self._shape, dtype=self._dtype)
            raise self._unbound()
        return flat.as_strided(self._shape, self._strides, flat.storage_offset() + self._offset)

    def to_numpy(self) -> np.ndarray:
        """NumPy view of the elements (zero-copy)."""
        return self.to_torch().numpy()

    def __iter__(self) -> Iterator[Union[int, float, complex]]:
        """Iterate over elements in row-major order as Python scalars."""
        return iter(self.data.tolist())

    def __len__(self) -> int:
        return self._size

    # ------------------------------------------------------------------
    # Indexing
    # ------------------------------------------------------------------

    def _linear_index(self, indices: Sequence[int]) -> int:
        return self._offset + compute_offset(self._strides, indices)

    def element_at(self, *indices: int) -> Union[int, float, complex]:
        """Value of the element at a full index.

        Raises:
            DimensionMismatchError: If len(indices) != ndim (checked mode).
            OutOfRangeError: If an index is outside its axis (checked mode).
        """
        indices = tuple(operator.index(i) for i in indices)
        self._validator.element_indices(self._shape, indices)
        flat = self._typed_storage()
        if flat is None:
            raise self._unbound()
        return flat[self._linear_index(indices)].item()

    def set_element(self, indices: Sequence[int], value: Scalar) -> None:
        """Write ``value`` (converted to the element type) at a full index.

        Raises:
            DimensionMismatchError: If len(indices) != ndim (checked mode).
            OutOfRangeError: If an index is outside its axis (checked mode).
            TypeMismatchError: If value can not be converted.
        """
        indices = tuple(operator.index(i) for i in indices)
        self._validator.element_indices(self._shape, indices)
        flat = self._typed_storage()
        if flat is None:
            raise self._unbound()
        flat[self._linear_index(indices)] = convert_scalar(value, self._dtype)

    def slice_at(self, *indices: int) -> "StridedArray":
        """Sub-array at fixed leading indices, sharing storage.

        The result has ``ndim - len(indices)`` axes with the trailing
        extents and strides of this array.

        Raises:
            DimensionMismatchError: If len(indices) >= ndim (checked mode).
            OutOfRangeError: If an index is outside its axis (checked mode).
        """
        indices = tuple(operator.index(i) for i in indices)
        self._validator.slice_indices(self._shape, indices)
        k = len(indices)
        return self._derive(
            self._shape[k:],
            self._strides[k:],
            self._linear_index(indices),
        )

    def at(self, *indices: int) -> Union["StridedArray", int, float, complex]:
        """Element for a full index, sub-array for a leading index."""
        self._validator.index_count(len(self._shape), len(indices))
        if len(indices) < len(self._shape):
            return self.slice_at(*indices)
        return self.element_at(*indices)

    def __call__(self, *indices: int) -> Union["StridedArray", int, float, complex]:
        return self.at(*indices)

    def __getitem__(self, key: Union[int, tuple[int, ...]]) -> Union["StridedArray", int, float, complex]:
        if not isinstance(key, tuple):
            key = (key,)
        return self.at(*key)

    def __setitem__(self, key: Union[int, tuple[int, ...]], value: Any) -> None:
        if not isinstance(key, tuple):
            key = (key,)
        self._validator.index_count(len(self._shape), len(key))
        if len(key) >= len(self._shape):
            self.set_element(key, value)
            return
        target = self.slice_at(*key)
        if isinstance(value, StridedArray):
            target.assign(value)
        else:
            target.set_value(value)

    # ------------------------------------------------------------------
    # Values
    # ------------------------------------------------------------------

    def set_value(self, value: Scalar) -> None:
        """Set every element to ``value`` converted to the element type.

        Raises:
            TypeMismatchError: If value is complex and the array is real.
        """
        converted = convert_scalar(value, self._dtype)
        if self._size:
            self.data.fill_(converted)

    def set_zero(self) -> None:
        """Set every element to zero."""
        self.set_value(0)

    def set_one(self) -> None:
        """Set every element to one."""
        self.set_value(1)

    def assign(self, other: "StridedArray") -> None:
        """Copy the values of ``other`` into this array, in iteration order.

        Raises:
            ShapeMismatchError: If shapes differ (checked mode).
            TypeMismatchError: If other is complex and this array is real.
        """
        self._validator.same_shape(self._shape, other.shape)
        if other.dtype.is_complex and not self._dtype.is_complex:
            raise TypeMismatchError(
                f"Complex array of type {other.dtype} can not be assigned to real type {self._dtype}"
            )
        if not self._size:
            return
        source = other.data
        if self._storage.shares_memory(other.storage):
            source = source.clone()
        self.data.copy_(source)

    # ------------------------------------------------------------------
    # Copies and moves
    # ------------------------------------------------------------------

    def copy(self) -> "NDArray":
        """Deep copy into fresh owning storage."""
        result = NDArray._allocate(self._shape, self._dtype, self._validator, zero=False)
        if self._size:
            result.data.copy_(self.data)
        return result

    def share(self) -> "StridedArray":
        """Shallow copy: a new array on the same storage."""
        return self._derive(self._shape, self._strides, self._offset)

    def move(self) -> "StridedArray":
        """Transfer the storage to a new array.

        This array is left in the empty default state (zero shape, no
        storage).
        """
        moved = type(self)._from_parts(
            self._shape,
            self._strides,
            self._offset,
            self._dtype,
            self._storage.move(),
            self._validator,
        )
        self._reset_to_default()
        return moved

    def __copy__(self) -> "StridedArray":
        return self.share()

    def __deepcopy__(self, memo: dict[int, Any]) -> "NDArray":
        return self.copy()

    # ------------------------------------------------------------------
    # Shape transformation
    # ------------------------------------------------------------------

    def _check_reshape(self, new_shape: tuple[int, ...]) -> None:
        new_size = size_for_shape(new_shape)
        if new_size != self._size:
            raise ShapeMismatchError(
                self._size,
                new_size,
                message=(
                    f"new shape {new_shape} ({new_size} elements) is not consistent "
                    f"with old one {self._shape} ({self._size} elements)"
                ),
            )
        if self._offset != 0:
            raise ShapeMismatchError(
                self._shape,
                new_shape,
                message=f"Can not reshape a view with non-zero offset ({self._offset})",
            )

    def reshape(self, *shape: ShapeLike) -> "StridedArray":
        """Array of a new shape on the same storage and offset.

        The number of axes may change.

        Raises:
            ShapeMismatchError: If the element count differs, or this array
                                has a non-zero offset.
        """
        new_shape = normalize_shape(shape)
        _require_ndim(new_shape)
        self._check_reshape(new_shape)
        return self._derive(new_shape, strides_for_shape(new_shape), self._offset)

    def inplace_reshape(self, *shape: ShapeLike) -> "StridedArray":
        """Change this array's shape in place (same number of axes).

        Returns:
            self.

        Raises:
            DimensionMismatchError: If the number of axes differs.
            ShapeMismatchError: If the element count differs, or this array
                                has a non-zero offset.
        """
        new_shape = normalize_shape(shape)
        if len(new_shape) != len(self._shape):
            raise DimensionMismatchError(
                len(self._shape),
                len(new_shape),
                message="new shape dimensions are not consistent with old one",
            )
        self._check_reshape(new_shape)
        self._shape = new_shape
        self._strides = strides_for_shape(new_shape)
        return self

    def resize(self, *shape: ShapeLike) -> "NDArray":
        """Fresh zeroed owning array of a new shape; contents are not kept."""
        new_shape = normalize_shape(shape)
        _require_ndim(new_shape)
        return NDArray._allocate(new_shape, self._dtype, self._validator, zero=True)

    def view(self, dtype: DTypeLike) -> "StridedArray":
        """Reinterpret the same bytes as another element type.

        Only the last extent (and the offset) is rescaled by the ratio of
        element sizes.

        Raises:
            AlignmentError: If the new type is wider and the last extent or
                            the offset is not a multiple of the ratio.
        """
        new_dtype = resolve_dtype(dtype)
        old_size = itemsize(self._dtype)
        new_size = itemsize(new_dtype)
        last = self._shape[-1]
        if new_size > old_size:
            ratio = new_size // old_size
            if last % ratio != 0 or self._offset % ratio != 0:
                raise AlignmentError(last, self._offset, ratio)

        new_shape = self._shape[:-1] + ((last * old_size) // new_size,)
        new_offset = (self._offset * old_size) // new_size
        return self._derive(new_shape, strides_for_shape(new_shape), new_offset, new_dtype)

    def astype(self, dtype: DTypeLike) -> "NDArray":
        """Owning copy with every element converted by value.

        Complex to real keeps the real part and logs a warning.
        """
        new_dtype = resolve_dtype(dtype)
        result = NDArray._allocate(self._shape, new_dtype, self._validator, zero=False)
        if not self._size:
            return result
        source = self.data
        if source.is_complex() and not new_dtype.is_complex:
            logger.warning(
                "Imaginary part will be discarded when converting from %s into %s",
                self._dtype,
                new_dtype,
            )
            source = source.real
        result.data.copy_(source)
        return result

    def transpose(self, pattern: str) -> "NDArray":
        """Axis permutation described by a pattern like ``"ijk->kij"``."""
        from ndstride.transpose import transpose

        return transpose(self, pattern)

    # ------------------------------------------------------------------
    # Arithmetic
    # ------------------------------------------------------------------

    def __add__(self, other: Any) -> Any:
        from ndstride import ops

        if isinstance(other, StridedArray):
            return ops.add(self, other)
        if is_scalar(other):
            return ops.add_scalar(self, other)
        return NotImplemented

    def __radd__(self, other: Any) -> Any:
        from ndstride import ops

        if is_scalar(other):
            return ops.add_scalar(self, other)
        return NotImplemented

    def __sub__(self, other: Any) -> Any:
        from ndstride import ops

        if isinstance(other, StridedArray):
            return ops.subtract(self, other)
        if is_scalar(other):
            return ops.subtract_scalar(self, other)
        return NotImplemented

    def __rsub__(self, other: Any) -> Any:
        from ndstride import ops

        if is_scalar(other):
            return ops.scalar_subtract(other, self)
        return NotImplemented

    def __mul__(self, other: Any) -> Any:
        from ndstride import ops

        if is_scalar(other):
            return ops.multiply_scalar(self, other)
        return NotImplemented

    __rmul__ = __mul__

    def __truediv__(self, other: Any) -> Any:
        from ndstride import ops

        if is_scalar(other):
            return ops.divide_scalar(self, other)
        return NotImplemented

    def __rtruediv__(self, other: Any) -> Any:
        from ndstride import ops

        if is_scalar(other):
            return ops.scalar_divide(other, self)
        return NotImplemented

    def __iadd__(self, other: Any) -> Any:
        from ndstride import ops

        if isinstance(other, StridedArray):
            return ops.iadd(self, other)
        if is_scalar(other):
            return ops.iadd_scalar(self, other)
        return NotImplemented

    def __isub__(self, other: Any) -> Any:
        from ndstride import ops

        if isinstance(other, StridedArray):
            return ops.isub(self, other)
        if is_scalar(other):
            return ops.isub_scalar(self, other)
        return NotImplemented

    def __imul__(self, other: Any) -> Any:
        from ndstride import ops

        if is_scalar(other):
            return ops.imul_scalar(self, other)
        return NotImplemented

    def __itruediv__(self, other: Any) -> Any:
        from ndstride import ops

        if is_scalar(other):
            return ops.idiv_scalar(self, other)
        return NotImplemented

    def __neg__(self) -> "NDArray":
        from ndstride import ops

        return ops.negate(self)

    def __eq__(self, other: object) -> Any:
        from ndstride import ops

        if isinstance(other, StridedArray):
            return ops.equal(self, other)
        return NotImplemented

    def __ne__(self, other: object) -> Any:
        result = self.__eq__(other)
        if result is NotImplemented:
            return result
        return not result

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(shape={self._shape}, dtype={self._dtype}, "
            f"offset={self._offset}, checked={self._validator.enabled})"
        )


class NDArray(StridedArray):
    """Array that allocates its own zero-filled storage.

    Args:
        *shape: Extents as separate ints or one sequence. Without a shape
                the array is in the empty default state.
        dtype: Element type (default from configuration, float64).
        ndim: Number of axes of a default-state array.
        checked: Validation mode; None uses the global mode.

    Example:
        a = NDArray(2, 3, dtype=torch.complex128)
        b = NDArray((2, 3))
        empty = NDArray(ndim=3)
    """

    ownership = Ownership.OWNING

    __slots__ = ()

    def __init__(
        self,
        *shape: ShapeLike,
        dtype: Optional[DTypeLike] = None,
        ndim: Optional[int] = None,
        checked: Optional[bool] = None,
    ) -> None:
        resolved = _default_dtype(dtype)
        validator = validator_for(checked)

        if not shape:
            ndim = 1 if ndim is None else ndim
            if ndim < 1:
                raise DimensionMismatchError(1, ndim, message="Arrays need at least one dimension")
            self._init_parts((0,) * ndim, (0,) * ndim, 0, resolved, Storage.empty(), validator)
            return

        new_shape = normalize_shape(shape)
        _require_ndim(new_shape)
        if ndim is not None and ndim != len(new_shape):
            raise DimensionMismatchError(ndim, len(new_shape))
        storage = Storage.allocate(size_for_shape(new_shape) * itemsize(resolved))
        self._init_parts(new_shape, strides_for_shape(new_shape), 0, resolved, storage, validator)
        self.set_zero()

    @classmethod
    def _allocate(
        cls,
        shape: tuple[int, ...],
        dtype: torch.dtype,
        validator: ArrayValidator,
        zero: bool = True,
    ) -> "NDArray":
        storage = Storage.allocate(size_for_shape(shape) * itemsize(dtype))
        array = cls._from_parts(shape, strides_for_shape(shape), 0, dtype, storage, validator)
        if zero:
            array.set_zero()
        return array


class NDArrayRef(StridedArray):
    """Array over memory owned by the caller.

    The memory is never freed by the array. It is not zero-filled. ``ref``
    may be None, in which case the array must be bound with ``set_ref``
    before its elements are touched.

    Args:
        ref: Tensor, NumPy array, writable buffer, or None.
        *shape: Extents; taken from ref.shape when omitted.
        dtype: Element type; taken from ref.dtype when omitted.
        checked: Validation mode; None uses the global mode.

    Raises:
        OutOfRangeError: If ref is too small for the shape (checked mode).

    Example:
        data = numpy.arange(6.0)
        a = NDArrayRef(data, 2, 3)
        a.set_element((1, 2), -1.0)    # data[5] == -1.0
    """

    ownership = Ownership.REFERENCING

    __slots__ = ()

    def __init__(
        self,
        ref: Any,
        *shape: ShapeLike,
        dtype: Optional[DTypeLike] = None,
        checked: Optional[bool] = None,
    ) -> None:
        if not shape:
            if not hasattr(ref, "shape"):
                raise ValueError("Shape is required when the referenced object has none")
            shape = (tuple(ref.shape),)
        if dtype is None and isinstance(ref, (torch.Tensor, np.ndarray)):
            dtype = ref.dtype
        resolved = _default_dtype(dtype)
        validator = validator_for(checked)

        new_shape = normalize_shape(shape)
        _require_ndim(new_shape)
        nbytes = size_for_shape(new_shape) * itemsize(resolved) if ref is not None else 0
        storage = Storage.reference(ref, nbytes)
        self._init_parts(new_shape, strides_for_shape(new_shape), 0, resolved, storage, validator)
        validator.storage_bounds(self._shape, self._strides, self._offset, self._available_elements())

    @classmethod
    def from_torch(cls, tensor: torch.Tensor, checked: Optional[bool] = None) -> "NDArrayRef":
        """Wrap a contiguous CPU tensor without copying."""
        return cls(tensor, tuple(tensor.shape), dtype=tensor.dtype, checked=checked)

    @classmethod
    def from_numpy(cls, array: np.ndarray, checked: Optional[bool] = None) -> "NDArrayRef":
        """Wrap a C-contiguous NumPy array without copying."""
        return cls(array, tuple(array.shape), dtype=array.dtype, checked=checked)

    def set_ref(self, ref: Any) -> None:
        """Point this array at new memory.

        Other arrays sharing the old memory keep it.

        Raises:
            OutOfRangeError: If ref is too small for the shape (checked mode).
        """
        region = as_byte_region(ref)
        available = region.numel() // itemsize(self._dtype) if region is not None else None
        self._validator.storage_bounds(self._shape, self._strides, self._offset, available)
        nbytes = self.nbytes if ref is not None else 0
        self._storage.reset(ref, ReleasePolicy.NOOP, nbytes)
