"""
Checked and unchecked validation.

Each array holds one validator, chosen when it is constructed. The checked
validator raises on every contract violation; the unchecked one has the
same interface with empty bodies, so arrays built in unchecked mode run
the same code path without paying for validation.
"""
from __future__ import annotations

from typing import Optional, Sequence

from ndstride.config import checks_enabled
from ndstride.core.shape import max_linear_index
from ndstride.exceptions import (
    DimensionMismatchError,
    OutOfRangeError,
    ShapeMismatchError,
)


class ArrayValidator:
    """Validation used by arrays in checked mode."""

    enabled = True

    def element_indices(self, shape: Sequence[int], indices: Sequence[int]) -> None:
        """Full index: one in-range index per axis."""
        if len(indices) != len(shape):
            raise DimensionMismatchError(
                len(shape),
                len(indices),
                message=(
                    f"Number of indices ({len(indices)}) is not equal to "
                    f"array's dimension ({len(shape)})"
                ),
            )
        self._ranges(shape, indices)

    def slice_indices(self, shape: Sequence[int], indices: Sequence[int]) -> None:
        """Leading index: fewer indices than axes, each in range."""
        if len(indices) >= len(shape):
            raise DimensionMismatchError(
                len(shape) - 1,
                len(indices),
                message=(
                    f"Number of indices ({len(indices)}) must be smaller than "
                    f"array's dimension ({len(shape)}) to take a slice"
                ),
            )
        self._ranges(shape, indices)

    def index_count(self, ndim: int, count: int) -> None:
        """No more indices than axes."""
        if count > ndim:
            raise DimensionMismatchError(
                ndim,
                count,
                message=(
                    f"Number of indices ({count}) is larger than "
                    f"array's dimension ({ndim})"
                ),
            )

    def same_shape(self, expected: Sequence[int], got: Sequence[int]) -> None:
        """Operand shapes must be identical."""
        if tuple(expected) != tuple(got):
            raise ShapeMismatchError(tuple(expected), tuple(got))

    def storage_bounds(
        self,
        shape: Sequence[int],
        strides: Sequence[int],
        offset: int,
        available: Optional[int],
    ) -> None:
        """Every addressable element lies inside the storage.

        Args:
            available: Elements in the storage, None for a null region.
        """
        if available is None:
            return
        last = max_linear_index(shape, strides, offset)
        if last >= available:
            raise OutOfRangeError(
                len(shape) - 1,
                last,
                available,
                message=(
                    f"Array addresses element {last} but its storage only "
                    f"holds {available} elements"
                ),
            )

    @staticmethod
    def _ranges(shape: Sequence[int], indices: Sequence[int]) -> None:
        for axis, (index, extent) in enumerate(zip(indices, shape)):
            if index < 0 or index >= extent:
                raise OutOfRangeError(axis, index, extent)


class UncheckedValidator(ArrayValidator):
    """Validation used by arrays in unchecked mode: nothing is checked."""

    enabled = False

    def element_indices(self, shape: Sequence[int], indices: Sequence[int]) -> None:
        pass

    def slice_indices(self, shape: Sequence[int], indices: Sequence[int]) -> None:
        pass

    def index_count(self, ndim: int, count: int) -> None:
        pass

    def same_shape(self, expected: Sequence[int], got: Sequence[int]) -> None:
        pass

    def storage_bounds(
        self,
        shape: Sequence[int],
        strides: Sequence[int],
        offset: int,
        available: Optional[int],
    ) -> None:
        pass


CHECKED = ArrayValidator()
UNCHECKED = UncheckedValidator()


def validator_for(checked: Optional[bool] = None) -> ArrayValidator:
    """Validator for an explicit mode, or for the global mode when None."""
    if checked is None:
        checked = checks_enabled()
    return CHECKED if checked else UNCHECKED
