"""Tests for elementwise arithmetic and equality."""
from __future__ import annotations

import numpy as np
import pytest
import torch

import ndstride as nds
from ndstride import NDArray, NDArrayRef
from ndstride.exceptions import ShapeMismatchError, TypeMismatchError
from tests.fixtures import random_array


def _ref(values, dtype=torch.float64) -> NDArrayRef:
    return NDArrayRef(torch.tensor(values, dtype=dtype))


class TestArrayArithmetic:
    """Tests for array-with-array operations."""

    def test_add(self) -> None:
        """Elementwise sum into a new array."""
        result = _ref([1.0, 2.0]) + _ref([10.0, 20.0])
        assert isinstance(result, NDArray)
        assert list(result) == [11.0, 22.0]

    def test_subtract(self) -> None:
        """Elementwise difference into a new array."""
        assert list(_ref([5.0, 5.0]) - _ref([1.0, 2.0])) == [4.0, 3.0]

    def test_common_type(self) -> None:
        """Mixed operands produce the common type."""
        real = _ref([1.0, 2.0])
        cplx = _ref([1j, 2j], dtype=torch.complex128)
        result = real + cplx
        assert result.dtype == torch.complex128
        assert list(result) == [1 + 1j, 2 + 2j]

        ints = _ref([1, 2], dtype=torch.int32)
        assert (ints + _ref([0.5, 0.5], dtype=torch.float32)).dtype == torch.float32

    def test_shape_mismatch(self) -> None:
        """Checked arrays reject different shapes."""
        with pytest.raises(ShapeMismatchError):
            NDArray(2, 3) + NDArray(3, 2)

    def test_operands_unchanged(self) -> None:
        """Binary operations leave their operands alone."""
        a = random_array(3, 3, seed=1)
        b = random_array(3, 3, seed=2)
        before = list(a)
        a - b
        assert list(a) == before

    def test_add_slices(self) -> None:
        """Operands may be slices with non-zero offsets."""
        a = NDArrayRef(torch.arange(6, dtype=torch.float64), 2, 3)
        result = a.slice_at(0) + a.slice_at(1)
        assert list(result) == [3.0, 5.0, 7.0]

    def test_array_times_array_unsupported(self) -> None:
        """Only scalars multiply arrays."""
        with pytest.raises(TypeError):
            NDArray(2) * NDArray(2)


class TestInPlaceArithmetic:
    """Tests for += and -= with arrays."""

    def test_round_trip(self) -> None:
        """(A.copy() += B) -= B equals A."""
        a = random_array(4, 5, seed=3)
        b = random_array(4, 5, seed=4)
        c = a.copy()
        c += b
        assert c != a
        c -= b
        assert c == a

    def test_in_place_keeps_identity(self) -> None:
        """+= mutates and returns the same object."""
        a = NDArray(2)
        target = a
        a += _ref([1.0, 2.0])
        assert a is target
        assert list(a) == [1.0, 2.0]

    def test_in_place_converts_rhs(self) -> None:
        """The right-hand side is converted to the target type first."""
        a = NDArray(2, dtype=torch.int32)
        a += _ref([1.9, 2.9])
        assert list(a) == [1, 2]

    def test_in_place_complex_into_real(self) -> None:
        """Complex right-hand sides can not update real arrays."""
        a = NDArray(2)
        with pytest.raises(TypeMismatchError):
            a += _ref([1j, 1j], dtype=torch.complex128)

    def test_in_place_shape_mismatch(self) -> None:
        """+= needs equal shapes in checked mode."""
        a = NDArray(2, 2)
        with pytest.raises(ShapeMismatchError):
            a += NDArray(4)

    def test_self_addition(self) -> None:
        """a += a doubles every element."""
        a = _ref([1.0, 2.0, 3.0])
        a += a
        assert list(a) == [2.0, 4.0, 6.0]

    def test_overlapping_views(self) -> None:
        """Overlapping operands behave like the out-of-place sum."""
        a = NDArrayRef(torch.arange(4, dtype=torch.float64), 2, 2)
        expected = list(a.slice_at(0) + a.slice_at(1))
        first = a.slice_at(0)
        first += a.slice_at(1)
        assert list(first) == expected


class TestScalarArithmetic:
    """Tests for operations with scalars."""

    def test_scalar_both_sides(self) -> None:
        """Scalars work on either side of + and *."""
        a = _ref([1.0, 2.0])
        assert list(a + 1) == [2.0, 3.0]
        assert list(1 + a) == [2.0, 3.0]
        assert list(a * 3) == [3.0, 6.0]
        assert list(3 * a) == [3.0, 6.0]

    def test_reverse_subtract_and_divide(self) -> None:
        """s - a and s / a are elementwise."""
        a = _ref([1.0, 4.0])
        assert list(10 - a) == [9.0, 6.0]
        assert list(a - 10) == [-9.0, -6.0]
        assert list(8 / a) == [8.0, 2.0]
        assert list(a / 2) == [0.5, 2.0]

    def test_integer_division_truncates(self) -> None:
        """Integer division rounds toward zero."""
        a = _ref([7, -7], dtype=torch.int64)
        assert list(a / 2) == [3, -3]
        assert (a / 2).dtype == torch.int64
        assert list(15 / a) == [2, -2]

    def test_python_scalars_widen_without_loss(self) -> None:
        """Python scalars promote the result to a type that holds them."""
        small = NDArray(3, dtype=torch.uint8) + (-1)
        assert small.dtype == torch.int64
        assert list(small) == [-1, -1, -1]

        large = NDArray(2, dtype=torch.int8) + 1000
        assert large.dtype == torch.int64
        assert list(large) == [1000, 1000]

        precise = NDArray(1, dtype=torch.float32) + 0.1
        assert precise.dtype == torch.float64
        assert list(precise) == [0.1]

        assert (_ref([1], dtype=torch.int32) + 1.5).dtype == torch.float64
        assert (3 - NDArray(2, dtype=torch.uint8)).dtype == torch.int64

    def test_complex_scalar_promotes(self) -> None:
        """A complex scalar turns a real array complex."""
        result = _ref([1.0, 2.0]) * 1j
        assert result.dtype == torch.complex128
        assert list(result) == [1j, 2j]

    def test_numpy_scalar_promotes(self) -> None:
        """NumPy scalars promote like arrays."""
        result = _ref([1.0], dtype=torch.float32) + np.float64(1.0)
        assert result.dtype == torch.float64

    def test_in_place_scalars(self) -> None:
        """In-place scalar operations keep the element type."""
        a = _ref([2.0, 4.0])
        a += 1
        a -= 0.5
        a *= 2
        a /= 5
        assert list(a) == pytest.approx([1.0, 1.8])

    def test_in_place_integer_division(self) -> None:
        """Integer /= truncates."""
        a = _ref([7, -7], dtype=torch.int32)
        a /= 2
        assert list(a) == [3, -3]
        assert a.dtype == torch.int32

    def test_in_place_complex_scalar_into_real(self) -> None:
        """A complex scalar can not update a real array in place."""
        a = NDArray(2)
        with pytest.raises(TypeMismatchError):
            a *= 1j

    def test_negate(self) -> None:
        """Unary minus negates into a new array."""
        a = _ref([1.0, -2.0])
        assert list(-a) == [-1.0, 2.0]
        assert list(a) == [1.0, -2.0]


class TestEquality:
    """Tests for == and !=."""

    def test_equal_within_tolerance(self) -> None:
        """Elements within the configured tolerance compare equal."""
        a = _ref([1.0, 2.0])
        b = _ref([1.0 + 1e-14, 2.0])
        assert a == b
        c = _ref([1.0 + 1e-6, 2.0])
        assert a != c

    def test_tolerance_from_config(self) -> None:
        """The configured tolerance is used."""
        nds.configure(tolerance=1e-3)
        assert _ref([1.0]) == _ref([1.0005])

    def test_mixed_types(self) -> None:
        """Values are compared after conversion to the common type."""
        assert _ref([1, 2], dtype=torch.int32) == _ref([1.0, 2.0])

    def test_shape_mismatch_checked(self) -> None:
        """Checked arrays of different shapes raise."""
        with pytest.raises(ShapeMismatchError):
            NDArray(2, 3) == NDArray(6)

    def test_shape_mismatch_unchecked(self, unchecked) -> None:
        """Unchecked arrays of different shapes compare unequal."""
        assert (NDArray(2, 3) == NDArray(6)) is False

    def test_empty_arrays_equal(self) -> None:
        """Two empty arrays of the same shape are equal."""
        assert NDArray(ndim=2) == NDArray(ndim=2)

    def test_not_hashable(self) -> None:
        """Arrays are mutable and unhashable."""
        with pytest.raises(TypeError):
            hash(NDArray(2))

    def test_compare_with_other_types(self) -> None:
        """Comparing with a non-array falls back to identity."""
        assert (NDArray(2) == 5) is False
