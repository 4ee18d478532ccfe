"""Exception Hierarchy Tests for ndstride."""
from __future__ import annotations

import pytest


class TestExceptionHierarchy:
    """Tests for exception class hierarchy."""

    def test_base_exception_exists(self) -> None:
        """NDStrideError base class exists."""
        from ndstride.exceptions import NDStrideError

        assert issubclass(NDStrideError, Exception)

    @pytest.mark.parametrize(
        "name,builtin",
        [
            ("DimensionMismatchError", IndexError),
            ("OutOfRangeError", IndexError),
            ("ShapeMismatchError", ValueError),
            ("AlignmentError", ValueError),
            ("AllocationError", MemoryError),
            ("TypeMismatchError", TypeError),
            ("PatternSyntaxError", ValueError),
        ],
    )
    def test_error_kinds_derive_from_builtins(self, name: str, builtin: type) -> None:
        """Every error kind is an NDStrideError and its closest builtin."""
        from ndstride import exceptions

        cls = getattr(exceptions, name)
        assert issubclass(cls, exceptions.NDStrideError)
        assert issubclass(cls, builtin)

    def test_configuration_error(self) -> None:
        """ConfigurationError is an NDStrideError subclass."""
        from ndstride.exceptions import ConfigurationError, NDStrideError

        assert issubclass(ConfigurationError, NDStrideError)


class TestExceptionAttributes:
    """Tests for exception attributes and messages."""

    def test_dimension_mismatch_attributes(self) -> None:
        """DimensionMismatchError keeps expected and got."""
        from ndstride.exceptions import DimensionMismatchError

        err = DimensionMismatchError(3, 2)
        assert err.expected == 3
        assert err.got == 2
        assert "(2)" in str(err)
        assert err.context == {"expected": 3, "got": 2}

    def test_out_of_range_message(self) -> None:
        """OutOfRangeError names the axis, index and extent."""
        from ndstride.exceptions import OutOfRangeError

        err = OutOfRangeError(1, 7, 4)
        assert err.axis == 1
        assert err.index == 7
        assert err.extent == 4
        assert "1-th index (7)" in str(err)

    def test_shape_mismatch_message(self) -> None:
        """ShapeMismatchError shows both shapes."""
        from ndstride.exceptions import ShapeMismatchError

        err = ShapeMismatchError((2, 3), (3, 2))
        assert "(2, 3)" in str(err)
        assert "(3, 2)" in str(err)

    def test_custom_message_wins(self) -> None:
        """An explicit message replaces the default one."""
        from ndstride.exceptions import ShapeMismatchError

        err = ShapeMismatchError(6, 8, message="sizes differ")
        assert str(err) == "sizes differ"
        assert err.expected == 6

    def test_alignment_error_attributes(self) -> None:
        """AlignmentError keeps extent, offset and ratio."""
        from ndstride.exceptions import AlignmentError

        err = AlignmentError(3, 0, 2)
        assert (err.extent, err.offset, err.ratio) == (3, 0, 2)

    def test_type_mismatch_sizes(self) -> None:
        """TypeMismatchError carries optional byte sizes."""
        from ndstride.exceptions import TypeMismatchError

        err = TypeMismatchError("bad size", nbytes=12, itemsize=8)
        assert err.nbytes == 12
        assert err.itemsize == 8
        assert err.context["nbytes"] == 12

    def test_pattern_syntax_message(self) -> None:
        """PatternSyntaxError quotes the pattern."""
        from ndstride.exceptions import PatternSyntaxError

        err = PatternSyntaxError("ij->i", "bad")
        assert "'ij->i'" in str(err)
        assert err.reason == "bad"

    def test_configuration_error_fields(self) -> None:
        """ConfigurationError keeps key and validation errors."""
        from ndstride.exceptions import ConfigurationError

        err = ConfigurationError(
            "bad config",
            config_key="tolerance",
            validation_errors=["negative"],
        )
        assert err.config_key == "tolerance"
        assert err.validation_errors == ["negative"]

    def test_repr_includes_context(self) -> None:
        """repr shows class name, message and context."""
        from ndstride.exceptions import AllocationError

        err = AllocationError(64)
        text = repr(err)
        assert text.startswith("AllocationError(")
        assert "nbytes" in text


class TestExceptionCatching:
    """Tests for catching errors through the hierarchy."""

    def test_catch_as_base(self) -> None:
        """Library errors can be caught as NDStrideError."""
        from ndstride.exceptions import NDStrideError, OutOfRangeError

        with pytest.raises(NDStrideError):
            raise OutOfRangeError(0, 5, 2)

    def test_catch_as_builtin(self) -> None:
        """Library errors can be caught as their builtin base."""
        from ndstride.exceptions import PatternSyntaxError

        with pytest.raises(ValueError):
            raise PatternSyntaxError("x", "y")
