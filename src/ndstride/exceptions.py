"""
ndstride Exception Hierarchy

Custom exceptions for array construction, indexing, shape algebra and
storage access. Every kind also derives from the closest builtin
exception so callers may catch either.
"""
from __future__ import annotations

from typing import Any, Optional, Sequence


class NDStrideError(Exception):
    """Base exception for all ndstride errors.

    All ndstride-specific exceptions inherit from this class,
    allowing users to catch all library errors with a single
    except clause.

    Attributes:
        message: Human-readable error description.
        context: Optional dict of additional context for debugging.
    """

    def __init__(
        self,
        message: str,
        *,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        """Initialize NDStrideError.

        Args:
            message: Error message.
            context: Optional context dict.
        """
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __repr__(self) -> str:
        """Detailed representation for debugging."""
        ctx_str = f", context={self.context}" if self.context else ""
        return f"{self.__class__.__name__}({self.message!r}{ctx_str})"


class DimensionMismatchError(NDStrideError, IndexError):
    """Raised when an index count or axis count disagrees with ndim.

    Attributes:
        expected: Number of indices/axes the array accepts.
        got: Number of indices/axes supplied.
    """

    def __init__(
        self,
        expected: int,
        got: int,
        *,
        message: Optional[str] = None,
    ) -> None:
        """Initialize DimensionMismatchError.

        Args:
            expected: Array dimensionality (or the limit that was exceeded).
            got: Number supplied by the caller.
            message: Optional custom message.
        """
        self.expected = expected
        self.got = got

        if message is None:
            message = (
                f"Number of indices ({got}) is not consistent with "
                f"array's dimension ({expected})"
            )

        super().__init__(message, context={"expected": expected, "got": got})


class OutOfRangeError(NDStrideError, IndexError):
    """Raised when an index exceeds its axis extent.

    Attributes:
        axis: Axis the index applies to.
        index: Offending index value.
        extent: Extent of that axis.
    """

    def __init__(
        self,
        axis: int,
        index: int,
        extent: int,
        *,
        message: Optional[str] = None,
    ) -> None:
        """Initialize OutOfRangeError.

        Args:
            axis: Axis position.
            index: Supplied index.
            extent: Axis extent.
            message: Optional custom message.
        """
        self.axis = axis
        self.index = index
        self.extent = extent

        if message is None:
            message = (
                f"{axis}-th index ({index}) is out of range for "
                f"dimension of size {extent}"
            )

        super().__init__(
            message,
            context={"axis": axis, "index": index, "extent": extent},
        )


class ShapeMismatchError(NDStrideError, ValueError):
    """Raised when two shapes disagree where equality is required.

    This occurs when:
    - Elementwise operands have different shapes
    - A reshape target holds a different number of elements
    - A reshape is requested on a view with a non-zero offset

    Attributes:
        expected: Expected shape (or element count).
        got: Shape (or element count) received.
    """

    def __init__(
        self,
        expected: Any,
        got: Any,
        *,
        message: Optional[str] = None,
    ) -> None:
        """Initialize ShapeMismatchError.

        Args:
            expected: Expected shape.
            got: Actual shape.
            message: Optional custom message.
        """
        self.expected = expected
        self.got = got

        if message is None:
            message = f"Arrays shape is mismatched: expected {expected}, got {got}"

        super().__init__(message, context={"expected": expected, "got": got})


class AlignmentError(NDStrideError, ValueError):
    """Raised when a type-reinterpreting view would split an element.

    Attributes:
        extent: Extent of the last axis.
        offset: Element offset of the array.
        ratio: Size ratio between the new and the old element types.
    """

    def __init__(
        self,
        extent: int,
        offset: int,
        ratio: int,
        *,
        message: Optional[str] = None,
    ) -> None:
        """Initialize AlignmentError.

        Args:
            extent: Last-axis extent.
            offset: Element offset.
            ratio: Element size ratio.
            message: Optional custom message.
        """
        self.extent = extent
        self.offset = offset
        self.ratio = ratio

        if message is None:
            message = (
                f"Array with last dimension {extent} and offset {offset} "
                f"can not be viewed as a type {ratio} times wider"
            )

        super().__init__(
            message,
            context={"extent": extent, "offset": offset, "ratio": ratio},
        )


class AllocationError(NDStrideError, MemoryError):
    """Raised when the host allocator cannot satisfy a request.

    Attributes:
        nbytes: Requested size in bytes.
    """

    def __init__(
        self,
        nbytes: int,
        *,
        message: Optional[str] = None,
    ) -> None:
        """Initialize AllocationError.

        Args:
            nbytes: Requested byte size.
            message: Optional custom message.
        """
        self.nbytes = nbytes

        if message is None:
            message = f"Unable to allocate {nbytes} bytes"

        super().__init__(message, context={"nbytes": nbytes})


class TypeMismatchError(NDStrideError, TypeError):
    """Raised when data can not be represented in the requested type.

    This occurs when:
    - Typed storage access uses an element size that does not divide
      the storage size
    - A complex value is converted into a real element type
    - A value is not a supported scalar type
    """

    def __init__(
        self,
        message: str,
        *,
        nbytes: Optional[int] = None,
        itemsize: Optional[int] = None,
    ) -> None:
        """Initialize TypeMismatchError.

        Args:
            message: Error message.
            nbytes: Size of the storage in bytes, if relevant.
            itemsize: Requested element size, if relevant.
        """
        self.nbytes = nbytes
        self.itemsize = itemsize

        super().__init__(
            message,
            context={"nbytes": nbytes, "itemsize": itemsize},
        )


class PatternSyntaxError(NDStrideError, ValueError):
    """Raised when a transpose pattern string is malformed.

    Attributes:
        pattern: The offending pattern.
        reason: What is wrong with it.
    """

    def __init__(
        self,
        pattern: str,
        reason: str,
        *,
        message: Optional[str] = None,
    ) -> None:
        """Initialize PatternSyntaxError.

        Args:
            pattern: Pattern string.
            reason: Description of the defect.
            message: Optional custom message.
        """
        self.pattern = pattern
        self.reason = reason

        if message is None:
            message = f"Incorrect transpose pattern '{pattern}': {reason}"

        super().__init__(message, context={"pattern": pattern, "reason": reason})


class ConfigurationError(NDStrideError):
    """Raised when ndstride configuration is invalid."""

    def __init__(
        self,
        message: str,
        *,
        config_key: Optional[str] = None,
        expected: Optional[Any] = None,
        got: Optional[Any] = None,
        validation_errors: Optional[Sequence[str]] = None,
    ) -> None:
        """Initialize ConfigurationError.

        Args:
            message: Error message.
            config_key: The configuration key with the error.
            expected: Expected value or type.
            got: Actual value received.
            validation_errors: List of specific errors.
        """
        self.config_key = config_key
        self.expected = expected
        self.got = got
        self.validation_errors = list(validation_errors) if validation_errors else []

        super().__init__(
            message,
            context={
                "config_key": config_key,
                "expected": expected,
                "got": got,
                "validation_errors": self.validation_errors,
            },
        )
