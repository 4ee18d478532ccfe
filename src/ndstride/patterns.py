"""
Transpose pattern parsing.

A pattern names every axis of the source with one latin letter, then the
same letters in their new order, separated by ``->``. Whitespace around
either side is ignored::

    "ijkl->ikjl"        swap the two middle axes
    "  ijk -> kij "     rotate three axes
"""
from __future__ import annotations

import re
from typing import Optional

from ndstride.config import checks_enabled
from ndstride.exceptions import PatternSyntaxError

SEPARATOR = "->"

_NON_LATIN = re.compile(r"[^a-zA-Z]")


def trim(text: str) -> str:
    """Strip leading and trailing whitespace."""
    return text.strip()


def all_latin(text: str) -> bool:
    """Check if every character is an ASCII latin letter."""
    return _NON_LATIN.search(text) is None


def parse_transpose_pattern(
    pattern: str,
    ndim: int,
    checked: Optional[bool] = None,
) -> tuple[int, ...]:
    """Parse a pattern into the target position of every source axis.

    Args:
        pattern: Pattern such as ``"ijk->kij"``.
        ndim: Number of axes of the array being transposed.
        checked: Also require every source label to be unique and present
                 in the target. Defaults to the global mode.

    Returns:
        ``perm`` with ``perm[i]`` the target axis of source axis ``i``.

    Raises:
        PatternSyntaxError: If the pattern is malformed.

    Example:
        >>> parse_transpose_pattern("ijk->kij", 3)
        (1, 2, 0)
    """
    position = pattern.find(SEPARATOR)
    if position < 0:
        raise PatternSyntaxError(pattern, f"missing '{SEPARATOR}' separator")

    source = trim(pattern[:position])
    target = trim(pattern[position + len(SEPARATOR):])

    if len(source) != len(target):
        raise PatternSyntaxError(pattern, "source and target indices have different size")
    if len(source) != ndim:
        raise PatternSyntaxError(
            pattern,
            f"number of indices ({len(source)}) and array dimension ({ndim}) are different",
        )
    if not (all_latin(source) and all_latin(target)):
        raise PatternSyntaxError(pattern, "indices should be latin letters")

    if checked is None:
        checked = checks_enabled()
    if checked:
        missing = [label for label in source if label not in target]
        if missing:
            raise PatternSyntaxError(
                pattern, f"indices {''.join(missing)!r} are not found in target"
            )
        if len(set(source)) != len(source) or len(set(target)) != len(target):
            raise PatternSyntaxError(pattern, "indices should be unique")

    # unmapped labels fall back to axis 0; only reachable unchecked
    target_axis = {label: axis for axis, label in enumerate(target)}
    return tuple(target_axis.get(label, 0) for label in source)
