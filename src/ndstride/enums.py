"""
ndstride Core Enumerations

All enums inherit from (str, Enum) for serialization compatibility.

This module provides:
- ReleasePolicy: What happens to a storage region when its last handle goes
- Ownership: Whether an array allocates its memory or borrows it
"""
from __future__ import annotations

from enum import Enum, unique


@unique
class ReleasePolicy(str, Enum):
    """Release policy of a storage region.

    Members:
        FREE: Region was allocated by the library and is freed when the
              shared reference count drops to zero.
        NOOP: Region is owned elsewhere and is never freed here.
    """

    FREE = "free"
    NOOP = "noop"


@unique
class Ownership(str, Enum):
    """Ownership mode of an array class.

    Members:
        OWNING: The array allocates fresh storage at construction.
        REFERENCING: The array wraps caller-supplied memory.
    """

    OWNING = "owning"
    REFERENCING = "referencing"
