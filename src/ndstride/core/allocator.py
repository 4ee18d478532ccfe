"""
Host memory allocator.

Hands out raw byte regions (flat ``torch.uint8`` tensors) for owning
storage and keeps allocation statistics, so that the number of
allocations and frees can be observed from outside.
"""
from __future__ import annotations

import logging
from typing import Any, Optional

import torch

from ndstride.exceptions import AllocationError

logger = logging.getLogger(__name__)

# Largest region torch can index with a 64-bit size
MAX_REGION_BYTES = torch.iinfo(torch.int64).max


class HostAllocator:
    """Byte-region allocator for CPU memory.

    Regions are uninitialized; callers that need zeroed memory fill it.
    The allocator does not retain regions: a region is returned to the
    system once the last Python reference to it is dropped. ``deallocate``
    only records the free.

    Attributes:
        allocated_bytes: Bytes currently allocated and not yet freed.
        peak_bytes: Highest value of allocated_bytes seen.
        allocation_count: Number of successful allocations.
        free_count: Number of recorded frees.

    Example:
        allocator = HostAllocator()
        region = allocator.allocate(64)
        ...
        allocator.deallocate(region)
    """

    __slots__ = (
        "_allocated_bytes",
        "_peak_bytes",
        "_allocation_count",
        "_free_count",
    )

    def __init__(self) -> None:
        """Initialize allocator with zeroed statistics."""
        self._allocated_bytes = 0
        self._peak_bytes = 0
        self._allocation_count = 0
        self._free_count = 0

    @property
    def allocated_bytes(self) -> int:
        """Get currently allocated bytes."""
        return self._allocated_bytes

    @property
    def peak_bytes(self) -> int:
        """Get peak allocated bytes."""
        return self._peak_bytes

    @property
    def allocation_count(self) -> int:
        """Get total allocation count."""
        return self._allocation_count

    @property
    def free_count(self) -> int:
        """Get total free count."""
        return self._free_count

    def allocate(self, nbytes: int) -> torch.Tensor:
        """Allocate an uninitialized region of ``nbytes`` bytes.

        Args:
            nbytes: Region size in bytes.

        Returns:
            Flat uint8 tensor of length nbytes.

        Raises:
            AllocationError: If nbytes is negative, exceeds MAX_REGION_BYTES,
                             or memory is exhausted.
        """
        if nbytes < 0:
            raise AllocationError(nbytes, message=f"Can not allocate a negative size ({nbytes} bytes)")
        if nbytes > MAX_REGION_BYTES:
            raise AllocationError(
                nbytes, message=f"Can not allocate {nbytes} bytes, the limit is {MAX_REGION_BYTES}"
            )
        try:
            region = torch.empty(nbytes, dtype=torch.uint8)
        except (RuntimeError, MemoryError) as err:
            raise AllocationError(nbytes) from err

        self._allocation_count += 1
        self._allocated_bytes += nbytes
        self._peak_bytes = max(self._peak_bytes, self._allocated_bytes)
        logger.debug("Allocated %d bytes at 0x%x", nbytes, region.data_ptr())
        return region

    def deallocate(self, region: torch.Tensor) -> None:
        """Record that a region has been freed.

        Args:
            region: Region previously returned by allocate.
        """
        nbytes = region.numel()
        self._free_count += 1
        self._allocated_bytes -= nbytes
        if self._allocated_bytes < 0:
            self._allocated_bytes = 0
        logger.debug("Freed %d bytes at 0x%x", nbytes, region.data_ptr())

    def reset_stats(self) -> None:
        """Reset allocation statistics."""
        self._allocated_bytes = 0
        self._peak_bytes = 0
        self._allocation_count = 0
        self._free_count = 0

    def stats(self) -> dict[str, Any]:
        """Get allocation statistics.

        Returns:
            Dict with allocated_bytes, peak_bytes, allocation_count, free_count.
        """
        return {
            "allocated_bytes": self._allocated_bytes,
            "peak_bytes": self._peak_bytes,
            "allocation_count": self._allocation_count,
            "free_count": self._free_count,
        }


# Global allocator instance
_global_allocator: Optional[HostAllocator] = None


def get_allocator() -> HostAllocator:
    """Get the global host allocator.

    Creates the allocator on first call.

    Returns:
        Global HostAllocator instance.
    """
    global _global_allocator
    if _global_allocator is None:
        _global_allocator = HostAllocator()
    return _global_allocator


def set_allocator(allocator: HostAllocator) -> None:
    """Set the global host allocator.

    Storage created afterwards allocates from ``allocator``. Existing
    storage records its free with the allocator it came from.

    Args:
        allocator: Allocator to use globally.
    """
    global _global_allocator
    _global_allocator = allocator
