"""Tests for HostAllocator."""
from __future__ import annotations

import pytest
import torch


class TestHostAllocator:
    """Tests for HostAllocator."""

    def test_allocate_returns_byte_region(self) -> None:
        """Allocated regions are flat uint8 tensors of the requested size."""
        from ndstride.core.allocator import HostAllocator

        allocator = HostAllocator()
        region = allocator.allocate(64)
        assert region.dtype == torch.uint8
        assert region.numel() == 64
        assert region.dim() == 1

    def test_zero_bytes(self) -> None:
        """Zero-byte allocation is allowed."""
        from ndstride.core.allocator import HostAllocator

        allocator = HostAllocator()
        assert allocator.allocate(0).numel() == 0
        assert allocator.allocation_count == 1

    def test_negative_size(self) -> None:
        """Negative sizes raise AllocationError."""
        from ndstride.core.allocator import HostAllocator
        from ndstride.exceptions import AllocationError

        allocator = HostAllocator()
        with pytest.raises(AllocationError) as exc_info:
            allocator.allocate(-1)
        assert exc_info.value.nbytes == -1

    def test_size_beyond_index_range(self) -> None:
        """Sizes torch can not index raise AllocationError and are not counted."""
        from ndstride.core.allocator import MAX_REGION_BYTES, HostAllocator
        from ndstride.exceptions import AllocationError

        allocator = HostAllocator()
        with pytest.raises(AllocationError) as exc_info:
            allocator.allocate(MAX_REGION_BYTES + 1)
        assert exc_info.value.nbytes == MAX_REGION_BYTES + 1
        assert allocator.allocation_count == 0
        assert allocator.allocated_bytes == 0

    def test_allocator_stats(self) -> None:
        """Allocator tracks statistics."""
        from ndstride.core.allocator import HostAllocator

        allocator = HostAllocator()
        first = allocator.allocate(100)
        second = allocator.allocate(50)
        assert allocator.allocated_bytes == 150
        assert allocator.peak_bytes == 150

        allocator.deallocate(first)
        stats = allocator.stats()
        assert stats["allocated_bytes"] == 50
        assert stats["peak_bytes"] == 150
        assert stats["allocation_count"] == 2
        assert stats["free_count"] == 1

        allocator.deallocate(second)
        assert allocator.allocated_bytes == 0

    def test_reset_stats(self) -> None:
        """reset_stats zeroes all counters."""
        from ndstride.core.allocator import HostAllocator

        allocator = HostAllocator()
        allocator.allocate(8)
        allocator.reset_stats()
        assert allocator.stats() == {
            "allocated_bytes": 0,
            "peak_bytes": 0,
            "allocation_count": 0,
            "free_count": 0,
        }


class TestGlobalAllocator:
    """Tests for the global allocator accessors."""

    def test_get_allocator_singleton(self) -> None:
        """get_allocator returns the same instance."""
        from ndstride.core.allocator import get_allocator

        assert get_allocator() is get_allocator()

    def test_set_allocator(self, allocator) -> None:
        """Arrays allocate from the installed allocator."""
        from ndstride import NDArray
        from ndstride.core.allocator import get_allocator

        assert get_allocator() is allocator
        NDArray(4, 4)
        assert allocator.allocation_count == 1
