"""
Reference-counted raw storage.

A ``Storage`` is a handle on a raw byte region. Handles created by copying
share one block holding the region, its declared byte size, the number of
live handles and the release policy. Regions allocated by the library are
freed exactly once, when the last handle is released. Regions referencing
outside memory (a tensor, a NumPy array, any writable buffer) are never
freed here.

A handle is released when ``release()`` is called, when a ``with`` block
using it exits, or when it is garbage collected, whichever comes first.
Released handles are empty; releasing them again does nothing.

Storage is not thread-safe: counts are plain integers.
"""
from __future__ import annotations

import logging
from typing import Any, Optional

import numpy as np
import torch

from ndstride.config import checks_enabled
from ndstride.core.allocator import HostAllocator, get_allocator
from ndstride.dtypes import itemsize
from ndstride.enums import ReleasePolicy
from ndstride.exceptions import TypeMismatchError

logger = logging.getLogger(__name__)


def as_byte_region(ref: Any) -> Optional[torch.Tensor]:
    """Get a flat uint8 tensor aliasing the memory of ``ref``.

    Args:
        ref: None, a contiguous CPU tensor, a C-contiguous writable NumPy
             array, or any writable C-contiguous buffer-protocol object.

    Returns:
        Flat uint8 tensor sharing memory with ref, or None for None.

    Raises:
        ValueError: If the memory is not contiguous, not on the CPU, or
                    read-only.
        TypeMismatchError: If ref does not expose memory at all.
    """
    if ref is None:
        return None

    if isinstance(ref, torch.Tensor):
        if ref.device.type != "cpu":
            raise ValueError(f"Can not reference memory on device {ref.device}")
        if not ref.is_contiguous():
            raise ValueError("Can not reference a non-contiguous tensor")
        flat = ref.reshape(-1)
        if flat.is_complex():
            flat = torch.view_as_real(flat).reshape(-1)
        if flat.dtype == torch.bool:
            flat = flat.view(torch.uint8)
        return flat.view(torch.uint8)

    if isinstance(ref, np.ndarray):
        if not ref.flags.c_contiguous:
            raise ValueError("Can not reference a non-contiguous array")
        if not ref.flags.writeable:
            raise ValueError("Can not reference a read-only array")
        return torch.from_numpy(ref.reshape(-1).view(np.uint8))

    try:
        view = memoryview(ref)
    except TypeError as err:
        raise TypeMismatchError(
            f"Object of type {type(ref).__name__} does not expose its memory"
        ) from err
    if view.readonly:
        raise ValueError("Can not reference read-only memory")
    if not view.c_contiguous:
        raise ValueError("Can not reference non-contiguous memory")
    if view.nbytes == 0:
        return torch.empty(0, dtype=torch.uint8)
    return torch.frombuffer(view.cast("B"), dtype=torch.uint8)


class _SharedBlock:
    """State shared by every handle on one region."""

    __slots__ = ("region", "nbytes", "count", "policy", "allocator")

    def __init__(
        self,
        region: Optional[torch.Tensor],
        nbytes: int,
        policy: ReleasePolicy,
        allocator: Optional[HostAllocator] = None,
    ) -> None:
        self.region = region
        self.nbytes = nbytes
        self.count = 1
        self.policy = policy
        self.allocator = allocator


class Storage:
    """Reference-counted handle on a raw byte region.

    Example:
        owned = Storage.allocate(16)
        shared = owned.copy()        # count == 2
        shared.release()             # count == 1
        values = owned.get(torch.float64)
    """

    __slots__ = ("_block", "__weakref__")

    def __init__(self) -> None:
        """Create an empty handle (null region, size 0, no-op policy)."""
        self._block: Optional[_SharedBlock] = None

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def empty(cls) -> "Storage":
        """Create an empty handle."""
        return cls()

    @classmethod
    def allocate(cls, nbytes: int) -> "Storage":
        """Allocate ``nbytes`` bytes owned by the new handle.

        Raises:
            AllocationError: If the allocator can not satisfy the request.
        """
        allocator = get_allocator()
        region = allocator.allocate(nbytes)
        storage = cls()
        storage._block = _SharedBlock(region, nbytes, ReleasePolicy.FREE, allocator)
        return storage

    @classmethod
    def reference(cls, ref: Any, nbytes: int = 0) -> "Storage":
        """Wrap memory owned elsewhere.

        Args:
            ref: Memory to wrap (see ``as_byte_region``), or None.
            nbytes: Declared size in bytes; 0 means unknown and disables
                    the typed-access size check.
        """
        region = as_byte_region(ref)
        storage = cls()
        storage._block = _SharedBlock(region, nbytes if region is not None else 0, ReleasePolicy.NOOP)
        return storage

    def copy(self) -> "Storage":
        """New handle on the same region; increments the shared count."""
        other = Storage()
        if self._block is not None:
            self._block.count += 1
            other._block = self._block
        return other

    __copy__ = copy

    def move(self) -> "Storage":
        """Transfer this handle's region to a new handle.

        This handle becomes empty; the shared count is unchanged.
        """
        other = Storage()
        other._block, self._block = self._block, None
        return other

    # ------------------------------------------------------------------
    # Lifetime
    # ------------------------------------------------------------------

    def release(self) -> None:
        """Give up this handle's share of the region.

        Frees the region when this was the last handle and the policy is
        FREE. The handle is empty afterwards.
        """
        block = self._block
        if block is None:
            return
        self._block = None
        block.count -= 1
        assert block.count >= 0, "storage reference count underflow"
        if block.count == 0 and block.policy is ReleasePolicy.FREE and block.region is not None:
            region, block.region = block.region, None
            block.allocator.deallocate(region)

    def reset(
        self,
        ref: Any,
        policy: ReleasePolicy = ReleasePolicy.NOOP,
        nbytes: int = 0,
    ) -> None:
        """Release the current region and rebind to ``ref`` with count 1.

        Args:
            ref: New memory (see ``as_byte_region``), or None.
            policy: Release policy for the new region. FREE hands the
                    region over to the library.
            nbytes: Declared size in bytes, 0 for unknown.
        """
        region = as_byte_region(ref)
        self.release()
        if region is None:
            policy = ReleasePolicy.NOOP
            nbytes = 0
        allocator = get_allocator() if policy is ReleasePolicy.FREE else None
        self._block = _SharedBlock(region, nbytes, policy, allocator)
        logger.debug("Storage reset to %d bytes with %s policy", nbytes, policy.value)

    def __enter__(self) -> "Storage":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.release()

    def __del__(self) -> None:
        self.release()

    # ------------------------------------------------------------------
    # Access
    # ------------------------------------------------------------------

    def get(self, dtype: torch.dtype, *, checked: Optional[bool] = None) -> Optional[torch.Tensor]:
        """Typed flat view of the region.

        Args:
            dtype: Element type to view the bytes as.
            checked: Validate that the declared size is a multiple of the
                     element size. Defaults to the global mode.

        Returns:
            1-D tensor of dtype sharing memory with the region, or None
            for a null region.

        Raises:
            TypeMismatchError: If the size is not a multiple of the
                               element size (checked mode only).
        """
        block = self._block
        if block is None or block.region is None:
            return None

        size = itemsize(dtype)
        if checked is None:
            checked = checks_enabled()
        if checked and block.nbytes % size != 0:
            raise TypeMismatchError(
                f"data of {block.nbytes} bytes can not be represented in chosen type {dtype}",
                nbytes=block.nbytes,
                itemsize=size,
            )

        region = block.region
        usable = region.numel() - region.numel() % size
        if usable != region.numel():
            region = region[:usable]
        try:
            return region.view(dtype)
        except RuntimeError as err:
            raise TypeMismatchError(
                f"region at 0x{region.data_ptr():x} is not aligned for type {dtype}",
                nbytes=block.nbytes,
                itemsize=size,
            ) from err

    def shares_memory(self, other: "Storage") -> bool:
        """Check if two handles point at overlapping memory."""
        a = self.region
        b = other.region
        if a is None or b is None or a.numel() == 0 or b.numel() == 0:
            return False
        if self._block is other._block:
            return True
        a_start, b_start = a.data_ptr(), b.data_ptr()
        return a_start < b_start + b.numel() and b_start < a_start + a.numel()

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def region(self) -> Optional[torch.Tensor]:
        """Raw byte region, or None for a null handle."""
        return self._block.region if self._block is not None else None

    @property
    def count(self) -> int:
        """Number of live handles on the region (0 for an empty handle)."""
        return self._block.count if self._block is not None else 0

    @property
    def nbytes(self) -> int:
        """Declared size in bytes (0 for null or unknown)."""
        return self._block.nbytes if self._block is not None else 0

    @property
    def policy(self) -> ReleasePolicy:
        """Release policy of the region."""
        return self._block.policy if self._block is not None else ReleasePolicy.NOOP

    @property
    def is_null(self) -> bool:
        """Check if the handle has no memory."""
        return self.region is None

    @property
    def data_ptr(self) -> int:
        """Address of the first byte, 0 for a null handle."""
        region = self.region
        return region.data_ptr() if region is not None else 0

    def __repr__(self) -> str:
        return (
            f"Storage(ptr=0x{self.data_ptr:x}, nbytes={self.nbytes}, "
            f"count={self.count}, policy={self.policy.value})"
        )
