"""
PyTest Configuration for ndstride Tests

Provides fixtures, markers, and test setup.
"""
import sys
from pathlib import Path

import pytest
import torch

# Add src directory to path for imports
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

# Add tests directory to path for fixtures
tests_path = Path(__file__).parent
sys.path.insert(0, str(tests_path))


def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line("markers", "stress: mark test as stress test")
    config.addinivalue_line("markers", "slow: mark test as slow running")


@pytest.fixture(autouse=True)
def reset_config():
    """Restore default configuration around every test."""
    from ndstride import configure

    configure(reset=True, checks=True)
    yield
    configure(reset=True, checks=True)


@pytest.fixture
def unchecked():
    """Build arrays in unchecked mode for the duration of a test."""
    from ndstride import checked

    with checked(False):
        yield


@pytest.fixture
def allocator():
    """Fresh global allocator with zeroed statistics."""
    from ndstride.core.allocator import HostAllocator, get_allocator, set_allocator

    previous = get_allocator()
    fresh = HostAllocator()
    set_allocator(fresh)
    yield fresh
    set_allocator(previous)


@pytest.fixture
def random_seed() -> int:
    """Provide reproducible random seed."""
    seed = 42
    torch.manual_seed(seed)
    return seed
