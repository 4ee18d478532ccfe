"""
ndstride Test Fixtures

Reusable array builders for ndstride tests.
"""
from tests.fixtures.arrays import (
    STRESS_TEST_ITERATIONS,
    initialize_array,
    random_array,
)

__all__ = [
    "STRESS_TEST_ITERATIONS",
    "initialize_array",
    "random_array",
]
