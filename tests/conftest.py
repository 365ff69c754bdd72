"""Pytest configuration and fixtures for immersed boundary tests."""

import sys
from pathlib import Path

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))


@pytest.fixture
def params():
    """Air at sea level with a uniform inflow along x."""
    from immersed import Parameters

    return Parameters(velocity=(10.0, 0.0, 0.0))


@pytest.fixture
def small_partition():
    """Coarse 11^3 grid on [-1, 1]^3."""
    from immersed import Partition

    return Partition.from_spacing([-1.0] * 3, [1.0] * 3, 0.2, ng=2, gl=2)


@pytest.fixture
def sphere_partition():
    """Grid of spacing 0.1 on [-1.5, 1.5]^3 around a unit sphere."""
    from immersed import Partition

    return Partition.from_spacing([-1.5] * 3, [1.5] * 3, 0.1, ng=2, gl=2)


@pytest.fixture
def fluid_space(small_partition, params):
    """Body-free space filled with the free stream."""
    from immersed import Geometry, Space

    return Space.create(small_partition, Geometry(), params)
