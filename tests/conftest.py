"""
Pytest configuration and fixtures for microbeagents tests.
"""

import numpy as np
import pytest

from microbeagents.config import Config
from microbeagents.simulation import Simulation


@pytest.fixture
def rng() -> np.random.Generator:
    """Seeded random generator for stochastic tests."""
    return np.random.default_rng(12345)


@pytest.fixture(params=[1, 2, 3], ids=["1d", "2d", "3d"])
def dim(request) -> int:
    """Every supported dimensionality."""
    return request.param


@pytest.fixture
def default_config() -> Config:
    """Unbounded 2-D configuration for tests."""
    return Config(dim=2, timestep=0.1)


@pytest.fixture
def sim(default_config: Config) -> Simulation:
    """Empty field-free simulation."""
    return Simulation(default_config, seed=42)


@pytest.fixture
def unit_sim() -> Simulation:
    """1-D simulation with unit timestep."""
    return Simulation(Config(dim=1, timestep=1.0), seed=7)
