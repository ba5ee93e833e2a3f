"""Pytest configuration and shared fixtures."""

import sys
from pathlib import Path

import pytest

# Add the project root to the path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from gravsim.engine import SimulationWorld, WorldConfig


@pytest.fixture
def torus_config():
    """Toroidal 100x100 world with gravity off and a fixed seed."""
    return WorldConfig(width=100.0, height=100.0, G=0.0, seed=1)


@pytest.fixture
def bounded_config():
    return WorldConfig(width=100.0, height=100.0, G=0.0, toroidal=False, seed=1)


@pytest.fixture
def world(torus_config):
    return SimulationWorld(torus_config)


@pytest.fixture
def bounded_world(bounded_config):
    return SimulationWorld(bounded_config)
