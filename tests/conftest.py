"""Shared test fixtures."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from it8951.bus.sim import SimBus
from it8951.config import Config
from it8951.driver import IT8951


@pytest.fixture
def sim_bus():
    """Small simulated controller (fast, in-memory only)."""
    return SimBus(width=128, height=64)


@pytest.fixture
def config():
    return Config()


@pytest.fixture
def display(sim_bus, config):
    """Initialized driver on the small simulator."""
    d = IT8951(sim_bus, config)
    d.initialize()
    return d


@pytest.fixture
def mock_bus():
    """Bus mock that is always ready."""
    bus = MagicMock()
    bus.read_line.return_value = 1
    bus.monotonic.return_value = 0.0
    return bus


def wire_calls(bus):
    """Bus calls that touch the wire, in order (drops clock calls)."""
    return [c for c in bus.mock_calls
            if c[0] in ('read_line', 'set_line', 'write_bytes', 'transfer')]
