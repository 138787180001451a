"""Pytest configuration and shared fixtures for pad2pad tests

This module provides common fixtures and test utilities used across
unit and integration tests.
"""

import logging
from pathlib import Path

import pytest

from pad2pad.common.config import Config, ConfigLoader
from pad2pad.common.types import StateRecord


class ManualClock:
    """Monotonic clock advanced explicitly by tests"""

    def __init__(self, start: float = 1000.0) -> None:
        self.now: float = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> float:
        self.now += seconds
        return self.now


class RecordingDeviceBackend:
    """Virtual device fake recording every call in order"""

    def __init__(self) -> None:
        self.calls: list[tuple[str, int, StateRecord | None]] = []
        self.closed: bool = False

    def apply(self, slot: int, record: StateRecord) -> None:
        self.calls.append(("apply", slot, record))

    def reset(self, slot: int) -> None:
        self.calls.append(("reset", slot, None))

    def release(self, slot: int) -> None:
        self.calls.append(("release", slot, None))

    def connection_close(self) -> None:
        self.closed = True

    def applied(self, slot: int | None = None) -> list[StateRecord]:
        """Records applied (optionally to one slot), in order"""
        return [
            record
            for name, call_slot, record in self.calls
            if name == "apply" and record is not None and (slot is None or call_slot == slot)
        ]

    def names(self) -> list[str]:
        return [name for name, _slot, _record in self.calls]


@pytest.fixture
def manual_clock() -> ManualClock:
    """Controllable time source"""
    return ManualClock()


@pytest.fixture
def recording_device() -> RecordingDeviceBackend:
    """Virtual device backend fake"""
    return RecordingDeviceBackend()


@pytest.fixture
def sample_config() -> Config:
    """Load the repository config.yml

    Returns:
        Config object with shipped values
    """
    config_path = Path(__file__).parent.parent / "config.yml"
    if not config_path.exists():
        pytest.skip("config.yml not found - required for this test")
    return ConfigLoader.config_load(config_path)


@pytest.fixture(autouse=True)
def setup_logging(caplog):
    """Setup logging for tests"""
    caplog.set_level(logging.DEBUG)


# Markers for test organization
def pytest_configure(config) -> None:
    """Register custom pytest markers used by this test suite."""
    config.addinivalue_line("markers", "integration: test opens real loopback sockets")
