"""Pytest configuration and fixtures."""

import pytest

from vbus_sync.config import DeviceConfig

from fakes import FakeDecoder, RecordingConsolidator


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "stress: stress tests with large data (skipped in CI)"
    )


@pytest.fixture
def device_config():
    return DeviceConfig(url_prefix="http://dlx.local", username="admin", password="secret", chunk_size=16)


@pytest.fixture
def decoder():
    return FakeDecoder()


@pytest.fixture
def consolidator():
    return RecordingConsolidator()
