"""Shared fixtures and markers for the visual-scout test suite."""

import pytest

from scout.config import settings


def pytest_configure(config):
    config.addinivalue_line("markers", "live: marks tests that drive a real browser against the marketplace")
    config.addinivalue_line("markers", "slow: marks slow tests")


@pytest.fixture
def uploads_dir(tmp_path, monkeypatch):
    """Point uploads and diagnostics at a temp dir."""
    monkeypatch.setattr(settings, "uploads_dir", str(tmp_path))
    return tmp_path
