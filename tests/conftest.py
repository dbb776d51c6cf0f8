"""
Pytest fixtures and test configuration for stationsync tests.
"""

import pytest

from stationsync.config import get_settings
from stationsync.storage import StationStore


@pytest.fixture
def store():
    """An opened, migrated in-memory store."""
    s = StationStore()
    s.open()
    yield s
    s.close()


@pytest.fixture
def db_path(tmp_path):
    """Path for an on-disk database."""
    return tmp_path / "stations.db"


@pytest.fixture(autouse=True)
def clear_settings_cache():
    """Settings are cached per process; tests that patch env need a fresh read."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
