"""Tests for environment-driven settings."""

from stationsync.config import Settings, get_settings
from stationsync.storage import StationStore


class TestSettings:
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("STATIONSYNC_DB_PATH", raising=False)
        monkeypatch.delenv("STATIONSYNC_BUSY_TIMEOUT_MS", raising=False)
        monkeypatch.delenv("STATIONSYNC_LOG_LEVEL", raising=False)

        settings = Settings(_env_file=None)

        assert settings.db_path == ":memory:"
        assert settings.busy_timeout_ms == 5000
        assert settings.log_level == "WARNING"

    def test_env_prefix(self, monkeypatch):
        monkeypatch.setenv("STATIONSYNC_DB_PATH", "/tmp/mirror.db")
        monkeypatch.setenv("STATIONSYNC_BUSY_TIMEOUT_MS", "250")

        settings = Settings(_env_file=None)

        assert settings.db_path == "/tmp/mirror.db"
        assert settings.busy_timeout_ms == 250

    def test_unprefixed_vars_ignored(self, monkeypatch):
        monkeypatch.delenv("STATIONSYNC_DB_PATH", raising=False)
        monkeypatch.setenv("DB_PATH", "/tmp/wrong.db")

        assert Settings(_env_file=None).db_path == ":memory:"

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()


class TestStoreFromSettings:
    def test_uses_configured_path(self, db_path):
        settings = Settings(_env_file=None, db_path=str(db_path), busy_timeout_ms=100)

        with StationStore.from_settings(settings) as store:
            assert store.db_path == str(db_path)
        assert db_path.exists()

    def test_reads_environment(self, monkeypatch, db_path):
        monkeypatch.setenv("STATIONSYNC_DB_PATH", str(db_path))

        store = StationStore.from_settings()

        assert store.db_path == str(db_path)
