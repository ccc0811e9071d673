"""Tests for runtime config: env-driven settings."""

from __future__ import annotations

from pathlib import Path

import pytest

from buildrepro.config import BuildReproConfig


class TestBuildReproConfig:
    def test_defaults(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.delenv("BUILDREPRO_DATA_DIR", raising=False)
        config = BuildReproConfig(_env_file=None)
        assert config.environment == "development"
        assert config.log_level == "INFO"
        assert config.pool_size == 10
        assert config.verify_uploads is False
        assert config.data_dir == Path("/var/db/buildrepro")

    def test_database_path_defaults_under_data_dir(self):
        config = BuildReproConfig(_env_file=None, data_dir=Path("/srv/b"))
        assert config.resolved_database_path == Path("/srv/b/builder.sqlite3")

    def test_explicit_database_path(self):
        config = BuildReproConfig(_env_file=None, database_path=Path("/tmp/x.db"))
        assert config.resolved_database_path == Path("/tmp/x.db")

    def test_env_override(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("BUILDREPRO_POOL_SIZE", "3")
        monkeypatch.setenv("BUILDREPRO_ENVIRONMENT", "production")
        config = BuildReproConfig(_env_file=None)
        assert config.pool_size == 3
        assert config.is_production is True
