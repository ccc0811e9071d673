"""Runtime configuration: env-driven.

Reads ``BUILDREPRO_*`` environment variables and an optional ``.env`` file.

Examples
--------
Override via environment::

    export BUILDREPRO_DATA_DIR=/srv/builds
    export BUILDREPRO_LOG_LEVEL=DEBUG
    export BUILDREPRO_POOL_SIZE=4
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BuildReproConfig(BaseSettings):
    """Settings for the artifact store, the catalog and the CLI."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="BUILDREPRO_",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    environment: str = "development"
    log_level: str = "INFO"

    # Storage
    data_dir: Path = Path("/var/db/buildrepro")
    database_path: Path | None = None  # defaults to {data_dir}/builder.sqlite3
    pool_size: int = Field(default=10, ge=1)

    # Reject uploaded files whose declared sha256 does not match their bytes
    verify_uploads: bool = False

    @property
    def resolved_database_path(self) -> Path:
        return self.database_path or self.data_dir / "builder.sqlite3"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"
