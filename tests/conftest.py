"""Shared test fixtures for buildrepro."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

import pytest

from buildrepro.core.artifact_store import ContentAddressedStore
from buildrepro.core.catalog import BuildCatalog
from buildrepro.core.classifier import ReproducibilityClassifier
from buildrepro.core.ingest import BuildIngestor
from buildrepro.core.pool import ConnectionPool
from buildrepro.core.schema import migrate
from buildrepro.models.execution import ExecutionRecord, Exited, UploadedFile

BASE_TIME = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def store(tmp_path: Path) -> ContentAddressedStore:
    """Provide a fresh ContentAddressedStore in a temp directory."""
    return ContentAddressedStore(tmp_path / "data", create=True)


@pytest.fixture
def pool(tmp_path: Path) -> Iterator[ConnectionPool]:
    """Provide a migrated ConnectionPool backed by a temp SQLite database."""
    pool = ConnectionPool(tmp_path / "builder.sqlite3", max_size=4, create=True)
    migrate(pool)
    yield pool
    pool.close()


@pytest.fixture
def catalog(pool: ConnectionPool) -> BuildCatalog:
    return BuildCatalog(pool)


@pytest.fixture
def ingestor(catalog: BuildCatalog, store: ContentAddressedStore) -> BuildIngestor:
    return BuildIngestor(catalog, store)


@pytest.fixture
def classifier(catalog: BuildCatalog) -> ReproducibilityClassifier:
    return ReproducibilityClassifier(catalog)


@pytest.fixture
def make_record() -> Callable[..., ExecutionRecord]:
    """Factory fixture: build an ExecutionRecord with sensible defaults.

    ``inputs`` becomes the ``build-environment`` file (so equal ``inputs``
    mean equal input hashes), ``binary`` becomes ``bin/main``, and ``hours``
    offsets the start time from a fixed base.
    """

    def _factory(
        job_name: str = "unikernel-a",
        platform: str = "hvt",
        *,
        inputs: str | None = "PATH=/usr/bin\n",
        binary: bytes | None = b"\x7fELF main",
        hours: int = 0,
        **overrides: Any,
    ) -> ExecutionRecord:
        files: list[UploadedFile] = []
        if inputs is not None:
            files.append(UploadedFile(filepath="build-environment", data=inputs.encode()))
        if binary is not None:
            files.append(UploadedFile(filepath="bin/main", data=binary))
        start = BASE_TIME + timedelta(hours=hours)
        defaults: dict[str, Any] = {
            "job_name": job_name,
            "platform": platform,
            "start": start,
            "finish": start + timedelta(minutes=5),
            "result": Exited(code=0),
            "console": "building...\ndone\n",
            "script": "#!/bin/sh\nmake\n",
            "files": files,
        }
        defaults.update(overrides)
        return ExecutionRecord(**defaults)

    return _factory
