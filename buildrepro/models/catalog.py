"""Catalog records: jobs, builds and the artifacts they produced.

These are read-side projections of catalog rows. The bytes of an artifact
live in the content-addressed store; a ``BuildArtifact`` only points at
them through ``localpath`` and ``sha256``.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict

from buildrepro.models.execution import ExecutionResult, is_success


class StoredBlob(BaseModel):
    """What the artifact store returns for one ``put``."""

    model_config = ConfigDict(frozen=True)

    sha256: str
    physical_path: str  # relative to the store root, a pure function of sha256
    size: int


class StoredArtifact(BaseModel):
    """A logical output file bound to an already stored blob."""

    model_config = ConfigDict(frozen=True)

    filepath: str
    blob: StoredBlob


class Job(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    section: str | None = None
    synopsis: str | None = None
    readme: str | None = None


class BuildArtifact(BaseModel):
    model_config = ConfigDict(frozen=True)

    filepath: str
    localpath: str
    sha256: str
    size: int


class Build(BaseModel):
    """One execution of a job on a platform."""

    model_config = ConfigDict(frozen=True)

    uuid: str
    job_name: str
    platform: str
    start: datetime
    finish: datetime
    result: ExecutionResult
    console: str = ""
    script: str = ""
    main_binary: BuildArtifact | None = None
    input_hash: str | None = None

    @property
    def successful(self) -> bool:
        return is_success(self.result)

    @property
    def output_hash(self) -> str | None:
        return self.main_binary.sha256 if self.main_binary else None


class JobSummary(BaseModel):
    """A job together with its most recent build, for overview listings."""

    model_config = ConfigDict(frozen=True)

    job: Job
    latest_build: Build


class ArtifactLocation(BaseModel):
    """Answer to a lookup by content hash."""

    model_config = ConfigDict(frozen=True)

    job_name: str
    build: Build
    artifact: BuildArtifact


class RemovalReport(BaseModel):
    """What a build or job removal deleted from the catalog."""

    model_config = ConfigDict(frozen=True)

    builds: int = 0
    artifacts: int = 0
    sha256s: frozenset[str] = frozenset()


class GcReport(BaseModel):
    model_config = ConfigDict(frozen=True)

    scanned: int = 0
    removed: list[str] = []
    bytes_freed: int = 0
    dry_run: bool = False
