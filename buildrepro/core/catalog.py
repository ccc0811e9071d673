"""Relational catalog of jobs, builds and build artifacts backed by SQLite.

The catalog is the single source of truth for what exists. It never touches
blob bytes: artifact rows reference blobs in the content-addressed store by
digest and physical path.

Design:
- All mutation goes through ``register_build`` and the two removal
  operations, each a single ``BEGIN IMMEDIATE`` transaction.
- A build row is inserted only after every blob it references has been
  stored, so readers never observe a partially written build.
- The UUID uniqueness constraint settles racing registrations of the
  same UUID: the loser gets ``Conflict``.
"""

from __future__ import annotations

import logging
import mimetypes
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any

from buildrepro.core.errors import Conflict, Corrupt, NotFound, StorageError
from buildrepro.core.hasher import INPUT_FILES, compute_input_hash
from buildrepro.core.pool import ConnectionPool
from buildrepro.models.catalog import (
    ArtifactLocation,
    Build,
    BuildArtifact,
    Job,
    JobSummary,
    RemovalReport,
    StoredArtifact,
)
from buildrepro.models.execution import (
    ExecutionRecord,
    result_from_columns,
    result_to_columns,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# SQL
# ---------------------------------------------------------------------------

_BUILD_SELECT = """
SELECT b.id, b.uuid, j.name AS job_name, b.platform, b.start, b.finish,
       b.result_kind, b.result_code, b.console, b.script, b.input_hash,
       a.filepath AS mb_filepath, a.localpath AS mb_localpath,
       a.sha256 AS mb_sha256, a.size AS mb_size
FROM build b
JOIN job j ON j.id = b.job
LEFT JOIN build_artifact a ON a.id = b.main_binary
"""

_SUCCESS = "(b.result_kind = 'exited' AND b.result_code = 0)"

_ARTIFACT_COLUMNS = "filepath, localpath, sha256, size"


def _timestamp(value: datetime) -> str:
    """Fixed-width UTC ISO-8601, so lexical order is chronological order."""
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


@contextmanager
def _translate_errors() -> Iterator[None]:
    try:
        yield
    except sqlite3.Error as exc:
        raise StorageError(f"Catalog error: {exc}") from exc


def select_main_binary(
    artifacts: list[StoredArtifact], declared: str | None = None
) -> StoredArtifact | None:
    """Pick the artifact that is the build's main output.

    The declared path wins; otherwise the first artifact under ``bin/``.
    """
    if declared is not None:
        for artifact in artifacts:
            if artifact.filepath == declared:
                return artifact
        raise Corrupt(f"Declared main binary {declared!r} is not among the artifacts")
    binaries = sorted(
        (a for a in artifacts if a.filepath.startswith("bin/")),
        key=lambda a: a.filepath,
    )
    return binaries[0] if binaries else None


def mime_type(filepath: str) -> str:
    """Content type for serving an artifact."""
    if filepath in INPUT_FILES or filepath.endswith(".build-hashes"):
        return "text/plain"
    if filepath.startswith("bin/"):
        return "application/octet-stream"
    guessed, _ = mimetypes.guess_type(filepath)
    return guessed or "application/octet-stream"


class BuildCatalog:
    """Jobs, builds and artifact metadata.

    Parameters
    ----------
    pool:
        Connection pool for the catalog database. The catalog borrows
        connections per operation and never closes the pool.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        self._pool = pool

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register_build(
        self, record: ExecutionRecord, artifacts: list[StoredArtifact]
    ) -> Build:
        """Atomically insert a build and its artifacts, creating the job if new.

        Every blob in ``artifacts`` must already be in the store. Raises
        ``Conflict`` if the UUID is taken; nothing is written in that case.
        """
        main_binary = select_main_binary(artifacts, record.main_binary)
        input_hash = compute_input_hash((a.filepath, a.blob.sha256) for a in artifacts)
        result_kind, result_code = result_to_columns(record.result)

        try:
            with _translate_errors(), self._pool.transaction() as conn:
                if conn.execute(
                    "SELECT 1 FROM build WHERE uuid = ?", (record.uuid,)
                ).fetchone():
                    raise Conflict(record.uuid)

                conn.execute(
                    "INSERT OR IGNORE INTO job (name) VALUES (?)", (record.job_name,)
                )
                job_id = conn.execute(
                    "SELECT id FROM job WHERE name = ?", (record.job_name,)
                ).fetchone()[0]

                build_id = conn.execute(
                    """
                    INSERT INTO build
                        (uuid, job, platform, start, finish, result_kind,
                         result_code, console, script, input_hash)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        record.uuid,
                        job_id,
                        record.platform,
                        _timestamp(record.start),
                        _timestamp(record.finish),
                        result_kind,
                        result_code,
                        record.console,
                        record.script,
                        input_hash,
                    ),
                ).lastrowid

                main_binary_id = None
                for artifact in artifacts:
                    artifact_id = conn.execute(
                        f"INSERT INTO build_artifact (build, {_ARTIFACT_COLUMNS}) "
                        "VALUES (?, ?, ?, ?, ?)",
                        (
                            build_id,
                            artifact.filepath,
                            artifact.blob.physical_path,
                            artifact.blob.sha256,
                            artifact.blob.size,
                        ),
                    ).lastrowid
                    if main_binary is not None and artifact.filepath == main_binary.filepath:
                        main_binary_id = artifact_id

                if main_binary_id is not None:
                    conn.execute(
                        "UPDATE build SET main_binary = ? WHERE id = ?",
                        (main_binary_id, build_id),
                    )
        except StorageError as exc:
            if isinstance(exc.__cause__, sqlite3.IntegrityError) and "build.uuid" in str(
                exc.__cause__
            ):
                raise Conflict(record.uuid) from exc
            raise

        logger.info(
            "Registered build %s(%s) on %s with %d artifact(s).",
            record.job_name,
            record.uuid,
            record.platform,
            len(artifacts),
        )
        return self.get_build(record.uuid)

    # ------------------------------------------------------------------
    # Jobs
    # ------------------------------------------------------------------

    def list_jobs(self) -> list[Job]:
        with _translate_errors(), self._pool.connection() as conn:
            rows = conn.execute(
                "SELECT name, section, synopsis, readme FROM job ORDER BY name"
            ).fetchall()
        return [Job(**dict(row)) for row in rows]

    def get_job(self, name: str) -> Job:
        with _translate_errors(), self._pool.connection() as conn:
            row = conn.execute(
                "SELECT name, section, synopsis, readme FROM job WHERE name = ?", (name,)
            ).fetchone()
        if row is None:
            raise NotFound(f"Job not found: {name}")
        return Job(**dict(row))

    def update_job_metadata(
        self,
        name: str,
        *,
        section: str | None = None,
        synopsis: str | None = None,
        readme: str | None = None,
    ) -> Job:
        """Set the given descriptive fields; fields left as ``None`` are kept."""
        updates = {
            key: value
            for key, value in (("section", section), ("synopsis", synopsis), ("readme", readme))
            if value is not None
        }
        if updates:
            assignments = ", ".join(f"{column} = ?" for column in updates)
            with _translate_errors(), self._pool.transaction() as conn:
                cursor = conn.execute(
                    f"UPDATE job SET {assignments} WHERE name = ?",
                    (*updates.values(), name),
                )
                if cursor.rowcount == 0:
                    raise NotFound(f"Job not found: {name}")
        return self.get_job(name)

    def jobs_by_section(self) -> dict[str, list[JobSummary]]:
        """Jobs grouped by section, each with its most recent build."""
        sections: dict[str, list[JobSummary]] = {}
        for job in self.list_jobs():
            builds = self.list_builds(job.name)
            if not builds:
                logger.warning("Job without builds: %s", job.name)
                continue
            sections.setdefault(job.section or "", []).append(
                JobSummary(job=job, latest_build=builds[0])
            )
        return dict(sorted(sections.items()))

    # ------------------------------------------------------------------
    # Builds
    # ------------------------------------------------------------------

    def build_exists(self, uuid: str) -> bool:
        with _translate_errors(), self._pool.connection() as conn:
            return (
                conn.execute("SELECT 1 FROM build WHERE uuid = ?", (uuid,)).fetchone()
                is not None
            )

    def get_build(self, uuid: str) -> Build:
        with _translate_errors(), self._pool.connection() as conn:
            row = conn.execute(f"{_BUILD_SELECT} WHERE b.uuid = ?", (uuid,)).fetchone()
        if row is None:
            raise NotFound(f"Build not found: {uuid}")
        return self._row_to_build(row)

    def list_builds(self, job_name: str, platform: str | None = None) -> list[Build]:
        """Builds of a job, newest first, optionally for one platform."""
        query = f"{_BUILD_SELECT} WHERE j.name = ?"
        params: list[Any] = [job_name]
        if platform is not None:
            query += " AND b.platform = ?"
            params.append(platform)
        query += " ORDER BY b.start DESC, b.id DESC"
        return self._fetch_builds(query, params)

    def platforms(self, job_name: str) -> list[str]:
        with _translate_errors(), self._pool.connection() as conn:
            rows = conn.execute(
                "SELECT DISTINCT b.platform FROM build b JOIN job j ON j.id = b.job "
                "WHERE j.name = ? ORDER BY b.platform",
                (job_name,),
            ).fetchall()
        return [row[0] for row in rows]

    def failed_builds(
        self, start: int = 0, count: int = 10, platform: str | None = None
    ) -> list[Build]:
        """At most ``count`` failed builds from offset ``start``, newest first."""
        if start < 0 or count < 0:
            raise ValueError("start and count must be non-negative")
        query = f"{_BUILD_SELECT} WHERE NOT {_SUCCESS}"
        params: list[Any] = []
        if platform is not None:
            query += " AND b.platform = ?"
            params.append(platform)
        query += " ORDER BY b.start DESC, b.id DESC LIMIT ? OFFSET ?"
        params.extend((count, start))
        return self._fetch_builds(query, params)

    def latest_successful_build(self, job_name: str, platform: str) -> Build | None:
        builds = self._fetch_builds(
            f"{_BUILD_SELECT} WHERE j.name = ? AND b.platform = ? AND {_SUCCESS} "
            "ORDER BY b.start DESC, b.id DESC LIMIT 1",
            [job_name, platform],
        )
        return builds[0] if builds else None

    def successful_outputs(self, job_name: str, platform: str) -> list[Build]:
        """Successful builds that produced a main binary, oldest first."""
        return self._fetch_builds(
            f"{_BUILD_SELECT} WHERE j.name = ? AND b.platform = ? AND {_SUCCESS} "
            "AND b.main_binary IS NOT NULL ORDER BY b.start ASC, b.id ASC",
            [job_name, platform],
        )

    # ------------------------------------------------------------------
    # Artifacts
    # ------------------------------------------------------------------

    def build_artifacts(self, uuid: str) -> list[BuildArtifact]:
        with _translate_errors(), self._pool.connection() as conn:
            build_id = self._build_id(conn, uuid)
            rows = conn.execute(
                f"SELECT {_ARTIFACT_COLUMNS} FROM build_artifact WHERE build = ? "
                "ORDER BY filepath",
                (build_id,),
            ).fetchall()
        return [BuildArtifact(**dict(row)) for row in rows]

    def get_artifact(self, uuid: str, filepath: str) -> BuildArtifact:
        with _translate_errors(), self._pool.connection() as conn:
            build_id = self._build_id(conn, uuid)
            row = conn.execute(
                f"SELECT {_ARTIFACT_COLUMNS} FROM build_artifact "
                "WHERE build = ? AND filepath = ?",
                (build_id, filepath),
            ).fetchone()
        if row is None:
            raise NotFound(f"Artifact not found: {uuid}/{filepath}")
        return BuildArtifact(**dict(row))

    def main_binary(self, uuid: str) -> BuildArtifact | None:
        return self.get_build(uuid).main_binary

    def find_by_hash(self, sha256: str) -> ArtifactLocation:
        """Most recent build whose main binary has this digest.

        Falls back to any artifact carrying the digest.
        """
        sha256 = sha256.lower()
        with _translate_errors(), self._pool.connection() as conn:
            row = conn.execute(
                f"{_BUILD_SELECT} WHERE a.sha256 = ? ORDER BY b.start DESC, b.id DESC LIMIT 1",
                (sha256,),
            ).fetchone()
            if row is not None:
                build = self._row_to_build(row)
                artifact = BuildArtifact(
                    filepath=row["mb_filepath"],
                    localpath=row["mb_localpath"],
                    sha256=row["mb_sha256"],
                    size=row["mb_size"],
                )
                return ArtifactLocation(job_name=build.job_name, build=build, artifact=artifact)
            row = conn.execute(
                "SELECT b.uuid, a.filepath, a.localpath, a.sha256, a.size "
                "FROM build_artifact a JOIN build b ON b.id = a.build "
                "WHERE a.sha256 = ? ORDER BY b.start DESC, b.id DESC LIMIT 1",
                (sha256,),
            ).fetchone()
        if row is None:
            raise NotFound(f"No artifact with sha256 {sha256}")
        build = self.get_build(row["uuid"])
        artifact = BuildArtifact(
            filepath=row["filepath"],
            localpath=row["localpath"],
            sha256=row["sha256"],
            size=row["size"],
        )
        return ArtifactLocation(job_name=build.job_name, build=build, artifact=artifact)

    def referenced_hashes(self) -> set[str]:
        """Every digest referenced by at least one artifact row."""
        with _translate_errors(), self._pool.connection() as conn:
            rows = conn.execute("SELECT DISTINCT sha256 FROM build_artifact").fetchall()
        return {row[0] for row in rows}

    # ------------------------------------------------------------------
    # Removal
    # ------------------------------------------------------------------

    def remove_build(self, uuid: str) -> RemovalReport:
        """Remove one build and its artifact rows. Blobs are left in place."""
        with _translate_errors(), self._pool.transaction() as conn:
            build_id = self._build_id(conn, uuid)
            report = self._delete_builds(conn, [build_id])
        logger.info("Removed build %s (%d artifact(s)).", uuid, report.artifacts)
        return report

    def remove_job(self, name: str) -> RemovalReport:
        """Remove a job, all its builds and their artifact rows.

        Each step runs inside one transaction; a failure rolls everything
        back. Blob cleanup is the caller's business after this returns.
        """
        with _translate_errors(), self._pool.transaction() as conn:
            row = conn.execute("SELECT id FROM job WHERE name = ?", (name,)).fetchone()
            if row is None:
                logger.info("Job %r doesn't exist or has already been removed.", name)
                return RemovalReport()
            job_id = row[0]
            build_ids = [
                r[0]
                for r in conn.execute(
                    "SELECT id FROM build WHERE job = ?", (job_id,)
                ).fetchall()
            ]
            report = self._delete_builds(conn, build_ids)
            conn.execute("DELETE FROM job WHERE id = ?", (job_id,))
        logger.info(
            "Removed job %r with %d build(s) and %d artifact(s).",
            name,
            report.builds,
            report.artifacts,
        )
        return report

    @staticmethod
    def _delete_builds(conn: sqlite3.Connection, build_ids: list[int]) -> RemovalReport:
        sha256s: set[str] = set()
        artifacts = 0
        for build_id in build_ids:
            rows = conn.execute(
                "SELECT sha256 FROM build_artifact WHERE build = ?", (build_id,)
            ).fetchall()
            sha256s.update(row[0] for row in rows)
            artifacts += len(rows)
            conn.execute("UPDATE build SET main_binary = NULL WHERE id = ?", (build_id,))
            conn.execute("DELETE FROM build_artifact WHERE build = ?", (build_id,))
            conn.execute("DELETE FROM build WHERE id = ?", (build_id,))
        return RemovalReport(
            builds=len(build_ids), artifacts=artifacts, sha256s=frozenset(sha256s)
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _build_id(conn: sqlite3.Connection, uuid: str) -> int:
        row = conn.execute("SELECT id FROM build WHERE uuid = ?", (uuid,)).fetchone()
        if row is None:
            raise NotFound(f"Build not found: {uuid}")
        return row[0]

    def _fetch_builds(self, query: str, params: list[Any]) -> list[Build]:
        with _translate_errors(), self._pool.connection() as conn:
            rows = conn.execute(query, params).fetchall()
        return [self._row_to_build(row) for row in rows]

    @staticmethod
    def _row_to_build(row: sqlite3.Row) -> Build:
        main_binary = None
        if row["mb_sha256"] is not None:
            main_binary = BuildArtifact(
                filepath=row["mb_filepath"],
                localpath=row["mb_localpath"],
                sha256=row["mb_sha256"],
                size=row["mb_size"],
            )
        return Build(
            uuid=row["uuid"],
            job_name=row["job_name"],
            platform=row["platform"],
            start=datetime.fromisoformat(row["start"]),
            finish=datetime.fromisoformat(row["finish"]),
            result=result_from_columns(row["result_kind"], row["result_code"]),
            console=row["console"],
            script=row["script"],
            main_binary=main_binary,
            input_hash=row["input_hash"],
        )
