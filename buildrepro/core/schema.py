"""Catalog DDL and migration.

Foreign keys carry no ``ON DELETE`` actions: removals are spelled out
statement by statement in the catalog so the blob cleanup that follows a
removal can be sequenced after the commit.
"""

from __future__ import annotations

import logging

from buildrepro.core.pool import ConnectionPool

logger = logging.getLogger(__name__)

MIGRATIONS: tuple[str, ...] = (
    """
    CREATE TABLE IF NOT EXISTS job (
        id        INTEGER PRIMARY KEY AUTOINCREMENT,
        name      TEXT NOT NULL UNIQUE,
        section   TEXT,
        synopsis  TEXT,
        readme    TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS build (
        id           INTEGER PRIMARY KEY AUTOINCREMENT,
        uuid         TEXT NOT NULL UNIQUE,
        job          INTEGER NOT NULL REFERENCES job(id),
        platform     TEXT NOT NULL,
        start        TEXT NOT NULL,
        finish       TEXT NOT NULL,
        result_kind  TEXT NOT NULL,
        result_code  INTEGER,
        console      TEXT NOT NULL DEFAULT '',
        script       TEXT NOT NULL DEFAULT '',
        main_binary  INTEGER REFERENCES build_artifact(id) DEFERRABLE INITIALLY DEFERRED,
        input_hash   TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS build_artifact (
        id         INTEGER PRIMARY KEY AUTOINCREMENT,
        build      INTEGER NOT NULL REFERENCES build(id),
        filepath   TEXT NOT NULL,
        localpath  TEXT NOT NULL,
        sha256     TEXT NOT NULL,
        size       INTEGER NOT NULL,
        UNIQUE (build, filepath)
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_build_job ON build(job, platform, start)",
    "CREATE INDEX IF NOT EXISTS idx_build_input ON build(input_hash)",
    "CREATE INDEX IF NOT EXISTS idx_artifact_sha256 ON build_artifact(sha256)",
)


def migrate(pool: ConnectionPool) -> None:
    """Create tables and indexes; safe to run repeatedly."""
    with pool.transaction() as conn:
        for statement in MIGRATIONS:
            logger.debug("Executing migration query: %s", " ".join(statement.split()))
            conn.execute(statement)
    logger.info("Catalog schema at %s is up to date.", pool.db_path)
