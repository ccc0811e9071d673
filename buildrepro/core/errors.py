"""Error taxonomy shared by the store, the catalog and the analysis layers.

Every error raised by the core derives from ``BuildReproError`` so callers
can catch the whole family at the request boundary.
"""

from __future__ import annotations


class BuildReproError(RuntimeError):
    """Base class for all core errors."""


class NotFound(BuildReproError, LookupError):
    """A job, build, artifact or blob does not exist."""


class Conflict(BuildReproError):
    """A build with the same UUID is already registered."""

    def __init__(self, uuid: str) -> None:
        super().__init__(f"Build with same uuid exists: {uuid}")
        self.uuid = uuid


class Corrupt(BuildReproError):
    """Content does not match its declared digest, or metadata is malformed."""


class StorageError(BuildReproError):
    """Disk or database I/O failed for a single operation."""


class ConfigurationError(BuildReproError):
    """Startup configuration is unusable (missing directories or database)."""


class IneligibleBuild(BuildReproError, ValueError):
    """A build cannot serve as a reproducibility reference."""
