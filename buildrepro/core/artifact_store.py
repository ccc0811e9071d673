"""Content-addressed, immutable artifact store.

Storage layout::

    {base}/objects/{sha256[0:2]}/{sha256[2:4]}/{sha256}.dat   canonical blobs
    {base}/staging/{uuid4}.part                               in-flight writes

Rename is the commit point. ``put`` writes into ``staging/`` and renames the
staged file onto its canonical path; a blob is visible only once the rename
has happened. Concurrent writers of identical content need no lock: they
race to rename identical bytes onto the same path, and whichever rename
lands last leaves the same file behind. Anything left in ``staging/`` after
a crash is garbage and is removed by ``sweep_staging`` at startup.
"""

from __future__ import annotations

import logging
import os
import uuid
from collections.abc import Iterator
from pathlib import Path
from typing import BinaryIO

from buildrepro.core.errors import ConfigurationError, Corrupt, NotFound, StorageError
from buildrepro.core.hasher import is_sha256_hex, sha256_hex
from buildrepro.models.catalog import StoredBlob

logger = logging.getLogger(__name__)

_OBJECTS = "objects"
_STAGING = "staging"
_BLOB_SUFFIX = ".dat"
_STAGING_SUFFIX = ".part"


class ContentAddressedStore:
    """SHA-256 keyed blob store with staged, atomically renamed writes.

    Storing the same content twice is a no-op. Blobs are never modified;
    ``delete`` exists only for garbage collection of unreferenced blobs.

    Parameters
    ----------
    base_path:
        Root directory of the store.
    create:
        Create ``objects/`` and ``staging/`` if missing. When ``False`` a
        missing directory is a fatal configuration error.
    """

    def __init__(self, base_path: Path, *, create: bool = False) -> None:
        self._base = Path(base_path)
        self._objects = self._base / _OBJECTS
        self._staging = self._base / _STAGING
        if create:
            self._objects.mkdir(parents=True, exist_ok=True)
            self._staging.mkdir(parents=True, exist_ok=True)
        for directory in (self._objects, self._staging):
            if not directory.is_dir():
                raise ConfigurationError(f"Store directory missing: {directory}")

    @property
    def base_path(self) -> Path:
        return self._base

    @staticmethod
    def physical_path_for(sha256_digest: str) -> str:
        """Store-relative POSIX path of a digest; a pure function of the digest."""
        return (
            f"{_OBJECTS}/{sha256_digest[:2]}/{sha256_digest[2:4]}/"
            f"{sha256_digest}{_BLOB_SUFFIX}"
        )

    def path_for(self, sha256_digest: str) -> Path:
        return self._base / self.physical_path_for(sha256_digest)

    def _resolve(self, physical_path: str) -> Path:
        path = (self._base / physical_path).resolve()
        if not path.is_relative_to(self._objects.resolve()):
            raise NotFound(f"Artifact not found: {physical_path}")
        return path

    # ------------------------------------------------------------------
    # Store
    # ------------------------------------------------------------------

    def put(self, data: bytes, *, expected_sha256: str | None = None) -> StoredBlob:
        """Store bytes and return their digest and canonical physical path.

        Raises ``Corrupt`` if ``expected_sha256`` is given and does not
        match, ``StorageError`` if the write fails.
        """
        digest = sha256_hex(data)
        if expected_sha256 is not None and expected_sha256.lower() != digest:
            raise Corrupt(
                f"Content hash mismatch: declared {expected_sha256}, computed {digest}"
            )

        blob = StoredBlob(
            sha256=digest, physical_path=self.physical_path_for(digest), size=len(data)
        )
        destination = self.path_for(digest)
        if destination.exists():
            logger.debug("Blob %s already stored, skipping write.", digest)
            return blob

        staged = self._staging / f"{uuid.uuid4().hex}{_STAGING_SUFFIX}"
        try:
            with open(staged, "xb") as fh:
                fh.write(data)
                fh.flush()
                os.fsync(fh.fileno())
            destination.parent.mkdir(parents=True, exist_ok=True)
            if destination.exists():
                staged.unlink()
                logger.debug("Blob %s stored concurrently, discarded staging file.", digest)
            else:
                os.replace(staged, destination)
        except OSError as exc:
            staged.unlink(missing_ok=True)
            raise StorageError(f"Failed to store blob {digest}: {exc}") from exc
        return blob

    # ------------------------------------------------------------------
    # Retrieve
    # ------------------------------------------------------------------

    def get(self, physical_path: str) -> bytes:
        """Read a blob by its physical path."""
        path = self._resolve(physical_path)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            raise NotFound(f"Artifact not found: {physical_path}") from None
        except OSError as exc:
            raise StorageError(f"Failed to read {physical_path}: {exc}") from exc

    def get_by_hash(self, sha256_digest: str) -> bytes:
        return self.get(self.physical_path_for(sha256_digest))

    def open(self, physical_path: str) -> BinaryIO:
        """Open a blob for streaming; the caller closes the handle."""
        path = self._resolve(physical_path)
        try:
            return open(path, "rb")
        except FileNotFoundError:
            raise NotFound(f"Artifact not found: {physical_path}") from None
        except OSError as exc:
            raise StorageError(f"Failed to open {physical_path}: {exc}") from exc

    # ------------------------------------------------------------------
    # Check and verify
    # ------------------------------------------------------------------

    def exists(self, sha256_digest: str) -> bool:
        return is_sha256_hex(sha256_digest) and self.path_for(sha256_digest).exists()

    def verify(self, sha256_digest: str) -> bool:
        """Re-hash a stored blob and compare against its address."""
        if not self.exists(sha256_digest):
            return False
        return sha256_hex(self.path_for(sha256_digest).read_bytes()) == sha256_digest

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    def sweep_staging(self) -> int:
        """Remove staging files orphaned by writers that died before renaming.

        Only safe while no writer is active, i.e. at startup.
        """
        removed = 0
        for leftover in self._staging.iterdir():
            if leftover.is_file():
                leftover.unlink(missing_ok=True)
                removed += 1
        if removed:
            logger.info("Removed %d orphaned staging file(s) from %s.", removed, self._staging)
        return removed

    def iter_hashes(self) -> Iterator[str]:
        """Yield the digest of every canonical blob."""
        for path in self._objects.glob(f"*/*/*{_BLOB_SUFFIX}"):
            digest = path.name[: -len(_BLOB_SUFFIX)]
            if is_sha256_hex(digest):
                yield digest

    def delete(self, sha256_digest: str) -> bool:
        """Remove one blob. Returns ``False`` if it was already gone."""
        try:
            self.path_for(sha256_digest).unlink()
        except FileNotFoundError:
            return False
        except OSError as exc:
            raise StorageError(f"Failed to delete blob {sha256_digest}: {exc}") from exc
        return True


def open_store(base_path: Path) -> ContentAddressedStore:
    """Open an existing store and sweep leftover staging files."""
    store = ContentAddressedStore(base_path)
    store.sweep_staging()
    return store
