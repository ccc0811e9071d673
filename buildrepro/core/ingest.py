"""Upload path: store an execution's files, then register the build.

Blobs are written first and rows second. A failure while storing any file
aborts before the catalog is touched, so a half-stored upload never shows
up as a build. Blobs from an aborted or rejected upload stay in the store
until garbage collection finds them unreferenced.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone

from buildrepro.core.artifact_store import ContentAddressedStore
from buildrepro.core.catalog import BuildCatalog
from buildrepro.core.errors import Conflict
from buildrepro.models.catalog import Build, StoredArtifact
from buildrepro.models.execution import Exited, ExecutionRecord, UploadedFile

logger = logging.getLogger(__name__)


class BuildIngestor:
    """Accepts execution records from build runners.

    Parameters
    ----------
    catalog:
        Catalog to register builds in.
    store:
        Blob store for the uploaded file contents.
    verify:
        Reject files whose declared ``sha256`` does not match their bytes.
    """

    def __init__(
        self,
        catalog: BuildCatalog,
        store: ContentAddressedStore,
        *,
        verify: bool = False,
    ) -> None:
        self._catalog = catalog
        self._store = store
        self._verify = verify

    def ingest(self, record: ExecutionRecord) -> Build:
        """Persist one execution record. Raises ``Conflict`` for a known UUID."""
        logger.info("Received build %s(%s)", record.job_name, record.uuid)
        if self._catalog.build_exists(record.uuid):
            logger.warning(
                "Build with same uuid exists: %s(%s)", record.job_name, record.uuid
            )
            raise Conflict(record.uuid)

        stored: list[StoredArtifact] = []
        for upload in record.files:
            blob = self._store.put(
                upload.data,
                expected_sha256=upload.sha256 if self._verify else None,
            )
            stored.append(StoredArtifact(filepath=upload.filepath, blob=blob))

        return self._catalog.register_build(record, stored)

    def ingest_json(self, payload: str | bytes) -> Build:
        """Parse the JSON wire format and ingest it."""
        return self.ingest(ExecutionRecord.model_validate_json(payload))

    def ingest_manual(
        self,
        job_name: str,
        platform: str,
        files: list[UploadedFile],
        *,
        main_binary: str | None = None,
    ) -> Build:
        """Register operator-supplied artifacts as a synthetic successful build."""
        now = datetime.now(timezone.utc)
        record = ExecutionRecord(
            uuid=str(uuid.uuid4()),
            job_name=job_name,
            platform=platform,
            start=now,
            finish=now,
            result=Exited(code=0),
            files=files,
            main_binary=main_binary,
        )
        return self.ingest(record)
