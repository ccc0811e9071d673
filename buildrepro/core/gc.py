"""Mark-and-sweep collection of blobs no artifact row references.

Mark reads every digest referenced by the catalog; sweep deletes blobs
outside that set. Blobs are immutable and keyed by content, so a blob
re-uploaded between mark and sweep is at worst deleted and re-stored by the
next upload of the same bytes. Run it when no uploads are in flight.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from buildrepro.core.artifact_store import ContentAddressedStore
from buildrepro.core.catalog import BuildCatalog
from buildrepro.models.catalog import GcReport

logger = logging.getLogger(__name__)


def collect_garbage(
    catalog: BuildCatalog,
    store: ContentAddressedStore,
    *,
    candidates: Iterable[str] | None = None,
    dry_run: bool = False,
) -> GcReport:
    """Delete unreferenced blobs.

    Parameters
    ----------
    candidates:
        Restrict the sweep to these digests, e.g. the ``sha256s`` of a
        ``RemovalReport``. Defaults to every blob in the store.
    dry_run:
        Report what would be removed without deleting anything.
    """
    referenced = catalog.referenced_hashes()
    pool = sorted(set(candidates) if candidates is not None else set(store.iter_hashes()))

    removed: list[str] = []
    freed = 0
    for digest in pool:
        if digest in referenced or not store.exists(digest):
            continue
        try:
            size = store.path_for(digest).stat().st_size
        except FileNotFoundError:
            logger.debug("Blob %s vanished before collection, skipping.", digest)
            continue
        if dry_run or store.delete(digest):
            removed.append(digest)
            freed += size

    logger.info(
        "Garbage collection %s %d of %d blob(s), %d byte(s).",
        "would remove" if dry_run else "removed",
        len(removed),
        len(pool),
        freed,
    )
    return GcReport(scanned=len(pool), removed=removed, bytes_freed=freed, dry_run=dry_run)
