"""Explicit startup and shutdown of the store and catalog handles."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from buildrepro.config import BuildReproConfig
from buildrepro.core.artifact_store import ContentAddressedStore, open_store
from buildrepro.core.catalog import BuildCatalog
from buildrepro.core.ingest import BuildIngestor
from buildrepro.core.pool import ConnectionPool
from buildrepro.core.schema import migrate

logger = logging.getLogger(__name__)


@dataclass
class Services:
    """Handles shared by every request: one pool, one store, one catalog."""

    pool: ConnectionPool
    store: ContentAddressedStore
    catalog: BuildCatalog
    ingestor: BuildIngestor

    def close(self) -> None:
        self.pool.close()

    def __enter__(self) -> Services:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def open_services(config: BuildReproConfig, *, create: bool = False) -> Services:
    """Open the catalog pool and the blob store.

    With ``create`` the database, tables and store directories are created
    first; otherwise anything missing raises ``ConfigurationError``.
    """
    if create:
        ContentAddressedStore(config.data_dir, create=True)
    pool = ConnectionPool(
        config.resolved_database_path, max_size=config.pool_size, create=create
    )
    try:
        if create:
            migrate(pool)
        store = open_store(config.data_dir)
    except BaseException:
        pool.close()
        raise
    catalog = BuildCatalog(pool)
    logger.debug(
        "Opened catalog %s and store %s.", pool.db_path, store.base_path
    )
    return Services(
        pool=pool,
        store=store,
        catalog=catalog,
        ingestor=BuildIngestor(catalog, store, verify=config.verify_uploads),
    )
