"""buildrepro: reproducibility tracking for repeated builds.

Records the outputs of timestamped builds of named jobs in a
content-addressed blob store plus a relational catalog, classifies builds
into reproducibility categories and explains why two builds differ.
"""

__version__ = "0.1.0"
__description__ = "Content-addressed build catalog with reproducibility classification"

from buildrepro.core.artifact_store import ContentAddressedStore
from buildrepro.core.catalog import BuildCatalog
from buildrepro.core.classifier import ReproducibilityClassifier
from buildrepro.core.ingest import BuildIngestor
from buildrepro.core.pool import ConnectionPool

__all__ = [
    "BuildCatalog",
    "BuildIngestor",
    "ConnectionPool",
    "ContentAddressedStore",
    "ReproducibilityClassifier",
    "__version__",
]
