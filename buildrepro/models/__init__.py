"""buildrepro data models: all Pydantic v2, all frozen (immutable)."""

from buildrepro.models.catalog import (
    ArtifactLocation,
    Build,
    BuildArtifact,
    GcReport,
    Job,
    JobSummary,
    RemovalReport,
    StoredArtifact,
    StoredBlob,
)
from buildrepro.models.classification import Classification
from buildrepro.models.diff import (
    BuildComparison,
    Change,
    CommandDiff,
    MapDiff,
    MetadataChange,
    Package,
    PackageDiff,
    UrlChange,
    VersionChange,
)
from buildrepro.models.execution import (
    ExecutionRecord,
    ExecutionResult,
    Exited,
    Signalled,
    TimedOut,
    UploadedFile,
    is_success,
)

__all__ = [
    # execution
    "ExecutionRecord",
    "ExecutionResult",
    "Exited",
    "Signalled",
    "TimedOut",
    "UploadedFile",
    "is_success",
    # catalog
    "ArtifactLocation",
    "Build",
    "BuildArtifact",
    "GcReport",
    "Job",
    "JobSummary",
    "RemovalReport",
    "StoredArtifact",
    "StoredBlob",
    # classification
    "Classification",
    # diff
    "BuildComparison",
    "Change",
    "CommandDiff",
    "MapDiff",
    "MetadataChange",
    "Package",
    "PackageDiff",
    "UrlChange",
    "VersionChange",
]
