"""product360: product versioning and readiness computation."""

from .config import Product360Config, load_config
from .contracts import (
    ArtifactCategoryReadiness,
    ArtifactRecord,
    ChangeSetRecord,
    DiffResult,
    OpenChangeSetSummary,
    Product360Readiness,
    StateProgram,
    StateReadinessRow,
    VersionedDocument,
    VersionStatus,
)
from .diff import diff
from .errors import (
    ComputationError,
    ConflictError,
    NotFoundError,
    Product360Error,
    SourceNotFoundError,
)
from .persistence import get_store
from .readiness import (
    ArtifactReadinessScorer,
    ChangeSetAggregator,
    ReadinessOrchestrator,
    StateReadinessMatrix,
    compute_product360_readiness,
    whats_missing,
)
from .versioning import VersionStore, select_version

__version__ = "0.1.0"
__all__ = [
    "ArtifactCategoryReadiness",
    "ArtifactReadinessScorer",
    "ArtifactRecord",
    "ChangeSetAggregator",
    "ChangeSetRecord",
    "ComputationError",
    "ConflictError",
    "DiffResult",
    "NotFoundError",
    "OpenChangeSetSummary",
    "Product360Config",
    "Product360Error",
    "Product360Readiness",
    "ReadinessOrchestrator",
    "SourceNotFoundError",
    "StateProgram",
    "StateReadinessMatrix",
    "StateReadinessRow",
    "VersionStatus",
    "VersionStore",
    "VersionedDocument",
    "compute_product360_readiness",
    "diff",
    "get_store",
    "load_config",
    "select_version",
    "whats_missing",
]
