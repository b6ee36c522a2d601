"""Readiness components and the orchestrator that composes them."""

from __future__ import annotations

from .artifacts import ArtifactReadinessScorer, category_score
from .changesets import ChangeSetAggregator
from .orchestrator import (
    ReadinessOrchestrator,
    compute_product360_readiness,
    whats_missing,
)
from .states import StateReadinessMatrix

__all__ = [
    "ArtifactReadinessScorer",
    "ChangeSetAggregator",
    "ReadinessOrchestrator",
    "StateReadinessMatrix",
    "category_score",
    "compute_product360_readiness",
    "whats_missing",
]
