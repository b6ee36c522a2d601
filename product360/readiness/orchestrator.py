"""Product 360 readiness report and the "what's missing" query."""

from __future__ import annotations

import asyncio
import logging
from datetime import date
from typing import Optional, Sequence

from ..config import Product360Config, load_config
from ..contracts import (
    VERSION_STATUS_DISPLAY,
    ArtifactCategoryReadiness,
    DiffResult,
    OpenChangeSetSummary,
    Product360Readiness,
    StateReadinessRow,
    StateStats,
    StateStatus,
    VersionedDocument,
    VersionTimelineEntry,
    utcnow,
)
from ..diff import diff
from ..errors import ComputationError, NotFoundError
from ..persistence import ChangeSetSource, DocumentStore, get_store
from ..versioning import VersionStore, find_published, select_version
from .artifacts import ArtifactReadinessScorer, round_half_up
from .changesets import ChangeSetAggregator, describe_pending
from .states import StateReadinessMatrix, describe_blocked

logger = logging.getLogger(__name__)

PRODUCT = "product"
NO_BASELINE_BLOCKER = "No published baseline yet: this version has nothing to compare against"


class ReadinessOrchestrator:
    """Compose versions, diff, state matrix, artifact scores and change sets into one report."""

    def __init__(
        self,
        store: DocumentStore,
        change_sets: Optional[ChangeSetSource] = None,
        config: Optional[Product360Config] = None,
    ) -> None:
        self._config = config or load_config()
        self._store = store
        self._change_sets = change_sets if change_sets is not None else store
        self._versions = VersionStore(store, self._config)
        categories = self._config.artifacts.categories
        self._scorer = ArtifactReadinessScorer(categories)
        self._states = StateReadinessMatrix(categories)
        self._aggregator = ChangeSetAggregator()

    # ------------------------------------------------------------------
    # Version resolution
    async def _load_versions(
        self, org_id: str, product_id: str
    ) -> list[VersionedDocument]:
        try:
            return await self._versions.get_versions(org_id, PRODUCT, product_id)
        except NotFoundError:
            logger.warning(f"Product {product_id} has no versions; treating as unversioned")
            return []
        except Exception as exc:
            logger.error(f"Failed to list versions of product {product_id}: {exc}")
            raise ComputationError(f"Could not list versions of product {product_id}") from exc

    @staticmethod
    def _resolve(
        versions: Sequence[VersionedDocument], product_id: str, version_id: Optional[str]
    ) -> Optional[VersionedDocument]:
        if version_id is None:
            return select_version(versions)
        match = next((v for v in versions if v.id == version_id), None)
        if match is None:
            raise NotFoundError(f"Version {version_id} not found for product {product_id}")
        return match

    # ------------------------------------------------------------------
    # Scoring
    def overall_score(
        self,
        stats: StateStats,
        artifacts: Sequence[ArtifactCategoryReadiness],
        total_pending_approvals: int,
    ) -> int:
        """Weighted blend of state readiness, artifact completeness and approval backlog."""
        scoring = self._config.scoring
        state_ratio = (
            (stats.active + stats.ready_to_activate) / stats.total if stats.total else 0.0
        )
        artifact_mean = (
            sum(a.score for a in artifacts) / len(artifacts) / 100 if artifacts else 0.0
        )
        approval_term = max(0.0, 1 - total_pending_approvals * scoring.approval_penalty)
        raw = (
            scoring.state_weight * state_ratio
            + scoring.artifact_weight * artifact_mean
            + scoring.approval_weight * approval_term
        )
        return max(0, min(100, round_half_up(100 * raw)))

    def band(self, score: int) -> str:
        scoring = self._config.scoring
        if score >= scoring.on_track_threshold:
            return "on_track"
        if score >= scoring.at_risk_threshold:
            return "at_risk"
        return "blocked"

    def blockers(
        self,
        states: Sequence[StateReadinessRow],
        change_sets: Sequence[OpenChangeSetSummary],
        impact: DiffResult,
        artifacts: Sequence[ArtifactCategoryReadiness],
    ) -> list[str]:
        """Blocker lines in fixed priority order.

        Blocked states, then change sets with pending approvals, then the
        missing baseline, then low-scoring artifact categories. Callers show
        only the first few lines, so this order must not change.
        """
        threshold = self._config.scoring.low_score_threshold
        lines = [describe_blocked(row) for row in states if row.status == StateStatus.BLOCKED]
        lines.extend(describe_pending(cs) for cs in change_sets if cs.pending_approvals)
        if not impact.has_baseline:
            lines.append(NO_BASELINE_BLOCKER)
        lines.extend(
            f"{a.label} readiness is {a.score}% (below {threshold}%)"
            for a in artifacts
            if a.score < threshold
        )
        return lines

    # ------------------------------------------------------------------
    # Entry points
    async def compute(
        self,
        org_id: str,
        product_id: str,
        version_id: Optional[str] = None,
        *,
        today: Optional[date] = None,
    ) -> Product360Readiness:
        """Compute the full readiness report for a product version.

        When ``version_id`` is omitted the newest draft is used, else the
        published version, else the newest version of any status.

        Raises:
            NotFoundError: ``version_id`` was given but does not exist.
            ComputationError: A collaborator call failed; no partial report is returned.
        """
        today = today or utcnow().date()
        versions = await self._load_versions(org_id, product_id)
        selected = self._resolve(versions, product_id, version_id)
        try:
            report = await self._build_report(org_id, product_id, versions, selected, today)
        except Exception as exc:
            logger.error(f"Readiness computation failed for product {product_id}: {exc}")
            raise ComputationError(
                f"Could not compute readiness for product {product_id}"
            ) from exc

        logger.info(
            f"Computed readiness for product {product_id} "
            f"(version={report.selected_version_id}): score={report.overall_readiness_score}, "
            f"blockers={len(report.blockers)}"
        )
        return report

    async def _build_report(
        self,
        org_id: str,
        product_id: str,
        versions: Sequence[VersionedDocument],
        selected: Optional[VersionedDocument],
        today: date,
    ) -> Product360Readiness:
        if selected is not None:
            programs, artifacts, change_sets, tasks = await asyncio.gather(
                self._store.list_state_programs(org_id, product_id, selected.id),
                self._store.list_artifacts(org_id, product_id, selected.id),
                self._change_sets.list_open_change_sets(org_id, product_id),
                self._store.list_linked_tasks(org_id, product_id),
            )
        else:
            programs, artifacts = [], []
            change_sets, tasks = await asyncio.gather(
                self._change_sets.list_open_change_sets(org_id, product_id),
                self._store.list_linked_tasks(org_id, product_id),
            )

        published = find_published(versions)
        if selected is not None:
            impact = diff(published.payload if published else None, selected.payload)
            state_rows, state_stats = self._states.compute(programs, selected, artifacts, today)
        else:
            impact = DiffResult(has_baseline=False)
            state_rows, state_stats = [], StateStats()

        artifact_rows = self._scorer.score_all(artifacts)
        open_change_sets, total_pending = self._aggregator.aggregate(change_sets)

        score = (
            self.overall_score(state_stats, artifact_rows, total_pending)
            if selected is not None
            else 0
        )
        name = selected.payload.get("name") if selected is not None else None

        return Product360Readiness(
            product_id=product_id,
            product_name=name if isinstance(name, str) and name else product_id,
            selected_version_id=selected.id if selected else None,
            overall_readiness_score=score,
            band=self.band(score),
            blockers=self.blockers(state_rows, open_change_sets, impact, artifact_rows),
            version_timeline=_timeline(versions, selected),
            state_readiness=state_rows,
            state_stats=state_stats,
            artifacts=artifact_rows,
            open_change_sets=open_change_sets,
            total_pending_approvals=total_pending,
            impact=impact,
            linked_tasks=list(tasks),
        )

    async def whats_missing(
        self,
        org_id: str,
        product_id: str,
        version_id: Optional[str],
        state_code: str,
        as_of: Optional[date] = None,
    ) -> list[str]:
        """List what prevents the product version from being live in one state on a date.

        An empty list means no known blockers.

        Raises:
            NotFoundError: The product has no versions, or ``version_id`` does not exist.
            ComputationError: A collaborator call failed.
        """
        code = state_code.strip().upper()
        if not code:
            raise ValueError("state_code is required")
        as_of = as_of or utcnow().date()

        versions = await self._load_versions(org_id, product_id)
        if not versions:
            raise NotFoundError(f"Product {product_id} has no versions")
        selected = self._resolve(versions, product_id, version_id)

        try:
            programs, artifacts = await asyncio.gather(
                self._store.list_state_programs(org_id, product_id, selected.id),
                self._store.list_artifacts(org_id, product_id, selected.id),
            )
            program = next((p for p in programs if p.state_code.upper() == code), None)
            lines = self._states.missing_on(code, program, selected, artifacts, as_of)
        except Exception as exc:
            logger.error(
                f"What's-missing query failed for product {product_id} in {code}: {exc}"
            )
            raise ComputationError(
                f"Could not evaluate {code} for product {product_id}"
            ) from exc

        logger.debug(f"{product_id} v{selected.version_number} {code} on {as_of}: {lines}")
        return lines


def _timeline(
    versions: Sequence[VersionedDocument], selected: Optional[VersionedDocument]
) -> list[VersionTimelineEntry]:
    entries = []
    for version in versions:
        label, color = VERSION_STATUS_DISPLAY[version.status]
        entries.append(
            VersionTimelineEntry(
                version_id=version.id,
                version_number=version.version_number,
                status=version.status,
                status_label=label,
                status_color=color,
                effective_start=version.effective_start,
                effective_end=version.effective_end,
                created_by=version.created_by,
                created_at=version.created_at,
                summary=version.summary,
                is_current=selected is not None and version.id == selected.id,
            )
        )
    return entries


def _default_store(config: Product360Config) -> DocumentStore:
    return get_store(config.database_url, config=config)


async def compute_product360_readiness(
    org_id: str,
    product_id: str,
    version_id: Optional[str] = None,
    *,
    store: Optional[DocumentStore] = None,
    config: Optional[Product360Config] = None,
    today: Optional[date] = None,
) -> Product360Readiness:
    """Compute a readiness report against the configured store."""
    config = config or load_config()
    orchestrator = ReadinessOrchestrator(store or _default_store(config), config=config)
    return await orchestrator.compute(org_id, product_id, version_id, today=today)


async def whats_missing(
    org_id: str,
    product_id: str,
    version_id: Optional[str],
    state_code: str,
    as_of: Optional[date] = None,
    *,
    store: Optional[DocumentStore] = None,
    config: Optional[Product360Config] = None,
) -> list[str]:
    """Run the "what's missing" query against the configured store."""
    config = config or load_config()
    orchestrator = ReadinessOrchestrator(store or _default_store(config), config=config)
    return await orchestrator.whats_missing(org_id, product_id, version_id, state_code, as_of)
