"""Per-jurisdiction eligibility of a product version."""

from __future__ import annotations

from datetime import date
from typing import Mapping, Optional, Sequence

from ..config import ArtifactCategoryConfig
from ..contracts import (
    ArtifactRecord,
    StateProgram,
    StateReadinessRow,
    StateStats,
    StateStatus,
    VersionedDocument,
    VersionStatus,
)
from .artifacts import is_published


def _effective_by(start: Optional[date], day: date) -> bool:
    return start is None or start <= day


class StateReadinessMatrix:
    """Classify each listed state as active, ready to activate, blocked or not offered.

    Rows are re-derived on every call. ``blocked`` takes precedence over
    ``active``: a state that is live but has lost a required artifact, or has a
    validation error, is reported as blocked.
    """

    def __init__(self, categories: Sequence[ArtifactCategoryConfig]) -> None:
        self._categories = list(categories)

    @property
    def required_categories(self) -> list[str]:
        return [c.name for c in self._categories if c.required_per_state]

    # ------------------------------------------------------------------
    def _resolve(
        self, program: StateProgram, artifacts: Mapping[str, ArtifactRecord]
    ) -> tuple[list[str], list[str], dict[str, list[ArtifactRecord]]]:
        """Return missing categories, validation errors and the published assignments."""
        errors = list(program.validation_errors)
        assigned: dict[str, list[ArtifactRecord]] = {}
        for category in self._categories:
            published: list[ArtifactRecord] = []
            for artifact_id in program.required_artifacts.get(category.name, []):
                artifact = artifacts.get(artifact_id)
                if artifact is None or artifact.category != category.name:
                    errors.append(
                        f"Required {category.name} artifact not found: {artifact_id}"
                    )
                elif is_published(artifact):
                    published.append(artifact)
            assigned[category.name] = published
        configured = {c.name for c in self._categories}
        errors.extend(
            f"Unknown artifact category: {key}"
            for key in program.required_artifacts
            if key not in configured
        )
        missing = sorted(
            name for name in self.required_categories if not assigned.get(name)
        )
        return missing, errors, assigned

    def evaluate(
        self,
        program: Optional[StateProgram],
        version: VersionedDocument,
        artifacts: Mapping[str, ArtifactRecord],
        today: date,
        state_code: Optional[str] = None,
    ) -> StateReadinessRow:
        """Classify one state; ``program=None`` means the version does not list it."""
        if program is None or not program.offered:
            code = program.state_code if program else (state_code or "")
            return StateReadinessRow(
                state_code=code,
                state_name=program.state_name if program else code,
                status=StateStatus.NOT_OFFERED,
            )

        missing, errors, _ = self._resolve(program, artifacts)
        if missing or errors:
            status = StateStatus.BLOCKED
        elif (
            version.status == VersionStatus.PUBLISHED
            and _effective_by(version.effective_start, today)
            and _effective_by(program.effective_start, today)
        ):
            status = StateStatus.ACTIVE
        else:
            status = StateStatus.READY_TO_ACTIVATE

        return StateReadinessRow(
            state_code=program.state_code,
            state_name=program.state_name or program.state_code,
            status=status,
            missing_artifacts=missing,
            validation_errors=errors,
            effective_start=program.effective_start,
        )

    def compute(
        self,
        programs: Sequence[StateProgram],
        version: VersionedDocument,
        artifacts: Sequence[ArtifactRecord],
        today: date,
    ) -> tuple[list[StateReadinessRow], StateStats]:
        """Return the grid rows (offered states only) and their tally."""
        by_id = {a.id: a for a in artifacts}
        rows: list[StateReadinessRow] = []
        stats = StateStats()
        for program in programs:
            row = self.evaluate(program, version, by_id, today)
            if row.status == StateStatus.NOT_OFFERED:
                stats.not_offered += 1
                continue
            rows.append(row)
            if row.status == StateStatus.ACTIVE:
                stats.active += 1
            elif row.status == StateStatus.READY_TO_ACTIVATE:
                stats.ready_to_activate += 1
            else:
                stats.blocked += 1
        stats.total = stats.active + stats.ready_to_activate + stats.blocked
        return rows, stats

    def missing_on(
        self,
        state_code: str,
        program: Optional[StateProgram],
        version: VersionedDocument,
        artifacts: Sequence[ArtifactRecord],
        as_of: date,
    ) -> list[str]:
        """List everything preventing ``state_code`` from being live on ``as_of``.

        Runs the blocked-state checks for one state and additionally requires
        every published artifact the state lists, the version and the state
        filing to be effective on ``as_of``.
        """
        if program is None or not program.offered:
            return [f"{state_code} is not offered by this product version"]

        missing, errors, assigned = self._resolve(program, {a.id: a for a in artifacts})
        lines = [f"{state_code}: missing required {category} artifact" for category in missing]
        lines.extend(f"{state_code}: {error}" for error in errors)

        for category, listed in assigned.items():
            for artifact in listed:
                if not _effective_by(artifact.effective_start, as_of):
                    lines.append(
                        f"{state_code}: {category} artifact {artifact.display_name} "
                        f"is not effective until {artifact.effective_start.isoformat()}"
                    )
        if not _effective_by(version.effective_start, as_of):
            lines.append(
                f"{state_code}: product version {version.version_number} is not effective "
                f"until {version.effective_start.isoformat()}"
            )
        if not _effective_by(program.effective_start, as_of):
            lines.append(
                f"{state_code}: state filing is not effective until "
                f"{program.effective_start.isoformat()}"
            )
        return lines


def describe_blocked(row: StateReadinessRow) -> str:
    """Human-readable blocker line for a blocked state."""
    parts = []
    if row.missing_artifacts:
        parts.append(f"missing {', '.join(row.missing_artifacts)}")
    if row.validation_errors:
        parts.append(
            f"{len(row.validation_errors)} validation error(s): "
            + "; ".join(row.validation_errors)
        )
    return f"{row.state_name} ({row.state_code}) is blocked: " + "; ".join(parts)
