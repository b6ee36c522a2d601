"""Completeness scoring for one artifact category."""

from __future__ import annotations

import math
from typing import Iterable, Sequence

from ..config import ArtifactCategoryConfig
from ..contracts import ArtifactCategoryReadiness, ArtifactRecord, VersionStatus

# Scheduled artifacts are approved and only waiting on their effective date.
PUBLISHED_STATUSES = frozenset({VersionStatus.PUBLISHED, VersionStatus.SCHEDULED})


def is_published(artifact: ArtifactRecord) -> bool:
    return artifact.status in PUBLISHED_STATUSES


def round_half_up(value: float) -> int:
    """Round .5 away from zero for the non-negative scores used here."""
    return int(math.floor(value + 0.5))


def category_score(published: int, draft: int, issue_count: int) -> int:
    """Share of published artifacts among everything attached, drafts and issues included."""
    denominator = max(1, published + draft + issue_count)
    return round_half_up(100 * published / denominator)


class ArtifactReadinessScorer:
    """Score artifact categories with one formula shared by every category."""

    def __init__(self, categories: Sequence[ArtifactCategoryConfig]) -> None:
        self._categories = {c.name: c for c in categories}

    @property
    def categories(self) -> list[str]:
        return list(self._categories)

    def label(self, category: str) -> str:
        config = self._categories.get(category)
        return config.label if config else category

    def score(
        self,
        category: str,
        published_count: int,
        draft_count: int,
        validation_issues: Sequence[str] = (),
    ) -> ArtifactCategoryReadiness:
        if published_count < 0 or draft_count < 0:
            raise ValueError("artifact counts must be non-negative")
        return ArtifactCategoryReadiness(
            category=category,
            label=self.label(category),
            published=published_count,
            draft=draft_count,
            issues=list(validation_issues),
            score=category_score(published_count, draft_count, len(validation_issues)),
        )

    def score_records(
        self, category: str, records: Iterable[ArtifactRecord]
    ) -> ArtifactCategoryReadiness:
        """Count and score the records that belong to ``category``.

        Archived records are ignored; issues are prefixed with the artifact name.
        """
        published = draft = 0
        issues: list[str] = []
        for record in records:
            if record.category != category or record.status == VersionStatus.ARCHIVED:
                continue
            if is_published(record):
                published += 1
            else:
                draft += 1
            issues.extend(f"{record.display_name}: {issue}" for issue in record.issues)
        return self.score(category, published, draft, issues)

    def score_all(
        self, records: Sequence[ArtifactRecord]
    ) -> list[ArtifactCategoryReadiness]:
        return [self.score_records(category, records) for category in self._categories]
