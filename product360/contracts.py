"""Value objects exchanged between the engine, its collaborators and callers."""

from __future__ import annotations

from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class VersionStatus(str, Enum):
    """Lifecycle status of a versioned document."""

    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"
    SCHEDULED = "scheduled"


class StateStatus(str, Enum):
    """Readiness classification of one jurisdiction."""

    ACTIVE = "active"
    READY_TO_ACTIVATE = "ready_to_activate"
    BLOCKED = "blocked"
    NOT_OFFERED = "not_offered"


class ChangeSetStatus(str, Enum):
    DRAFT = "draft"
    READY_FOR_REVIEW = "ready_for_review"
    APPROVED = "approved"
    FILED = "filed"
    PUBLISHED = "published"
    REJECTED = "rejected"


CLOSED_CHANGE_SET_STATUSES = frozenset(
    {ChangeSetStatus.PUBLISHED, ChangeSetStatus.REJECTED}
)

# (label, color) pairs used by the presentation layer.
VERSION_STATUS_DISPLAY: dict[VersionStatus, tuple[str, str]] = {
    VersionStatus.DRAFT: ("Draft", "#6b7280"),
    VersionStatus.PUBLISHED: ("Published", "#10b981"),
    VersionStatus.ARCHIVED: ("Archived", "#9ca3af"),
    VersionStatus.SCHEDULED: ("Scheduled", "#3b82f6"),
}

CHANGE_SET_STATUS_DISPLAY: dict[ChangeSetStatus, tuple[str, str]] = {
    ChangeSetStatus.DRAFT: ("Draft", "#6b7280"),
    ChangeSetStatus.READY_FOR_REVIEW: ("Ready for Review", "#f59e0b"),
    ChangeSetStatus.APPROVED: ("Approved", "#10b981"),
    ChangeSetStatus.FILED: ("Filed", "#3b82f6"),
    ChangeSetStatus.PUBLISHED: ("Published", "#059669"),
    ChangeSetStatus.REJECTED: ("Rejected", "#ef4444"),
}


# ----------------------------------------------------------------------
# Versioning


class VersionedDocument(BaseModel):
    """A single lifecycle snapshot of an entity."""

    id: str
    entity_type: str
    entity_id: str
    version_number: int = Field(..., ge=1)
    status: VersionStatus = VersionStatus.DRAFT
    effective_start: Optional[date] = None
    effective_end: Optional[date] = None
    payload: dict[str, Any] = Field(default_factory=dict)
    created_by: str
    created_at: datetime = Field(default_factory=utcnow)
    summary: str = ""
    cloned_from: Optional[str] = None


class DiffResult(BaseModel):
    """Field-level comparison of a candidate payload against its baseline."""

    fields_added: int = 0
    fields_changed: int = 0
    fields_removed: int = 0
    changed_paths: list[str] = Field(default_factory=list)
    has_baseline: bool = False

    @property
    def total_changes(self) -> int:
        return self.fields_added + self.fields_changed + self.fields_removed


# ----------------------------------------------------------------------
# Collaborator input records


class StateProgram(BaseModel):
    """A jurisdiction listed by a product version."""

    state_code: str
    state_name: str = ""
    offered: bool = True
    effective_start: Optional[date] = None
    required_artifacts: dict[str, list[str]] = Field(default_factory=dict)
    validation_errors: list[str] = Field(default_factory=list)


class ArtifactRecord(BaseModel):
    """An artifact version (form, rule, rate program, table) attached to a product version."""

    id: str
    category: str
    name: str = ""
    status: VersionStatus = VersionStatus.DRAFT
    effective_start: Optional[date] = None
    issues: list[str] = Field(default_factory=list)

    @property
    def display_name(self) -> str:
        return self.name or self.id


class ChangeSetItem(BaseModel):
    artifact_type: str
    artifact_id: str
    version_id: Optional[str] = None


class ApprovalRequest(BaseModel):
    role: str
    status: str = "pending"  # pending, approved, rejected


class ChangeSetRecord(BaseModel):
    """A batched, approvable bundle of pending edits."""

    id: str
    name: str
    status: ChangeSetStatus = ChangeSetStatus.DRAFT
    owner_user_id: Optional[str] = None
    updated_at: Optional[datetime] = None
    items: list[ChangeSetItem] = Field(default_factory=list)
    approvals: list[ApprovalRequest] = Field(default_factory=list)

    def touches(self, product_id: str, version_ids: set[str] | None = None) -> bool:
        """Return ``True`` when any item references the product or one of its versions."""
        version_ids = version_ids or set()
        return any(
            item.artifact_id == product_id or item.version_id in version_ids
            for item in self.items
        )


class LinkedTask(BaseModel):
    id: str
    title: str
    status: str = "open"  # open, in_progress, done
    assignee: Optional[str] = None
    due_date: Optional[date] = None
    blocking: bool = False


# ----------------------------------------------------------------------
# Readiness report


class VersionTimelineEntry(BaseModel):
    version_id: str
    version_number: int
    status: VersionStatus
    status_label: str
    status_color: str
    effective_start: Optional[date] = None
    effective_end: Optional[date] = None
    created_by: str
    created_at: datetime
    summary: str = ""
    is_current: bool = False


class StateReadinessRow(BaseModel):
    """Eligibility of one jurisdiction, derived on every call."""

    state_code: str
    state_name: str
    status: StateStatus
    missing_artifacts: list[str] = Field(default_factory=list)
    validation_errors: list[str] = Field(default_factory=list)
    effective_start: Optional[date] = None


class StateStats(BaseModel):
    active: int = 0
    ready_to_activate: int = 0
    blocked: int = 0
    total: int = 0
    not_offered: int = 0


class ArtifactCategoryReadiness(BaseModel):
    category: str
    label: str
    published: int = 0
    draft: int = 0
    issues: list[str] = Field(default_factory=list)
    score: int = Field(0, ge=0, le=100)

    @property
    def total(self) -> int:
        return self.published + self.draft


class OpenChangeSetSummary(BaseModel):
    id: str
    name: str
    status: ChangeSetStatus
    status_label: str
    status_color: str
    item_count: int = 0
    pending_approvals: list[str] = Field(default_factory=list)
    owner_user_id: Optional[str] = None
    updated_at: Optional[datetime] = None


class Product360Readiness(BaseModel):
    """Composed Product 360 readiness report."""

    product_id: str
    product_name: str
    selected_version_id: Optional[str] = None
    overall_readiness_score: int = Field(0, ge=0, le=100)
    band: str = "blocked"
    blockers: list[str] = Field(default_factory=list)
    version_timeline: list[VersionTimelineEntry] = Field(default_factory=list)
    state_readiness: list[StateReadinessRow] = Field(default_factory=list)
    state_stats: StateStats = Field(default_factory=StateStats)
    artifacts: list[ArtifactCategoryReadiness] = Field(default_factory=list)
    open_change_sets: list[OpenChangeSetSummary] = Field(default_factory=list)
    total_pending_approvals: int = 0
    impact: DiffResult = Field(default_factory=DiffResult)
    linked_tasks: list[LinkedTask] = Field(default_factory=list)
    computed_at: datetime = Field(default_factory=utcnow)
