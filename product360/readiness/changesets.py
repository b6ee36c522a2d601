"""Summaries of open change sets and their outstanding approvals."""

from __future__ import annotations

from typing import Sequence

from ..contracts import (
    CHANGE_SET_STATUS_DISPLAY,
    CLOSED_CHANGE_SET_STATUSES,
    ChangeSetRecord,
    OpenChangeSetSummary,
)


class ChangeSetAggregator:
    """Summarize open change sets touching a product."""

    def summarize(self, change_set: ChangeSetRecord) -> OpenChangeSetSummary:
        pending = sorted(
            {a.role for a in change_set.approvals if a.status == "pending"}
        )
        label, color = CHANGE_SET_STATUS_DISPLAY[change_set.status]
        return OpenChangeSetSummary(
            id=change_set.id,
            name=change_set.name,
            status=change_set.status,
            status_label=label,
            status_color=color,
            item_count=len(change_set.items),
            pending_approvals=pending,
            owner_user_id=change_set.owner_user_id,
            updated_at=change_set.updated_at,
        )

    def aggregate(
        self, change_sets: Sequence[ChangeSetRecord]
    ) -> tuple[list[OpenChangeSetSummary], int]:
        """Return summaries of the open change sets and the total pending approvals.

        The total is not deduplicated across change sets: the same role can
        owe approvals on several independent change sets.
        """
        summaries = [
            self.summarize(cs)
            for cs in change_sets
            if cs.status not in CLOSED_CHANGE_SET_STATUSES
        ]
        total = sum(len(s.pending_approvals) for s in summaries)
        return summaries, total


def describe_pending(summary: OpenChangeSetSummary) -> str:
    """Human-readable blocker line for a change set awaiting approvals."""
    return (
        f'Change set "{summary.name}" is awaiting approval from '
        f"{', '.join(summary.pending_approvals)}"
    )
