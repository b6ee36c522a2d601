from product360.contracts import (
    ApprovalRequest,
    ChangeSetItem,
    ChangeSetRecord,
    ChangeSetStatus,
)
from product360.readiness import ChangeSetAggregator
from product360.readiness.changesets import describe_pending


def _change_set(cs_id, status, roles, items=2):
    return ChangeSetRecord(
        id=cs_id,
        name=f"Change set {cs_id}",
        status=status,
        items=[
            ChangeSetItem(artifact_type="form", artifact_id=f"form-{i}")
            for i in range(items)
        ],
        approvals=[ApprovalRequest(role=role, status=s) for role, s in roles],
    )


def test_summarize_collects_distinct_pending_roles():
    cs = _change_set(
        "cs-1",
        ChangeSetStatus.READY_FOR_REVIEW,
        [("Compliance", "pending"), ("Actuarial", "pending"),
         ("Compliance", "pending"), ("Legal", "approved")],
    )

    summary = ChangeSetAggregator().summarize(cs)

    assert summary.pending_approvals == ["Actuarial", "Compliance"]
    assert summary.item_count == 2
    assert summary.status_label == "Ready for Review"


def test_aggregate_skips_closed_change_sets():
    change_sets = [
        _change_set("open", ChangeSetStatus.DRAFT, [("Compliance", "pending")]),
        _change_set("filed", ChangeSetStatus.FILED, []),
        _change_set("done", ChangeSetStatus.PUBLISHED, [("Legal", "pending")]),
        _change_set("no", ChangeSetStatus.REJECTED, [("Legal", "pending")]),
    ]

    summaries, total = ChangeSetAggregator().aggregate(change_sets)

    assert [s.id for s in summaries] == ["open", "filed"]
    assert total == 1


def test_total_is_not_deduplicated_across_change_sets():
    change_sets = [
        _change_set("a", ChangeSetStatus.APPROVED, [("Compliance", "pending")]),
        _change_set("b", ChangeSetStatus.DRAFT, [("Compliance", "pending"), ("Legal", "pending")]),
    ]
    _, total = ChangeSetAggregator().aggregate(change_sets)
    assert total == 3


def test_aggregate_empty():
    assert ChangeSetAggregator().aggregate([]) == ([], 0)


def test_describe_pending():
    cs = _change_set("cs-9", ChangeSetStatus.DRAFT, [("Legal", "pending"), ("Compliance", "pending")])
    summary = ChangeSetAggregator().summarize(cs)
    assert describe_pending(summary) == (
        'Change set "Change set cs-9" is awaiting approval from Compliance, Legal'
    )


def test_touches_product_or_version():
    cs = ChangeSetRecord(
        id="cs",
        name="x",
        items=[ChangeSetItem(artifact_type="coverage", artifact_id="cov-1", version_id="v7")],
    )
    assert cs.touches("homeowners", {"v7"})
    assert not cs.touches("homeowners", {"v1"})
    assert not cs.touches("homeowners")
