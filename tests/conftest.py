"""Shared fixtures: an in-memory store seeded with a three-state homeowners product."""

from datetime import date, datetime, timezone

import pytest
import pytest_asyncio

from product360.config import Product360Config, VersioningConfig
from product360.contracts import (
    ApprovalRequest,
    ArtifactRecord,
    ChangeSetItem,
    ChangeSetRecord,
    ChangeSetStatus,
    LinkedTask,
    StateProgram,
    VersionedDocument,
    VersionStatus,
)
from product360.persistence import InMemoryStore

ORG = "org-1"
PRODUCT = "homeowners"
TODAY = date(2026, 10, 19)


@pytest.fixture
def config() -> Product360Config:
    return Product360Config(
        versioning=VersioningConfig(retry_base_delay=0.0, retry_jitter=0.0)
    )


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


def make_version(
    version_id: str,
    number: int,
    status: VersionStatus = VersionStatus.DRAFT,
    payload: dict | None = None,
    effective_start: date | None = None,
    entity_id: str = PRODUCT,
) -> VersionedDocument:
    return VersionedDocument(
        id=version_id,
        entity_type="product",
        entity_id=entity_id,
        version_number=number,
        status=status,
        effective_start=effective_start,
        payload=payload if payload is not None else {"name": "Homeowners HO-3"},
        created_by="user-1",
        created_at=datetime(2026, 1, number, tzinfo=timezone.utc),
        summary=f"Version {number}",
    )


async def seed_example(store: InMemoryStore) -> None:
    """Published v1 with CA live, TX blocked on forms and NY filed for December."""
    await store.put_version(
        ORG,
        make_version(
            "v1",
            1,
            VersionStatus.PUBLISHED,
            payload={"name": "Homeowners HO-3", "coverages": ["dwelling", "contents"]},
            effective_start=date(2026, 1, 1),
        ),
    )

    artifacts = [
        ArtifactRecord(id="f-ho3", category="forms", name="HO 00 03", status="published",
                       effective_start=date(2026, 1, 1)),
        ArtifactRecord(id="f-ca", category="forms", name="HO 04 CA", status="published",
                       effective_start=date(2026, 1, 1)),
        ArtifactRecord(id="f-tx", category="forms", name="HO 04 TX", status="draft"),
        ArtifactRecord(id="r-elig", category="rules", name="Eligibility", status="published"),
        ArtifactRecord(id="r-roof", category="rules", name="Roof age", status="published"),
        ArtifactRecord(id="r-wind", category="rules", name="Wind exclusion", status="published"),
        ArtifactRecord(id="t-terr", category="tables", name="Territory", status="published"),
    ]
    for artifact in artifacts:
        await store.put_artifact(ORG, PRODUCT, "v1", artifact)

    programs = [
        StateProgram(
            state_code="CA",
            state_name="California",
            effective_start=date(2026, 1, 1),
            required_artifacts={"forms": ["f-ho3", "f-ca"], "rules": ["r-elig"]},
        ),
        StateProgram(
            state_code="TX",
            state_name="Texas",
            required_artifacts={"forms": ["f-tx"], "rules": ["r-elig", "r-wind"]},
            validation_errors=["Territory definitions not filed"],
        ),
        StateProgram(
            state_code="NY",
            state_name="New York",
            effective_start=date(2026, 12, 1),
            required_artifacts={"forms": ["f-ho3"], "rules": ["r-elig"]},
        ),
        StateProgram(state_code="FL", state_name="Florida", offered=False),
    ]
    for program in programs:
        await store.put_state_program(ORG, PRODUCT, "v1", program)

    await store.put_change_set(
        ORG,
        ChangeSetRecord(
            id="cs-1",
            name="Q4 rate revision",
            status=ChangeSetStatus.READY_FOR_REVIEW,
            items=[ChangeSetItem(artifact_type="product", artifact_id=PRODUCT)],
            approvals=[ApprovalRequest(role="Compliance")],
        ),
    )
    await store.put_change_set(
        ORG,
        ChangeSetRecord(
            id="cs-0",
            name="Rejected wording fix",
            status=ChangeSetStatus.REJECTED,
            items=[ChangeSetItem(artifact_type="product", artifact_id=PRODUCT)],
            approvals=[ApprovalRequest(role="Legal")],
        ),
    )
    await store.put_task(
        ORG, PRODUCT, LinkedTask(id="task-1", title="File TX forms", blocking=True)
    )


@pytest_asyncio.fixture
async def example_store(store: InMemoryStore) -> InMemoryStore:
    await seed_example(store)
    return store
