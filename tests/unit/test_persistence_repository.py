import asyncio
import sqlite3
import uuid

import pytest

from conftest import ORG, PRODUCT, make_version
from product360.config import Product360Config, VersioningConfig
from product360.contracts import (
    ApprovalRequest,
    ArtifactRecord,
    ChangeSetItem,
    ChangeSetRecord,
    ChangeSetStatus,
    LinkedTask,
    StateProgram,
    VersionStatus,
)
from product360.errors import ConflictError
from product360.persistence import InMemoryStore, SQLiteStore
from product360.versioning import VersionStore


@pytest.fixture(params=["memory", "sqlite"])
def any_store(request, tmp_path):
    if request.param == "memory":
        return InMemoryStore()
    return SQLiteStore(tmp_path / "p360.db")


@pytest.mark.asyncio
async def test_versions_roundtrip(any_store):
    await any_store.put_version(ORG, make_version("v1", 1, VersionStatus.PUBLISHED))
    await any_store.put_version(ORG, make_version("v2", 2, payload={"name": "HO-3", "n": [1]}))

    versions = await any_store.list_versions(ORG, "product", PRODUCT)
    assert [v.id for v in versions] == ["v2", "v1"]

    doc = await any_store.read_version(ORG, "product", PRODUCT, "v2")
    assert doc is not None
    assert doc.payload == {"name": "HO-3", "n": [1]}
    assert doc.status == VersionStatus.DRAFT
    assert await any_store.read_version(ORG, "product", PRODUCT, "nope") is None
    assert await any_store.list_versions("other-org", "product", PRODUCT) == []


@pytest.mark.asyncio
async def test_insert_version_compare_and_swap(any_store):
    await any_store.put_version(ORG, make_version("v1", 1))

    await any_store.insert_version(ORG, make_version("v2", 2), expected_max=1)
    with pytest.raises(ConflictError):
        await any_store.insert_version(ORG, make_version("v2b", 2), expected_max=1)

    numbers = [v.version_number for v in await any_store.list_versions(ORG, "product", PRODUCT)]
    assert numbers == [2, 1]


@pytest.mark.asyncio
async def test_insert_first_version(any_store):
    await any_store.insert_version(ORG, make_version("v1", 1), expected_max=0)
    assert len(await any_store.list_versions(ORG, "product", PRODUCT)) == 1


@pytest.mark.asyncio
async def test_state_programs_artifacts_and_tasks(any_store):
    await any_store.put_state_program(
        ORG, PRODUCT, "v1", StateProgram(state_code="TX", state_name="Texas")
    )
    await any_store.put_state_program(
        ORG,
        PRODUCT,
        "v1",
        StateProgram(state_code="CA", required_artifacts={"forms": ["f1"]}),
    )
    # upsert replaces the stored record
    await any_store.put_state_program(
        ORG, PRODUCT, "v1", StateProgram(state_code="TX", state_name="Texas", offered=False)
    )
    await any_store.put_artifact(
        ORG, PRODUCT, "v1", ArtifactRecord(id="f1", category="forms", status="published")
    )
    await any_store.put_task(ORG, PRODUCT, LinkedTask(id="t1", title="File forms"))

    programs = await any_store.list_state_programs(ORG, PRODUCT, "v1")
    assert [p.state_code for p in programs] == ["CA", "TX"]
    assert programs[0].required_artifacts == {"forms": ["f1"]}
    assert programs[1].offered is False

    artifacts = await any_store.list_artifacts(ORG, PRODUCT, "v1")
    assert [(a.id, a.status) for a in artifacts] == [("f1", VersionStatus.PUBLISHED)]
    assert await any_store.list_artifacts(ORG, PRODUCT, "v2") == []

    tasks = await any_store.list_linked_tasks(ORG, PRODUCT)
    assert [t.title for t in tasks] == ["File forms"]


@pytest.mark.asyncio
async def test_open_change_sets_touching_product(any_store):
    await any_store.put_version(ORG, make_version("v1", 1))

    def change_set(cs_id, status, item):
        return ChangeSetRecord(
            id=cs_id,
            name=cs_id,
            status=status,
            items=[item],
            approvals=[ApprovalRequest(role="Compliance")],
        )

    await any_store.put_change_set(
        ORG,
        change_set(
            "by-product",
            ChangeSetStatus.DRAFT,
            ChangeSetItem(artifact_type="product", artifact_id=PRODUCT),
        ),
    )
    await any_store.put_change_set(
        ORG,
        change_set(
            "by-version",
            ChangeSetStatus.APPROVED,
            ChangeSetItem(artifact_type="coverage", artifact_id="cov-1", version_id="v1"),
        ),
    )
    await any_store.put_change_set(
        ORG,
        change_set(
            "closed",
            ChangeSetStatus.PUBLISHED,
            ChangeSetItem(artifact_type="product", artifact_id=PRODUCT),
        ),
    )
    await any_store.put_change_set(
        ORG,
        change_set(
            "elsewhere",
            ChangeSetStatus.DRAFT,
            ChangeSetItem(artifact_type="product", artifact_id="auto"),
        ),
    )

    open_sets = await any_store.list_open_change_sets(ORG, PRODUCT)
    assert sorted(cs.id for cs in open_sets) == ["by-product", "by-version"]


@pytest.mark.asyncio
async def test_in_memory_store_returns_copies():
    store = InMemoryStore()
    doc = make_version("v1", 1, payload={"limits": {"dwelling": 1}})
    await store.put_version(ORG, doc)
    doc.payload["limits"]["dwelling"] = 2

    read = await store.read_version(ORG, "product", PRODUCT, "v1")
    read.payload["limits"]["dwelling"] = 3

    again = await store.read_version(ORG, "product", PRODUCT, "v1")
    assert again.payload == {"limits": {"dwelling": 1}}


@pytest.mark.asyncio
async def test_sqlite_persists_across_instances(tmp_path):
    db_path = tmp_path / "p360.db"
    await SQLiteStore(db_path).put_version(ORG, make_version("v1", 1))

    versions = await SQLiteStore(db_path).list_versions(ORG, "product", PRODUCT)
    assert [v.id for v in versions] == ["v1"]


def test_sqlite_unique_version_numbers(tmp_path):
    db_path = tmp_path / "p360.db"
    SQLiteStore(db_path)
    conn = sqlite3.connect(db_path)
    row = ("org", "product", "p", "a", 1, "{}")
    conn.execute("INSERT INTO versions VALUES (?, ?, ?, ?, ?, ?)", row)
    with pytest.raises(sqlite3.IntegrityError):
        conn.execute(
            "INSERT INTO versions VALUES (?, ?, ?, ?, ?, ?)",
            ("org", "product", "p", "b", 1, "{}"),
        )
    conn.close()


@pytest.mark.asyncio
async def test_sqlite_concurrent_clones(tmp_path):
    store = SQLiteStore(tmp_path / "p360.db")
    config = Product360Config(
        versioning=VersioningConfig(retry_base_delay=0.0, retry_jitter=0.001)
    )
    entity_id = f"product-{uuid.uuid4().hex[:8]}"
    await store.put_version(ORG, make_version("v1", 1, entity_id=entity_id))
    versions = VersionStore(store, config)

    drafts = await asyncio.gather(
        *(
            versions.clone_version(ORG, "product", entity_id, "v1", user_id=f"u{i}")
            for i in range(4)
        )
    )

    assert sorted(d.version_number for d in drafts) == [2, 3, 4, 5]


@pytest.mark.asyncio
async def test_sqlite_put_version_number_collision(tmp_path):
    store = SQLiteStore(tmp_path / "p360.db")
    await store.put_version(ORG, make_version("v1", 1))
    await store.put_version(ORG, make_version("v2", 2))

    with pytest.raises(ConflictError):
        await store.put_version(ORG, make_version("v2", 1))

    versions = await store.list_versions(ORG, "product", PRODUCT)
    assert [(v.id, v.version_number) for v in versions] == [("v2", 2), ("v1", 1)]
