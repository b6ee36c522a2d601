"""In-memory implementation of the document store and change-set source."""

from __future__ import annotations

from typing import Dict, Tuple

from ..contracts import (
    CLOSED_CHANGE_SET_STATUSES,
    ArtifactRecord,
    ChangeSetRecord,
    LinkedTask,
    StateProgram,
    VersionedDocument,
)
from ..errors import ConflictError
from .repository import ChangeSetSource, DocumentStore

EntityKey = Tuple[str, str, str]
ProductVersionKey = Tuple[str, str, str]


class InMemoryStore(DocumentStore, ChangeSetSource):
    """Store records in local memory.

    Useful for tests or when no database is configured. Data is not
    persisted across process restarts. Records are copied on the way in and
    out so callers never share state with the store.
    """

    def __init__(self) -> None:
        self._versions: Dict[EntityKey, Dict[str, VersionedDocument]] = {}
        self._state_programs: Dict[ProductVersionKey, Dict[str, StateProgram]] = {}
        self._artifacts: Dict[ProductVersionKey, Dict[str, ArtifactRecord]] = {}
        self._tasks: Dict[Tuple[str, str], Dict[str, LinkedTask]] = {}
        self._change_sets: Dict[str, Dict[str, ChangeSetRecord]] = {}

    # ------------------------------------------------------------------
    async def list_versions(
        self, org_id: str, entity_type: str, entity_id: str
    ) -> list[VersionedDocument]:
        versions = self._versions.get((org_id, entity_type, entity_id), {})
        ordered = sorted(versions.values(), key=lambda v: v.version_number, reverse=True)
        return [v.model_copy(deep=True) for v in ordered]

    async def read_version(
        self, org_id: str, entity_type: str, entity_id: str, version_id: str
    ) -> VersionedDocument | None:
        doc = self._versions.get((org_id, entity_type, entity_id), {}).get(version_id)
        return doc.model_copy(deep=True) if doc else None

    async def insert_version(
        self, org_id: str, document: VersionedDocument, expected_max: int
    ) -> None:
        # no await between check and write, so this is atomic on the event loop
        versions = self._versions.setdefault(
            (org_id, document.entity_type, document.entity_id), {}
        )
        current_max = max((v.version_number for v in versions.values()), default=0)
        if current_max != expected_max:
            raise ConflictError(
                f"{document.entity_type}/{document.entity_id}: expected max version "
                f"{expected_max}, found {current_max}"
            )
        if document.id in versions:
            raise ConflictError(f"Version id already exists: {document.id}")
        versions[document.id] = document.model_copy(deep=True)

    async def list_state_programs(
        self, org_id: str, product_id: str, version_id: str
    ) -> list[StateProgram]:
        programs = self._state_programs.get((org_id, product_id, version_id), {})
        return [programs[code].model_copy(deep=True) for code in sorted(programs)]

    async def list_artifacts(
        self, org_id: str, product_id: str, version_id: str
    ) -> list[ArtifactRecord]:
        artifacts = self._artifacts.get((org_id, product_id, version_id), {})
        return [a.model_copy(deep=True) for a in artifacts.values()]

    async def list_linked_tasks(self, org_id: str, product_id: str) -> list[LinkedTask]:
        tasks = self._tasks.get((org_id, product_id), {})
        return [t.model_copy(deep=True) for t in tasks.values()]

    async def list_open_change_sets(
        self, org_id: str, product_id: str
    ) -> list[ChangeSetRecord]:
        version_ids = set(self._versions.get((org_id, "product", product_id), {}))
        return [
            cs.model_copy(deep=True)
            for cs in self._change_sets.get(org_id, {}).values()
            if cs.status not in CLOSED_CHANGE_SET_STATUSES
            and cs.touches(product_id, version_ids)
        ]

    # ------------------------------------------------------------------
    async def put_version(self, org_id: str, document: VersionedDocument) -> None:
        versions = self._versions.setdefault(
            (org_id, document.entity_type, document.entity_id), {}
        )
        versions[document.id] = document.model_copy(deep=True)

    async def put_state_program(
        self, org_id: str, product_id: str, version_id: str, program: StateProgram
    ) -> None:
        programs = self._state_programs.setdefault((org_id, product_id, version_id), {})
        programs[program.state_code] = program.model_copy(deep=True)

    async def put_artifact(
        self, org_id: str, product_id: str, version_id: str, artifact: ArtifactRecord
    ) -> None:
        artifacts = self._artifacts.setdefault((org_id, product_id, version_id), {})
        artifacts[artifact.id] = artifact.model_copy(deep=True)

    async def put_task(self, org_id: str, product_id: str, task: LinkedTask) -> None:
        self._tasks.setdefault((org_id, product_id), {})[task.id] = task.model_copy(deep=True)

    async def put_change_set(self, org_id: str, change_set: ChangeSetRecord) -> None:
        self._change_sets.setdefault(org_id, {})[change_set.id] = change_set.model_copy(
            deep=True
        )
