"""Collaborator protocols consumed by the engine."""

from __future__ import annotations

from typing import Protocol

from ..contracts import (
    ArtifactRecord,
    ChangeSetRecord,
    LinkedTask,
    StateProgram,
    VersionedDocument,
)


class DocumentStore(Protocol):
    """Protocol for the document-store backends."""

    async def list_versions(
        self, org_id: str, entity_type: str, entity_id: str
    ) -> list[VersionedDocument]:
        """Return every version of the entity, newest first."""

    async def read_version(
        self, org_id: str, entity_type: str, entity_id: str, version_id: str
    ) -> VersionedDocument | None:
        """Retrieve a single version by id."""

    async def insert_version(
        self, org_id: str, document: VersionedDocument, expected_max: int
    ) -> None:
        """Insert ``document`` if the entity's max version number is still ``expected_max``.

        Raises:
            ConflictError: A concurrent write changed the max or took the number.
        """

    async def list_state_programs(
        self, org_id: str, product_id: str, version_id: str
    ) -> list[StateProgram]:
        """Return the state programs listed by a product version, ordered by state code."""

    async def list_artifacts(
        self, org_id: str, product_id: str, version_id: str
    ) -> list[ArtifactRecord]:
        """Return the artifact versions attached to a product version."""

    async def list_linked_tasks(self, org_id: str, product_id: str) -> list[LinkedTask]:
        """Return tasks linked to the product."""

    # Record ingestion. These are the external writers' entry points; the
    # engine itself never calls them.
    async def put_version(self, org_id: str, document: VersionedDocument) -> None:
        """Insert or replace a version as-is."""

    async def put_state_program(
        self, org_id: str, product_id: str, version_id: str, program: StateProgram
    ) -> None:
        """Insert or replace a state program."""

    async def put_artifact(
        self, org_id: str, product_id: str, version_id: str, artifact: ArtifactRecord
    ) -> None:
        """Insert or replace an artifact attachment."""

    async def put_task(self, org_id: str, product_id: str, task: LinkedTask) -> None:
        """Insert or replace a linked task."""


class ChangeSetSource(Protocol):
    """Protocol for the change-set/approval collaborator."""

    async def list_open_change_sets(
        self, org_id: str, product_id: str
    ) -> list[ChangeSetRecord]:
        """Return open change sets that reference the product or its versions."""

    async def put_change_set(self, org_id: str, change_set: ChangeSetRecord) -> None:
        """Insert or replace a change set."""
