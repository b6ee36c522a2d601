"""PostgreSQL implementation of the document store and change-set source."""

from __future__ import annotations

import asyncio

import asyncpg

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


class PostgresStore(DocumentStore, ChangeSetSource):
    """Persist records using PostgreSQL."""

    def __init__(self, dsn: str):
        self._dsn = dsn
        self._initialized = False
        self._schema_lock = asyncio.Lock()

    async def _connect(self) -> asyncpg.Connection:
        conn = await asyncpg.connect(self._dsn)
        if self._initialized:
            return conn
        try:
            # concurrent CREATE TABLE IF NOT EXISTS can collide in pg_type
            async with self._schema_lock:
                if not self._initialized:
                    await self._ensure_schema(conn)
                    self._initialized = True
        except BaseException:
            await conn.close()
            raise
        return conn

    async def _ensure_schema(self, conn: asyncpg.Connection) -> None:
        await conn.execute(
            """
            CREATE TABLE IF NOT EXISTS versions (
                org_id TEXT NOT NULL,
                entity_type TEXT NOT NULL,
                entity_id TEXT NOT NULL,
                version_id TEXT NOT NULL,
                version_number INTEGER NOT NULL,
                document JSONB NOT NULL,
                PRIMARY KEY (org_id, entity_type, entity_id, version_id),
                UNIQUE (org_id, entity_type, entity_id, version_number)
            )
            """
        )
        await conn.execute(
            """
            CREATE TABLE IF NOT EXISTS state_programs (
                org_id TEXT NOT NULL,
                product_id TEXT NOT NULL,
                version_id TEXT NOT NULL,
                state_code TEXT NOT NULL,
                document JSONB NOT NULL,
                PRIMARY KEY (org_id, product_id, version_id, state_code)
            )
            """
        )
        await conn.execute(
            """
            CREATE TABLE IF NOT EXISTS artifacts (
                seq SERIAL,
                org_id TEXT NOT NULL,
                product_id TEXT NOT NULL,
                version_id TEXT NOT NULL,
                artifact_id TEXT NOT NULL,
                document JSONB NOT NULL,
                PRIMARY KEY (org_id, product_id, version_id, artifact_id)
            )
            """
        )
        await conn.execute(
            """
            CREATE TABLE IF NOT EXISTS tasks (
                seq SERIAL,
                org_id TEXT NOT NULL,
                product_id TEXT NOT NULL,
                task_id TEXT NOT NULL,
                document JSONB NOT NULL,
                PRIMARY KEY (org_id, product_id, task_id)
            )
            """
        )
        await conn.execute(
            """
            CREATE TABLE IF NOT EXISTS change_sets (
                seq SERIAL,
                org_id TEXT NOT NULL,
                change_set_id TEXT NOT NULL,
                status TEXT NOT NULL,
                document JSONB NOT NULL,
                PRIMARY KEY (org_id, change_set_id)
            )
            """
        )

    # ------------------------------------------------------------------
    async def list_versions(
        self, org_id: str, entity_type: str, entity_id: str
    ) -> list[VersionedDocument]:
        conn = await self._connect()
        try:
            rows = await conn.fetch(
                """
                SELECT document FROM versions
                WHERE org_id = $1 AND entity_type = $2 AND entity_id = $3
                ORDER BY version_number DESC
                """,
                org_id,
                entity_type,
                entity_id,
            )
        finally:
            await conn.close()
        return [VersionedDocument.model_validate_json(r["document"]) for r in rows]

    async def read_version(
        self, org_id: str, entity_type: str, entity_id: str, version_id: str
    ) -> VersionedDocument | None:
        conn = await self._connect()
        try:
            row = await conn.fetchrow(
                """
                SELECT document FROM versions
                WHERE org_id = $1 AND entity_type = $2 AND entity_id = $3
                  AND version_id = $4
                """,
                org_id,
                entity_type,
                entity_id,
                version_id,
            )
        finally:
            await conn.close()
        if not row:
            return None
        return VersionedDocument.model_validate_json(row["document"])

    async def insert_version(
        self, org_id: str, document: VersionedDocument, expected_max: int
    ) -> None:
        conn = await self._connect()
        try:
            async with conn.transaction():
                current_max = await conn.fetchval(
                    """
                    SELECT COALESCE(MAX(version_number), 0) FROM versions
                    WHERE org_id = $1 AND entity_type = $2 AND entity_id = $3
                    """,
                    org_id,
                    document.entity_type,
                    document.entity_id,
                )
                if current_max != expected_max:
                    raise ConflictError(
                        f"{document.entity_type}/{document.entity_id}: expected max "
                        f"version {expected_max}, found {current_max}"
                    )
                await conn.execute(
                    """
                    INSERT INTO versions
                        (org_id, entity_type, entity_id, version_id, version_number, document)
                    VALUES ($1, $2, $3, $4, $5, $6)
                    """,
                    org_id,
                    document.entity_type,
                    document.entity_id,
                    document.id,
                    document.version_number,
                    document.model_dump_json(),
                )
        except asyncpg.UniqueViolationError as exc:
            raise ConflictError(
                f"Version {document.version_number} of "
                f"{document.entity_type}/{document.entity_id} already exists"
            ) from exc
        finally:
            await conn.close()

    async def list_state_programs(
        self, org_id: str, product_id: str, version_id: str
    ) -> list[StateProgram]:
        conn = await self._connect()
        try:
            rows = await conn.fetch(
                """
                SELECT document FROM state_programs
                WHERE org_id = $1 AND product_id = $2 AND version_id = $3
                ORDER BY state_code
                """,
                org_id,
                product_id,
                version_id,
            )
        finally:
            await conn.close()
        return [StateProgram.model_validate_json(r["document"]) for r in rows]

    async def list_artifacts(
        self, org_id: str, product_id: str, version_id: str
    ) -> list[ArtifactRecord]:
        conn = await self._connect()
        try:
            rows = await conn.fetch(
                """
                SELECT document FROM artifacts
                WHERE org_id = $1 AND product_id = $2 AND version_id = $3
                ORDER BY seq
                """,
                org_id,
                product_id,
                version_id,
            )
        finally:
            await conn.close()
        return [ArtifactRecord.model_validate_json(r["document"]) for r in rows]

    async def list_linked_tasks(self, org_id: str, product_id: str) -> list[LinkedTask]:
        conn = await self._connect()
        try:
            rows = await conn.fetch(
                "SELECT document FROM tasks WHERE org_id = $1 AND product_id = $2 ORDER BY seq",
                org_id,
                product_id,
            )
        finally:
            await conn.close()
        return [LinkedTask.model_validate_json(r["document"]) for r in rows]

    async def list_open_change_sets(
        self, org_id: str, product_id: str
    ) -> list[ChangeSetRecord]:
        conn = await self._connect()
        try:
            version_rows = await conn.fetch(
                """
                SELECT version_id FROM versions
                WHERE org_id = $1 AND entity_type = 'product' AND entity_id = $2
                """,
                org_id,
                product_id,
            )
            rows = await conn.fetch(
                """
                SELECT document FROM change_sets
                WHERE org_id = $1 AND NOT (status = ANY($2::text[]))
                ORDER BY seq
                """,
                org_id,
                [s.value for s in CLOSED_CHANGE_SET_STATUSES],
            )
        finally:
            await conn.close()
        version_ids = {r["version_id"] for r in version_rows}
        change_sets = [ChangeSetRecord.model_validate_json(r["document"]) for r in rows]
        return [cs for cs in change_sets if cs.touches(product_id, version_ids)]

    # ------------------------------------------------------------------
    async def put_version(self, org_id: str, document: VersionedDocument) -> None:
        conn = await self._connect()
        try:
            await conn.execute(
                """
                INSERT INTO versions
                    (org_id, entity_type, entity_id, version_id, version_number, document)
                VALUES ($1, $2, $3, $4, $5, $6)
                ON CONFLICT (org_id, entity_type, entity_id, version_id)
                DO UPDATE SET version_number = EXCLUDED.version_number,
                              document = EXCLUDED.document
                """,
                org_id,
                document.entity_type,
                document.entity_id,
                document.id,
                document.version_number,
                document.model_dump_json(),
            )
        except asyncpg.UniqueViolationError as exc:
            raise ConflictError(
                f"Version {document.version_number} of "
                f"{document.entity_type}/{document.entity_id} already exists"
            ) from exc
        finally:
            await conn.close()

    async def put_state_program(
        self, org_id: str, product_id: str, version_id: str, program: StateProgram
    ) -> None:
        conn = await self._connect()
        try:
            await conn.execute(
                """
                INSERT INTO state_programs (org_id, product_id, version_id, state_code, document)
                VALUES ($1, $2, $3, $4, $5)
                ON CONFLICT (org_id, product_id, version_id, state_code)
                DO UPDATE SET document = EXCLUDED.document
                """,
                org_id,
                product_id,
                version_id,
                program.state_code,
                program.model_dump_json(),
            )
        finally:
            await conn.close()

    async def put_artifact(
        self, org_id: str, product_id: str, version_id: str, artifact: ArtifactRecord
    ) -> None:
        conn = await self._connect()
        try:
            await conn.execute(
                """
                INSERT INTO artifacts (org_id, product_id, version_id, artifact_id, document)
                VALUES ($1, $2, $3, $4, $5)
                ON CONFLICT (org_id, product_id, version_id, artifact_id)
                DO UPDATE SET document = EXCLUDED.document
                """,
                org_id,
                product_id,
                version_id,
                artifact.id,
                artifact.model_dump_json(),
            )
        finally:
            await conn.close()

    async def put_task(self, org_id: str, product_id: str, task: LinkedTask) -> None:
        conn = await self._connect()
        try:
            await conn.execute(
                """
                INSERT INTO tasks (org_id, product_id, task_id, document)
                VALUES ($1, $2, $3, $4)
                ON CONFLICT (org_id, product_id, task_id)
                DO UPDATE SET document = EXCLUDED.document
                """,
                org_id,
                product_id,
                task.id,
                task.model_dump_json(),
            )
        finally:
            await conn.close()

    async def put_change_set(self, org_id: str, change_set: ChangeSetRecord) -> None:
        conn = await self._connect()
        try:
            await conn.execute(
                """
                INSERT INTO change_sets (org_id, change_set_id, status, document)
                VALUES ($1, $2, $3, $4)
                ON CONFLICT (org_id, change_set_id)
                DO UPDATE SET status = EXCLUDED.status, document = EXCLUDED.document
                """,
                org_id,
                change_set.id,
                change_set.status.value,
                change_set.model_dump_json(),
            )
        finally:
            await conn.close()
