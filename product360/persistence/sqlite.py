"""SQLite implementation of the document store and change-set source."""

from __future__ import annotations

import asyncio
import sqlite3
import threading
from pathlib import Path
from typing import Any

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


class SQLiteStore(DocumentStore, ChangeSetSource):
    """Persist records using SQLite.

    Each record is stored as its JSON document next to the columns used for
    lookups. Version-number assignment runs inside ``BEGIN IMMEDIATE`` and is
    backed by a unique index on the entity's version numbers.
    """

    def __init__(self, db_path: str | Path):
        self.db_path = str(db_path)
        self._conn = sqlite3.connect(
            self.db_path, check_same_thread=False, isolation_level=None
        )
        self._conn.row_factory = sqlite3.Row
        self._lock = threading.Lock()
        self._ensure_schema()

    # ------------------------------------------------------------------
    # Schema management
    def _ensure_schema(self) -> None:
        cur = self._conn.cursor()
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS versions (
                org_id TEXT NOT NULL,
                entity_type TEXT NOT NULL,
                entity_id TEXT NOT NULL,
                version_id TEXT NOT NULL,
                version_number INTEGER NOT NULL,
                document TEXT NOT NULL,
                PRIMARY KEY (org_id, entity_type, entity_id, version_id),
                UNIQUE (org_id, entity_type, entity_id, version_number)
            )
            """
        )
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS state_programs (
                org_id TEXT NOT NULL,
                product_id TEXT NOT NULL,
                version_id TEXT NOT NULL,
                state_code TEXT NOT NULL,
                document TEXT NOT NULL,
                PRIMARY KEY (org_id, product_id, version_id, state_code)
            )
            """
        )
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS artifacts (
                org_id TEXT NOT NULL,
                product_id TEXT NOT NULL,
                version_id TEXT NOT NULL,
                artifact_id TEXT NOT NULL,
                document TEXT NOT NULL,
                PRIMARY KEY (org_id, product_id, version_id, artifact_id)
            )
            """
        )
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS tasks (
                org_id TEXT NOT NULL,
                product_id TEXT NOT NULL,
                task_id TEXT NOT NULL,
                document TEXT NOT NULL,
                PRIMARY KEY (org_id, product_id, task_id)
            )
            """
        )
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS change_sets (
                org_id TEXT NOT NULL,
                change_set_id TEXT NOT NULL,
                status TEXT NOT NULL,
                document TEXT NOT NULL,
                PRIMARY KEY (org_id, change_set_id)
            )
            """
        )

    # ------------------------------------------------------------------
    # Helper methods
    def _execute(self, query: str, *params: Any) -> None:
        with self._lock:
            self._conn.execute(query, params)

    def _fetchone(self, query: str, *params: Any) -> sqlite3.Row | None:
        with self._lock:
            return self._conn.execute(query, params).fetchone()

    def _fetchall(self, query: str, *params: Any) -> list[sqlite3.Row]:
        with self._lock:
            return self._conn.execute(query, params).fetchall()

    def _insert_version_tx(
        self, org_id: str, document: VersionedDocument, expected_max: int
    ) -> None:
        with self._lock:
            cur = self._conn.cursor()
            cur.execute("BEGIN IMMEDIATE")
            try:
                row = cur.execute(
                    """
                    SELECT COALESCE(MAX(version_number), 0) FROM versions
                    WHERE org_id = ? AND entity_type = ? AND entity_id = ?
                    """,
                    (org_id, document.entity_type, document.entity_id),
                ).fetchone()
                current_max = row[0]
                if current_max != expected_max:
                    raise ConflictError(
                        f"{document.entity_type}/{document.entity_id}: expected max "
                        f"version {expected_max}, found {current_max}"
                    )
                cur.execute(
                    """
                    INSERT INTO versions
                        (org_id, entity_type, entity_id, version_id, version_number, document)
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (
                        org_id,
                        document.entity_type,
                        document.entity_id,
                        document.id,
                        document.version_number,
                        document.model_dump_json(),
                    ),
                )
            except sqlite3.IntegrityError as exc:
                cur.execute("ROLLBACK")
                raise ConflictError(
                    f"Version {document.version_number} of "
                    f"{document.entity_type}/{document.entity_id} already exists"
                ) from exc
            except BaseException:
                cur.execute("ROLLBACK")
                raise
            cur.execute("COMMIT")

    # ------------------------------------------------------------------
    # Store API
    async def list_versions(
        self, org_id: str, entity_type: str, entity_id: str
    ) -> list[VersionedDocument]:
        rows = await asyncio.to_thread(
            self._fetchall,
            """
            SELECT document FROM versions
            WHERE org_id = ? AND entity_type = ? AND entity_id = ?
            ORDER BY version_number DESC
            """,
            org_id,
            entity_type,
            entity_id,
        )
        return [VersionedDocument.model_validate_json(r["document"]) for r in rows]

    async def read_version(
        self, org_id: str, entity_type: str, entity_id: str, version_id: str
    ) -> VersionedDocument | None:
        row = await asyncio.to_thread(
            self._fetchone,
            """
            SELECT document FROM versions
            WHERE org_id = ? AND entity_type = ? AND entity_id = ? AND version_id = ?
            """,
            org_id,
            entity_type,
            entity_id,
            version_id,
        )
        if not row:
            return None
        return VersionedDocument.model_validate_json(row["document"])

    async def insert_version(
        self, org_id: str, document: VersionedDocument, expected_max: int
    ) -> None:
        await asyncio.to_thread(self._insert_version_tx, org_id, document, expected_max)

    async def list_state_programs(
        self, org_id: str, product_id: str, version_id: str
    ) -> list[StateProgram]:
        rows = await asyncio.to_thread(
            self._fetchall,
            """
            SELECT document FROM state_programs
            WHERE org_id = ? AND product_id = ? AND version_id = ?
            ORDER BY state_code
            """,
            org_id,
            product_id,
            version_id,
        )
        return [StateProgram.model_validate_json(r["document"]) for r in rows]

    async def list_artifacts(
        self, org_id: str, product_id: str, version_id: str
    ) -> list[ArtifactRecord]:
        rows = await asyncio.to_thread(
            self._fetchall,
            """
            SELECT document FROM artifacts
            WHERE org_id = ? AND product_id = ? AND version_id = ?
            ORDER BY rowid
            """,
            org_id,
            product_id,
            version_id,
        )
        return [ArtifactRecord.model_validate_json(r["document"]) for r in rows]

    async def list_linked_tasks(self, org_id: str, product_id: str) -> list[LinkedTask]:
        rows = await asyncio.to_thread(
            self._fetchall,
            "SELECT document FROM tasks WHERE org_id = ? AND product_id = ? ORDER BY rowid",
            org_id,
            product_id,
        )
        return [LinkedTask.model_validate_json(r["document"]) for r in rows]

    async def list_open_change_sets(
        self, org_id: str, product_id: str
    ) -> list[ChangeSetRecord]:
        version_rows = await asyncio.to_thread(
            self._fetchall,
            """
            SELECT version_id FROM versions
            WHERE org_id = ? AND entity_type = 'product' AND entity_id = ?
            """,
            org_id,
            product_id,
        )
        version_ids = {r["version_id"] for r in version_rows}
        closed = [s.value for s in CLOSED_CHANGE_SET_STATUSES]
        rows = await asyncio.to_thread(
            self._fetchall,
            f"""
            SELECT document FROM change_sets
            WHERE org_id = ? AND status NOT IN ({", ".join("?" for _ in closed)})
            ORDER BY rowid
            """,
            org_id,
            *closed,
        )
        change_sets = [ChangeSetRecord.model_validate_json(r["document"]) for r in rows]
        return [cs for cs in change_sets if cs.touches(product_id, version_ids)]

    # ------------------------------------------------------------------
    # Record ingestion
    async def put_version(self, org_id: str, document: VersionedDocument) -> None:
        try:
            await asyncio.to_thread(
                self._execute,
                """
                INSERT INTO versions
                    (org_id, entity_type, entity_id, version_id, version_number, document)
                VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT (org_id, entity_type, entity_id, version_id)
                DO UPDATE SET version_number = excluded.version_number,
                              document = excluded.document
                """,
                org_id,
                document.entity_type,
                document.entity_id,
                document.id,
                document.version_number,
                document.model_dump_json(),
            )
        except sqlite3.IntegrityError as exc:
            raise ConflictError(
                f"Version {document.version_number} of "
                f"{document.entity_type}/{document.entity_id} already exists"
            ) from exc

    async def put_state_program(
        self, org_id: str, product_id: str, version_id: str, program: StateProgram
    ) -> None:
        await asyncio.to_thread(
            self._execute,
            """
            INSERT INTO state_programs (org_id, product_id, version_id, state_code, document)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT (org_id, product_id, version_id, state_code)
            DO UPDATE SET document = excluded.document
            """,
            org_id,
            product_id,
            version_id,
            program.state_code,
            program.model_dump_json(),
        )

    async def put_artifact(
        self, org_id: str, product_id: str, version_id: str, artifact: ArtifactRecord
    ) -> None:
        await asyncio.to_thread(
            self._execute,
            """
            INSERT INTO artifacts (org_id, product_id, version_id, artifact_id, document)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT (org_id, product_id, version_id, artifact_id)
            DO UPDATE SET document = excluded.document
            """,
            org_id,
            product_id,
            version_id,
            artifact.id,
            artifact.model_dump_json(),
        )

    async def put_task(self, org_id: str, product_id: str, task: LinkedTask) -> None:
        await asyncio.to_thread(
            self._execute,
            """
            INSERT INTO tasks (org_id, product_id, task_id, document)
            VALUES (?, ?, ?, ?)
            ON CONFLICT (org_id, product_id, task_id)
            DO UPDATE SET document = excluded.document
            """,
            org_id,
            product_id,
            task.id,
            task.model_dump_json(),
        )

    async def put_change_set(self, org_id: str, change_set: ChangeSetRecord) -> None:
        await asyncio.to_thread(
            self._execute,
            """
            INSERT INTO change_sets (org_id, change_set_id, status, document)
            VALUES (?, ?, ?, ?)
            ON CONFLICT (org_id, change_set_id)
            DO UPDATE SET status = excluded.status, document = excluded.document
            """,
            org_id,
            change_set.id,
            change_set.status.value,
            change_set.model_dump_json(),
        )
