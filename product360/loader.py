"""Ingest externally produced records from a YAML or JSON fixture."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

from .contracts import (
    ArtifactRecord,
    ChangeSetRecord,
    LinkedTask,
    StateProgram,
    VersionedDocument,
)
from .persistence import ChangeSetSource, DocumentStore

logger = logging.getLogger(__name__)


def _scoped(entry: dict[str, Any], *keys: str) -> tuple[list[str], dict[str, Any]]:
    data = dict(entry)
    missing = [k for k in keys if k not in data]
    if missing:
        raise ValueError(f"Record is missing {', '.join(missing)}: {entry}")
    return [data.pop(k) for k in keys], data


async def load_records(store: DocumentStore, data: dict[str, Any]) -> dict[str, int]:
    """Write every record in ``data`` to ``store`` and return counts per kind.

    ``data`` holds an ``org_id`` and optional ``versions``, ``state_programs``,
    ``artifacts``, ``tasks`` and ``change_sets`` lists. Scoped records carry
    their ``product_id`` (and ``version_id``) next to the record fields.
    """
    org_id = data.get("org_id")
    if not org_id:
        raise ValueError("Fixture must define org_id")

    counts = {"versions": 0, "state_programs": 0, "artifacts": 0, "tasks": 0, "change_sets": 0}
    for entry in data.get("versions") or []:
        await store.put_version(org_id, VersionedDocument.model_validate(entry))
        counts["versions"] += 1
    for entry in data.get("state_programs") or []:
        (product_id, version_id), fields = _scoped(entry, "product_id", "version_id")
        await store.put_state_program(
            org_id, product_id, version_id, StateProgram.model_validate(fields)
        )
        counts["state_programs"] += 1
    for entry in data.get("artifacts") or []:
        (product_id, version_id), fields = _scoped(entry, "product_id", "version_id")
        await store.put_artifact(
            org_id, product_id, version_id, ArtifactRecord.model_validate(fields)
        )
        counts["artifacts"] += 1
    for entry in data.get("tasks") or []:
        (product_id,), fields = _scoped(entry, "product_id")
        await store.put_task(org_id, product_id, LinkedTask.model_validate(fields))
        counts["tasks"] += 1

    change_sets = data.get("change_sets") or []
    if change_sets:
        source: ChangeSetSource = store  # every bundled backend implements both
        for entry in change_sets:
            await source.put_change_set(org_id, ChangeSetRecord.model_validate(entry))
            counts["change_sets"] += 1

    logger.info(f"Loaded records for org {org_id}: {counts}")
    return counts


async def load_file(store: DocumentStore, path: str | Path) -> dict[str, int]:
    """Load a YAML (or JSON, which is valid YAML) fixture file into ``store``."""
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    return await load_records(store, data)
