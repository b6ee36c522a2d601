"""Version listing, selection and draft branching for versioned entities."""

from __future__ import annotations

import logging
import uuid
from typing import Optional, Sequence

from .config import Product360Config, load_config
from .contracts import DiffResult, VersionedDocument, VersionStatus, utcnow
from .diff import diff
from .errors import ConflictError, NotFoundError, SourceNotFoundError
from .persistence import DocumentStore
from .utils.retry import schedule_retry

logger = logging.getLogger(__name__)


def select_version(
    versions: Sequence[VersionedDocument],
) -> Optional[VersionedDocument]:
    """Pick the version to show when the caller did not name one.

    ``versions`` must be newest first. Prefers the newest draft, then the
    published version, then the newest version of any status.
    """
    if not versions:
        return None
    for status in (VersionStatus.DRAFT, VersionStatus.PUBLISHED):
        match = next((v for v in versions if v.status == status), None)
        if match is not None:
            return match
    return versions[0]


def find_published(
    versions: Sequence[VersionedDocument],
) -> Optional[VersionedDocument]:
    """Return the currently published version, if any."""
    return next((v for v in versions if v.status == VersionStatus.PUBLISHED), None)


class VersionStore:
    """List, read and branch versions of any configured entity type."""

    def __init__(
        self, store: DocumentStore, config: Product360Config | None = None
    ) -> None:
        self._store = store
        self._config = config or load_config()

    def _check_entity_type(self, entity_type: str) -> None:
        if entity_type not in self._config.versioning.entity_types:
            raise ValueError(f"Invalid entity type: {entity_type}")

    async def get_versions(
        self, org_id: str, entity_type: str, entity_id: str
    ) -> list[VersionedDocument]:
        """Return all versions of an entity, newest first.

        Raises:
            NotFoundError: The entity has no versions at all.
        """
        self._check_entity_type(entity_type)
        versions = await self._store.list_versions(org_id, entity_type, entity_id)
        if not versions:
            raise NotFoundError(f"No versions found for {entity_type}/{entity_id}")
        return sorted(versions, key=lambda v: v.version_number, reverse=True)

    async def get_version(
        self, org_id: str, entity_type: str, entity_id: str, version_id: str
    ) -> VersionedDocument:
        self._check_entity_type(entity_type)
        version = await self._store.read_version(org_id, entity_type, entity_id, version_id)
        if version is None:
            raise NotFoundError(
                f"Version {version_id} not found for {entity_type}/{entity_id}"
            )
        return version

    async def compare_versions(
        self,
        org_id: str,
        entity_type: str,
        entity_id: str,
        left_id: str,
        right_id: str,
    ) -> DiffResult:
        """Diff the payload of version ``right_id`` against version ``left_id``.

        Raises:
            NotFoundError: Either version does not exist for the entity.
        """
        left = await self.get_version(org_id, entity_type, entity_id, left_id)
        right = await self.get_version(org_id, entity_type, entity_id, right_id)
        result = diff(left.payload, right.payload)
        logger.debug(
            f"Compared {entity_type}/{entity_id} v{left.version_number} -> "
            f"v{right.version_number}: {result.total_changes} change(s)"
        )
        return result

    async def clone_version(
        self,
        org_id: str,
        entity_type: str,
        entity_id: str,
        source_version_id: str,
        user_id: str,
        summary: Optional[str] = None,
    ) -> VersionedDocument:
        """Branch a new draft from an existing version.

        The payload is deep-copied and the draft gets the next version number.
        Number assignment is a compare-and-swap against the store; on a
        conflicting concurrent write the current max is re-read and the insert
        retried with backoff.

        Raises:
            SourceNotFoundError: ``source_version_id`` does not exist for the entity.
            ConflictError: Every attempt lost the race.
        """
        self._check_entity_type(entity_type)
        source = await self._store.read_version(
            org_id, entity_type, entity_id, source_version_id
        )
        if source is None:
            raise SourceNotFoundError(
                f"Source version {source_version_id} not found for {entity_type}/{entity_id}"
            )

        settings = self._config.versioning
        attempts = max(1, settings.clone_max_retries)
        for attempt in range(attempts):
            existing = await self._store.list_versions(org_id, entity_type, entity_id)
            current_max = max((v.version_number for v in existing), default=0)
            next_number = current_max + 1
            draft = VersionedDocument(
                id=uuid.uuid4().hex,
                entity_type=entity_type,
                entity_id=entity_id,
                version_number=next_number,
                status=VersionStatus.DRAFT,
                effective_start=source.effective_start,
                effective_end=source.effective_end,
                payload=source.model_copy(deep=True).payload,
                created_by=user_id,
                created_at=utcnow(),
                summary=summary
                or f"Draft v{next_number} (cloned from v{source.version_number})",
                cloned_from=source.id,
            )
            try:
                await self._store.insert_version(org_id, draft, expected_max=current_max)
            except ConflictError as exc:
                logger.warning(
                    f"Version number conflict cloning {entity_type}/{entity_id} "
                    f"(attempt {attempt + 1}/{attempts}): {exc}"
                )
                if attempt + 1 < attempts:
                    await schedule_retry(
                        attempt,
                        base=settings.retry_base_delay,
                        jitter=settings.retry_jitter,
                    )
                continue

            logger.info(
                f"Cloned {entity_type}/{entity_id} v{source.version_number} "
                f"into draft v{next_number} ({draft.id})"
            )
            return draft

        raise ConflictError(
            f"Could not assign a version number for {entity_type}/{entity_id} "
            f"after {attempts} attempts"
        )
