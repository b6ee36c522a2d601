"""Persistence layer for product360 records."""

from __future__ import annotations

import os
from typing import Optional

from ..config import Product360Config, load_config
from .inmemory import InMemoryStore
from .repository import ChangeSetSource, DocumentStore
from .sqlite import SQLiteStore

_store_instance: DocumentStore | None = None
_store_url: Optional[str] = None


def get_store(
    database_url: Optional[str] = None, config: Optional[Product360Config] = None
) -> DocumentStore:
    """Factory function to obtain a store.

    The backend is selected based on ``database_url`` which can be provided
    explicitly, via environment variable ``PRODUCT360_DATABASE_URL`` or
    ``DATABASE_URL``, or from loaded configuration. When no database is
    configured, an in-memory store is returned. Every backend implements both
    :class:`DocumentStore` and :class:`ChangeSetSource`.

    The store is cached and handed out again while the resolved URL stays the
    same, so repeated calls share one store.
    """

    global _store_instance, _store_url
    if _store_instance is not None and database_url is None and config is None:
        return _store_instance

    config = config or load_config()
    database_url = (
        database_url
        or os.getenv("PRODUCT360_DATABASE_URL")
        or os.getenv("DATABASE_URL")
        or getattr(config, "database_url", None)
    )
    if _store_instance is not None and database_url == _store_url:
        return _store_instance

    store: DocumentStore
    if not database_url:
        store = InMemoryStore()
    elif database_url.startswith("sqlite://"):
        path = database_url.replace("sqlite://", "", 1)
        store = SQLiteStore(path)
    elif database_url.startswith("postgres://") or database_url.startswith(
        "postgresql://"
    ):
        from .postgres import PostgresStore

        store = PostgresStore(database_url)
    else:
        raise ValueError(f"Unsupported database backend: {database_url}")

    _store_instance, _store_url = store, database_url
    return store


__all__ = [
    "ChangeSetSource",
    "DocumentStore",
    "InMemoryStore",
    "SQLiteStore",
    "get_store",
]
