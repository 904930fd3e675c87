"""
Task Store Package

Pluggable persistence for tasks. Backends implement ``TaskStore``; the
composition root picks one with ``get_store()`` and owns the ``CollectionRef``
it injects.

Usage:
    from voxtask.tasks.stores import CollectionRef, get_store

    collection = CollectionRef()
    store = get_store("sqlite", collection=collection)
    await store.ensure_collection()
"""

from __future__ import annotations

import os
from typing import Any

from voxtask.tasks import DEFAULT_COLLECTION_NAME, load_config

from .base import CollectionRef, TaskStore, fuzzy_match, is_position_token, resolve_position, sort_tasks
from .sqlite_store import SQLiteTaskStore


__all__ = [
    "CollectionRef",
    "SQLiteTaskStore",
    "TaskStore",
    "fuzzy_match",
    "get_store",
    "is_position_token",
    "resolve_position",
    "sort_tasks",
]

AVAILABLE_STORES = ("sqlite", "notion")


def get_store(
    name: str | None = None,
    config: dict[str, Any] | None = None,
    collection: CollectionRef | None = None,
) -> TaskStore:
    """
    Get a task store instance by name.

    Args:
        name: Backend name (sqlite, notion). Defaults to VOXTASK_TASK_STORE,
            then ``store.backend`` in args/tasks.yaml, then sqlite.
        config: Full task configuration (defaults to args/tasks.yaml)
        collection: Shared collection reference

    Raises:
        ValueError: If the backend is unknown
    """
    if config is None:
        config = load_config()
    store_config = config.get("store", {})

    name = name or os.getenv("VOXTASK_TASK_STORE") or store_config.get("backend", "sqlite")
    if collection is None:
        collection = CollectionRef(store_config.get("collection_name") or DEFAULT_COLLECTION_NAME)

    if name == "sqlite":
        return SQLiteTaskStore(store_config.get("sqlite", {}), collection=collection)

    elif name == "notion":
        from .notion_store import NotionTaskStore

        return NotionTaskStore(store_config.get("notion", {}), collection=collection)

    else:
        raise ValueError(f"Unknown task store: {name}. Available stores: {', '.join(AVAILABLE_STORES)}")
