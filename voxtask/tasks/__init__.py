"""Task Store - the persistent side of the voice todo assistant

Components:
    models.py: Task, TaskScope and the closed status/priority/category enums
    stores/base.py: TaskStore interface, CollectionRef, shared ordering and matching
    stores/sqlite_store.py: row/table store in data/tasks.db (default backend)
    stores/notion_store.py: Notion database backend over the REST API

Usage:
    from voxtask.tasks.stores import get_store

    store = get_store("sqlite")
    await store.ensure_collection()
    task = await store.create("buy milk")
    match = await store.find_by_fuzzy_title("milk")
"""

from __future__ import annotations

from typing import Any

import yaml

from voxtask import ARGS_DIR, DATA_DIR

# Path constants
DB_PATH = DATA_DIR / "tasks.db"
CONFIG_PATH = ARGS_DIR / "tasks.yaml"

# Collection created on first use when none exists
DEFAULT_COLLECTION_NAME = "Daily Tasks"

# Longest title the stores will persist
MAX_TITLE_LENGTH = 200


def load_config() -> dict[str, Any]:
    """Load task store configuration."""
    if CONFIG_PATH.exists():
        with open(CONFIG_PATH) as f:
            return yaml.safe_load(f) or {}
    return {}


__all__ = [
    "CONFIG_PATH",
    "DB_PATH",
    "DEFAULT_COLLECTION_NAME",
    "MAX_TITLE_LENGTH",
    "load_config",
]
