"""
Task Store Base Classes

Abstract interface for task store backends plus the ordering and matching
rules every backend shares. Backends only implement persistence; fuzzy title
search and positional lookup are built on top of ``list()`` here so the
behaviour is identical across SQLite and Notion.

Ordering (list order):
    status   - todo before done
    priority - high, medium, low
    creation - oldest first
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from datetime import date

from voxtask.errors import ConflictError, ValidationError
from voxtask.tasks import DEFAULT_COLLECTION_NAME, MAX_TITLE_LENGTH
from voxtask.tasks.models import Category, Priority, Task, TaskScope


# Words shorter than this never count as a shared word in fuzzy matching
MIN_SHARED_WORD_LENGTH = 3

_POSITION_RE = re.compile(r"^(?:\d+|first|last)$")


class CollectionRef:
    """
    Cached identifier of the task collection.

    Owned by the composition root and injected into a store. ``ensure_collection``
    fills it on first use; nothing clears it except ``invalidate()``.
    """

    def __init__(self, name: str = DEFAULT_COLLECTION_NAME, collection_id: str | None = None):
        self.name = name
        self.collection_id = collection_id

    @property
    def is_resolved(self) -> bool:
        return self.collection_id is not None

    def set(self, collection_id: str) -> None:
        self.collection_id = collection_id

    def invalidate(self) -> None:
        self.collection_id = None

    def __repr__(self) -> str:
        return f"CollectionRef(name={self.name!r}, collection_id={self.collection_id!r})"


# =============================================================================
# Shared rules
# =============================================================================


def clean_title(text: str | None) -> str:
    """Validate and normalise a task title at the store boundary."""
    title = " ".join((text or "").split())
    if not title:
        raise ValidationError("Task text is required")
    return title[:MAX_TITLE_LENGTH]


def sort_key(task: Task) -> tuple[int, int, int]:
    return (task.status.rank, task.priority.rank, task.sequence)


def sort_tasks(tasks: list[Task]) -> list[Task]:
    return sorted(tasks, key=sort_key)


def is_position_token(token: str | None) -> bool:
    return bool(token) and bool(_POSITION_RE.match(token.strip().lower()))


def _words(text: str) -> set[str]:
    return {w for w in re.findall(r"[a-z0-9']+", text.lower()) if len(w) >= MIN_SHARED_WORD_LENGTH}


def fuzzy_match(tasks: list[Task], query: str) -> Task | None:
    """
    Find the first task whose title matches ``query``.

    Tiers, each scanned in list order before the next is tried:
        1. case-insensitive equality
        2. substring containment in either direction
        3. any shared word of three or more characters
    """
    needle = " ".join(query.lower().split())
    if not needle:
        return None

    for task in tasks:
        if task.text.lower() == needle:
            return task

    for task in tasks:
        title = task.text.lower()
        if needle in title or title in needle:
            return task

    query_words = _words(needle)
    if not query_words:
        return None
    for task in tasks:
        if query_words & _words(task.text):
            return task

    return None


def resolve_position(tasks: list[Task], token: str) -> Task | None:
    """Resolve ``first``, ``last`` or a 1-based number against open tasks."""
    token = token.strip().lower()
    candidates = sort_tasks([t for t in tasks if not t.is_done])
    if not candidates:
        return None

    if token == "first":
        return candidates[0]
    if token == "last":
        return candidates[-1]
    if token.isdigit():
        index = int(token)
        if 1 <= index <= len(candidates):
            return candidates[index - 1]
    return None


def check_version(task: Task, expected_version: str | None) -> None:
    if expected_version is not None and task.version != expected_version:
        raise ConflictError(task.id, expected_version, task.version)


# =============================================================================
# Store interface
# =============================================================================


class TaskStore(ABC):
    """
    Abstract base class for task store backends.

    All methods are async. Backend failures surface as ``StoreError``; a task
    that is missing or archived surfaces as ``NotFoundError``.
    """

    def __init__(self, collection: CollectionRef | None = None):
        self.collection = collection or CollectionRef()

    @property
    @abstractmethod
    def name(self) -> str:
        """Backend identifier (e.g. 'sqlite', 'notion')."""

    @abstractmethod
    async def ensure_collection(self) -> str:
        """Return the collection id, creating the collection if it does not exist."""

    @abstractmethod
    async def create(
        self,
        text: str,
        priority: Priority | None = None,
        category: Category | None = None,
        plan_date: date | None = None,
        due_date: date | None = None,
    ) -> Task:
        pass

    @abstractmethod
    async def get(self, task_id: str) -> Task:
        pass

    @abstractmethod
    async def complete(self, task_id: str, expected_version: str | None = None) -> Task:
        """Mark a task done. Completing a done task is a no-op."""

    @abstractmethod
    async def update(self, task_id: str, new_text: str, expected_version: str | None = None) -> Task:
        """Replace the title only."""

    @abstractmethod
    async def delete(self, task_id: str, expected_version: str | None = None) -> None:
        """Archive a task."""

    @abstractmethod
    async def delete_all(self, scope: TaskScope | None = None) -> int:
        """Archive every task in scope and return how many were archived."""

    @abstractmethod
    async def list(self, scope: TaskScope | None = None) -> list[Task]:
        """Tasks in scope, in list order."""

    async def close(self) -> None:
        """Release backend resources. Default: nothing to release."""
        return None

    # -------------------------------------------------------------------------
    # Lookup built on list()
    # -------------------------------------------------------------------------

    async def find_by_fuzzy_title(self, query: str, only_open: bool = False) -> Task | None:
        scope = TaskScope(plan_date=None, include_done=not only_open)
        return fuzzy_match(await self.list(scope), query)

    async def find_by_position(self, token: str, scope: TaskScope | None = None) -> Task | None:
        if not is_position_token(token):
            return None
        scope = scope or TaskScope.today()
        return resolve_position(await self.list(scope), token)
