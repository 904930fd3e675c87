"""Task data models.

A Task is the mutable unit owned by a task store. The enums are closed sets;
``Priority.rank`` and ``TaskStatus.rank`` give the sort keys used for listing
and positional resolution.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any


class TaskStatus(str, Enum):
    """Task lifecycle. Moves forward from TODO to DONE."""

    TODO = "todo"
    DONE = "done"

    @property
    def rank(self) -> int:
        # Incomplete tasks sort first
        return 0 if self is TaskStatus.TODO else 1


class Priority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        return {"high": 0, "medium": 1, "low": 2}[self.value]

    @classmethod
    def parse(cls, value: Any, default: Priority | None = None) -> Priority:
        """Lenient conversion used for LLM output and store payloads."""
        if isinstance(value, cls):
            return value
        text = str(value or "").strip().lower()
        if text == "urgent":
            return cls.HIGH
        try:
            return cls(text)
        except ValueError:
            return default or cls.MEDIUM


class Category(str, Enum):
    WORK = "work"
    PERSONAL = "personal"
    SHOPPING = "shopping"
    EMAIL = "email"
    OTHER = "other"

    @classmethod
    def parse(cls, value: Any, default: Category | None = None) -> Category:
        if isinstance(value, cls):
            return value
        text = str(value or "").strip().lower()
        try:
            return cls(text)
        except ValueError:
            return default or cls.OTHER


@dataclass
class Task:
    """One todo item as held by a task store."""

    id: str
    text: str
    status: TaskStatus = TaskStatus.TODO
    priority: Priority = Priority.MEDIUM
    category: Category = Category.OTHER
    plan_date: date | None = None
    due_date: date | None = None
    created_at: datetime | None = None
    archived: bool = False
    version: str | None = None
    # Monotonic creation order within the store (tie-breaker for sorting)
    sequence: int = 0

    @property
    def is_done(self) -> bool:
        return self.status is TaskStatus.DONE

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "text": self.text,
            "status": self.status.value,
            "priority": self.priority.value,
            "category": self.category.value,
            "plan_date": self.plan_date.isoformat() if self.plan_date else None,
            "due_date": self.due_date.isoformat() if self.due_date else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


@dataclass
class TaskScope:
    """The subset of tasks a list or positional lookup considers.

    ``plan_date=None`` means every date in the collection.
    """

    plan_date: date | None = None
    include_done: bool = True

    @classmethod
    def today(cls) -> TaskScope:
        return cls(plan_date=date.today())

    @classmethod
    def everything(cls) -> TaskScope:
        return cls(plan_date=None)

    def contains(self, task: Task) -> bool:
        if task.archived:
            return False
        if not self.include_done and task.is_done:
            return False
        if self.plan_date is not None and task.plan_date != self.plan_date:
            return False
        return True
