"""Entity extraction from voice command transcripts.

Pulls priority, category and due-date hints out of natural language so a
created task can be filed without the user naming each field.
"""

from __future__ import annotations

import calendar
import re
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any

from voxtask.tasks.models import Category, Priority


@dataclass
class EntityHints:
    """Hints found in a command. ``None`` means the text said nothing."""

    priority: Priority | None = None
    category: Category | None = None
    due_date: date | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "priority": self.priority.value if self.priority else None,
            "category": self.category.value if self.category else None,
            "due_date": self.due_date.isoformat() if self.due_date else None,
        }


# Low is checked first so "not urgent" never reads as urgent
PRIORITY_PATTERNS: list[tuple[str, Priority]] = [
    (r"\b(?:low\s+priority|not\s+urgent|not\s+important|whenever|no\s+rush)\b", Priority.LOW),
    (r"\b(?:urgent|urgently|high\s+priority|important|asap|critical)\b", Priority.HIGH),
    (r"\b(?:medium|normal)\s+priority\b", Priority.MEDIUM),
]

CATEGORY_PATTERNS: list[tuple[str, Category]] = [
    (r"\b(?:work|office|meeting|meetings)\b", Category.WORK),
    (r"\b(?:personal|home|family)\b", Category.PERSONAL),
    (r"\b(?:buy|shop|purchase|grocer)", Category.SHOPPING),
    (r"\b(?:e-?mail|reply|send)", Category.EMAIL),
]


def extract_priority(text: str) -> Priority | None:
    """Extract priority from text.

    Handles: "urgent", "high priority", "asap", "not urgent", "whenever", etc.
    """
    text_lower = text.lower()
    for pattern, priority in PRIORITY_PATTERNS:
        if re.search(pattern, text_lower):
            return priority
    return None


def extract_category(text: str) -> Category | None:
    text_lower = text.lower()
    for pattern, category in CATEGORY_PATTERNS:
        if re.search(pattern, text_lower):
            return category
    return None


def _add_month(day: date) -> date:
    year = day.year + (day.month // 12)
    month = day.month % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return day.replace(year=year, month=month, day=min(day.day, last_day))


def extract_due_date(text: str, today: date | None = None) -> date | None:
    """Extract a due date from relative day references.

    Handles: "today", "tomorrow", "next week" (+7 days), "next month".
    """
    today = today or date.today()
    text_lower = text.lower()

    if re.search(r"\btoday\b", text_lower):
        return today
    if re.search(r"\btomorrow\b", text_lower):
        return today + timedelta(days=1)
    if re.search(r"\bnext\s+week\b", text_lower):
        return today + timedelta(days=7)
    if re.search(r"\bnext\s+month\b", text_lower):
        return _add_month(today)
    return None


def extract_entities(text: str, today: date | None = None) -> EntityHints:
    """Run all extractors and return the combined hints."""
    return EntityHints(
        priority=extract_priority(text),
        category=extract_category(text),
        due_date=extract_due_date(text, today),
    )
