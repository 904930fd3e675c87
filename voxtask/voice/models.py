"""Voice interface data models.

Defines intents, transcription and result types for the voice command pipeline:
    TranscriptionResult → Intent → CommandResult → VoiceResponse
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, ClassVar

from voxtask.tasks.models import Category, Priority, Task


class IntentAction(str, Enum):
    """Voice command actions."""

    CREATE = "create"
    COMPLETE = "complete"
    UPDATE = "update"
    DELETE = "delete"
    LIST = "list"
    UNCLEAR = "unclear"


class IntentSource(str, Enum):
    """Which classifier tier produced an intent."""

    RULES = "rules"
    LLM = "llm"
    HEURISTIC = "heuristic"


# Target value meaning every task in the collection
ALL_TASKS = "all"


@dataclass
class Intent:
    """Base of the intent union. ``action`` is fixed per subclass."""

    action: ClassVar[IntentAction] = IntentAction.UNCLEAR

    confidence: float = 0.0
    raw_text: str = ""
    source: IntentSource = IntentSource.RULES

    @property
    def is_unclear(self) -> bool:
        return self.action is IntentAction.UNCLEAR

    def _fields(self) -> dict[str, Any]:
        return {}

    def to_dict(self) -> dict[str, Any]:
        return {
            "action": self.action.value,
            **self._fields(),
            "confidence": round(self.confidence, 3),
            "raw_text": self.raw_text,
            "source": self.source.value,
        }


@dataclass
class CreateIntent(Intent):
    action: ClassVar[IntentAction] = IntentAction.CREATE

    task_text: str | None = None
    priority: Priority | None = None
    category: Category | None = None
    due_date: date | None = None

    def _fields(self) -> dict[str, Any]:
        return {
            "task_text": self.task_text,
            "priority": self.priority.value if self.priority else None,
            "category": self.category.value if self.category else None,
            "due_date": self.due_date.isoformat() if self.due_date else None,
        }


@dataclass
class CompleteIntent(Intent):
    action: ClassVar[IntentAction] = IntentAction.COMPLETE

    target: str | None = None
    #: The words the user said when ``target`` is a position token
    spoken_target: str | None = None

    def _fields(self) -> dict[str, Any]:
        return {"target": self.target}


@dataclass
class DeleteIntent(Intent):
    action: ClassVar[IntentAction] = IntentAction.DELETE

    target: str | None = None
    spoken_target: str | None = None

    @property
    def is_all(self) -> bool:
        return self.target == ALL_TASKS

    def _fields(self) -> dict[str, Any]:
        return {"target": self.target}


@dataclass
class UpdateIntent(Intent):
    action: ClassVar[IntentAction] = IntentAction.UPDATE

    target: str | None = None
    new_text: str | None = None
    spoken_target: str | None = None

    def _fields(self) -> dict[str, Any]:
        return {"target": self.target, "new_text": self.new_text}


@dataclass
class ListIntent(Intent):
    action: ClassVar[IntentAction] = IntentAction.LIST


@dataclass
class UnclearIntent(Intent):
    action: ClassVar[IntentAction] = IntentAction.UNCLEAR

    suggestion: str | None = None

    def _fields(self) -> dict[str, Any]:
        return {"suggestion": self.suggestion}


INTENT_CLASSES: dict[IntentAction, type[Intent]] = {
    IntentAction.CREATE: CreateIntent,
    IntentAction.COMPLETE: CompleteIntent,
    IntentAction.UPDATE: UpdateIntent,
    IntentAction.DELETE: DeleteIntent,
    IntentAction.LIST: ListIntent,
    IntentAction.UNCLEAR: UnclearIntent,
}


@dataclass
class TranscriptionResult:
    """Result from speech recognition."""

    text: str
    confidence: float = 0.0
    source: str = "none"
    language: str = "en"
    duration_ms: int = 0
    processing_time_ms: int = 0

    @property
    def is_empty(self) -> bool:
        return not self.text.strip()

    def to_dict(self) -> dict[str, Any]:
        return {
            "text": self.text,
            "confidence": self.confidence,
            "source": self.source,
            "language": self.language,
            "duration_ms": self.duration_ms,
            "processing_time_ms": self.processing_time_ms,
        }


@dataclass
class CommandResult:
    """Result from executing a voice command against the task store."""

    success: bool
    message: str
    action: IntentAction = IntentAction.UNCLEAR
    task_id: str | None = None
    tasks: list[Task] | None = None
    stats: dict[str, int] | None = None
    count: int | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "success": self.success,
            "message": self.message,
            "action": self.action.value,
        }
        if self.task_id is not None:
            data["task_id"] = self.task_id
        if self.tasks is not None:
            data["tasks"] = [t.to_dict() for t in self.tasks]
        if self.stats is not None:
            data["stats"] = self.stats
        if self.count is not None:
            data["count"] = self.count
        if self.error is not None:
            data["error"] = self.error
        return data


@dataclass
class VoiceResponse:
    """Everything the orchestrator hands back for one command."""

    transcribed_text: str
    intent: Intent
    result: CommandResult
    collection_id: str | None = None
    audio_base64: str | None = None
    transcription: TranscriptionResult | None = None
    timings_ms: dict[str, int] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return self.result.success

    def to_dict(self) -> dict[str, Any]:
        return {
            "transcribed_text": self.transcribed_text,
            "intent": self.intent.to_dict(),
            "result": self.result.to_dict(),
            "collection_id": self.collection_id,
            "audio_base64": self.audio_base64,
            "timings_ms": self.timings_ms,
        }
