"""
Pydantic models for VoxTask API request/response types.

Wire names are camelCase (``audioBase64``, ``returnAudio``); Python code uses
the snake_case field names. Both are accepted on input.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from voxtask.tasks.models import Task
from voxtask.voice.models import CommandResult, VoiceResponse
from voxtask.voice.recognition.base import DEFAULT_MIME_TYPE


class CamelModel(BaseModel):
    """Base model serialized with camelCase aliases."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        protected_namespaces=(),
    )


# =============================================================================
# Task Models
# =============================================================================


class TaskModel(CamelModel):
    """A task as shown to clients."""

    id: str
    text: str
    status: str
    priority: str
    category: str
    plan_date: date | None = None
    due_date: date | None = None
    created_at: datetime | None = None

    @classmethod
    def from_task(cls, task: Task) -> TaskModel:
        return cls(**task.to_dict())


class TaskListResponse(CamelModel):
    """Tasks in scope with counts."""

    success: bool = True
    tasks: list[TaskModel] = Field(default_factory=list)
    stats: dict[str, int] = Field(default_factory=dict)
    collection_id: str | None = None


# =============================================================================
# Voice Models
# =============================================================================


class VoiceCommandRequest(CamelModel):
    """Request model for processing a spoken or typed command."""

    text: str | None = Field(None, max_length=2000, description="Typed command")
    audio_base64: str | None = Field(None, description="Base64 audio when no text is given")
    language: str = Field(default="en")
    mime_type: str = Field(default=DEFAULT_MIME_TYPE)
    return_audio: bool = Field(default=False, description="Synthesize a spoken reply")
    voice_id: str | None = None
    model_id: str | None = None
    current_list_id: str | None = None


class CommandResultModel(CamelModel):
    """Outcome of executing a command against the task store."""

    success: bool
    message: str
    action: str
    task_id: str | None = None
    tasks: list[TaskModel] | None = None
    stats: dict[str, int] | None = None
    count: int | None = None

    @classmethod
    def from_result(cls, result: CommandResult) -> CommandResultModel:
        return cls(
            success=result.success,
            message=result.message,
            action=result.action.value,
            task_id=result.task_id,
            tasks=[TaskModel.from_task(t) for t in result.tasks] if result.tasks is not None else None,
            stats=result.stats,
            count=result.count,
        )


class VoiceCommandResponse(CamelModel):
    """Response model for ``POST /api/voice/command``."""

    success: bool
    transcribed_text: str
    intent: dict[str, Any]
    result: CommandResultModel
    audio_response_base64: str | None = None
    collection_id: str | None = None
    timings_ms: dict[str, int] = Field(default_factory=dict)

    @classmethod
    def from_voice_response(cls, response: VoiceResponse) -> VoiceCommandResponse:
        # Handled commands are a success at this level; soft failures live in result
        return cls(
            success=True,
            transcribed_text=response.transcribed_text,
            intent={to_camel(k): v for k, v in response.intent.to_dict().items()},
            result=CommandResultModel.from_result(response.result),
            audio_response_base64=response.audio_base64,
            collection_id=response.collection_id,
            timings_ms=response.timings_ms,
        )


def serialize_voice_response(response: VoiceResponse) -> dict[str, Any]:
    """JSON-ready camelCase payload, shared by HTTP and WebSocket replies."""
    return VoiceCommandResponse.from_voice_response(response).model_dump(
        mode="json", by_alias=True, exclude_none=True
    )


class TranscriptionResponse(CamelModel):
    """Response model for ``POST /api/voice/transcribe``."""

    success: bool
    text: str
    confidence: float
    source: str
    language: str
    duration_ms: int = 0
    processing_time_ms: int = 0


class TTSRequest(CamelModel):
    """Request model for TTS generation."""

    text: str = Field(..., min_length=1, max_length=4096)
    voice_id: str | None = None
    model_id: str | None = None


class TTSResponse(CamelModel):
    success: bool
    audio_base64: str | None = None
    mime_type: str | None = None
    use_browser_tts: bool = False
    text: str | None = None
    error: str | None = None


# =============================================================================
# Utility Models
# =============================================================================


class HealthCheck(BaseModel):
    """Health check response."""

    status: str = Field(default="healthy", description="Overall system status")
    version: str = Field(default="0.1.0", description="API version")
    timestamp: datetime = Field(default_factory=datetime.now, description="Check timestamp")
    services: dict[str, str] = Field(default_factory=dict, description="Individual service statuses")


class ErrorResponse(BaseModel):
    """Standard error response."""

    success: bool = False
    error: str = Field(..., description="Error message")
    code: str = Field(default="INTERNAL_ERROR", description="Error code")
