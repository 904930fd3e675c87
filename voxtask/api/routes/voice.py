"""
Voice API Routes

Provides endpoints for the voice interface:
- POST /api/voice/command      - Text or audio command, classified and executed
- POST /api/voice/transcribe   - Server-side audio transcription
- POST /api/voice/tts          - Text-to-speech generation
- GET  /api/voice/history      - Recent command history
- GET  /api/voice/commands     - Example phrasings for each action
"""

from __future__ import annotations

import base64
import logging
from typing import Any

from fastapi import APIRouter, File, HTTPException, Query, Request, UploadFile

from voxtask.api.models import (
    TranscriptionResponse,
    TTSRequest,
    TTSResponse,
    VoiceCommandRequest,
    VoiceCommandResponse,
)
from voxtask.errors import SynthesisError
from voxtask.voice.orchestrator import CommandOrchestrator
from voxtask.voice.parser.intent_parser import AVAILABLE_COMMANDS
from voxtask.voice.recognition.base import DEFAULT_MIME_TYPE

logger = logging.getLogger(__name__)

router = APIRouter()


def _orchestrator(request: Request) -> CommandOrchestrator:
    return request.app.state.orchestrator


# =============================================================================
# Endpoints
# =============================================================================


@router.post(
    "/command",
    response_model=VoiceCommandResponse,
    response_model_by_alias=True,
    response_model_exclude_none=True,
)
async def process_voice_command(body: VoiceCommandRequest, request: Request) -> VoiceCommandResponse:
    """Transcribe (if needed), classify and execute one command.

    Soft failures (unclear command, task not found, store outage) are 200
    with ``success: false``. No text and no audio is a 400.
    """
    context: dict[str, Any] = {}
    if body.current_list_id:
        context["current_list_id"] = body.current_list_id

    response = await _orchestrator(request).process(
        text=body.text,
        audio_base64=body.audio_base64,
        language=body.language,
        mime_type=body.mime_type,
        return_audio=body.return_audio,
        voice_id=body.voice_id,
        model_id=body.model_id,
        context=context or None,
    )
    return VoiceCommandResponse.from_voice_response(response)


@router.post("/transcribe", response_model=TranscriptionResponse, response_model_by_alias=True)
async def transcribe_audio(
    request: Request,
    audio: UploadFile = File(...),
    provider: str | None = Query(default=None),
    language: str = Query(default="en"),
) -> TranscriptionResponse:
    """Transcribe an uploaded audio file (WebM, MP3, M4A, WAV, OGG)."""
    transcriber = _orchestrator(request).transcriber
    audio_bytes = await audio.read()

    if len(audio_bytes) > transcriber.max_audio_bytes:
        raise HTTPException(
            status_code=413,
            detail=f"Audio file too large (max {transcriber.max_audio_bytes // (1024 * 1024)}MB)",
        )

    result = await transcriber.transcribe(
        audio_bytes,
        source=provider,
        language=language,
        mime_type=audio.content_type or DEFAULT_MIME_TYPE,
    )
    return TranscriptionResponse(success=not result.is_empty, **result.to_dict())


@router.post("/tts", response_model=TTSResponse, response_model_by_alias=True, response_model_exclude_none=True)
async def generate_tts(body: TTSRequest, request: Request) -> TTSResponse:
    """Generate speech for a piece of text.

    Returns base64-encoded audio. When no provider is configured the client is
    told to use browser speech synthesis instead.
    """
    synthesizer = _orchestrator(request).synthesizer

    if not synthesizer.is_available:
        return TTSResponse(success=True, use_browser_tts=True, text=body.text)

    try:
        audio = await synthesizer.synthesize(body.text, voice_id=body.voice_id, model_id=body.model_id)
    except SynthesisError as e:
        logger.warning(f"TTS failed: {e}")
        return TTSResponse(success=False, error=e.user_message, use_browser_tts=True, text=body.text)

    return TTSResponse(
        success=True,
        audio_base64=base64.b64encode(audio).decode(),
        mime_type="audio/mpeg",
    )


@router.get("/history")
async def get_voice_history(
    request: Request,
    limit: int = Query(default=50, ge=1, le=200),
    intent: str | None = Query(default=None),
) -> dict[str, Any]:
    """Get voice command history."""
    commands = _orchestrator(request).history.recent(limit=limit, intent=intent)
    return {"success": True, "data": {"commands": commands, "count": len(commands)}}


@router.get("/commands")
async def list_voice_commands() -> dict[str, Any]:
    """List all available voice commands."""
    return {
        "success": True,
        "data": {
            "commands": AVAILABLE_COMMANDS,
            "total": sum(len(v) for v in AVAILABLE_COMMANDS.values()),
        },
    }
