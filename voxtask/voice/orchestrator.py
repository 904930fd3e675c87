"""Command orchestrator: transcribe -> classify -> execute -> respond.

One call to ``CommandOrchestrator.process`` handles one spoken or typed
command end to end. Each stage can exit early with a failed result; only
``InputError`` (nothing to work with) and genuinely unexpected exceptions
escape to the caller.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import logging
import time
import uuid
from typing import Any

from voxtask.errors import ClassificationAmbiguity, InputError, StoreError, SynthesisError
from voxtask.logging_config import bind_command_context, clear_command_context
from voxtask.tasks.models import TaskScope
from voxtask.tasks.stores.base import TaskStore
from voxtask.voice import load_voice_config
from voxtask.voice.commands.task_commands import CommandContext
from voxtask.voice.history import CommandHistory, get_history
from voxtask.voice.models import (
    CommandResult,
    Intent,
    IntentAction,
    TranscriptionResult,
    VoiceResponse,
)
from voxtask.voice.parser.classifier import IntentClassifier, get_classifier
from voxtask.voice.parser.command_router import CommandRouter, create_default_router
from voxtask.voice.recognition.base import DEFAULT_MIME_TYPE
from voxtask.voice.recognition.transcriber import (
    TranscriptionCoordinator,
    get_transcription_coordinator,
)
from voxtask.voice.synthesis import SpeechSynthesizer, get_synthesizer

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUTS = {
    "transcription_seconds": 30.0,
    "store_seconds": 15.0,
    "synthesis_seconds": 20.0,
}


def decode_audio(audio_base64: str) -> bytes:
    """Decode a base64 audio payload, tolerating a ``data:`` URL prefix."""
    payload = audio_base64.strip()
    if payload.startswith("data:") and "," in payload:
        payload = payload.split(",", 1)[1]
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise InputError(f"Invalid base64 audio: {e}", user_message="Audio could not be decoded") from e


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


class CommandOrchestrator:
    """Runs one command through the whole pipeline.

    Collaborators are injected; anything left as None is taken from the
    module-level singletons at construction time.
    """

    def __init__(
        self,
        store: TaskStore,
        classifier: IntentClassifier | None = None,
        transcriber: TranscriptionCoordinator | None = None,
        synthesizer: SpeechSynthesizer | None = None,
        router: CommandRouter | None = None,
        history: CommandHistory | None = None,
        config: dict[str, Any] | None = None,
    ):
        if config is None:
            config = load_voice_config()
        timeouts = {**DEFAULT_TIMEOUTS, **config.get("timeouts", {})}

        self.store = store
        self.classifier = classifier or get_classifier()
        self.transcriber = transcriber or get_transcription_coordinator()
        self.synthesizer = synthesizer or get_synthesizer()
        self.router = router or create_default_router(timeout=float(timeouts["store_seconds"]))
        self.history = history or get_history()
        self.transcription_timeout = float(timeouts["transcription_seconds"])
        self.store_timeout = float(timeouts["store_seconds"])
        self.synthesis_timeout = float(timeouts["synthesis_seconds"])

    async def process(
        self,
        text: str | None = None,
        audio: bytes | None = None,
        audio_base64: str | None = None,
        language: str = "en",
        mime_type: str = DEFAULT_MIME_TYPE,
        return_audio: bool = False,
        voice_id: str | None = None,
        model_id: str | None = None,
        context: dict[str, Any] | None = None,
        session_id: str | None = None,
    ) -> VoiceResponse:
        """Process one command given as text, raw audio bytes or base64 audio.

        Raises:
            InputError: no usable text or audio was supplied.
        """
        command_id = uuid.uuid4().hex[:12]
        bind_command_context(command_id=command_id, session_id=session_id)
        try:
            return await self._process(
                text=text,
                audio=audio,
                audio_base64=audio_base64,
                language=language,
                mime_type=mime_type,
                return_audio=return_audio,
                voice_id=voice_id,
                model_id=model_id,
                context=context,
                session_id=session_id,
            )
        finally:
            clear_command_context()

    async def _process(
        self,
        text: str | None,
        audio: bytes | None,
        audio_base64: str | None,
        language: str,
        mime_type: str,
        return_audio: bool,
        voice_id: str | None,
        model_id: str | None,
        context: dict[str, Any] | None,
        session_id: str | None,
    ) -> VoiceResponse:
        started = time.monotonic()
        timings: dict[str, int] = {}

        # Stage 1: transcribe
        transcription: TranscriptionResult | None = None
        command_text = (text or "").strip()
        if not command_text:
            if audio is None and audio_base64:
                audio = decode_audio(audio_base64)
            if audio:
                stage = time.monotonic()
                transcription = await self._transcribe(audio, language, mime_type)
                timings["transcription"] = _elapsed_ms(stage)
                command_text = transcription.text.strip()
        if not command_text:
            raise InputError("No command provided")

        logger.info(f"Processing command: {command_text!r}")

        # Stage 2: classify
        stage = time.monotonic()
        intent = await self.classifier.classify(command_text, context)
        timings["classification"] = _elapsed_ms(stage)
        logger.info(
            f"Classified as {intent.action.value} "
            f"({intent.source.value}, confidence {intent.confidence:.2f})"
        )

        # Stage 3: execute
        stage = time.monotonic()
        collection_id = self.store.collection.collection_id
        if intent.is_unclear:
            result = CommandResult(
                success=False,
                message=ClassificationAmbiguity.user_message,
                action=IntentAction.UNCLEAR,
                error="unclear",
            )
        else:
            result, collection_id = await self._execute(intent)
        timings["execution"] = _elapsed_ms(stage)

        # Stage 4: respond
        audio_response = None
        if return_audio:
            stage = time.monotonic()
            audio_response = await self._synthesize(result.message, voice_id, model_id)
            timings["synthesis"] = _elapsed_ms(stage)
        timings["total"] = _elapsed_ms(started)

        response = VoiceResponse(
            transcribed_text=command_text,
            intent=intent,
            result=result,
            collection_id=collection_id,
            audio_base64=audio_response,
            transcription=transcription,
            timings_ms=timings,
        )
        self.history.record(response, session_id=session_id)
        logger.info(f"Command finished: success={result.success} in {timings['total']}ms")
        return response

    async def _transcribe(self, audio: bytes, language: str, mime_type: str) -> TranscriptionResult:
        try:
            return await asyncio.wait_for(
                self.transcriber.transcribe(audio, language=language, mime_type=mime_type),
                timeout=self.transcription_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(f"Transcription timed out after {self.transcription_timeout}s")
            return TranscriptionResult(text="", confidence=0.0, language=language)

    async def _execute(self, intent: Intent) -> tuple[CommandResult, str | None]:
        try:
            collection_id = await asyncio.wait_for(
                self.store.ensure_collection(), timeout=self.store_timeout
            )
        except (StoreError, asyncio.TimeoutError) as e:
            logger.error(f"Could not resolve task collection: {e!r}")
            result = CommandResult(
                success=False,
                message=StoreError.user_message,
                action=intent.action,
                error="store_unavailable",
            )
            return result, None

        ctx = CommandContext(store=self.store, scope=TaskScope.today())
        return await self.router.route(intent, ctx), collection_id

    async def _synthesize(self, message: str, voice_id: str | None, model_id: str | None) -> str | None:
        """Spoken version of the reply, or None when synthesis is unavailable."""
        if not self.synthesizer.is_available:
            return None
        try:
            audio = await asyncio.wait_for(
                self.synthesizer.synthesize(message, voice_id=voice_id, model_id=model_id),
                timeout=self.synthesis_timeout,
            )
        except SynthesisError as e:
            logger.warning(f"Speech synthesis failed: {e}")
            return None
        except asyncio.TimeoutError:
            logger.warning(f"Speech synthesis timed out after {self.synthesis_timeout}s")
            return None
        return base64.b64encode(audio).decode()
