"""OpenAI Whisper transcription provider."""

from __future__ import annotations

import io
import logging
import os
import time
from typing import Any

import openai

from voxtask.errors import TranscriptionError
from voxtask.voice.models import TranscriptionResult
from voxtask.voice.recognition.base import DEFAULT_MIME_TYPE, BaseTranscriber, filename_for

logger = logging.getLogger(__name__)


class WhisperAPIAdapter(BaseTranscriber):
    """Transcribes through the OpenAI audio transcription endpoint."""

    def __init__(self, config: dict[str, Any] | None = None, client: openai.AsyncOpenAI | None = None):
        config = config or {}
        self.model = config.get("model", "whisper-1")
        self._api_key = config.get("api_key") or os.environ.get("OPENAI_API_KEY")
        self._client = client

    @property
    def name(self) -> str:
        return "whisper_api"

    @property
    def is_available(self) -> bool:
        return self._client is not None or bool(self._api_key)

    def _get_client(self) -> openai.AsyncOpenAI:
        if self._client is None:
            self._client = openai.AsyncOpenAI(api_key=self._api_key)
        return self._client

    async def transcribe(
        self,
        audio_data: bytes,
        language: str = "en",
        mime_type: str = DEFAULT_MIME_TYPE,
    ) -> TranscriptionResult:
        """Transcribe audio via the Whisper API."""
        # Create a file-like object with proper name
        audio_file = io.BytesIO(audio_data)
        audio_file.name = filename_for(mime_type)

        kwargs: dict[str, Any] = {
            "model": self.model,
            "file": audio_file,
            "response_format": "verbose_json",
        }
        if language:
            # Whisper takes ISO-639-1 ("en"), not a locale ("en-US")
            kwargs["language"] = language.split("-")[0].lower()

        start = time.monotonic()
        try:
            response = await self._get_client().audio.transcriptions.create(**kwargs)
        except openai.APIError as e:
            logger.error(f"Whisper API error: {e}")
            raise TranscriptionError(f"Whisper API error: {str(e)[:100]}") from e

        duration = getattr(response, "duration", None) or 0
        return TranscriptionResult(
            text=(response.text or "").strip(),
            confidence=0.95,  # Whisper does not report confidence
            source=self.name,
            language=getattr(response, "language", None) or language,
            duration_ms=int(float(duration) * 1000),
            processing_time_ms=int((time.monotonic() - start) * 1000),
        )
