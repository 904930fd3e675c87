"""ElevenLabs speech-to-text provider.

API Documentation: https://elevenlabs.io/docs/api-reference/speech-to-text
"""

from __future__ import annotations

import logging
import os
import time
from typing import Any

import httpx

from voxtask.errors import TranscriptionError
from voxtask.voice.models import TranscriptionResult
from voxtask.voice.recognition.base import DEFAULT_MIME_TYPE, BaseTranscriber, filename_for

logger = logging.getLogger(__name__)

ELEVENLABS_API_BASE = "https://api.elevenlabs.io/v1"


class ElevenLabsTranscriber(BaseTranscriber):
    """Transcribes through the ElevenLabs ``/speech-to-text`` endpoint."""

    def __init__(self, config: dict[str, Any] | None = None, client: httpx.AsyncClient | None = None):
        config = config or {}
        self.model_id = config.get("model_id", "scribe_v1")
        self._api_key = config.get("api_key") or os.environ.get("ELEVENLABS_API_KEY")
        self._api_base = config.get("api_base") or ELEVENLABS_API_BASE
        self._timeout = float(config.get("timeout_seconds", 60.0))

        # HTTP client (lazy init unless injected)
        self._client = client

    @property
    def name(self) -> str:
        return "elevenlabs"

    @property
    def is_available(self) -> bool:
        return bool(self._api_key) or self._client is not None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self._api_base,
                headers={"xi-api-key": self._api_key or ""},
                timeout=self._timeout,
            )
        return self._client

    async def transcribe(
        self,
        audio_data: bytes,
        language: str = "en",
        mime_type: str = DEFAULT_MIME_TYPE,
    ) -> TranscriptionResult:
        client = await self._get_client()
        data = {"model_id": self.model_id}
        if language:
            data["language_code"] = language.split("-")[0].lower()

        start = time.monotonic()
        try:
            response = await client.post(
                "/speech-to-text",
                data=data,
                files={"file": (filename_for(mime_type), audio_data, mime_type)},
            )
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"ElevenLabs STT error: {e.response.status_code} - {e.response.text}")
            raise TranscriptionError(f"ElevenLabs STT error: {e.response.status_code}") from e
        except httpx.RequestError as e:
            logger.error(f"ElevenLabs STT request error: {e}")
            raise TranscriptionError(f"ElevenLabs STT request error: {e}") from e
        except ValueError as e:
            raise TranscriptionError("ElevenLabs STT returned invalid JSON") from e

        words = payload.get("words") or []
        duration_ms = int(float(words[-1].get("end", 0)) * 1000) if words else 0

        return TranscriptionResult(
            text=(payload.get("text") or "").strip(),
            confidence=float(payload.get("language_probability") or 0.9),
            source=self.name,
            language=payload.get("language_code") or language,
            duration_ms=duration_ms,
            processing_time_ms=int((time.monotonic() - start) * 1000),
        )

    async def close(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
