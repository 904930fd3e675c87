"""
ElevenLabs text-to-speech provider.

API Documentation: https://elevenlabs.io/docs/api-reference/text-to-speech
"""

from __future__ import annotations

import logging
import os
from typing import Any

import httpx

from voxtask.errors import SynthesisError
from voxtask.voice.synthesis.base import BaseSynthesizer

logger = logging.getLogger(__name__)

ELEVENLABS_API_BASE = "https://api.elevenlabs.io/v1"

DEFAULT_VOICE_ID = "EXAVITQu4vr4xnSDxMaL"
DEFAULT_MODEL_ID = "eleven_turbo_v2"


class ElevenLabsSynthesizer(BaseSynthesizer):
    """Speech synthesis through ``/text-to-speech/{voice_id}``."""

    max_chars = 5000

    def __init__(self, config: dict[str, Any] | None = None, client: httpx.AsyncClient | None = None):
        """
        Args:
            config: ``synthesis.elevenlabs`` section of args/voice.yaml
                - voice_id, model_id: defaults when the caller passes none
                - stability, similarity_boost: voice settings (0-1)
                - output_format: e.g. mp3_44100_128
        """
        config = config or {}
        self.voice_id = config.get("voice_id", DEFAULT_VOICE_ID)
        self.model_id = config.get("model_id", DEFAULT_MODEL_ID)
        self.stability = float(config.get("stability", 0.5))
        self.similarity_boost = float(config.get("similarity_boost", 0.75))
        self.output_format = config.get("output_format", "mp3_44100_128")
        self._api_key = config.get("api_key") or os.environ.get("ELEVENLABS_API_KEY")
        self._api_base = config.get("api_base") or ELEVENLABS_API_BASE
        self._timeout = float(config.get("timeout_seconds", 30.0))

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
                headers={
                    "xi-api-key": self._api_key or "",
                    "Accept": "audio/mpeg",
                },
                timeout=self._timeout,
            )
        return self._client

    async def synthesize(
        self,
        text: str,
        voice_id: str | None = None,
        model_id: str | None = None,
    ) -> bytes:
        if not text.strip():
            raise SynthesisError("Nothing to synthesize")
        if len(text) > self.max_chars:
            raise SynthesisError(f"Text too long ({len(text)} > {self.max_chars} chars)")

        client = await self._get_client()
        try:
            response = await client.post(
                f"/text-to-speech/{voice_id or self.voice_id}",
                params={"output_format": self.output_format},
                json={
                    "text": text,
                    "model_id": model_id or self.model_id,
                    "voice_settings": {
                        "stability": self.stability,
                        "similarity_boost": self.similarity_boost,
                    },
                },
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(f"ElevenLabs TTS error: {e.response.status_code} - {e.response.text[:200]}")
            raise SynthesisError(f"ElevenLabs TTS error: {e.response.status_code}") from e
        except httpx.RequestError as e:
            logger.error(f"ElevenLabs TTS request error: {e}")
            raise SynthesisError(f"ElevenLabs TTS request error: {e}") from e

        if not response.content:
            raise SynthesisError("ElevenLabs TTS returned no audio")
        return response.content

    async def close(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
