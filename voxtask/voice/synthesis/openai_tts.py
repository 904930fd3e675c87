"""OpenAI text-to-speech provider."""

from __future__ import annotations

import logging
import os
from typing import Any

import openai

from voxtask.errors import SynthesisError
from voxtask.voice.synthesis.base import BaseSynthesizer

logger = logging.getLogger(__name__)


class OpenAISynthesizer(BaseSynthesizer):
    """Generate speech with the OpenAI TTS API."""

    # Available voices (OpenAI TTS)
    VOICES = {"alloy", "echo", "fable", "onyx", "nova", "shimmer"}

    def __init__(self, config: dict[str, Any] | None = None, client: openai.AsyncOpenAI | None = None):
        config = config or {}
        self.model = config.get("model", "tts-1")
        self.voice = config.get("voice", "alloy")
        self.speed = max(0.25, min(4.0, float(config.get("speed", 1.0))))
        self._api_key = config.get("api_key") or os.environ.get("OPENAI_API_KEY")
        self._client = client

    @property
    def name(self) -> str:
        return "openai"

    @property
    def is_available(self) -> bool:
        return self._client is not None or bool(self._api_key)

    def _get_client(self) -> openai.AsyncOpenAI:
        if self._client is None:
            self._client = openai.AsyncOpenAI(api_key=self._api_key)
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

        # ElevenLabs voice ids mean nothing here
        voice = voice_id if voice_id in self.VOICES else self.voice

        try:
            response = await self._get_client().audio.speech.create(
                model=model_id if model_id and model_id.startswith("tts-") else self.model,
                voice=voice,
                input=text,
                response_format="mp3",
                speed=self.speed,
            )
        except openai.APIError as e:
            logger.error(f"TTS API error: {e}")
            raise SynthesisError(f"TTS API error: {str(e)[:100]}") from e

        return response.read()
