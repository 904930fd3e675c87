"""Coordinates transcription providers with fallback chain.

Selects the preferred provider, falls back on failure. Never raises: empty,
oversized or untranscribable audio comes back as an empty zero-confidence
result and the caller decides what that means.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any

from voxtask.errors import TranscriptionError
from voxtask.voice import load_voice_config
from voxtask.voice.models import TranscriptionResult
from voxtask.voice.recognition.base import DEFAULT_MIME_TYPE, BaseTranscriber

logger = logging.getLogger(__name__)

DEFAULT_MAX_AUDIO_BYTES = 25 * 1024 * 1024  # Whisper upload limit
DEFAULT_TIMEOUT_SECONDS = 30.0


class TranscriptionCoordinator:
    """Manages transcription provider selection and fallback.

    Priority: requested source → recognition.preferred → recognition.fallback_chain
    """

    def __init__(
        self,
        config: dict[str, Any] | None = None,
        providers: dict[str, BaseTranscriber] | None = None,
    ):
        if config is None:
            config = load_voice_config()
        self._config = config.get("recognition", {})
        self.timeout = float(config.get("timeouts", {}).get("transcription_seconds", DEFAULT_TIMEOUT_SECONDS))
        self.max_audio_bytes = int(self._config.get("max_audio_bytes", DEFAULT_MAX_AUDIO_BYTES))
        self._providers: dict[str, BaseTranscriber] = providers if providers is not None else {}
        if providers is None:
            self._register_providers()

    def _register_providers(self) -> None:
        """Register available transcription providers."""
        from voxtask.voice.recognition.elevenlabs_adapter import ElevenLabsTranscriber
        from voxtask.voice.recognition.whisper_adapter import WhisperAPIAdapter

        self._providers["whisper_api"] = WhisperAPIAdapter(self._config.get("whisper", {}))
        self._providers["elevenlabs"] = ElevenLabsTranscriber(self._config.get("elevenlabs", {}))

    @property
    def available_providers(self) -> list[str]:
        """List providers that are currently usable."""
        return [name for name, provider in self._providers.items() if provider.is_available]

    def _empty(self, language: str) -> TranscriptionResult:
        return TranscriptionResult(text="", confidence=0.0, source="none", language=language)

    async def transcribe(
        self,
        audio_data: bytes,
        source: str | None = None,
        language: str = "en",
        mime_type: str = DEFAULT_MIME_TYPE,
    ) -> TranscriptionResult:
        """Transcribe audio with provider selection and fallback.

        Args:
            audio_data: Raw audio bytes.
            source: Preferred provider name (None = use config default).
            language: Language code for recognition.
            mime_type: Container format of ``audio_data``.

        Returns:
            TranscriptionResult from the first provider that produced text.
        """
        if not audio_data:
            return self._empty(language)
        if len(audio_data) > self.max_audio_bytes:
            logger.warning(f"Audio rejected: {len(audio_data)} bytes > {self.max_audio_bytes}")
            return self._empty(language)

        preferred = source or self._config.get("preferred", "whisper_api")

        # Build fallback chain
        fallback_chain = self._config.get("fallback_chain", ["elevenlabs"])
        providers_to_try = [preferred] + [p for p in fallback_chain if p != preferred]

        for i, provider_name in enumerate(providers_to_try):
            provider = self._providers.get(provider_name)
            if not provider or not provider.is_available:
                continue

            start = time.monotonic()
            try:
                result = await asyncio.wait_for(
                    provider.transcribe(audio_data, language=language, mime_type=mime_type),
                    timeout=self.timeout,
                )
            except asyncio.TimeoutError:
                logger.warning(f"Provider {provider_name} timed out after {self.timeout}s")
                continue
            except TranscriptionError as e:
                logger.warning(f"Provider {provider_name} failed: {e}")
                continue
            except Exception as e:
                logger.warning(f"Provider {provider_name} failed: {e}", exc_info=True)
                continue

            if not result.is_empty:
                if i > 0:
                    logger.info(f"Transcription fell back to {provider_name}")
                result.processing_time_ms = result.processing_time_ms or int((time.monotonic() - start) * 1000)
                return result

            logger.info(f"Provider {provider_name} returned an empty transcript")

        # All providers failed
        return self._empty(language)


# Module-level singleton
_coordinator: TranscriptionCoordinator | None = None


def get_transcription_coordinator() -> TranscriptionCoordinator:
    """Get or create the global TranscriptionCoordinator instance."""
    global _coordinator
    if _coordinator is None:
        _coordinator = TranscriptionCoordinator()
    return _coordinator
