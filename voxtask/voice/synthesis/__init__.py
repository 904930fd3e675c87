"""
Speech synthesis for spoken replies.

Usage:
    from voxtask.voice.synthesis import get_synthesizer

    synthesizer = get_synthesizer()
    audio = await synthesizer.synthesize('Added "buy milk" to your tasks')
"""

from __future__ import annotations

import logging
from typing import Any

from voxtask.errors import SynthesisError
from voxtask.voice import load_voice_config
from voxtask.voice.synthesis.base import BaseSynthesizer
from voxtask.voice.synthesis.elevenlabs import ElevenLabsSynthesizer
from voxtask.voice.synthesis.openai_tts import OpenAISynthesizer

logger = logging.getLogger(__name__)

__all__ = [
    "BaseSynthesizer",
    "ElevenLabsSynthesizer",
    "OpenAISynthesizer",
    "SpeechSynthesizer",
    "get_synthesizer",
]


class SpeechSynthesizer:
    """Tries the configured provider, then the fallback provider."""

    def __init__(
        self,
        config: dict[str, Any] | None = None,
        providers: dict[str, BaseSynthesizer] | None = None,
    ):
        if config is None:
            config = load_voice_config().get("synthesis", {})
        self._config = config
        if providers is None:
            providers = {
                "elevenlabs": ElevenLabsSynthesizer(config.get("elevenlabs", {})),
                "openai": OpenAISynthesizer(config.get("openai", {})),
            }
        self._providers = providers

    @property
    def is_available(self) -> bool:
        return any(p.is_available for p in self._providers.values())

    @property
    def available_providers(self) -> list[str]:
        return [name for name, p in self._providers.items() if p.is_available]

    async def synthesize(
        self,
        text: str,
        voice_id: str | None = None,
        model_id: str | None = None,
    ) -> bytes:
        preferred = self._config.get("provider", "elevenlabs")
        fallback = self._config.get("fallback")
        chain = [preferred] + ([fallback] if fallback and fallback != preferred else [])

        last_error: SynthesisError | None = None
        for name in chain:
            provider = self._providers.get(name)
            if not provider or not provider.is_available:
                continue
            try:
                return await provider.synthesize(text, voice_id=voice_id, model_id=model_id)
            except SynthesisError as e:
                logger.warning(f"Synthesis provider {name} failed: {e}")
                last_error = e

        if last_error is not None:
            raise last_error
        raise SynthesisError("No speech synthesis provider is configured")


# Module-level singleton
_synthesizer: SpeechSynthesizer | None = None


def get_synthesizer() -> SpeechSynthesizer:
    """Get or create the global SpeechSynthesizer instance."""
    global _synthesizer
    if _synthesizer is None:
        _synthesizer = SpeechSynthesizer()
    return _synthesizer
