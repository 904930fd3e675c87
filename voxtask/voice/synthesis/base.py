"""Abstract base class for text-to-speech providers."""

from __future__ import annotations

from abc import ABC, abstractmethod


class BaseSynthesizer(ABC):
    """Abstract base for all speech synthesis providers.

    ``synthesize`` returns encoded audio bytes or raises ``SynthesisError``.
    """

    # Longest text a provider accepts in one request
    max_chars: int = 4096

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider identifier (e.g. 'elevenlabs', 'openai')."""

    @property
    @abstractmethod
    def is_available(self) -> bool:
        """Whether this provider is currently usable."""

    @property
    def mime_type(self) -> str:
        return "audio/mpeg"

    @abstractmethod
    async def synthesize(
        self,
        text: str,
        voice_id: str | None = None,
        model_id: str | None = None,
    ) -> bytes:
        """Convert text to speech audio."""
