"""Abstract base class for speech transcription providers."""

from __future__ import annotations

from abc import ABC, abstractmethod

from voxtask.voice.models import TranscriptionResult

# Container format assumed when the caller does not say
DEFAULT_MIME_TYPE = "audio/webm"

_EXTENSIONS = {
    "audio/webm": "webm",
    "audio/ogg": "ogg",
    "audio/mpeg": "mp3",
    "audio/mp3": "mp3",
    "audio/mp4": "m4a",
    "audio/m4a": "m4a",
    "audio/wav": "wav",
    "audio/x-wav": "wav",
    "audio/flac": "flac",
}


def filename_for(mime_type: str | None) -> str:
    """Upload filename whose extension matches the audio container."""
    base = (mime_type or DEFAULT_MIME_TYPE).split(";")[0].strip().lower()
    return f"recording.{_EXTENSIONS.get(base, 'webm')}"


class BaseTranscriber(ABC):
    """Abstract base for all transcription providers.

    Providers raise ``TranscriptionError`` on failure; the coordinator turns
    that into a fallback attempt.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider identifier (e.g. 'whisper_api', 'elevenlabs')."""

    @property
    @abstractmethod
    def is_available(self) -> bool:
        """Whether this provider is currently usable."""

    @abstractmethod
    async def transcribe(
        self,
        audio_data: bytes,
        language: str = "en",
        mime_type: str = DEFAULT_MIME_TYPE,
    ) -> TranscriptionResult:
        """Transcribe audio data to text."""
