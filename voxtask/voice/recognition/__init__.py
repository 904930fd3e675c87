"""Voice recognition providers."""

from voxtask.voice.recognition.base import BaseTranscriber
from voxtask.voice.recognition.transcriber import TranscriptionCoordinator, get_transcription_coordinator

__all__ = [
    "BaseTranscriber",
    "TranscriptionCoordinator",
    "get_transcription_coordinator",
]
