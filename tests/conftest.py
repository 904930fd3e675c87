"""Shared test fixtures for VoxTask tests.

This module provides common fixtures used across all test modules:
- Database isolation with temporary files
- A SQLite task store bound to a fresh collection
- Fake speech providers and an orchestrator wired from them

Usage:
    async def test_something(sqlite_store):
        task = await sqlite_store.create("buy milk")
        ...
"""

from __future__ import annotations

from datetime import date
from pathlib import Path

import pytest

from voxtask.errors import SynthesisError, TranscriptionError
from voxtask.tasks.stores.base import CollectionRef
from voxtask.tasks.stores.sqlite_store import SQLiteTaskStore
from voxtask.voice.history import CommandHistory
from voxtask.voice.models import TranscriptionResult
from voxtask.voice.orchestrator import CommandOrchestrator
from voxtask.voice.parser.classifier import IntentClassifier
from voxtask.voice.parser.llm_fallback import LLMFallback
from voxtask.voice.recognition.base import DEFAULT_MIME_TYPE, BaseTranscriber
from voxtask.voice.recognition.transcriber import TranscriptionCoordinator
from voxtask.voice.synthesis import SpeechSynthesizer
from voxtask.voice.synthesis.base import BaseSynthesizer


# ─────────────────────────────────────────────────────────────────────────────
# Path Constants
# ─────────────────────────────────────────────────────────────────────────────

PROJECT_ROOT = Path(__file__).parent.parent

# Fixed "today" for date-sensitive parsing tests
TODAY = date(2024, 3, 15)


# ─────────────────────────────────────────────────────────────────────────────
# Fake Providers
# ─────────────────────────────────────────────────────────────────────────────


class FakeTranscriber(BaseTranscriber):
    """Returns a canned transcript and records what it was given."""

    def __init__(self, text: str = "", provider_name: str = "fake", fail: bool = False, available: bool = True):
        self.text = text
        self.provider_name = provider_name
        self.fail = fail
        self.available = available
        self.calls: list[tuple[bytes, str, str]] = []

    @property
    def name(self) -> str:
        return self.provider_name

    @property
    def is_available(self) -> bool:
        return self.available

    async def transcribe(
        self,
        audio_data: bytes,
        language: str = "en",
        mime_type: str = DEFAULT_MIME_TYPE,
    ) -> TranscriptionResult:
        self.calls.append((audio_data, language, mime_type))
        if self.fail:
            raise TranscriptionError(f"{self.provider_name} is down")
        return TranscriptionResult(text=self.text, confidence=0.9, source=self.provider_name, language=language)


class FakeSynthesizer(BaseSynthesizer):
    """Returns fixed bytes, or raises ``SynthesisError`` when told to fail."""

    def __init__(self, audio: bytes = b"ID3-fake-mp3", fail: bool = False, provider_name: str = "fake"):
        self.audio = audio
        self.fail = fail
        self.provider_name = provider_name
        self.calls: list[str] = []

    @property
    def name(self) -> str:
        return self.provider_name

    @property
    def is_available(self) -> bool:
        return True

    async def synthesize(self, text: str, voice_id: str | None = None, model_id: str | None = None) -> bytes:
        self.calls.append(text)
        if self.fail:
            raise SynthesisError(f"{self.provider_name} is down")
        return self.audio


# ─────────────────────────────────────────────────────────────────────────────
# Database Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def temp_db(tmp_path: Path) -> Path:
    """Path for a throwaway task database."""
    return tmp_path / "tasks.db"


@pytest.fixture
def voice_db(tmp_path: Path) -> Path:
    """Path for a throwaway voice history database."""
    return tmp_path / "voice.db"


@pytest.fixture
def collection() -> CollectionRef:
    return CollectionRef("Daily Tasks")


@pytest.fixture
def sqlite_store(temp_db: Path, collection: CollectionRef) -> SQLiteTaskStore:
    """SQLite task store on a temporary file."""
    return SQLiteTaskStore({"db_path": str(temp_db)}, collection=collection)


@pytest.fixture
def history(voice_db: Path) -> CommandHistory:
    return CommandHistory(db_path=voice_db)


# ─────────────────────────────────────────────────────────────────────────────
# Pipeline Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def rules_classifier() -> IntentClassifier:
    """Classifier with the LLM tier switched off."""
    return IntentClassifier(config={}, fallback=LLMFallback({"enabled": False}))


@pytest.fixture
def fake_transcriber() -> FakeTranscriber:
    return FakeTranscriber(text="add buy milk")


@pytest.fixture
def fake_synthesizer() -> FakeSynthesizer:
    return FakeSynthesizer()


@pytest.fixture
def pipeline_config() -> dict:
    return {
        "timeouts": {
            "transcription_seconds": 2,
            "store_seconds": 2,
            "synthesis_seconds": 2,
        }
    }


@pytest.fixture
def orchestrator(
    sqlite_store: SQLiteTaskStore,
    rules_classifier: IntentClassifier,
    fake_transcriber: FakeTranscriber,
    fake_synthesizer: FakeSynthesizer,
    history: CommandHistory,
    pipeline_config: dict,
) -> CommandOrchestrator:
    """Orchestrator over a temporary SQLite store with fake speech providers."""
    transcriber = TranscriptionCoordinator(
        config={"recognition": {"preferred": "fake", "fallback_chain": []}},
        providers={"fake": fake_transcriber},
    )
    synthesizer = SpeechSynthesizer(
        config={"provider": "fake"},
        providers={"fake": fake_synthesizer},
    )
    return CommandOrchestrator(
        sqlite_store,
        classifier=rules_classifier,
        transcriber=transcriber,
        synthesizer=synthesizer,
        history=history,
        config=pipeline_config,
    )
