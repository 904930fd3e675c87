"""
Integration test fixtures for VoxTask.

Provides fixtures specific to integration testing:
- A FastAPI app built around the shared test orchestrator
- A TestClient that runs the app lifespan
"""

from collections.abc import Generator

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from voxtask.api.main import create_app
from voxtask.voice.session import SessionManager


def pytest_collection_modifyitems(items):
    """Mark everything under tests/integration as integration."""
    for item in items:
        if "integration" in item.path.parts:
            item.add_marker(pytest.mark.integration)


# ─────────────────────────────────────────────────────────────────────────────
# API Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def sessions() -> SessionManager:
    return SessionManager({"max_audio_bytes": 1024, "ping_interval_seconds": 30})


@pytest.fixture
def app(sqlite_store, orchestrator, sessions) -> FastAPI:
    """App wired to the temporary store and fake speech providers."""
    return create_app(store=sqlite_store, orchestrator=orchestrator, sessions=sessions, config={})


@pytest.fixture
def test_client(app) -> Generator[TestClient, None, None]:
    with TestClient(app) as client:
        yield client
