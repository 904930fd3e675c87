"""
Integration tests for the VoxTask HTTP and WebSocket API.

Tests the FastAPI routes:
- /api/health
- /api/voice/command, /transcribe, /tts, /history, /commands
- /api/tasks and collection invalidation
- /ws/voice streaming sessions

The app runs against a temporary SQLite store with fake speech providers.
"""

import base64
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from tests.conftest import FakeSynthesizer
from voxtask.api.main import create_app
from voxtask.voice.session import SessionManager
from voxtask.voice.synthesis import SpeechSynthesizer


# ─────────────────────────────────────────────────────────────────────────────
# Health
# ─────────────────────────────────────────────────────────────────────────────


class TestHealth:
    def test_reports_services(self, test_client):
        response = test_client.get("/api/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["services"] == {
            "store": "sqlite",
            "transcription": "fake",
            "synthesis": "fake",
            "llm_fallback": "unavailable",
        }


# ─────────────────────────────────────────────────────────────────────────────
# Voice Command Endpoint
# ─────────────────────────────────────────────────────────────────────────────


class TestVoiceCommand:
    """Tests for POST /api/voice/command."""

    def test_text_command(self, test_client):
        response = test_client.post("/api/voice/command", json={"text": "add buy milk"})

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["transcribedText"] == "add buy milk"
        assert data["intent"]["action"] == "create"
        assert data["intent"]["taskText"] == "buy milk"
        assert data["result"]["message"] == 'Added "buy milk" to your tasks'
        assert data["result"]["taskId"]
        assert data["collectionId"]
        assert "total" in data["timingsMs"]
        assert "audioResponseBase64" not in data

    def test_audio_command(self, test_client, fake_transcriber):
        payload = base64.b64encode(b"webm-bytes").decode()

        response = test_client.post(
            "/api/voice/command",
            json={"audioBase64": payload, "mimeType": "audio/ogg", "language": "en"},
        )

        assert response.status_code == 200
        assert response.json()["transcribedText"] == "add buy milk"
        assert fake_transcriber.calls == [(b"webm-bytes", "en", "audio/ogg")]

    def test_spoken_reply(self, test_client):
        response = test_client.post("/api/voice/command", json={"text": "show tasks", "returnAudio": True})
        assert base64.b64decode(response.json()["audioResponseBase64"]) == b"ID3-fake-mp3"

    def test_snake_case_accepted(self, test_client):
        response = test_client.post("/api/voice/command", json={"text": "show tasks", "return_audio": True})
        assert "audioResponseBase64" in response.json()

    def test_unclear_is_soft_failure(self, test_client):
        response = test_client.post("/api/voice/command", json={"text": "x"})

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["result"]["success"] is False
        assert data["intent"]["action"] == "unclear"

    def test_not_found_is_soft_failure(self, test_client):
        response = test_client.post("/api/voice/command", json={"text": "bought a unicorn"})

        assert response.status_code == 200
        assert response.json()["success"] is True
        assert response.json()["result"]["success"] is False
        assert response.json()["result"]["message"] == 'Couldn\'t find task "a unicorn"'

    @pytest.mark.parametrize("body", [{}, {"text": ""}, {"text": "   "}])
    def test_no_input_is_400(self, test_client, body):
        response = test_client.post("/api/voice/command", json=body)

        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "No command provided", "code": "INPUT_ERROR"}

    def test_bad_base64_is_400(self, test_client):
        response = test_client.post("/api/voice/command", json={"audioBase64": "%%%"})
        assert response.status_code == 400
        assert response.json()["error"] == "Audio could not be decoded"

    def test_unexpected_error_is_500(self, sqlite_store, sessions):
        orchestrator = MagicMock()
        orchestrator.store = sqlite_store
        orchestrator.process = AsyncMock(side_effect=RuntimeError("boom"))
        app = create_app(store=sqlite_store, orchestrator=orchestrator, sessions=sessions, config={})

        with TestClient(app, raise_server_exceptions=False) as client:
            response = client.post("/api/voice/command", json={"text": "add buy milk"})

        assert response.status_code == 500
        assert response.json()["error"] == "Internal server error"


# ─────────────────────────────────────────────────────────────────────────────
# Other Voice Endpoints
# ─────────────────────────────────────────────────────────────────────────────


class TestTranscribe:
    def test_upload(self, test_client):
        response = test_client.post(
            "/api/voice/transcribe",
            files={"audio": ("clip.webm", b"webm-bytes", "audio/webm")},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["text"] == "add buy milk"
        assert data["source"] == "fake"
        assert "processingTimeMs" in data

    def test_too_large(self, test_client, orchestrator):
        orchestrator.transcriber.max_audio_bytes = 4
        response = test_client.post(
            "/api/voice/transcribe",
            files={"audio": ("clip.webm", b"webm-bytes", "audio/webm")},
        )
        assert response.status_code == 413


class TestTTS:
    def test_generates_audio(self, test_client):
        response = test_client.post("/api/voice/tts", json={"text": "hello"})

        data = response.json()
        assert data["success"] is True
        assert base64.b64decode(data["audioBase64"]) == b"ID3-fake-mp3"
        assert data["mimeType"] == "audio/mpeg"

    def test_failure_falls_back_to_browser(self, test_client, orchestrator):
        orchestrator.synthesizer = SpeechSynthesizer(
            {"provider": "fake"}, providers={"fake": FakeSynthesizer(fail=True)}
        )

        data = test_client.post("/api/voice/tts", json={"text": "hello"}).json()

        assert data["success"] is False
        assert data["useBrowserTts"] is True
        assert data["text"] == "hello"

    def test_no_provider(self, test_client, orchestrator):
        orchestrator.synthesizer = SpeechSynthesizer({}, providers={})
        data = test_client.post("/api/voice/tts", json={"text": "hello"}).json()
        assert data == {"success": True, "useBrowserTts": True, "text": "hello"}

    def test_empty_text_rejected(self, test_client):
        assert test_client.post("/api/voice/tts", json={"text": ""}).status_code == 422


class TestHistoryAndCommands:
    def test_history(self, test_client):
        test_client.post("/api/voice/command", json={"text": "add buy milk"})
        test_client.post("/api/voice/command", json={"text": "show tasks"})

        data = test_client.get("/api/voice/history", params={"limit": 1}).json()

        assert data["success"] is True
        assert data["data"]["count"] == 1
        assert data["data"]["commands"][0]["intent"] == "list"

    def test_commands(self, test_client):
        data = test_client.get("/api/voice/commands").json()["data"]
        assert set(data["commands"]) == {"Create", "Complete", "Update", "Delete", "List"}
        assert data["total"] == sum(len(v) for v in data["commands"].values())


# ─────────────────────────────────────────────────────────────────────────────
# Tasks Endpoints
# ─────────────────────────────────────────────────────────────────────────────


class TestTasks:
    def test_list(self, test_client):
        test_client.post("/api/voice/command", json={"text": "add buy milk"})
        test_client.post("/api/voice/command", json={"text": "add file taxes urgent"})

        data = test_client.get("/api/tasks").json()

        assert data["success"] is True
        assert [t["text"] for t in data["tasks"]] == ["file taxes urgent", "buy milk"]
        assert data["tasks"][0]["priority"] == "high"
        assert "planDate" in data["tasks"][0]
        assert data["stats"] == {"total": 2, "todo": 2, "done": 0}

    def test_exclude_done(self, test_client):
        test_client.post("/api/voice/command", json={"text": "add buy milk"})
        test_client.post("/api/voice/command", json={"text": "bought milk"})

        data = test_client.get("/api/tasks", params={"scope": "all", "include_done": False}).json()

        assert data["tasks"] == []

    def test_bad_scope(self, test_client):
        assert test_client.get("/api/tasks", params={"scope": "yesterday"}).status_code == 422

    def test_invalidate_collection(self, test_client, sqlite_store):
        test_client.post("/api/voice/command", json={"text": "add buy milk"})
        collection_id = sqlite_store.collection.collection_id

        data = test_client.post("/api/tasks/collection/invalidate").json()

        assert data == {"success": True, "previousCollectionId": collection_id}
        assert not sqlite_store.collection.is_resolved
        # Next command resolves the same collection again
        test_client.post("/api/voice/command", json={"text": "show tasks"})
        assert sqlite_store.collection.collection_id == collection_id


# ─────────────────────────────────────────────────────────────────────────────
# WebSocket
# ─────────────────────────────────────────────────────────────────────────────


class TestVoiceWebSocket:
    def test_welcome(self, test_client):
        with test_client.websocket_connect("/ws/voice") as ws:
            welcome = ws.receive_json()

        assert welcome["type"] == "connection"
        assert welcome["data"]["status"] == "connected"

    def test_recording_session(self, test_client, sessions):
        with test_client.websocket_connect("/ws/voice") as ws:
            ws.receive_json()
            assert len(sessions) == 1

            ws.send_json({"type": "start_recording", "data": {"language": "en"}})
            assert ws.receive_json()["type"] == "recording_started"

            ws.send_bytes(b"webm-")
            assert ws.receive_json()["data"]["totalSize"] == 5
            ws.send_json({"type": "audio_chunk", "data": {"audio": base64.b64encode(b"bytes").decode()}})
            assert ws.receive_json()["data"]["totalChunks"] == 2

            ws.send_json({"type": "stop_recording"})
            assert ws.receive_json()["data"] == {"stage": "transcribing"}
            result = ws.receive_json()

        assert result["type"] == "command_result"
        assert result["data"]["transcribedText"] == "add buy milk"
        assert result["data"]["result"]["success"] is True
        assert len(sessions) == 0

    def test_text_command(self, test_client):
        with test_client.websocket_connect("/ws/voice") as ws:
            ws.receive_json()
            ws.send_json({"type": "text_command", "data": {"text": "show tasks"}})
            ws.receive_json()
            result = ws.receive_json()

        assert result["data"]["intent"]["action"] == "list"

    def test_soft_failure_is_handled(self, test_client):
        with test_client.websocket_connect("/ws/voice") as ws:
            ws.receive_json()
            ws.send_json({"type": "text_command", "data": {"text": "finish walking the dog"}})
            ws.receive_json()
            result = ws.receive_json()

        assert result["data"]["success"] is True
        assert result["data"]["result"]["success"] is False

    def test_invalid_frames(self, test_client):
        with test_client.websocket_connect("/ws/voice") as ws:
            ws.receive_json()
            ws.send_text("not json")
            assert ws.receive_json()["data"]["message"] == "Messages must be JSON"
            ws.send_text("[1, 2]")
            assert ws.receive_json()["data"]["message"] == "Messages must be JSON objects"
            ws.send_json({"type": "ping"})
            assert ws.receive_json()["type"] == "pong"


def test_session_limit_comes_from_manager(sqlite_store, orchestrator):
    app = create_app(
        store=sqlite_store,
        orchestrator=orchestrator,
        sessions=SessionManager({"max_audio_bytes": 4}),
        config={},
    )
    with TestClient(app) as client, client.websocket_connect("/ws/voice") as ws:
        ws.receive_json()
        ws.send_json({"type": "start_recording"})
        assert ws.receive_json()["data"]["maxAudioBytes"] == 4
        ws.send_bytes(b"too many bytes")
        assert ws.receive_json()["type"] == "error"
