"""Voice session management for streaming connections.

A ``VoiceSession`` holds the per-connection state (recording flag, buffered
audio chunks, language) and turns each incoming message into zero or more
reply messages. It knows nothing about WebSockets; ``voxtask/api/websocket.py``
moves the messages over the wire.

Incoming message types:
    start_recording {language?}, audio_chunk {audio}, stop_recording,
    cancel_recording, set_language {language}, text_command {text}, ping
    Binary frames are treated as audio chunks.

Reply types:
    connection, recording_started, chunk_received, processing,
    command_result, recording_cancelled, language_set, pong, error
"""

from __future__ import annotations

import base64
import binascii
import logging
import uuid
from collections.abc import Callable
from datetime import datetime
from typing import Any

from voxtask.errors import InputError
from voxtask.voice import load_voice_config
from voxtask.voice.models import VoiceResponse
from voxtask.voice.orchestrator import CommandOrchestrator
from voxtask.voice.recognition.base import DEFAULT_MIME_TYPE

logger = logging.getLogger(__name__)

DEFAULT_MAX_AUDIO_BYTES = 10 * 1024 * 1024
SUPPORTED_LANGUAGES = ["en", "es", "fr", "de", "it", "pt", "hi", "ja"]

Message = dict[str, Any]
Serializer = Callable[[VoiceResponse], dict[str, Any]]


def make_message(message_type: str, data: dict[str, Any] | None = None) -> Message:
    message: Message = {"type": message_type, "timestamp": datetime.now().isoformat()}
    if data is not None:
        message["data"] = data
    return message


def error_message(text: str) -> Message:
    return make_message("error", {"message": text})


class VoiceSession:
    """State and message handling for one connected client."""

    def __init__(
        self,
        orchestrator: CommandOrchestrator,
        session_id: str | None = None,
        language: str = "en",
        max_audio_bytes: int = DEFAULT_MAX_AUDIO_BYTES,
        mime_type: str = DEFAULT_MIME_TYPE,
        return_audio: bool = False,
        serialize: Serializer | None = None,
    ):
        self.orchestrator = orchestrator
        self.session_id = session_id or uuid.uuid4().hex[:12]
        self.language = language
        self.max_audio_bytes = max_audio_bytes
        self.mime_type = mime_type
        self.return_audio = return_audio
        self.serialize = serialize or VoiceResponse.to_dict
        self.recording = False
        self.chunks: list[bytes] = []
        self.last_activity = datetime.now()

    @property
    def buffered_bytes(self) -> int:
        return sum(len(chunk) for chunk in self.chunks)

    def discard(self) -> None:
        """Drop any buffered audio and stop recording."""
        self.chunks = []
        self.recording = False

    def welcome(self) -> Message:
        return make_message(
            "connection",
            {
                "sessionId": self.session_id,
                "status": "connected",
                "supportedLanguages": SUPPORTED_LANGUAGES,
            },
        )

    # -------------------------------------------------------------------------
    # Dispatch
    # -------------------------------------------------------------------------

    async def handle(self, message: Message) -> list[Message]:
        """Handle one JSON control message and return the replies to send."""
        self.last_activity = datetime.now()
        message_type = message.get("type")
        data = message.get("data") or {}
        if not isinstance(data, dict):
            data = {}

        if message_type == "start_recording":
            return self._start_recording(data.get("language"))
        if message_type == "audio_chunk":
            return self._audio_chunk(data.get("audio"))
        if message_type == "stop_recording":
            return await self._stop_recording()
        if message_type == "cancel_recording":
            self.discard()
            return [make_message("recording_cancelled")]
        if message_type == "set_language":
            self.language = data.get("language") or "en"
            return [make_message("language_set", {"language": self.language})]
        if message_type == "text_command":
            return await self._run([make_message("processing", {"stage": "classifying"})], text=data.get("text"))
        if message_type == "ping":
            return [make_message("pong")]

        logger.warning(f"Unknown message type: {message_type}")
        return [error_message(f"Unknown message type: {message_type}")]

    async def handle_binary(self, chunk: bytes) -> list[Message]:
        """Raw binary frames are audio chunks."""
        self.last_activity = datetime.now()
        return self._buffer(chunk)

    # -------------------------------------------------------------------------
    # Handlers
    # -------------------------------------------------------------------------

    def _start_recording(self, language: str | None) -> list[Message]:
        self.chunks = []
        self.recording = True
        if language:
            self.language = language
        logger.info(f"Recording started for session {self.session_id}")
        return [
            make_message(
                "recording_started",
                {"language": self.language, "maxAudioBytes": self.max_audio_bytes},
            )
        ]

    def _audio_chunk(self, audio: str | None) -> list[Message]:
        if not audio:
            return [error_message("Audio chunk is empty")]
        try:
            chunk = base64.b64decode(audio, validate=True)
        except (binascii.Error, ValueError):
            return [error_message("Audio chunk is not valid base64")]
        return self._buffer(chunk)

    def _buffer(self, chunk: bytes) -> list[Message]:
        if not self.recording:
            logger.debug(f"Ignoring audio for session {self.session_id}: not recording")
            return []
        if self.buffered_bytes + len(chunk) > self.max_audio_bytes:
            self.discard()
            return [error_message(f"Recording exceeds {self.max_audio_bytes} bytes and was discarded")]

        self.chunks.append(chunk)
        return [
            make_message(
                "chunk_received",
                {
                    "chunkSize": len(chunk),
                    "totalChunks": len(self.chunks),
                    "totalSize": self.buffered_bytes,
                },
            )
        ]

    async def _stop_recording(self) -> list[Message]:
        if not self.recording:
            return [error_message("No active recording to stop")]

        audio = b"".join(self.chunks)
        self.discard()
        if not audio:
            return [error_message("No audio received")]

        logger.info(f"Recording stopped for session {self.session_id}: {len(audio)} bytes")
        return await self._run([make_message("processing", {"stage": "transcribing"})], audio=audio)

    async def _run(
        self,
        replies: list[Message],
        text: str | None = None,
        audio: bytes | None = None,
    ) -> list[Message]:
        try:
            response = await self.orchestrator.process(
                text=text,
                audio=audio,
                language=self.language,
                mime_type=self.mime_type,
                return_audio=self.return_audio,
                session_id=self.session_id,
            )
        except InputError as e:
            replies.append(error_message(e.user_message))
            return replies

        replies.append(make_message("command_result", self.serialize(response)))
        return replies


class SessionManager:
    """Tracks the live sessions of one server process."""

    def __init__(self, config: dict[str, Any] | None = None):
        if config is None:
            config = load_voice_config().get("session", {})
        self.max_audio_bytes = int(config.get("max_audio_bytes", DEFAULT_MAX_AUDIO_BYTES))
        self.ping_interval = float(config.get("ping_interval_seconds", 30.0))
        self.return_audio = bool(config.get("return_audio", False))
        self.sessions: dict[str, VoiceSession] = {}

    def open(self, orchestrator: CommandOrchestrator, serialize: Serializer | None = None) -> VoiceSession:
        session = VoiceSession(
            orchestrator,
            max_audio_bytes=self.max_audio_bytes,
            return_audio=self.return_audio,
            serialize=serialize,
        )
        self.sessions[session.session_id] = session
        logger.info(f"Voice session opened: {session.session_id}. Total: {len(self.sessions)}")
        return session

    def close(self, session_id: str) -> None:
        session = self.sessions.pop(session_id, None)
        if session is not None:
            session.discard()
            logger.info(f"Voice session closed: {session_id}. Total: {len(self.sessions)}")

    def __len__(self) -> int:
        return len(self.sessions)
