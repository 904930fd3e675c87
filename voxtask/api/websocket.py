"""
WebSocket endpoint for streaming voice sessions.

Clients connect to ``/ws/voice``, send JSON control messages and audio
(base64 ``audio_chunk`` messages or raw binary frames), and receive JSON
replies. Message handling lives in ``voxtask.voice.session``; this module only
moves frames and keeps the connection alive.

Usage:
    Connect to ws://localhost:8080/ws/voice
    -> {"type": "start_recording", "data": {"language": "en"}}
    -> <binary audio frames>
    -> {"type": "stop_recording"}
    <- {"type": "command_result", "data": {...}}
"""

from __future__ import annotations

import asyncio
import json
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from voxtask.api.models import serialize_voice_response
from voxtask.voice.session import SessionManager, VoiceSession, error_message, make_message

logger = logging.getLogger(__name__)

ws_router = APIRouter()


async def _dispatch(session: VoiceSession, frame: dict) -> list[dict]:
    """Turn one received frame into replies."""
    if frame.get("bytes") is not None:
        return await session.handle_binary(frame["bytes"])

    text = frame.get("text")
    if text is None:
        return []
    try:
        message = json.loads(text)
    except json.JSONDecodeError:
        return [error_message("Messages must be JSON")]
    if not isinstance(message, dict):
        return [error_message("Messages must be JSON objects")]
    return await session.handle(message)


@ws_router.websocket("/ws/voice")
async def voice_websocket(websocket: WebSocket):
    """
    Voice session endpoint.

    One session per connection; its audio buffer is discarded on disconnect.
    The server sends a ping when the client has been quiet for the configured
    interval.
    """
    sessions: SessionManager = websocket.app.state.sessions
    orchestrator = websocket.app.state.orchestrator

    await websocket.accept()
    session = sessions.open(orchestrator, serialize=serialize_voice_response)
    await websocket.send_json(session.welcome())

    try:
        while True:
            try:
                frame = await asyncio.wait_for(websocket.receive(), timeout=sessions.ping_interval)
            except asyncio.TimeoutError:
                await websocket.send_json(make_message("ping"))
                continue

            if frame["type"] == "websocket.disconnect":
                break

            try:
                replies = await _dispatch(session, frame)
            except Exception as e:
                logger.error(f"Voice session {session.session_id} failed to handle a message: {e}", exc_info=True)
                replies = [error_message("Message processing failed")]

            for reply in replies:
                await websocket.send_json(reply)

    except WebSocketDisconnect:
        pass
    finally:
        sessions.close(session.session_id)
