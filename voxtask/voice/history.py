"""Voice command history.

Every processed command is written to the voice_commands table so that
transcription and classification accuracy can be reviewed later. Writes are
best-effort: a failing history log never fails the command.
"""

from __future__ import annotations

import logging
import sqlite3
import uuid
from contextlib import closing
from pathlib import Path
from typing import Any

from voxtask.voice import get_connection, load_voice_config
from voxtask.voice.models import VoiceResponse

logger = logging.getLogger(__name__)


class CommandHistory:
    """Append-only log of processed voice commands."""

    def __init__(self, db_path: Path | None = None, enabled: bool = True):
        self.db_path = db_path
        self.enabled = enabled

    def record(
        self,
        response: VoiceResponse,
        session_id: str | None = None,
        error_message: str | None = None,
    ) -> str | None:
        """Log one processed command. Returns the history id, or None if not written."""
        if not self.enabled:
            return None

        command_id = uuid.uuid4().hex[:12]
        transcription = response.transcription
        timings = response.timings_ms
        try:
            with closing(get_connection(self.db_path)) as conn:
                conn.execute(
                    """INSERT INTO voice_commands
                       (id, session_id, transcript, confidence, source, intent,
                        intent_source, intent_confidence, executed_successfully,
                        message, error_message, task_id, transcription_time_ms,
                        classification_time_ms, execution_time_ms)
                       VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                    (
                        command_id,
                        session_id,
                        response.transcribed_text,
                        transcription.confidence if transcription else 1.0,
                        transcription.source if transcription else "text",
                        response.intent.action.value,
                        response.intent.source.value,
                        response.intent.confidence,
                        response.result.success,
                        response.result.message,
                        error_message or response.result.error,
                        response.result.task_id,
                        timings.get("transcription"),
                        timings.get("classification"),
                        timings.get("execution"),
                    ),
                )
                conn.commit()
        except (sqlite3.Error, OSError) as e:
            logger.warning(f"Failed to log voice command: {e}")
            return None
        return command_id

    def recent(self, limit: int = 50, intent: str | None = None) -> list[dict[str, Any]]:
        """Most recent commands first."""
        query = "SELECT * FROM voice_commands"
        params: list[Any] = []

        if intent:
            query += " WHERE intent = ?"
            params.append(intent)

        query += " ORDER BY created_at DESC, rowid DESC LIMIT ?"
        params.append(limit)

        with closing(get_connection(self.db_path)) as conn:
            rows = conn.execute(query, params).fetchall()

        commands = []
        for row in rows:
            cmd = dict(row)
            cmd["executed_successfully"] = bool(cmd["executed_successfully"])
            commands.append(cmd)
        return commands


# Module-level singleton
_history: CommandHistory | None = None


def get_history() -> CommandHistory:
    """Get or create the global CommandHistory instance."""
    global _history
    if _history is None:
        config = load_voice_config().get("history", {})
        _history = CommandHistory(enabled=config.get("enabled", True))
    return _history
