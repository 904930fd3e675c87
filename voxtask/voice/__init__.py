"""Voice Interface - spoken and typed todo commands

Components:
    models.py: Intent union, TranscriptionResult, CommandResult
    recognition/: Speech-to-text providers and fallback coordinator
    synthesis/: Text-to-speech providers for spoken replies
    parser/: Tier 1 rules, entity extraction, Tier 2 LLM fallback, classifier
    commands/: Per-action task command handlers
    orchestrator.py: transcribe -> classify -> execute -> respond
    session.py: Per-connection audio buffering for the WebSocket surface
    history.py: Command history log

Usage:
    from voxtask.voice.orchestrator import CommandOrchestrator

    orchestrator = CommandOrchestrator(store)
    response = await orchestrator.process(text="add buy milk")
"""

import sqlite3
from pathlib import Path
from typing import Any

import yaml

from voxtask import ARGS_DIR, DATA_DIR

# Path constants
DB_PATH = DATA_DIR / "voice.db"
CONFIG_PATH = ARGS_DIR / "voice.yaml"


def load_voice_config() -> dict[str, Any]:
    """Load voice configuration from args/voice.yaml."""
    if CONFIG_PATH.exists():
        with open(CONFIG_PATH) as f:
            return yaml.safe_load(f) or {}
    return {}


def get_connection(db_path: Path | None = None) -> sqlite3.Connection:
    """Get database connection, creating tables on first use."""
    path = db_path or DB_PATH
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(path))
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    _ensure_tables(conn)
    return conn


def _ensure_tables(conn: sqlite3.Connection) -> None:
    """Create voice tables if they don't exist."""
    conn.executescript("""
        CREATE TABLE IF NOT EXISTS voice_commands (
            id TEXT PRIMARY KEY,
            session_id TEXT,
            transcript TEXT NOT NULL,
            confidence REAL,
            source TEXT DEFAULT 'text',
            intent TEXT,
            intent_source TEXT,
            intent_confidence REAL,
            executed_successfully BOOLEAN,
            message TEXT,
            error_message TEXT,
            task_id TEXT,
            created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
            transcription_time_ms INTEGER,
            classification_time_ms INTEGER,
            execution_time_ms INTEGER
        );

        CREATE INDEX IF NOT EXISTS idx_voice_commands_created
            ON voice_commands(created_at);
        CREATE INDEX IF NOT EXISTS idx_voice_commands_intent
            ON voice_commands(intent);
    """)
    conn.commit()


__all__ = [
    "CONFIG_PATH",
    "DB_PATH",
    "get_connection",
    "load_voice_config",
]
