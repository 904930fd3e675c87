"""VoxTask - voice-driven todo assistant.

Spoken or typed commands are transcribed, interpreted as a task intent and
applied against a task store, with an optional spoken reply.

Packages:
    voice/: transcription, intent parsing, command orchestration, sessions
    tasks/: task models and store backends (SQLite, Notion)
    api/: FastAPI application and WebSocket voice sessions
"""

from pathlib import Path

__version__ = "0.1.0"

# Path constants
PROJECT_ROOT = Path(__file__).parent.parent
DATA_DIR = PROJECT_ROOT / "data"
ARGS_DIR = PROJECT_ROOT / "args"

__all__ = [
    "ARGS_DIR",
    "DATA_DIR",
    "PROJECT_ROOT",
    "__version__",
]
