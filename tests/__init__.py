"""VoxTask Test Suite

Test organization:
- unit/: Unit tests for individual modules
  - voice/: intent rules, entity extraction, LLM fallback, classifier,
    command routing, orchestrator, sessions, speech providers
  - tasks/: shared matching rules, SQLite and Notion stores
- integration/: HTTP and WebSocket API tests and end-to-end command flows

Running tests:
    # All tests
    uv run pytest

    # Specific module
    uv run pytest tests/unit/voice/

    # Excluding integration tests
    uv run pytest -m "not integration"
"""
