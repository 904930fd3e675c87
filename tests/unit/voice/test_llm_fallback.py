"""Tests for the LLM intent fallback.

The Anthropic client is replaced with a mock; nothing leaves the process.
"""

import asyncio
from datetime import date
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import anthropic
import httpx
import pytest

from voxtask.tasks.models import Category, Priority
from voxtask.voice.models import (
    ALL_TASKS,
    CompleteIntent,
    CreateIntent,
    DeleteIntent,
    IntentAction,
    IntentSource,
    UpdateIntent,
)
from voxtask.voice.parser.llm_fallback import (
    LLMFallback,
    build_prompt,
    extract_json_object,
    heuristic_intent,
    parse_llm_output,
)

TODAY = date(2024, 3, 15)


def mock_client(reply: str | None = None, side_effect=None) -> MagicMock:
    """Anthropic client whose messages.create returns ``reply``."""
    client = MagicMock()
    if side_effect is not None:
        client.messages.create = AsyncMock(side_effect=side_effect)
    else:
        client.messages.create = AsyncMock(
            return_value=SimpleNamespace(content=[SimpleNamespace(text=reply)])
        )
    return client


# =============================================================================
# Output Parsing
# =============================================================================


class TestParseOutput:
    def test_create(self):
        raw = '{"action": "create", "taskText": "buy oat milk", "priority": "high", "category": "shopping", "confidence": 0.85}'
        intent = parse_llm_output(raw, "get oat milk urgently", TODAY)
        assert isinstance(intent, CreateIntent)
        assert intent.task_text == "buy oat milk"
        assert intent.priority is Priority.HIGH
        assert intent.category is Category.SHOPPING
        assert intent.confidence == pytest.approx(0.85)
        assert intent.source is IntentSource.LLM

    def test_markdown_fence_stripped(self):
        raw = '```json\n{"action": "complete", "targetTask": "the dentist", "confidence": 0.9}\n```'
        intent = parse_llm_output(raw, "dentist sorted", TODAY)
        assert isinstance(intent, CompleteIntent)
        assert intent.target == "dentist"

    def test_surrounding_prose_ignored(self):
        raw = 'Sure! Here you go: {"action": "delete", "targetTask": "all"} Hope that helps {}'
        intent = parse_llm_output(raw, "wipe the list", TODAY)
        assert isinstance(intent, DeleteIntent)
        assert intent.target == ALL_TASKS

    def test_update(self):
        raw = '{"action": "update", "targetTask": "gym", "newText": "yoga", "confidence": 0.8}'
        intent = parse_llm_output(raw, "swap gym for yoga", TODAY)
        assert isinstance(intent, UpdateIntent)
        assert (intent.target, intent.new_text) == ("gym", "yoga")

    def test_null_strings_are_missing(self):
        raw = '{"action": "complete", "targetTask": "null"}'
        intent = parse_llm_output(raw, "done", TODAY)
        assert intent.target is None

    def test_default_confidence(self):
        intent = parse_llm_output('{"action": "list"}', "anything left", TODAY)
        assert intent.action is IntentAction.LIST
        assert intent.confidence == pytest.approx(0.7)

    def test_confidence_clamped(self):
        intent = parse_llm_output('{"action": "list", "confidence": 7}', "what's left", TODAY)
        assert intent.confidence == 1.0

    def test_unknown_action_is_unclear(self):
        intent = parse_llm_output('{"action": "dance"}', "dance", TODAY)
        assert intent.action is IntentAction.UNCLEAR

    def test_due_date_from_command(self):
        intent = parse_llm_output('{"action": "create", "taskText": "dentist"}', "dentist tomorrow", TODAY)
        assert intent.due_date == date(2024, 3, 16)

    @pytest.mark.parametrize("raw", ["no json here", "{not valid json}", "[1, 2, 3]", ""])
    def test_unusable_output(self, raw: str):
        assert parse_llm_output(raw, "x", TODAY) is None


class TestExtractJsonObject:
    def test_braces_inside_strings(self):
        text = 'prefix {"taskText": "fix {curly} braces", "n": {"a": 1}} suffix'
        assert extract_json_object(text) == '{"taskText": "fix {curly} braces", "n": {"a": 1}}'

    def test_unbalanced(self):
        assert extract_json_object('{"a": 1') is None


class TestHeuristic:
    @pytest.mark.parametrize("text,action", [
        ("what is left", IntentAction.LIST),
        ("finish the slides", IntentAction.COMPLETE),
        ("remove gym", IntentAction.DELETE),
        ("change gym to yoga", IntentAction.UPDATE),
        ("add call mom", IntentAction.CREATE),
    ])
    def test_actions(self, text: str, action: IntentAction):
        intent = heuristic_intent(text)
        assert intent.action is action
        assert intent.confidence == pytest.approx(0.4)
        assert intent.source is IntentSource.HEURISTIC

    def test_nothing_matches(self):
        intent = heuristic_intent("blorp")
        assert intent.action is IntentAction.UNCLEAR
        assert intent.confidence == pytest.approx(0.2)


def test_prompt_contains_command_and_context():
    prompt = build_prompt('scratch the "dentist" thing', {"current_list_id": "db-42"}, TODAY)
    assert "scratch the 'dentist' thing" in prompt
    assert "db-42" in prompt
    assert "2024-03-15" in prompt


# =============================================================================
# Client Calls
# =============================================================================


class TestLLMFallback:
    def test_unavailable_without_key(self, monkeypatch):
        monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
        assert not LLMFallback({}).is_available

    def test_disabled(self):
        assert not LLMFallback({"enabled": False}, client=mock_client("{}")).is_available

    def test_available_with_client(self):
        assert LLMFallback({}, client=mock_client("{}")).is_available

    @pytest.mark.asyncio
    async def test_classify(self):
        client = mock_client('{"action": "complete", "targetTask": "milk", "confidence": 0.9}')
        fallback = LLMFallback({"model": "test-model"}, client=client)

        intent = await fallback.classify("milk's sorted", {"current_list_id": "abc"}, TODAY)

        assert isinstance(intent, CompleteIntent)
        assert intent.target == "milk"
        kwargs = client.messages.create.call_args.kwargs
        assert kwargs["model"] == "test-model"
        assert "milk's sorted" in kwargs["messages"][0]["content"]

    @pytest.mark.asyncio
    async def test_api_error_uses_heuristic(self):
        error = anthropic.APIConnectionError(request=httpx.Request("POST", "https://api.anthropic.com/v1/messages"))
        fallback = LLMFallback({}, client=mock_client(side_effect=error))

        intent = await fallback.classify("remove gym")

        assert intent.action is IntentAction.DELETE
        assert intent.source is IntentSource.HEURISTIC

    @pytest.mark.asyncio
    async def test_timeout_uses_heuristic(self):
        async def slow(**kwargs):
            await asyncio.sleep(1)

        fallback = LLMFallback({"timeout_seconds": 0.01}, client=mock_client(side_effect=slow))

        intent = await fallback.classify("blorp")

        assert intent.action is IntentAction.UNCLEAR
        assert intent.source is IntentSource.HEURISTIC

    @pytest.mark.asyncio
    async def test_garbage_reply_uses_heuristic(self):
        fallback = LLMFallback({}, client=mock_client("I am not sure what you mean."))
        intent = await fallback.classify("show me what's left")
        assert intent.action is IntentAction.LIST
        assert intent.source is IntentSource.HEURISTIC

    @pytest.mark.asyncio
    async def test_reply_without_text_block_uses_heuristic(self):
        client = MagicMock()
        client.messages.create = AsyncMock(
            return_value=SimpleNamespace(content=[SimpleNamespace(type="tool_use", input={})])
        )
        fallback = LLMFallback({}, client=client)

        intent = await fallback.classify("remove gym")

        assert intent.action is IntentAction.DELETE
        assert intent.source is IntentSource.HEURISTIC

    @pytest.mark.asyncio
    async def test_text_after_other_blocks(self):
        client = MagicMock()
        client.messages.create = AsyncMock(
            return_value=SimpleNamespace(
                content=[
                    SimpleNamespace(type="thinking", thinking="..."),
                    SimpleNamespace(type="text", text='{"action": "list", "confidence": 0.9}'),
                ]
            )
        )
        fallback = LLMFallback({}, client=client)

        intent = await fallback.classify("what's on")

        assert intent.action is IntentAction.LIST
        assert intent.source is IntentSource.LLM
