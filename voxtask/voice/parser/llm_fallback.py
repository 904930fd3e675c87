"""
Intent Fallback - Tier 2 classification with an LLM

Called when the rules are unsure. Asks a cheap model (Haiku) for a single JSON
object describing the command and maps it onto the intent union. Any failure
(no key, timeout, API error, unparseable reply) drops to a reduced keyword
heuristic, and from there to ``UnclearIntent(confidence=0.2)``.

Usage:
    from voxtask.voice.parser.llm_fallback import LLMFallback

    fallback = LLMFallback({"timeout_seconds": 5})
    intent = await fallback.classify("scratch the dentist thing", {"current_list_id": "abc"})
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import re
from datetime import date
from typing import Any

import anthropic

from voxtask.tasks.models import Category, Priority
from voxtask.voice.models import (
    CompleteIntent,
    CreateIntent,
    DeleteIntent,
    Intent,
    IntentAction,
    IntentSource,
    ListIntent,
    UnclearIntent,
    UpdateIntent,
)
from voxtask.voice.parser.entity_extractor import extract_due_date
from voxtask.voice.parser.intent_parser import clean_task_text, target_fields

logger = logging.getLogger(__name__)

DEFAULT_FALLBACK_MODEL = "claude-haiku-4-5-20251001"
DEFAULT_TIMEOUT_SECONDS = 8.0
DEFAULT_CONFIDENCE = 0.7

INTENT_PROMPT = """You interpret spoken commands for a todo list app.

Command: "{command}"
Today's date: {today}
Current list: {list_id}

Decide what the user wants:
- create: add a new task
- complete: mark an existing task as done ("bought milk" completes "buy milk")
- update: change the text of an existing task
- delete: remove a task ("all" removes every task)
- list: show the tasks
- unclear: none of the above

Refer to existing tasks by the words the user used, or by position ("first", "last", "2").

Respond ONLY with a JSON object:
{{"action": "create|complete|update|delete|list|unclear", "taskText": "...", "targetTask": "...", "newText": "...", "priority": "high|medium|low", "category": "work|personal|shopping|email|other", "confidence": 0.0}}
Use null for fields that do not apply."""


def build_prompt(command: str, context: dict[str, Any] | None = None, today: date | None = None) -> str:
    context = context or {}
    return INTENT_PROMPT.format(
        command=command[:500].replace('"', "'"),
        today=(today or date.today()).isoformat(),
        list_id=context.get("current_list_id") or "default",
    )


def extract_json_object(text: str) -> str | None:
    """Return the first balanced ``{...}`` substring, ignoring braces inside strings."""
    start = text.find("{")
    if start == -1:
        return None

    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
        elif ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start:i + 1]
    return None


def _text_field(data: dict[str, Any], key: str) -> str | None:
    value = data.get(key)
    if value is None:
        return None
    value = str(value).strip()
    if not value or value.lower() in ("null", "none", "undefined"):
        return None
    return value


def _confidence(value: Any) -> float:
    try:
        return max(0.0, min(1.0, float(value)))
    except (TypeError, ValueError):
        return DEFAULT_CONFIDENCE


def parse_llm_output(raw_output: str, command: str, today: date | None = None) -> Intent | None:
    """Parse the model reply into an intent. ``None`` when it is unusable."""
    text = raw_output.strip()

    # Strip markdown code blocks
    if text.startswith("```"):
        lines = text.split("\n")
        lines = [l for l in lines if not l.strip().startswith("```")]
        text = "\n".join(lines).strip()

    json_str = extract_json_object(text)
    if json_str is None:
        return None

    try:
        data = json.loads(json_str)
    except json.JSONDecodeError:
        return None

    if not isinstance(data, dict):
        return None

    try:
        action = IntentAction(str(data.get("action", "")).strip().lower())
    except ValueError:
        action = IntentAction.UNCLEAR

    common = {
        "confidence": _confidence(data.get("confidence", DEFAULT_CONFIDENCE)),
        "raw_text": command,
        "source": IntentSource.LLM,
    }

    if action is IntentAction.CREATE:
        category = _text_field(data, "category")
        return CreateIntent(
            task_text=clean_task_text(_text_field(data, "taskText") or ""),
            priority=Priority.parse(_text_field(data, "priority")),
            category=Category.parse(category) if category else None,
            due_date=extract_due_date(command, today),
            **common,
        )
    if action is IntentAction.COMPLETE:
        return CompleteIntent(**target_fields(_text_field(data, "targetTask")), **common)
    if action is IntentAction.DELETE:
        return DeleteIntent(**target_fields(_text_field(data, "targetTask"), allow_all=True), **common)
    if action is IntentAction.UPDATE:
        return UpdateIntent(
            **target_fields(_text_field(data, "targetTask")),
            new_text=_text_field(data, "newText"),
            **common,
        )
    if action is IntentAction.LIST:
        return ListIntent(**common)
    return UnclearIntent(**common)


def heuristic_intent(command: str) -> Intent:
    """Reduced keyword rules used when the model gives no usable answer."""
    text = " ".join(command.lower().split()).rstrip(".!?")
    common = {"confidence": 0.4, "raw_text": command, "source": IntentSource.HEURISTIC}

    if re.search(r"\b(?:show|list|what)\b", text):
        return ListIntent(**common)

    match = re.search(r"\b(?:complete|finish|done\s+with|bought|finished)\s+(.+)$", text)
    if match or re.search(r"\b(?:done|complete)\b", text):
        return CompleteIntent(**(target_fields(match.group(1)) if match else {}), **common)

    match = re.search(r"\b(?:delete|remove)\s+(.+)$", text)
    if match or re.search(r"\b(?:delete|remove)\b", text):
        return DeleteIntent(**(target_fields(match.group(1), allow_all=True) if match else {}), **common)

    match = re.search(r"\b(?:update|change)\s+(.+?)\s+to\s+(.+)$", text)
    if match:
        return UpdateIntent(**target_fields(match.group(1)), new_text=match.group(2), **common)

    match = re.search(r"^(?:add|create|new)\s+(.+)$", text)
    if match:
        return CreateIntent(task_text=clean_task_text(match.group(1)), **common)

    return UnclearIntent(confidence=0.2, raw_text=command, source=IntentSource.HEURISTIC)


class LLMFallback:
    """Tier 2 classifier backed by the Anthropic Messages API."""

    def __init__(
        self,
        config: dict[str, Any] | None = None,
        client: anthropic.AsyncAnthropic | None = None,
    ):
        config = config or {}
        self.model = config.get("model", DEFAULT_FALLBACK_MODEL)
        self.max_tokens = int(config.get("max_tokens", 300))
        self.timeout = float(config.get("timeout_seconds", DEFAULT_TIMEOUT_SECONDS))
        self._enabled = config.get("enabled", True)
        self._api_key = config.get("api_key") or os.getenv("ANTHROPIC_API_KEY")
        self._client = client

    @property
    def is_available(self) -> bool:
        """Disabled when switched off or when no model credentials exist."""
        return bool(self._enabled) and (self._client is not None or bool(self._api_key))

    def _get_client(self) -> anthropic.AsyncAnthropic:
        if self._client is None:
            self._client = anthropic.AsyncAnthropic(api_key=self._api_key)
        return self._client

    async def _call_llm(self, prompt: str) -> str:
        response = await self._get_client().messages.create(
            model=self.model,
            max_tokens=self.max_tokens,
            messages=[{"role": "user", "content": prompt}],
        )
        # Non-text blocks (tool use, thinking) carry no text attribute
        parts = [getattr(block, "text", None) for block in response.content or []]
        return "".join(part for part in parts if isinstance(part, str))

    async def classify(
        self,
        command: str,
        context: dict[str, Any] | None = None,
        today: date | None = None,
    ) -> Intent:
        prompt = build_prompt(command, context, today)

        try:
            raw_output = await asyncio.wait_for(self._call_llm(prompt), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Intent fallback timed out after {self.timeout}s, using heuristic")
            return heuristic_intent(command)
        except anthropic.APIError as e:
            logger.warning(f"Intent fallback LLM call failed, using heuristic: {e}")
            return heuristic_intent(command)

        try:
            intent = parse_llm_output(raw_output, command, today)
        except (TypeError, ValueError, AttributeError) as e:
            logger.warning(f"Malformed intent fallback output ({e!r}), using heuristic")
            return heuristic_intent(command)
        if intent is None:
            logger.warning(f"Unparseable intent fallback output: {raw_output[:200]!r}")
            return heuristic_intent(command)
        return intent
