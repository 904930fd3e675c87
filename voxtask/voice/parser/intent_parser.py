"""Intent parsing for voice commands (Tier 1 rules).

Uses priority-sorted regex patterns to detect command intent from transcribed
text. Two passes run in order:

    leading  - the utterance opens with an explicit verb or phrase of a family
               ("add ...", "bought ...", "delete ...") and that family decides
    keyword  - a keyword anywhere in the text, checked completion → delete →
               update → list → create, first hit wins

Anything left over longer than two characters is taken as a new task; shorter
input is unclear. Pure and synchronous; never raises.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from datetime import date

from voxtask.voice.models import (
    ALL_TASKS,
    CompleteIntent,
    CreateIntent,
    DeleteIntent,
    Intent,
    IntentAction,
    ListIntent,
    UnclearIntent,
    UpdateIntent,
)
from voxtask.voice.parser.entity_extractor import extract_entities

# Verbs that mark a finished chore when they open the utterance ("bought milk")
PAST_TENSE_VERBS = (
    "bought", "purchased", "sent", "finished", "completed", "paid", "called",
    "emailed", "mailed", "posted", r"picked\s+up", "cleaned", "washed", "fixed",
    "booked", "submitted", "returned", "fed", "watered",
)

_PAST_TENSE = r"(?:i\s+(?:have\s+)?|i'?ve\s+)?(?:just\s+|already\s+)?(?:" + "|".join(PAST_TENSE_VERBS) + r")"

_CREATE_PHRASE = (
    r"(?:i\s+need\s+to|i\s+have\s+to|i\s+must|remind\s+me\s+to|"
    r"don'?t\s+(?:let\s+me\s+)?forget\s+to)"
)

# Leading patterns: (pattern, action, priority). Anchored at the start.
LEADING_PATTERNS: list[tuple[str, IntentAction, int]] = [
    (_PAST_TENSE + r"\s+\S", IntentAction.COMPLETE, 100),
    (r"(?:add|create|new|make)\b", IntentAction.CREATE, 95),
    (_CREATE_PHRASE + r"\s+\S", IntentAction.CREATE, 94),
    (r"(?:complete|finish|mark|check\s+off|tick\s+off)\b", IntentAction.COMPLETE, 90),
    (r"(?:delete|remove|cancel|drop)\b", IntentAction.DELETE, 85),
    (r"(?:update|change|modify|edit|rename|replace)\b", IntentAction.UPDATE, 80),
    (r"(?:show|list|display)\b", IntentAction.LIST, 75),
]

# Keyword patterns: (pattern, action, priority). Searched anywhere.
KEYWORD_PATTERNS: list[tuple[str, IntentAction, int]] = [
    (
        r"\b(?:complete|finish|done|mark\s+(?:it\s+|this\s+|that\s+)?as\s+done|check\s+off|tick\s+off)\b",
        IntentAction.COMPLETE,
        90,
    ),
    (r"\b(?:delete|remove|cancel|drop)\b", IntentAction.DELETE, 80),
    (r"\b(?:update|change|modify|edit|rename|replace)\b|\sto\s", IntentAction.UPDATE, 70),
    (
        r"\b(?:show|list|what|display|pending)\b|\bmy\s+(?:tasks|todos|to-?dos)\b|^(?:tasks|todos|to-?dos)$",
        IntentAction.LIST,
        60,
    ),
    (r"^(?:add|create|new|make)\b", IntentAction.CREATE, 50),
]

# Target templates, first capture group is the target
COMPLETE_TEMPLATES = [
    r"^mark\s+(.+?)\s+as\s+(?:done|complete|completed|finished)$",
    r"^mark\s+(.+?)\s+(?:done|complete|completed)$",
    r"\b(?:check|tick)\s+off\s+(.+)$",
    r"\b(?:check|tick)\s+(.+?)\s+off$",
    r"\bdone\s+with\s+(.+)$",
    r"^(.+?)\s+is\s+(?:done|complete|completed|finished)$",
    r"\b(?:complete|finish)\s+(.+)$",
]

DELETE_TEMPLATES = [
    r"\b(?:delete|remove|cancel|drop)\s+(.+)$",
]

UPDATE_TEMPLATES = [
    r"\b(?:update|change|modify|edit|rename)\s+(.+?)\s+(?:to|into)\s+(.+)$",
    r"\breplace\s+(.+?)\s+with\s+(.+)$",
]

_UPDATE_VERB = re.compile(r"\b(?:update|change|modify|edit|rename|replace)\b", re.IGNORECASE)

_POLITE_PREFIX = re.compile(
    r"^(?:(?:hey|hi|ok|okay)[,\s]+)?(?:please\s+|can\s+you\s+|could\s+you\s+|would\s+you\s+)?",
    re.IGNORECASE,
)

_ORDINALS = {"first": "1", "second": "2", "third": "3", "fourth": "4", "fifth": "5", "last": "last"}
_NUMBER_WORDS = {
    "one": "1", "two": "2", "three": "3", "four": "4", "five": "5",
    "six": "6", "seven": "7", "eight": "8", "nine": "9", "ten": "10",
}

_ORDINAL_TARGET = re.compile(
    r"^(first|second|third|fourth|fifth|last)(?:\s+(?:one|task|item|todo|thing))?$", re.IGNORECASE
)
_NUMBER_TARGET = re.compile(
    r"^(?:(?:task|number|item|no\.?)\s*#?\s*|#)(\d+|" + "|".join(_NUMBER_WORDS) + r")$", re.IGNORECASE
)
_ALL_TARGET = re.compile(
    r"^(?:all(?:\s+of)?(?:\s+(?:the|my))?(?:\s+(?:tasks?|todos?|to-?dos|items?))?|everything|every\s+task)$",
    re.IGNORECASE,
)

_QUOTES_AND_PUNCT = "\"'“”‘’`.,!?:;"

# Words that refer to no particular task
_NON_TARGETS = {"as", "it", "this", "that", "this one", "that one", "task", "a task"}

# Compiled pattern cache
_compiled: dict[str, list[tuple[re.Pattern, IntentAction, int]]] = {}


def _get_patterns(kind: str) -> list[tuple[re.Pattern, IntentAction, int]]:
    """Get compiled patterns sorted by priority (highest first)."""
    if kind not in _compiled:
        source = LEADING_PATTERNS if kind == "leading" else KEYWORD_PATTERNS
        prefix = "^" if kind == "leading" else ""
        _compiled[kind] = sorted(
            [(re.compile(prefix + p, re.IGNORECASE), action, pri) for p, action, pri in source],
            key=lambda x: x[2],
            reverse=True,
        )
    return _compiled[kind]


# =============================================================================
# Text cleanup
# =============================================================================


def normalize(text: str) -> str:
    """Collapse whitespace, drop polite prefixes and trailing punctuation."""
    text = " ".join(text.split())
    text = _POLITE_PREFIX.sub("", text).rstrip(".!?")
    text = re.sub(r"[,\s]+please$", "", text, flags=re.IGNORECASE)
    return text.strip().rstrip(".!?").strip()


def clean_target(target: str | None) -> str | None:
    """Strip quotes, leading articles and list filler from a task reference."""
    if not target:
        return None
    value = target.strip().strip(_QUOTES_AND_PUNCT).strip()
    value = re.sub(r"^(?:(?:the|my)\s+)+", "", value, flags=re.IGNORECASE)
    value = re.sub(
        r"\s+(?:from|on|in|off)\s+(?:my\s+|the\s+)?(?:to-?do\s+)?(?:list|tasks|todos)$",
        "",
        value,
        flags=re.IGNORECASE,
    )
    value = re.sub(r"\s+(?:task|todo|to-do|item)$", "", value, flags=re.IGNORECASE)
    value = value.strip().strip(_QUOTES_AND_PUNCT).strip()
    if value.lower() in _NON_TARGETS:
        return None
    return value or None


def position_token(target: str | None) -> str | None:
    """Return the position token for ordinal or numbered references."""
    if not target:
        return None
    match = _ORDINAL_TARGET.match(target)
    if match:
        return _ORDINALS[match.group(1).lower()]
    match = _NUMBER_TARGET.match(target) or re.match(r"^(\d+)$", target)
    if match:
        value = match.group(1).lower()
        return _NUMBER_WORDS.get(value, value)
    return None


def resolve_target(raw: str | None, allow_all: bool = False) -> str | None:
    target = clean_target(raw)
    if target is None:
        return None
    if allow_all and _ALL_TARGET.match(target):
        return ALL_TASKS
    return position_token(target) or target


def target_fields(raw: str | None, allow_all: bool = False) -> dict[str, str | None]:
    """``target`` plus the words actually spoken when they differ, e.g. "first" for "1"."""
    target = resolve_target(raw, allow_all=allow_all)
    spoken = clean_target(raw)
    return {"target": target, "spoken_target": spoken if spoken != target else None}


def clean_task_text(text: str) -> str | None:
    """Remove "task:" or "a task" filler and a trailing "to my list" from a new task's text.

    A bare "task" or "todo" word is kept: it can be part of the title
    ("task force notes", "todo app").
    """
    value = text.strip()
    value = re.sub(r"^(?:a\s+)?(?:new\s+)?(?:task|todo|to-do)\s*:\s*", "", value, flags=re.IGNORECASE)
    value = re.sub(r"^a\s+(?:new\s+)?task(?:\s+to\b)?(?:\s+|$)", "", value, flags=re.IGNORECASE)
    value = re.sub(
        r"\s+(?:to|on)\s+(?:my\s+|the\s+)?(?:to-?do\s+)?(?:list|tasks|todos)$", "", value, flags=re.IGNORECASE
    )
    value = value.strip().strip(_QUOTES_AND_PUNCT).strip()
    return value or None


def _first_capture(templates: list[str], text: str) -> re.Match | None:
    for template in templates:
        match = re.search(template, text, re.IGNORECASE)
        if match:
            return match
    return None


# =============================================================================
# Per-family builders
# =============================================================================


def _build_create(text: str, raw: str, today: date | None) -> Intent:
    # "new task" is the verb phrase; after other verbs a bare "task" may be part of the title
    match = re.match(
        r"^(?:new\s+(?:task|todo|to-do)\b\s*:?|(?:add|create|new|make)\b)\s*(.*)$", text, re.IGNORECASE
    ) or re.match("^" + _CREATE_PHRASE + r"\s+(.*)$", text, re.IGNORECASE)
    task_text = clean_task_text(match.group(1)) if match else clean_task_text(text)
    hints = extract_entities(raw, today)
    return CreateIntent(
        task_text=task_text,
        priority=hints.priority,
        category=hints.category,
        due_date=hints.due_date,
        confidence=0.9 if task_text else 0.3,
        raw_text=raw,
    )


def _build_past_tense(text: str, raw: str) -> Intent:
    match = re.match("^" + _PAST_TENSE + r"\s+(.+)$", text, re.IGNORECASE)
    return CompleteIntent(**target_fields(match.group(1)), confidence=0.8, raw_text=raw)


def _build_complete(text: str, raw: str, today: date | None) -> Intent:
    if re.match("^" + _PAST_TENSE + r"\s+\S", text, re.IGNORECASE):
        return _build_past_tense(text, raw)
    match = _first_capture(COMPLETE_TEMPLATES, text)
    fields = target_fields(match.group(1)) if match else {}
    return CompleteIntent(**fields, confidence=0.9, raw_text=raw)


def _build_delete(text: str, raw: str, today: date | None) -> Intent:
    match = _first_capture(DELETE_TEMPLATES, text)
    fields = target_fields(match.group(1), allow_all=True) if match else {}
    return DeleteIntent(**fields, confidence=0.9, raw_text=raw)


def _build_update(text: str, raw: str, today: date | None) -> Intent | None:
    match = _first_capture(UPDATE_TEMPLATES, text)
    if match:
        return UpdateIntent(
            **target_fields(match.group(1)),
            new_text=clean_task_text(match.group(2)),
            confidence=0.9,
            raw_text=raw,
        )
    if _UPDATE_VERB.search(text):
        return UpdateIntent(target=None, new_text=None, confidence=0.3, raw_text=raw)
    # Bare " to " without a template is not an update
    return None


def _build_list(text: str, raw: str, today: date | None) -> Intent:
    return ListIntent(confidence=0.9, raw_text=raw)


BUILDERS: dict[IntentAction, Callable[[str, str, date | None], Intent | None]] = {
    IntentAction.CREATE: _build_create,
    IntentAction.COMPLETE: _build_complete,
    IntentAction.DELETE: _build_delete,
    IntentAction.UPDATE: _build_update,
    IntentAction.LIST: _build_list,
}


# =============================================================================
# Entry point
# =============================================================================


def parse_intent(text: str | None, today: date | None = None) -> Intent:
    """Classify transcribed text with the deterministic rules.

    This is the Tier 1 entry point of the classifier.
    """
    raw = text or ""
    cleaned = normalize(raw)

    if len(cleaned) <= 2:
        return UnclearIntent(confidence=0.0, raw_text=raw, suggestion=suggest_command(cleaned))

    for pattern, action, _priority in _get_patterns("leading"):
        if pattern.match(cleaned):
            intent = BUILDERS[action](cleaned, raw, today)
            if intent is not None:
                return intent

    for pattern, action, _priority in _get_patterns("keyword"):
        if pattern.search(cleaned):
            intent = BUILDERS[action](cleaned, raw, today)
            if intent is not None:
                return intent

    # Anything else is a new task
    hints = extract_entities(raw, today)
    return CreateIntent(
        task_text=clean_task_text(cleaned) or cleaned,
        priority=hints.priority,
        category=hints.category,
        due_date=hints.due_date,
        confidence=0.6,
        raw_text=raw,
    )


def suggest_command(text: str) -> str:
    """Suggest what the user might have meant."""
    text_lower = text.lower()

    if any(w in text_lower for w in ("done", "finish", "bought")):
        return 'Try: "bought milk" or "mark the first task as done"'
    if any(w in text_lower for w in ("delete", "remove")):
        return 'Try: "delete buy milk" or "delete all tasks"'
    if any(w in text_lower for w in ("change", "rename", "update")):
        return 'Try: "change buy milk to buy oat milk"'

    return "Try: 'add buy milk', 'bought milk', or 'show tasks'"


# Example phrasings for the commands endpoint
AVAILABLE_COMMANDS: dict[str, list[dict[str, str]]] = {
    "Create": [
        {"command": "add [task]", "example": "add buy milk"},
        {"command": "[task]", "example": "call the dentist tomorrow"},
        {"command": "remind me to [task]", "example": "remind me to email the landlord, urgent"},
    ],
    "Complete": [
        {"command": "[past tense] [task]", "example": "bought milk"},
        {"command": "mark [task] as done", "example": "mark the report as done"},
        {"command": "complete the [first|second|last] task", "example": "complete the first task"},
    ],
    "Update": [
        {"command": "change [task] to [new text]", "example": "change buy milk to buy oat milk"},
        {"command": "replace [task] with [new text]", "example": "replace gym with yoga"},
    ],
    "Delete": [
        {"command": "delete [task]", "example": "delete buy milk"},
        {"command": "delete all", "example": "delete all tasks"},
    ],
    "List": [
        {"command": "show tasks", "example": "what's on my list"},
    ],
}
