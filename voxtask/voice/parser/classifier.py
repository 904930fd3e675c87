"""Intent classifier facade.

Runs the rules first and consults the LLM fallback only when the rules return
``unclear`` or a confidence below the threshold. Never raises.
"""

from __future__ import annotations

import dataclasses
import logging
from typing import Any

from voxtask.voice import load_voice_config
from voxtask.voice.models import Intent, IntentSource, UnclearIntent
from voxtask.voice.parser.intent_parser import normalize, parse_intent
from voxtask.voice.parser.llm_fallback import LLMFallback

logger = logging.getLogger(__name__)

DEFAULT_CONFIDENCE_THRESHOLD = 0.5


def merge_intents(rules: Intent, fallback: Intent) -> Intent:
    """Combine the two tiers.

    A model answer with an action replaces the rules' answer, borrowing any
    field it left empty when both agree on the action. Unclear model answers
    and heuristic guesses never override an answer the rules produced.
    """
    if fallback.is_unclear:
        return rules
    if fallback.source is IntentSource.HEURISTIC and not rules.is_unclear:
        return rules
    if fallback.action is not rules.action:
        return fallback

    missing = {
        field.name: getattr(rules, field.name)
        for field in dataclasses.fields(fallback)
        if getattr(fallback, field.name) is None and getattr(rules, field.name) is not None
    }
    fallback_target = getattr(fallback, "target", None)
    if fallback_target is not None and fallback_target != getattr(rules, "target", None):
        missing.pop("spoken_target", None)
    return dataclasses.replace(fallback, **missing) if missing else fallback


class IntentClassifier:
    """Tiered intent classification for one command at a time."""

    def __init__(self, config: dict[str, Any] | None = None, fallback: LLMFallback | None = None):
        if config is None:
            config = load_voice_config().get("classifier", {})
        self.threshold = float(config.get("confidence_threshold", DEFAULT_CONFIDENCE_THRESHOLD))
        self.fallback = fallback or LLMFallback(config.get("llm", {}))

    def needs_fallback(self, intent: Intent) -> bool:
        return intent.is_unclear or intent.confidence < self.threshold

    async def classify(self, text: str | None, context: dict[str, Any] | None = None) -> Intent:
        raw = text or ""
        try:
            intent = parse_intent(raw)
            if not self.needs_fallback(intent):
                return intent
            # Too short to be worth a model call
            if len(normalize(raw)) <= 2 or not self.fallback.is_available:
                return intent

            llm_intent = await self.fallback.classify(raw, context)
            merged = merge_intents(intent, llm_intent)
            logger.debug(
                f"Intent tiers: rules={intent.action.value}({intent.confidence:.2f}) "
                f"fallback={llm_intent.action.value}({llm_intent.confidence:.2f}) "
                f"-> {merged.action.value}"
            )
            return merged
        except Exception as e:
            logger.error(f"Intent classification failed: {e}", exc_info=True)
            return UnclearIntent(confidence=0.1, raw_text=raw)


# Module-level instance
_classifier: IntentClassifier | None = None


def get_classifier() -> IntentClassifier:
    """Get or create the global classifier."""
    global _classifier
    if _classifier is None:
        _classifier = IntentClassifier()
    return _classifier
