"""Voice command parsing: rules, entity extraction, LLM fallback, classifier, routing."""

from voxtask.voice.parser.classifier import IntentClassifier, get_classifier, merge_intents
from voxtask.voice.parser.command_router import CommandRouter, create_default_router
from voxtask.voice.parser.entity_extractor import extract_entities
from voxtask.voice.parser.intent_parser import parse_intent
from voxtask.voice.parser.llm_fallback import LLMFallback

__all__ = [
    "CommandRouter",
    "IntentClassifier",
    "LLMFallback",
    "create_default_router",
    "extract_entities",
    "get_classifier",
    "merge_intents",
    "parse_intent",
]
