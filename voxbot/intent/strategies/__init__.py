"""Reference classification strategies."""

from voxbot.intent.strategies.llm import LLMStrategy
from voxbot.intent.strategies.pattern import IntentPattern, PatternStrategy
from voxbot.intent.strategies.semantic import SemanticStrategy

__all__ = ["LLMStrategy", "IntentPattern", "PatternStrategy", "SemanticStrategy"]
