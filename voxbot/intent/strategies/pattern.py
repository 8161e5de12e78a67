"""Keyword pattern strategy."""

from dataclasses import dataclass

from loguru import logger

from voxbot.config.schema import IntentPatternConfig
from voxbot.intent.base import IntentStrategy
from voxbot.intent.types import CommandType, StrategyResult
from voxbot.intent.vocabulary import extract_entities, has_keyword


@dataclass(frozen=True)
class IntentPattern:
    """Keywords that vote for one intent, scaled by a pattern weight."""
    intent: CommandType
    keywords: tuple[str, ...]
    weight: float = 1.0


class PatternStrategy(IntentStrategy):
    """
    Keyword matcher.

    Each pattern scores ``min(1, 0.5 + 0.2 * (hits - 1)) * weight``; the best
    pattern wins. Multi-word keywords count as one hit. Ties go to the pattern
    declared first.
    """

    BASE_CONFIDENCE = 0.5
    PER_EXTRA_HIT = 0.2

    def __init__(self, patterns: list[IntentPattern]):
        self.patterns = patterns

    @classmethod
    def from_config(cls, patterns: list[IntentPatternConfig]) -> "PatternStrategy":
        converted = []
        for p in patterns:
            intent = CommandType.parse(p.intent)
            if intent == CommandType.UNKNOWN:
                logger.warning(f"PatternStrategy: ignoring pattern with unknown intent {p.intent!r}")
                continue
            converted.append(IntentPattern(intent, tuple(k.lower() for k in p.keywords), p.weight))
        return cls(converted)

    @property
    def name(self) -> str:
        return "pattern"

    async def detect(self, text: str, language: str) -> StrategyResult:
        best: tuple[float, IntentPattern] | None = None

        for pattern in self.patterns:
            hits = sum(1 for kw in pattern.keywords if has_keyword(text, kw))
            if hits == 0:
                continue
            score = min(1.0, self.BASE_CONFIDENCE + self.PER_EXTRA_HIT * (hits - 1)) * pattern.weight
            if best is None or score > best[0]:
                best = (score, pattern)

        if best is None:
            return StrategyResult.unknown(self.name)

        score, pattern = best
        return StrategyResult(
            label=pattern.intent,
            confidence=score,
            entities=extract_entities(text, pattern.intent),
            strategy_name=self.name,
        )
