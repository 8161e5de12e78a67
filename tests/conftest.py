"""Shared fixtures."""

import pytest
from loguru import logger

from voxbot.intent.base import IntentStrategy
from voxbot.intent.types import CommandType, StrategyResult


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class StaticStrategy(IntentStrategy):
    """Always answers with the same vote and remembers what it saw."""

    def __init__(self, name: str, label: CommandType, confidence: float, entities=None):
        self._name = name
        self.label = label
        self.confidence = confidence
        self.entities = entities or {}
        self.calls: list[tuple[str, str]] = []

    @property
    def name(self) -> str:
        return self._name

    async def detect(self, text: str, language: str) -> StrategyResult:
        self.calls.append((text, language))
        return StrategyResult(
            label=self.label,
            confidence=self.confidence,
            entities=self.entities,
            strategy_name=self._name,
        )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def log_messages():
    """Collect loguru output as ``LEVEL|message`` strings."""
    messages: list[str] = []
    handler_id = logger.add(lambda m: messages.append(str(m).rstrip("\n")), format="{level}|{message}", level="DEBUG")
    yield messages
    logger.remove(handler_id)


@pytest.fixture
def static_strategy():
    """The StaticStrategy class, for building fake votes."""
    return StaticStrategy
