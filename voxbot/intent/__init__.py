"""Intent classification: strategy contract, weighted ensemble, reference strategies."""

from voxbot.intent.base import IntentStrategy
from voxbot.intent.ensemble import EnsembleClassifier
from voxbot.intent.types import (
    CommandType,
    IntentDecision,
    StrategyFailure,
    StrategyResult,
    WeightedStrategy,
)

__all__ = [
    "CommandType",
    "EnsembleClassifier",
    "IntentDecision",
    "IntentStrategy",
    "StrategyFailure",
    "StrategyResult",
    "WeightedStrategy",
]
