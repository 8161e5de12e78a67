"""Weighted-vote ensemble over independent classification strategies."""

import asyncio
from typing import Sequence

from loguru import logger

from voxbot.intent.types import (
    CommandType,
    IntentDecision,
    StrategyFailure,
    StrategyOutcome,
    StrategyResult,
    WeightedStrategy,
)
from voxbot.intent.vocabulary import normalize_text


class EnsembleClassifier:
    """
    Fans an utterance out to every registered strategy and votes.

    Every strategy runs concurrently and the join waits for all of them.
    A strategy that raises, times out or is cancelled contributes a
    ``StrategyFailure`` (zero weight) instead of failing the ensemble.

    Vote: ``score = confidence * weight`` summed per label. The winner has
    the highest total; ties go to the higher single best confidence, then
    to the label whose first voter was declared earliest. The winning
    label carries the entities of its most confident voter, and the final
    confidence is ``min(total, 1.0)``.
    """

    def __init__(self, strategies: Sequence[WeightedStrategy], timeout: float | None = None):
        self._strategies: tuple[WeightedStrategy, ...] = tuple(strategies)
        self.timeout = timeout

    @property
    def strategies(self) -> tuple[WeightedStrategy, ...]:
        return self._strategies

    async def classify(self, text: str, language: str) -> IntentDecision:
        """
        Classify a raw utterance.

        Args:
            text: Raw (transcribed) utterance.
            language: Language code.

        Returns:
            IntentDecision; Unknown with confidence 0 when no strategy votes.
        """
        normalized = normalize_text(text, language)
        if not normalized or not self._strategies:
            return IntentDecision.unknown(text, language)

        outcomes = await asyncio.gather(
            *(self._run(ws, normalized, language) for ws in self._strategies)
        )
        return self.aggregate(outcomes, text, language)

    async def _run(self, ws: WeightedStrategy, text: str, language: str) -> StrategyOutcome:
        """Run one strategy behind its own failure boundary."""
        try:
            if self.timeout is None:
                return await ws.strategy.detect(text, language)
            return await asyncio.wait_for(ws.strategy.detect(text, language), self.timeout)
        except TimeoutError as e:
            return StrategyFailure(ws.name, f"timed out after {self.timeout}s", e)
        except asyncio.CancelledError as e:
            task = asyncio.current_task()
            if task is not None and task.cancelling():
                raise
            return StrategyFailure(ws.name, "cancelled", e)
        except Exception as e:
            return StrategyFailure(ws.name, str(e) or type(e).__name__, e)

    def aggregate(
        self,
        outcomes: Sequence[StrategyOutcome],
        text: str,
        language: str,
    ) -> IntentDecision:
        """Combine per-strategy outcomes (aligned with ``strategies``) into one decision."""
        scores: dict[CommandType, float] = {}
        best: dict[CommandType, StrategyResult] = {}
        first_voter: dict[CommandType, int] = {}

        for index, (ws, outcome) in enumerate(zip(self._strategies, outcomes)):
            if isinstance(outcome, StrategyFailure):
                logger.warning(f"Intent detection failed for {outcome.strategy_name}: {outcome.reason}")
                continue
            if outcome.is_unknown:
                continue

            score = outcome.confidence * ws.weight
            if score <= 0:
                continue

            label = outcome.label
            scores[label] = scores.get(label, 0.0) + score
            if label not in best or outcome.confidence > best[label].confidence:
                best[label] = outcome
            first_voter.setdefault(label, index)

        if not scores:
            logger.warning(f"No valid intent detected for: {text}")
            return IntentDecision.unknown(text, language)

        winner = min(scores, key=lambda label: (-scores[label], -best[label].confidence, first_voter[label]))

        logger.info(
            f"Ensemble result: {winner.value} with combined score {scores[winner]:.2f} "
            f"({len(scores)} labels voted, best voter: {best[winner].strategy_name})"
        )

        return IntentDecision(
            label=winner,
            confidence=min(scores[winner], 1.0),
            entities=dict(best[winner].entities),
            original_text=text,
            language=language,
            scores=scores,
        )
