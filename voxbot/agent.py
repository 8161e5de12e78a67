"""Voice agent: resolve an utterance, then dispatch the resulting command."""

import asyncio
from dataclasses import dataclass
from typing import Sequence

from loguru import logger

from voxbot.cache.base import CacheStore
from voxbot.cache.memory import InMemoryCacheStore
from voxbot.config.schema import Config
from voxbot.context.adjuster import ContextAdjuster
from voxbot.context.store import ConversationStore
from voxbot.dispatch.dispatcher import CommandDispatcher
from voxbot.dispatch.factory import CommandFactory
from voxbot.dispatch.handlers import HandlerRegistry
from voxbot.intent.ensemble import EnsembleClassifier
from voxbot.intent.strategies.llm import LLMStrategy
from voxbot.intent.strategies.pattern import PatternStrategy
from voxbot.intent.strategies.semantic import SemanticStrategy
from voxbot.intent.types import IntentDecision, WeightedStrategy
from voxbot.pipeline.builder import PipelineBuilder
from voxbot.pipeline.commands import CloseApplicationCommand, Command, OpenApplicationCommand
from voxbot.pipeline.result import PipelineResult
from voxbot.pipeline.validation import ValidatorRegistry


@dataclass(frozen=True)
class UtteranceOutcome:
    """Everything that happened to one utterance."""
    decision: IntentDecision
    command: Command | None
    result: PipelineResult | None


class VoiceAgent:
    """
    The two entry points callers use: ``resolve`` and ``dispatch``.

    ``handle_utterance`` chains them for the common case.
    """

    def __init__(
        self,
        classifier: EnsembleClassifier,
        adjuster: ContextAdjuster,
        factory: CommandFactory,
        dispatcher: CommandDispatcher,
        cache: CacheStore,
        default_language: str = "en",
        strategy_caches: Sequence[CacheStore] = (),
    ):
        self.classifier = classifier
        self.adjuster = adjuster
        self.factory = factory
        self.dispatcher = dispatcher
        self.cache = cache
        self.default_language = default_language
        self.strategy_caches = tuple(strategy_caches)
        self._background: list[asyncio.Task] = []

    @property
    def conversations(self) -> ConversationStore:
        return self.adjuster.store

    @classmethod
    def from_config(
        cls,
        config: Config,
        handlers: HandlerRegistry | None = None,
        cache: CacheStore | None = None,
    ) -> "VoiceAgent":
        """Wire every component from configuration."""
        cache = cache or InMemoryCacheStore()
        weights = config.intent.strategies
        semantic_cache = InMemoryCacheStore()

        strategies = [
            WeightedStrategy(PatternStrategy.from_config(config.intent.patterns), weights.pattern),
            WeightedStrategy(
                SemanticStrategy(threshold=config.intent.semantic_threshold, cache=semantic_cache),
                weights.semantic,
            ),
        ]
        if config.llm.enabled and config.get_api_key():
            strategies.insert(0, WeightedStrategy(LLMStrategy.from_config(config), weights.llm))
        else:
            logger.info("LLM strategy disabled (no API key configured)")

        classifier = EnsembleClassifier(strategies, timeout=config.intent.strategy_timeout)

        conversations = ConversationStore(
            history_size=config.context.history_size,
            retention_seconds=config.context.retention_seconds,
            session_ttl_seconds=config.context.session_ttl_seconds,
        )
        adjuster = ContextAdjuster(
            conversations,
            recent_window=config.context.recent_window,
            preference_bonus=config.context.preference_bonus,
        )

        pipeline = PipelineBuilder.default(
            ValidatorRegistry.default(),
            cache,
            performance_threshold_ms=config.pipeline.performance_threshold_ms,
            default_sliding_expiration=config.cache.default_sliding_expiration_seconds,
        )
        dispatcher = CommandDispatcher(handlers or HandlerRegistry.dry_run(), pipeline)

        return cls(
            classifier=classifier,
            adjuster=adjuster,
            factory=CommandFactory(config.intent.minimum_confidence),
            dispatcher=dispatcher,
            cache=cache,
            default_language=config.intent.default_language,
            strategy_caches=[semantic_cache],
        )

    async def resolve(self, text: str, language: str | None = None, session_id: str = "default") -> IntentDecision:
        """Classify an utterance and adjust it with the session's context."""
        language = language or self.default_language
        decision = await self.classifier.classify(text, language)
        return await self.adjuster.adjust(decision, session_id)

    async def dispatch(self, command: Command, session_id: str | None = None) -> PipelineResult:
        """
        Run a command through the pipeline.

        With a ``session_id``, successful open/close commands also update the
        session's application state.
        """
        result = await self.dispatcher.dispatch(command)
        if session_id is not None and result.success:
            await self._track_application(command, session_id)
        return result

    async def handle_utterance(
        self,
        text: str,
        language: str | None = None,
        session_id: str = "default",
        bypass_cache: bool = False,
    ) -> UtteranceOutcome:
        decision = await self.resolve(text, language, session_id)
        command = self.factory.from_decision(decision, bypass_cache=bypass_cache)
        if command is None:
            logger.info(f"No command for {decision.label.value} ({decision.confidence:.2f}): {text}")
            return UtteranceOutcome(decision=decision, command=None, result=None)
        result = await self.dispatch(command, session_id)
        return UtteranceOutcome(decision=decision, command=command, result=result)

    async def _track_application(self, command: Command, session_id: str) -> None:
        if isinstance(command, OpenApplicationCommand):
            is_open = True
        elif isinstance(command, CloseApplicationCommand):
            is_open = False
        else:
            return
        async with self.conversations.session(session_id) as state:
            state.set_application_state(command.application_name, is_open)

    # ── Background maintenance ──────────────────────────────────

    def _sweepable_caches(self) -> list[InMemoryCacheStore]:
        return [c for c in (self.cache, *self.strategy_caches) if isinstance(c, InMemoryCacheStore)]

    def start(self, context_interval: float = 60.0, cache_interval: float = 300.0) -> None:
        """Start the session and cache sweepers on the running loop."""
        if self._background:
            return
        self._background.append(asyncio.create_task(self.conversations.run_sweeper(context_interval)))
        for cache in self._sweepable_caches():
            self._background.append(asyncio.create_task(cache.run_sweeper(cache_interval)))

    async def stop(self) -> None:
        """Stop the sweepers and wait for them to finish."""
        self.conversations.stop()
        for cache in self._sweepable_caches():
            cache.stop()
        for task in self._background:
            task.cancel()
        await asyncio.gather(*self._background, return_exceptions=True)
        self._background.clear()
