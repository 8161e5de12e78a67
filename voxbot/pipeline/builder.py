"""Ordered composition of pipeline stages around a handler."""

from typing import Awaitable, Callable

from voxbot.cache.base import CacheStore
from voxbot.pipeline.commands import Command
from voxbot.pipeline.result import PipelineResult
from voxbot.pipeline.stages import (
    CacheInvalidationStage,
    CachingStage,
    LoggingStage,
    PerformanceStage,
    Stage,
    ValidationStage,
)
from voxbot.pipeline.validation import ValidatorRegistry

HandlerFunc = Callable[[Command], Awaitable[PipelineResult]]
StageFactory = Callable[[], Stage]


class Pipeline:
    """A built chain: ``stages[0]`` is outermost, ``handler`` is terminal."""

    def __init__(self, stages: list[Stage], handler: HandlerFunc):
        self.stages = tuple(stages)
        self.handler = handler

    async def __call__(self, command: Command) -> PipelineResult:
        return await self._invoke(0, command)

    async def _invoke(self, index: int, command: Command) -> PipelineResult:
        if index == len(self.stages):
            return await self.handler(command)
        return await self.stages[index].handle(command, lambda: self._invoke(index + 1, command))


class PipelineBuilder:
    """
    Registers stage factories in explicit order.

    ``build`` calls every factory, so each pipeline gets fresh stage
    instances while the order stays the one registered here.
    """

    def __init__(self):
        self._factories: list[tuple[str, StageFactory]] = []

    def add(self, name: str, factory: StageFactory) -> "PipelineBuilder":
        if any(n == name for n, _ in self._factories):
            raise ValueError(f"Stage already registered: {name}")
        self._factories.append((name, factory))
        return self

    @property
    def stage_names(self) -> list[str]:
        return [name for name, _ in self._factories]

    def build(self, handler: HandlerFunc) -> Pipeline:
        return Pipeline([factory() for _, factory in self._factories], handler)

    @classmethod
    def default(
        cls,
        validators: ValidatorRegistry,
        cache: CacheStore,
        performance_threshold_ms: float = 500.0,
        default_sliding_expiration: float = 86400.0,
    ) -> "PipelineBuilder":
        """Validation → Logging → Performance → Caching → Cache-Invalidation."""
        return (
            cls()
            .add(ValidationStage.name, lambda: ValidationStage(validators))
            .add(LoggingStage.name, LoggingStage)
            .add(PerformanceStage.name, lambda: PerformanceStage(performance_threshold_ms))
            .add(CachingStage.name, lambda: CachingStage(cache, default_sliding_expiration))
            .add(CacheInvalidationStage.name, lambda: CacheInvalidationStage(cache))
        )
