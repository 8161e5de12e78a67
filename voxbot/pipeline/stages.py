"""Interceptor stages wrapping command handlers."""

import asyncio
import json
import time
from abc import ABC, abstractmethod
from typing import Awaitable, Callable

from loguru import logger
from pydantic import ValidationError

from voxbot.cache.base import CacheStore
from voxbot.pipeline.commands import Command
from voxbot.pipeline.result import PipelineResult
from voxbot.pipeline.validation import ValidatorRegistry

CallNext = Callable[[], Awaitable[PipelineResult]]


class Stage(ABC):
    """
    One cross-cutting concern around command execution.

    ``handle`` may return without awaiting ``call_next`` (short-circuit),
    or await it and act on the result on the way back out.
    """

    name: str = "stage"

    @abstractmethod
    async def handle(self, command: Command, call_next: CallNext) -> PipelineResult:
        ...


class ValidationStage(Stage):
    """Rejects invalid commands before anything else sees them."""

    name = "validation"

    def __init__(self, validators: ValidatorRegistry):
        self.validators = validators

    async def handle(self, command: Command, call_next: CallNext) -> PipelineResult:
        errors = self.validators.validate(command)
        if errors:
            summary = "; ".join(f"{e.field}: {e.message}" for e in errors)
            logger.warning(f"Validation failed for {command.name}: {summary}")
            return PipelineResult.invalid(errors)
        return await call_next()


class LoggingStage(Stage):
    name = "logging"

    async def handle(self, command: Command, call_next: CallNext) -> PipelineResult:
        detail = json.dumps(
            {"type": command.command_type.value, "parameters": command.parameters},
            ensure_ascii=False,
            default=str,
        )
        logger.info(f"Handling {command.name}: {detail}")
        try:
            result = await call_next()
        except Exception as e:
            logger.error(f"Error handling {command.name} {detail}: {type(e).__name__}: {e}")
            raise
        logger.info(f"Handled {command.name}: success={result.success} message={result.message!r}")
        return result


class PerformanceStage(Stage):
    """Times the rest of the chain, including runs that raise."""

    name = "performance"

    def __init__(self, threshold_ms: float = 500.0):
        self.threshold_ms = threshold_ms

    async def handle(self, command: Command, call_next: CallNext) -> PipelineResult:
        start = time.perf_counter()
        try:
            return await call_next()
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000
            if elapsed_ms > self.threshold_ms:
                logger.warning(
                    f"Long running request: {command.name} took {elapsed_ms:.0f}ms "
                    f"(threshold {self.threshold_ms:.0f}ms)"
                )
            else:
                logger.info(f"{command.name} completed in {elapsed_ms:.0f}ms")


class CachingStage(Stage):
    """
    Serves cacheable commands from the cache store.

    Only commands that return a ``cache_key`` are cached. Read failures
    count as misses and write failures are logged, so the cache never
    blocks execution. Writes are shielded from caller cancellation.
    """

    name = "caching"

    def __init__(self, store: CacheStore, default_sliding_expiration: float = 86400.0):
        self.store = store
        self.default_sliding_expiration = default_sliding_expiration

    async def handle(self, command: Command, call_next: CallNext) -> PipelineResult:
        key = command.cache_key
        if key is None:
            return await call_next()

        if command.bypass_cache:
            logger.debug(f"Cache bypassed -> {key}")
        else:
            cached = await self._read(key)
            if cached is not None:
                logger.debug(f"Fetched from cache -> {key}")
                await asyncio.shield(self._touch_group(command, key))
                return cached

        result = await call_next()
        # Failed results are never written; the next identical command runs the handler again.
        if result.success:
            await asyncio.shield(self._write(command, key, result))
        return result

    async def _read(self, key: str) -> PipelineResult | None:
        try:
            raw = await self.store.get(key)
        except Exception as e:
            logger.warning(f"Cache read failed for {key}, treating as miss: {e}")
            return None
        if raw is None:
            return None
        try:
            return PipelineResult.model_validate_json(raw)
        except ValidationError as e:
            logger.warning(f"Discarding unreadable cache entry {key}: {e.error_count()} errors")
            return None

    async def _touch_group(self, command: Command, key: str) -> None:
        group = command.cache_group_key
        if not group:
            return
        expiration = command.sliding_expiration or self.default_sliding_expiration
        try:
            await self.store.touch_group(group, key, expiration)
        except Exception as e:
            logger.warning(f"Cache group refresh failed for {group}: {e}")

    async def _write(self, command: Command, key: str, result: PipelineResult) -> None:
        expiration = command.sliding_expiration or self.default_sliding_expiration
        try:
            await self.store.set(key, result.model_dump_json().encode("utf-8"), expiration)
            logger.debug(f"Added to cache -> {key}")
            group = command.cache_group_key
            if group:
                await self.store.add_to_group(group, key, expiration)
        except Exception as e:
            logger.warning(f"Cache write failed for {key}: {e}")


class CacheInvalidationStage(Stage):
    """Drops the command's invalidated cache groups after a successful run."""

    name = "cache_invalidation"

    def __init__(self, store: CacheStore):
        self.store = store

    async def handle(self, command: Command, call_next: CallNext) -> PipelineResult:
        result = await call_next()
        if not result.success:
            return result
        for group in command.invalidates_groups:
            try:
                await asyncio.shield(self.store.remove_group(group))
            except Exception as e:
                logger.warning(f"Cache invalidation failed for group {group}: {e}")
        return result
