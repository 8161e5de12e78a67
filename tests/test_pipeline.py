import asyncio
from typing import ClassVar

import pytest

from voxbot.cache.memory import InMemoryCacheStore
from voxbot.dispatch.handlers import Handler
from voxbot.errors import CacheError, CommandValidationError
from voxbot.intent.types import CommandType
from voxbot.pipeline.builder import PipelineBuilder
from voxbot.pipeline.commands import (
    AddTaskCommand,
    CloseApplicationCommand,
    Command,
    ListTasksCommand,
    OpenApplicationCommand,
    SearchWebCommand,
    SendMessageCommand,
)
from voxbot.pipeline.result import FieldError, PipelineResult
from voxbot.pipeline.stages import PerformanceStage
from voxbot.pipeline.validation import ValidatorRegistry


class _RecordingHandler(Handler):
    def __init__(self, result: PipelineResult | None = None, error: Exception | None = None, delay: float = 0.0):
        self.command_type = CommandType.UNKNOWN
        self.result = result
        self.error = error
        self.delay = delay
        self.calls: list[Command] = []

    async def handle(self, command: Command) -> PipelineResult:
        self.calls.append(command)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.result or PipelineResult.ok(f"handled {command.name}")


class _GroupedCommand(Command):
    command_type: ClassVar[CommandType] = CommandType.LIST_TASKS

    key: str
    ttl: float

    @property
    def cache_key(self) -> str | None:
        return self.key

    @property
    def cache_group_key(self) -> str | None:
        return "AppCmds"

    @property
    def sliding_expiration(self) -> float | None:
        return self.ttl


class _BrokenWriteStore(InMemoryCacheStore):
    async def set(self, key, value, sliding_expiration):
        raise CacheError("redis down")


class _BrokenReadStore(InMemoryCacheStore):
    async def get(self, key):
        raise CacheError("redis down")


class _SlowWriteStore(InMemoryCacheStore):
    async def set(self, key, value, sliding_expiration):
        await asyncio.sleep(0.05)
        await super().set(key, value, sliding_expiration)


@pytest.fixture
def cache(clock):
    return InMemoryCacheStore(clock=clock)


def _pipeline(cache, handler, threshold_ms: float = 500.0):
    builder = PipelineBuilder.default(ValidatorRegistry.default(), cache, performance_threshold_ms=threshold_ms)
    return builder.build(handler.handle)


# ── Composition ─────────────────────────────────────────────────


def test_default_stage_order(cache) -> None:
    builder = PipelineBuilder.default(ValidatorRegistry.default(), cache)

    assert builder.stage_names == ["validation", "logging", "performance", "caching", "cache_invalidation"]


def test_build_creates_fresh_stages(cache) -> None:
    builder = PipelineBuilder.default(ValidatorRegistry.default(), cache)
    handler = _RecordingHandler()

    first, second = builder.build(handler.handle), builder.build(handler.handle)

    assert [type(s) for s in first.stages] == [type(s) for s in second.stages]
    assert all(a is not b for a, b in zip(first.stages, second.stages))


def test_duplicate_stage_rejected() -> None:
    builder = PipelineBuilder().add("performance", PerformanceStage)
    with pytest.raises(ValueError):
        builder.add("performance", PerformanceStage)


async def test_empty_pipeline_calls_handler() -> None:
    handler = _RecordingHandler()
    pipeline = PipelineBuilder().build(handler.handle)

    result = await pipeline(ListTasksCommand())

    assert result.success
    assert len(handler.calls) == 1


# ── Validation ──────────────────────────────────────────────────


async def test_validation_failure_short_circuits(cache, log_messages) -> None:
    handler = _RecordingHandler()

    result = await _pipeline(cache, handler)(OpenApplicationCommand(application_name=""))

    assert not result.success
    assert result.validation_errors == (
        FieldError(field="application_name", message="Application name cannot be empty"),
    )
    assert handler.calls == []
    assert len(cache) == 0
    assert not any("Handled" in m or "Handling" in m for m in log_messages)


async def test_validation_collects_every_field(cache) -> None:
    handler = _RecordingHandler()

    result = await _pipeline(cache, handler)(SendMessageCommand(recipient=" ", message=""))

    assert result.errors_by_field() == {
        "recipient": ["Recipient cannot be empty"],
        "message": ["Message cannot be empty"],
    }


async def test_short_application_name_rejected(cache) -> None:
    result = await _pipeline(cache, _RecordingHandler())(OpenApplicationCommand(application_name="x"))

    assert result.errors_by_field() == {"application_name": ["Application name must be at least 2 characters"]}


# ── Logging / performance ───────────────────────────────────────


async def test_logging_records_request_and_outcome(cache, log_messages) -> None:
    await _pipeline(cache, _RecordingHandler())(SearchWebCommand(query="weather"))

    handling = [m for m in log_messages if "Handling SearchWebCommand" in m]
    assert handling and '"query": "weather"' in handling[0]
    assert any("Handled SearchWebCommand: success=True" in m for m in log_messages)


async def test_handler_exception_is_logged_and_reraised(cache, log_messages) -> None:
    handler = _RecordingHandler(error=RuntimeError("disk full"))

    with pytest.raises(RuntimeError, match="disk full"):
        await _pipeline(cache, handler)(ListTasksCommand())

    assert any(m.startswith("ERROR|Error handling ListTasksCommand") for m in log_messages)
    assert any("ListTasksCommand completed in" in m for m in log_messages)


async def test_slow_request_alerts(cache, log_messages) -> None:
    handler = _RecordingHandler(delay=0.02)

    await _pipeline(cache, handler, threshold_ms=1)(ListTasksCommand())

    assert any(m.startswith("WARNING|Long running request: ListTasksCommand") for m in log_messages)


# ── Caching ─────────────────────────────────────────────────────


async def test_cache_hit_skips_handler(cache) -> None:
    handler = _RecordingHandler()
    command = OpenApplicationCommand(application_name="chrome")

    first = await _pipeline(cache, handler)(command)
    second = await _pipeline(cache, handler)(command)

    assert len(handler.calls) == 1
    assert first == second
    assert (await cache.get_group("ApplicationCommands")).keys == {"OpenApplication-chrome"}


async def test_bypass_never_reads_cache(cache) -> None:
    handler = _RecordingHandler()
    await _pipeline(cache, handler)(OpenApplicationCommand(application_name="chrome"))

    await _pipeline(cache, handler)(OpenApplicationCommand(application_name="chrome", bypass_cache=True))

    assert len(handler.calls) == 2
    assert handler.calls[1].bypass_cache


async def test_uncacheable_command_is_not_stored(cache) -> None:
    handler = _RecordingHandler()

    await _pipeline(cache, handler)(SendMessageCommand(recipient="ali", message="hi"))
    await _pipeline(cache, handler)(SendMessageCommand(recipient="ali", message="hi"))

    assert len(handler.calls) == 2
    assert len(cache) == 0


async def test_failed_results_are_not_cached(cache) -> None:
    handler = _RecordingHandler(result=PipelineResult.fail("not installed"))

    await _pipeline(cache, handler)(OpenApplicationCommand(application_name="chrome"))

    assert "OpenApplication-chrome" not in cache


async def test_unreadable_entry_is_a_miss(cache, log_messages) -> None:
    await cache.set("OpenApplication-chrome", b"garbage", 60)
    handler = _RecordingHandler()

    result = await _pipeline(cache, handler)(OpenApplicationCommand(application_name="chrome"))

    assert result.success
    assert len(handler.calls) == 1
    assert any("Discarding unreadable cache entry OpenApplication-chrome" in m for m in log_messages)


async def test_cache_read_failure_is_a_miss() -> None:
    handler = _RecordingHandler()

    result = await _pipeline(_BrokenReadStore(), handler)(ListTasksCommand())

    assert result.success
    assert len(handler.calls) == 1


async def test_cache_write_failure_is_swallowed(log_messages) -> None:
    result = await _pipeline(_BrokenWriteStore(), _RecordingHandler())(ListTasksCommand())

    assert result.success
    assert any("Cache write failed for ListTasks" in m for m in log_messages)


async def test_default_expiration_when_command_has_none(clock) -> None:
    class _NoTtl(ListTasksCommand):
        cache_ttl: ClassVar[float | None] = None

    cache = InMemoryCacheStore(clock=clock)
    builder = PipelineBuilder.default(ValidatorRegistry.default(), cache, default_sliding_expiration=30)

    await builder.build(_RecordingHandler().handle)(_NoTtl())

    clock.advance(29)
    assert "ListTasks" in cache
    clock.advance(2)
    assert "ListTasks" not in cache


async def test_concurrent_writes_to_same_group() -> None:
    cache = InMemoryCacheStore()
    handler = _RecordingHandler(delay=0.01)
    builder = PipelineBuilder.default(ValidatorRegistry.default(), cache)

    await asyncio.gather(
        builder.build(handler.handle)(_GroupedCommand(key="OpenApplication-chrome", ttl=120)),
        builder.build(handler.handle)(_GroupedCommand(key="OpenApplication-spotify", ttl=300)),
    )

    index = await cache.get_group("AppCmds")
    assert index.keys == {"OpenApplication-chrome", "OpenApplication-spotify"}
    assert index.sliding_expiration == 300


async def test_cache_write_survives_caller_cancellation() -> None:
    cache = _SlowWriteStore()
    pipeline = PipelineBuilder.default(ValidatorRegistry.default(), cache).build(_RecordingHandler().handle)

    task = asyncio.create_task(pipeline(ListTasksCommand()))
    await asyncio.sleep(0.02)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    await asyncio.sleep(0.3)
    index = await cache.get_group("TaskCommands")
    assert index is not None
    assert index.keys == {"ListTasks"}


# ── Invalidation ────────────────────────────────────────────────


async def test_close_invalidates_application_group(cache) -> None:
    handler = _RecordingHandler()
    await _pipeline(cache, handler)(OpenApplicationCommand(application_name="chrome"))
    await _pipeline(cache, handler)(OpenApplicationCommand(application_name="spotify"))
    await _pipeline(cache, handler)(SearchWebCommand(query="news"))

    await _pipeline(cache, handler)(CloseApplicationCommand(application_name="chrome"))

    assert await cache.get_group("ApplicationCommands") is None
    assert "OpenApplication-chrome" not in cache
    assert "OpenApplication-spotify" not in cache
    assert "SearchWeb-news-en-5" in cache

    await _pipeline(cache, handler)(OpenApplicationCommand(application_name="chrome"))
    assert len(handler.calls) == 5


async def test_hot_entry_is_invalidated_with_its_group(cache, clock) -> None:
    handler = _RecordingHandler()
    open_chrome = OpenApplicationCommand(application_name="chrome")

    await _pipeline(cache, handler)(open_chrome)
    clock.advance(250)
    await _pipeline(cache, handler)(open_chrome)
    clock.advance(150)
    await _pipeline(cache, handler)(CloseApplicationCommand(application_name="chrome"))
    clock.advance(10)
    await _pipeline(cache, handler)(open_chrome)

    assert [c.name for c in handler.calls] == [
        "OpenApplicationCommand",
        "CloseApplicationCommand",
        "OpenApplicationCommand",
    ]


async def test_failed_command_does_not_invalidate(cache) -> None:
    await _pipeline(cache, _RecordingHandler())(ListTasksCommand())

    await _pipeline(cache, _RecordingHandler(result=PipelineResult.fail("db locked")))(AddTaskCommand(title="milk"))

    assert "ListTasks" in cache


async def test_add_task_invalidates_task_list(cache) -> None:
    handler = _RecordingHandler()
    await _pipeline(cache, handler)(ListTasksCommand())

    await _pipeline(cache, handler)(AddTaskCommand(title="buy milk"))
    await _pipeline(cache, handler)(ListTasksCommand())

    assert [c.name for c in handler.calls] == ["ListTasksCommand", "AddTaskCommand", "ListTasksCommand"]


# ── Commands ────────────────────────────────────────────────────


def test_command_cache_declarations() -> None:
    search = SearchWebCommand(query="python", language="tr", results=3)

    assert search.cache_key == "SearchWeb-python-tr-3"
    assert search.cache_group_key == "SearchCommands"
    assert search.sliding_expiration == 180
    assert search.parameters == {"query": "python", "language": "tr", "results": 3}

    close = CloseApplicationCommand(application_name="chrome")
    assert close.cache_key is None
    assert close.invalidates_groups == ("ApplicationCommands",)


def test_pipeline_result_round_trips_through_json() -> None:
    result = PipelineResult.invalid([FieldError(field="title", message="Task title cannot be empty")])

    assert PipelineResult.model_validate_json(result.model_dump_json()) == result


def test_raise_for_validation() -> None:
    invalid = PipelineResult.invalid([FieldError(field="title", message="Task title cannot be empty")])

    with pytest.raises(CommandValidationError, match="title: Task title cannot be empty") as exc:
        invalid.raise_for_validation()

    assert exc.value.errors == [FieldError(field="title", message="Task title cannot be empty")]
    ok = PipelineResult.ok("done")
    assert ok.raise_for_validation() is ok
    failed = PipelineResult.fail("boom")
    assert failed.raise_for_validation() is failed
