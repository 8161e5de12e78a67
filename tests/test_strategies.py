import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import pytest

from voxbot.cache.memory import InMemoryCacheStore
from voxbot.config.schema import Config, IntentPatternConfig
from voxbot.errors import StrategyError
from voxbot.intent.strategies.llm import LLMStrategy, parse_model_reply
from voxbot.intent.strategies.pattern import PatternStrategy
from voxbot.intent.strategies.semantic import SemanticStrategy, levenshtein_distance, levenshtein_similarity
from voxbot.intent.types import CommandType, NumberEntity, TextEntity


def _reply(content: str):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


# ── Pattern ─────────────────────────────────────────────────────


async def test_pattern_matches_open_application() -> None:
    strategy = PatternStrategy.from_config(Config().intent.patterns)

    result = await strategy.detect("open spotify", "en")

    assert result.label == CommandType.OPEN_APPLICATION
    assert result.confidence == pytest.approx(0.5)
    assert result.entities == {"applicationName": TextEntity("spotify")}
    assert result.strategy_name == "pattern"


async def test_pattern_extra_hits_raise_confidence() -> None:
    strategy = PatternStrategy.from_config(Config().intent.patterns)

    result = await strategy.detect("play some music", "en")

    assert result.label == CommandType.PLAY_MUSIC
    assert result.confidence == pytest.approx(0.7)


async def test_pattern_turkish_suffix() -> None:
    strategy = PatternStrategy.from_config(Config().intent.patterns)

    result = await strategy.detect("spotify'ı aç", "tr")

    assert result.label == CommandType.OPEN_APPLICATION
    assert result.entities["applicationName"] == TextEntity("spotify")


async def test_pattern_no_match_is_unknown() -> None:
    strategy = PatternStrategy.from_config(Config().intent.patterns)

    result = await strategy.detect("hello there", "en")

    assert result.is_unknown
    assert result.confidence == 0.0


def test_pattern_from_config_skips_unknown_intents(log_messages) -> None:
    strategy = PatternStrategy.from_config([
        IntentPatternConfig(intent="Dance", keywords=["dance"]),
        IntentPatternConfig(intent="ListTasks", keywords=["My Tasks"]),
    ])

    assert len(strategy.patterns) == 1
    assert strategy.patterns[0].keywords == ("my tasks",)
    assert any("unknown intent 'Dance'" in m for m in log_messages)


# ── Semantic ────────────────────────────────────────────────────


def test_levenshtein() -> None:
    assert levenshtein_distance("kitten", "sitting") == 3
    assert levenshtein_similarity("abc", "abc") == 1.0
    assert levenshtein_similarity("", "abc") == 0.0


async def test_semantic_exact_example() -> None:
    strategy = SemanticStrategy()

    result = await strategy.detect("open spotify", "en")

    assert result.label == CommandType.OPEN_APPLICATION
    assert result.confidence == 1.0
    assert result.entities["applicationName"] == TextEntity("spotify")


async def test_semantic_below_threshold_abstains() -> None:
    strategy = SemanticStrategy(threshold=0.6)

    result = await strategy.detect("xyzzy qwerty plugh", "en")

    assert result.is_unknown
    assert result.confidence < 0.6


async def test_semantic_memoizes_in_injected_cache() -> None:
    calls = []

    async def scorer(text: str, example: str) -> float:
        calls.append(example)
        return levenshtein_similarity(text, example)

    cache = InMemoryCacheStore()
    strategy = SemanticStrategy(scorer=scorer, cache=cache)

    first = await strategy.detect("play music", "en")
    scored = len(calls)
    second = await strategy.detect("play music", "en")

    assert scored > 0
    assert len(calls) == scored
    assert first == second
    assert "semantic:en:play music" in cache


async def test_semantic_ignores_corrupt_cache_entry() -> None:
    cache = InMemoryCacheStore()
    await cache.set("semantic:en:play music", b"not json", 60)
    strategy = SemanticStrategy(cache=cache)

    result = await strategy.detect("play music", "en")

    assert result.label == CommandType.PLAY_MUSIC


async def test_semantic_scorer_failure_falls_back() -> None:
    async def scorer(text: str, example: str) -> float:
        raise ConnectionError("embedding service down")

    strategy = SemanticStrategy(scorer=scorer)

    result = await strategy.detect("search google", "en")

    assert result.label == CommandType.SEARCH_WEB


async def test_separate_caches_do_not_share_entries() -> None:
    a, b = InMemoryCacheStore(), InMemoryCacheStore()
    await SemanticStrategy(cache=a).detect("look up", "en")

    assert "semantic:en:look up" in a
    assert "semantic:en:look up" not in b


# ── LLM ─────────────────────────────────────────────────────────


def test_parse_model_reply_strips_fences() -> None:
    data = parse_model_reply('```json\n{"intent": "PlayMusic", "confidence": 0.9}\n```')
    assert data == {"intent": "PlayMusic", "confidence": 0.9}


def test_parse_model_reply_finds_embedded_object() -> None:
    data = parse_model_reply('Sure! {"intent": "SearchWeb"} hope that helps')
    assert data == {"intent": "SearchWeb"}


def test_parse_model_reply_rejects_prose() -> None:
    with pytest.raises(StrategyError):
        parse_model_reply("I think the user wants music")


async def test_llm_strategy_returns_typed_result() -> None:
    content = json.dumps({
        "intent": "ControlDevice",
        "confidence": 0.93,
        "entities": {"deviceName": "volume", "level": 40, "note": None},
        "reasoning": "volume request",
    })
    strategy = LLMStrategy(model="openrouter/test-model", api_key="sk-test")

    with patch("voxbot.intent.strategies.llm.acompletion", new=AsyncMock(return_value=_reply(content))) as mock:
        result = await strategy.detect("set volume to 40", "en")

    assert result.label == CommandType.CONTROL_DEVICE
    assert result.confidence == pytest.approx(0.93)
    assert result.entities == {"deviceName": TextEntity("volume"), "level": NumberEntity(40.0)}
    assert result.strategy_name == "llm"

    kwargs = mock.await_args.kwargs
    assert kwargs["model"] == "openrouter/test-model"
    assert kwargs["api_key"] == "sk-test"
    assert "set volume to 40" in kwargs["messages"][1]["content"]


async def test_llm_unrecognized_intent_is_unknown() -> None:
    strategy = LLMStrategy(model="m")
    reply = _reply('{"intent": "OrderPizza", "confidence": 0.99}')

    with patch("voxbot.intent.strategies.llm.acompletion", new=AsyncMock(return_value=reply)):
        result = await strategy.detect("order a pizza", "en")

    assert result.is_unknown


async def test_llm_prompt_offers_only_executable_intents() -> None:
    strategy = LLMStrategy(model="m")
    reply = _reply('{"intent": "DeleteTask", "confidence": 0.9}')

    with patch("voxbot.intent.strategies.llm.acompletion", new=AsyncMock(return_value=reply)) as mock:
        result = await strategy.detect("delete the milk task", "en")

    system_prompt = mock.await_args.kwargs["messages"][0]["content"]
    assert "ListTasks" in system_prompt
    assert "UpdateTask" not in system_prompt
    assert "DeleteTask" not in system_prompt
    assert result.is_unknown


async def test_llm_transport_error_raises_strategy_error() -> None:
    strategy = LLMStrategy(model="m")

    with patch("voxbot.intent.strategies.llm.acompletion", new=AsyncMock(side_effect=ConnectionError("boom"))):
        with pytest.raises(StrategyError, match="LLM call failed"):
            await strategy.detect("open chrome", "en")


async def test_llm_empty_reply_raises() -> None:
    strategy = LLMStrategy(model="m")

    with patch("voxbot.intent.strategies.llm.acompletion", new=AsyncMock(return_value=_reply(""))):
        with pytest.raises(StrategyError):
            await strategy.detect("open chrome", "en")


def test_llm_from_config_uses_openrouter_defaults() -> None:
    config = Config.model_validate({
        "providers": {"openrouter": {"api_key": "sk-or", "extra_headers": {"X-Title": "voxbot"}}},
        "llm": {"model": "openrouter/anthropic/claude-3-haiku", "max_tokens": 200},
    })

    strategy = LLMStrategy.from_config(config)
    kwargs = strategy._kwargs("hi", "en")

    assert kwargs["api_key"] == "sk-or"
    assert kwargs["api_base"] == "https://openrouter.ai/api/v1"
    assert kwargs["extra_headers"] == {"X-Title": "voxbot"}
    assert kwargs["max_tokens"] == 200
