"""Example-similarity strategy."""

import json
from typing import Awaitable, Callable

from loguru import logger

from voxbot.cache.base import CacheStore
from voxbot.errors import CacheError
from voxbot.intent.base import IntentStrategy
from voxbot.intent.types import CommandType, StrategyResult, clamp_confidence
from voxbot.intent.vocabulary import extract_entities

SimilarityScorer = Callable[[str, str], Awaitable[float]]

DEFAULT_EXAMPLES: dict[CommandType, list[str]] = {
    CommandType.OPEN_APPLICATION: [
        "spotify'ı aç", "chrome'u başlat", "notepad'i çalıştır",
        "open spotify", "start chrome", "launch notepad",
        "uygulama aç", "program başlat", "yazılım çalıştır",
    ],
    CommandType.PLAY_MUSIC: [
        "müzik çal", "şarkı oynat", "müzik başlat",
        "play music", "start song", "play some music",
        "spotify'da müzik çal", "müzik dinlemek istiyorum",
    ],
    CommandType.CLOSE_APPLICATION: [
        "uygulamayı kapat", "chrome'u sonlandır", "programı durdur",
        "close app", "stop application", "kill process",
        "spotify'ı kapat", "müziği durdur",
    ],
    CommandType.SEARCH_WEB: [
        "google'da ara", "internette bul", "araştır",
        "search google", "find on web", "look up",
        "hava durumu ara", "haberleri bul",
    ],
}


def levenshtein_distance(s1: str, s2: str) -> int:
    """Edit distance between two strings (insert/delete/substitute, cost 1)."""
    if len(s1) < len(s2):
        s1, s2 = s2, s1
    previous = list(range(len(s2) + 1))
    for i, c1 in enumerate(s1, start=1):
        current = [i]
        for j, c2 in enumerate(s2, start=1):
            cost = 0 if c1 == c2 else 1
            current.append(min(previous[j] + 1, current[j - 1] + 1, previous[j - 1] + cost))
        previous = current
    return previous[-1]


def levenshtein_similarity(s1: str, s2: str) -> float:
    """1 - distance / max length; 0.0 if either string is empty."""
    if not s1 or not s2:
        return 0.0
    return 1.0 - levenshtein_distance(s1, s2) / max(len(s1), len(s2))


class SemanticStrategy(IntentStrategy):
    """
    Nearest-example matcher.

    Scores the utterance against example phrases per intent and takes the
    best match. Below ``threshold`` the strategy abstains (Unknown).

    An async ``scorer`` (embeddings, remote model) can replace the default
    Levenshtein similarity; its failures fall back to Levenshtein per pair.
    Decisions are memoized in the injected ``cache`` handle when given.
    """

    def __init__(
        self,
        examples: dict[CommandType, list[str]] | None = None,
        threshold: float = 0.6,
        scorer: SimilarityScorer | None = None,
        cache: CacheStore | None = None,
        cache_ttl: float = 600.0,
    ):
        self.examples = examples or DEFAULT_EXAMPLES
        self.threshold = threshold
        self.scorer = scorer
        self.cache = cache
        self.cache_ttl = cache_ttl

    @property
    def name(self) -> str:
        return "semantic"

    async def detect(self, text: str, language: str) -> StrategyResult:
        cache_key = f"semantic:{language}:{text}"
        cached = await self._cached(cache_key)
        if cached is not None:
            label, confidence = cached
        else:
            label, confidence = await self._best_match(text)
            await self._remember(cache_key, label, confidence)

        if confidence < self.threshold:
            return StrategyResult(label=CommandType.UNKNOWN, confidence=confidence, strategy_name=self.name)

        return StrategyResult(
            label=label,
            confidence=confidence,
            entities=extract_entities(text, label),
            strategy_name=self.name,
        )

    async def _best_match(self, text: str) -> tuple[CommandType, float]:
        best_label = CommandType.UNKNOWN
        best_score = 0.0
        for label, phrases in self.examples.items():
            for phrase in phrases:
                score = await self._similarity(text, phrase)
                if score > best_score:
                    best_label, best_score = label, score
        return best_label, best_score

    async def _similarity(self, text: str, example: str) -> float:
        if self.scorer is not None:
            try:
                return clamp_confidence(await self.scorer(text, example))
            except Exception as e:
                logger.debug(f"SemanticStrategy: scorer failed ({e}), using Levenshtein")
        return levenshtein_similarity(text, example)

    async def _cached(self, key: str) -> tuple[CommandType, float] | None:
        if self.cache is None:
            return None
        try:
            payload = await self.cache.get(key)
            if payload is None:
                return None
            data = json.loads(payload)
            return CommandType.parse(data["label"]), float(data["confidence"])
        except (CacheError, ValueError, KeyError, TypeError) as e:
            logger.warning(f"SemanticStrategy: ignoring unreadable cache entry {key}: {e}")
            return None

    async def _remember(self, key: str, label: CommandType, confidence: float) -> None:
        if self.cache is None:
            return
        payload = json.dumps({"label": label.value, "confidence": confidence}).encode("utf-8")
        try:
            await self.cache.set(key, payload, self.cache_ttl)
        except CacheError as e:
            logger.warning(f"SemanticStrategy: failed to cache {key}: {e}")
