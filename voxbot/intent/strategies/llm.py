"""Remote language-model strategy via litellm."""

import json
import re
from typing import Any

import litellm
from litellm import acompletion
from loguru import logger

from voxbot.config.schema import Config
from voxbot.errors import StrategyError
from voxbot.intent.base import IntentStrategy
from voxbot.intent.types import CommandType, StrategyResult, to_entities

_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)

# Labels with no executable command are never offered to the model.
PROMPT_INTENTS = tuple(
    t.value for t in CommandType if t not in (CommandType.UPDATE_TASK, CommandType.DELETE_TASK)
)

SYSTEM_PROMPT = """You are an advanced intent detection system for a smart voice assistant.

Available intents: {intents}

Your task is to analyze user input and determine:
1. The most likely intent
2. Confidence level (0.0-1.0)
3. Extracted entities (application names, parameters, etc.)

Special rules:
- "Spotify'ı aç", "Chrome'u başlat", "open Spotify" = OpenApplication (high confidence)
- "Müzik çal", "Şarkı oynat", "play some music" = PlayMusic (high confidence)
- "Google'da ara", "... bul", "search for ..." = SearchWeb
- Application names should be extracted as entities (applicationName)
- Consider context and Turkish language nuances

Response format (JSON only):
{{
    "intent": "CommandType",
    "confidence": 0.95,
    "entities": {{
        "applicationName": "Spotify",
        "action": "open"
    }},
    "reasoning": "brief explanation"
}}

Language: {language}"""


def parse_model_reply(content: str) -> dict[str, Any]:
    """Decode the model's JSON reply, tolerating code fences and surrounding prose."""
    cleaned = _FENCE.sub("", content.strip())
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError:
        start, end = cleaned.find("{"), cleaned.rfind("}")
        if start == -1 or end <= start:
            raise StrategyError(f"Model reply is not JSON: {content[:200]!r}")
        try:
            data = json.loads(cleaned[start:end + 1])
        except json.JSONDecodeError as e:
            raise StrategyError(f"Model reply is not JSON: {e}") from e
    if not isinstance(data, dict):
        raise StrategyError("Model reply is not a JSON object")
    return data


class LLMStrategy(IntentStrategy):
    """
    Asks a remote chat model to classify the utterance.

    Passes ``api_key``/``api_base`` straight to ``litellm.acompletion``;
    transport and parsing errors raise ``StrategyError``.
    """

    def __init__(
        self,
        model: str,
        api_key: str | None = None,
        api_base: str | None = None,
        extra_headers: dict[str, str] | None = None,
        max_tokens: int = 500,
        temperature: float = 0.3,
    ):
        self.model = model
        self.api_key = api_key
        self.api_base = api_base
        self.extra_headers = extra_headers or {}
        self.max_tokens = max_tokens
        self.temperature = temperature
        litellm.suppress_debug_info = True

    @classmethod
    def from_config(cls, config: Config) -> "LLMStrategy":
        p = config.get_provider()
        return cls(
            model=config.llm.model,
            api_key=p.api_key if p else None,
            api_base=config.get_api_base(),
            extra_headers=(p.extra_headers if p else None),
            max_tokens=config.llm.max_tokens,
            temperature=config.llm.temperature,
        )

    @property
    def name(self) -> str:
        return "llm"

    def _kwargs(self, text: str, language: str) -> dict[str, Any]:
        """Build kwargs for litellm.acompletion()."""
        intents = ", ".join(PROMPT_INTENTS)
        kw: dict[str, Any] = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT.format(intents=intents, language=language)},
                {"role": "user", "content": f'Analyze this user input: "{text}"'},
            ],
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
        }
        if self.api_key:
            kw["api_key"] = self.api_key
        if self.api_base:
            kw["api_base"] = self.api_base
        if self.extra_headers:
            kw["extra_headers"] = self.extra_headers
        return kw

    async def detect(self, text: str, language: str) -> StrategyResult:
        try:
            response = await acompletion(**self._kwargs(text, language))
        except Exception as e:
            raise StrategyError(f"LLM call failed: {e}") from e

        content = (response.choices[0].message.content or "").strip()
        if not content:
            raise StrategyError("LLM returned an empty reply")

        data = parse_model_reply(content)
        label = CommandType.parse(data.get("intent"))
        if label == CommandType.UNKNOWN or label.value not in PROMPT_INTENTS:
            logger.debug(f"LLMStrategy: model answered unrecognized intent {data.get('intent')!r}")
            return StrategyResult.unknown(self.name)

        try:
            confidence = float(data.get("confidence", 0.0))
        except (TypeError, ValueError):
            confidence = 0.0

        entities = data.get("entities")
        return StrategyResult(
            label=label,
            confidence=confidence,
            entities=to_entities(entities if isinstance(entities, dict) else None),
            strategy_name=self.name,
        )
