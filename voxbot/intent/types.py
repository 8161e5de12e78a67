"""Types for intent classification."""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Union

if TYPE_CHECKING:
    from voxbot.intent.base import IntentStrategy


class CommandType(str, Enum):
    """Intents the agent can recognize and execute."""
    OPEN_APPLICATION = "OpenApplication"
    CLOSE_APPLICATION = "CloseApplication"
    PLAY_MUSIC = "PlayMusic"
    SEARCH_WEB = "SearchWeb"
    SEND_MESSAGE = "SendMessage"
    CONTROL_DEVICE = "ControlDevice"
    ADD_TASK = "AddTask"
    UPDATE_TASK = "UpdateTask"
    DELETE_TASK = "DeleteTask"
    LIST_TASKS = "ListTasks"
    SET_REMINDER = "SetReminder"
    UNKNOWN = "Unknown"

    @classmethod
    def parse(cls, name: str | None) -> "CommandType":
        """Map a label name (case-insensitive) to a CommandType, Unknown if unrecognized."""
        if not name:
            return cls.UNKNOWN
        key = name.strip().replace("_", "").replace(" ", "").lower()
        for member in cls:
            if member.value.lower() == key:
                return member
        return cls.UNKNOWN


# ── Entity values ───────────────────────────────────────────────────


@dataclass(frozen=True)
class TextEntity:
    value: str
    kind: str = field(default="text", init=False)


@dataclass(frozen=True)
class NumberEntity:
    value: float
    kind: str = field(default="number", init=False)


@dataclass(frozen=True)
class ListEntity:
    items: tuple[str, ...]
    kind: str = field(default="list", init=False)

    @property
    def value(self) -> list[str]:
        return list(self.items)


@dataclass(frozen=True)
class OpaqueEntity:
    """Escape hatch for payloads that don't fit the known kinds."""
    value: Any
    kind: str = field(default="opaque", init=False)


EntityValue = Union[TextEntity, NumberEntity, ListEntity, OpaqueEntity]
Entities = dict[str, EntityValue]


def to_entity(raw: Any) -> EntityValue:
    """Wrap a raw value (e.g. decoded JSON) in the matching entity variant."""
    if isinstance(raw, (TextEntity, NumberEntity, ListEntity, OpaqueEntity)):
        return raw
    if isinstance(raw, str):
        return TextEntity(raw)
    if isinstance(raw, bool):
        return OpaqueEntity(raw)
    if isinstance(raw, (int, float)):
        return NumberEntity(float(raw))
    if isinstance(raw, (list, tuple)) and all(isinstance(i, str) for i in raw):
        return ListEntity(tuple(raw))
    return OpaqueEntity(raw)


def to_entities(raw: dict[str, Any] | None) -> Entities:
    """Convert a raw mapping into typed entities, dropping null values."""
    if not raw:
        return {}
    return {str(k): to_entity(v) for k, v in raw.items() if v is not None}


def entities_to_raw(entities: Entities) -> dict[str, Any]:
    """Flatten typed entities back into plain values (for logging/JSON)."""
    return {k: v.value for k, v in entities.items()}


def entity_text(entities: Entities, name: str) -> str | None:
    """Get a text entity's value, or None if absent or not text."""
    entity = entities.get(name)
    if isinstance(entity, TextEntity):
        return entity.value
    return None


# ── Strategy outcomes ───────────────────────────────────────────────


def clamp_confidence(value: float) -> float:
    """Clamp a confidence into [0, 1]; NaN becomes 0."""
    if value is None or math.isnan(value):
        return 0.0
    return max(0.0, min(1.0, float(value)))


@dataclass(frozen=True)
class StrategyResult:
    """One strategy's opinion. Confidence is clamped to [0, 1] at construction."""

    label: CommandType
    confidence: float
    entities: Entities = field(default_factory=dict)
    strategy_name: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "confidence", clamp_confidence(self.confidence))

    @classmethod
    def unknown(cls, strategy_name: str = "") -> "StrategyResult":
        return cls(label=CommandType.UNKNOWN, confidence=0.0, strategy_name=strategy_name)

    @property
    def is_unknown(self) -> bool:
        return self.label == CommandType.UNKNOWN


@dataclass(frozen=True)
class StrategyFailure:
    """A strategy that produced no vote (error, timeout, or cancellation)."""

    strategy_name: str
    reason: str
    error: BaseException | None = None


StrategyOutcome = Union[StrategyResult, StrategyFailure]


@dataclass(frozen=True)
class WeightedStrategy:
    """A registered strategy with its static trust weight."""

    strategy: "IntentStrategy"
    weight: float

    def __post_init__(self) -> None:
        if not self.weight > 0:
            raise ValueError(f"Strategy weight must be > 0, got {self.weight}")

    @property
    def name(self) -> str:
        return self.strategy.name


@dataclass(frozen=True)
class IntentDecision:
    """Ensemble output, optionally rewritten by the context adjuster."""

    label: CommandType
    confidence: float
    entities: Entities = field(default_factory=dict)
    original_text: str = ""
    language: str = "en"
    scores: dict[CommandType, float] = field(default_factory=dict)
    adjusted_by: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "confidence", clamp_confidence(self.confidence))

    @classmethod
    def unknown(cls, text: str, language: str) -> "IntentDecision":
        return cls(label=CommandType.UNKNOWN, confidence=0.0, original_text=text, language=language)

    @property
    def is_unknown(self) -> bool:
        return self.label == CommandType.UNKNOWN

    def to_dict(self) -> dict[str, Any]:
        return {
            "label": self.label.value,
            "confidence": round(self.confidence, 4),
            "entities": entities_to_raw(self.entities),
            "original_text": self.original_text,
            "language": self.language,
            "scores": {k.value: round(v, 4) for k, v in self.scores.items()},
            "adjusted_by": self.adjusted_by,
        }
