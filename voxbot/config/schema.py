"""Configuration schema using Pydantic."""

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class IntentPatternConfig(BaseModel):
    """Keyword pattern used by the pattern strategy."""
    intent: str
    keywords: list[str] = Field(default_factory=list)
    weight: float = Field(default=1.0, gt=0.0, le=1.0)


def _default_patterns() -> list[IntentPatternConfig]:
    return [
        IntentPatternConfig(
            intent="OpenApplication",
            keywords=["open", "launch", "start", "run", "aç", "başlat", "çalıştır"],
        ),
        IntentPatternConfig(
            intent="CloseApplication",
            keywords=["close", "quit", "exit", "kill", "kapat", "sonlandır"],
        ),
        IntentPatternConfig(
            intent="PlayMusic",
            keywords=["play", "music", "song", "playlist", "çal", "oynat", "müzik", "şarkı"],
        ),
        IntentPatternConfig(
            intent="SearchWeb",
            keywords=["search", "google", "look up", "find", "ara", "araştır", "bul"],
            weight=0.9,
        ),
        IntentPatternConfig(
            intent="SendMessage",
            keywords=["send", "message", "text", "tell", "mesaj", "gönder", "yaz"],
            weight=0.9,
        ),
        IntentPatternConfig(
            intent="ControlDevice",
            keywords=["volume", "brightness", "wifi", "bluetooth", "mute", "ses", "parlaklık"],
            weight=0.8,
        ),
        IntentPatternConfig(
            intent="AddTask",
            keywords=["add task", "new task", "todo", "görev ekle"],
        ),
        IntentPatternConfig(
            intent="ListTasks",
            keywords=["list tasks", "my tasks", "show tasks", "görevleri listele", "görevlerim"],
        ),
        IntentPatternConfig(
            intent="SetReminder",
            keywords=["remind", "reminder", "hatırlat", "hatırlatıcı"],
        ),
    ]


class StrategyWeights(BaseModel):
    """Static per-strategy trust levels for the ensemble vote."""
    llm: float = Field(default=1.0, gt=0.0)
    semantic: float = Field(default=0.8, gt=0.0)
    pattern: float = Field(default=0.6, gt=0.0)


class IntentConfig(BaseModel):
    """Intent classification configuration."""
    minimum_confidence: float = Field(default=0.3, ge=0.0, le=1.0, description="Below this no command is built")
    strategy_timeout: float = Field(default=10.0, gt=0.0, description="Seconds before a strategy vote is abandoned")
    semantic_threshold: float = Field(default=0.6, ge=0.0, le=1.0)
    default_language: str = "en"
    strategies: StrategyWeights = Field(default_factory=StrategyWeights)
    patterns: list[IntentPatternConfig] = Field(default_factory=_default_patterns)


class ContextConfig(BaseModel):
    """Conversation state configuration."""
    history_size: int = Field(default=50, ge=1, le=10000)
    recent_window: int = Field(default=10, ge=1, le=1000, description="History entries consulted by the rules")
    retention_seconds: float = Field(default=1800.0, gt=0.0)
    session_ttl_seconds: float = Field(default=3600.0, gt=0.0)
    sweep_interval_seconds: float = Field(default=60.0, gt=0.0)
    preference_bonus: float = Field(default=0.1, ge=0.0, le=1.0)


class CacheConfig(BaseModel):
    """Command result cache configuration."""
    default_sliding_expiration_seconds: float = Field(default=86400.0, gt=0.0)
    sweep_interval_seconds: float = Field(default=300.0, gt=0.0)


class PipelineConfig(BaseModel):
    """Execution pipeline configuration."""
    performance_threshold_ms: float = Field(default=500.0, gt=0.0)


class ProviderConfig(BaseModel):
    """LLM provider configuration."""
    api_key: str = ""
    api_base: str | None = None
    extra_headers: dict[str, str] | None = None


class ProvidersConfig(BaseModel):
    """Configuration for LLM providers."""
    model_config = ConfigDict(extra="ignore")

    openrouter: ProviderConfig = Field(default_factory=ProviderConfig)
    openai: ProviderConfig = Field(default_factory=ProviderConfig)
    anthropic: ProviderConfig = Field(default_factory=ProviderConfig)


class LLMConfig(BaseModel):
    """Remote model used by the LLM strategy."""
    enabled: bool = True
    model: str = "openrouter/microsoft/wizardlm-2-8x22b"
    max_tokens: int = Field(default=500, ge=1)
    temperature: float = Field(default=0.3, ge=0.0, le=2.0)


class Config(BaseSettings):
    """Root configuration for voxbot."""
    model_config = SettingsConfigDict(env_prefix="VOXBOT_", env_nested_delimiter="__")

    intent: IntentConfig = Field(default_factory=IntentConfig)
    context: ContextConfig = Field(default_factory=ContextConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)
    providers: ProvidersConfig = Field(default_factory=ProvidersConfig)
    llm: LLMConfig = Field(default_factory=LLMConfig)

    def get_provider(self) -> ProviderConfig | None:
        """Get the first provider with an API key: OpenRouter > OpenAI > Anthropic."""
        for p in (self.providers.openrouter, self.providers.openai, self.providers.anthropic):
            if p.api_key:
                return p
        return None

    def get_api_key(self) -> str | None:
        p = self.get_provider()
        return p.api_key if p else None

    def get_api_base(self) -> str | None:
        """Get API base URL, defaulting OpenRouter to its public endpoint."""
        if self.providers.openrouter.api_key:
            return self.providers.openrouter.api_base or "https://openrouter.ai/api/v1"
        p = self.get_provider()
        return p.api_base if p else None
