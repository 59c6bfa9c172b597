from __future__ import annotations

import os
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ModelsConfig(BaseModel):
    reply: str = "openai:gpt-4o-mini"
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    max_tokens: int = Field(default=1000, ge=1)
    api_key: str | None = None
    """Direct API key (testing). Exported to the provider env var when that is unset."""

    def inject_api_key_env(self) -> None:
        """Push api_key into the process environment for pydantic-ai to pick up."""
        if not self.api_key or ":" not in self.reply:
            return
        env_map = {
            "openrouter": "OPENROUTER_API_KEY",
            "openai": "OPENAI_API_KEY",
            "anthropic": "ANTHROPIC_API_KEY",
            "google-gla": "GOOGLE_API_KEY",
            "groq": "GROQ_API_KEY",
        }
        env_var = env_map.get(self.reply.split(":")[0])
        if env_var and not os.environ.get(env_var):
            os.environ[env_var] = self.api_key


class RateLimitConfig(BaseModel):
    max_calls: int = Field(default=10, ge=1)
    window_seconds: float = Field(default=60.0, gt=0)


class HistoryConfig(BaseModel):
    max_turns: int = Field(default=20, ge=0)
    max_bytes: int = Field(default=50_000, ge=0)


class RetryConfig(BaseModel):
    max_attempts: int = Field(default=3, ge=1)
    base_delay_seconds: float = Field(default=0.5, ge=0)


class InputConfig(BaseModel):
    max_input_chars: int = Field(default=500, ge=1)
    max_reply_chars: int = Field(default=1000, ge=1)


class PagingConfig(BaseModel):
    page_size: int = Field(default=20, ge=1)


class StoreConfig(BaseModel):
    db_path: Path = Path("./data/parley.db")
    profiles_path: Path | None = None


class CacheConfig(BaseModel):
    persist: bool = True
    dir: Path = Path("./data/cache")


class WebChannelConfig(BaseModel):
    host: str = "127.0.0.1"
    port: int = 8430
    tokens: dict[str, str] = Field(default_factory=dict)
    """Bearer token -> actor id."""

    @model_validator(mode="after")
    def _validate_remote_requires_auth(self) -> WebChannelConfig:
        if self.host == "0.0.0.0" and not self.tokens:  # noqa: S104
            raise ValueError("web.tokens is required when host is 0.0.0.0")
        return self


class TelemetryConfig(BaseModel):
    """OpenTelemetry tracing configuration."""

    enabled: bool = False
    endpoint: str = "localhost:4317"
    env: str = "dev"


class ObservabilityConfig(BaseModel):
    metrics_enabled: bool = True
    log_level: str = "INFO"
    json_logs: bool = False


class ParleySettings(BaseSettings):
    models: ModelsConfig = Field(default_factory=ModelsConfig)
    rate_limit: RateLimitConfig = Field(default_factory=RateLimitConfig)
    history: HistoryConfig = Field(default_factory=HistoryConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    input: InputConfig = Field(default_factory=InputConfig)
    paging: PagingConfig = Field(default_factory=PagingConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    web: WebChannelConfig = Field(default_factory=WebChannelConfig)
    telemetry: TelemetryConfig = Field(default_factory=TelemetryConfig)
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)

    model_config = SettingsConfigDict(
        env_prefix="PARLEY_",
        env_nested_delimiter="__",
        extra="ignore",
    )


def _coerce_env_value(value: str) -> object:
    parsed = yaml.safe_load(value)
    return value if parsed is None else parsed


def _set_nested(mapping: dict[str, object], path: list[str], value: object) -> None:
    current = mapping
    for key in path[:-1]:
        existing = current.get(key)
        if not isinstance(existing, dict):
            existing = {}
            current[key] = existing
        current = existing
    current[path[-1]] = value


def _apply_env_overrides(data: dict[str, object]) -> dict[str, object]:
    merged = dict(data)
    prefix = "PARLEY_"
    for key, raw_value in os.environ.items():
        if not key.startswith(prefix):
            continue
        path = key[len(prefix) :].lower().split("__")
        _set_nested(merged, path, _coerce_env_value(raw_value))
    return merged


def load_config(path: str | Path = "config/parley.yaml") -> ParleySettings:
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"config file not found: {config_path}")

    loaded = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
    if not isinstance(loaded, dict):
        raise ValueError("config file must contain a top-level mapping")

    raw = loaded.get("parley", loaded)
    if not isinstance(raw, dict):
        raise ValueError("parley config section must be a mapping")

    merged = _apply_env_overrides(raw)
    settings = ParleySettings.model_validate(merged)
    settings.models.inject_api_key_env()
    return settings


__all__ = [
    "CacheConfig",
    "HistoryConfig",
    "InputConfig",
    "ModelsConfig",
    "ObservabilityConfig",
    "PagingConfig",
    "ParleySettings",
    "RateLimitConfig",
    "RetryConfig",
    "StoreConfig",
    "TelemetryConfig",
    "WebChannelConfig",
    "load_config",
]
