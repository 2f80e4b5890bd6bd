"""
Configuration — Environment settings and provider factory config.

Two layers:
  - SimpleAISettings: process-wide settings from env vars / .env
    (SIMPLEAI_* prefix), parsed once and cached.
  - FactoryConfig: which providers exist and how to build them. Loaded
    from a JSON or YAML file, or derived from the environment settings.

Older single-provider config files ({"ollama_host": ..., "default_model": ...})
are still accepted and migrated to the FactoryConfig shape on load.
"""

from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import Any

import structlog
import yaml
from pydantic import BaseModel, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from simpleai.errors import InvalidConfigError

logger = structlog.get_logger(__name__)

DEFAULT_OLLAMA_HOST = "http://localhost:11434"
DEFAULT_OLLAMA_MODEL = "llama3.1:latest"
DEFAULT_GOOGLE_MODEL = "gemini-2.0-flash"
DEFAULT_TIMEOUT = 60
DEFAULT_RETRY_ATTEMPTS = 3


# ── Environment Settings ─────────────────────────────────────────────


class SimpleAISettings(BaseSettings):
    """Process-wide settings. Provider details live in FactoryConfig."""

    model_config = SettingsConfigDict(
        env_prefix="SIMPLEAI_",
        env_file=(".env", ".env.local"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    config_path: str = ""
    default_provider: str = "ollama"
    log_level: str = "INFO"
    log_json: bool = False
    timeout: int = DEFAULT_TIMEOUT
    retry_attempts: int = DEFAULT_RETRY_ATTEMPTS

    # ── Ollama ────────────────────────────────────────────────────────
    ollama_host: str = DEFAULT_OLLAMA_HOST
    ollama_model: str = DEFAULT_OLLAMA_MODEL

    # ── Google ────────────────────────────────────────────────────────
    google_api_key: str = ""
    google_model: str = DEFAULT_GOOGLE_MODEL


@lru_cache
def get_settings() -> SimpleAISettings:
    """Singleton accessor — parsed once, cached forever."""
    return SimpleAISettings()


# ── Factory Config ───────────────────────────────────────────────────


class ProviderConfig(BaseModel):
    """Configuration for a single provider."""

    host: str = ""
    api_key: str = ""
    default_model: str = ""
    timeout: int = DEFAULT_TIMEOUT  # seconds, per attempt
    retry_attempts: int = DEFAULT_RETRY_ATTEMPTS
    rate_limit: int = 0  # requests per minute, 0 = unlimited
    extra_settings: dict[str, str] = Field(default_factory=dict)


class FactoryConfig(BaseModel):
    """Complete provider factory configuration."""

    default_provider: str = ""
    providers: dict[str, ProviderConfig] = Field(default_factory=dict)
    model_preferences: dict[str, str] = Field(default_factory=dict)
    fallback_providers: list[str] = Field(default_factory=list)


class LegacyConfig(BaseModel):
    """Single-provider config format predating FactoryConfig."""

    ollama_host: str = ""
    default_model: str = ""
    default_prompts: dict[str, str] = Field(default_factory=dict)


def default_factory_config() -> FactoryConfig:
    """A working local setup: Ollama on its default port."""
    return FactoryConfig(
        default_provider="ollama",
        providers={
            "ollama": ProviderConfig(
                host=DEFAULT_OLLAMA_HOST,
                default_model=DEFAULT_OLLAMA_MODEL,
                timeout=DEFAULT_TIMEOUT,
                retry_attempts=DEFAULT_RETRY_ATTEMPTS,
            )
        },
        model_preferences={"default": DEFAULT_OLLAMA_MODEL},
        fallback_providers=["ollama"],
    )


def migrate_legacy_config(legacy: LegacyConfig) -> FactoryConfig:
    """Convert the legacy single-provider format to a FactoryConfig."""
    return FactoryConfig(
        default_provider="ollama",
        providers={
            "ollama": ProviderConfig(
                host=legacy.ollama_host,
                default_model=legacy.default_model,
                timeout=DEFAULT_TIMEOUT,
                retry_attempts=DEFAULT_RETRY_ATTEMPTS,
            )
        },
        model_preferences={"default": legacy.default_model},
    )


def is_legacy_config(data: dict[str, Any]) -> bool:
    """True if ``data`` looks like the legacy single-provider format."""
    if not isinstance(data, dict) or data.get("default_provider"):
        return False
    return bool(data.get("ollama_host") or data.get("default_model"))


def parse_factory_config(data: dict[str, Any]) -> FactoryConfig:
    """
    Parse raw config data in either format.

    The current format is recognized by a non-empty ``default_provider``;
    anything else is read as the legacy format and migrated.

    Raises:
        InvalidConfigError: If the data matches neither format.
    """
    if not isinstance(data, dict):
        raise InvalidConfigError(
            f"config must be a mapping, got {type(data).__name__}",
            operation="config_load",
        )

    try:
        if data.get("default_provider"):
            return FactoryConfig.model_validate(data)
        legacy = LegacyConfig.model_validate(data)
    except ValidationError as e:
        raise InvalidConfigError(
            "failed to parse config in either old or new format",
            operation="config_load",
            cause=e,
        )

    logger.info("legacy_config_migrated", ollama_host=legacy.ollama_host)
    return migrate_legacy_config(legacy)


def load_factory_config(path: str | Path) -> FactoryConfig:
    """
    Load a FactoryConfig from a ``.json``, ``.yaml`` or ``.yml`` file.

    Raises:
        FileNotFoundError: If the file does not exist.
        InvalidConfigError: If the file cannot be parsed.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config not found at {path}")

    text = path.read_text(encoding="utf-8")
    try:
        if path.suffix.lower() in (".yaml", ".yml"):
            data = yaml.safe_load(text) or {}
        else:
            data = json.loads(text)
    except (yaml.YAMLError, ValueError) as e:
        raise InvalidConfigError(
            f"config file {path} is not valid", operation="config_load", cause=e
        )

    config = parse_factory_config(data)
    logger.info(
        "factory_config_loaded",
        path=str(path),
        default_provider=config.default_provider,
        providers=sorted(config.providers),
    )
    return config


def save_factory_config(config: FactoryConfig, path: str | Path) -> Path:
    """Write ``config`` as JSON or YAML depending on the file suffix."""
    path = Path(path)
    data = config.model_dump()
    if path.suffix.lower() in (".yaml", ".yml"):
        path.write_text(yaml.safe_dump(data, sort_keys=False), encoding="utf-8")
    else:
        path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
    return path


def settings_factory_config(settings: SimpleAISettings) -> FactoryConfig:
    """Derive a FactoryConfig from environment settings alone."""
    providers = {
        "ollama": ProviderConfig(
            host=settings.ollama_host,
            default_model=settings.ollama_model,
            timeout=settings.timeout,
            retry_attempts=settings.retry_attempts,
        )
    }
    if settings.google_api_key:
        providers["google"] = ProviderConfig(
            api_key=settings.google_api_key,
            default_model=settings.google_model,
            timeout=settings.timeout,
            retry_attempts=settings.retry_attempts,
        )
    return FactoryConfig(
        default_provider=settings.default_provider,
        providers=providers,
        fallback_providers=list(providers),
    )


def validate_factory_config(
    config: FactoryConfig, operation: str = "config_validation"
) -> None:
    """
    Check a FactoryConfig for structural problems.

    Raises:
        InvalidConfigError: On the first problem found (never retryable).
    """
    if not config.default_provider:
        raise InvalidConfigError("default provider must be specified", operation=operation)

    if not config.providers:
        raise InvalidConfigError(
            "at least one provider must be configured", operation=operation
        )

    if config.default_provider not in config.providers:
        raise InvalidConfigError(
            f"default provider {config.default_provider} not found in provider configurations",
            operation=operation,
        )

    for name, provider in config.providers.items():
        if not provider.default_model:
            raise InvalidConfigError(
                f"provider {name} must have a default model specified", operation=operation
            )
        if provider.timeout <= 0:
            raise InvalidConfigError(
                f"provider {name} must have a positive timeout value", operation=operation
            )
        if provider.retry_attempts < 0:
            raise InvalidConfigError(
                f"provider {name} cannot have negative retry attempts", operation=operation
            )
