"""
Tests for simpleai.config — settings, factory config parsing and validation.

Covers:
  - Legacy single-provider format detection and migration
  - Loading JSON / YAML files
  - Structural validation messages
  - Deriving a FactoryConfig from SIMPLEAI_* environment settings
"""

import json

import pytest

from simpleai.config import (
    DEFAULT_OLLAMA_HOST,
    FactoryConfig,
    LegacyConfig,
    ProviderConfig,
    SimpleAISettings,
    default_factory_config,
    get_settings,
    is_legacy_config,
    load_factory_config,
    migrate_legacy_config,
    parse_factory_config,
    save_factory_config,
    settings_factory_config,
    validate_factory_config,
)
from simpleai.errors import InvalidConfigError

LEGACY = {
    "ollama_host": "http://gpu-box:11434",
    "default_model": "mistral:7b",
    "default_prompts": {"summary": "Summarize:"},
}

CURRENT = {
    "default_provider": "google",
    "providers": {
        "google": {"api_key": "k", "default_model": "gemini-2.0-flash", "timeout": 30},
    },
}


# ── Legacy migration ─────────────────────────────────────────────────


class TestLegacy:
    def test_detects_legacy(self):
        assert is_legacy_config(LEGACY) is True
        assert is_legacy_config(CURRENT) is False
        assert is_legacy_config({}) is False

    def test_migration(self):
        config = migrate_legacy_config(LegacyConfig(**LEGACY))
        assert config.default_provider == "ollama"
        ollama = config.providers["ollama"]
        assert ollama.host == "http://gpu-box:11434"
        assert ollama.default_model == "mistral:7b"
        assert ollama.timeout == 60
        assert ollama.retry_attempts == 3
        assert config.model_preferences == {"default": "mistral:7b"}

    def test_parse_legacy(self):
        config = parse_factory_config(LEGACY)
        assert config.default_provider == "ollama"
        validate_factory_config(config)


# ── Parsing & loading ────────────────────────────────────────────────


class TestParse:
    def test_parse_current_format(self):
        config = parse_factory_config(CURRENT)
        assert config.default_provider == "google"
        assert config.providers["google"].timeout == 30
        assert config.providers["google"].retry_attempts == 3

    def test_non_mapping_rejected(self):
        with pytest.raises(InvalidConfigError) as exc_info:
            parse_factory_config(["not", "a", "dict"])
        assert exc_info.value.operation == "config_load"

    def test_bad_types_rejected(self):
        data = {"default_provider": "ollama", "providers": {"ollama": {"timeout": "soon"}}}
        with pytest.raises(InvalidConfigError) as exc_info:
            parse_factory_config(data)
        assert exc_info.value.retryable is False

    def test_load_json(self, tmp_path):
        path = tmp_path / "simpleai.json"
        path.write_text(json.dumps(CURRENT))
        assert load_factory_config(path).default_provider == "google"

    def test_load_yaml(self, tmp_path):
        path = tmp_path / "simpleai.yaml"
        path.write_text(
            "default_provider: ollama\n"
            "providers:\n"
            "  ollama:\n"
            "    host: http://localhost:11434\n"
            "    default_model: llama3.1:latest\n"
        )
        config = load_factory_config(path)
        assert config.providers["ollama"].default_model == "llama3.1:latest"

    def test_load_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_factory_config(tmp_path / "nope.json")

    def test_load_malformed_file(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json")
        with pytest.raises(InvalidConfigError):
            load_factory_config(path)

    @pytest.mark.parametrize("name", ["out.json", "out.yaml"])
    def test_save_then_load(self, tmp_path, name):
        path = save_factory_config(default_factory_config(), tmp_path / name)
        assert load_factory_config(path) == default_factory_config()


# ── Validation ───────────────────────────────────────────────────────


class TestValidate:
    def test_default_config_is_valid(self):
        validate_factory_config(default_factory_config())

    @pytest.mark.parametrize(
        "config, message",
        [
            (FactoryConfig(), "default provider must be specified"),
            (FactoryConfig(default_provider="ollama"), "at least one provider must be configured"),
            (
                FactoryConfig(
                    default_provider="google",
                    providers={"ollama": ProviderConfig(default_model="m")},
                ),
                "default provider google not found in provider configurations",
            ),
            (
                FactoryConfig(default_provider="ollama", providers={"ollama": ProviderConfig()}),
                "provider ollama must have a default model specified",
            ),
            (
                FactoryConfig(
                    default_provider="ollama",
                    providers={"ollama": ProviderConfig(default_model="m", timeout=0)},
                ),
                "provider ollama must have a positive timeout value",
            ),
            (
                FactoryConfig(
                    default_provider="ollama",
                    providers={"ollama": ProviderConfig(default_model="m", retry_attempts=-1)},
                ),
                "provider ollama cannot have negative retry attempts",
            ),
        ],
    )
    def test_problems(self, config, message):
        with pytest.raises(InvalidConfigError) as exc_info:
            validate_factory_config(config, operation="load_config")
        assert exc_info.value.message == message
        assert exc_info.value.operation == "load_config"


# ── Environment settings ─────────────────────────────────────────────


class TestSettings:
    def test_env_prefix(self, monkeypatch):
        monkeypatch.setenv("SIMPLEAI_OLLAMA_MODEL", "qwen2.5:7b")
        monkeypatch.setenv("SIMPLEAI_TIMEOUT", "15")
        get_settings.cache_clear()
        settings = get_settings()
        assert settings.ollama_model == "qwen2.5:7b"
        assert settings.timeout == 15

    def test_settings_config_ollama_only(self):
        settings = SimpleAISettings(_env_file=None)
        config = settings_factory_config(settings)
        assert list(config.providers) == ["ollama"]
        assert config.providers["ollama"].host == DEFAULT_OLLAMA_HOST
        validate_factory_config(config)

    def test_settings_config_with_google(self):
        settings = SimpleAISettings(_env_file=None, google_api_key="secret")
        config = settings_factory_config(settings)
        assert sorted(config.providers) == ["google", "ollama"]
        assert config.providers["google"].api_key == "secret"
        assert config.fallback_providers == ["ollama", "google"]
