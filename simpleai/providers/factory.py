"""
LLMFactory — Provider creation, caching and model discovery.

The factory owns the only state shared between concurrent callers: the
loaded FactoryConfig, the cache of provider instances and the cache of
model lists. Reads go straight to an immutable snapshot and never block;
every write happens under ``_lock`` and publishes a new snapshot, so a
reader iterating a cache never observes it changing underneath.

Usage:
    from simpleai.providers import get_factory

    factory = get_factory()
    provider = factory.get_default_provider()
    reply = await provider.chat(ChatRequest(messages=[Message.user("Hi")]))

    models = await factory.list_models("ollama")
"""

from __future__ import annotations

import asyncio
import threading
from types import MappingProxyType
from typing import Any, Mapping

import structlog

from simpleai.config import (
    FactoryConfig,
    ProviderConfig,
    get_settings,
    load_factory_config,
    settings_factory_config,
    validate_factory_config,
)
from simpleai.errors import InvalidConfigError, LLMError
from simpleai.models import Model, ProviderFeatures
from simpleai.providers.base import BaseProvider, ProviderConstructor
from simpleai.providers.registry import ProviderRegistry

logger = structlog.get_logger(__name__)

_EMPTY: Mapping = MappingProxyType({})


class LLMFactory:
    """
    Creates providers from configuration and caches them.

    Provides:
      - Registration of provider constructors
      - Cached provider instances (one per provider name)
      - Cached model lists
      - Config loading with validation (clears both caches)
    """

    def __init__(self, registry: ProviderRegistry | None = None):
        self._lock = threading.Lock()
        self._registry = registry or ProviderRegistry()
        self._config = FactoryConfig()
        self._providers: Mapping[str, BaseProvider] = _EMPTY
        self._models: Mapping[str, tuple[Model, ...]] = _EMPTY
        self._retired: list[BaseProvider] = []
        self._closing: set[asyncio.Task] = set()

    # ── Registration ─────────────────────────────────────────────────

    def register_provider(self, name: str, constructor: ProviderConstructor) -> None:
        """Register a provider constructor with the factory."""
        with self._lock:
            self._registry.register(name, constructor)

    def list_providers(self) -> list[str]:
        """Names of all registered providers."""
        with self._lock:
            return self._registry.list_names()

    # ── Providers ────────────────────────────────────────────────────

    def create_provider(
        self, name: str, config: ProviderConfig | dict[str, Any] | None = None
    ) -> BaseProvider:
        """
        Return the cached provider ``name``, creating it from ``config`` if needed.

        Creation is serialized so concurrent callers never build two
        instances of the same provider.
        """
        cached = self._providers.get(name)
        if cached is not None:
            return cached

        if config is None:
            config = ProviderConfig()
        elif isinstance(config, dict):
            config = ProviderConfig.model_validate(config)

        with self._lock:
            cached = self._providers.get(name)
            if cached is not None:
                return cached
            provider = self._registry.create(name, config)
            self._providers = MappingProxyType({**self._providers, name: provider})

        logger.info("provider_created", name=name, model=provider.default_model)
        return provider

    def create_provider_from_config(self, name: str) -> BaseProvider:
        """Create (or fetch) a provider using the loaded FactoryConfig."""
        provider_config = self._config.providers.get(name)
        if provider_config is None:
            raise InvalidConfigError(
                f"no configuration found for provider: {name}",
                operation="provider_creation",
            )
        return self.create_provider(name, provider_config)

    def get_default_provider(self) -> BaseProvider:
        """Return the configured default provider."""
        name = self._config.default_provider
        if not name:
            raise InvalidConfigError(
                "no default provider configured", operation="get_default_provider"
            )
        return self.create_provider_from_config(name)

    @property
    def default_provider_name(self) -> str:
        return self._config.default_provider

    def set_default_provider(self, name: str) -> None:
        """Change the default provider. It must be registered."""
        with self._lock:
            if name not in self._registry:
                raise InvalidConfigError(
                    f"provider not registered: {name}", operation="set_default_provider"
                )
            self._config = self._config.model_copy(update={"default_provider": name})
        logger.info("default_provider_changed", name=name)

    async def is_provider_available(self, name: str) -> bool:
        """True if ``name`` is registered, configured and answers a probe."""
        with self._lock:
            registered = name in self._registry
        if not registered:
            return False

        try:
            provider = self.create_provider_from_config(name)
        except LLMError as e:
            logger.warning("provider_unavailable", name=name, error=str(e))
            return False
        return await provider.is_available()

    def get_provider_features(self, name: str) -> ProviderFeatures:
        """Capabilities of the configured provider ``name``."""
        return self.create_provider_from_config(name).supported_features()

    # ── Models ───────────────────────────────────────────────────────

    async def list_models(self, name: str) -> list[Model]:
        """Models offered by provider ``name`` (cached after the first call)."""
        cached = self._models.get(name)
        if cached is not None:
            logger.debug("model_cache_hit", provider=name)
            return list(cached)

        provider = self.create_provider_from_config(name)
        models = await provider.list_models()

        with self._lock:
            self._models = MappingProxyType({**self._models, name: tuple(models)})
        logger.info("models_listed", provider=name, count=len(models))
        return list(models)

    # ── Configuration ────────────────────────────────────────────────

    def load_config(self, config: FactoryConfig) -> None:
        """
        Validate and install ``config``. Clears provider and model caches.

        Replaced providers are closed in the background when called from a
        running event loop, otherwise on the next reload or ``aclose()``.
        """
        validate_factory_config(config, operation="load_config")
        with self._lock:
            self._config = config
            replaced = list(self._providers.values())
            self._providers = _EMPTY
            self._models = _EMPTY
        self._retire(replaced)
        logger.info(
            "factory_config_applied",
            default_provider=config.default_provider,
            providers=sorted(config.providers),
        )

    @property
    def config(self) -> FactoryConfig:
        return self._config

    def clear_model_cache(self) -> None:
        with self._lock:
            self._models = _EMPTY

    def clear_provider_cache(self) -> None:
        with self._lock:
            replaced = list(self._providers.values())
            self._providers = _EMPTY
        self._retire(replaced)

    # ── Lifecycle ────────────────────────────────────────────────────

    def _retire(self, providers: list[BaseProvider]) -> None:
        """Schedule ``providers`` for closing; held until a loop is available."""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            with self._lock:
                self._retired.extend(providers)
            return

        with self._lock:
            pending = [*self._retired, *providers]
            self._retired = []
        for provider in pending:
            task = loop.create_task(_close_provider(provider))
            self._closing.add(task)
            task.add_done_callback(self._closing.discard)
        if pending:
            logger.debug("providers_retired", count=len(pending))

    async def aclose(self) -> None:
        """Close every provider this factory has created."""
        with self._lock:
            providers = [*self._providers.values(), *self._retired]
            self._providers = _EMPTY
            self._retired = []
        closing = list(self._closing)
        for provider in providers:
            await _close_provider(provider)
        if closing:
            await asyncio.gather(*closing)


async def _close_provider(provider: BaseProvider) -> None:
    try:
        await provider.aclose()
    except Exception as e:
        logger.error("provider_close_failed", name=provider.name, error=str(e))


# ── Singleton ────────────────────────────────────────────────────────

_factory: LLMFactory | None = None
_factory_lock = threading.Lock()


def get_factory() -> LLMFactory:
    """
    Singleton accessor for the LLMFactory.

    Built-in providers are registered and the config is loaded from
    ``SIMPLEAI_CONFIG_PATH`` when set, otherwise derived from the
    environment settings.
    """
    global _factory
    if _factory is not None:
        return _factory

    with _factory_lock:
        if _factory is None:
            factory = LLMFactory()
            _auto_register_providers(factory)
            settings = get_settings()
            if settings.config_path:
                config = load_factory_config(settings.config_path)
            else:
                config = settings_factory_config(settings)
            factory.load_config(config)
            _factory = factory
    return _factory


def reset_factory() -> None:
    """Drop the global factory. For testing only."""
    global _factory
    _factory = None


def _auto_register_providers(factory: LLMFactory) -> None:
    """Auto-register all built-in providers."""
    from simpleai.providers.google import GoogleProvider
    from simpleai.providers.ollama import OllamaProvider

    factory.register_provider("ollama", OllamaProvider.from_config)
    factory.register_provider("google", GoogleProvider.from_config)

    logger.info("providers_auto_registered", names=factory.list_providers())
