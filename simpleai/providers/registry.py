"""
ProviderRegistry — Name → constructor lookup for LLM providers.

The registry only knows how to build providers; caching and configuration
are the factory's job (see ``simpleai.providers.factory``).
"""

import structlog

from simpleai.config import ProviderConfig
from simpleai.errors import InvalidConfigError
from simpleai.providers.base import BaseProvider, ProviderConstructor

logger = structlog.get_logger(__name__)


class ProviderRegistry:
    """Registry of provider constructors keyed by provider name."""

    def __init__(self):
        self._constructors: dict[str, ProviderConstructor] = {}

    def register(self, name: str, constructor: ProviderConstructor) -> None:
        """Register a provider constructor by name (replaces any existing one)."""
        if name in self._constructors:
            logger.warning("provider_already_registered", name=name, replacing=True)
        self._constructors[name] = constructor
        logger.debug("provider_registered", name=name)

    def create(self, name: str, config: ProviderConfig) -> BaseProvider:
        """Build a new provider instance. Raises InvalidConfigError if unknown."""
        constructor = self._constructors.get(name)
        if constructor is None:
            raise InvalidConfigError(
                f"provider not found: {name}", operation="provider_creation"
            )
        return constructor(config)

    def list_names(self) -> list[str]:
        """Registered provider names, sorted."""
        return sorted(self._constructors)

    def __len__(self) -> int:
        return len(self._constructors)

    def __contains__(self, name: str) -> bool:
        return name in self._constructors
