"""
Providers — LLM backends and the factory that builds them.

  - BaseProvider: One network round-trip per backend; chat() is shared
  - ProviderRegistry: Name → constructor lookup
  - LLMFactory: Config-driven creation with cached instances and model lists
"""

from simpleai.providers.base import BaseProvider, ProviderConstructor
from simpleai.providers.factory import LLMFactory, get_factory, reset_factory
from simpleai.providers.registry import ProviderRegistry

__all__ = [
    "BaseProvider",
    "ProviderConstructor",
    "ProviderRegistry",
    "LLMFactory",
    "get_factory",
    "reset_factory",
]
