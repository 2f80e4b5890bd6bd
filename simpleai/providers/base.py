"""
BaseProvider — Abstract base class for all LLM backends.

Every provider in the package extends this class. A provider only knows how
to perform one network round-trip (``invoke``); retries, failure
classification and structured-output extraction are shared and live in
``simpleai.core.chat``.

Usage:
    class MyProvider(BaseProvider):
        name = "my_backend"

        async def invoke(self, request: ChatRequest) -> str:
            resp = await self._client.post("/chat", json=...)
            return resp.json()["text"]

        async def list_models(self) -> list[Model]:
            return [Model(name="my-model")]

        def supported_features(self) -> ProviderFeatures:
            return ProviderFeatures(structured_output=True)
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable

import structlog

from simpleai.config import ProviderConfig
from simpleai.core.chat import chat_with_retry
from simpleai.models import ChatRequest, ChatResponse, Model, ProviderFeatures, RetryPolicy

logger = structlog.get_logger(__name__)

# Backoff shared by all providers; only the retry count is configurable
BASE_DELAY = 2.0
MAX_DELAY = 30.0
BACKOFF_FACTOR = 2.0


class BaseProvider(ABC):
    """
    Abstract base class for all LLM providers.

    Subclasses MUST define:
      - name: str — Unique identifier (e.g. "ollama", "google")
      - invoke(): One backend round-trip returning the raw response text
      - list_models(): Models the backend offers
      - supported_features(): Capability flags

    Subclasses MAY override:
      - is_available(): Cheap reachability probe
      - aclose(): Release network resources
    """

    def __init__(self, default_model: str, timeout: float, retry_policy: RetryPolicy):
        self.default_model = default_model
        self.timeout = timeout
        self.retry_policy = retry_policy

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique provider identifier (e.g. 'ollama', 'google')."""
        ...

    @abstractmethod
    async def invoke(self, request: ChatRequest) -> str:
        """Send ``request`` once and return the raw response text. Raises on failure."""
        ...

    @abstractmethod
    async def list_models(self) -> list[Model]:
        """Return the models available from this provider."""
        ...

    @abstractmethod
    def supported_features(self) -> ProviderFeatures:
        """Return the capabilities supported by this provider."""
        ...

    # ── Chat ──────────────────────────────────────────────────────────

    async def chat(self, request: ChatRequest) -> ChatResponse:
        """Send a chat request with retries and optional structured decoding."""
        return await chat_with_retry(
            self.invoke,
            request,
            self.retry_policy,
            timeout=self.timeout,
            operation="chat",
            service=self.name,
        )

    # ── Lifecycle Hooks ──────────────────────────────────────────────

    async def is_available(self) -> bool:
        """Check if the provider is reachable. Override for a real probe."""
        return True

    async def aclose(self) -> None:
        """Release network resources. Override for cleanup."""
        pass

    def update_retry_policy(self, policy: RetryPolicy | None) -> None:
        if policy is not None:
            self.retry_policy = policy

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r} model={self.default_model!r}>"


# Builds a provider from its config section
ProviderConstructor = Callable[[ProviderConfig], BaseProvider]


def retry_policy_from_config(config: ProviderConfig) -> RetryPolicy:
    """Exponential backoff with the configured number of retries."""
    return RetryPolicy(
        max_retries=max(config.retry_attempts, 0),
        base_delay=BASE_DELAY,
        max_delay=MAX_DELAY,
        backoff_factor=BACKOFF_FACTOR,
    )
