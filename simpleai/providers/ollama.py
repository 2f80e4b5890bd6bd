"""
OllamaProvider — Async Ollama integration over its REST API.

Talks to a local or remote Ollama server with ``httpx``:
  - POST /api/chat   (non-streaming) for chat completions
  - GET  /api/tags   for model listing and health checks

Usage:
    provider = OllamaProvider(host="http://localhost:11434", default_model="llama3.1:latest")
    reply = await provider.chat(ChatRequest(messages=[Message.user("Say hello")]))
"""

from __future__ import annotations

import time

import httpx
import structlog
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from simpleai.config import DEFAULT_OLLAMA_HOST, DEFAULT_OLLAMA_MODEL, ProviderConfig
from simpleai.errors import InvalidConfigError, OperationFailedError
from simpleai.models import ChatRequest, Message, Model, ProviderFeatures, RetryPolicy
from simpleai.providers.base import BaseProvider, retry_policy_from_config

logger = structlog.get_logger(__name__)

HEALTH_CHECK_TIMEOUT = 5.0


def build_messages(request: ChatRequest) -> list[dict[str, str]]:
    """Ollama wire messages, with the system prompt as the first message."""
    messages: list[Message] = list(request.messages)
    if request.system_prompt:
        messages.insert(0, Message.system(request.system_prompt))
    return [{"role": m.role, "content": m.content} for m in messages]


class OllamaProvider(BaseProvider):
    """
    Ollama backend.

    Features:
    - httpx.AsyncClient with connection pooling
    - Non-streaming chat with thinking disabled
    - Model listing retried on transport errors (tenacity)
    """

    name = "ollama"

    def __init__(
        self,
        host: str = DEFAULT_OLLAMA_HOST,
        default_model: str = DEFAULT_OLLAMA_MODEL,
        timeout: float = 60.0,
        retry_policy: RetryPolicy | None = None,
    ):
        try:
            url = httpx.URL(host)
        except httpx.InvalidURL as e:
            raise InvalidConfigError(
                f"invalid host URL: {host}", operation="provider_creation", cause=e
            )
        if url.scheme not in ("http", "https") or not url.host:
            raise InvalidConfigError(
                f"invalid host URL: {host}", operation="provider_creation"
            )
        super().__init__(default_model, timeout, retry_policy or RetryPolicy.default())
        self.host = host
        self._client = httpx.AsyncClient(
            base_url=host,
            timeout=httpx.Timeout(timeout, connect=10.0),
            limits=httpx.Limits(max_connections=10, max_keepalive_connections=5),
        )

    @classmethod
    def from_config(cls, config: ProviderConfig) -> OllamaProvider:
        return cls(
            host=config.host or DEFAULT_OLLAMA_HOST,
            default_model=config.default_model or DEFAULT_OLLAMA_MODEL,
            timeout=config.timeout if config.timeout > 0 else 60,
            retry_policy=retry_policy_from_config(config),
        )

    async def _request(self, method: str, path: str, **kwargs) -> dict:
        """Execute an API request; HTTP errors raise with the server's message."""
        start = time.monotonic()
        resp = await self._client.request(method, path, **kwargs)
        latency_ms = (time.monotonic() - start) * 1000

        if resp.status_code >= 400:
            try:
                detail = resp.json().get("error", resp.text)
            except ValueError:
                detail = resp.text
            raise httpx.HTTPStatusError(
                f"Ollama API error {resp.status_code}: {detail}",
                request=resp.request,
                response=resp,
            )

        logger.debug(
            "ollama_request",
            method=method,
            path=path,
            status=resp.status_code,
            latency_ms=round(latency_ms),
        )
        return resp.json()

    async def invoke(self, request: ChatRequest) -> str:
        data = await self._request(
            "POST",
            "/api/chat",
            json={
                "model": self.default_model,
                "messages": build_messages(request),
                "stream": False,
                "think": False,
            },
        )
        return (data.get("message") or {}).get("content", "")

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=30),
        retry=retry_if_exception_type(httpx.TransportError),
        reraise=True,
    )
    async def _fetch_tags(self) -> dict:
        return await self._request("GET", "/api/tags")

    async def list_models(self) -> list[Model]:
        try:
            data = await self._fetch_tags()
        except httpx.HTTPError as e:
            raise OperationFailedError(
                "failed to list models from Ollama", operation="list_models", cause=e
            )
        return [Model(name=m["name"]) for m in data.get("models", [])]

    async def is_available(self) -> bool:
        try:
            await self._request("GET", "/api/tags", timeout=HEALTH_CHECK_TIMEOUT)
        except httpx.HTTPError as e:
            logger.debug("ollama_unavailable", host=self.host, error=str(e))
            return False
        return True

    def supported_features(self) -> ProviderFeatures:
        return ProviderFeatures(
            structured_output=True,  # via prompting + JSON extraction
            streaming=True,
            vision=False,  # depends on the model
            max_tokens=4096,
            supported_roles=["system", "user", "assistant"],
            function_calling=False,
            temperature=True,
            top_p=True,
        )

    def client_for_model(self, model: str) -> OllamaProvider:
        """A sibling provider on the same host using ``model``."""
        return OllamaProvider(
            host=self.host,
            default_model=model,
            timeout=self.timeout,
            retry_policy=self.retry_policy,
        )

    async def aclose(self) -> None:
        await self._client.aclose()
