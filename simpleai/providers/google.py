"""
GoogleProvider — Gemini models through the google-genai SDK.

Uses the async surface of ``genai.Client`` (``client.aio``). The system
prompt is sent as a system instruction; conversation roles are mapped to
Gemini's two roles (``user`` / ``model``).
"""

from __future__ import annotations

import asyncio

import structlog
from google import genai
from google.genai import types

from simpleai.config import DEFAULT_GOOGLE_MODEL, ProviderConfig
from simpleai.errors import InvalidConfigError
from simpleai.models import ChatRequest, Message, Model, ProviderFeatures, RetryPolicy
from simpleai.providers.base import BaseProvider, retry_policy_from_config

logger = structlog.get_logger(__name__)

HEALTH_CHECK_TIMEOUT = 5.0

# The Gemini API has no cheap listing call for API-key users; these are the
# models this provider is known to work with.
KNOWN_MODELS = (
    "gemini-2.0-flash",
    "gemini-2.0-flash-exp",
    "gemini-1.5-pro",
    "gemini-1.5-flash",
    "gemini-1.5-pro-latest",
    "gemini-1.5-flash-latest",
)

_ROLE_MAP = {"user": "user", "assistant": "model"}


def convert_messages(messages: tuple[Message, ...] | list[Message]) -> list[types.Content]:
    """Map chat messages to Gemini contents. Unknown roles (incl. system) become user."""
    return [
        types.Content(
            role=_ROLE_MAP.get(m.role, "user"),
            parts=[types.Part(text=m.content)],
        )
        for m in messages
    ]


class GoogleProvider(BaseProvider):
    """Google Gemini backend."""

    name = "google"

    def __init__(
        self,
        api_key: str,
        default_model: str = DEFAULT_GOOGLE_MODEL,
        timeout: float = 60.0,
        retry_policy: RetryPolicy | None = None,
    ):
        if not api_key:
            raise InvalidConfigError(
                "API key is required for Google provider", operation="provider_creation"
            )
        super().__init__(default_model, timeout, retry_policy or RetryPolicy.default())
        self._client = genai.Client(api_key=api_key)

    @classmethod
    def from_config(cls, config: ProviderConfig) -> GoogleProvider:
        return cls(
            api_key=config.api_key,
            default_model=config.default_model or DEFAULT_GOOGLE_MODEL,
            timeout=config.timeout if config.timeout > 0 else 60,
            retry_policy=retry_policy_from_config(config),
        )

    async def invoke(self, request: ChatRequest) -> str:
        config = None
        if request.system_prompt:
            config = types.GenerateContentConfig(system_instruction=request.system_prompt)

        response = await self._client.aio.models.generate_content(
            model=self.default_model,
            contents=convert_messages(request.messages),
            config=config,
        )
        return response.text or ""

    async def list_models(self) -> list[Model]:
        return [Model(name=name) for name in KNOWN_MODELS]

    async def is_available(self) -> bool:
        probe = [types.Content(role="user", parts=[types.Part(text="test")])]
        try:
            await asyncio.wait_for(
                self._client.aio.models.generate_content(
                    model=self.default_model, contents=probe
                ),
                timeout=HEALTH_CHECK_TIMEOUT,
            )
        except Exception as e:
            logger.debug("google_unavailable", model=self.default_model, error=str(e))
            return False
        return True

    def supported_features(self) -> ProviderFeatures:
        return ProviderFeatures(
            structured_output=True,
            streaming=True,
            vision=True,
            max_tokens=32768,
            supported_roles=["system", "user", "assistant"],
            function_calling=True,
            temperature=True,
            top_p=True,
        )
