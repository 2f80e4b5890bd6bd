"""
Shared Models — Pydantic models for chat requests, responses and retries.

Defines the core data structures used across the package:
  - Message / ChatRequest: What the caller sends
  - ChatResponse: Raw text plus the optionally decoded payload
  - RetryPolicy: Exponential backoff parameters for the chat pipeline
  - Model / ProviderFeatures: What a backend offers
"""

from __future__ import annotations

import enum
from typing import Any, Callable, TypeVar

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, model_validator

T = TypeVar("T")

# Turns a JSON document into the caller's target shape; raises on mismatch
Decoder = Callable[[str], Any]


def decoder_for(shape: type[T] | Any) -> Callable[[str], T]:
    """
    Build a decoder that validates JSON text into ``shape``.

    ``shape`` is anything pydantic can adapt: a BaseModel subclass, a
    dataclass, a TypedDict, ``list[int]``, ``dict[str, Any]`` and so on.
    """
    adapter = TypeAdapter(shape)
    return adapter.validate_json


# ── Conversation ─────────────────────────────────────────────────────


class Role(str, enum.Enum):
    """Well-known message roles. Providers may accept others."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class Message(BaseModel):
    """A single message in a conversation."""

    model_config = ConfigDict(frozen=True)

    role: str
    content: str

    @classmethod
    def user(cls, content: str) -> Message:
        return cls(role=Role.USER.value, content=content)

    @classmethod
    def assistant(cls, content: str) -> Message:
        return cls(role=Role.ASSISTANT.value, content=content)

    @classmethod
    def system(cls, content: str) -> Message:
        return cls(role=Role.SYSTEM.value, content=content)


class ChatRequest(BaseModel):
    """
    An immutable chat request.

    ``decoder`` is the target shape: when set, the response text must yield
    a JSON payload that the decoder accepts, otherwise the attempt fails.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    system_prompt: str = ""
    messages: tuple[Message, ...] = ()
    decoder: Decoder | None = Field(default=None, exclude=True, repr=False)

    @classmethod
    def for_shape(
        cls,
        shape: Any,
        messages: list[Message] | tuple[Message, ...],
        system_prompt: str = "",
    ) -> ChatRequest:
        """Convenience constructor that decodes the reply into ``shape``."""
        return cls(
            system_prompt=system_prompt,
            messages=tuple(messages),
            decoder=decoder_for(shape),
        )

    @property
    def wants_structured_output(self) -> bool:
        return self.decoder is not None


class ChatResponse(BaseModel):
    """Result of a successful chat call."""

    message: str
    data: Any = None


# ── Retry Policy ─────────────────────────────────────────────────────


class RetryPolicy(BaseModel):
    """
    Exponential backoff parameters.

    The delay before attempt ``n`` (n >= 1) is
    ``min(base_delay * backoff_factor ** (n - 1), max_delay)``; the first
    attempt (n == 0) runs immediately.
    """

    model_config = ConfigDict(frozen=True)

    max_retries: int = Field(default=3, ge=0)
    base_delay: float = Field(default=2.0, ge=0.0)
    max_delay: float = Field(default=30.0, ge=0.0)
    backoff_factor: float = Field(default=2.0, gt=1.0)

    @model_validator(mode="after")
    def _check_cap(self) -> RetryPolicy:
        if self.max_delay < self.base_delay:
            raise ValueError("max_delay must be >= base_delay")
        return self

    @classmethod
    def default(cls) -> RetryPolicy:
        return cls()

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait before ``attempt`` (zero-based)."""
        if attempt <= 0:
            return 0.0
        return min(self.base_delay * self.backoff_factor ** (attempt - 1), self.max_delay)


# ── Provider metadata ────────────────────────────────────────────────


class Model(BaseModel):
    """An LLM model offered by a provider."""

    name: str


class ProviderFeatures(BaseModel):
    """Capabilities supported by an LLM provider."""

    structured_output: bool = False
    streaming: bool = False
    vision: bool = False
    max_tokens: int = 0
    supported_roles: list[str] = Field(default_factory=list)
    function_calling: bool = False
    temperature: bool = False
    top_p: bool = False
