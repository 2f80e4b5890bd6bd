"""
SimpleAI — Provider-agnostic LLM chat with resilient structured output.

Send a conversation to any supported backend and, optionally, get the
reply decoded into your own type even when the model wraps its JSON in
prose or markdown.
"""

from simpleai.core import chat_with_retry, extract_json, find_json_candidate, repair_json
from simpleai.errors import ErrorKind, JSONParseError, LLMError, SimpleAIError, is_retryable
from simpleai.models import (
    ChatRequest,
    ChatResponse,
    Message,
    Model,
    ProviderFeatures,
    RetryPolicy,
    Role,
    decoder_for,
)
from simpleai.providers import BaseProvider, LLMFactory, ProviderRegistry, get_factory
from simpleai.version import VERSION

__all__ = [
    # Requests & responses
    "ChatRequest",
    "ChatResponse",
    "Message",
    "Role",
    "decoder_for",
    "RetryPolicy",
    # Structured-output pipeline
    "chat_with_retry",
    "extract_json",
    "find_json_candidate",
    "repair_json",
    # Errors
    "SimpleAIError",
    "LLMError",
    "JSONParseError",
    "ErrorKind",
    "is_retryable",
    # Providers
    "BaseProvider",
    "Model",
    "ProviderFeatures",
    "ProviderRegistry",
    "LLMFactory",
    "get_factory",
    "VERSION",
]
