"""
Resilience Utils — Failure classification for LLM backend calls.

Maps the textual description of a backend failure onto the closed error
taxonomy in ``simpleai.errors`` and decides whether it is worth retrying.
Backend SDKs and HTTP clients word their errors differently, so matching
is case-insensitive and tolerant of phrasing.
"""

from __future__ import annotations

import re

import structlog

from simpleai.errors import (
    ConnectionFailedError,
    InvalidConfigError,
    LLMError,
    LLMTimeoutError,
    ModelNotAvailableError,
    OperationFailedError,
    RateLimitExceededError,
)

logger = structlog.get_logger(__name__)


# Checked top to bottom; first match wins
_RULES: tuple[tuple[re.Pattern, type[LLMError], str], ...] = (
    (
        re.compile(
            r"connection refused|no such host|network is unreachable"
            r"|all connection attempts failed|name or service not known"
        ),
        ConnectionFailedError,
        "connection to {service} failed",
    ),
    (
        re.compile(r"timeout|timed out|deadline exceeded"),
        LLMTimeoutError,
        "request timed out",
    ),
    (
        re.compile(
            r"authentication|unauthenticated|unauthorized|api key|permission[ _]denied"
        ),
        InvalidConfigError,
        "authentication failed",
    ),
    (
        re.compile(r"rate limit|quota exceeded|resource[ _]exhausted|too many requests"),
        RateLimitExceededError,
        "rate limit exceeded",
    ),
    (
        re.compile(
            r"model not found|invalid model|model is not available"
            r"|model ['\"][^'\"]*['\"] not found|models/\S+ is not found"
        ),
        ModelNotAvailableError,
        "requested model not available",
    ),
)


def classify_error(
    error: BaseException,
    *,
    attempt: int = 0,
    operation: str = "chat",
    service: str = "LLM service",
) -> LLMError:
    """
    Classify a backend failure by its description.

    Auth failures and unknown models are not retryable; connectivity,
    timeouts, rate limits and anything unrecognized are.

    Args:
        error: The exception raised by the backend call.
        attempt: Zero-based attempt index, recorded on the result.
        operation: Operation name, recorded on the result.
        service: Backend name used in the human message.

    An ``LLMError`` is already classified and is returned as-is with the
    attempt index updated.
    """
    if isinstance(error, LLMError):
        error.attempt = attempt
        error.operation = error.operation or operation
        return error

    # Some exceptions (e.g. bare TimeoutError) have an empty str()
    description = f"{type(error).__name__}: {error}".lower()

    classified = None
    for pattern, error_cls, message in _RULES:
        if pattern.search(description):
            classified = error_cls(
                message.format(service=service),
                operation=operation,
                attempt=attempt,
                cause=error,
            )
            break

    if classified is None:
        classified = OperationFailedError(
            "operation failed", operation=operation, attempt=attempt, cause=error
        )

    logger.debug(
        "error_classified",
        kind=classified.kind.value,
        retryable=classified.retryable,
        operation=operation,
        attempt=attempt,
        error_type=type(error).__name__,
    )
    return classified
