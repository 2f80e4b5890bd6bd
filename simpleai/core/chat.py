"""
Chat Pipeline — Retry-driven chat calls with structured output decoding.

Every provider routes ``chat()`` through ``chat_with_retry`` so the retry
policy, failure classification and JSON extraction behave identically
regardless of the backend. A provider only supplies ``invoke``: one
network round-trip that returns the raw response text or raises.

Attempt lifecycle::

    sleep(backoff) → invoke (bounded by timeout) → validate text
                   → [extract JSON → decode] → ChatResponse

Any failure is classified into an ``LLMError``. Retryable failures move on
to the next attempt while budget remains; everything else is raised.
"""

from __future__ import annotations

import asyncio
import time
from typing import Awaitable, Callable

import structlog

from simpleai.core.json_utils import find_json_candidate, truncate_preview
from simpleai.errors import InvalidResponseError, JSONParseError, LLMError, LLMTimeoutError
from simpleai.models import ChatRequest, ChatResponse, RetryPolicy
from simpleai.utils.resilience import classify_error

logger = structlog.get_logger(__name__)

Invoke = Callable[[ChatRequest], Awaitable[str]]
Sleep = Callable[[float], Awaitable[None]]


async def chat_with_retry(
    invoke: Invoke,
    request: ChatRequest,
    policy: RetryPolicy | None = None,
    *,
    timeout: float = 60.0,
    operation: str = "chat",
    service: str = "LLM service",
    sleep: Sleep = asyncio.sleep,
) -> ChatResponse:
    """
    Run ``invoke`` until it yields a usable (and, if requested, decodable) reply.

    Args:
        invoke: One backend round-trip. Returns raw text or raises.
        request: The immutable chat request. ``request.decoder`` selects
            structured output.
        policy: Retry/backoff parameters (default: 3 retries, 2s→30s, x2).
        timeout: Per-attempt deadline in seconds.
        operation: Operation name recorded on errors and logs.
        service: Backend name used in error messages.
        sleep: Awaitable used for backoff waits (injectable for tests).

    Returns:
        ChatResponse with the raw text and, when a decoder was given, the
        decoded value.

    Raises:
        LLMError: The last classified failure once retries are exhausted or
            a non-retryable failure occurs.
    """
    policy = policy or RetryPolicy.default()
    last_error: LLMError | None = None

    for attempt in range(policy.max_attempts):
        if attempt > 0:
            delay = policy.delay_for(attempt)
            logger.info(
                "chat_retry_scheduled",
                service=service,
                operation=operation,
                attempt=attempt,
                delay_seconds=delay,
                last_error=last_error.kind.value if last_error else None,
            )
            await sleep(delay)

        try:
            return await _attempt(
                invoke, request, attempt=attempt, timeout=timeout,
                operation=operation, service=service,
            )
        except LLMError as e:
            last_error = e

        logger.warning(
            "chat_attempt_failed",
            service=service,
            operation=operation,
            attempt=attempt,
            retries_left=policy.max_retries - attempt,
            kind=last_error.kind.value,
            retryable=last_error.retryable,
            error=last_error.message,
        )
        if not last_error.retryable:
            break

    logger.error(
        "chat_retries_exhausted",
        service=service,
        attempts=last_error.attempt + 1,
        **last_error.to_dict(),
    )
    raise last_error


async def _attempt(
    invoke: Invoke,
    request: ChatRequest,
    *,
    attempt: int,
    timeout: float,
    operation: str,
    service: str,
) -> ChatResponse:
    """One attempt. Raises a classified LLMError on any failure."""
    start = time.monotonic()
    try:
        text = await asyncio.wait_for(invoke(request), timeout=timeout)
    except asyncio.TimeoutError as e:
        raise LLMTimeoutError(
            f"no response within {timeout}s",
            operation=operation,
            attempt=attempt,
            cause=e,
        )
    except Exception as e:
        raise classify_error(e, attempt=attempt, operation=operation, service=service)

    logger.debug(
        "chat_response_received",
        service=service,
        attempt=attempt,
        chars=len(text or ""),
        latency_ms=round((time.monotonic() - start) * 1000),
    )

    if not text or not text.strip():
        raise InvalidResponseError(
            f"empty response from {service}", operation=operation, attempt=attempt
        )

    if request.decoder is None:
        return ChatResponse(message=text)

    candidate = find_json_candidate(text)
    if candidate is None:
        preview = truncate_preview(text)
        raise JSONParseError(
            "no valid JSON found in response",
            operation=operation,
            attempt=attempt,
            raw_text=text,
            preview=preview,
            cause=ValueError(f"JSON extraction failed - response preview: {preview}"),
        )

    try:
        data = request.decoder(candidate.text)
    except Exception as e:
        preview = truncate_preview(candidate.text)
        raise JSONParseError(
            "failed to decode JSON response",
            operation=operation,
            attempt=attempt,
            raw_text=text,
            preview=preview,
            cause=ValueError(f"decode error: {e} - extracted JSON preview: {preview}"),
        )

    logger.debug("json_candidate_decoded", strategy=candidate.strategy, attempt=attempt)
    return ChatResponse(message=text, data=data)
