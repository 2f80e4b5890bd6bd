"""
Structured Error Taxonomy — Typed exceptions for SimpleAI.

Design principles:
  - Every error carries `kind` + `retryable` for automated retry decisions
  - The taxonomy is closed: callers switch on `ErrorKind`, never on messages
  - Each error records where it happened (operation, attempt, timestamp)
  - Structured logging friendly: all errors serialize cleanly to JSON
"""

from __future__ import annotations

import enum
from datetime import datetime, timezone

__all__ = [
    # Base
    "SimpleAIError",
    "ErrorKind",
    "LLMError",
    # Transport
    "ConnectionFailedError",
    "LLMTimeoutError",
    "RateLimitExceededError",
    # Response handling
    "InvalidResponseError",
    "JSONParseError",
    # Configuration
    "InvalidConfigError",
    "ModelNotAvailableError",
    # Fallback
    "OperationFailedError",
    # Helpers
    "is_retryable",
]


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
#  Base
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class SimpleAIError(Exception):
    """Root exception for the SimpleAI package."""


class ErrorKind(str, enum.Enum):
    """Closed set of failure kinds surfaced by the chat pipeline."""

    CONNECTION_FAILED = "connection_failed"
    TIMEOUT = "timeout"
    INVALID_RESPONSE = "invalid_response"
    JSON_PARSE_FAILED = "json_parse_failed"
    MODEL_NOT_AVAILABLE = "model_not_available"
    RATE_LIMIT_EXCEEDED = "rate_limit_exceeded"
    INVALID_CONFIG = "invalid_config"
    OPERATION_FAILED = "operation_failed"

    @property
    def description(self) -> str:
        return _KIND_DESCRIPTIONS[self]


_KIND_DESCRIPTIONS = {
    ErrorKind.CONNECTION_FAILED: "connection to LLM service failed",
    ErrorKind.TIMEOUT: "LLM request timed out",
    ErrorKind.INVALID_RESPONSE: "invalid response from LLM",
    ErrorKind.JSON_PARSE_FAILED: "failed to parse JSON response",
    ErrorKind.MODEL_NOT_AVAILABLE: "requested model not available",
    ErrorKind.RATE_LIMIT_EXCEEDED: "rate limit exceeded",
    ErrorKind.INVALID_CONFIG: "invalid configuration",
    ErrorKind.OPERATION_FAILED: "operation failed",
}


class LLMError(SimpleAIError):
    """A classified failure from an LLM operation.

    Attributes:
        kind: Closed taxonomy tag (see ErrorKind).
        retryable: If True, the operation may be attempted again.
        operation: Name of the operation that failed (e.g. "chat").
        attempt: Zero-based attempt index at which the failure occurred.
        timestamp: When the failure was recorded (UTC).
        cause: The underlying exception, if any. Also set as ``__cause__``.
    """

    kind: ErrorKind = ErrorKind.OPERATION_FAILED
    retryable: bool = True

    def __init__(
        self,
        message: str,
        *,
        operation: str = "",
        attempt: int = 0,
        retryable: bool | None = None,
        cause: BaseException | None = None,
    ):
        self.message = message
        self.operation = operation
        self.attempt = attempt
        if retryable is not None:
            self.retryable = retryable
        self.cause = cause
        self.timestamp = datetime.now(timezone.utc)
        super().__init__(message)
        self.__cause__ = cause

    def __str__(self) -> str:
        text = (
            f"{self.kind.description}: {self.message} "
            f"(operation: {self.operation}, retryable: {str(self.retryable).lower()}, "
            f"attempts: {self.attempt})"
        )
        if self.cause is not None:
            text += f" - caused by: {self.cause}"
        return text

    def to_dict(self) -> dict:
        """Serialize for structured logging."""
        return {
            "kind": self.kind.value,
            "message": self.message,
            "operation": self.operation,
            "attempt": self.attempt,
            "retryable": self.retryable,
            "timestamp": self.timestamp.isoformat(),
            "cause": str(self.cause) if self.cause is not None else None,
        }


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
#  Transport — The backend could not be reached or refused to serve
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class ConnectionFailedError(LLMError):
    """Backend is unreachable (refused, unknown host, network down)."""

    kind = ErrorKind.CONNECTION_FAILED
    retryable = True


class LLMTimeoutError(LLMError):
    """The request exceeded its per-attempt deadline."""

    kind = ErrorKind.TIMEOUT
    retryable = True


class RateLimitExceededError(LLMError):
    """Backend returned a rate limit / quota exhausted error."""

    kind = ErrorKind.RATE_LIMIT_EXCEEDED
    retryable = True


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
#  Response handling — The call succeeded but the output is unusable
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class InvalidResponseError(LLMError):
    """Backend call succeeded but returned no usable text."""

    kind = ErrorKind.INVALID_RESPONSE
    retryable = True


class JSONParseError(LLMError):
    """No JSON could be extracted, or it did not decode into the target shape.

    ``raw_text`` keeps the complete model output so it is never lost on
    exhaustion; ``preview`` is the truncated text shown in diagnostics.
    """

    kind = ErrorKind.JSON_PARSE_FAILED
    retryable = True

    def __init__(
        self,
        message: str,
        *,
        raw_text: str = "",
        preview: str = "",
        **kwargs,
    ):
        self.raw_text = raw_text
        self.preview = preview
        super().__init__(message, **kwargs)

    def to_dict(self) -> dict:
        d = super().to_dict()
        d["preview"] = self.preview
        return d


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
#  Configuration — Retrying cannot help
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class InvalidConfigError(LLMError):
    """Bad configuration or rejected credentials."""

    kind = ErrorKind.INVALID_CONFIG
    retryable = False


class ModelNotAvailableError(LLMError):
    """The requested model does not exist on the backend."""

    kind = ErrorKind.MODEL_NOT_AVAILABLE
    retryable = False


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
#  Fallback
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class OperationFailedError(LLMError):
    """Uncategorized failure. Retryable unless stated otherwise."""

    kind = ErrorKind.OPERATION_FAILED
    retryable = True


def is_retryable(error: BaseException) -> bool:
    """True only for LLMError instances flagged retryable."""
    return isinstance(error, LLMError) and error.retryable
