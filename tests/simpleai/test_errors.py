"""
Tests for simpleai.errors and simpleai.utils.resilience.

Covers:
  - Error taxonomy: kind / retryable per class, message format, to_dict
  - classify_error: mapping backend failure descriptions onto the taxonomy
"""

import httpx
import pytest

from simpleai.errors import (
    ConnectionFailedError,
    ErrorKind,
    InvalidConfigError,
    InvalidResponseError,
    JSONParseError,
    LLMError,
    LLMTimeoutError,
    ModelNotAvailableError,
    OperationFailedError,
    RateLimitExceededError,
    SimpleAIError,
    is_retryable,
)
from simpleai.utils.resilience import classify_error


class TestTaxonomy:
    @pytest.mark.parametrize(
        "error_cls, kind, retryable",
        [
            (ConnectionFailedError, ErrorKind.CONNECTION_FAILED, True),
            (LLMTimeoutError, ErrorKind.TIMEOUT, True),
            (RateLimitExceededError, ErrorKind.RATE_LIMIT_EXCEEDED, True),
            (InvalidResponseError, ErrorKind.INVALID_RESPONSE, True),
            (JSONParseError, ErrorKind.JSON_PARSE_FAILED, True),
            (InvalidConfigError, ErrorKind.INVALID_CONFIG, False),
            (ModelNotAvailableError, ErrorKind.MODEL_NOT_AVAILABLE, False),
            (OperationFailedError, ErrorKind.OPERATION_FAILED, True),
        ],
    )
    def test_class_defaults(self, error_cls, kind, retryable):
        err = error_cls("boom")
        assert err.kind is kind
        assert err.retryable is retryable
        assert isinstance(err, LLMError)
        assert isinstance(err, SimpleAIError)

    def test_retryable_override(self):
        err = OperationFailedError("nope", retryable=False)
        assert err.retryable is False
        assert OperationFailedError.retryable is True

    def test_str_format(self):
        err = ConnectionFailedError("connection to ollama failed", operation="chat", attempt=2)
        assert str(err) == (
            "connection to LLM service failed: connection to ollama failed "
            "(operation: chat, retryable: true, attempts: 2)"
        )

    def test_str_includes_cause(self):
        err = InvalidConfigError(
            "authentication failed", operation="chat", cause=RuntimeError("bad key")
        )
        assert str(err).endswith("- caused by: bad key")
        assert "retryable: false" in str(err)
        assert err.__cause__ is err.cause

    def test_to_dict(self):
        err = RateLimitExceededError("slow down", operation="chat", attempt=1)
        d = err.to_dict()
        assert d["kind"] == "rate_limit_exceeded"
        assert d["message"] == "slow down"
        assert d["operation"] == "chat"
        assert d["attempt"] == 1
        assert d["retryable"] is True
        assert d["cause"] is None
        assert "timestamp" in d

    def test_json_parse_error_keeps_raw_text(self):
        err = JSONParseError("no valid JSON found in response", raw_text="full", preview="fu")
        assert err.raw_text == "full"
        assert err.to_dict()["preview"] == "fu"

    def test_is_retryable(self):
        assert is_retryable(LLMTimeoutError("t")) is True
        assert is_retryable(ModelNotAvailableError("m")) is False
        assert is_retryable(ValueError("plain")) is False

    def test_every_kind_has_description(self):
        for kind in ErrorKind:
            assert kind.description


class TestClassifyError:
    @pytest.mark.parametrize(
        "error, expected_cls",
        [
            (ConnectionError("connection refused"), ConnectionFailedError),
            (OSError("dial tcp: lookup api: no such host"), ConnectionFailedError),
            (OSError("network is unreachable"), ConnectionFailedError),
            (httpx.ConnectError("All connection attempts failed"), ConnectionFailedError),
            (RuntimeError("context deadline exceeded"), LLMTimeoutError),
            (RuntimeError("request timed out"), LLMTimeoutError),
            (TimeoutError(), LLMTimeoutError),
            (RuntimeError("401 Unauthorized"), InvalidConfigError),
            (RuntimeError("403 PERMISSION_DENIED"), InvalidConfigError),
            (RuntimeError("invalid API key"), InvalidConfigError),
            (RuntimeError("rate limit reached"), RateLimitExceededError),
            (RuntimeError("429 RESOURCE_EXHAUSTED"), RateLimitExceededError),
            (RuntimeError("Too Many Requests"), RateLimitExceededError),
            (RuntimeError("quota exceeded for project"), RateLimitExceededError),
            (RuntimeError("model not found"), ModelNotAvailableError),
            (RuntimeError("model 'llama9' not found, try pulling it first"), ModelNotAvailableError),
            (RuntimeError("models/gemini-0 is not found for API version"), ModelNotAvailableError),
            (RuntimeError("something odd happened"), OperationFailedError),
        ],
    )
    def test_mapping(self, error, expected_cls):
        classified = classify_error(error, attempt=1, operation="chat", service="ollama")
        assert type(classified) is expected_cls
        assert classified.attempt == 1
        assert classified.operation == "chat"
        assert classified.cause is error

    def test_connection_message_names_service(self):
        classified = classify_error(ConnectionError("connection refused"), service="ollama")
        assert classified.message == "connection to ollama failed"

    def test_connection_checked_before_timeout(self):
        classified = classify_error(RuntimeError("connection refused after timeout"))
        assert isinstance(classified, ConnectionFailedError)

    def test_unknown_failure_is_retryable(self):
        classified = classify_error(RuntimeError("weird"))
        assert classified.message == "operation failed"
        assert classified.retryable is True

    def test_already_classified_is_returned(self):
        original = InvalidResponseError("empty", operation="chat")
        classified = classify_error(original, attempt=2, operation="other")
        assert classified is original
        assert classified.attempt == 2
        assert classified.operation == "chat"
