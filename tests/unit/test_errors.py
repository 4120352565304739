"""
Unit tests for the error taxonomy and HTTP error classification.
"""
import json

import pytest

from provider_gateway.core.errors import (
    CancellationError,
    ErrorCode,
    GatewayError,
    GatewayTimeoutError,
    NotFoundError,
    ProviderAuthError,
    ProviderError,
    ProviderInvalidResponseError,
    ProviderQuotaError,
    ProviderRateLimitError,
    ProviderUnavailableError,
    ValidationError,
)
from provider_gateway.transport.classification import classify_http_error, parse_retry_after


class TestGatewayErrors:
    """Test gateway error types."""

    def test_gateway_error(self):
        """Test base gateway error."""
        error = GatewayError("Test error")
        assert str(error) == "Test error"
        assert error.code == ErrorCode.UNKNOWN

    def test_codes_per_class(self):
        """Each error class carries its machine-checkable code."""
        assert ValidationError("bad").code == ErrorCode.INVALID_ARGUMENT
        assert NotFoundError("missing").code == ErrorCode.NOT_FOUND
        assert CancellationError().code == ErrorCode.CANCELLED
        assert GatewayTimeoutError("slow", 30000).code == ErrorCode.TIMEOUT
        assert ProviderAuthError("openrouter").code == ErrorCode.PROVIDER_AUTH_FAILED
        assert ProviderQuotaError("openrouter").code == ErrorCode.PROVIDER_QUOTA_EXCEEDED
        assert ProviderUnavailableError("qwen-local").code == ErrorCode.PROVIDER_UNAVAILABLE

    def test_provider_errors_share_base(self):
        """Every backend failure is a ProviderError and a GatewayError."""
        for error in (
            ProviderAuthError("p"),
            ProviderRateLimitError("p"),
            ProviderQuotaError("p"),
            ProviderInvalidResponseError("p"),
            ProviderUnavailableError("p"),
        ):
            assert isinstance(error, ProviderError)
            assert isinstance(error, GatewayError)
            assert error.provider == "p"

    def test_rate_limit_exposes_retry_after(self):
        """Test rate limit error carries the retry hint."""
        error = ProviderRateLimitError("openrouter", retry_after=12)
        assert error.retry_after == 12
        assert error.status == 429
        assert "12" in str(error)
        assert error.is_retryable()

    def test_timeout_exposes_timeout_ms(self):
        """Test timeout error carries the configured timeout."""
        error = GatewayTimeoutError("timed out", 5000, provider="qwen-local")
        assert error.timeout_ms == 5000
        assert error.context["provider"] == "qwen-local"
        assert error.is_retryable()

    def test_user_fixable(self):
        """Auth and argument failures are fixable by the caller."""
        assert ProviderAuthError("p").is_user_fixable()
        assert ValidationError("bad").is_user_fixable()
        assert not ProviderQuotaError("p").is_user_fixable()
        assert not ProviderQuotaError("p").is_retryable()

    def test_unavailable_message_includes_reason(self):
        """Test unavailability error message."""
        error = ProviderUnavailableError("qwen-local", "Provider is not initialized")
        assert "qwen-local" in str(error)
        assert "not initialized" in str(error)
        assert error.reason == "Provider is not initialized"

    def test_cause_is_chained(self):
        """The cause is kept and chained for tracebacks."""
        cause = ConnectionError("refused")
        error = ProviderError("request failed", "qwen-local", cause=cause)
        assert error.cause is cause
        assert error.__cause__ is cause

    def test_to_dict_is_json_safe(self):
        """to_dict renders a serializable payload even for odd context."""
        error = ValidationError(
            "bad config",
            context={"value": object(), "field": "name"},
            cause=ValueError("empty"),
        )
        data = error.to_dict()
        json.dumps(data)
        assert data["name"] == "ValidationError"
        assert data["code"] == "INVALID_ARGUMENT"
        assert data["context"]["field"] == "name"
        assert data["cause"] == {"name": "ValueError", "message": "empty"}


class TestRetryAfter:
    """Test Retry-After header parsing."""

    @pytest.mark.parametrize("value,expected", [
        ("30", 30.0),
        ("1.5", 1.5),
        (None, None),
        ("", None),
        ("-1", None),
        ("Wed, 21 Oct 2015 07:28:00 GMT", None),
    ])
    def test_parse(self, value, expected):
        """Only non-negative numeric values are honoured."""
        assert parse_retry_after(value) == expected


class TestClassifyHttpError:
    """Test status code to error mapping."""

    def test_unauthorized(self):
        """401 maps to an auth error."""
        error = classify_http_error("openrouter", 401, "No auth credentials found")
        assert isinstance(error, ProviderAuthError)
        assert error.status == 401
        assert error.context["detail"] == "No auth credentials found"

    def test_rate_limited_with_hint(self):
        """429 maps to a rate-limit error with the header hint."""
        error = classify_http_error("openrouter", 429, "slow down", headers={"retry-after": "7"})
        assert isinstance(error, ProviderRateLimitError)
        assert error.retry_after == 7.0

    def test_rate_limited_without_hint(self):
        """Missing Retry-After leaves the hint empty."""
        error = classify_http_error("openrouter", 429, "slow down")
        assert isinstance(error, ProviderRateLimitError)
        assert error.retry_after is None

    @pytest.mark.parametrize("status", [402, 403])
    def test_quota(self, status):
        """Payment required and forbidden map to a quota error."""
        error = classify_http_error("openrouter", status, "Insufficient credits")
        assert isinstance(error, ProviderQuotaError)
        assert error.status == status

    def test_unprocessable(self):
        """422 maps to an invalid-response error keeping the body."""
        body = {"error": {"message": "bad schema"}}
        error = classify_http_error("qwen-local", 422, "bad schema", body=body)
        assert isinstance(error, ProviderInvalidResponseError)
        assert error.response == body

    def test_other_status(self):
        """Anything else is a generic provider error with status and message."""
        error = classify_http_error("qwen-local", 503, "model loading")
        assert type(error) is ProviderError
        assert error.status == 503
        assert error.code == ErrorCode.PROVIDER_ERROR
        assert "503" in str(error)
        assert "model loading" in str(error)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
