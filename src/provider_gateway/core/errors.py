"""
Provider gateway error types.

Every failure surfaced by the gateway is one of these classes. Each
carries a machine-checkable ``code`` alongside the human-readable
message so calling layers can branch without string matching.
"""

import json
from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(str, Enum):
    """Machine-checkable error kinds."""
    UNKNOWN = "UNKNOWN"
    INVALID_ARGUMENT = "INVALID_ARGUMENT"
    NOT_FOUND = "NOT_FOUND"
    TIMEOUT = "TIMEOUT"
    CANCELLED = "CANCELLED"
    NETWORK_ERROR = "NETWORK_ERROR"

    PROVIDER_ERROR = "PROVIDER_ERROR"
    PROVIDER_UNAVAILABLE = "PROVIDER_UNAVAILABLE"
    PROVIDER_AUTH_FAILED = "PROVIDER_AUTH_FAILED"
    PROVIDER_RATE_LIMITED = "PROVIDER_RATE_LIMITED"
    PROVIDER_QUOTA_EXCEEDED = "PROVIDER_QUOTA_EXCEEDED"
    PROVIDER_INVALID_RESPONSE = "PROVIDER_INVALID_RESPONSE"


_RETRYABLE = {
    ErrorCode.TIMEOUT,
    ErrorCode.NETWORK_ERROR,
    ErrorCode.PROVIDER_RATE_LIMITED,
}

_USER_FIXABLE = {
    ErrorCode.INVALID_ARGUMENT,
    ErrorCode.PROVIDER_AUTH_FAILED,
}


class GatewayError(Exception):
    """Base exception for gateway errors."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.UNKNOWN,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ):
        self.message = message
        self.code = code
        self.context = context or {}
        self.cause = cause
        super().__init__(message)
        if cause is not None:
            self.__cause__ = cause

    def is_retryable(self) -> bool:
        """Whether a caller-side backoff and retry is likely to help."""
        return self.code in _RETRYABLE

    def is_user_fixable(self) -> bool:
        """Whether the failure is caused by caller input or credentials."""
        return self.code in _USER_FIXABLE

    def to_dict(self) -> Dict[str, Any]:
        """Render the error as a JSON-safe dict."""
        return {
            "name": self.__class__.__name__,
            "message": self.message,
            "code": self.code.value,
            "context": _json_safe(self.context),
            "cause": (
                {"name": type(self.cause).__name__, "message": str(self.cause)}
                if self.cause is not None
                else None
            ),
        }


def _json_safe(value: Dict[str, Any]) -> Dict[str, Any]:
    safe = {}
    for key, item in value.items():
        try:
            json.dumps(item)
            safe[key] = item
        except (TypeError, ValueError):
            safe[key] = repr(item)
    return safe


class ValidationError(GatewayError):
    """Raised when a configuration or request fails validation."""

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message, ErrorCode.INVALID_ARGUMENT, context, cause)


class NotFoundError(GatewayError):
    """Raised when a provider, factory or candidate cannot be found."""

    def __init__(
        self,
        message: str,
        resource: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message, ErrorCode.NOT_FOUND, {"resource": resource}, cause)
        self.resource = resource


class GatewayTimeoutError(GatewayError):
    """Raised when a request exceeds its configured timeout."""

    def __init__(
        self,
        message: str,
        timeout_ms: int,
        provider: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(
            message,
            ErrorCode.TIMEOUT,
            {"timeout_ms": timeout_ms, "provider": provider},
            cause,
        )
        self.timeout_ms = timeout_ms
        self.provider = provider


class CancellationError(GatewayError):
    """Raised when an operation is cancelled through its token."""

    def __init__(
        self,
        message: str = "Operation was cancelled",
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message, ErrorCode.CANCELLED, None, cause)


class ProviderError(GatewayError):
    """Generic failure reported by, or while talking to, a backend."""

    def __init__(
        self,
        message: str,
        provider: str,
        status: Optional[int] = None,
        code: ErrorCode = ErrorCode.PROVIDER_ERROR,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ):
        merged = dict(context or {})
        merged.update({"provider": provider, "status": status})
        super().__init__(message, code, merged, cause)
        self.provider = provider
        self.status = status


class ProviderUnavailableError(ProviderError):
    """Raised when a provider is not initialized, disabled or disposed."""

    def __init__(
        self,
        provider: str,
        reason: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ):
        message = f"Provider '{provider}' is unavailable"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(
            message,
            provider,
            code=ErrorCode.PROVIDER_UNAVAILABLE,
            context={"reason": reason},
            cause=cause,
        )
        self.reason = reason


class ProviderAuthError(ProviderError):
    """Raised when the backend rejects our credentials."""

    def __init__(
        self,
        provider: str,
        status: Optional[int] = 401,
        detail: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(
            f"Authentication failed for provider '{provider}'",
            provider,
            status=status,
            code=ErrorCode.PROVIDER_AUTH_FAILED,
            context={"detail": detail},
            cause=cause,
        )


class ProviderRateLimitError(ProviderError):
    """Raised when the backend rate-limits us."""

    def __init__(
        self,
        provider: str,
        retry_after: Optional[float] = None,
        status: Optional[int] = 429,
        detail: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ):
        message = f"Rate limit exceeded for provider '{provider}'"
        if retry_after is not None:
            message = f"{message}. Retry after {retry_after:g} seconds"
        super().__init__(
            message,
            provider,
            status=status,
            code=ErrorCode.PROVIDER_RATE_LIMITED,
            context={"retry_after": retry_after, "detail": detail},
            cause=cause,
        )
        self.retry_after = retry_after


class ProviderQuotaError(ProviderError):
    """Raised when the account has no credit or access left."""

    def __init__(
        self,
        provider: str,
        status: Optional[int] = None,
        detail: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(
            f"Quota exceeded for provider '{provider}'",
            provider,
            status=status,
            code=ErrorCode.PROVIDER_QUOTA_EXCEEDED,
            context={"detail": detail},
            cause=cause,
        )


class ProviderInvalidResponseError(ProviderError):
    """Raised when the backend returns a payload we cannot interpret."""

    def __init__(
        self,
        provider: str,
        response: Any = None,
        status: Optional[int] = None,
        detail: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(
            f"Invalid response from provider '{provider}'",
            provider,
            status=status,
            code=ErrorCode.PROVIDER_INVALID_RESPONSE,
            context={"detail": detail},
            cause=cause,
        )
        self.response = response
