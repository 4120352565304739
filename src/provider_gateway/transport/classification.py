"""
Map HTTP failures onto the gateway error taxonomy.

The mapping is identical for every backend; only extracting the
message from an error body is backend-specific.
"""

from typing import Mapping, Optional

from ..core.errors import (
    GatewayError,
    ProviderAuthError,
    ProviderError,
    ProviderInvalidResponseError,
    ProviderQuotaError,
    ProviderRateLimitError,
)


def parse_retry_after(value: Optional[str]) -> Optional[float]:
    """Seconds from a numeric ``Retry-After`` header, else None."""
    if not value:
        return None
    try:
        seconds = float(value.strip())
    except ValueError:
        # HTTP-date form is not interpreted
        return None
    return seconds if seconds >= 0 else None


def classify_http_error(
    provider: str,
    status: int,
    message: str,
    headers: Optional[Mapping[str, str]] = None,
    body: object = None,
) -> GatewayError:
    """
    Convert a non-2xx response into a typed error.

    Args:
        provider: Provider name
        status: HTTP status code
        message: Human-readable message extracted from the body
        headers: Response headers (case-insensitive mapping preferred)
        body: Decoded body, kept on invalid-response errors

    Returns:
        The matching GatewayError subclass
    """
    headers = headers or {}

    if status == 401:
        return ProviderAuthError(provider, status=status, detail=message)

    if status == 429:
        retry_after = parse_retry_after(headers.get("retry-after") or headers.get("Retry-After"))
        return ProviderRateLimitError(provider, retry_after=retry_after, status=status, detail=message)

    if status in (402, 403):
        return ProviderQuotaError(provider, status=status, detail=message)

    if status == 422:
        return ProviderInvalidResponseError(provider, body, status=status, detail=message)

    return ProviderError(
        f"HTTP error from {provider}: {status} - {message}",
        provider,
        status=status,
    )
