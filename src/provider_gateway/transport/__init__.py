"""
HTTP transport: request execution, response cache, SSE decoding and
error classification.
"""

from .cache import CacheEntry, ResponseCache, request_signature
from .classification import classify_http_error, parse_retry_after
from .http_provider import HttpProvider
from .http_transport import HttpResponse, HttpTransport, TransportSettings, default_error_message
from .sse import decode_sse

__all__ = [
    "CacheEntry",
    "ResponseCache",
    "request_signature",
    "classify_http_error",
    "parse_retry_after",
    "HttpProvider",
    "HttpResponse",
    "HttpTransport",
    "TransportSettings",
    "default_error_message",
    "decode_sse",
]
