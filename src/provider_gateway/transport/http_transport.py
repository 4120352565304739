"""
HTTP transport shared by every backend adapter.

Executes one request against a provider's base URL with auth headers,
a timeout and a body-size ceiling, and normalizes every outcome into a
``Result``. Streaming responses are decoded as Server-Sent-Events.
"""

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, AsyncIterator, Callable, Dict, Optional

import httpx
from opentelemetry import trace

from ..core.cancellation import CancellationToken, iterate_cancellable, run_cancellable
from ..core.config import AuthScheme, ProviderConfig
from ..core.errors import (
    CancellationError,
    ErrorCode,
    GatewayError,
    GatewayTimeoutError,
    ProviderError,
    ProviderInvalidResponseError,
    ValidationError,
)
from ..core.result import Result
from .cache import ResponseCache, request_signature
from .classification import classify_http_error
from .sse import decode_sse

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


@dataclass
class TransportSettings:
    """Per-transport limits; ``ProviderConfig.timeout_ms`` overrides ``timeout_ms``."""
    timeout_ms: int = 30000
    health_timeout_ms: int = 5000
    max_body_bytes: int = 50 * 1024 * 1024
    cache_ttl_seconds: float = 60.0
    cache_max_entries: int = 100
    user_agent: str = "provider-gateway/0.1.0"


@dataclass(frozen=True)
class HttpResponse:
    """Decoded successful response."""
    data: Any
    status_code: int
    headers: Dict[str, str]


# (decoded body or None, raw text) -> human-readable message
MessageExtractor = Callable[[Any, str], str]


def default_error_message(body: Any, text: str) -> str:
    """Pull ``error.message`` out of an OpenAI-style error body."""
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str) and error:
            return error
        if body.get("message"):
            return str(body["message"])
    return text.strip() or "empty response body"


class HttpTransport:
    """
    Request executor bound to one provider configuration.

    Owns its httpx client and its response cache; neither is shared
    with other providers.
    """

    def __init__(
        self,
        config: ProviderConfig,
        settings: Optional[TransportSettings] = None,
        message_extractor: Optional[MessageExtractor] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the transport.

        Args:
            config: Provider configuration (base URL, auth, timeout)
            settings: Limits and cache bounds
            message_extractor: Backend-specific error message extraction
            transport: Optional httpx transport, e.g. ``httpx.MockTransport``
        """
        self._config = config
        self._settings = settings or TransportSettings()
        self._timeout_ms = config.timeout_ms or self._settings.timeout_ms
        self._extract_message = message_extractor or default_error_message
        self._transport = transport
        self._cache = ResponseCache(
            ttl_seconds=self._settings.cache_ttl_seconds,
            max_entries=self._settings.cache_max_entries,
        )
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def name(self) -> str:
        return self._config.name

    @property
    def base_url(self) -> Optional[str]:
        base_url = self._config.auth.base_url
        return base_url.rstrip("/") if base_url else None

    @property
    def timeout_ms(self) -> int:
        return self._timeout_ms

    @property
    def settings(self) -> TransportSettings:
        return self._settings

    @property
    def cache(self) -> ResponseCache:
        return self._cache

    def build_headers(self, extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        """Config headers, then per-call headers, then the bearer token."""
        auth = self._config.auth
        headers = {
            "Content-Type": "application/json",
            "User-Agent": self._settings.user_agent,
            **auth.headers,
            **(extra or {}),
        }
        if auth.scheme == AuthScheme.API_KEY and auth.api_key:
            headers["Authorization"] = f"Bearer {auth.api_key}"
        return headers

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers=self.build_headers(),
                timeout=httpx.Timeout(self._timeout_ms / 1000),
                follow_redirects=True,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client and drop cached responses."""
        if self._client:
            await self._client.aclose()
            self._client = None
        self._cache.clear()

    def clear_cache(self) -> None:
        self._cache.clear()

    def _preflight(
        self,
        json_body: Any,
        cancellation_token: Optional[CancellationToken],
    ) -> Result[Optional[bytes]]:
        if cancellation_token is not None and cancellation_token.is_cancelled:
            return Result.fail(CancellationError("Request was cancelled"))
        if not self.base_url:
            return Result.fail(ValidationError(
                f"Provider '{self.name}' has no base URL configured",
                context={"provider": self.name},
            ))
        if json_body is None:
            return Result.ok(None)

        content = json.dumps(json_body).encode("utf-8")
        if len(content) > self._settings.max_body_bytes:
            return Result.fail(ValidationError(
                f"Request body of {len(content)} bytes exceeds limit of "
                f"{self._settings.max_body_bytes} bytes",
                context={"provider": self.name},
            ))
        return Result.ok(content)

    async def request(
        self,
        method: str,
        path: str,
        json_body: Any = None,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        timeout_ms: Optional[int] = None,
        use_cache: bool = False,
        cancellation_token: Optional[CancellationToken] = None,
    ) -> Result[HttpResponse]:
        """
        Execute a single non-streaming request.

        Args:
            method: HTTP method
            path: Path relative to the provider's base URL
            json_body: JSON-serializable request body
            params: Query parameters
            headers: Per-call headers merged over config headers
            timeout_ms: Override of the configured timeout
            use_cache: Serve and store through the response cache
            cancellation_token: Aborts the request when cancelled

        Returns:
            Result wrapping the decoded HttpResponse
        """
        preflight = self._preflight(json_body, cancellation_token)
        if not preflight.success:
            return preflight
        content = preflight.data

        cache_key = None
        if use_cache:
            cache_key = request_signature(method, f"{self.base_url}{path}", params, json_body)
            cached = self._cache.get(cache_key)
            if cached is not None:
                logger.debug(f"Cache hit for {method} {path} on {self.name}")
                return Result.ok(cached)

        effective_timeout = timeout_ms or self._timeout_ms

        with tracer.start_as_current_span("provider_request") as span:
            span.set_attribute("provider", self.name)
            span.set_attribute("http.method", method)
            span.set_attribute("http.path", path)

            try:
                status, response_headers, raw = await run_cancellable(
                    self._send(method, path, content, params, headers, effective_timeout),
                    cancellation_token,
                )
            except asyncio.CancelledError:
                if cancellation_token is not None and cancellation_token.is_cancelled:
                    return Result.fail(CancellationError("Request was cancelled"))
                raise
            except GatewayError as e:
                return Result.fail(e)
            except httpx.TimeoutException as e:
                return Result.fail(self._timeout_error(effective_timeout, e))
            except httpx.HTTPError as e:
                return Result.fail(self._network_error(e))

            span.set_attribute("http.status_code", status)

        result = self._decode(status, response_headers, raw)
        if result.success and cache_key is not None:
            self._cache.set(cache_key, result.data)
        return result

    async def _send(
        self,
        method: str,
        path: str,
        content: Optional[bytes],
        params: Optional[Dict[str, Any]],
        headers: Optional[Dict[str, str]],
        timeout_ms: int,
    ):
        client = self._get_client()
        async with client.stream(
            method,
            path,
            content=content,
            params=params,
            headers=headers,
            timeout=httpx.Timeout(timeout_ms / 1000),
        ) as response:
            raw = await self._read_body(response)
            return response.status_code, response.headers, raw

    async def _read_body(self, response: httpx.Response) -> bytes:
        limit = self._settings.max_body_bytes
        declared = response.headers.get("content-length")
        if declared and declared.isdigit() and int(declared) > limit:
            raise self._too_large(response.status_code)

        body = bytearray()
        async for chunk in response.aiter_bytes():
            body.extend(chunk)
            if len(body) > limit:
                raise self._too_large(response.status_code)
        return bytes(body)

    def _too_large(self, status: int) -> ProviderError:
        return ProviderError(
            f"Response from {self.name} exceeds limit of {self._settings.max_body_bytes} bytes",
            self.name,
            status=status,
        )

    def _decode(self, status: int, headers: httpx.Headers, raw: bytes) -> Result[HttpResponse]:
        text = raw.decode("utf-8", errors="replace")
        try:
            body = json.loads(text) if text.strip() else None
            decode_error = None
        except json.JSONDecodeError as e:
            body = None
            decode_error = e

        if not 200 <= status < 300:
            message = self._extract_message(body, text)
            return Result.fail(classify_http_error(self.name, status, message, headers, body if body is not None else text))

        if decode_error is not None:
            return Result.fail(ProviderInvalidResponseError(
                self.name, text, status=status, detail=str(decode_error), cause=decode_error,
            ))

        return Result.ok(HttpResponse(data=body, status_code=status, headers=dict(headers)))

    def _timeout_error(self, timeout_ms: int, cause: Exception) -> GatewayTimeoutError:
        return GatewayTimeoutError(
            f"Request to {self.name} timed out after {timeout_ms} ms",
            timeout_ms,
            provider=self.name,
            cause=cause,
        )

    def _network_error(self, cause: Exception) -> ProviderError:
        return ProviderError(
            f"Request to {self.name} failed: {cause}",
            self.name,
            code=ErrorCode.NETWORK_ERROR,
            cause=cause,
        )

    async def stream(
        self,
        method: str,
        path: str,
        json_body: Any = None,
        headers: Optional[Dict[str, str]] = None,
        cancellation_token: Optional[CancellationToken] = None,
    ) -> AsyncIterator[Result[Dict[str, Any]]]:
        """
        Execute a streaming request and decode its SSE events.

        Never cached. The token aborts both the pending send and any
        pending chunk read. A transport failure or cancellation yields
        one terminal failure and ends the sequence.
        """
        preflight = self._preflight(json_body, cancellation_token)
        if not preflight.success:
            yield preflight
            return

        stream_headers = {"Accept": "text/event-stream", **(headers or {})}

        # Not made current: the span stays open across yields to the caller
        span = tracer.start_span("provider_request")
        span.set_attribute("provider", self.name)
        span.set_attribute("http.method", method)
        span.set_attribute("http.path", path)
        span.set_attribute("stream", True)

        response = None
        try:
            client = self._get_client()
            request = client.build_request(method, path, content=preflight.data, headers=stream_headers)
            response = await run_cancellable(client.send(request, stream=True), cancellation_token)
            span.set_attribute("http.status_code", response.status_code)

            if not response.is_success:
                raw = await run_cancellable(response.aread(), cancellation_token)
                yield self._decode(response.status_code, response.headers, raw)
                return

            chunks = iterate_cancellable(response.aiter_bytes(), cancellation_token)
            events = decode_sse(chunks, self.name, cancellation_token, self._settings.max_body_bytes)
            async for event in events:
                yield event
        except asyncio.CancelledError:
            if cancellation_token is None or not cancellation_token.is_cancelled:
                raise
            logger.debug(f"Stream from {self.name} cancelled")
            yield Result.fail(CancellationError("Stream was cancelled"))
        except httpx.TimeoutException as e:
            yield Result.fail(self._timeout_error(self._timeout_ms, e))
        except httpx.HTTPError as e:
            yield Result.fail(self._network_error(e))
        finally:
            if response is not None:
                await response.aclose()
            span.end()
