"""
Incremental Server-Sent-Events decoder.

Bytes are buffered across chunk boundaries and split on newlines. Only
``data: `` lines carry events; ``data: [DONE]`` ends the stream. A
malformed event yields one failure and decoding continues.
"""

import codecs
import json
import logging
from typing import Any, AsyncIterable, AsyncIterator, Dict, List, Optional, Tuple, Union

from ..core.cancellation import CancellationToken
from ..core.errors import CancellationError, ProviderError, ProviderInvalidResponseError
from ..core.result import Result

logger = logging.getLogger(__name__)

DATA_PREFIX = "data: "
DONE_SENTINEL = "[DONE]"

_DONE = object()


def _parse_line(line: str, provider: str) -> Union[None, object, Result[Dict[str, Any]]]:
    """Decode one line: None to skip, ``_DONE`` to stop, else a Result."""
    line = line.strip()
    if not line.startswith(DATA_PREFIX):
        return None

    payload = line[len(DATA_PREFIX):]
    if payload == DONE_SENTINEL:
        return _DONE

    try:
        event = json.loads(payload)
    except json.JSONDecodeError as e:
        logger.warning(f"Skipping malformed stream event from {provider}: {e}")
        return Result.fail(ProviderInvalidResponseError(provider, payload, detail=str(e), cause=e))

    if not isinstance(event, dict):
        return Result.fail(ProviderInvalidResponseError(provider, payload, detail="event is not an object"))
    return Result.ok(event)


def _split_lines(buffer: str) -> Tuple[List[str], str]:
    *lines, rest = buffer.split("\n")
    return lines, rest


async def decode_sse(
    chunks: AsyncIterable[Union[bytes, str]],
    provider: str,
    cancellation_token: Optional[CancellationToken] = None,
    max_line_chars: Optional[int] = None,
) -> AsyncIterator[Result[Dict[str, Any]]]:
    """
    Decode an SSE byte stream into one Result per event.

    Args:
        chunks: Raw response chunks, in arrival order
        provider: Provider name for error attribution
        cancellation_token: Checked before each chunk is processed and
            once more when the stream ends
        max_line_chars: Largest unterminated line kept in the buffer

    Yields:
        Result with the parsed event object, or an invalid-response
        failure for a malformed event, or a single terminal
        cancellation or oversized-line failure.
    """
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    buffer = ""

    async for chunk in chunks:
        if cancellation_token is not None and cancellation_token.is_cancelled:
            yield Result.fail(CancellationError("Stream was cancelled"))
            return

        buffer += decoder.decode(chunk) if isinstance(chunk, bytes) else chunk
        lines, buffer = _split_lines(buffer)

        for line in lines:
            parsed = _parse_line(line, provider)
            if parsed is None:
                continue
            if parsed is _DONE:
                return
            yield parsed

        if max_line_chars is not None and len(buffer) > max_line_chars:
            yield Result.fail(ProviderError(
                f"Stream line from {provider} exceeds limit of {max_line_chars} characters",
                provider,
            ))
            return

    if cancellation_token is not None and cancellation_token.is_cancelled:
        yield Result.fail(CancellationError("Stream was cancelled"))
        return

    # Flush a final line that arrived without a trailing newline
    buffer += decoder.decode(b"", final=True)
    parsed = _parse_line(buffer, provider)
    if parsed is not None and parsed is not _DONE:
        yield parsed
