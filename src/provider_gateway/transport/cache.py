"""
Bounded response cache owned by a single transport instance.

This bounds repeated identical requests; it is not a correctness
cache. Entries may be up to ``ttl_seconds`` stale and are evicted
oldest-inserted first once ``max_entries`` is reached.
"""

import hashlib
import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    data: Any
    stored_at: float


def request_signature(
    method: str,
    url: str,
    params: Optional[Dict[str, Any]] = None,
    body: Any = None,
) -> str:
    """Opaque, stable key for an outbound request."""
    raw = json.dumps(
        {"method": method.upper(), "url": url, "params": params or {}, "body": body},
        sort_keys=True,
        default=str,
    )
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


class ResponseCache:
    """TTL cache with first-inserted eviction."""

    def __init__(
        self,
        ttl_seconds: float = 60.0,
        max_entries: int = 100,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._ttl = ttl_seconds
        self._max_entries = max_entries
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def get(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() - entry.stored_at >= self._ttl:
            # expired
            del self._entries[key]
            logger.debug(f"Cache entry expired: {key[:12]}")
            return None
        return entry.data

    def set(self, key: str, data: Any) -> None:
        if key in self._entries:
            del self._entries[key]
        elif len(self._entries) >= self._max_entries:
            oldest = next(iter(self._entries))
            del self._entries[oldest]
        self._entries[key] = CacheEntry(data=data, stored_at=self._clock())

    def clear(self) -> None:
        self._entries.clear()
