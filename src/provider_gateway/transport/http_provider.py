"""
Base class for providers that talk to an HTTP backend.
"""

import logging
from typing import Any, Optional

import httpx

from ..core.base_provider import BaseProvider
from ..core.config import ProviderConfig
from .http_transport import HttpTransport, TransportSettings, default_error_message

logger = logging.getLogger(__name__)


class HttpProvider(BaseProvider):
    """
    BaseProvider bound to its own HttpTransport.

    Initialization and health checks are a GET against ``PROBE_PATH``.
    Subclasses supply the wire translation.
    """

    PROBE_PATH = "/v1/models"

    def __init__(
        self,
        config: ProviderConfig,
        settings: Optional[TransportSettings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(config)
        self._transport = HttpTransport(
            config,
            settings=settings,
            message_extractor=self._extract_error_message,
            transport=transport,
        )

    @property
    def transport(self) -> HttpTransport:
        return self._transport

    def _extract_error_message(self, body: Any, text: str) -> str:
        return default_error_message(body, text)

    async def _probe(self, timeout_ms: Optional[int] = None) -> None:
        result = await self._transport.request("GET", self.PROBE_PATH, timeout_ms=timeout_ms)
        if not result.success:
            raise result.error

    async def _do_initialize(self) -> None:
        await self._do_health_check()

    async def _do_health_check(self) -> None:
        await self._probe(self._transport.settings.health_timeout_ms)

    async def _do_dispose(self) -> None:
        await self._transport.close()

    def clear_cache(self) -> None:
        """Drop cached transport responses."""
        self._transport.clear_cache()
