"""
Shared provider lifecycle.

    uninitialized -> initializing -> available | unavailable -> disposed

``disposed`` is terminal. Backend-specific behaviour lives in the
``_do_*`` hooks.
"""

import logging
import time
from abc import abstractmethod
from enum import Enum
from typing import AsyncIterator, Optional

from .cancellation import CancellationToken
from .config import ProviderConfig, ProviderKind
from .errors import ProviderError, ProviderUnavailableError
from .interface import ModelProvider
from .result import Result
from ..models.request import ChatCompletionRequest
from ..models.response import ChatCompletionChunk
from ..models.model_info import ProviderHealth

logger = logging.getLogger(__name__)


class ProviderState(str, Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    AVAILABLE = "available"
    UNAVAILABLE = "unavailable"
    DISPOSED = "disposed"


class BaseProvider(ModelProvider):
    """Lifecycle state machine shared by every adapter."""

    def __init__(self, config: ProviderConfig):
        self._config = config
        self._state = ProviderState.UNINITIALIZED
        self._last_error: Optional[Exception] = None

    @property
    def name(self) -> str:
        return self._config.name

    @property
    def kind(self) -> ProviderKind:
        return self._config.kind

    @property
    def config(self) -> ProviderConfig:
        return self._config

    @property
    def state(self) -> ProviderState:
        return self._state

    @property
    def last_error(self) -> Optional[Exception]:
        """Cause of the most recent failed initialization."""
        return self._last_error

    @property
    def is_available(self) -> bool:
        return self._state == ProviderState.AVAILABLE and self._config.enabled

    async def initialize(self) -> Result[None]:
        if self._state == ProviderState.DISPOSED:
            return Result.fail(ProviderUnavailableError(self.name, "Provider has been disposed"))
        if self._state == ProviderState.AVAILABLE:
            return Result.ok()

        self._state = ProviderState.INITIALIZING
        try:
            await self._do_initialize()
        except Exception as e:
            self._state = ProviderState.UNAVAILABLE
            self._last_error = e
            return Result.fail(ProviderError(
                f"Failed to initialize provider {self.name}: {e}",
                self.name,
                status=getattr(e, "status", None),
                cause=e,
            ))

        self._state = ProviderState.AVAILABLE
        self._last_error = None
        logger.info(f"Initialized provider {self.name} ({self.kind.value})")
        return Result.ok()

    async def check_health(self) -> ProviderHealth:
        if self._state == ProviderState.DISPOSED:
            return ProviderHealth(healthy=False, provider=self.name, error="Provider has been disposed")

        start = time.perf_counter()
        try:
            await self._do_health_check()
        except Exception as e:
            return ProviderHealth(healthy=False, provider=self.name, error=str(e) or type(e).__name__)

        return ProviderHealth(
            healthy=True,
            provider=self.name,
            latency_ms=(time.perf_counter() - start) * 1000,
        )

    async def dispose(self) -> None:
        if self._state == ProviderState.DISPOSED:
            return
        try:
            await self._do_dispose()
        except Exception as e:
            # Shutdown must proceed even if cleanup fails
            logger.warning(f"Error disposing provider {self.name}: {e}")
        finally:
            self._state = ProviderState.DISPOSED
        logger.info(f"Disposed provider {self.name}")

    def _unavailable(self) -> Optional[Result]:
        """Failure result when the provider may not serve calls, else None."""
        if self.is_available:
            return None
        if self._state == ProviderState.DISPOSED:
            reason = "Provider has been disposed"
        elif not self._config.enabled:
            reason = "Provider is disabled"
        else:
            reason = "Provider is not initialized"
        return Result.fail(ProviderUnavailableError(self.name, reason))

    async def chat_completion_stream(
        self,
        request: ChatCompletionRequest,
        cancellation_token: Optional[CancellationToken] = None,
    ) -> AsyncIterator[Result[ChatCompletionChunk]]:
        unavailable = self._unavailable()
        if unavailable is not None:
            yield unavailable
            return

        async for result in self._stream(request, cancellation_token):
            yield result

    @abstractmethod
    def _stream(
        self,
        request: ChatCompletionRequest,
        cancellation_token: Optional[CancellationToken],
    ) -> AsyncIterator[Result[ChatCompletionChunk]]:
        """Backend streaming, called only while available."""
        pass

    @abstractmethod
    async def _do_initialize(self) -> None:
        pass

    @abstractmethod
    async def _do_health_check(self) -> None:
        pass

    @abstractmethod
    async def _do_dispose(self) -> None:
        pass
