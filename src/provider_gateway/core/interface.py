"""
Provider contract definition.

Defines the interface every backend adapter satisfies. Callers only
ever depend on this contract, never on a concrete adapter.
"""

from abc import ABC, abstractmethod
from typing import AsyncIterator, List, Optional
from enum import Enum

from .cancellation import CancellationToken
from .config import ProviderConfig, ProviderKind
from .result import Result
from ..models.request import ChatCompletionRequest
from ..models.response import ChatCompletionChunk, ChatCompletionResponse
from ..models.model_info import ModelInfo, ProviderHealth


class SelectionStrategy(str, Enum):
    """How the manager picks one provider among the candidates."""
    FIRST_AVAILABLE = "first-available"
    FASTEST = "fastest"
    CHEAPEST = "cheapest"
    MOST_CAPABLE = "most-capable"
    RANDOM = "random"


class ModelProvider(ABC):
    """
    Abstract base class for model providers.

    Every fallible operation returns a ``Result`` instead of raising.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique name of this provider instance (its config name)."""
        pass

    @property
    @abstractmethod
    def kind(self) -> ProviderKind:
        """Whether the backend is local or remote."""
        pass

    @property
    @abstractmethod
    def config(self) -> ProviderConfig:
        pass

    @property
    @abstractmethod
    def is_available(self) -> bool:
        """True iff initialized successfully and the config is enabled."""
        pass

    @abstractmethod
    async def initialize(self) -> Result[None]:
        pass

    @abstractmethod
    async def get_models(self) -> Result[List[ModelInfo]]:
        """
        List the models this provider can serve.

        Returns:
            Result wrapping a list of ModelInfo
        """
        pass

    @abstractmethod
    async def check_health(self) -> ProviderHealth:
        """
        Probe the backend. Never raises; failure is ``healthy=False``.
        """
        pass

    @abstractmethod
    async def chat_completion(
        self,
        request: ChatCompletionRequest,
        cancellation_token: Optional[CancellationToken] = None,
    ) -> Result[ChatCompletionResponse]:
        """
        Create a chat completion.

        Args:
            request: Canonical completion request
            cancellation_token: Optional token to abort the call

        Returns:
            Result wrapping the canonical response
        """
        pass

    @abstractmethod
    def chat_completion_stream(
        self,
        request: ChatCompletionRequest,
        cancellation_token: Optional[CancellationToken] = None,
    ) -> AsyncIterator[Result[ChatCompletionChunk]]:
        """
        Create a streaming chat completion.

        The sequence is finite and not restartable: it ends on the
        stream terminator, on a terminal error, or on cancellation.

        Yields:
            One Result per streamed event
        """
        pass

    @abstractmethod
    async def dispose(self) -> None:
        """Release resources. Terminal: the provider rejects later calls."""
        pass

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r}, kind={self.kind.value!r})"
