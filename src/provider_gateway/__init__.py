"""
Provider Gateway

One programmatic contract over several LLM HTTP backends:
- Chat completion, streaming completion, model listing and health
- Local inference server and OpenRouter adapters
- Registry mapping configuration to adapters
- Manager with priority, latency, cost and capability selection
"""

from .core.cancellation import CancellationToken
from .core.config import GatewayConfig, ProviderAuth, ProviderConfig, ProviderKind, load_config
from .core.errors import GatewayError
from .core.interface import ModelProvider, SelectionStrategy
from .core.manager import ProviderManager
from .core.registry import ProviderRegistry, get_registry
from .core.result import Result
from .models.model_info import CapabilityRequirements, ModelCapabilities, ModelInfo, ProviderHealth
from .models.request import ChatCompletionRequest, ChatMessage, MessageRole
from .models.response import ChatCompletionChunk, ChatCompletionResponse
from .adapters import LocalInferenceAdapter, OpenRouterAdapter

__all__ = [
    "CancellationToken",
    "GatewayConfig",
    "ProviderAuth",
    "ProviderConfig",
    "ProviderKind",
    "load_config",
    "GatewayError",
    "ModelProvider",
    "SelectionStrategy",
    "ProviderManager",
    "ProviderRegistry",
    "get_registry",
    "Result",
    "CapabilityRequirements",
    "ModelCapabilities",
    "ModelInfo",
    "ProviderHealth",
    "ChatCompletionRequest",
    "ChatMessage",
    "MessageRole",
    "ChatCompletionChunk",
    "ChatCompletionResponse",
    "LocalInferenceAdapter",
    "OpenRouterAdapter",
]
