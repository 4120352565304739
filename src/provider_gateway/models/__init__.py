"""
Provider gateway data models.
"""

from .request import (
    ChatMessage,
    ChatCompletionRequest,
    MessageRole,
    ToolDefinition,
    ToolFunction,
)
from .response import (
    ChatCompletionChunk,
    ChatCompletionResponse,
    ChunkDelta,
    FinishReason,
    PartialToolCall,
    ToolCall,
    Usage,
)
from .model_info import (
    CapabilityRequirements,
    ModelCapabilities,
    ModelInfo,
    ModelPricing,
    ProviderHealth,
)

__all__ = [
    "ChatMessage",
    "ChatCompletionRequest",
    "MessageRole",
    "ToolDefinition",
    "ToolFunction",
    "ChatCompletionChunk",
    "ChatCompletionResponse",
    "ChunkDelta",
    "FinishReason",
    "PartialToolCall",
    "ToolCall",
    "Usage",
    "CapabilityRequirements",
    "ModelCapabilities",
    "ModelInfo",
    "ModelPricing",
    "ProviderHealth",
]
