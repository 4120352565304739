"""
Canonical response models for the provider gateway.
"""

from typing import Optional, List, Dict, Any
from pydantic import BaseModel, Field
from enum import Enum

from .request import ChatMessage, MessageRole


class FinishReason(str, Enum):
    """Reasons for completion finishing."""
    STOP = "stop"
    LENGTH = "length"
    TOOL_CALLS = "tool_calls"
    CONTENT_FILTER = "content_filter"


class Usage(BaseModel):
    """Token usage information."""
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class ToolCall(BaseModel):
    """A complete tool call with decoded arguments."""
    id: str
    name: str
    arguments: Dict[str, Any] = Field(default_factory=dict)


class PartialToolCall(BaseModel):
    """
    A tool call fragment delivered in a streaming chunk.

    Only the first fragment of a call carries ``id`` and ``name``;
    later fragments are matched to it by ``index``.
    """
    index: int = 0
    id: Optional[str] = None
    name: Optional[str] = None
    arguments: Optional[Dict[str, Any]] = None


class ChatCompletionResponse(BaseModel):
    """Unified chat completion response."""
    id: str
    model: str
    message: ChatMessage
    finish_reason: FinishReason = FinishReason.STOP
    usage: Usage = Field(default_factory=Usage)
    tool_calls: Optional[List[ToolCall]] = None

    def get_content(self) -> str:
        return self.message.content


class ChunkDelta(BaseModel):
    """Incremental content of a streaming chunk."""
    role: Optional[MessageRole] = None
    content: Optional[str] = None
    tool_calls: Optional[List[PartialToolCall]] = None


class ChatCompletionChunk(BaseModel):
    """A single streaming completion event."""
    id: str = ""
    model: str = ""
    delta: ChunkDelta = Field(default_factory=ChunkDelta)
    finish_reason: Optional[FinishReason] = None
