"""
Canonical request models for the provider gateway.

Every adapter translates from these shapes; no backend-specific field
crosses the provider contract.
"""

from datetime import datetime
from enum import Enum
from typing import Optional, List, Dict, Any, Union, Literal
from pydantic import BaseModel, Field


class MessageRole(str, Enum):
    """Chat message roles."""
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


class ToolFunction(BaseModel):
    """Function definition for tool use."""
    name: str
    description: str = ""
    parameters: Dict[str, Any] = Field(default_factory=dict)  # JSON Schema


class ToolDefinition(BaseModel):
    """Tool definition."""
    type: Literal["function"] = "function"
    function: ToolFunction


class ChatMessage(BaseModel):
    """
    A single conversation turn.

    ``tool_call_id`` links a tool message back to the assistant's call;
    ``metadata`` and ``timestamp`` stay local and are never sent.
    """
    role: MessageRole
    content: str
    name: Optional[str] = None
    tool_call_id: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None
    timestamp: Optional[datetime] = None


class ChatCompletionRequest(BaseModel):
    """Unified chat completion request."""
    # Required
    model: str = Field(..., description="Model identifier")
    messages: List[ChatMessage] = Field(..., description="Conversation messages")

    # Optional parameters
    temperature: Optional[float] = Field(default=None, ge=0, le=2)
    max_tokens: Optional[int] = Field(default=None, ge=1)
    stream: bool = Field(default=False)
    stop: Optional[Union[str, List[str]]] = None

    # Tool use
    tools: Optional[List[ToolDefinition]] = None
    tool_choice: Optional[Union[str, Dict[str, Any]]] = None
