"""
OpenAI-compatible wire shapes and translation to the canonical models.

Both backends speak the chat-completions dialect. Raw JSON is first
validated into the strict ``Wire*`` models below, then translated, so
a malformed payload fails in one place with an invalid-response error.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from ..core.errors import ProviderInvalidResponseError
from ..core.result import Result
from ..models.request import ChatCompletionRequest, ChatMessage, MessageRole
from ..models.response import (
    ChatCompletionChunk,
    ChatCompletionResponse,
    ChunkDelta,
    FinishReason,
    PartialToolCall,
    ToolCall,
    Usage,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Wire shapes
# =============================================================================

class WireFunctionCall(BaseModel):
    name: str
    arguments: str = ""


class WireToolCall(BaseModel):
    id: str
    type: str = "function"
    function: WireFunctionCall


class WireMessage(BaseModel):
    role: str = "assistant"
    content: Optional[str] = None
    tool_calls: Optional[List[WireToolCall]] = None


class WireChoice(BaseModel):
    index: int = 0
    message: WireMessage
    finish_reason: Optional[str] = None


class WireUsage(BaseModel):
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class WireChatCompletion(BaseModel):
    id: str
    model: str
    choices: List[WireChoice]
    usage: Optional[WireUsage] = None


class WireDeltaFunction(BaseModel):
    name: Optional[str] = None
    arguments: Optional[str] = None


class WireDeltaToolCall(BaseModel):
    index: int = 0
    id: Optional[str] = None
    type: Optional[str] = None
    function: Optional[WireDeltaFunction] = None


class WireDelta(BaseModel):
    role: Optional[str] = None
    content: Optional[str] = None
    tool_calls: Optional[List[WireDeltaToolCall]] = None


class WireStreamChoice(BaseModel):
    index: int = 0
    delta: WireDelta = Field(default_factory=WireDelta)
    finish_reason: Optional[str] = None


class WireChatCompletionChunk(BaseModel):
    id: str = ""
    model: str = ""
    choices: List[WireStreamChoice] = Field(default_factory=list)


# =============================================================================
# Translation
# =============================================================================

FINISH_REASONS: Dict[str, FinishReason] = {
    "stop": FinishReason.STOP,
    "length": FinishReason.LENGTH,
    "tool_calls": FinishReason.TOOL_CALLS,
    "content_filter": FinishReason.CONTENT_FILTER,
}


def map_finish_reason(
    reason: Optional[str],
    mapping: Mapping[str, FinishReason] = FINISH_REASONS,
) -> FinishReason:
    """Map a wire finish reason; anything unrecognized is ``stop``."""
    return mapping.get(reason or "", FinishReason.STOP)


def _role(value: Optional[str]) -> Optional[MessageRole]:
    try:
        return MessageRole(value)
    except ValueError:
        return None


def _wire_message(message: ChatMessage) -> Dict[str, Any]:
    wire = {"role": message.role.value, "content": message.content}
    if message.name:
        wire["name"] = message.name
    if message.tool_call_id:
        wire["tool_call_id"] = message.tool_call_id
    return wire


def build_chat_payload(request: ChatCompletionRequest, stream: Optional[bool] = None) -> Dict[str, Any]:
    """
    Build the chat-completions request body.

    Args:
        request: Canonical request
        stream: Overrides ``request.stream`` when given

    Returns:
        JSON-ready dict with unset optional fields omitted
    """
    payload = {
        "model": request.model,
        "messages": [_wire_message(m) for m in request.messages],
        "temperature": request.temperature,
        "max_tokens": request.max_tokens,
        "stream": request.stream if stream is None else stream,
        "tools": [tool.model_dump() for tool in request.tools] if request.tools else None,
        "tool_choice": request.tool_choice,
        "stop": request.stop,
    }
    return {key: value for key, value in payload.items() if value is not None}


def parse_tool_arguments(raw: Optional[str], provider: str) -> Dict[str, Any]:
    """Decode a tool-call argument string, degrading to ``{}``."""
    if not raw:
        return {}
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as e:
        logger.warning(f"Failed to parse tool call arguments from {provider}: {e}")
        return {}
    if not isinstance(parsed, dict):
        logger.warning(f"Tool call arguments from {provider} are not an object")
        return {}
    return parsed


def _invalid(provider: str, data: Any, detail: str, cause: Optional[Exception] = None) -> Result:
    return Result.fail(ProviderInvalidResponseError(provider, data, detail=detail, cause=cause))


def translate_response(
    data: Any,
    provider: str,
    finish_reasons: Mapping[str, FinishReason] = FINISH_REASONS,
) -> Result[ChatCompletionResponse]:
    """Translate a chat-completions body into a ChatCompletionResponse."""
    try:
        wire = WireChatCompletion.model_validate(data)
    except PydanticValidationError as e:
        return _invalid(provider, data, str(e), e)

    if not wire.choices:
        return _invalid(provider, data, "response contains no choices")

    choice = wire.choices[0]
    tool_calls = None
    if choice.message.tool_calls:
        tool_calls = [
            ToolCall(
                id=call.id,
                name=call.function.name,
                arguments=parse_tool_arguments(call.function.arguments, provider),
            )
            for call in choice.message.tool_calls
        ]

    usage = Usage(**wire.usage.model_dump()) if wire.usage else Usage()

    return Result.ok(ChatCompletionResponse(
        id=wire.id,
        model=wire.model,
        message=ChatMessage(
            role=_role(choice.message.role) or MessageRole.ASSISTANT,
            content=choice.message.content or "",
            timestamp=datetime.now(timezone.utc),
        ),
        finish_reason=map_finish_reason(choice.finish_reason, finish_reasons),
        usage=usage,
        tool_calls=tool_calls,
    ))


def translate_chunk(
    data: Any,
    provider: str,
    finish_reasons: Mapping[str, FinishReason] = FINISH_REASONS,
) -> Result[ChatCompletionChunk]:
    """Translate one streamed event into a ChatCompletionChunk."""
    try:
        wire = WireChatCompletionChunk.model_validate(data)
    except PydanticValidationError as e:
        return _invalid(provider, data, str(e), e)

    if not wire.choices:
        # usage-only trailer events carry no delta
        return Result.ok(ChatCompletionChunk(id=wire.id, model=wire.model))

    choice = wire.choices[0]
    delta = choice.delta
    tool_calls = None
    if delta.tool_calls:
        tool_calls = [
            PartialToolCall(
                index=call.index,
                id=call.id,
                name=call.function.name if call.function else None,
                arguments=(
                    parse_tool_arguments(call.function.arguments, provider)
                    if call.function and call.function.arguments
                    else None
                ),
            )
            for call in delta.tool_calls
        ]

    return Result.ok(ChatCompletionChunk(
        id=wire.id,
        model=wire.model,
        delta=ChunkDelta(
            role=_role(delta.role),
            content=delta.content,
            tool_calls=tool_calls,
        ),
        finish_reason=map_finish_reason(choice.finish_reason, finish_reasons) if choice.finish_reason else None,
    ))
