"""
OpenRouter adapter.

OpenRouter aggregates many hosted models behind one OpenAI-compatible
API under ``/api/v1``. Model listings carry context limits and
per-token pricing.
"""

import logging
import time
from typing import AsyncIterator, Callable, Dict, FrozenSet, List, Optional

import httpx
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from ..core.cancellation import CancellationToken
from ..core.config import DEFAULT_OPENROUTER_URL, AuthScheme, ProviderConfig, ProviderKind
from ..core.errors import ProviderInvalidResponseError, ValidationError
from ..core.interface import ModelProvider
from ..core.registry import ProviderFactory
from ..core.result import Result
from ..models.model_info import ModelCapabilities, ModelInfo, ModelPricing
from ..models.request import ChatCompletionRequest
from ..models.response import ChatCompletionChunk, ChatCompletionResponse, FinishReason
from ..transport.http_provider import HttpProvider
from ..transport.http_transport import TransportSettings
from .openai_compat import FINISH_REASONS, build_chat_payload, translate_chunk, translate_response

logger = logging.getLogger(__name__)

MODEL_CACHE_TTL_SECONDS = 300.0

OPENROUTER_FINISH_REASONS: Dict[str, FinishReason] = {
    **FINISH_REASONS,
    "function_call": FinishReason.TOOL_CALLS,
}

# Model id substrings
TOOL_MODELS = ("openai/gpt-4", "openai/gpt-3.5-turbo", "anthropic/claude-3", "anthropic/claude-3.5")
IMAGE_MODELS = ("openai/gpt-4o", "anthropic/claude-3", "google/gemini")
CODE_MODELS = ("coder", "code", "deepseek", "qwen", "codestral")


class WireTopProvider(BaseModel):
    context_length: Optional[int] = None
    max_completion_tokens: Optional[int] = None


class WirePerRequestLimits(BaseModel):
    prompt_tokens: Optional[int] = None
    completion_tokens: Optional[int] = None


class WirePricing(BaseModel):
    prompt: float = 0.0
    completion: float = 0.0


class WireOpenRouterModel(BaseModel):
    id: str
    name: Optional[str] = None
    description: Optional[str] = None
    context_length: Optional[int] = None
    top_provider: WireTopProvider = Field(default_factory=WireTopProvider)
    per_request_limits: Optional[WirePerRequestLimits] = None
    pricing: Optional[WirePricing] = None


class WireOpenRouterModelList(BaseModel):
    data: List[WireOpenRouterModel]


class OpenRouterAdapter(HttpProvider):
    """
    Adapter for the OpenRouter API.

    Model listings are cached in memory for ``model_cache_ttl`` seconds,
    independently of the transport's response cache.
    """

    MODELS_PATH = "/api/v1/models"
    CHAT_PATH = "/api/v1/chat/completions"
    PROBE_PATH = MODELS_PATH

    def __init__(
        self,
        config: ProviderConfig,
        settings: Optional[TransportSettings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        model_cache_ttl: float = MODEL_CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        super().__init__(config, settings=settings, transport=transport)
        self._model_cache_ttl = model_cache_ttl
        self._clock = clock
        self._models_cache: Optional[List[ModelInfo]] = None
        self._models_cache_expiry = 0.0

    async def get_models(self) -> Result[List[ModelInfo]]:
        unavailable = self._unavailable()
        if unavailable is not None:
            return unavailable

        if self._models_cache is not None and self._clock() < self._models_cache_expiry:
            logger.debug(f"Using cached model listing for {self.name}")
            return Result.ok(list(self._models_cache))

        result = await self._transport.request("GET", self.MODELS_PATH)
        if not result.success:
            return result

        try:
            listing = WireOpenRouterModelList.model_validate(result.data.data)
        except PydanticValidationError as e:
            return Result.fail(ProviderInvalidResponseError(
                self.name, result.data.data, status=result.data.status_code, detail=str(e), cause=e,
            ))

        models = [self._model_info(model) for model in listing.data if self._is_configured(model.id)]
        self._models_cache = models
        self._models_cache_expiry = self._clock() + self._model_cache_ttl
        return Result.ok(list(models))

    def _is_configured(self, model_id: str) -> bool:
        return not self._config.models or model_id in self._config.models

    def _model_info(self, model: WireOpenRouterModel) -> ModelInfo:
        return ModelInfo(
            id=model.id,
            name=model.name or model.id,
            description=model.description or f"OpenRouter model: {model.id}",
            provider=self.name,
            capabilities=self.infer_capabilities(model),
            pricing=self._pricing(model),
            is_local=False,
        )

    @staticmethod
    def infer_capabilities(model: WireOpenRouterModel) -> ModelCapabilities:
        """Capabilities from listing limits and model id substrings."""
        limits = model.per_request_limits
        max_output = (
            model.top_provider.max_completion_tokens
            or (limits.completion_tokens if limits else None)
            or 4096
        )
        context_window = model.context_length or model.top_provider.context_length or 4096
        model_id = model.id.lower()

        return ModelCapabilities(
            streaming=True,
            tools=any(pattern in model_id for pattern in TOOL_MODELS),
            images=any(pattern in model_id for pattern in IMAGE_MODELS),
            code_generation=any(pattern in model_id for pattern in CODE_MODELS),
            max_output_tokens=max_output,
            context_window_tokens=context_window,
        )

    @staticmethod
    def _pricing(model: WireOpenRouterModel) -> Optional[ModelPricing]:
        if model.pricing is None:
            return None
        # Listings quote per-token prices; negative values mark variable pricing
        return ModelPricing(
            input_price_per_k_tokens=max(model.pricing.prompt, 0.0) * 1000,
            output_price_per_k_tokens=max(model.pricing.completion, 0.0) * 1000,
        )

    async def chat_completion(
        self,
        request: ChatCompletionRequest,
        cancellation_token: Optional[CancellationToken] = None,
    ) -> Result[ChatCompletionResponse]:
        unavailable = self._unavailable()
        if unavailable is not None:
            return unavailable

        result = await self._transport.request(
            "POST",
            self.CHAT_PATH,
            json_body=build_chat_payload(request, stream=False),
            cancellation_token=cancellation_token,
        )
        if not result.success:
            return result
        return translate_response(result.data.data, self.name, OPENROUTER_FINISH_REASONS)

    async def _stream(
        self,
        request: ChatCompletionRequest,
        cancellation_token: Optional[CancellationToken],
    ) -> AsyncIterator[Result[ChatCompletionChunk]]:
        events = self._transport.stream(
            "POST",
            self.CHAT_PATH,
            json_body=build_chat_payload(request, stream=True),
            cancellation_token=cancellation_token,
        )
        async for event in events:
            if not event.success:
                yield event
                continue
            yield translate_chunk(event.data, self.name, OPENROUTER_FINISH_REASONS)

    async def _do_dispose(self) -> None:
        self._models_cache = None
        self._models_cache_expiry = 0.0
        await super()._do_dispose()


class OpenRouterProviderFactory(ProviderFactory):
    """Builds OpenRouterAdapter instances."""

    DEFAULT_HEADERS = {
        "HTTP-Referer": "https://github.com/provider-gateway/provider-gateway",
        "X-Title": "Provider Gateway",
    }

    def __init__(
        self,
        settings: Optional[TransportSettings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        model_cache_ttl: float = MODEL_CACHE_TTL_SECONDS,
    ):
        self._settings = settings
        self._transport = transport
        self._model_cache_ttl = model_cache_ttl

    @property
    def name(self) -> str:
        return "openrouter"

    @property
    def supported_kinds(self) -> FrozenSet[ProviderKind]:
        return frozenset({ProviderKind.REMOTE})

    def _normalize(self, config: ProviderConfig) -> ProviderConfig:
        auth = config.auth
        if auth.scheme != AuthScheme.API_KEY:
            raise ValidationError(
                f"OpenRouter provider '{config.name}' requires api_key authentication",
                context={"provider": config.name},
            )
        if not auth.api_key:
            raise ValidationError(
                f"OpenRouter provider '{config.name}' requires an api_key",
                context={"provider": config.name},
            )

        base_url = auth.base_url or DEFAULT_OPENROUTER_URL
        auth = auth.model_copy(update={
            "base_url": base_url,
            "headers": {**self.DEFAULT_HEADERS, **auth.headers},
        })
        return config.model_copy(update={
            "auth": auth,
            "endpoint": config.endpoint or f"{base_url.rstrip('/')}/api/v1",
        })

    def _build(self, config: ProviderConfig) -> ModelProvider:
        return OpenRouterAdapter(
            config,
            settings=self._settings,
            transport=self._transport,
            model_cache_ttl=self._model_cache_ttl,
        )
