"""
Local inference server adapter.

Talks to an OpenAI-compatible server (vLLM, llama.cpp server, LM
Studio) running Qwen-family models on the local machine.
"""

import logging
from typing import AsyncIterator, FrozenSet, List, Optional
from urllib.parse import urlparse

import httpx
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from ..core.cancellation import CancellationToken
from ..core.config import ProviderConfig, ProviderKind
from ..core.errors import ValidationError
from ..core.interface import ModelProvider
from ..core.registry import ProviderFactory
from ..core.result import Result
from ..models.model_info import ModelCapabilities, ModelInfo
from ..models.request import ChatCompletionRequest
from ..models.response import ChatCompletionChunk, ChatCompletionResponse
from ..transport.http_provider import HttpProvider
from ..transport.http_transport import TransportSettings
from .openai_compat import build_chat_payload, translate_chunk, translate_response

logger = logging.getLogger(__name__)


class WireLocalModel(BaseModel):
    id: str
    owned_by: Optional[str] = None


class WireLocalModelList(BaseModel):
    data: List[WireLocalModel]


class LocalInferenceAdapter(HttpProvider):
    """
    Adapter for a local OpenAI-compatible inference server.

    Falls back to a static model list when the server does not expose
    a usable ``/v1/models`` listing.
    """

    MODELS_PATH = "/v1/models"
    CHAT_PATH = "/v1/chat/completions"
    PROBE_PATH = MODELS_PATH

    DEFAULT_MODELS = (
        "qwen3-coder-30b",
        "qwen2.5-coder-32b-instruct",
        "qwen2.5-72b-instruct",
    )

    async def get_models(self) -> Result[List[ModelInfo]]:
        unavailable = self._unavailable()
        if unavailable is not None:
            return unavailable

        result = await self._transport.request("GET", self.MODELS_PATH, use_cache=True)
        model_ids = None
        if result.success:
            try:
                listing = WireLocalModelList.model_validate(result.data.data)
                model_ids = [model.id for model in listing.data]
            except PydanticValidationError as e:
                logger.warning(f"Unreadable model listing from {self.name}, using defaults: {e}")
        else:
            logger.warning(f"Model listing failed for {self.name}, using defaults: {result.error}")

        if model_ids is None:
            model_ids = list(self.DEFAULT_MODELS)

        return Result.ok([self._model_info(model_id) for model_id in model_ids])

    def _model_info(self, model_id: str) -> ModelInfo:
        return ModelInfo(
            id=model_id,
            name=model_id,
            description=f"Local model: {model_id}",
            provider=self.name,
            capabilities=self.infer_capabilities(model_id),
            is_local=True,
        )

    @staticmethod
    def infer_capabilities(model_id: str) -> ModelCapabilities:
        """Capabilities of a Qwen-family model, inferred from its id."""
        capabilities = ModelCapabilities(
            streaming=True,
            tools=True,
            images=False,
            code_generation=True,
            max_output_tokens=8192,
            context_window_tokens=32768,
        )

        if "coder" in model_id:
            return capabilities.model_copy(update={
                "max_output_tokens": 16384,
                "context_window_tokens": 131072,
            })
        if "72b" in model_id:
            return capabilities.model_copy(update={
                "max_output_tokens": 32768,
                "context_window_tokens": 131072,
            })
        return capabilities

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
        return translate_response(result.data.data, self.name)

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
            yield translate_chunk(event.data, self.name)


class LocalProviderFactory(ProviderFactory):
    """Builds LocalInferenceAdapter instances."""

    def __init__(
        self,
        settings: Optional[TransportSettings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._settings = settings
        self._transport = transport

    @property
    def name(self) -> str:
        return "local"

    @property
    def supported_kinds(self) -> FrozenSet[ProviderKind]:
        return frozenset({ProviderKind.LOCAL})

    def _normalize(self, config: ProviderConfig) -> ProviderConfig:
        base_url = config.auth.base_url
        if not base_url:
            raise ValidationError(
                f"Local provider '{config.name}' requires auth.base_url",
                context={"provider": config.name},
            )

        parsed = urlparse(base_url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValidationError(
                f"Invalid base_url for local provider '{config.name}': {base_url}",
                context={"provider": config.name},
            )

        if config.endpoint:
            return config
        return config.model_copy(update={"endpoint": f"{base_url.rstrip('/')}/v1"})

    def _build(self, config: ProviderConfig) -> ModelProvider:
        return LocalInferenceAdapter(config, settings=self._settings, transport=self._transport)
