"""
Provider manager.

Owns the live provider set: builds providers through the registry,
initializes them best-effort, aggregates health and picks one provider
per call according to a selection strategy.
"""

import asyncio
import logging
import math
import random
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from opentelemetry import trace
from pydantic import ValidationError as PydanticValidationError

from .config import GatewayConfig, ProviderConfig
from .errors import NotFoundError, ProviderError, ProviderUnavailableError, ValidationError
from .interface import ModelProvider, SelectionStrategy
from .registry import ProviderRegistry, get_registry
from .result import Result
from ..models.model_info import CapabilityRequirements, ModelCapabilities, ModelInfo, ProviderHealth

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

Requirements = Union[CapabilityRequirements, Mapping[str, Any]]


def capability_score(capabilities: ModelCapabilities) -> float:
    """One point per boolean capability plus log10 of each numeric limit."""
    score = float(sum((
        capabilities.tools,
        capabilities.images,
        capabilities.code_generation,
        capabilities.streaming,
    )))
    for limit in (capabilities.context_window_tokens, capabilities.max_output_tokens):
        if limit > 0:
            score += math.log10(limit)
    return score


class ProviderManager:
    """
    Orchestrates provider lifecycle and selection.

    Not re-entrant: ``initialize()`` and ``dispose()`` must complete
    before other calls overlap them.
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        configs: Sequence[ProviderConfig],
        default_strategy: Union[SelectionStrategy, str] = SelectionStrategy.FIRST_AVAILABLE,
        rng: Optional[random.Random] = None,
    ):
        """
        Initialize the manager.

        Args:
            registry: Registry used to construct providers
            configs: Provider configurations, in initialization order
            default_strategy: Strategy used when none is passed
            rng: Random source for the ``random`` strategy
        """
        self._registry = registry
        self._provider_configs = list(configs)
        self._default_strategy = default_strategy
        self._rng = rng or random.Random()
        self._providers: Dict[str, ModelProvider] = {}
        self._configs: Dict[str, ProviderConfig] = {}
        self._initialized = False

    @classmethod
    def from_config(
        cls,
        config: GatewayConfig,
        registry: Optional[ProviderRegistry] = None,
    ) -> "ProviderManager":
        return cls(
            registry or get_registry(),
            config.providers,
            default_strategy=config.default_strategy,
        )

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    async def initialize(self) -> Result[None]:
        """
        Build and initialize every enabled provider, in declared order.

        Succeeds if at least one provider becomes available. Only a
        successful run is memoized; a failed run may be retried.
        """
        if self._initialized:
            return Result.ok()

        errors: List[Exception] = []
        seen = set()

        for config in self._provider_configs:
            if not config.enabled:
                logger.debug(f"Skipping disabled provider {config.name}")
                continue

            if config.name in seen:
                error = ValidationError(
                    f"Duplicate provider name: {config.name}",
                    context={"provider": config.name},
                )
                logger.warning(error.message)
                errors.append(error)
                continue
            seen.add(config.name)

            created = self._registry.create(config)
            if not created.success:
                logger.warning(f"Could not create provider {config.name}: {created.error}")
                errors.append(created.error)
                continue

            provider = created.data
            try:
                initialized = await provider.initialize()
            except Exception as e:
                initialized = Result.fail(ProviderError(
                    f"Failed to initialize provider {config.name}: {e}",
                    config.name,
                    cause=e,
                ))

            if initialized.success:
                self._providers[config.name] = provider
                self._configs[config.name] = config
            else:
                logger.warning(f"Provider {config.name} failed to initialize: {initialized.error}")
                errors.append(initialized.error)
                await provider.dispose()

        if not self._providers:
            if errors:
                reason = "Failed to initialize any providers. Errors: " + "; ".join(str(e) for e in errors)
            else:
                reason = "No enabled providers configured"
            return Result.fail(ProviderUnavailableError("all", reason))

        self._initialized = True
        logger.info(f"Provider manager initialized with {len(self._providers)} provider(s): "
                    f"{', '.join(self._providers)}")
        return Result.ok()

    def get_available_providers(self) -> List[ModelProvider]:
        return [p for p in self._providers.values() if p.is_available]

    def get_provider(self, name: str) -> Result[ModelProvider]:
        provider = self._providers.get(name)
        if provider is None:
            return Result.fail(NotFoundError(f"Provider not found: {name}", resource=name))
        return Result.ok(provider)

    async def get_best_provider(
        self,
        strategy: Optional[Union[SelectionStrategy, str]] = None,
        requirements: Optional[Requirements] = None,
    ) -> Result[ModelProvider]:
        """
        Select one available provider.

        Args:
            strategy: Selection strategy (defaults to the manager's)
            requirements: Capability thresholds at least one of the
                provider's models must meet

        Returns:
            Result wrapping the selected provider
        """
        try:
            strategy = SelectionStrategy(strategy or self._default_strategy)
        except ValueError:
            return Result.fail(ValidationError(
                f"Unknown selection strategy: {strategy}",
                context={"allowed": [s.value for s in SelectionStrategy]},
            ))

        if requirements is not None and not isinstance(requirements, CapabilityRequirements):
            try:
                requirements = CapabilityRequirements.model_validate(requirements)
            except PydanticValidationError as e:
                return Result.fail(ValidationError("Invalid capability requirements", cause=e))

        if not self._initialized:
            return Result.fail(ProviderUnavailableError("all", "Provider manager not initialized"))

        with tracer.start_as_current_span("get_best_provider") as span:
            span.set_attribute("strategy", strategy.value)

            candidates = self.get_available_providers()
            if not candidates:
                return Result.fail(NotFoundError("No available providers"))

            if requirements is not None:
                candidates = await self._filter_by_requirements(candidates, requirements)
                if not candidates:
                    return Result.fail(NotFoundError("No providers meet the specified requirements"))

            span.set_attribute("candidates", len(candidates))
            selected = await self._select(strategy, candidates)
            span.set_attribute("selected", selected.name)

        logger.debug(f"Selected provider {selected.name} using {strategy.value} "
                     f"from {len(candidates)} candidate(s)")
        return Result.ok(selected)

    async def _list_models(self, provider: ModelProvider) -> Optional[List[ModelInfo]]:
        """Models of ``provider``, or None if listing failed."""
        try:
            result = await provider.get_models()
        except Exception as e:
            logger.warning(f"Model listing raised for {provider.name}: {e}")
            return None
        if not result.success:
            logger.debug(f"Model listing failed for {provider.name}: {result.error}")
            return None
        return result.data

    async def _filter_by_requirements(
        self,
        providers: List[ModelProvider],
        requirements: CapabilityRequirements,
    ) -> List[ModelProvider]:
        filtered = []
        for provider in providers:
            models = await self._list_models(provider)
            if models is None:
                continue
            if any(requirements.is_met_by(model.capabilities) for model in models):
                filtered.append(provider)
        return filtered

    async def _select(self, strategy: SelectionStrategy, candidates: List[ModelProvider]) -> ModelProvider:
        if strategy == SelectionStrategy.FASTEST:
            return await self._select_fastest(candidates)
        if strategy == SelectionStrategy.CHEAPEST:
            return await self._select_cheapest(candidates)
        if strategy == SelectionStrategy.MOST_CAPABLE:
            return await self._select_most_capable(candidates)
        if strategy == SelectionStrategy.RANDOM:
            return self._rng.choice(candidates)
        return self._select_first_available(candidates)

    def _select_first_available(self, candidates: List[ModelProvider]) -> ModelProvider:
        # sorted() is stable, so equal priorities keep declared order
        return sorted(candidates, key=lambda p: self._configs[p.name].priority)[0]

    async def _select_fastest(self, candidates: List[ModelProvider]) -> ModelProvider:
        health = await asyncio.gather(*(self._safe_health(p) for p in candidates))
        measured = [
            (h.latency_ms, provider)
            for provider, h in zip(candidates, health)
            if h.healthy and h.latency_ms is not None
        ]
        if not measured:
            return candidates[0]
        return min(measured, key=lambda item: item[0])[1]

    async def _select_cheapest(self, candidates: List[ModelProvider]) -> ModelProvider:
        best, lowest = candidates[0], math.inf
        for provider in candidates:
            models = await self._list_models(provider)
            if not models:
                continue
            total = sum(
                m.pricing.input_price_per_k_tokens + m.pricing.output_price_per_k_tokens
                for m in models
                if m.pricing is not None
            )
            average = total / len(models)
            if average < lowest:
                best, lowest = provider, average
        return best

    async def _select_most_capable(self, candidates: List[ModelProvider]) -> ModelProvider:
        best, highest = candidates[0], -math.inf
        for provider in candidates:
            models = await self._list_models(provider)
            if models is None:
                continue
            score = sum(capability_score(m.capabilities) for m in models)
            if score > highest:
                best, highest = provider, score
        return best

    async def _safe_health(self, provider: ModelProvider) -> ProviderHealth:
        try:
            return await provider.check_health()
        except Exception as e:
            return ProviderHealth(healthy=False, provider=provider.name, error=str(e) or type(e).__name__)

    async def health_check(self) -> List[ProviderHealth]:
        """Probe every live provider concurrently, in insertion order."""
        return list(await asyncio.gather(*(self._safe_health(p) for p in self._providers.values())))

    async def dispose(self) -> None:
        """Dispose every provider and reset so the manager can be reused."""
        providers = list(self._providers.values())
        results = await asyncio.gather(*(p.dispose() for p in providers), return_exceptions=True)
        for provider, outcome in zip(providers, results):
            if isinstance(outcome, Exception):
                logger.warning(f"Error disposing provider {provider.name}: {outcome}")

        self._providers.clear()
        self._configs.clear()
        self._initialized = False
        logger.info("Provider manager disposed")
