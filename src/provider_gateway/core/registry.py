"""
Provider registry: maps a configuration's name to the factory that can
validate and construct it.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, FrozenSet, List, Mapping, Optional, Tuple, Union

from pydantic import ValidationError as PydanticValidationError

from .config import ProviderConfig, ProviderKind
from .errors import NotFoundError, ProviderError, ValidationError
from .interface import ModelProvider
from .result import Result

logger = logging.getLogger(__name__)

ConfigInput = Union[ProviderConfig, Mapping[str, Any]]


class ProviderFactory(ABC):
    """
    Validates configurations for one backend and builds its providers.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Registry key, e.g. ``"local"``."""
        pass

    @property
    @abstractmethod
    def supported_kinds(self) -> FrozenSet[ProviderKind]:
        pass

    @abstractmethod
    def _normalize(self, config: ProviderConfig) -> ProviderConfig:
        """
        Apply backend rules and defaults.

        Raises:
            ValidationError: If the config is unusable for this backend
        """
        pass

    @abstractmethod
    def _build(self, config: ProviderConfig) -> ModelProvider:
        pass

    def validate_config(self, config: ConfigInput) -> Result[ProviderConfig]:
        """
        Validate a configuration for this backend.

        Args:
            config: ProviderConfig or a raw mapping

        Returns:
            Result wrapping the normalized ProviderConfig
        """
        if not isinstance(config, ProviderConfig):
            try:
                config = ProviderConfig.model_validate(config)
            except PydanticValidationError as e:
                return Result.fail(ValidationError(
                    f"Invalid {self.name} provider configuration",
                    context={"errors": e.errors(include_url=False)},
                    cause=e,
                ))

        if config.kind not in self.supported_kinds:
            kinds = ", ".join(sorted(kind.value for kind in self.supported_kinds))
            return Result.fail(ValidationError(
                f"The {self.name} provider must be of kind {kinds}, got {config.kind.value}",
                context={"provider": config.name},
            ))

        try:
            return Result.ok(self._normalize(config))
        except ValidationError as e:
            return Result.fail(e)

    def create(self, config: ConfigInput) -> Result[ModelProvider]:
        """Validate ``config`` and construct an uninitialized provider."""
        validated = self.validate_config(config)
        if not validated.success:
            return validated

        try:
            provider = self._build(validated.data)
        except Exception as e:
            return Result.fail(ProviderError(
                f"Failed to create provider {validated.data.name}: {e}",
                validated.data.name,
                cause=e,
            ))
        return Result.ok(provider)


class ProviderRegistry:
    """
    Registry of provider factories.

    Resolution is by exact factory name first, then by substring
    heuristics on the configuration name.
    """

    HEURISTICS: Tuple[Tuple[Tuple[str, ...], str], ...] = (
        (("qwen", "local"), "local"),
        (("router",), "openrouter"),
    )

    def __init__(self):
        self._factories: Dict[str, ProviderFactory] = {}

    @classmethod
    def with_defaults(cls, **factory_kwargs) -> "ProviderRegistry":
        """
        Registry with the local and OpenRouter factories registered.

        Args:
            **factory_kwargs: Passed to every factory (``settings``,
                ``transport``)
        """
        from ..adapters import LocalProviderFactory, OpenRouterProviderFactory

        registry = cls()
        registry.register(LocalProviderFactory(**factory_kwargs))
        registry.register(OpenRouterProviderFactory(**factory_kwargs))
        return registry

    def register(self, factory: ProviderFactory) -> None:
        if factory.name in self._factories:
            logger.warning(f"Replacing provider factory: {factory.name}")
        self._factories[factory.name] = factory
        logger.info(f"Registered provider factory: {factory.name}")

    def registered_providers(self) -> List[str]:
        return list(self._factories)

    def resolve(self, name: str) -> Result[ProviderFactory]:
        """
        Find the factory for a configuration name.

        Args:
            name: Configuration name (e.g. ``"qwen-local"``)

        Returns:
            Result wrapping the factory, or NotFoundError
        """
        if name in self._factories:
            return Result.ok(self._factories[name])

        lowered = name.lower()
        for needles, factory_name in self.HEURISTICS:
            if any(needle in lowered for needle in needles) and factory_name in self._factories:
                logger.debug(f"Resolved provider {name} to factory {factory_name}")
                return Result.ok(self._factories[factory_name])

        return Result.fail(NotFoundError(f"No provider factory found for: {name}", resource=name))

    def validate_config(self, config: Any) -> Result[ProviderConfig]:
        """Generic shape check, then delegate to the resolved factory."""
        name = config.name if isinstance(config, ProviderConfig) else (
            config.get("name") if isinstance(config, Mapping) else None
        )
        if not isinstance(name, str) or not name:
            return Result.fail(ValidationError("Provider configuration must be an object with a non-empty name"))

        factory = self.resolve(name)
        if not factory.success:
            return factory
        return factory.data.validate_config(config)

    def create(self, config: ConfigInput) -> Result[ModelProvider]:
        """Resolve, validate and construct a provider for ``config``."""
        validated = self.validate_config(config)
        if not validated.success:
            return validated

        factory = self.resolve(validated.data.name).data
        result = factory.create(validated.data)
        if result.success:
            logger.info(f"Created provider {validated.data.name} via {factory.name} factory")
        return result


# Global registry instance
_registry: Optional[ProviderRegistry] = None


def get_registry() -> ProviderRegistry:
    """Get the global provider registry."""
    global _registry
    if _registry is None:
        _registry = ProviderRegistry.with_defaults()
    return _registry
