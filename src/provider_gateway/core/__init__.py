"""
Core provider gateway components.
"""

from .base_provider import BaseProvider, ProviderState
from .cancellation import CancellationToken, iterate_cancellable, run_cancellable
from .config import (
    AuthScheme,
    GatewayConfig,
    ProviderAuth,
    ProviderConfig,
    ProviderKind,
    default_config,
    load_config,
    parse_config,
)
from .errors import (
    CancellationError,
    ErrorCode,
    GatewayError,
    GatewayTimeoutError,
    NotFoundError,
    ProviderAuthError,
    ProviderError,
    ProviderInvalidResponseError,
    ProviderQuotaError,
    ProviderRateLimitError,
    ProviderUnavailableError,
    ValidationError,
)
from .interface import ModelProvider, SelectionStrategy
from .manager import ProviderManager
from .registry import ProviderFactory, ProviderRegistry, get_registry
from .result import Result

__all__ = [
    "BaseProvider",
    "ProviderState",
    "CancellationToken",
    "iterate_cancellable",
    "run_cancellable",
    "AuthScheme",
    "GatewayConfig",
    "ProviderAuth",
    "ProviderConfig",
    "ProviderKind",
    "default_config",
    "load_config",
    "parse_config",
    "CancellationError",
    "ErrorCode",
    "GatewayError",
    "GatewayTimeoutError",
    "NotFoundError",
    "ProviderAuthError",
    "ProviderError",
    "ProviderInvalidResponseError",
    "ProviderQuotaError",
    "ProviderRateLimitError",
    "ProviderUnavailableError",
    "ValidationError",
    "ModelProvider",
    "SelectionStrategy",
    "ProviderManager",
    "ProviderFactory",
    "ProviderRegistry",
    "get_registry",
    "Result",
]
