"""
Backend adapters for the provider gateway.
"""

from .local_adapter import LocalInferenceAdapter, LocalProviderFactory
from .openrouter_adapter import OpenRouterAdapter, OpenRouterProviderFactory

__all__ = [
    "LocalInferenceAdapter",
    "LocalProviderFactory",
    "OpenRouterAdapter",
    "OpenRouterProviderFactory",
]
