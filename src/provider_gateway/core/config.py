"""
Configuration models and loading for the provider gateway.
"""

import os
import logging
from enum import Enum
from typing import Dict, List, Any, Optional
from dataclasses import dataclass, field
from pathlib import Path

import yaml
from pydantic import AliasChoices, BaseModel, Field

logger = logging.getLogger(__name__)


class ProviderKind(str, Enum):
    """Where a provider's backend runs."""
    LOCAL = "local"
    REMOTE = "remote"


class AuthScheme(str, Enum):
    """How requests to a backend are authenticated."""
    API_KEY = "api_key"
    OAUTH = "oauth"
    NONE = "none"


class ProviderAuth(BaseModel):
    """Authentication and addressing for a backend."""
    scheme: AuthScheme = Field(
        default=AuthScheme.NONE,
        validation_alias=AliasChoices("scheme", "type"),
    )
    api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("api_key", "apiKey"),
    )
    base_url: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("base_url", "baseUrl"),
    )
    headers: Dict[str, str] = Field(default_factory=dict)

    class Config:
        frozen = True


class ProviderConfig(BaseModel):
    """
    Configuration for a single provider instance.

    Immutable once handed to a provider. Lower ``priority`` values are
    preferred.
    """
    name: str = Field(..., min_length=1)
    kind: ProviderKind = Field(..., validation_alias=AliasChoices("kind", "type"))
    priority: int = Field(default=0, ge=0)
    enabled: bool = True
    auth: ProviderAuth = Field(default_factory=ProviderAuth)
    models: List[str] = Field(default_factory=list)
    endpoint: Optional[str] = None
    timeout_ms: Optional[int] = Field(
        default=None,
        gt=0,
        validation_alias=AliasChoices("timeout_ms", "timeoutMs", "timeout"),
    )
    max_retries: Optional[int] = Field(
        default=None,
        ge=0,
        validation_alias=AliasChoices("max_retries", "maxRetries", "retries"),
    )

    class Config:
        frozen = True


@dataclass
class GatewayConfig:
    """Complete gateway configuration."""
    providers: List[ProviderConfig] = field(default_factory=list)
    default_strategy: str = "first-available"


DEFAULT_LOCAL_URL = "http://localhost:8000"
DEFAULT_OPENROUTER_URL = "https://openrouter.ai"

CONFIG_PATHS = [
    Path("gateway.yaml"),
    Path.home() / ".config/provider-gateway/gateway.yaml",
]


def load_config(config_path: Optional[str] = None) -> GatewayConfig:
    """
    Load gateway configuration from YAML file.

    Args:
        config_path: Path to config file. If None, uses default location.

    Returns:
        Loaded configuration
    """
    if config_path is None:
        for p in CONFIG_PATHS:
            if p.exists():
                config_path = str(p)
                break

    if config_path is None or not Path(config_path).exists():
        logger.warning("No gateway config file found, using defaults")
        return default_config()

    try:
        with open(config_path, 'r') as f:
            data = yaml.safe_load(f) or {}

        return parse_config(data)

    except Exception as e:
        logger.error(f"Failed to load config from {config_path}: {e}")
        return default_config()


def parse_config(data: Dict[str, Any]) -> GatewayConfig:
    """Parse a configuration dictionary."""
    providers = []

    for provider_data in data.get("providers", []):
        provider_data = dict(provider_data)
        auth = dict(provider_data.get("auth") or {})
        provider_data["auth"] = {key: _expand_env(value) for key, value in auth.items()}
        providers.append(ProviderConfig.model_validate(provider_data))

    return GatewayConfig(
        providers=providers,
        default_strategy=data.get("default_strategy", "first-available"),
    )


def _expand_env(value: Any) -> Any:
    """Expand a ``${VAR}`` string from the environment."""
    if isinstance(value, str) and value.startswith("${") and value.endswith("}"):
        return os.environ.get(value[2:-1], "")
    if isinstance(value, dict):
        return {k: _expand_env(v) for k, v in value.items()}
    return value


def default_local_provider() -> ProviderConfig:
    base_url = os.environ.get("LOCAL_LLM_URL", DEFAULT_LOCAL_URL)
    return ProviderConfig(
        name="qwen-local",
        kind=ProviderKind.LOCAL,
        priority=1,
        enabled=True,
        auth=ProviderAuth(scheme=AuthScheme.NONE, base_url=base_url),
        models=["qwen3-coder-30b"],
        endpoint=f"{base_url}/v1",
        timeout_ms=60000,  # local models are slow to load
        max_retries=2,
    )


def default_openrouter_provider() -> ProviderConfig:
    return ProviderConfig(
        name="openrouter",
        kind=ProviderKind.REMOTE,
        priority=2,
        enabled=True,
        auth=ProviderAuth(
            scheme=AuthScheme.API_KEY,
            api_key=os.environ.get("OPENROUTER_API_KEY"),
            base_url=DEFAULT_OPENROUTER_URL,
        ),
        models=[
            "openai/gpt-4o-mini",
            "anthropic/claude-3-haiku",
            "qwen/qwen-2.5-coder-32b-instruct",
            "deepseek/deepseek-coder",
            "meta-llama/llama-3.1-8b-instruct:free",
        ],
        endpoint=f"{DEFAULT_OPENROUTER_URL}/api/v1",
        timeout_ms=30000,
        max_retries=3,
    )


def default_config() -> GatewayConfig:
    """Return default configuration."""
    return GatewayConfig(
        providers=[default_local_provider(), default_openrouter_provider()],
        default_strategy="first-available",
    )
