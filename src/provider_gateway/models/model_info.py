"""
Model metadata, capability and health models.
"""

from datetime import datetime, timezone
from typing import Optional
from pydantic import BaseModel, Field


class ModelCapabilities(BaseModel):
    """Advertised capabilities of a single model."""
    streaming: bool = True
    tools: bool = False
    images: bool = False
    code_generation: bool = False
    max_output_tokens: int = Field(default=4096, ge=0)
    context_window_tokens: int = Field(default=4096, ge=0)


class CapabilityRequirements(BaseModel):
    """
    Partial capability thresholds used when selecting a provider.

    Boolean fields only constrain when ``True``; numeric fields require
    the model's value to be at least the given threshold. ``None``
    means no constraint.
    """
    streaming: Optional[bool] = None
    tools: Optional[bool] = None
    images: Optional[bool] = None
    code_generation: Optional[bool] = None
    max_output_tokens: Optional[int] = None
    context_window_tokens: Optional[int] = None

    def is_met_by(self, capabilities: ModelCapabilities) -> bool:
        for key, required in self.model_dump(exclude_none=True).items():
            actual = getattr(capabilities, key)
            if isinstance(required, bool):
                if required and actual is not True:
                    return False
            elif actual < required:
                return False
        return True


class ModelPricing(BaseModel):
    """Token prices, per thousand tokens."""
    input_price_per_k_tokens: float = Field(default=0.0, ge=0)
    output_price_per_k_tokens: float = Field(default=0.0, ge=0)
    currency: str = "USD"


class ModelInfo(BaseModel):
    """Model metadata as exposed by a provider."""
    id: str
    name: str
    description: str = ""
    provider: str
    version: str = "1.0.0"
    capabilities: ModelCapabilities
    pricing: Optional[ModelPricing] = None
    is_local: bool = False


class ProviderHealth(BaseModel):
    """Result of a single health probe. Never cached."""
    healthy: bool
    provider: Optional[str] = None
    latency_ms: Optional[float] = None
    error: Optional[str] = None
    checked_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
