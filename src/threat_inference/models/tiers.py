"""
Model tiers and the catalog of tiers the router dispatches to.

A tier is one priced inference target. The catalog assigns tiers to the
roles used by the analysis strategies and doubles as the price table read
by the budget governor.
"""

from typing import Optional
from pydantic import BaseModel, Field, ConfigDict

from threat_inference.models.enums import OutputShape


class ModelTier(BaseModel):
    """
    One configured inference target.

    `key` is the stable identifier used for pricing and usage breakdowns;
    `endpoint` is the remote model path and may change between deployments
    without affecting accounting.
    """

    model_config = ConfigDict(frozen=True)

    key: str = Field(..., description="Stable tier identifier (e.g. 'qwen-30b')")
    endpoint: str = Field(..., description="Remote model path (e.g. '@cf/qwen/qwen3-30b-a3b-fp8')")
    cost_in_per_million: float = Field(..., ge=0.0, description="Compute units per 1M input tokens")
    cost_out_per_million: Optional[float] = Field(
        default=None,
        ge=0.0,
        description="Compute units per 1M output tokens (None for embedding-only tiers)",
    )
    output_shape: OutputShape = Field(..., description="What the tier returns")
    dimensions: Optional[int] = Field(default=None, ge=1, description="Vector length for embedding tiers")


class ModelCatalog(BaseModel):
    """Tier assignment for every role the router and facade use."""

    model_config = ConfigDict(frozen=True)

    generalist: ModelTier = Field(..., description="Large tier for single-call baseline analysis")
    classifier: ModelTier = Field(..., description="Small tier for category/severity/tldr")
    extractor: ModelTier = Field(..., description="Mid-size tier for key points and IOCs")
    embedding: ModelTier = Field(..., description="Embedding tier for non-baseline modes")
    embedding_baseline: ModelTier = Field(..., description="Embedding tier for baseline mode")
    extra_tiers: list[ModelTier] = Field(
        default_factory=list,
        description="Priced tiers that are not assigned to a role",
    )

    def price_table(self) -> dict[str, ModelTier]:
        """All known tiers keyed by their stable identifier."""
        tiers = [
            self.generalist,
            self.classifier,
            self.extractor,
            self.embedding,
            self.embedding_baseline,
            *self.extra_tiers,
        ]
        return {tier.key: tier for tier in tiers}
