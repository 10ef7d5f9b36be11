"""
Observability event model.

Mirrors the analytics data point shape: string tags, numeric metrics and
one partition key used for sampling.
"""

from pydantic import BaseModel, Field, ConfigDict


class ObservabilityEvent(BaseModel):
    """One fire-and-forget analytics data point."""

    model_config = ConfigDict(frozen=True)

    tags: list[str] = Field(default_factory=list, description="Event name first, then context labels")
    metrics: list[float] = Field(default_factory=list, description="Numeric measurements")
    partition_key: str = Field(default="", description="Sampling/partitioning key (usually article id)")

    @property
    def name(self) -> str:
        return self.tags[0] if self.tags else ""
