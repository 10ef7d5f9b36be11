"""
Deployment strategy configuration as an immutable value.

The router receives one DeploymentConfig per call and never reads a
process-wide toggle, so its behaviour is a function of its inputs.
"""

from pydantic import BaseModel, Field, ConfigDict

from threat_inference.models.enums import DeploymentMode


class DeploymentConfig(BaseModel):
    """
    Which analysis strategy a deployment runs.

    - baseline: single generalist call
    - tiered: classifier + extractor calls in parallel
    - canary: per-call random split between tiered and baseline
    - shadow: baseline returned, tiered run alongside for comparison
    """

    model_config = ConfigDict(frozen=True)

    mode: DeploymentMode = Field(default=DeploymentMode.BASELINE)
    canary_percent: int = Field(
        default=0,
        ge=0,
        le=100,
        description="Share of calls routed to tiered (canary mode only)",
    )
    validation_logging: bool = Field(
        default=False,
        description="Emit baseline/tiered comparison events (shadow mode only)",
    )
