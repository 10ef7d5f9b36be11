"""
Strategy routing for article analysis.

Components:
- StrategyRouter: maps a DeploymentConfig onto baseline/tiered execution,
  runs shadow comparisons and reports terminal failures
"""

from threat_inference.routing.router import (
    REASON_BASELINE_FAILURE,
    REASON_TIERED_FAILURE,
    REASON_TIMEOUT,
    SHADOW_COMPARISON_EVENT,
    StrategyRouter,
)

__all__ = [
    "StrategyRouter",
    "REASON_BASELINE_FAILURE",
    "REASON_TIERED_FAILURE",
    "REASON_TIMEOUT",
    "SHADOW_COMPARISON_EVENT",
]
