"""Monitoring and metrics instrumentation for the threat inference router.

Exports custom Prometheus metrics for operational monitoring and alerting.
"""

from threat_inference.monitoring.metrics import (
    analysis_failures_total,
    budget_percent_used,
    budget_units_used,
    decode_attempts_total,
    decode_failures_total,
    inference_latency_seconds,
    inference_tokens_total,
    observability_events_dropped_total,
    observability_events_total,
    shadow_disagreements_total,
    strategy_executions_total,
)

__all__ = [
    "strategy_executions_total",
    "analysis_failures_total",
    "shadow_disagreements_total",
    "decode_failures_total",
    "decode_attempts_total",
    "inference_latency_seconds",
    "inference_tokens_total",
    "budget_units_used",
    "budget_percent_used",
    "observability_events_total",
    "observability_events_dropped_total",
]
