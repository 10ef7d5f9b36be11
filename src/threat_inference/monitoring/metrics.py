"""Custom Prometheus metrics for the threat inference router.

These metrics are exposed at the /metrics endpoint and should be scraped by
Prometheus. Alert rules should be configured for:
- analysis_failures_total (rising failure rate means articles pile up unanalyzed)
- budget_percent_used (approaching the daily compute limit)
- observability_events_dropped_total (event sink cannot keep up)
"""

from prometheus_client import Counter, Gauge, Histogram

# === Strategy Metrics ===

strategy_executions_total = Counter(
    "strategy_executions_total",
    "Analysis strategy executions by strategy, configured mode and outcome",
    ["strategy", "mode", "success"],
)
"""
Labels:
- strategy: baseline, tiered (the path actually executed)
- mode: baseline, tiered, canary, shadow (the configured deployment mode)
- success: true, false

Used to verify canary split ratios and compare failure rates per strategy.
"""

analysis_failures_total = Counter(
    "analysis_failures_total",
    "Terminal analysis failures by reason",
    ["reason"],
)
"""
Labels:
- reason: baseline_analysis_failure, tiered_analysis_failure, analysis_timeout

Alert thresholds:
- WARN: failure rate > 5% of analyses
- CRITICAL: failure rate > 20% of analyses
"""

shadow_disagreements_total = Counter(
    "shadow_disagreements_total",
    "Fields on which shadow tiered results disagreed with baseline",
    ["field"],
)

# === Decoding Metrics ===

decode_failures_total = Counter(
    "decode_failures_total",
    "Replies that no decode attempt could turn into structure",
    ["reply_type"],
)
"""
Labels:
- reply_type: Python type name of the undecodable reply (str, dict, NoneType, ...)
"""

decode_attempts_total = Counter(
    "decode_attempts_total",
    "Successful decodes by the attempt that produced them",
    ["attempt"],
)
"""
Labels:
- attempt: typed_object, json_string, brace_extraction, raw_object

A growing share of brace_extraction means a model is wrapping JSON in prose.
"""

# === Inference Performance Metrics ===

inference_latency_seconds = Histogram(
    "inference_latency_seconds",
    "Inference call latency in seconds",
    ["model", "success"],
    buckets=[0.25, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0],
)

inference_tokens_total = Counter(
    "inference_tokens_total",
    "Total tokens consumed by model tier and type",
    ["model", "token_type"],
)
"""
Labels:
- model: tier key (e.g. llama-70b, qwen-30b, bge-m3)
- token_type: input, output
"""

# === Budget Metrics ===

budget_units_used = Gauge(
    "budget_units_used",
    "Compute units charged today",
)

budget_percent_used = Gauge(
    "budget_percent_used",
    "Share of the daily compute limit used today (percent)",
)
"""
Alert thresholds mirror the governor status:
- WARN: >= 80
- CRITICAL: >= 95
"""

# === Observability Pipeline Metrics ===

observability_events_total = Counter(
    "observability_events_total",
    "Observability events delivered to the sink by event name",
    ["event"],
)

observability_events_dropped_total = Counter(
    "observability_events_dropped_total",
    "Observability events dropped because the queue was full",
)
