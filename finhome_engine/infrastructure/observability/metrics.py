"""Prometheus metrics for recurring runs, rate recommendations and projections"""

from prometheus_client import Counter, Histogram

# Recurring processing
recurring_outcome_counter = Counter(
    "finhome_recurring_items_total",
    "Recurring definitions processed",
    ["outcome"],  # materialized | duplicate | completed | failed
)

recurring_run_duration_histogram = Histogram(
    "finhome_recurring_run_duration_seconds",
    "Duration of a recurring processing run",
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
)

recurring_run_cancelled_counter = Counter(
    "finhome_recurring_runs_cancelled_total",
    "Recurring runs stopped by cancellation",
)

# Rate optimization
rate_recommendation_counter = Counter(
    "finhome_rate_recommendations_total",
    "Rate recommendations issued",
    ["source", "tier"],  # source: catalog | default
)

# Scenario projections
projection_duration_histogram = Histogram(
    "finhome_projection_duration_seconds",
    "Time to project and compare the scenarios of one plan",
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5],
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_recurring_outcome(outcome: str, count: int = 1) -> None:
    if count:
        recurring_outcome_counter.labels(outcome=outcome).inc(count)


def record_rate_recommendation(used_default_rate: bool, tier: str) -> None:
    source = "default" if used_default_rate else "catalog"
    rate_recommendation_counter.labels(source=source, tier=tier).inc()
