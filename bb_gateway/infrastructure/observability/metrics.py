"""Prometheus metrics for token renewals, upstream latency and mTLS state"""

from prometheus_client import Counter, Histogram, Gauge

# Token cache metrics
token_renewal_counter = Counter(
    "bb_token_renewals_total",
    "OAuth token renewals against the issuer",
    ["outcome"],  # success | failure
)

token_cache_hit_counter = Counter(
    "bb_token_cache_hits_total",
    "Token requests served from the cache",
)

# Upstream (issuer + statement API) metrics
upstream_latency_histogram = Histogram(
    "bb_upstream_request_duration_seconds",
    "Outbound request latency to the bank",
    ["target", "status"],
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
)

upstream_failure_counter = Counter(
    "bb_upstream_failures_total",
    "Failed outbound calls to the bank",
    ["kind"],  # transport | malformed | upstream
)

# mTLS
mtls_identity_gauge = Gauge(
    "bb_mtls_identity_loaded",
    "1 when a client certificate is loaded, 0 when running without mTLS",
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_upstream_failure(kind: str) -> None:
    upstream_failure_counter.labels(kind=kind).inc()
