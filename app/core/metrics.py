"""
Prometheus metrics for the catalog client and the sync reconciler.

HTTP request metrics come from prometheus-fastapi-instrumentator; the
counters here cover what the instrumentator cannot see: upstream IGDB
traffic, response-cache effectiveness and per-record sync outcomes.
"""
from prometheus_client import Counter, Histogram

# IGDB upstream traffic
igdb_requests_success_total = Counter(
    "igdb_requests_success_total",
    "Total successful IGDB requests",
    ["endpoint"]
)

igdb_requests_failure_total = Counter(
    "igdb_requests_failure_total",
    "Total failed IGDB requests",
    ["endpoint", "error_type"]
)

igdb_token_renewals_total = Counter(
    "igdb_token_renewals_total",
    "Total IGDB access token acquisitions"
)

# Response cache
igdb_cache_hits_total = Counter(
    "igdb_cache_hits_total",
    "IGDB queries served from the response cache",
    ["endpoint"]
)

igdb_cache_misses_total = Counter(
    "igdb_cache_misses_total",
    "IGDB queries that went upstream",
    ["endpoint"]
)

# Sync reconciler
game_sync_records_total = Counter(
    "game_sync_records_total",
    "Catalog records reconciled into the local store",
    ["mode", "outcome"]
)

game_sync_duration_seconds = Histogram(
    "game_sync_duration_seconds",
    "Wall-clock duration of a sync pass",
    ["mode"]
)


def record_igdb_request_success(endpoint: str):
    """Record a successful IGDB request."""
    igdb_requests_success_total.labels(endpoint=endpoint).inc()


def record_igdb_request_failure(endpoint: str, error_type: str = "unknown"):
    """Record a failed IGDB request."""
    igdb_requests_failure_total.labels(endpoint=endpoint, error_type=error_type).inc()


def record_cache_lookup(endpoint: str, hit: bool):
    """Record a response cache hit or miss."""
    if hit:
        igdb_cache_hits_total.labels(endpoint=endpoint).inc()
    else:
        igdb_cache_misses_total.labels(endpoint=endpoint).inc()


def record_sync_outcome(mode: str, outcome: str, count: int = 1):
    """Record reconciled records for a sync pass (outcome: created/updated/failed)."""
    if count:
        game_sync_records_total.labels(mode=mode, outcome=outcome).inc(count)
