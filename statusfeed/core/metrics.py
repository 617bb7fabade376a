"""Prometheus metrics for the engagement pipeline."""

from shared.metrics import get_counter, get_gauge, get_histogram

SERVICE = "statusfeed"

# Ingest
INGEST_REQUESTS = get_counter(
    "ingest_requests_total", "Engagement deltas received", SERVICE
)
REQUEST_ERRORS = get_counter(
    "request_errors_total",
    "Requests answered with a failure envelope",
    SERVICE,
    labelnames=("endpoint", "err_code"),
)
INGEST_LATENCY = get_histogram(
    "ingest_latency_seconds", "Time to merge one delta into the cache", SERVICE
)
STAGING_MERGE_CONFLICTS = get_counter(
    "staging_merge_conflicts_total",
    "Optimistic transaction retries caused by concurrent writers",
    SERVICE,
)

# Flush
FLUSH_ATTEMPTS = get_counter(
    "flush_attempts_total",
    "Flush coordinator runs, by terminal state",
    SERVICE,
    labelnames=("state",),
)
FLUSH_RECORDS_WRITTEN = get_counter(
    "flush_records_written_total", "Durable records inserted into the sink", SERVICE
)
FLUSH_SKIPPED_USERS = get_counter(
    "flush_skipped_users_total",
    "Users skipped while draining (missing or malformed staging data)",
    SERVICE,
)
FLUSH_SINK_ERRORS = get_counter(
    "flush_sink_errors_total", "Failed durable sink batch inserts", SERVICE
)
FLUSH_DURATION = get_histogram(
    "flush_duration_seconds",
    "Wall time of flush runs that acquired the lock",
    SERVICE,
    buckets=[1, 5, 15, 60, 300, 900, 3600, 7200],
)
FLUSH_LAST_SUCCESS = get_gauge(
    "flush_last_success_timestamp_seconds",
    "Unix time of the most recent flush run that reached DONE",
    SERVICE,
)
