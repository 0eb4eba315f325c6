"""Prometheus metrics for logrecon."""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# Remote call metrics
remote_operations_total = Counter(
    "logrecon_remote_operations_total",
    "Remote control-plane operations by final outcome",
    ["operation", "outcome"],
)

remote_retries_total = Counter(
    "logrecon_remote_retries_total",
    "Failed remote attempts that were retried",
    ["operation"],
)

# Existence cache metrics
cache_lookups_total = Counter(
    "logrecon_cache_lookups_total",
    "Existence cache lookups",
    ["kind", "result"],
)

cache_entries = Gauge(
    "logrecon_cache_entries",
    "Number of existence cache entries (including expired ones)",
    ["kind"],
)

# Reconciliation metrics
reconciliations_total = Counter(
    "logrecon_reconciliations_total",
    "Reconciliation passes by outcome",
    ["outcome"],
)

reconcile_duration_seconds = Histogram(
    "logrecon_reconcile_duration_seconds",
    "Duration of one reconciliation pass in seconds",
    buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0),
)

config_actions_total = Counter(
    "logrecon_config_actions_total",
    "Config reconciliation actions",
    ["action"],
)

config_fetch_uncertain_total = Counter(
    "logrecon_config_fetch_uncertain_total",
    "Config fetches that failed for reasons other than not-found",
)

# Notification metrics
notifications_total = Counter(
    "logrecon_notifications_total",
    "Notifications delivered per channel",
    ["channel", "success"],
)
