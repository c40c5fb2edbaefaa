"""Prometheus metric definitions for the scheduling core."""

from __future__ import annotations

from prometheus_client import Counter

# --- Lifecycle ---

status_transitions_total = Counter(
    "studyslot_status_transitions_total",
    "Experiment status transitions applied",
    labelnames=["from_status", "to_status"],
)

# --- Registration ---

registrations_total = Counter(
    "studyslot_registrations_total",
    "Registration attempts by outcome (registered, cancelled, or the rejecting error kind)",
    labelnames=["outcome"],
)

# --- Store ---

store_conflicts_total = Counter(
    "studyslot_store_conflicts_total",
    "Conditional updates that lost their version check and were retried",
)

# --- Retry ---

retry_attempts_total = Counter(
    "studyslot_retry_attempts_total",
    "Total retry attempts",
    labelnames=["fn_name"],
)

retry_exhausted_total = Counter(
    "studyslot_retry_exhausted_total",
    "Total times retries were exhausted",
    labelnames=["fn_name"],
)

# --- User cache ---

user_cache_lookups_total = Counter(
    "studyslot_user_cache_lookups_total",
    "User directory lookups by cache result (hit, miss)",
    labelnames=["result"],
)
