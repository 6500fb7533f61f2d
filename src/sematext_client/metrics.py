"""
Prometheus metrics for the line protocol writer and the bulk log uploader.
Registered on the global REGISTRY at import time.
"""

from prometheus_client import Counter, Histogram


# --- Line protocol ---

LINES_ENCODED_TOTAL = Counter(
    "sematext_lines_encoded_total",
    "Total number of line protocol lines encoded",
)

POINTS_DROPPED_TOTAL = Counter(
    "sematext_points_dropped_total",
    "Points skipped or rejected before reaching the wire",
    ["reason"],
)

TAGS_DROPPED_TOTAL = Counter(
    "sematext_tags_dropped_total",
    "Tags dropped during normalization",
    ["reason"],
)

FIELDS_DROPPED_TOTAL = Counter(
    "sematext_fields_dropped_total",
    "Fields dropped during encoding",
    ["reason"],
)

WRITES_TOTAL = Counter(
    "sematext_writes_total",
    "Line protocol write requests by outcome",
    ["outcome"],
)

WRITE_LATENCY = Histogram(
    "sematext_write_latency_seconds",
    "Line protocol write request latency in seconds",
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10],
)

BYTES_SENT_TOTAL = Counter(
    "sematext_bytes_sent_total",
    "Line protocol payload bytes handed to the transport",
)


# --- Bulk logs ---

BULK_DOCUMENTS_TOTAL = Counter(
    "sematext_bulk_documents_total",
    "Log documents posted in bulk requests",
    ["outcome"],
)

BULK_ITEM_FAILURES_TOTAL = Counter(
    "sematext_bulk_item_failures_total",
    "Log documents rejected by the receiver inside a bulk response",
)


class MetricsRegistry:
    """Centralized access to the client metrics."""

    lines_encoded_total = LINES_ENCODED_TOTAL
    points_dropped_total = POINTS_DROPPED_TOTAL
    tags_dropped_total = TAGS_DROPPED_TOTAL
    fields_dropped_total = FIELDS_DROPPED_TOTAL
    writes_total = WRITES_TOTAL
    write_latency = WRITE_LATENCY
    bytes_sent_total = BYTES_SENT_TOTAL
    bulk_documents_total = BULK_DOCUMENTS_TOTAL
    bulk_item_failures_total = BULK_ITEM_FAILURES_TOTAL


# Singleton instance
metrics_registry = MetricsRegistry()
