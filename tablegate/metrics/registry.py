from __future__ import annotations

from prometheus_client import Counter, Histogram

STORE_OPERATION_TOTAL = Counter(
    "tablegate_store_operation_total",
    "Statements executed against the store",
    ["table", "op_type", "status"],
)

STORE_OPERATION_LATENCY_SECONDS = Histogram(
    "tablegate_store_operation_latency_seconds",
    "Latency of statements executed against the store",
    ["table", "op_type"],
)

HTTP_REQUEST_TOTAL = Counter(
    "tablegate_http_request_total",
    "Completed HTTP requests",
    ["method", "status"],
)
