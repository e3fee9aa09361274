from __future__ import annotations

import logging

from ..metrics.registry import STORE_OPERATION_LATENCY_SECONDS, STORE_OPERATION_TOTAL

logger = logging.getLogger(__name__)


def observe_store_operation(table: str, op_type: str, status: str, latency_s: float) -> None:
    """
    Record one executed statement. Metric failures are logged, never raised,
    so they cannot mask the outcome of the statement itself.
    """
    try:
        STORE_OPERATION_TOTAL.labels(table=table, op_type=op_type, status=status).inc()
        STORE_OPERATION_LATENCY_SECONDS.labels(table=table, op_type=op_type).observe(latency_s)
    except Exception:
        logger.debug("Failed to record store metrics for %s/%s", table, op_type, exc_info=True)
