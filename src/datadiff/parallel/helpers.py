"""
Worker estimation and statistics for parallel comparison runs.
"""

import logging
from typing import Any

from prometheus_client import REGISTRY

logger = logging.getLogger(__name__)


def estimate_optimal_workers(
    table_count: int,
    avg_table_time_seconds: float = 60.0,
    total_time_budget_seconds: float = 300.0,
    max_workers: int = 10,
) -> int:
    """
    Estimate the number of workers needed to finish within a time budget.

    Args:
        table_count: Number of tables to compare
        avg_table_time_seconds: Average time per table
        total_time_budget_seconds: Desired total completion time
        max_workers: Upper bound on workers

    Returns:
        Recommended worker count, at least 1 and at most table_count

    Example:
        >>> estimate_optimal_workers(20, 60, 300, 10)
        5
    """
    if table_count <= 0:
        return 1

    total_work_seconds = table_count * avg_table_time_seconds
    workers_needed = int(total_work_seconds / total_time_budget_seconds) + 1
    workers = max(min(workers_needed, max_workers, table_count), 1)

    logger.info(
        f"Estimated optimal workers: {workers} "
        f"(tables={table_count}, avg_time={avg_table_time_seconds}s, "
        f"budget={total_time_budget_seconds}s)"
    )
    return workers


def get_parallel_stats() -> dict[str, Any]:
    """Current values of the parallel run metrics."""

    def processed(status: str) -> float:
        return REGISTRY.get_sample_value("datadiff_parallel_tables_processed_total", {"status": status}) or 0

    return {
        "active_workers": REGISTRY.get_sample_value("datadiff_parallel_active_workers") or 0,
        "queue_size": REGISTRY.get_sample_value("datadiff_parallel_queue_size") or 0,
        "total_processed": {
            status: processed(status) for status in ("success", "failed", "timeout", "cancelled")
        },
    }
