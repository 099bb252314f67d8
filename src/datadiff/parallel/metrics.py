"""
Prometheus metrics for parallel table comparisons.
"""

from prometheus_client import Counter, Gauge, Histogram

from ..utils.metrics import get_or_create_metric

PARALLEL_TABLES_PROCESSED = get_or_create_metric(
    lambda: Counter(
        "datadiff_parallel_tables_processed_total",
        "Tables processed by parallel comparison runs",
        ["status"],  # success, failed, timeout, cancelled
    ),
    "datadiff_parallel_tables_processed",
)

PARALLEL_RUN_TIME = get_or_create_metric(
    lambda: Histogram(
        "datadiff_parallel_run_seconds",
        "Total time of a parallel comparison run",
        ["worker_count"],
        buckets=[1, 5, 10, 30, 60, 120, 300, 600, 1800, 3600],
    ),
    "datadiff_parallel_run_seconds",
)

PARALLEL_TABLE_TIME = get_or_create_metric(
    lambda: Histogram(
        "datadiff_parallel_table_seconds",
        "Time to compare one table in a parallel run",
        ["table"],
        buckets=[0.1, 0.5, 1, 5, 10, 30, 60, 120, 300, 600],
    ),
    "datadiff_parallel_table_seconds",
)

PARALLEL_ACTIVE_WORKERS = get_or_create_metric(
    lambda: Gauge("datadiff_parallel_active_workers", "Worker threads comparing tables"),
    "datadiff_parallel_active_workers",
)

PARALLEL_QUEUE_SIZE = get_or_create_metric(
    lambda: Gauge("datadiff_parallel_queue_size", "Tables waiting to be compared"),
    "datadiff_parallel_queue_size",
)
