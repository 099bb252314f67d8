"""
Counters and histograms describing comparison runs.
"""

from prometheus_client import Counter, Histogram

from . import get_or_create_metric


class DiffMetrics:
    """Metric handles shared by all runs in the process."""

    def __init__(self):
        self.rows_compared = get_or_create_metric(
            lambda: Counter(
                "datadiff_rows_compared_total",
                "Reference rows compared against the target",
                ["table"],
            ),
            "datadiff_rows_compared",
        )
        self.fragments = get_or_create_metric(
            lambda: Counter(
                "datadiff_fragments_total",
                "Migration fragments generated",
                ["table", "kind"],
            ),
            "datadiff_fragments",
        )
        self.rows_deleted = get_or_create_metric(
            lambda: Counter(
                "datadiff_rows_deleted_total",
                "Target rows without a reference counterpart",
                ["table"],
            ),
            "datadiff_rows_deleted",
        )
        self.chunk_fetch_seconds = get_or_create_metric(
            lambda: Histogram(
                "datadiff_chunk_fetch_seconds",
                "Time to fetch the counterpart rows of one chunk",
                ["table"],
                buckets=(0.005, 0.01, 0.05, 0.1, 0.5, 1, 5, 10, 30),
            ),
            "datadiff_chunk_fetch_seconds",
        )
        self.run_seconds = get_or_create_metric(
            lambda: Histogram(
                "datadiff_run_seconds",
                "Duration of one table comparison",
                ["table", "operation"],
                buckets=(0.1, 0.5, 1, 5, 10, 30, 60, 300, 900, 3600),
            ),
            "datadiff_run_seconds",
        )

    def record_fragment(self, table: str, kind: str) -> None:
        self.fragments.labels(table=table, kind=kind).inc()


DIFF_METRICS = DiffMetrics()
