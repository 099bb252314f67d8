"""
Prometheus metrics for comparison runs.

Usage:
    from datadiff.utils.metrics import MetricsPublisher

    MetricsPublisher(port=9108).start()   # expose /metrics
"""

import logging
from typing import Callable, TypeVar

from prometheus_client import REGISTRY, CollectorRegistry

logger = logging.getLogger(__name__)

T = TypeVar("T")


def get_or_create_metric(
    metric_factory: Callable[[], T],
    metric_name: str,
    registry: CollectorRegistry = REGISTRY,
) -> T:
    """
    Create a metric, or return the already registered one.

    Modules defining metrics may be imported more than once (tests reload
    them), and prometheus_client refuses duplicate registration.

    Args:
        metric_factory: Callable creating the metric
        metric_name: Registered name to look up on a duplicate
        registry: Registry the metric lives in

    Returns:
        The metric instance
    """
    try:
        return metric_factory()
    except ValueError:
        existing = registry._names_to_collectors.get(metric_name)
        if existing is not None:
            return existing
        raise


from .diff import DIFF_METRICS, DiffMetrics  # noqa: E402
from .publisher import MetricsPublisher  # noqa: E402

__all__ = [
    "DIFF_METRICS",
    "DiffMetrics",
    "MetricsPublisher",
    "get_or_create_metric",
]
