"""
Parallel comparison of many table pairs.
"""

from .helpers import estimate_optimal_workers, get_parallel_stats
from .runner import ConnectionFactory, ParallelDataDiff

__all__ = [
    "ConnectionFactory",
    "ParallelDataDiff",
    "estimate_optimal_workers",
    "get_parallel_stats",
]
