"""
Parallel table comparison.

ParallelDataDiff compares several table pairs concurrently. Every worker
opens its own reference and target connection through a factory, so no
connection is ever shared between threads.
"""

import logging
import threading
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from opentelemetry import trace

from ..config import DiffConfig
from ..connection.wrapper import DbConnection
from ..errors import CancellationError
from ..script import TablePair, TableScriptResult, diff_table_pair
from ..utils.tracing import trace_operation
from .metrics import (
    PARALLEL_ACTIVE_WORKERS,
    PARALLEL_QUEUE_SIZE,
    PARALLEL_RUN_TIME,
    PARALLEL_TABLE_TIME,
    PARALLEL_TABLES_PROCESSED,
)

logger = logging.getLogger(__name__)

ConnectionFactory = Callable[[], tuple[DbConnection, DbConnection]]


class ParallelDataDiff:
    """
    Runs table comparisons on a thread pool.

    A table that runs longer than ``timeout_per_table`` has its
    cancellation token set; the comparison stops at its next progress
    report and is counted as a timeout.

    Args:
        max_workers: Maximum concurrent workers
        timeout_per_table: Seconds before a table comparison is cancelled
        fail_fast: Cancel all remaining tables after the first failure
    """

    def __init__(
        self,
        max_workers: int = 4,
        timeout_per_table: float = 3600,
        fail_fast: bool = False,
    ):
        self.max_workers = max_workers
        self.timeout_per_table = timeout_per_table
        self.fail_fast = fail_fast
        self._metrics_lock = threading.Lock()
        self._cancellation_tokens: dict[TablePair, threading.Event] = {}
        self._timed_out: set[TablePair] = set()
        self.script_results: list[TableScriptResult] = []

        logger.info(
            f"ParallelDataDiff initialized: max_workers={max_workers}, "
            f"timeout_per_table={timeout_per_table}s, fail_fast={fail_fast}"
        )

    def cancel(self) -> None:
        """Signal every running and queued table to stop."""
        for token in self._cancellation_tokens.values():
            token.set()

    def run(
        self,
        pairs: list[TablePair],
        connection_factory: ConnectionFactory,
        config: DiffConfig,
        output_dir: Path | str,
        include_deletes: bool = True,
    ) -> dict[str, Any]:
        """
        Compare table pairs in parallel and write their scripts.

        Args:
            pairs: Table pairs to compare
            connection_factory: Returns a new (reference, target) connection pair
            config: Run configuration shared by all workers
            output_dir: Directory receiving the scripts
            include_deletes: Also generate DELETE scripts

        Returns:
            Dictionary with total_tables, successful, failed, timeout,
            cancelled, results (table summaries), errors,
            duration_seconds, timestamp and max_workers
        """
        with trace_operation(
            "datadiff.parallel_run",
            kind=trace.SpanKind.INTERNAL,
            table_count=len(pairs),
            max_workers=self.max_workers,
        ):
            with PARALLEL_RUN_TIME.labels(worker_count=self.max_workers).time():
                start_time = datetime.now(UTC)
                results: dict[str, Any] = {
                    "total_tables": len(pairs),
                    "successful": 0,
                    "failed": 0,
                    "timeout": 0,
                    "cancelled": 0,
                    "results": [],
                    "errors": [],
                    "max_workers": self.max_workers,
                }

                if not pairs:
                    logger.warning("No tables to compare")
                    results["duration_seconds"] = 0
                    results["timestamp"] = datetime.now(UTC).isoformat()
                    return results

                logger.info(f"Comparing {len(pairs)} tables with {self.max_workers} workers")
                with self._metrics_lock:
                    PARALLEL_QUEUE_SIZE.set(len(pairs))

                self._timed_out = set()
                self.script_results = []
                self._cancellation_tokens = {pair: threading.Event() for pair in pairs}

                with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                    future_to_pair = {
                        executor.submit(
                            self._run_table,
                            pair,
                            connection_factory,
                            config,
                            Path(output_dir),
                            include_deletes,
                            self._cancellation_tokens[pair],
                        ): pair
                        for pair in pairs
                    }
                    with self._metrics_lock:
                        PARALLEL_ACTIVE_WORKERS.set(min(self.max_workers, len(pairs)))

                    completed_count = 0
                    for future in as_completed(future_to_pair):
                        pair = future_to_pair[future]
                        completed_count += 1
                        with self._metrics_lock:
                            PARALLEL_QUEUE_SIZE.set(len(pairs) - completed_count)
                            PARALLEL_ACTIVE_WORKERS.set(min(self.max_workers, len(pairs) - completed_count))

                        try:
                            script_result = future.result()
                        except CancellationError as e:
                            results["cancelled"] += 1
                            results["errors"].append(
                                {"table": str(pair.reference), "error": str(e), "type": "CancellationError"}
                            )
                            PARALLEL_TABLES_PROCESSED.labels(status="cancelled").inc()
                            continue
                        except Exception as e:
                            results["failed"] += 1
                            results["errors"].append(
                                {"table": str(pair.reference), "error": str(e), "type": type(e).__name__}
                            )
                            PARALLEL_TABLES_PROCESSED.labels(status="failed").inc()
                            logger.error(
                                f"Table {pair.reference} failed: {e} ({completed_count}/{len(pairs)})",
                                exc_info=True,
                            )
                            if self.fail_fast:
                                logger.warning("Fail-fast enabled, cancelling remaining tables")
                                self.cancel()
                            continue

                        self.script_results.append(script_result)
                        results["results"].extend(script_result.to_dicts())
                        if pair in self._timed_out:
                            results["timeout"] += 1
                            results["errors"].append(
                                {
                                    "table": str(pair.reference),
                                    "error": f"Timeout after {self.timeout_per_table}s",
                                    "type": "TimeoutError",
                                }
                            )
                            PARALLEL_TABLES_PROCESSED.labels(status="timeout").inc()
                            logger.error(f"Table {pair.reference} cancelled after {self.timeout_per_table}s")
                            if self.fail_fast:
                                self.cancel()
                        else:
                            results["successful"] += 1
                            PARALLEL_TABLES_PROCESSED.labels(status="success").inc()
                            logger.info(
                                f"Table {pair.reference} compared ({completed_count}/{len(pairs)})"
                            )

                self._cancellation_tokens.clear()
                with self._metrics_lock:
                    PARALLEL_ACTIVE_WORKERS.set(0)
                    PARALLEL_QUEUE_SIZE.set(0)

                end_time = datetime.now(UTC)
                results["duration_seconds"] = (end_time - start_time).total_seconds()
                results["timestamp"] = end_time.isoformat()
                logger.info(
                    f"Parallel comparison complete: {results['successful']} successful, "
                    f"{results['failed']} failed, {results['timeout']} timeout, "
                    f"{results['cancelled']} cancelled out of {results['total_tables']} tables "
                    f"in {results['duration_seconds']:.2f}s"
                )
                return results

    def _run_table(
        self,
        pair: TablePair,
        connection_factory: ConnectionFactory,
        config: DiffConfig,
        output_dir: Path,
        include_deletes: bool,
        cancellation_token: threading.Event,
    ) -> TableScriptResult:
        with trace_operation("datadiff.parallel_table", kind=trace.SpanKind.INTERNAL, table=str(pair.reference)):
            if cancellation_token.is_set():
                raise CancellationError(f"Comparison of {pair.reference} cancelled before starting")

            def expire():
                self._timed_out.add(pair)
                cancellation_token.set()

            timer = threading.Timer(self.timeout_per_table, expire)
            timer.daemon = True
            start_time = datetime.now(UTC)
            reference, target = connection_factory()
            timer.start()
            try:
                result = diff_table_pair(
                    reference,
                    target,
                    pair,
                    config,
                    output_dir,
                    include_deletes=include_deletes,
                    cancellation_token=cancellation_token,
                )
            finally:
                timer.cancel()
                for connection in (reference, target):
                    try:
                        connection.close()
                    except Exception as e:
                        logger.warning(f"Error closing {connection.name} connection: {e}")

            duration = (datetime.now(UTC) - start_time).total_seconds()
            PARALLEL_TABLE_TIME.labels(table=str(pair.reference)).observe(duration)
            logger.debug(f"Compared {pair.reference} in {duration:.2f}s")
            return result
