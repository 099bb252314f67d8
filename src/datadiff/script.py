"""
Multi-table data comparison writing one script per table and operation.

For every table pair DataDiffScript writes ``<table>_$insert.sql``,
``<table>_$update.sql`` and ``<table>_$delete.sql`` (``.xml`` for XML
output) into an output directory, removes the files that received no
fragment and finally writes a main script that runs the per-table scripts
in foreign key order: deletes children first, inserts and updates parents
first.

Usage:
    script = DataDiffScript(reference, target, config, output_dir="diff")
    script.add_schema("public", "public", exclude=["audit_log"])
    results = script.run()
"""

import datetime
import graphlib
import logging
import re
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Mapping

from .compare.data_diff import ComparisonStatus, DataDiffResult, TableDataDiff
from .compare.delete_sync import DeleteSyncResult, TableDeleteSync
from .compare.monitor import ProgressMonitor
from .compare.output import BANNER_LINE, GENERATOR_NAME
from .config import DiffConfig, OutputFormat
from .connection.wrapper import DbConnection
from .storage.columns import TableIdentifier
from .storage.names import DEFAULT_NAME_POLICY, NamePolicy

logger = logging.getLogger(__name__)

SCRIPT_KINDS = ("insert", "update", "delete")
MAIN_SCRIPT_NAME = "migrate"

_UNSAFE_FILE_CHARS = re.compile(r"[^\w.-]")


@dataclass(frozen=True)
class TablePair:
    reference: TableIdentifier
    target: TableIdentifier


def script_file_name(table: TableIdentifier, kind: str, extension: str) -> str:
    """File name of one per-table script, e.g. ``person_$insert.sql``."""
    stem = _UNSAFE_FILE_CHARS.sub("_", table.name)
    return f"{stem}_${kind}.{extension}"


@dataclass
class TableScriptResult:
    pair: TablePair
    data: DataDiffResult | None = None
    delete: DeleteSyncResult | None = None
    files: dict[str, Path] = field(default_factory=dict)

    def to_dicts(self) -> list[dict]:
        summaries = []
        for result in (self.data, self.delete):
            if result is not None:
                summary = result.to_dict()
                summary["files"] = {kind: str(path) for kind, path in self.files.items()}
                summaries.append(summary)
        return summaries


class _CancellationMonitor:
    """Forwards progress and cancels the current run once the token is set."""

    def __init__(self, token: threading.Event, delegate: ProgressMonitor | None = None):
        self.token = token
        self.delegate = delegate
        self.run = None

    def report_progress(self, table: str, row_number: int) -> None:
        if self.delegate is not None:
            self.delegate.report_progress(table, row_number)
        if self.run is not None and self.token.is_set():
            self.run.cancel()


def _failed_data_result(pair: TablePair, run: TableDataDiff, status: ComparisonStatus) -> DataDiffResult:
    return DataDiffResult(
        table=str(pair.reference),
        status=status,
        warnings=tuple(run.warnings),
        errors=tuple(run.errors),
    )


def diff_table_pair(
    reference: DbConnection,
    target: DbConnection,
    pair: TablePair,
    config: DiffConfig,
    output_dir: Path | str,
    include_deletes: bool = True,
    progress: ProgressMonitor | None = None,
    cancellation_token: threading.Event | None = None,
) -> TableScriptResult:
    """
    Compare one table pair and write its scripts.

    Args:
        reference: Reference connection
        target: Target connection
        pair: Tables to compare
        config: Run configuration
        output_dir: Directory receiving the scripts
        include_deletes: Also look for target rows missing in the reference
        progress: Progress monitor
        cancellation_token: Stops the comparison when set

    Returns:
        TableScriptResult listing the non-empty script files
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    extension = "xml" if config.output_format is OutputFormat.XML else "sql"
    paths = {kind: output_dir / script_file_name(pair.target, kind, extension) for kind in SCRIPT_KINDS}
    token = cancellation_token or threading.Event()
    monitor = _CancellationMonitor(token, progress)
    result = TableScriptResult(pair)

    run = TableDataDiff(reference, target, config, progress=monitor)
    monitor.run = run
    open_options = {"mode": "w", "encoding": config.encoding, "newline": ""}
    with open(paths["insert"], **open_options) as inserts, open(paths["update"], **open_options) as updates:
        run.set_output_writers(inserts, updates)
        status = run.prepare(pair.reference, pair.target)
        if status.is_fatal:
            result.data = _failed_data_result(pair, run, status)
        elif token.is_set():
            logger.info(f"Skipping {pair.reference}, comparison cancelled")
        else:
            result.data = run.execute()

    compared = result.data is not None and not result.data.status.is_fatal
    if include_deletes and compared and not run.state.target_missing and not token.is_set():
        sync = TableDeleteSync(target, reference, config, progress=monitor)
        monitor.run = sync
        with open(paths["delete"], **open_options) as deletes:
            sync.set_output_writer(deletes)
            delete_status = sync.prepare(pair.reference, pair.target)
            if delete_status.is_fatal:
                result.delete = DeleteSyncResult(
                    table=str(pair.target),
                    status=delete_status,
                    warnings=tuple(sync.warnings),
                    errors=tuple(sync.errors),
                )
            else:
                result.delete = sync.execute()

    for kind, path in paths.items():
        if path.exists() and path.stat().st_size == 0:
            path.unlink()
        elif path.exists():
            result.files[kind] = path
    return result


def dependency_order(
    pairs: Iterable[TablePair],
    references: Mapping[str, Iterable[str]],
    policy: NamePolicy = DEFAULT_NAME_POLICY,
) -> list[TablePair]:
    """
    Order table pairs so that referenced (parent) tables come first.

    Args:
        pairs: Table pairs in their original order
        references: Target table name -> names of the tables it references
        policy: Name matching policy

    Returns:
        Pairs in dependency order; the original order when the foreign keys
        form a cycle
    """
    pairs = list(pairs)
    by_name = {policy.normalize(p.target.name): p for p in pairs}
    sorter = graphlib.TopologicalSorter()
    for name in by_name:
        parents = {policy.normalize(r) for r in references.get(name, ())}
        sorter.add(name, *(p for p in parents if p in by_name and p != name))
    try:
        return [by_name[name] for name in sorter.static_order()]
    except graphlib.CycleError as e:
        logger.warning(f"Foreign keys form a cycle ({e.args[1]}), keeping the given table order")
        return pairs


class DataDiffScript:
    """
    Compares a list of table pairs and writes migration scripts.

    Args:
        reference: Reference connection
        target: Target connection
        config: Run configuration
        output_dir: Directory receiving the scripts
        include_deletes: Also generate DELETE scripts
        progress: Progress monitor
    """

    def __init__(
        self,
        reference: DbConnection,
        target: DbConnection,
        config: DiffConfig | None = None,
        output_dir: Path | str = ".",
        include_deletes: bool = True,
        progress: ProgressMonitor | None = None,
    ):
        self.reference = reference
        self.target = target
        self.config = config or DiffConfig()
        self.output_dir = Path(output_dir)
        self.include_deletes = include_deletes
        self.progress = progress
        self.policy = self.config.name_policy
        self.pairs: list[TablePair] = []
        self._cancel = threading.Event()

    def add_table(self, reference_table: TableIdentifier | str,
                  target_table: TableIdentifier | str | None = None) -> None:
        reference_id = _identifier(reference_table)
        target_id = _identifier(target_table) if target_table is not None else reference_id
        if self.config.target_schema and target_table is None:
            target_id = target_id.with_schema(self.config.target_schema)
        self.pairs.append(TablePair(reference_id, target_id))

    def add_schema(self, reference_schema: str | None = None, target_schema: str | None = None,
                   exclude: Iterable[str] = ()) -> None:
        """Add every reference table of a schema, paired with the same name in the target."""
        excluded = list(exclude)
        for table in self.reference.catalog.list_tables(reference_schema):
            if any(self.policy.equals(table.name, name) for name in excluded):
                continue
            self.pairs.append(TablePair(table, TableIdentifier(table.name, target_schema)))

    def cancel(self) -> None:
        self._cancel.set()

    def _foreign_key_references(self) -> dict[str, list[str]]:
        references = {}
        for pair in self.pairs:
            catalog = self.target.catalog
            resolved = catalog.find_table(pair.target)
            if resolved is None:
                catalog = self.reference.catalog
                resolved = catalog.find_table(pair.reference)
            if resolved is None:
                continue
            references[self.policy.normalize(pair.target.name)] = [
                fk.referenced_table.name for fk in catalog.get_foreign_keys(resolved)
            ]
        return references

    def ordered_pairs(self) -> list[TablePair]:
        return dependency_order(self.pairs, self._foreign_key_references(), self.policy)

    def run(self) -> list[TableScriptResult]:
        """
        Compare all table pairs and write the scripts.

        Returns:
            One TableScriptResult per compared pair, in dependency order
        """
        self._cancel.clear()
        ordered = self.ordered_pairs()
        results = []
        for pair in ordered:
            if self._cancel.is_set():
                logger.warning("Data diff cancelled")
                break
            logger.info(f"Comparing {pair.reference} -> {pair.target}")
            results.append(
                diff_table_pair(
                    self.reference,
                    self.target,
                    pair,
                    self.config,
                    self.output_dir,
                    include_deletes=self.include_deletes,
                    progress=self.progress,
                    cancellation_token=self._cancel,
                )
            )
        if self.config.output_format is OutputFormat.SQL:
            self.write_main_script(results)
        return results

    def write_main_script(self, results: list[TableScriptResult]) -> Path | None:
        """
        Write the script running all per-table scripts in one transaction.

        Returns:
            Path of the main script, None when no table has differences
        """
        if not any(r.files for r in results):
            return None
        db_type = self.target.db_type
        nl = self.config.line_ending
        timestamp = datetime.datetime.now().replace(microsecond=0).isoformat(sep=" ")
        lines = [
            BANNER_LINE,
            f"-- Generated by {GENERATOR_NAME} at: {timestamp}",
            f"-- Run with: {db_type.script_tool}",
            BANNER_LINE,
            "",
            db_type.begin_statement(),
        ]
        for result in reversed(results):
            if "delete" in result.files:
                lines.append(db_type.include_directive(result.files["delete"].name))
        for result in results:
            for kind in ("insert", "update"):
                if kind in result.files:
                    lines.append(db_type.include_directive(result.files[kind].name))
        lines.append(db_type.commit_statement())

        path = self.output_dir / f"{MAIN_SCRIPT_NAME}.sql"
        text = "\n".join(lines)
        if nl != "\n":
            text = text.replace("\n", nl)
        with open(path, "w", encoding=self.config.encoding, newline="") as f:
            f.write(text + nl)
        logger.info(f"Main script written to {path}")
        return path


def _identifier(table: TableIdentifier | str) -> TableIdentifier:
    return table if isinstance(table, TableIdentifier) else TableIdentifier.parse(table)
