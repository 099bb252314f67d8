"""
CLI command implementations.

- data: compare table data and write migration scripts
- schema: compare table structures and write the schema-diff XML
- report: format a report from a previous run
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

from ..compare.monitor import LoggingProgressMonitor
from ..config import DiffConfig, OutputFormat, SchemaDiffConfig, parse_alternate_keys
from ..connection import DbConnection, connect
from ..errors import DataDiffError
from ..parallel import ParallelDataDiff, estimate_optimal_workers
from ..report import export_report_csv, export_report_json, format_report_console, generate_report
from ..schema import SchemaDiff
from ..script import DataDiffScript
from ..storage.names import CaseSensitiveNames, DEFAULT_NAME_POLICY
from .credentials import get_connection_urls, get_passwords

logger = logging.getLogger(__name__)

LINE_ENDINGS = {"lf": "\n", "crlf": "\r\n"}


def parse_table_pairs(args: argparse.Namespace) -> list[tuple[str, str]]:
    """
    Read --tables / --tables-file into (reference, target) name pairs.

    ``person`` pairs a table with the same name, ``person:people`` maps it
    to a differently named target table. Blank lines and lines starting
    with ``#`` in a tables file are skipped.
    """
    if args.tables_file:
        with open(args.tables_file) as f:
            entries = [line.strip() for line in f if line.strip() and not line.strip().startswith("#")]
    elif args.tables:
        entries = [t.strip() for t in args.tables.split(",") if t.strip()]
    else:
        return []

    pairs = []
    for entry in entries:
        reference, sep, target = entry.partition(":")
        pairs.append((reference.strip(), target.strip() if sep else reference.strip()))
    return pairs


def _split(value: str | None) -> list[str]:
    return [v.strip() for v in (value or "").split(",") if v.strip()]


def build_diff_config(args: argparse.Namespace) -> DiffConfig:
    """Build the run configuration from arguments, falling back to DATADIFF_* variables."""
    settings: dict[str, Any] = {
        "chunk_size": args.chunk_size,
        "alternate_keys": parse_alternate_keys(args.alternate_key),
        "exclude_real_pk": args.exclude_real_pk,
        "exclude_ignored_columns": args.exclude_ignored_columns,
        "ignore_missing_target": args.ignore_missing_target,
        "target_schema": args.target_schema,
        "output_format": args.format,
        "xml_use_cdata": args.xml_cdata,
        "blob_mode": args.blob_mode,
        "blob_directory": args.blob_directory,
        "date_literal_type": args.date_literal_type,
        "encoding": args.encoding,
        "line_ending": LINE_ENDINGS[args.line_ending],
        "use_savepoints": False if args.no_savepoints else None,
        "name_policy": CaseSensitiveNames() if args.case_sensitive else DEFAULT_NAME_POLICY,
    }
    # Unset arguments leave the setting to the environment
    overrides = {name: value for name, value in settings.items() if value is not None}
    if args.ignore_columns:
        overrides["ignore_columns"] = frozenset(_split(args.ignore_columns))
    return DiffConfig.from_env(**overrides)


def build_schema_config(args: argparse.Namespace) -> SchemaDiffConfig:
    return SchemaDiffConfig(
        include_indexes=not args.no_indexes,
        include_foreign_keys=not args.no_foreign_keys,
        include_primary_keys=not args.no_primary_keys,
        include_constraints=not args.no_constraints,
        include_views=not args.no_views,
        include_sequences=not args.no_sequences,
        include_triggers=not args.no_triggers,
        include_grants=args.grants,
        compare_constraints_by_name=args.constraints_by_name,
        compare_jdbc_types=args.jdbc_types,
        name_policy=CaseSensitiveNames() if args.case_sensitive else DEFAULT_NAME_POLICY,
        encoding=args.encoding,
    )


def _open_connections(args: argparse.Namespace, policy) -> tuple[DbConnection, DbConnection]:
    reference_url, target_url = get_connection_urls(args)
    reference_password, target_password = get_passwords(args)
    reference = connect(reference_url, name="reference", password=reference_password, policy=policy)
    try:
        target = connect(target_url, name="target", password=target_password, policy=policy)
    except Exception:
        reference.close()
        raise
    return reference, target


def _close(*connections: DbConnection) -> None:
    for connection in connections:
        try:
            connection.close()
        except Exception as e:
            logger.warning(f"Error closing {connection.name} connection: {e}")


def write_report(report: dict[str, Any], output: str | None, report_format: str) -> None:
    if output and report_format != "console":
        output_path = Path(output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        if report_format == "json":
            export_report_json(report, str(output_path))
        else:
            export_report_csv(report, str(output_path))
        logger.info(f"Report saved to {output_path}")
    elif output:
        Path(output).write_text(format_report_console(report) + "\n")
        logger.info(f"Report saved to {output}")
    else:
        print(format_report_console(report))


def _run_parallel(
    args: argparse.Namespace,
    script: DataDiffScript,
    config: DiffConfig,
) -> list[dict[str, Any]]:
    reference_password, target_password = get_passwords(args)
    reference_url, target_url = get_connection_urls(args)

    def open_pair() -> tuple[DbConnection, DbConnection]:
        reference = connect(reference_url, name="reference", password=reference_password,
                            policy=config.name_policy)
        try:
            target = connect(target_url, name="target", password=target_password,
                             policy=config.name_policy)
        except Exception:
            reference.close()
            raise
        return reference, target

    ordered = script.ordered_pairs()
    workers = args.workers or estimate_optimal_workers(len(ordered))
    runner = ParallelDataDiff(max_workers=workers, timeout_per_table=args.timeout, fail_fast=args.fail_fast)
    parallel_results = runner.run(
        ordered,
        open_pair,
        config,
        script.output_dir,
        include_deletes=script.include_deletes,
    )

    logger.info(
        f"Parallel comparison complete: "
        f"{parallel_results['successful']}/{parallel_results['total_tables']} successful, "
        f"{parallel_results['failed']} failed, "
        f"{parallel_results['timeout']} timeout "
        f"in {parallel_results['duration_seconds']:.2f}s"
    )
    if parallel_results["errors"]:
        logger.error(f"Errors encountered: {len(parallel_results['errors'])}")
        for error in parallel_results["errors"]:
            logger.error(f"  {error['table']}: {error['error']}")

    if config.output_format is OutputFormat.SQL:
        position = {pair: i for i, pair in enumerate(ordered)}
        script.write_main_script(sorted(runner.script_results, key=lambda r: position[r.pair]))
    return parallel_results["results"]


def cmd_data(args: argparse.Namespace) -> None:
    """
    Compare table data and write migration scripts.

    Exits with status 1 when differences were found or a table could not
    be compared.

    Args:
        args: Parsed command-line arguments
    """
    logger.info("Starting data comparison")
    try:
        config = build_diff_config(args)
        pairs = parse_table_pairs(args)
        reference, target = _open_connections(args, config.name_policy)
        try:
            script = DataDiffScript(
                reference,
                target,
                config,
                output_dir=args.output_dir,
                include_deletes=not args.no_deletes,
                progress=LoggingProgressMonitor(),
            )
            if pairs:
                for reference_table, target_table in pairs:
                    script.add_table(reference_table, target_table if target_table != reference_table else None)
            else:
                script.add_schema(args.reference_schema, args.target_schema, exclude=_split(args.exclude))
            logger.info(f"Comparing {len(script.pairs)} table(s)")

            if args.parallel and len(script.pairs) > 1:
                summaries = _run_parallel(args, script, config)
            else:
                summaries = [s for result in script.run() for s in result.to_dicts()]
        finally:
            _close(reference, target)

        report = generate_report(summaries)
        write_report(report, args.report, args.report_format)
    except (DataDiffError, OSError) as e:
        logger.error(f"Data comparison failed: {e}")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Data comparison failed: {e}", exc_info=True)
        sys.exit(1)

    if report["status"] == "FAIL":
        logger.warning("Data comparison found differences")
        sys.exit(1)
    logger.info("Reference and target are in sync")
    sys.exit(0)


def cmd_schema(args: argparse.Namespace) -> None:
    """
    Compare table structures and write the schema-diff XML.

    Args:
        args: Parsed command-line arguments
    """
    logger.info("Starting schema comparison")
    try:
        config = build_schema_config(args)
        pairs = parse_table_pairs(args)
        reference, target = _open_connections(args, config.name_policy)
        try:
            diff = SchemaDiff(reference, target, config)
            renamed = any(not config.name_policy.equals(r, t) for r, t in pairs)
            if renamed:
                diff.compare_tables(pairs)
            else:
                diff.compare_schemas(
                    args.reference_schema,
                    args.target_schema,
                    tables=[r for r, _ in pairs] or None,
                    exclude=_split(args.exclude),
                )
            xml = diff.get_migration_xml()
        finally:
            _close(reference, target)
    except Exception as e:
        logger.error(f"Schema comparison failed: {e}", exc_info=not isinstance(e, DataDiffError))
        sys.exit(1)

    if args.output:
        output_path = Path(args.output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(xml, encoding=args.encoding)
        logger.info(f"Schema diff saved to {output_path}")
    else:
        print(xml)


def cmd_report(args: argparse.Namespace) -> None:
    """
    Format a report from a previous run.

    The input is either a JSON report written by ``datadiff data --report``
    or a JSON list of table summaries.

    Args:
        args: Parsed command-line arguments
    """
    logger.info(f"Loading report from {args.input}")
    try:
        with open(args.input) as f:
            data = json.load(f)
        report = generate_report(data) if isinstance(data, list) else data

        if args.format == "console":
            write_report(report, args.output, "console")
        elif not args.output:
            logger.error(f"Output file required for {args.format.upper()} format")
            sys.exit(1)
        else:
            write_report(report, args.output, args.format)
    except (OSError, ValueError, KeyError) as e:
        logger.error(f"Failed to process report: {e}")
        sys.exit(1)
