"""
Command-line argument parser configuration.
"""

import argparse


def _add_connection_arguments(parser: argparse.ArgumentParser) -> None:
    group = parser.add_argument_group("connections")
    group.add_argument(
        "--reference",
        help="Reference connection URL (default: DATADIFF_REFERENCE_URL)",
    )
    group.add_argument(
        "--target",
        help="Target connection URL (default: DATADIFF_TARGET_URL)",
    )
    group.add_argument("--reference-password", help="Password overriding the reference URL")
    group.add_argument("--target-password", help="Password overriding the target URL")
    group.add_argument(
        "--use-vault",
        action="store_true",
        help="Fetch connection URLs from HashiCorp Vault (secret/datadiff/reference, secret/datadiff/target)",
    )


def _add_table_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--tables",
        help="Comma-separated tables; use reference:target to map differently named tables",
    )
    parser.add_argument("--tables-file", help="File containing tables (one per line)")
    parser.add_argument("--reference-schema", help="Compare all tables of this reference schema")
    parser.add_argument("--target-schema", help="Schema of the target tables")
    parser.add_argument(
        "--exclude",
        default="",
        help="Comma-separated tables to leave out of a schema comparison",
    )


def create_parser() -> argparse.ArgumentParser:
    """
    Create and configure the argument parser for the CLI.

    Returns:
        Configured ArgumentParser instance
    """
    parser = argparse.ArgumentParser(
        prog="datadiff",
        description="Compare tables across databases and generate migration scripts",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Generate INSERT/UPDATE/DELETE scripts for two tables
  datadiff data --reference postgresql://app@prod/shop --target postgresql://app@test/shop \\
      --tables person,orders --output-dir diff

  # Compare all tables of a schema, skipping one
  datadiff data --reference-schema public --target-schema public --exclude audit_log --output-dir diff

  # Use a natural key instead of the primary key
  datadiff data --tables person --alternate-key person=firstname,lastname --exclude-real-pk

  # Parallel comparison with automatic worker count
  datadiff data --tables-file tables.txt --parallel --workers 0 --report report.json --report-format json

  # XML output
  datadiff data --tables person --format xml --output-dir diff

  # Structural comparison
  datadiff schema --reference-schema public --target-schema public --output schema-diff.xml

  # Console report from a previous run
  datadiff report --input report.json --format console
        """,
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Logging level (default: INFO)",
    )
    parser.add_argument("--log-file", help="Also log to this rotating file")
    parser.add_argument("--log-json", action="store_true", help="Log JSON records")
    parser.add_argument(
        "--metrics-port",
        type=int,
        help="Expose Prometheus metrics on this port while running",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # ========== Data command ==========
    data_parser = subparsers.add_parser("data", help="Compare table data and write migration scripts")
    _add_connection_arguments(data_parser)
    _add_table_arguments(data_parser)
    data_parser.add_argument(
        "--output-dir",
        default=".",
        help="Directory receiving the scripts (default: current directory)",
    )
    data_parser.add_argument(
        "--format",
        choices=["sql", "xml"],
        default=None,
        help="Output format (default: sql)",
    )
    data_parser.add_argument(
        "--chunk-size",
        type=int,
        default=None,
        help="Reference rows per target lookup (default: 15)",
    )
    data_parser.add_argument(
        "--ignore-columns",
        default="",
        help="Comma-separated columns that are never compared",
    )
    data_parser.add_argument(
        "--alternate-key",
        action="append",
        default=[],
        metavar="TABLE=COL1,COL2",
        help="Columns identifying rows of a table instead of its primary key (repeatable)",
    )
    data_parser.add_argument(
        "--exclude-real-pk",
        action="store_true",
        help="Leave the primary key out of INSERTs when an alternate key is used",
    )
    data_parser.add_argument(
        "--exclude-ignored-columns",
        action="store_true",
        help="Leave ignored columns out of generated statements",
    )
    data_parser.add_argument(
        "--ignore-missing-target",
        action="store_true",
        help="Treat a missing target table as empty",
    )
    data_parser.add_argument(
        "--blob-mode",
        choices=["dbms", "ansi", "base64", "file", "none"],
        default=None,
        help="Binary value rendering (default: dbms)",
    )
    data_parser.add_argument("--blob-directory", help="Directory for blob files with --blob-mode file")
    data_parser.add_argument(
        "--date-literal-type",
        choices=["dbms", "ansi", "jdbc", "iso"],
        default=None,
        help="Date/time literal rendering (default: dbms)",
    )
    data_parser.add_argument(
        "--xml-cdata",
        action="store_true",
        help="Wrap character values in CDATA sections (XML output)",
    )
    data_parser.add_argument("--encoding", default=None, help="Output encoding (default: UTF-8)")
    data_parser.add_argument(
        "--line-ending",
        choices=["lf", "crlf"],
        default="lf",
        help="Line ending of generated files (default: lf)",
    )
    data_parser.add_argument(
        "--case-sensitive",
        action="store_true",
        help="Match table and column names case-sensitively",
    )
    data_parser.add_argument(
        "--no-savepoints",
        action="store_true",
        help="Do not wrap target lookups in savepoints",
    )
    data_parser.add_argument(
        "--no-deletes",
        action="store_true",
        help="Do not generate DELETE scripts",
    )
    data_parser.add_argument(
        "--parallel",
        action="store_true",
        help="Compare tables in parallel",
    )
    data_parser.add_argument(
        "--workers",
        type=int,
        default=4,
        help="Parallel workers, 0 estimates a count from the table count (default: 4)",
    )
    data_parser.add_argument(
        "--timeout",
        type=int,
        default=3600,
        help="Seconds per table before a parallel comparison is cancelled (default: 3600)",
    )
    data_parser.add_argument(
        "--fail-fast",
        action="store_true",
        help="Cancel remaining tables after the first failure (parallel mode)",
    )
    data_parser.add_argument("--report", help="Write a run report to this file")
    data_parser.add_argument(
        "--report-format",
        choices=["console", "json", "csv"],
        default="console",
        help="Report format (default: console)",
    )

    # ========== Schema command ==========
    schema_parser = subparsers.add_parser("schema", help="Compare table structures")
    _add_connection_arguments(schema_parser)
    _add_table_arguments(schema_parser)
    schema_parser.add_argument("--output", help="Write the XML document to this file (default: stdout)")
    schema_parser.add_argument("--no-indexes", action="store_true", help="Skip index comparison")
    schema_parser.add_argument("--no-foreign-keys", action="store_true", help="Skip foreign key comparison")
    schema_parser.add_argument("--no-primary-keys", action="store_true", help="Skip primary key comparison")
    schema_parser.add_argument("--no-constraints", action="store_true", help="Skip check constraint comparison")
    schema_parser.add_argument("--no-views", action="store_true", help="Skip view comparison")
    schema_parser.add_argument("--no-sequences", action="store_true", help="Skip sequence comparison")
    schema_parser.add_argument("--no-triggers", action="store_true", help="Skip trigger comparison")
    schema_parser.add_argument("--grants", action="store_true", help="Compare table grants")
    schema_parser.add_argument(
        "--constraints-by-name",
        action="store_true",
        help="Match constraints by name instead of by definition",
    )
    schema_parser.add_argument(
        "--jdbc-types",
        action="store_true",
        help="Compare generic SQL types instead of DBMS type names",
    )
    schema_parser.add_argument("--encoding", default="UTF-8", help="Declared XML encoding (default: UTF-8)")
    schema_parser.add_argument(
        "--case-sensitive",
        action="store_true",
        help="Match object names case-sensitively",
    )

    # ========== Report command ==========
    report_parser = subparsers.add_parser("report", help="Format a report from a previous run")
    report_parser.add_argument(
        "--input",
        required=True,
        help="JSON report or JSON list of table summaries",
    )
    report_parser.add_argument(
        "--format",
        choices=["console", "json", "csv"],
        default="console",
        help="Output format (default: console)",
    )
    report_parser.add_argument(
        "--output",
        help="Output file path (required for json and csv formats)",
    )

    return parser
