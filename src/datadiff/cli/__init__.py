"""
Command-line interface for datadiff.

Available commands:
- data: Compare table data and write migration scripts
- schema: Compare table structures
- report: Format a report from a previous run
"""

import os
import sys

from ..utils.logging import setup_logging
from ..utils.metrics import MetricsPublisher
from ..utils.tracing import initialize_tracing, shutdown_tracing
from .commands import cmd_data, cmd_report, cmd_schema
from .credentials import get_connection_urls
from .parser import create_parser


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the datadiff CLI"""
    parser = create_parser()
    args = parser.parse_args(argv)

    setup_logging(level=args.log_level, log_file=args.log_file, json_format=args.log_json)
    if os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT"):
        initialize_tracing()
    if args.metrics_port:
        MetricsPublisher(port=args.metrics_port).start()

    if args.command == "data" and not (args.tables or args.tables_file or args.reference_schema):
        parser.error("One of --tables, --tables-file or --reference-schema is required")

    try:
        if args.command == "data":
            cmd_data(args)
        elif args.command == "schema":
            cmd_schema(args)
        elif args.command == "report":
            cmd_report(args)
        else:
            parser.print_help()
            sys.exit(1)
    finally:
        shutdown_tracing()


__all__ = [
    "main",
    "get_connection_urls",
    "cmd_data",
    "cmd_schema",
    "cmd_report",
    "create_parser",
]


if __name__ == "__main__":
    main()
