"""
Report export in JSON, CSV and console formats.
"""

import csv
import json
from typing import Any


def export_report_json(report: dict[str, Any], output_path: str) -> None:
    with open(output_path, "w") as f:
        json.dump(report, f, indent=2, default=str)


def export_report_csv(report: dict[str, Any], output_path: str) -> None:
    """
    Export the discrepancies of a report as CSV.

    Args:
        report: Report dictionary
        output_path: Path to output file
    """
    with open(output_path, "w", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(["Table", "Issue Type", "Severity", "Rows Compared", "Rows Affected"])
        for discrepancy in report.get("discrepancies", []):
            details = discrepancy.get("details", {})
            writer.writerow(
                [
                    discrepancy.get("table", ""),
                    discrepancy.get("issue_type", ""),
                    discrepancy.get("severity", ""),
                    details.get("rows_compared", ""),
                    details.get("rows_affected", ""),
                ]
            )


def format_report_console(report: dict[str, Any]) -> str:
    """
    Format a report for terminal display.

    Args:
        report: Report dictionary

    Returns:
        Formatted string
    """
    lines = []
    lines.append("=" * 80)
    lines.append("DATA DIFF REPORT")
    lines.append("=" * 80)
    lines.append(f"Status: {report['status']}")
    lines.append(f"Timestamp: {report['timestamp']}")
    lines.append(f"Total Tables: {report['total_tables']}")
    lines.append(f"Tables In Sync: {report['tables_in_sync']}")
    lines.append(f"Tables With Differences: {report['tables_with_differences']}")
    lines.append(f"Tables Failed: {report['tables_failed']}")
    lines.append(f"Rows Compared: {report['rows_compared']:,}")
    lines.append(
        f"Inserts: {report['total_inserts']:,}  Updates: {report['total_updates']:,}  "
        f"Deletes: {report['total_deletes']:,}"
    )
    lines.append(f"Warnings: {report['total_warnings']}")
    lines.append("")

    lines.append("SUMMARY")
    lines.append("-" * 80)
    lines.append(report["summary"])
    lines.append("")

    if report["discrepancies"]:
        lines.append("DISCREPANCIES")
        lines.append("-" * 80)
        for disc in report["discrepancies"]:
            lines.append(f"Table: {disc['table']}")
            lines.append(f"  Issue: {disc['issue_type']}")
            lines.append(f"  Severity: {disc['severity']}")
            lines.append(f"  Details: {disc['details']}")
            lines.append("")

    if report["recommendations"]:
        lines.append("RECOMMENDATIONS")
        lines.append("-" * 80)
        for i, rec in enumerate(report["recommendations"], 1):
            lines.append(f"{i}. {rec}")
        lines.append("")

    lines.append("=" * 80)
    return "\n".join(lines)
