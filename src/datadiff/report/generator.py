"""
Report generation for comparison runs.

The report is built from the summary dictionaries produced by
``DataDiffResult.to_dict()`` and ``DeleteSyncResult.to_dict()``; a table may
contribute one summary per operation.
"""

from datetime import UTC, datetime
from typing import Any

FAILED_STATUSES = {"REFERENCE_NOT_FOUND", "TARGET_NOT_FOUND", "NO_PRIMARY_KEY"}


class DiscrepancyType:
    """Constants for discrepancy types."""

    MISSING_ROWS = "MISSING_ROWS"
    CHANGED_ROWS = "CHANGED_ROWS"
    EXTRA_ROWS = "EXTRA_ROWS"
    COLUMN_MISMATCH = "COLUMN_MISMATCH"
    NOT_COMPARED = "NOT_COMPARED"


def merge_summaries(summaries: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """
    Combine the per-operation summaries of each table into one entry.

    Args:
        summaries: Summary dictionaries in run order

    Returns:
        One dictionary per table, in first-seen order
    """
    tables: dict[str, dict[str, Any]] = {}
    for summary in summaries:
        entry = tables.setdefault(
            summary["table"],
            {
                "table": summary["table"],
                "statuses": [],
                "rows_processed": 0,
                "inserts": 0,
                "updates": 0,
                "deletes": 0,
                "cancelled": False,
                "warnings": [],
                "errors": [],
            },
        )
        entry["statuses"].append(str(summary.get("status", "ok")).upper())
        if summary.get("operation") != "delete-sync":
            entry["rows_processed"] += summary.get("rows_processed", 0)
        entry["inserts"] += summary.get("inserts", 0)
        entry["updates"] += summary.get("updates", 0)
        entry["deletes"] += summary.get("deletes", 0)
        entry["cancelled"] = entry["cancelled"] or summary.get("cancelled", False)
        entry["warnings"].extend(summary.get("warnings", []))
        entry["errors"].extend(summary.get("errors", []))
    return list(tables.values())


def generate_report(summaries: list[dict[str, Any]]) -> dict[str, Any]:
    """
    Generate a report from comparison summaries.

    Args:
        summaries: Summary dictionaries of one or more runs

    Returns:
        Dictionary containing:
        - status: PASS, FAIL, or NO_DATA
        - total_tables, tables_in_sync, tables_with_differences, tables_failed
        - total_inserts, total_updates, total_deletes, total_warnings
        - rows_compared
        - discrepancies: List of discrepancy details
        - summary: Human-readable summary
        - recommendations: List of recommended actions
        - timestamp: Report generation timestamp
    """
    timestamp = datetime.now(UTC).isoformat()
    if not summaries:
        return {
            "status": "NO_DATA",
            "total_tables": 0,
            "tables_in_sync": 0,
            "tables_with_differences": 0,
            "tables_failed": 0,
            "total_inserts": 0,
            "total_updates": 0,
            "total_deletes": 0,
            "total_warnings": 0,
            "rows_compared": 0,
            "discrepancies": [],
            "summary": "No comparison data available",
            "recommendations": [],
            "timestamp": timestamp,
        }

    tables = merge_summaries(summaries)
    in_sync = 0
    with_differences = 0
    failed = 0
    discrepancies = []

    for table in tables:
        found = _table_discrepancies(table, timestamp)
        discrepancies.extend(found)
        if any(d["issue_type"] == DiscrepancyType.NOT_COMPARED for d in found):
            failed += 1
        elif found:
            with_differences += 1
        else:
            in_sync += 1

    report = {
        "status": "PASS" if not discrepancies else "FAIL",
        "total_tables": len(tables),
        "tables_in_sync": in_sync,
        "tables_with_differences": with_differences,
        "tables_failed": failed,
        "total_inserts": sum(t["inserts"] for t in tables),
        "total_updates": sum(t["updates"] for t in tables),
        "total_deletes": sum(t["deletes"] for t in tables),
        "total_warnings": sum(len(t["warnings"]) for t in tables),
        "rows_compared": sum(t["rows_processed"] for t in tables),
        "discrepancies": discrepancies,
        "summary": _generate_summary(len(tables), in_sync, with_differences, failed),
        "recommendations": _generate_recommendations(discrepancies),
        "timestamp": timestamp,
    }
    return report


def _table_discrepancies(table: dict[str, Any], timestamp: str) -> list[dict[str, Any]]:
    name = table["table"]
    failures = [s for s in table["statuses"] if s in FAILED_STATUSES]
    if failures:
        return [
            {
                "table": name,
                "issue_type": DiscrepancyType.NOT_COMPARED,
                "severity": "CRITICAL",
                "details": {"status": failures[0], "errors": table["errors"]},
                "timestamp": timestamp,
            }
        ]

    rows = table["rows_processed"]
    found = []
    for issue_type, key in (
        (DiscrepancyType.MISSING_ROWS, "inserts"),
        (DiscrepancyType.CHANGED_ROWS, "updates"),
        (DiscrepancyType.EXTRA_ROWS, "deletes"),
    ):
        if table[key]:
            found.append(
                {
                    "table": name,
                    "issue_type": issue_type,
                    "severity": _calculate_severity(rows, table[key]),
                    "details": {"rows_compared": rows, "rows_affected": table[key]},
                    "timestamp": timestamp,
                }
            )
    if "COLUMN_MISMATCH" in table["statuses"]:
        found.append(
            {
                "table": name,
                "issue_type": DiscrepancyType.COLUMN_MISMATCH,
                "severity": "MEDIUM",
                "details": {"warnings": table["warnings"]},
                "timestamp": timestamp,
            }
        )
    return found


def _calculate_severity(rows_compared: int, rows_affected: int) -> str:
    """
    Calculate severity from the share of affected rows.

    Returns:
        Severity level: LOW, MEDIUM, HIGH, or CRITICAL
    """
    if rows_compared == 0:
        return "LOW" if rows_affected == 0 else "CRITICAL"

    percentage = (rows_affected / rows_compared) * 100
    if percentage < 0.1:
        return "LOW"
    elif percentage < 1.0:
        return "MEDIUM"
    elif percentage < 10.0:
        return "HIGH"
    return "CRITICAL"


def _generate_summary(total: int, in_sync: int, with_differences: int, failed: int) -> str:
    if with_differences == 0 and failed == 0:
        return f"All {total} tables are in sync."
    summary = f"Found differences in {with_differences} of {total} tables. {in_sync} tables are in sync."
    if failed:
        summary += f" {failed} tables could not be compared."
    return summary


def _generate_recommendations(discrepancies: list[dict[str, Any]]) -> list[str]:
    if not discrepancies:
        return ["Target is in sync with the reference. No migration script needs to be applied."]

    recommendations = []
    by_type: dict[str, list[dict[str, Any]]] = {}
    for d in discrepancies:
        by_type.setdefault(d["issue_type"], []).append(d)

    if DiscrepancyType.NOT_COMPARED in by_type:
        tables = ", ".join(d["table"] for d in by_type[DiscrepancyType.NOT_COMPARED])
        recommendations.append(
            f"Tables could not be compared ({tables}). Check that they exist and have a primary key "
            "or configure an alternate key."
        )
    if DiscrepancyType.MISSING_ROWS in by_type or DiscrepancyType.CHANGED_ROWS in by_type:
        recommendations.append("Review and apply the generated INSERT and UPDATE scripts to the target.")
    if DiscrepancyType.EXTRA_ROWS in by_type:
        recommendations.append(
            "Target contains rows missing from the reference. Review the DELETE scripts before applying them."
        )
    if DiscrepancyType.COLUMN_MISMATCH in by_type:
        recommendations.append("Column sets differ between reference and target. Run a schema diff.")
    if len(discrepancies) > 5:
        recommendations.append("Multiple tables affected. Consider running the main migration script.")
    return recommendations
