"""
Unit tests for run reports

Tests verify:
- Merging of per-operation summaries
- Discrepancy and severity classification
- JSON, CSV and console export
"""

import csv
import json

import pytest

from datadiff.report import (
    DiscrepancyType,
    export_report_csv,
    export_report_json,
    format_report_console,
    generate_report,
    merge_summaries,
)
from datadiff.report.generator import _calculate_severity


def summary(table="person", operation="data-diff", status="ok", rows=100,
            inserts=0, updates=0, deletes=0, warnings=(), errors=()):
    return {
        "table": table,
        "operation": operation,
        "status": status,
        "rows_processed": rows,
        "inserts": inserts,
        "updates": updates,
        "deletes": deletes,
        "cancelled": False,
        "warnings": list(warnings),
        "errors": list(errors),
    }


class TestMergeSummaries:
    """Test combining data diff and delete sync summaries"""

    def test_operations_of_one_table_are_merged(self):
        """Test a data diff and a delete sync become one entry"""
        merged = merge_summaries([
            summary(inserts=2, updates=1),
            summary(operation="delete-sync", rows=120, deletes=20),
            summary(table="address", rows=5),
        ])

        assert [t["table"] for t in merged] == ["person", "address"]
        person = merged[0]
        assert person["statuses"] == ["OK", "OK"]
        assert person["rows_processed"] == 100
        assert (person["inserts"], person["updates"], person["deletes"]) == (2, 1, 20)

    def test_messages_are_collected(self):
        """Test warnings and errors of all operations are kept"""
        merged = merge_summaries([
            summary(warnings=["w1"]),
            summary(operation="delete-sync", warnings=["w2"], errors=["e1"]),
        ])
        assert merged[0]["warnings"] == ["w1", "w2"]
        assert merged[0]["errors"] == ["e1"]


class TestGenerateReport:
    """Test report generation"""

    def test_no_data(self):
        """Test report for an empty run"""
        report = generate_report([])
        assert report["status"] == "NO_DATA"
        assert report["total_tables"] == 0
        assert report["discrepancies"] == []

    def test_all_in_sync(self):
        """Test report when no table has differences"""
        report = generate_report([summary(), summary(table="address")])

        assert report["status"] == "PASS"
        assert report["tables_in_sync"] == 2
        assert report["summary"] == "All 2 tables are in sync."
        assert report["recommendations"] == [
            "Target is in sync with the reference. No migration script needs to be applied."
        ]
        assert "timestamp" in report

    def test_differences(self):
        """Test missing, changed and extra rows are reported per table"""
        report = generate_report([
            summary(rows=1000, inserts=5, updates=50),
            summary(operation="delete-sync", rows=1000, deletes=200),
            summary(table="address"),
        ])

        assert report["status"] == "FAIL"
        assert report["tables_with_differences"] == 1
        assert report["tables_in_sync"] == 1
        issues = {d["issue_type"]: d for d in report["discrepancies"]}
        assert set(issues) == {
            DiscrepancyType.MISSING_ROWS,
            DiscrepancyType.CHANGED_ROWS,
            DiscrepancyType.EXTRA_ROWS,
        }
        assert issues[DiscrepancyType.MISSING_ROWS]["severity"] == "MEDIUM"
        assert issues[DiscrepancyType.CHANGED_ROWS]["severity"] == "HIGH"
        assert issues[DiscrepancyType.EXTRA_ROWS]["severity"] == "CRITICAL"
        assert issues[DiscrepancyType.MISSING_ROWS]["details"] == {"rows_compared": 1000, "rows_affected": 5}
        assert (report["total_inserts"], report["total_updates"], report["total_deletes"]) == (5, 50, 200)
        assert report["rows_compared"] == 1100

    def test_not_compared(self):
        """Test fatal statuses (lower case, as produced by the runs) fail the table"""
        report = generate_report([
            summary(status="no_primary_key", rows=0, errors=["No primary key found for table log"]),
        ])

        assert report["status"] == "FAIL"
        assert report["tables_failed"] == 1
        (discrepancy,) = report["discrepancies"]
        assert discrepancy["issue_type"] == DiscrepancyType.NOT_COMPARED
        assert discrepancy["severity"] == "CRITICAL"
        assert discrepancy["details"]["status"] == "NO_PRIMARY_KEY"
        assert "could not be compared" in report["summary"]
        assert "alternate key" in report["recommendations"][0]

    def test_column_mismatch(self):
        """Test a column mismatch is reported even without row differences"""
        report = generate_report([summary(status="column_mismatch", warnings=["Column x not found"])])
        (discrepancy,) = report["discrepancies"]
        assert discrepancy["issue_type"] == DiscrepancyType.COLUMN_MISMATCH
        assert discrepancy["details"]["warnings"] == ["Column x not found"]
        assert report["total_warnings"] == 1

    def test_many_discrepancies_recommend_main_script(self):
        """Test a recommendation for runs touching many tables"""
        report = generate_report([summary(table=f"t{i}", inserts=1) for i in range(6)])
        assert any("main migration script" in r for r in report["recommendations"])

    def test_report_json_serializable(self):
        """Test report can be serialized to JSON"""
        report = generate_report([summary(inserts=1)])
        assert json.loads(json.dumps(report))["status"] == "FAIL"


class TestSeverity:
    """Test severity thresholds"""

    @pytest.mark.parametrize("rows,affected,expected", [
        (0, 0, "LOW"),
        (0, 3, "CRITICAL"),
        (10000, 5, "LOW"),
        (1000, 1, "MEDIUM"),
        (1000, 10, "HIGH"),
        (1000, 99, "HIGH"),
        (1000, 100, "CRITICAL"),
    ])
    def test_thresholds(self, rows, affected, expected):
        assert _calculate_severity(rows, affected) == expected


class TestExport:
    """Test report export"""

    @pytest.fixture
    def report(self):
        return generate_report([
            summary(rows=10, inserts=2),
            summary(table="log", status="target_not_found", rows=0),
        ])

    def test_export_json(self, report, tmp_path):
        """Test JSON export writes the full report"""
        path = tmp_path / "report.json"
        export_report_json(report, str(path))
        loaded = json.loads(path.read_text())
        assert loaded["total_tables"] == 2
        assert len(loaded["discrepancies"]) == 2

    def test_export_csv(self, report, tmp_path):
        """Test CSV export writes one row per discrepancy"""
        path = tmp_path / "report.csv"
        export_report_csv(report, str(path))
        with open(path, newline="") as f:
            rows = list(csv.reader(f))
        assert rows[0] == ["Table", "Issue Type", "Severity", "Rows Compared", "Rows Affected"]
        assert rows[1] == ["person", "MISSING_ROWS", "CRITICAL", "10", "2"]
        assert rows[2] == ["log", "NOT_COMPARED", "CRITICAL", "", ""]

    def test_export_csv_without_discrepancies(self, tmp_path):
        path = tmp_path / "report.csv"
        export_report_csv(generate_report([summary()]), str(path))
        assert path.read_text().splitlines() == ["Table,Issue Type,Severity,Rows Compared,Rows Affected"]

    def test_console_format(self, report):
        """Test console output contains all sections"""
        text = format_report_console(report)
        assert "DATA DIFF REPORT" in text
        assert "Status: FAIL" in text
        assert "Tables Failed: 1" in text
        assert "DISCREPANCIES" in text
        assert "Table: log" in text
        assert "RECOMMENDATIONS" in text

    def test_console_format_pass(self):
        text = format_report_console(generate_report([summary(rows=12345)]))
        assert "Rows Compared: 12,345" in text
        assert "DISCREPANCIES" not in text
