"""
Reports summarizing comparison runs.
"""

from .formatters import export_report_csv, export_report_json, format_report_console
from .generator import DiscrepancyType, generate_report, merge_summaries

__all__ = [
    "DiscrepancyType",
    "export_report_csv",
    "export_report_json",
    "format_report_console",
    "generate_report",
    "merge_summaries",
]
