"""Reporting: result collection, console output and report files."""

from __future__ import annotations

from speclight.reporting.presenter import format_outcomes, print_outcomes
from speclight.reporting.report import ReportDocument, ReportWriteResult, render_report, write_reports
from speclight.reporting.collector import ResultCollector

__all__ = [
    "ReportDocument",
    "ReportWriteResult",
    "ResultCollector",
    "format_outcomes",
    "print_outcomes",
    "render_report",
    "write_reports",
]
