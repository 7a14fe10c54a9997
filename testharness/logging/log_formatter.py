"""Helpers for formatting harness results as plain text."""
from __future__ import annotations

from pathlib import Path
from typing import List

from testharness.core.models import HarnessReport, TestResult


def format_result_for_display(result: TestResult) -> str:
    line = f"{result.status.value:<7} : {result.name}"
    if result.message:
        line = f"{line}\n          {result.message}"
    return line


def format_summary(report: HarnessReport) -> str:
    counts: dict[str, int] = {}
    for result in report.tests:
        counts[result.status.value] = counts.get(result.status.value, 0) + 1
    totals = ", ".join(f"{status}={count}" for status, count in sorted(counts.items())) or "no tests"
    status = report.status.status.value if report.status.status else "-"
    summary = f"Harness status: {status} ({totals})"
    if report.status.message:
        summary = f"{summary}\n{report.status.message}"
    return summary


def export_result_lines(report: HarnessReport) -> List[str]:
    lines = [format_result_for_display(result) for result in report.tests]
    lines.append("")
    lines.append(format_summary(report))
    return lines


def write_result_lines(path: Path, report: HarnessReport) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("".join(f"{line}\n" for line in export_result_lines(report)), encoding="utf-8")
