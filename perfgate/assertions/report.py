"""
Report - console results table and JSON payload for one performance test.

Produces:
- A results table logged line by line (one row per check)
- A JSON-serializable payload for CI artifacts (metrics, thresholds, buffers, environment)
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from perfgate.assertions.engine import AssertionReport
from perfgate.core.formatters import format_number
from perfgate.iterations.types import IterationMetrics
from perfgate.thresholds.resolver import ResolvedThresholds
from perfgate.trace.export import sanitize_name

logger = logging.getLogger(__name__)

ARTIFACT_SUFFIX = "performance-data"
_COLUMNS = ("Metric", "Actual", "Threshold", "Result")


def generate_artifact_name(title: str) -> str:
    """Artifact name for a test title, e.g. dashboard-load-performance-data."""
    name = sanitize_name(title) or "test"
    return f"{name}-{ARTIFACT_SUFFIX}"


def build_results_table(report: AssertionReport) -> List[str]:
    """Render the checks as fixed-width text rows, header and footer included."""
    rows = [
        (
            check.name,
            format_number(check.actual),
            f"{check.direction.symbol} {format_number(check.bound)}",
            "PASS" if check.passed else "FAIL",
        )
        for check in report.checks
    ]
    widths = [
        max(len(_COLUMNS[i]), *(len(row[i]) for row in rows)) if rows else len(_COLUMNS[i])
        for i in range(len(_COLUMNS))
    ]

    def line(cells) -> str:
        return "  ".join(cell.ljust(width) for cell, width in zip(cells, widths)).rstrip()

    separator = "-" * (sum(widths) + 2 * (len(widths) - 1))
    lines = [line(_COLUMNS), separator]
    lines.extend(line(row) for row in rows)
    lines.append(separator)
    lines.append(report.summary)
    for item in report.skipped:
        lines.append(f"  skipped: {item}")
    return lines


def log_results_table(report: AssertionReport, test_name: Optional[str] = None) -> None:
    level = logging.INFO if report.passed else logging.WARNING
    if test_name:
        logger.log(level, f"[Report] Results for {test_name}")
    for text in build_results_table(report):
        logger.log(level, f"[Report] {text}")


def build_results_payload(
    test_name: str,
    metrics: IterationMetrics,
    thresholds: ResolvedThresholds,
    report: Optional[AssertionReport] = None,
    custom_metrics: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Build the JSON payload attached to the test run.

    Args:
        test_name: Test title
        metrics: Aggregated iteration metrics
        thresholds: Thresholds the run was checked against
        report: Assertion report (omitted when assertions did not run)
        custom_metrics: Marks and measures from the last counted pass

    Returns:
        Dict ready for json.dumps
    """
    payload: Dict[str, Any] = {
        "testName": test_name,
        "artifactName": generate_artifact_name(test_name),
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "environment": thresholds.environment.name,
        "metrics": metrics.to_dict(),
        "thresholds": thresholds.to_dict(),
        "buffers": thresholds.buffers.model_dump(),
    }
    if report is not None:
        payload["assertions"] = report.to_dict()
    if custom_metrics:
        payload["customMetrics"] = custom_metrics
    return payload
