"""
Assertion Engine - compare aggregated metrics with resolved thresholds.

Every check is evaluated before anything is raised, so a failing run reports
all regressed metrics at once:

    engine = AssertionEngine(resolved_thresholds)
    report = engine.evaluate(iteration_metrics)
    engine.assert_thresholds(iteration_metrics)   # raises ThresholdViolationError

Skipped, not failed:
- metrics without a configured threshold, or with a threshold of 0
- metrics that were never measured (None)
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from perfgate.core.exceptions import ThresholdViolationError
from perfgate.core.formatters import format_number
from perfgate.iterations.types import IterationMetrics, MetricKey, MetricSummary
from perfgate.thresholds.resolver import (
    MetricDirection,
    ResolvedMetricThreshold,
    ResolvedThresholds,
)

logger = logging.getLogger(__name__)

MEMOIZATION_TOLERANCE_PERCENT = 5
MEMOIZATION_TOLERANCE_MS = 1


@dataclass
class MetricCheck:
    """Result of checking one statistic of one metric."""
    name: str
    actual: float
    bound: float
    direction: MetricDirection
    passed: bool
    base: Optional[float] = None
    buffer_percent: Optional[float] = None

    def describe(self) -> str:
        return (
            f"{self.name}: Expected: {self.direction.symbol} {format_number(self.bound)}, "
            f"Actual: {format_number(self.actual)}"
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "actual": self.actual,
            "bound": self.bound,
            "comparison": self.direction.symbol,
            "base": self.base,
            "buffer": self.buffer_percent,
            "passed": self.passed,
        }


@dataclass
class AssertionReport:
    """Aggregate result of all checks."""
    passed: bool
    checks: List[MetricCheck]
    violations: List[MetricCheck]
    skipped: List[str] = field(default_factory=list)

    @property
    def summary(self) -> str:
        if self.passed:
            return f"ALL {len(self.checks)} CHECKS PASSED"
        return f"{len(self.violations)} OF {len(self.checks)} CHECKS FAILED"

    @property
    def exit_code(self) -> int:
        """Return exit code for CI (0 = pass, 1 = fail)."""
        return 0 if self.passed else 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "passed": self.passed,
            "summary": self.summary,
            "checks": [c.to_dict() for c in self.checks],
            "skipped": self.skipped,
        }


class AssertionEngine:
    """
    Checks aggregated metrics against resolved thresholds.

    Features:
    - avg and percentile bounds per metric
    - min-style (fps) and max-style (everything else) comparison
    - per-component duration and rerender bounds with "*" fallback
    - render activity and memoization checks when component thresholds exist
    """

    def __init__(self, thresholds: ResolvedThresholds):
        self.thresholds = thresholds

    def evaluate(self, metrics: IterationMetrics) -> AssertionReport:
        checks: List[MetricCheck] = []
        skipped: List[str] = []

        for key, threshold in self.thresholds.metrics.items():
            summary = metrics.summary(key)
            if summary is None:
                skipped.append(f"{threshold.label} (not measured)")
                continue
            checks.extend(self._check_metric(threshold, summary, skipped))

        if self.thresholds.has_profiler_thresholds:
            checks.extend(self._check_components(metrics, skipped))

        violations = [c for c in checks if not c.passed]
        report = AssertionReport(
            passed=not violations,
            checks=checks,
            violations=violations,
            skipped=skipped,
        )
        logger.info(f"[AssertionEngine] {report.summary}")
        for check in violations:
            logger.warning(f"[AssertionEngine] {check.describe()}")
        return report

    def assert_thresholds(self, metrics: IterationMetrics) -> AssertionReport:
        """Evaluate and raise one ThresholdViolationError listing every violation."""
        report = self.evaluate(metrics)
        if not report.passed:
            raise ThresholdViolationError(report.violations, context={"summary": report.summary})
        return report

    def _check_metric(
        self,
        threshold: ResolvedMetricThreshold,
        summary: MetricSummary,
        skipped: List[str],
        label: Optional[str] = None,
    ) -> List[MetricCheck]:
        label = label or threshold.label
        checks = []
        for bound in threshold.enforced_bounds():
            actual = summary.statistic(bound.statistic)
            if actual is None:
                skipped.append(f"{label} {bound.statistic} (not measured)")
                continue
            checks.append(MetricCheck(
                name=f"{label} {bound.statistic}",
                actual=actual,
                bound=bound.bound,
                direction=threshold.direction,
                passed=threshold.direction.passes(actual, bound.bound),
                base=bound.base,
                buffer_percent=bound.buffer_percent,
            ))
        return checks

    def _check_components(self, metrics: IterationMetrics, skipped: List[str]) -> List[MetricCheck]:
        rerenders = metrics.average(MetricKey.RERENDERS) or 0
        checks = [MetricCheck(
            name="render activity",
            actual=rerenders,
            bound=1,
            direction=MetricDirection.MIN,
            passed=rerenders >= 1,
        )]

        for component_id, summary in metrics.components.items():
            component = self.thresholds.for_component(component_id)
            checks.extend(self._check_metric(
                component.duration, summary.duration, skipped, label=f"{component_id} duration",
            ))
            checks.extend(self._check_metric(
                component.rerenders, summary.rerenders, skipped, label=f"{component_id} rerenders",
            ))

            base = summary.base_duration.avg
            if base > 0:
                allowed = base + max(MEMOIZATION_TOLERANCE_MS, base * MEMOIZATION_TOLERANCE_PERCENT / 100)
                checks.append(MetricCheck(
                    name=f"{component_id} memoization",
                    actual=summary.duration.avg,
                    bound=round(allowed, 2),
                    direction=MetricDirection.MAX,
                    passed=summary.duration.avg <= allowed,
                    base=base,
                ))
        return checks
