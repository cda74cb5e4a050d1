"""Threshold calculation and resolution."""

from perfgate.thresholds.calculator import calculate_percentile, effective_min_threshold, effective_threshold
from perfgate.thresholds.resolver import (
    MetricDirection,
    ResolvedMetricThreshold,
    ResolvedThresholds,
    resolve_thresholds,
)

__all__ = [
    "calculate_percentile",
    "effective_min_threshold",
    "effective_threshold",
    "MetricDirection",
    "ResolvedMetricThreshold",
    "ResolvedThresholds",
    "resolve_thresholds",
]
