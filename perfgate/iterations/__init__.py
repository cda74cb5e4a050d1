"""Warmup and multi-iteration execution with aggregation."""

from perfgate.iterations.runner import IterationPlan, IterationRunner, RunnerState
from perfgate.iterations.stats import aggregate_iteration_results, summarize
from perfgate.iterations.types import (
    ComponentIterationData,
    IterationMetrics,
    IterationResult,
    MetricKey,
    MetricSummary,
)

__all__ = [
    "IterationPlan",
    "IterationRunner",
    "RunnerState",
    "aggregate_iteration_results",
    "summarize",
    "ComponentIterationData",
    "IterationMetrics",
    "IterationResult",
    "MetricKey",
    "MetricSummary",
]
