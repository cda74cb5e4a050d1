"""
Aggregation of iteration results.

Averages are rounded to 2 decimals. Standard deviation is the population
standard deviation and is 0 for a single sample. Percentiles use the
nearest-rank method. Iterations that did not measure a metric (None) are left
out of that metric's aggregate; a metric nobody measured has no summary.
"""

import statistics
from collections import defaultdict
from typing import Dict, List, Optional, Sequence

from perfgate.iterations.types import (
    ComponentSummary,
    IterationMetrics,
    IterationResult,
    MetricKey,
    MetricSummary,
)
from perfgate.thresholds.calculator import calculate_percentile

PERCENTILES = (50, 95, 99)


def round_to(value: float, decimals: int = 2) -> float:
    return round(value, decimals)


def calculate_average(values: Sequence[float]) -> Optional[float]:
    if not values:
        return None
    return round_to(sum(values) / len(values))


def calculate_std_dev(values: Sequence[float]) -> float:
    if len(values) < 2:
        return 0.0
    return round_to(statistics.pstdev(values))


def summarize(values: Sequence[Optional[float]]) -> Optional[MetricSummary]:
    """Summarize the non-None values; None if there are none."""
    measured = [float(v) for v in values if v is not None]
    if not measured:
        return None
    p50, p95, p99 = (calculate_percentile(measured, p) for p in PERCENTILES)
    return MetricSummary(
        avg=calculate_average(measured),
        samples=len(measured),
        std_dev=calculate_std_dev(measured),
        min=min(measured),
        max=max(measured),
        p50=p50,
        p95=p95,
        p99=p99,
    )


def _summarize_components(results: Sequence[IterationResult]) -> Dict[str, ComponentSummary]:
    durations: Dict[str, List[float]] = defaultdict(list)
    base_durations: Dict[str, List[float]] = defaultdict(list)
    rerenders: Dict[str, List[float]] = defaultdict(list)

    for result in results:
        for component_id, data in result.components.items():
            durations[component_id].append(data.duration)
            base_durations[component_id].append(data.base_duration)
            rerenders[component_id].append(data.rerenders)

    return {
        component_id: ComponentSummary(
            duration=summarize(durations[component_id]),
            base_duration=summarize(base_durations[component_id]),
            rerenders=summarize(rerenders[component_id]),
        )
        for component_id in durations
    }


def aggregate_iteration_results(
    results: Sequence[IterationResult],
    discard_first: bool = False,
) -> IterationMetrics:
    """
    Aggregate results in pass order.

    With `discard_first`, the first result is the warmup and is excluded from
    every statistic (it is still returned as `warmup_result`).
    """
    warmup = None
    counted = list(results)
    if discard_first and counted:
        warmup, counted = counted[0], counted[1:]

    per_pass = [r.metric_values() for r in counted]
    summaries: Dict[MetricKey, MetricSummary] = {}
    for key in MetricKey:
        summary = summarize([values[key] for values in per_pass])
        if summary is not None:
            summaries[key] = summary

    return IterationMetrics(
        iterations=len(counted),
        results=counted,
        summaries=summaries,
        components=_summarize_components(counted),
        warmup_result=warmup,
    )
