"""
Unit tests for iteration aggregation.

Tests perfgate/iterations/stats.py
"""

from perfgate.features.fps_tracking import FPSMetrics
from perfgate.iterations.stats import (
    aggregate_iteration_results,
    calculate_average,
    calculate_std_dev,
    summarize,
)
from perfgate.iterations.types import ComponentIterationData, IterationResult, MetricKey


def result(index, duration, fps=None, components=None):
    return IterationResult(
        index=index,
        duration=duration,
        rerenders=2,
        fps=FPSMetrics(avg=fps, frame_count=100, tracking_duration_ms=1000) if fps is not None else None,
        components=components or {},
    )


class TestStatistics:
    """Tests for the helpers."""

    def test_average_rounds_to_two_decimals(self):
        assert calculate_average([1, 2, 2]) == 1.67

    def test_average_of_empty_is_none(self):
        assert calculate_average([]) is None

    def test_std_dev_is_population(self):
        assert calculate_std_dev([2, 4, 4, 4, 5, 5, 7, 9]) == 2

    def test_std_dev_of_single_value_is_zero(self):
        assert calculate_std_dev([42]) == 0

    def test_summarize_skips_missing_values(self):
        summary = summarize([10, None, 30])
        assert summary.avg == 20
        assert summary.samples == 2
        assert (summary.min, summary.max) == (10, 30)

    def test_summarize_nothing_measured(self):
        assert summarize([None, None]) is None

    def test_summary_percentiles(self):
        summary = summarize([10, 20, 30, 40, 50, 60, 70, 80, 90, 100])
        assert summary.p50 == 50
        assert summary.p95 == 100
        assert summary.p99 == 100


class TestAggregateIterationResults:
    """Tests for aggregating a run."""

    def test_discard_first(self):
        metrics = aggregate_iteration_results([result(0, 1000), result(1, 100), result(2, 200)], discard_first=True)

        assert metrics.iterations == 2
        assert metrics.average(MetricKey.DURATION) == 150
        assert metrics.summary(MetricKey.DURATION).p99 == 200
        assert metrics.summary(MetricKey.DURATION).max == 200
        assert metrics.warmup_result.index == 0
        assert [r.index for r in metrics.results] == [1, 2]

    def test_keeps_all_without_discard(self):
        metrics = aggregate_iteration_results([result(1, 100), result(2, 200)])
        assert metrics.iterations == 2
        assert metrics.summary(MetricKey.DURATION).std_dev == 50

    def test_unmeasured_metric_has_no_summary(self):
        metrics = aggregate_iteration_results([result(1, 100)])
        assert metrics.summary(MetricKey.FPS) is None
        assert metrics.summary(MetricKey.LCP) is None

    def test_partial_fps_uses_measured_iterations(self):
        metrics = aggregate_iteration_results([result(1, 100, fps=50), result(2, 100), result(3, 100, fps=60)])

        fps = metrics.summary(MetricKey.FPS)
        assert fps.avg == 55
        assert fps.samples == 2

    def test_components_aggregated_per_id(self):
        runs = [
            result(1, 10, components={"Header": ComponentIterationData(4, 5, 1)}),
            result(2, 10, components={"Header": ComponentIterationData(6, 5, 3)}),
        ]

        metrics = aggregate_iteration_results(runs)

        header = metrics.components["Header"]
        assert header.duration.avg == 5
        assert header.base_duration.avg == 5
        assert header.rerenders.avg == 2

    def test_to_dict(self):
        metrics = aggregate_iteration_results([result(0, 900), result(1, 100)], discard_first=True)
        data = metrics.to_dict()

        assert data["iterations"] == 1
        assert data["warmupDiscarded"] is True
        assert data["metrics"]["duration"]["avg"] == 100
