"""
Unit tests for the assertion engine.

Tests perfgate/assertions/engine.py
"""

import pytest

from perfgate.assertions.engine import AssertionEngine
from perfgate.core.exceptions import ThresholdViolationError
from perfgate.core.models import PerformanceTestConfig
from perfgate.features.fps_tracking import FPSMetrics
from perfgate.features.memory_tracking import MemoryMetrics, MemorySnapshot
from perfgate.iterations.stats import aggregate_iteration_results
from perfgate.iterations.types import ComponentIterationData, IterationResult
from perfgate.thresholds.resolver import resolve_thresholds


def engine_for(thresholds, local_env, settings, buffers=None):
    data = {"thresholds": {"base": thresholds}}
    if buffers:
        data["buffers"] = buffers
    cfg = PerformanceTestConfig.model_validate(data)
    return AssertionEngine(resolve_thresholds(cfg, local_env, settings))


def fps_result(avg, index=1):
    return IterationResult(index=index, fps=FPSMetrics(avg=avg, frame_count=60, tracking_duration_ms=1000))


def memory_result(growth, index=1):
    snapshot = MemorySnapshot(js_heap_used_size=1000, js_heap_total_size=2000, timestamp=0)
    return IterationResult(
        index=index,
        memory=MemoryMetrics(before=snapshot, after=snapshot, heap_growth=growth, heap_growth_percent=0),
    )


def component_result(duration, base_duration, rerenders, index=1, component="App"):
    return IterationResult(
        index=index,
        duration=duration,
        base_duration=base_duration,
        rerenders=rerenders,
        components={component: ComponentIterationData(duration, base_duration, rerenders)},
    )


class TestMinStyleMetrics:
    """FPS bounds are lower bounds."""

    def test_fps_above_buffered_bound_passes(self, local_env, settings):
        engine = engine_for({"fps": 30}, local_env, settings, buffers={"fps": 20})
        report = engine.evaluate(aggregate_iteration_results([fps_result(25)]))
        assert report.passed

    def test_fps_below_buffered_bound_fails(self, local_env, settings):
        engine = engine_for({"fps": 30}, local_env, settings, buffers={"fps": 20})
        report = engine.evaluate(aggregate_iteration_results([fps_result(20)]))

        assert not report.passed
        assert report.violations[0].describe() == "FPS avg: Expected: >= 24, Actual: 20"

    def test_fps_p95_bound(self, local_env, settings):
        engine = engine_for({"fps": {"avg": 30, "p95": 50}}, local_env, settings, buffers={"fps": 0})
        results = [fps_result(40, 1), fps_result(45, 2), fps_result(60, 3)]

        report = engine.evaluate(aggregate_iteration_results(results))

        assert [c.name for c in report.checks] == ["FPS avg", "FPS p95"]
        assert report.passed


class TestMaxStyleMetrics:
    """Everything else is an upper bound."""

    def test_heap_growth_over_bound_fails(self, local_env, settings):
        engine = engine_for({"memory": {"heapGrowth": 1000}}, local_env, settings)
        report = engine.evaluate(aggregate_iteration_results([memory_result(1500)]))

        assert not report.passed
        assert "Expected: <= 1200" in report.violations[0].describe()

    def test_unmeasured_metric_is_skipped(self, local_env, settings):
        engine = engine_for({"fps": 60}, local_env, settings)
        report = engine.evaluate(aggregate_iteration_results([IterationResult(index=1)]))

        assert report.passed
        assert report.checks == []
        assert report.skipped == ["FPS (not measured)"]

    def test_zero_threshold_not_checked(self, local_env, settings):
        engine = engine_for({"memory": {"heapGrowth": 0}}, local_env, settings)
        report = engine.evaluate(aggregate_iteration_results([memory_result(10 ** 9)]))
        assert report.passed


class TestComponentChecks:
    """Per-component, render activity and memoization checks."""

    def test_within_bounds(self, local_env, settings):
        engine = engine_for({"profiler": {"*": {"duration": 20, "rerenders": 2}}}, local_env, settings)
        report = engine.evaluate(aggregate_iteration_results([component_result(10, 10, 2)]))

        names = [c.name for c in report.checks]
        assert names == ["render activity", "App duration avg", "App rerenders avg", "App memoization"]
        assert report.passed

    def test_no_renders_fails_activity_check(self, local_env, settings):
        engine = engine_for({"profiler": {"*": {"duration": 20}}}, local_env, settings)
        report = engine.evaluate(aggregate_iteration_results([IterationResult(index=1)]))

        assert not report.passed
        assert report.violations[0].name == "render activity"

    def test_memoization_regression(self, local_env, settings):
        engine = engine_for({"profiler": {"*": {"duration": 100}}}, local_env, settings)
        # base 10ms allows up to 11ms actual
        report = engine.evaluate(aggregate_iteration_results([component_result(15, 10, 1)]))

        failed = [c.name for c in report.violations]
        assert failed == ["App memoization"]


class TestAssertThresholds:
    """All violations are reported together."""

    def test_multiple_violations_in_one_error(self, local_env, settings):
        engine = engine_for(
            {"fps": 60, "memory": {"heapGrowth": 100}},
            local_env,
            settings,
            buffers={"fps": 0, "heapGrowth": 0},
        )
        result = IterationResult(
            index=1,
            fps=FPSMetrics(avg=30, frame_count=30, tracking_duration_ms=1000),
            memory=memory_result(500).memory,
        )

        with pytest.raises(ThresholdViolationError) as exc_info:
            engine.assert_thresholds(aggregate_iteration_results([result]))

        error = exc_info.value
        assert len(error.violations) == 2
        message = str(error)
        assert message.startswith("2 performance threshold(s) violated:")
        assert "FPS avg: Expected: >= 60, Actual: 30" in message
        assert "heap growth avg: Expected: <= 100, Actual: 500" in message

    def test_error_is_an_assertion_error(self, local_env, settings):
        engine = engine_for({"fps": 60}, local_env, settings, buffers={"fps": 0})
        with pytest.raises(AssertionError):
            engine.assert_thresholds(aggregate_iteration_results([fps_result(10)]))

    def test_passing_report_returned(self, local_env, settings):
        engine = engine_for({"fps": 60}, local_env, settings)
        report = engine.assert_thresholds(aggregate_iteration_results([fps_result(59)]))
        assert report.exit_code == 0
        assert report.summary == "ALL 1 CHECKS PASSED"
