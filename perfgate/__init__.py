"""
perfgate - performance regression gates for browser tests.

Runs a test body one or more times against a Playwright page, measures render,
frame-rate, memory, web-vitals and long-task metrics, and fails the test when
any aggregated metric crosses its buffered threshold.

Usage:
    from perfgate import PerformanceTestConfig, run_performance_test

    config = PerformanceTestConfig.model_validate({
        "name": "dashboard",
        "iterations": 5,
        "thresholds": {"base": {"profiler": {"*": {"duration": 16, "rerenders": 3}}, "fps": 55}},
    })

    async def body(context):
        await context.page.goto("http://localhost:3000/dashboard")
        await context.performance.init()

    result = await run_performance_test(page, config, body)
"""

from perfgate.assertions import AssertionEngine, AssertionReport
from perfgate.core import (
    ConfigurationError,
    Environment,
    InvalidThresholdError,
    MissingThresholdError,
    PerfGateError,
    PerformanceTestConfig,
    ThresholdViolationError,
    detect_environment,
    get_settings,
    load_test_config,
    setup_logging,
)
from perfgate.features import FeatureCoordination, FeatureName, FeatureRegistry, get_feature_registry
from perfgate.iterations import IterationMetrics, IterationResult, IterationRunner
from perfgate.runner import (
    PerformanceContext,
    PerformanceInstance,
    PerformanceTestRunner,
    RunResult,
    run_performance_test,
)
from perfgate.thresholds import ResolvedThresholds, effective_threshold, resolve_thresholds

__version__ = "0.1.0"

__all__ = [
    # Runner
    "PerformanceTestRunner",
    "PerformanceContext",
    "PerformanceInstance",
    "RunResult",
    "run_performance_test",
    # Config
    "Environment",
    "PerformanceTestConfig",
    "detect_environment",
    "get_settings",
    "load_test_config",
    "setup_logging",
    # Features
    "FeatureCoordination",
    "FeatureName",
    "FeatureRegistry",
    "get_feature_registry",
    # Iterations
    "IterationMetrics",
    "IterationResult",
    "IterationRunner",
    # Thresholds / assertions
    "AssertionEngine",
    "AssertionReport",
    "ResolvedThresholds",
    "effective_threshold",
    "resolve_thresholds",
    # Errors
    "PerfGateError",
    "ConfigurationError",
    "InvalidThresholdError",
    "MissingThresholdError",
    "ThresholdViolationError",
]
