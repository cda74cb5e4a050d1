"""
Performance Test Runner - orchestrates one performance test end to end.

Flow:
    1. Resolve run settings and thresholds (configuration errors fail fast)
    2. Start features through the registry; resettable ones join coordination
    3. Run warmup + measured passes (IterationRunner)
    4. Aggregate, evaluate thresholds, log the results table
    5. Always: stop every handle, export the trace, clear coordination

A test-body error propagates ahead of any threshold violation.

Usage:
    async def body(context: PerformanceContext):
        await context.page.goto(url)
        await context.performance.init()

    result = await run_performance_test(page, config, body)
"""

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, List, Optional, Tuple, Union

from playwright.async_api import Error as PlaywrightError

from perfgate.assertions.engine import AssertionEngine, AssertionReport
from perfgate.assertions.report import build_results_payload, log_results_table
from perfgate.core.config import Environment, PerformanceSettings, detect_environment, get_settings
from perfgate.core.exceptions import ConfigurationError, ThresholdViolationError
from perfgate.core.logging_config import log_test_end, log_test_start
from perfgate.core.models import NetworkConditions, NetworkPreset, PerformanceTestConfig
from perfgate.features.builtin import get_feature_registry
from perfgate.features.coordination import FeatureCoordination
from perfgate.features.cpu_throttling import CPUThrottlingConfig
from perfgate.features.custom_metrics import CustomMetrics, CustomMetricsStore
from perfgate.features.fps_tracking import FPSTrackingConfig
from perfgate.features.long_tasks import LongTaskConfig
from perfgate.features.registry import FeatureRegistry
from perfgate.features.trace_capture import TraceCaptureConfig, TraceCaptureResult
from perfgate.features.types import FeatureHandle, FeatureName, is_resettable
from perfgate.iterations.runner import IterationRunner
from perfgate.iterations.types import ComponentIterationData, IterationMetrics, IterationResult, MetricKey
from perfgate.profiler.state import ProfilerState, capture_profiler_state
from perfgate.runner.instance import PerformanceContext, PerformanceInstance
from perfgate.thresholds.resolver import ResolvedThresholds, resolve_thresholds
from perfgate.trace.export import TraceExportConfig, export_trace, resolve_trace_export_config

if TYPE_CHECKING:
    from playwright.async_api import Page

logger = logging.getLogger(__name__)

DEFAULT_TEST_NAME = "performance-test"

BodyFn = Callable[[PerformanceContext], Awaitable[None]]

_WEB_VITAL_KEYS = (MetricKey.LCP, MetricKey.INP, MetricKey.CLS, MetricKey.TTFB, MetricKey.FCP)
_LONG_TASK_KEYS = (MetricKey.TBT, MetricKey.LONG_TASK_MAX_DURATION, MetricKey.LONG_TASK_COUNT)


# =============================================================================
# Run configuration
# =============================================================================


@dataclass(frozen=True)
class RunConfig:
    """A test config with every default filled in for the current environment."""

    name: str
    iterations: int
    warmup: bool
    throttle_rate: float
    network_throttling: Optional[Union[NetworkPreset, NetworkConditions]]
    trace_export: TraceExportConfig
    reset_page_between_iterations: bool


def resolve_run_config(
    config: PerformanceTestConfig,
    environment: Environment,
    settings: Optional[PerformanceSettings] = None,
) -> RunConfig:
    """
    Fill defaults: iterations from settings, warmup on in CI and off locally,
    throttle rate from settings.
    """
    settings = settings or get_settings()
    iterations = config.iterations if config.iterations is not None else settings.features.default_iterations
    throttle_rate = (
        config.throttle_rate if config.throttle_rate is not None else settings.features.default_throttle_rate
    )

    if iterations < 1:
        raise ConfigurationError(
            f"iterations must be >= 1, got {iterations}",
            context={"iterations": iterations},
        )
    if throttle_rate < 1:
        raise ConfigurationError(
            f"throttle rate must be >= 1, got {throttle_rate}",
            context={"throttle_rate": throttle_rate},
        )

    return RunConfig(
        name=config.name or DEFAULT_TEST_NAME,
        iterations=iterations,
        warmup=config.warmup if config.warmup is not None else environment.is_ci,
        throttle_rate=throttle_rate,
        network_throttling=config.network_throttling,
        trace_export=resolve_trace_export_config(config.export_trace),
        reset_page_between_iterations=config.reset_page_between_iterations,
    )


@dataclass
class RunResult:
    """Outcome of a run that got as far as evaluating thresholds."""

    name: str
    metrics: IterationMetrics
    report: AssertionReport
    thresholds: ResolvedThresholds
    payload: Dict[str, Any] = field(default_factory=dict)
    trace_path: Optional[Path] = None

    @property
    def passed(self) -> bool:
        return self.report.passed


def build_iteration_result(
    index: int,
    is_warmup: bool,
    profiler_state: Optional[ProfilerState],
    collected: Dict[str, Any],
    wall_time_ms: float = 0,
) -> IterationResult:
    """Combine the profiler snapshot and per-feature results of one pass."""
    components = {}
    if profiler_state is not None:
        components = {
            component_id: ComponentIterationData(
                duration=profile.total_actual_duration,
                base_duration=profile.total_base_duration,
                rerenders=profile.render_count,
            )
            for component_id, profile in profiler_state.components.items()
        }

    return IterationResult(
        index=index,
        is_warmup=is_warmup,
        duration=profiler_state.total_actual_duration if profiler_state else 0,
        base_duration=profiler_state.total_base_duration if profiler_state else 0,
        rerenders=profiler_state.sample_count if profiler_state else 0,
        wall_time_ms=round(wall_time_ms, 2),
        components=components,
        fps=collected.get(FeatureName.FPS_TRACKING.value),
        memory=collected.get(FeatureName.MEMORY_TRACKING.value),
        web_vitals=collected.get(FeatureName.WEB_VITALS.value),
        long_tasks=collected.get(FeatureName.LONG_TASKS.value),
        custom_metrics=collected.get(FeatureName.CUSTOM_METRICS.value),
    )


# =============================================================================
# Runner
# =============================================================================


class PerformanceTestRunner:
    """
    Runs one performance test against a page.

    Features:
    - Throttling and trace capture for the whole run
    - Tracking features started from the configured thresholds
    - Warmup and multi-iteration aggregation
    - All violations reported in one ThresholdViolationError
    """

    def __init__(
        self,
        page: "Page",
        config: PerformanceTestConfig,
        registry: Optional[FeatureRegistry] = None,
        environment: Optional[Environment] = None,
        output_dir: Optional[Path] = None,
        settings: Optional[PerformanceSettings] = None,
    ):
        """
        Args:
            page: Playwright page under test
            config: Test configuration
            registry: Feature registry (defaults to the built-in one)
            environment: Execution environment (defaults to the CI flag in settings)
            output_dir: Trace export directory (defaults to settings.trace_dir)
            settings: Harness settings (defaults to get_settings())
        """
        self.page = page
        self.config = config
        self.settings = settings or get_settings()
        self.registry = registry or get_feature_registry()
        self.environment = environment or detect_environment(self.settings)
        self.output_dir = Path(output_dir) if output_dir else self.settings.trace_dir

        self.coordination = FeatureCoordination()
        self.custom_metrics = CustomMetricsStore()
        self.performance = PerformanceInstance(page, self.coordination, self.custom_metrics)

        self.run_config: Optional[RunConfig] = None
        self.thresholds: Optional[ResolvedThresholds] = None
        self.handles: Dict[str, FeatureHandle] = {}
        self.stop_results: Dict[str, Any] = {}
        self.result: Optional[RunResult] = None

    async def execute(self, test_fn: BodyFn) -> RunResult:
        """
        Run the test and return its result.

        Raises:
            ConfigurationError / InvalidThresholdError: before any feature starts
            Exception from test_fn: after cleanup
            ThresholdViolationError: after cleanup, listing every violation
        """
        self.run_config = resolve_run_config(self.config, self.environment, self.settings)
        self.thresholds = resolve_thresholds(self.config, self.environment, self.settings)
        run_config = self.run_config

        started = time.monotonic()
        log_test_start(logger, run_config.name, run_config.iterations, run_config.warmup)

        passed = False
        trace_path: Optional[Path] = None
        try:
            await self._start_features()

            iteration_runner = IterationRunner(
                iterations=run_config.iterations,
                warmup=run_config.warmup,
                coordination=self.coordination,
                between_iterations=self._between_iterations if run_config.reset_page_between_iterations else None,
            )
            metrics = await iteration_runner.run(
                lambda index, is_warmup: self._execute_pass(test_fn, index, is_warmup)
            )

            report = AssertionEngine(self.thresholds).evaluate(metrics)
            log_results_table(report, run_config.name)
            passed = report.passed
        finally:
            trace_path = await self._cleanup()
            log_test_end(logger, run_config.name, passed, (time.monotonic() - started) * 1000)

        self.result = RunResult(
            name=run_config.name,
            metrics=metrics,
            report=report,
            thresholds=self.thresholds,
            payload=build_results_payload(
                run_config.name,
                metrics,
                self.thresholds,
                report,
                custom_metrics=self._last_custom_metrics(metrics),
            ),
            trace_path=trace_path,
        )

        if not report.passed:
            raise ThresholdViolationError(report.violations, context={"test": run_config.name})
        return self.result

    # =========================================================================
    # Features
    # =========================================================================

    def _feature_plan(self) -> List[Tuple[FeatureName, Any]]:
        """Which features to start, in start order, with their options."""
        run_config = self.run_config
        metrics = self.thresholds.metrics
        features = self.settings.features
        plan: List[Tuple[FeatureName, Any]] = []

        if run_config.throttle_rate > 1:
            plan.append((FeatureName.CPU_THROTTLING, CPUThrottlingConfig(rate=run_config.throttle_rate)))
        if run_config.network_throttling is not None:
            plan.append((FeatureName.NETWORK_THROTTLING, run_config.network_throttling))

        track_fps = MetricKey.FPS in metrics
        if run_config.trace_export.enabled:
            if track_fps:
                # Both need the Tracing domain; thresholds win over the export
                logger.warning("[PerformanceTestRunner] Trace export skipped: FPS tracking owns tracing")
            else:
                plan.append((FeatureName.TRACE, TraceCaptureConfig(timeout_ms=features.trace_timeout_ms)))
        if track_fps:
            plan.append((FeatureName.FPS_TRACKING, FPSTrackingConfig(trace_timeout_ms=features.fps_trace_timeout_ms)))
        if MetricKey.HEAP_GROWTH in metrics:
            plan.append((FeatureName.MEMORY_TRACKING, None))
        if any(key in metrics for key in _WEB_VITAL_KEYS):
            plan.append((FeatureName.WEB_VITALS, None))
        if any(key in metrics for key in _LONG_TASK_KEYS):
            plan.append((FeatureName.LONG_TASKS, LongTaskConfig(threshold_ms=features.long_task_threshold_ms)))
        plan.append((FeatureName.CUSTOM_METRICS, self.custom_metrics))
        return plan

    async def _start_features(self) -> None:
        for name, options in self._feature_plan():
            handle = await self.registry.start_feature(name.value, self.page, options)
            if handle is None:
                logger.warning(f"[PerformanceTestRunner] {name.value} unavailable, continuing without it")
                continue
            self.handles[name.value] = handle
            if is_resettable(handle):
                self.coordination.set_handle(name.value, handle)
        logger.debug(f"[PerformanceTestRunner] Active features: {', '.join(self.handles) or 'none'}")

    async def _cleanup(self) -> Optional[Path]:
        self.stop_results = await self.registry.stop_all(self.handles)
        self.coordination.clear()

        trace = self.stop_results.get(FeatureName.TRACE.value)
        if isinstance(trace, TraceCaptureResult):
            return export_trace(trace, self.run_config.name, self.output_dir, self.run_config.trace_export)
        return None

    # =========================================================================
    # Passes
    # =========================================================================

    async def _execute_pass(self, test_fn: BodyFn, index: int, is_warmup: bool) -> IterationResult:
        context = PerformanceContext(
            page=self.page,
            performance=self.performance,
            config=self.run_config,
            iteration=index,
            is_warmup=is_warmup,
        )
        started = time.monotonic()
        await test_fn(context)
        wall_time_ms = (time.monotonic() - started) * 1000

        collected = await self.coordination.collect_all_active()
        profiler_state = None
        if self.thresholds.has_profiler_thresholds:
            profiler_state = await capture_profiler_state(self.page)
        return build_iteration_result(index, is_warmup, profiler_state, collected, wall_time_ms)

    async def _between_iterations(self) -> None:
        try:
            await self.page.goto("about:blank")
        except PlaywrightError as e:
            logger.warning(f"[PerformanceTestRunner] Navigation to about:blank failed: {e}")

    @staticmethod
    def _last_custom_metrics(metrics: IterationMetrics) -> Optional[Dict[str, Any]]:
        if not metrics.results:
            return None
        custom: Optional[CustomMetrics] = metrics.results[-1].custom_metrics
        return custom.to_dict() if custom and custom.has_data() else None


async def run_performance_test(
    page: "Page",
    config: Union[PerformanceTestConfig, Dict[str, Any]],
    test_fn: BodyFn,
    **kwargs: Any,
) -> RunResult:
    """Build a runner for `config` (model or plain dict) and execute `test_fn`."""
    if not isinstance(config, PerformanceTestConfig):
        config = PerformanceTestConfig.model_validate(config)
    return await PerformanceTestRunner(page, config, **kwargs).execute(test_fn)
