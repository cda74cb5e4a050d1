"""
Threshold resolution - turn a test's threshold config into absolute bounds.

Resolution happens once per test, before any iteration runs, so invalid
values fail fast. The result has CI overrides merged (only when the
environment is CI), defaults filled and buffers applied.

Merging is key-wise: a bare number is {"avg": number}, and CI keys replace
base keys. A component that appears only under CI is ignored.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, Optional, Tuple

from perfgate.core.config import BufferSettings, Environment, PerformanceSettings, get_settings
from perfgate.core.exceptions import InvalidThresholdError, MissingThresholdError
from perfgate.core.models import BufferOverrides, PerformanceTestConfig, ThresholdValue, ThresholdValues
from perfgate.iterations.types import MetricKey
from perfgate.thresholds.calculator import effective_min_threshold, effective_threshold

logger = logging.getLogger(__name__)

STATISTICS = ("avg", "p50", "p95", "p99")
DEFAULT_COMPONENT_KEY = "*"


class MetricDirection(str, Enum):
    """MAX: lower is better (buffer added). MIN: higher is better (buffer subtracted)."""

    MAX = "max"
    MIN = "min"

    @property
    def symbol(self) -> str:
        return "<=" if self is MetricDirection.MAX else ">="

    def passes(self, actual: float, bound: float) -> bool:
        return actual <= bound if self is MetricDirection.MAX else actual >= bound


@dataclass(frozen=True)
class ResolvedBound:
    statistic: str
    base: float
    buffer_percent: float
    bound: float

    @property
    def enforced(self) -> bool:
        """A configured value of 0 means "track, do not gate"."""
        return self.base > 0


@dataclass(frozen=True)
class ResolvedMetricThreshold:
    label: str
    direction: MetricDirection
    bounds: Tuple[ResolvedBound, ...] = ()

    def bound(self, statistic: str) -> Optional[ResolvedBound]:
        for b in self.bounds:
            if b.statistic == statistic:
                return b
        return None

    def enforced_bounds(self) -> Tuple[ResolvedBound, ...]:
        return tuple(b for b in self.bounds if b.enforced)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "direction": self.direction.value,
            **{b.statistic: {"base": b.base, "buffer": b.buffer_percent, "bound": b.bound} for b in self.bounds},
        }


@dataclass(frozen=True)
class ResolvedComponentThresholds:
    duration: ResolvedMetricThreshold
    rerenders: ResolvedMetricThreshold


@dataclass(frozen=True)
class ResolvedThresholds:
    """Immutable, fully materialized thresholds for one test run."""

    environment: Environment
    buffers: BufferSettings
    metrics: Dict[MetricKey, ResolvedMetricThreshold] = field(default_factory=dict)
    components: Dict[str, ResolvedComponentThresholds] = field(default_factory=dict)

    @property
    def has_profiler_thresholds(self) -> bool:
        return bool(self.components)

    def metric(self, key: MetricKey) -> Optional[ResolvedMetricThreshold]:
        return self.metrics.get(key)

    def for_component(self, component_id: str) -> ResolvedComponentThresholds:
        """Thresholds for a component, falling back to the "*" entry."""
        if component_id in self.components:
            return self.components[component_id]
        if DEFAULT_COMPONENT_KEY in self.components:
            return self.components[DEFAULT_COMPONENT_KEY]
        raise MissingThresholdError(component_id, sorted(self.components))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "environment": self.environment.name,
            "metrics": {key.value: m.to_dict() for key, m in self.metrics.items()},
            "components": {
                component_id: {"duration": c.duration.to_dict(), "rerenders": c.rerenders.to_dict()}
                for component_id, c in self.components.items()
            },
        }


# =============================================================================
# Merging
# =============================================================================


def normalize_threshold(value: Optional[ThresholdValue]) -> Dict[str, float]:
    """Bare number -> {"avg": n}; object -> its set statistics."""
    if value is None:
        return {}
    if isinstance(value, (int, float)):
        return {"avg": float(value)}
    return {k: v for k, v in value.model_dump().items() if v is not None}


def merge_thresholds(
    base: Optional[ThresholdValue],
    ci: Optional[ThresholdValue],
    environment: Environment,
) -> Dict[str, float]:
    merged = normalize_threshold(base)
    if environment.is_ci:
        merged.update(normalize_threshold(ci))
    return merged


def resolve_buffers(
    overrides: Optional[BufferOverrides],
    defaults: Optional[BufferSettings] = None,
) -> BufferSettings:
    """Overlay per-test buffer overrides on the settings defaults."""
    defaults = defaults or get_settings().buffers
    if overrides is None:
        return defaults.model_copy(deep=True)

    top = {
        k: v
        for k, v in overrides.model_dump(exclude={"web_vitals", "long_tasks"}).items()
        if v is not None
    }
    web_vitals = defaults.web_vitals.model_copy(
        update=overrides.web_vitals.model_dump(exclude_none=True) if overrides.web_vitals else {}
    )
    long_tasks = defaults.long_tasks.model_copy(
        update=overrides.long_tasks.model_dump(exclude_none=True) if overrides.long_tasks else {}
    )
    return defaults.model_copy(update={**top, "web_vitals": web_vitals, "long_tasks": long_tasks})


def validate_buffers(buffers: BufferSettings) -> None:
    """Every buffer must be a percentage in [0, 100], used or not."""
    flat = {
        **buffers.model_dump(exclude={"web_vitals", "long_tasks"}),
        **{f"web_vitals.{k}": v for k, v in buffers.web_vitals.model_dump().items()},
        **{f"long_tasks.{k}": v for k, v in buffers.long_tasks.model_dump().items()},
    }
    for name, value in flat.items():
        if value < 0 or value > 100:
            raise InvalidThresholdError(
                f"Buffer '{name}' must be between 0 and 100, got {value}",
                value=value,
                context={"buffer": name},
            )


def resolve_metric_threshold(
    label: str,
    values: Dict[str, float],
    buffer_percent: float,
    direction: MetricDirection = MetricDirection.MAX,
    round_bound: bool = False,
) -> ResolvedMetricThreshold:
    """
    Apply the buffer to every configured statistic.

    `round_bound` ceils max-style bounds and floors min-style bounds (counts).
    Raises InvalidThresholdError for a negative value or an out-of-range buffer.
    """
    bounds = []
    for statistic in STATISTICS:
        if statistic not in values:
            continue
        base = values[statistic]
        if direction is MetricDirection.MAX:
            bound = effective_threshold(base, buffer_percent, round_up=round_bound)
        else:
            bound = effective_min_threshold(base, buffer_percent, round_down=round_bound)
        bounds.append(ResolvedBound(statistic, base, buffer_percent, bound))
    return ResolvedMetricThreshold(label, direction, tuple(bounds))


# =============================================================================
# Resolution
# =============================================================================


def _resolve_components(
    base: ThresholdValues,
    ci: Optional[ThresholdValues],
    environment: Environment,
    buffers: BufferSettings,
) -> Dict[str, ResolvedComponentThresholds]:
    ci_profiler = ci.profiler if ci else {}
    resolved: Dict[str, ResolvedComponentThresholds] = {}

    for component_id, base_component in base.profiler.items():
        ci_component = ci_profiler.get(component_id)
        duration = merge_thresholds(
            base_component.duration,
            ci_component.duration if ci_component else None,
            environment,
        )
        rerenders = base_component.rerenders
        if environment.is_ci and ci_component and ci_component.rerenders is not None:
            rerenders = ci_component.rerenders

        resolved[component_id] = ResolvedComponentThresholds(
            duration=resolve_metric_threshold(
                f"{component_id} duration", duration, buffers.duration,
            ),
            rerenders=resolve_metric_threshold(
                f"{component_id} rerenders",
                {"avg": rerenders} if rerenders is not None else {},
                buffers.rerenders,
                round_bound=True,
            ),
        )

    ignored = set(ci_profiler) - set(base.profiler)
    if environment.is_ci and ignored:
        logger.warning(f"[ThresholdResolver] CI thresholds without a base entry ignored: {sorted(ignored)}")
    return resolved


def _nested(values: Optional[ThresholdValues], group: str, name: str) -> Optional[ThresholdValue]:
    if values is None:
        return None
    container = getattr(values, group)
    return getattr(container, name) if container is not None else None


# (metric key, threshold group, threshold field, label, buffer lookup, count metric)
_PAGE_METRICS: Iterable[Tuple[MetricKey, str, str, str, Any, bool]] = (
    (MetricKey.HEAP_GROWTH, "memory", "heap_growth", "heap growth", lambda b: b.heap_growth, False),
    (MetricKey.LCP, "web_vitals", "lcp", "LCP", lambda b: b.web_vitals.lcp, False),
    (MetricKey.INP, "web_vitals", "inp", "INP", lambda b: b.web_vitals.inp, False),
    (MetricKey.CLS, "web_vitals", "cls", "CLS", lambda b: b.web_vitals.cls, False),
    (MetricKey.TTFB, "web_vitals", "ttfb", "TTFB", lambda b: b.web_vitals.ttfb, False),
    (MetricKey.FCP, "web_vitals", "fcp", "FCP", lambda b: b.web_vitals.fcp, False),
    (MetricKey.TBT, "long_tasks", "tbt", "TBT", lambda b: b.long_tasks.tbt, False),
    (MetricKey.LONG_TASK_MAX_DURATION, "long_tasks", "max_duration", "long task max duration",
     lambda b: b.long_tasks.max_duration, False),
    (MetricKey.LONG_TASK_COUNT, "long_tasks", "max_count", "long task count",
     lambda b: b.long_tasks.max_count, True),
)


def resolve_thresholds(
    config: PerformanceTestConfig,
    environment: Environment,
    settings: Optional[PerformanceSettings] = None,
) -> ResolvedThresholds:
    """
    Resolve every configured threshold for `environment`.

    fps gets a default avg (settings, 60) when fps thresholds are configured
    without one. Unconfigured metrics have no entry and are not enforced.
    """
    settings = settings or get_settings()
    buffers = resolve_buffers(config.buffers, settings.buffers)
    validate_buffers(buffers)
    base = config.thresholds.base
    ci = config.thresholds.ci

    metrics: Dict[MetricKey, ResolvedMetricThreshold] = {}

    fps = merge_thresholds(base.fps, ci.fps if ci else None, environment)
    if base.fps is not None or (ci is not None and ci.fps is not None):
        fps.setdefault("avg", settings.features.default_fps_threshold)
        metrics[MetricKey.FPS] = resolve_metric_threshold(
            "FPS", fps, buffers.fps, direction=MetricDirection.MIN,
        )

    for key, group, name, label, buffer_of, is_count in _PAGE_METRICS:
        values = merge_thresholds(_nested(base, group, name), _nested(ci, group, name), environment)
        if values:
            metrics[key] = resolve_metric_threshold(label, values, buffer_of(buffers), round_bound=is_count)

    resolved = ResolvedThresholds(
        environment=environment,
        buffers=buffers,
        metrics=metrics,
        components=_resolve_components(base, ci, environment, buffers),
    )
    logger.debug(
        f"[ThresholdResolver] Resolved {len(metrics)} metric(s), {len(resolved.components)} component(s) "
        f"for {environment.name}"
    )
    return resolved
