"""
Render profiler state read from the page.

The application under test exposes `window.__REACT_PERFORMANCE__` with the
shape:

    {
      samples: [{id, phase, actualDuration, baseDuration, ...}],
      components: {id: {totalActualDuration, totalBaseDuration, renderCount, samples}},
      totalActualDuration, totalBaseDuration,
      reset(): void
    }

This module only reads and resets that store; producing samples is the
application's job.

Usage:
    await wait_for_initialization(page)
    await wait_until_stable(page)
    state = await capture_profiler_state(page)
"""

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, Optional

from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from perfgate.core.config import get_settings
from perfgate.core.exceptions import ProfilerStateError

if TYPE_CHECKING:
    from playwright.async_api import Page

logger = logging.getLogger(__name__)

PROFILER_STORE_KEY = "__REACT_PERFORMANCE__"
STABILITY_TRACKER_KEY = "__REACT_PERFORMANCE_STABILITY_TRACKER__"


class ProfilerErrorPhase:
    INITIALIZATION = "initialization"
    STABILIZATION = "stabilization"
    VALIDATION = "validation"


@dataclass(frozen=True)
class ComponentProfile:
    total_actual_duration: float
    total_base_duration: float
    render_count: int
    phase_breakdown: Dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class ProfilerState:
    sample_count: int
    total_actual_duration: float
    total_base_duration: float
    phase_breakdown: Dict[str, int] = field(default_factory=dict)
    components: Dict[str, ComponentProfile] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProfilerState":
        return cls(
            sample_count=data.get("sampleCount", 0),
            total_actual_duration=data.get("totalActualDuration", 0),
            total_base_duration=data.get("totalBaseDuration", 0),
            phase_breakdown=dict(data.get("phaseBreakdown", {})),
            components={
                component_id: ComponentProfile(
                    total_actual_duration=c.get("totalActualDuration", 0),
                    total_base_duration=c.get("totalBaseDuration", 0),
                    render_count=c.get("renderCount", 0),
                    phase_breakdown=dict(c.get("phaseBreakdown", {})),
                )
                for component_id, c in data.get("components", {}).items()
            },
        )


_CAPTURE_SCRIPT = """(key) => {
  const store = window[key];
  if (!store) {
    return null;
  }
  const countPhases = (samples) => {
    const counts = {};
    for (const sample of samples) {
      counts[sample.phase] = (counts[sample.phase] || 0) + 1;
    }
    return counts;
  };
  const components = {};
  for (const [id, metrics] of Object.entries(store.components || {})) {
    components[id] = {
      totalActualDuration: metrics.totalActualDuration,
      totalBaseDuration: metrics.totalBaseDuration,
      renderCount: metrics.renderCount,
      phaseBreakdown: countPhases(metrics.samples || []),
    };
  }
  return {
    sampleCount: store.samples.length,
    totalActualDuration: store.totalActualDuration,
    totalBaseDuration: store.totalBaseDuration,
    phaseBreakdown: countPhases(store.samples),
    components,
  };
}"""

_STABLE_SCRIPT = """({ key, trackerKey, stabilityPeriod, needSamples }) => {
  const profiler = window[key];
  if (!profiler) {
    return false;
  }
  const count = profiler.samples.length;
  const tracker = window[trackerKey];
  if (!tracker) {
    window[trackerKey] = { lastCount: count, lastChangeTime: Date.now() };
    return false;
  }
  if (count !== tracker.lastCount) {
    tracker.lastCount = count;
    tracker.lastChangeTime = Date.now();
    return false;
  }
  const quietFor = Date.now() - tracker.lastChangeTime;
  return quietFor >= stabilityPeriod && (!needSamples || count > 0);
}"""

_RESET_SCRIPT = """(key) => {
  const profiler = window[key];
  if (!profiler) {
    return false;
  }
  profiler.reset();
  return true;
}"""


async def read_profiler_state(page: "Page") -> Optional[ProfilerState]:
    """Snapshot the store without validation. None when the store is absent."""
    raw = await page.evaluate(_CAPTURE_SCRIPT, PROFILER_STORE_KEY)
    return ProfilerState.from_dict(raw) if raw is not None else None


async def capture_profiler_state(page: "Page") -> ProfilerState:
    """Snapshot the store, requiring it to exist and hold at least one sample."""
    state = await read_profiler_state(page)
    if state is None:
        raise ProfilerStateError(
            "Profiler state is null. Store may have been cleaned up.",
            ProfilerErrorPhase.VALIDATION,
            context={"state": None},
        )
    if state.sample_count == 0:
        raise ProfilerStateError(
            "Profiler state has zero samples. Component may not have rendered properly.",
            ProfilerErrorPhase.VALIDATION,
            context={"sample_count": 0},
        )
    return state


async def wait_for_initialization(page: "Page", timeout_ms: Optional[int] = None) -> None:
    timeout_ms = timeout_ms or get_settings().profiler.initialization_timeout_ms
    try:
        await page.wait_for_function(
            "(key) => window[key] !== undefined",
            arg=PROFILER_STORE_KEY,
            timeout=timeout_ms,
        )
    except PlaywrightTimeoutError as e:
        raise ProfilerStateError(
            f"Performance store not initialized within {timeout_ms}ms. "
            "Ensure the page navigated correctly and performance tracking is enabled.",
            ProfilerErrorPhase.INITIALIZATION,
            context={"timeout_ms": timeout_ms},
        ) from e


async def wait_until_stable(
    page: "Page",
    stability_period_ms: Optional[int] = None,
    check_interval_ms: Optional[int] = None,
    max_wait_ms: Optional[int] = None,
    require_samples: bool = True,
) -> None:
    """
    Wait until no new profiler samples arrive for `stability_period_ms`.

    `require_samples=False` allows an empty store (tests without render
    thresholds).
    """
    settings = get_settings().profiler
    stability_period_ms = stability_period_ms or settings.stability_period_ms
    check_interval_ms = check_interval_ms or settings.check_interval_ms
    max_wait_ms = max_wait_ms or settings.max_wait_ms

    try:
        await page.wait_for_function(
            _STABLE_SCRIPT,
            arg={
                "key": PROFILER_STORE_KEY,
                "trackerKey": STABILITY_TRACKER_KEY,
                "stabilityPeriod": stability_period_ms,
                "needSamples": require_samples,
            },
            polling=check_interval_ms,
            timeout=max_wait_ms,
        )
    except PlaywrightTimeoutError as e:
        raise ProfilerStateError(
            f"Performance data did not stabilize within {max_wait_ms}ms. React may still be updating.",
            ProfilerErrorPhase.STABILIZATION,
            context={
                "max_wait_ms": max_wait_ms,
                "stability_period_ms": stability_period_ms,
                "check_interval_ms": check_interval_ms,
            },
        ) from e
    finally:
        await page.evaluate("(key) => { delete window[key]; }", STABILITY_TRACKER_KEY)


async def reset_profiler(page: "Page") -> None:
    was_reset = await page.evaluate(_RESET_SCRIPT, PROFILER_STORE_KEY)
    if not was_reset:
        raise ProfilerStateError(
            "Cannot reset performance store: store not available. "
            "Ensure the profiler provider is mounted and the page has loaded.",
            ProfilerErrorPhase.VALIDATION,
            context={"action": "reset"},
        )
    logger.debug("[Profiler] Store reset")
