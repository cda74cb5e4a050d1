"""
Long task tracking (tasks over 50ms) and Total Blocking Time.

TBT is the sum over long tasks of the time beyond the threshold. Browsers
without the longtask entry type report zero tasks.
"""

import logging
from dataclasses import asdict, dataclass, field
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional

from perfgate.browser.store import BrowserStore
from perfgate.core.config import get_settings
from perfgate.features.handles import ManagedResettableHandle
from perfgate.features.types import Capability, FeatureName, FeatureState

if TYPE_CHECKING:
    from playwright.async_api import Page

logger = logging.getLogger(__name__)

LONG_TASKS_STORE_KEY = "__LONG_TASKS__"

_SETUP_TEMPLATE = """() => {
  const KEY = '__LONG_TASKS__';
  const THRESHOLD = __THRESHOLD__;
  if (window[KEY] && window[KEY].initialized) {
    return;
  }
  const store = { entries: [], initialized: true };
  window[KEY] = store;
  if (typeof PerformanceObserver === 'undefined') {
    return;
  }
  try {
    new PerformanceObserver((list) => {
      for (const entry of list.getEntries()) {
        if (entry.duration <= THRESHOLD) {
          continue;
        }
        const attr = (entry.attribution && entry.attribution[0]) || {};
        store.entries.push({
          duration: entry.duration,
          startTime: entry.startTime,
          containerType: attr.containerType || 'window',
          containerId: attr.containerId || null,
          containerName: attr.containerName || null,
          containerSrc: attr.containerSrc || null,
        });
      }
    }).observe({ type: 'longtask', buffered: true });
  } catch (e) {
    store.unsupported = true;
  }
}"""

_RESET_SCRIPT = "(store) => { store.entries = []; }"


def long_tasks_store(threshold_ms: Optional[float] = None) -> BrowserStore:
    threshold = threshold_ms if threshold_ms is not None else get_settings().features.long_task_threshold_ms
    setup = _SETUP_TEMPLATE.replace("__THRESHOLD__", f"{threshold:g}")
    return BrowserStore(LONG_TASKS_STORE_KEY, setup, _RESET_SCRIPT)


@dataclass(frozen=True)
class LongTaskEntry:
    duration: float
    start_time: float
    container_type: str = "window"
    container_id: Optional[str] = None
    container_name: Optional[str] = None
    container_src: Optional[str] = None


@dataclass(frozen=True)
class LongTaskMetrics:
    tbt: float
    max_duration: float
    count: int
    entries: List[LongTaskEntry] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def calculate_long_task_metrics(entries: Iterable[LongTaskEntry], threshold_ms: float) -> LongTaskMetrics:
    entries = list(entries)
    tbt = sum(max(0.0, e.duration - threshold_ms) for e in entries)
    max_duration = max((e.duration for e in entries), default=0)
    return LongTaskMetrics(tbt=tbt, max_duration=max_duration, count=len(entries), entries=entries)


def parse_long_task_entries(raw: Dict[str, Any]) -> List[LongTaskEntry]:
    return [
        LongTaskEntry(
            duration=e.get("duration", 0),
            start_time=e.get("startTime", 0),
            container_type=e.get("containerType") or "window",
            container_id=e.get("containerId"),
            container_name=e.get("containerName"),
            container_src=e.get("containerSrc"),
        )
        for e in raw.get("entries", [])
    ]


@dataclass
class LongTaskState(FeatureState):
    store: Optional[BrowserStore] = None
    threshold_ms: float = 50


@dataclass
class LongTaskConfig:
    threshold_ms: Optional[float] = None


async def _collect(state: LongTaskState) -> Optional[LongTaskMetrics]:
    raw = await state.store.read(state.page)
    if raw is None:
        return None
    return calculate_long_task_metrics(parse_long_task_entries(raw), state.threshold_ms)


async def _reset(state: LongTaskState) -> None:
    await state.store.reset(state.page)


async def _stop(state: LongTaskState) -> Optional[LongTaskMetrics]:
    metrics = await _collect(state)
    await state.store.teardown(state.page)
    return metrics


class LongTasksFeature:
    name = FeatureName.LONG_TASKS.value
    requires_capability = Capability.ANY

    async def start(
        self,
        page: "Page",
        options: Optional[LongTaskConfig] = None,
    ) -> ManagedResettableHandle[LongTaskState, LongTaskMetrics]:
        threshold = options.threshold_ms if options and options.threshold_ms is not None else (
            get_settings().features.long_task_threshold_ms
        )
        store = long_tasks_store(threshold)
        await store.inject(page)
        await store.ensure_initialized(page)
        logger.debug(f"[LongTasks] Observer installed (threshold {threshold:g}ms)")
        return ManagedResettableHandle(
            self.name,
            LongTaskState(page=page, store=store, threshold_ms=threshold),
            on_stop=_stop,
            on_reset=_reset,
            on_collect=_collect,
        )


long_tasks_feature = LongTasksFeature()
