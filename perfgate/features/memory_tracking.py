"""Heap growth tracking through Performance.getMetrics (Chromium only)."""

import logging
import time
from dataclasses import asdict, dataclass
from typing import TYPE_CHECKING, Any, Dict, Iterable, Optional

from perfgate.core.formatters import format_bytes, format_percent
from perfgate.features.handles import ManagedResettableHandle
from perfgate.features.types import Capability, FeatureName, FeatureState
from perfgate.features.utils import open_feature_session

if TYPE_CHECKING:
    from playwright.async_api import CDPSession, Page

logger = logging.getLogger(__name__)

JS_HEAP_USED_SIZE = "JSHeapUsedSize"
JS_HEAP_TOTAL_SIZE = "JSHeapTotalSize"


@dataclass(frozen=True)
class MemorySnapshot:
    js_heap_used_size: float
    js_heap_total_size: float
    timestamp: float


@dataclass(frozen=True)
class MemoryMetrics:
    before: MemorySnapshot
    after: MemorySnapshot
    heap_growth: float
    heap_growth_percent: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class MemoryTrackingState(FeatureState):
    baseline: Optional[MemorySnapshot] = None


def extract_memory_snapshot(metrics: Iterable[Dict[str, Any]]) -> MemorySnapshot:
    """Build a snapshot from the `metrics` list of a Performance.getMetrics response."""
    values = {m.get("name"): m.get("value", 0) for m in metrics}
    return MemorySnapshot(
        js_heap_used_size=values.get(JS_HEAP_USED_SIZE, 0),
        js_heap_total_size=values.get(JS_HEAP_TOTAL_SIZE, 0),
        timestamp=time.time() * 1000,
    )


def calculate_memory_growth(before: MemorySnapshot, after: MemorySnapshot) -> MemoryMetrics:
    growth = after.js_heap_used_size - before.js_heap_used_size
    percent = growth / before.js_heap_used_size * 100 if before.js_heap_used_size > 0 else 0
    return MemoryMetrics(
        before=before,
        after=after,
        heap_growth=growth,
        heap_growth_percent=round(percent, 2),
    )


async def capture_memory_snapshot(session: "CDPSession") -> MemorySnapshot:
    response = await session.send("Performance.getMetrics")
    return extract_memory_snapshot(response.get("metrics", []))


async def _collect(state: MemoryTrackingState) -> MemoryMetrics:
    after = await capture_memory_snapshot(state.session)
    return calculate_memory_growth(state.baseline, after)


async def _stop(state: MemoryTrackingState) -> MemoryMetrics:
    metrics = await _collect(state)
    await state.session.send("Performance.disable")
    logger.info(
        f"[MemoryTracking] Heap growth: {format_bytes(metrics.heap_growth)} "
        f"({format_percent(metrics.heap_growth_percent)})"
    )
    return metrics


async def _reset(state: MemoryTrackingState) -> None:
    state.baseline = await capture_memory_snapshot(state.session)


class MemoryTrackingFeature:
    """Heap growth from a baseline snapshot. Reset takes a new baseline."""

    name = FeatureName.MEMORY_TRACKING.value
    requires_capability = Capability.CHROMIUM_ONLY

    async def start(
        self,
        page: "Page",
        options: Any = None,
    ) -> Optional[ManagedResettableHandle[MemoryTrackingState, MemoryMetrics]]:
        baseline: Dict[str, MemorySnapshot] = {}

        async def setup(session) -> None:
            await session.send("Performance.enable")
            baseline["snapshot"] = await capture_memory_snapshot(session)

        session = await open_feature_session(page, self.name, setup)
        if session is None:
            return None

        snapshot = baseline["snapshot"]
        logger.info(
            f"[MemoryTracking] Enabled (initial heap: {format_bytes(snapshot.js_heap_used_size)})"
        )
        state = MemoryTrackingState(page=page, session=session, baseline=snapshot)
        return ManagedResettableHandle(
            self.name,
            state,
            on_stop=_stop,
            on_reset=_reset,
            on_collect=_collect,
        )


memory_tracking_feature = MemoryTrackingFeature()
