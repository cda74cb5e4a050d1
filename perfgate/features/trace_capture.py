"""Full timeline trace for flamegraph export (Chromium only)."""

import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, List, Optional

from perfgate.core.config import get_settings
from perfgate.features.handles import ManagedFeatureHandle
from perfgate.features.types import Capability, FeatureName, FeatureState
from perfgate.features.utils import TraceEvent, collect_trace_data, open_feature_session

if TYPE_CHECKING:
    from playwright.async_api import Page

logger = logging.getLogger(__name__)

FLAMEGRAPH_TRACING_CATEGORIES = ",".join([
    "devtools.timeline",
    "v8.execute",
    "disabled-by-default-devtools.timeline",
    "disabled-by-default-devtools.timeline.frame",
    "disabled-by-default-devtools.timeline.stack",
    "disabled-by-default-v8.cpu_profiler",
])
SAMPLING_FREQUENCY_HZ = 10000


@dataclass(frozen=True)
class TraceCaptureResult:
    events: List[TraceEvent] = field(default_factory=list)
    trace_duration_ms: float = 0

    @property
    def event_count(self) -> int:
        return len(self.events)


@dataclass
class TraceCaptureConfig:
    timeout_ms: Optional[int] = None


@dataclass
class TraceState(FeatureState):
    started_at: float = 0
    timeout_ms: int = 30000


async def _stop(state: TraceState) -> TraceCaptureResult:
    duration_ms = (time.monotonic() - state.started_at) * 1000
    events = await collect_trace_data(state.session, state.timeout_ms)
    logger.info(f"[TraceCapture] Collected {len(events)} events over {duration_ms:.0f}ms")
    return TraceCaptureResult(events=events, trace_duration_ms=round(duration_ms))


class TraceCaptureFeature:
    """
    Spans the whole test, so it is not reset between iterations. Stopping may
    raise TraceCollectionTimeoutError; the session is detached either way.
    """

    name = FeatureName.TRACE.value
    requires_capability = Capability.CHROMIUM_ONLY

    async def start(
        self,
        page: "Page",
        options: Optional[TraceCaptureConfig] = None,
    ) -> Optional[ManagedFeatureHandle[TraceState, TraceCaptureResult]]:
        timeout_ms = (options.timeout_ms if options else None) or get_settings().features.trace_timeout_ms

        async def setup(session) -> None:
            await session.send("Tracing.start", {
                "categories": FLAMEGRAPH_TRACING_CATEGORIES,
                "options": f"sampling-frequency={SAMPLING_FREQUENCY_HZ}",
            })

        session = await open_feature_session(page, self.name, setup)
        if session is None:
            return None

        logger.debug("[TraceCapture] Tracing started")
        state = TraceState(page=page, session=session, started_at=time.monotonic(), timeout_ms=timeout_ms)
        return ManagedFeatureHandle(self.name, state, on_stop=_stop)


trace_capture_feature = TraceCaptureFeature()
