"""
FPS tracking from CDP timeline tracing (Chromium only).

Frames are counted from trace events, preferring DrawFrame (frames actually
produced), then BeginMainThreadFrame, then BeginFrame (VSync ticks, which do
not reflect rendering smoothness).
"""

import logging
from dataclasses import asdict, dataclass
from typing import TYPE_CHECKING, Iterable, List, Optional

from perfgate.core.config import get_settings
from perfgate.features.handles import ManagedResettableHandle
from perfgate.features.types import Capability, FeatureName, FeatureState
from perfgate.features.utils import TraceEvent, collect_trace_data, open_feature_session

if TYPE_CHECKING:
    from playwright.async_api import CDPSession, Page

logger = logging.getLogger(__name__)

TRACING_CATEGORIES = "devtools.timeline,disabled-by-default-devtools.timeline.frame"
SAMPLING_FREQUENCY_HZ = 10000
MIN_RELIABLE_DURATION_MS = 100
FRAME_EVENT_PRIORITY = ("DrawFrame", "BeginMainThreadFrame", "BeginFrame")


@dataclass(frozen=True)
class FPSMetrics:
    avg: float
    frame_count: int
    tracking_duration_ms: float

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class FPSTrackingConfig:
    trace_timeout_ms: Optional[int] = None


@dataclass
class FPSTrackingState(FeatureState):
    trace_timeout_ms: int = 10000
    tracing: bool = False
    last_metrics: Optional[FPSMetrics] = None


def _timestamp(event: TraceEvent) -> float:
    try:
        return float(event.get("ts") or 0)
    except (TypeError, ValueError):
        return 0.0


def extract_frame_events(trace_events: Iterable[TraceEvent]) -> List[TraceEvent]:
    """Pick the highest-priority frame event type present in the trace."""
    by_name = {name: [] for name in FRAME_EVENT_PRIORITY}
    for event in trace_events:
        name = event.get("name")
        if name in by_name:
            by_name[name].append(event)

    for name in FRAME_EVENT_PRIORITY:
        if by_name[name]:
            if name == "BeginFrame":
                logger.warning(
                    "[FPSTracking] Fell back to BeginFrame events (VSync). "
                    "Results may not reflect actual rendering smoothness."
                )
            return by_name[name]
    return []


def calculate_fps(frame_events: List[TraceEvent]) -> FPSMetrics:
    """
    N frames span N-1 intervals, so fps = (N - 1) / seconds.

    Trace timestamps are microseconds. Fewer than two frames gives fps 0.
    """
    if len(frame_events) < 2:
        return FPSMetrics(avg=0, frame_count=len(frame_events), tracking_duration_ms=0)

    timestamps = sorted(_timestamp(e) for e in frame_events)
    duration_ms = (timestamps[-1] - timestamps[0]) / 1000
    if duration_ms < MIN_RELIABLE_DURATION_MS:
        logger.warning(f"[FPSTracking] Duration too short ({duration_ms:.0f}ms) for reliable metrics")

    seconds = duration_ms / 1000
    avg = (len(timestamps) - 1) / seconds if seconds > 0 else 0
    return FPSMetrics(
        avg=round(avg, 2),
        frame_count=len(timestamps),
        tracking_duration_ms=round(duration_ms),
    )


async def start_tracing(session: "CDPSession") -> None:
    await session.send("Tracing.start", {
        "categories": TRACING_CATEGORIES,
        "options": f"sampling-frequency={SAMPLING_FREQUENCY_HZ}",
    })


async def _collect(state: FPSTrackingState) -> Optional[FPSMetrics]:
    if state.tracing:
        state.tracing = False
        events = await collect_trace_data(state.session, state.trace_timeout_ms)
        state.last_metrics = calculate_fps(extract_frame_events(events))
    return state.last_metrics


async def _reset(state: FPSTrackingState) -> None:
    if state.tracing:
        # Discard the frames of the previous pass
        state.tracing = False
        await collect_trace_data(state.session, state.trace_timeout_ms)
    state.last_metrics = None
    await start_tracing(state.session)
    state.tracing = True


class FPSTrackingFeature:
    """
    Frame-rate tracking. One trace per iteration: collect ends the trace and
    computes fps, reset starts a fresh trace on the same session.
    """

    name = FeatureName.FPS_TRACKING.value
    requires_capability = Capability.CHROMIUM_ONLY

    async def start(
        self,
        page: "Page",
        options: Optional[FPSTrackingConfig] = None,
    ) -> Optional[ManagedResettableHandle[FPSTrackingState, FPSMetrics]]:
        timeout_ms = (options.trace_timeout_ms if options else None) or (
            get_settings().features.fps_trace_timeout_ms
        )

        session = await open_feature_session(page, self.name, start_tracing)
        if session is None:
            return None

        state = FPSTrackingState(
            page=page,
            session=session,
            trace_timeout_ms=timeout_ms,
            tracing=True,
        )
        logger.debug("[FPSTracking] Tracing started")
        return ManagedResettableHandle(
            self.name,
            state,
            on_stop=_collect,
            on_reset=_reset,
            on_collect=_collect,
        )


fps_tracking_feature = FPSTrackingFeature()
