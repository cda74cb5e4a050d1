"""
Unit tests for FPS tracking.

Tests perfgate/features/fps_tracking.py and the trace helpers in perfgate/features/utils.py
"""

import pytest

from perfgate.core.exceptions import TraceCollectionTimeoutError
from perfgate.features.fps_tracking import (
    FPSTrackingConfig,
    calculate_fps,
    extract_frame_events,
    fps_tracking_feature,
)
from perfgate.features.utils import collect_trace_data


def frames(name, count, interval_us=16_667, start=1_000_000):
    return [{"name": name, "ts": start + i * interval_us} for i in range(count)]


class TestExtractFrameEvents:
    """Tests for frame event priority."""

    def test_prefers_draw_frame(self):
        events = frames("BeginFrame", 10) + frames("DrawFrame", 3) + [{"name": "Other", "ts": 1}]
        picked = extract_frame_events(events)
        assert {e["name"] for e in picked} == {"DrawFrame"}

    def test_falls_back_to_main_thread_frames(self):
        events = frames("BeginFrame", 5) + frames("BeginMainThreadFrame", 4)
        assert len(extract_frame_events(events)) == 4

    def test_falls_back_to_begin_frame(self):
        assert len(extract_frame_events(frames("BeginFrame", 5))) == 5

    def test_no_frames(self):
        assert extract_frame_events([{"name": "Paint", "ts": 1}]) == []


class TestCalculateFPS:
    """Tests for the fps formula."""

    def test_sixty_frames_per_second(self):
        # 61 frames over exactly one second
        events = frames("DrawFrame", 61, interval_us=1_000_000 // 60)
        metrics = calculate_fps(events)
        assert metrics.frame_count == 61
        assert metrics.avg == pytest.approx(60, abs=0.1)

    def test_single_frame_is_zero(self):
        metrics = calculate_fps(frames("DrawFrame", 1))
        assert metrics.avg == 0
        assert metrics.frame_count == 1

    def test_identical_timestamps_are_zero(self):
        events = [{"name": "DrawFrame", "ts": 5}, {"name": "DrawFrame", "ts": 5}]
        assert calculate_fps(events).avg == 0

    def test_unordered_events(self):
        events = [{"name": "DrawFrame", "ts": 1_500_000}, {"name": "DrawFrame", "ts": 1_000_000},
                  {"name": "DrawFrame", "ts": 1_250_000}]
        metrics = calculate_fps(events)
        assert metrics.avg == 4
        assert metrics.tracking_duration_ms == 500


class TestCollectTraceData:
    """Tests for ending a trace and gathering its events."""

    @pytest.mark.asyncio
    async def test_collects_streamed_events(self, make_session):
        session = make_session(trace_batches=[frames("DrawFrame", 3)])

        events = await collect_trace_data(session, timeout_ms=1000)

        assert len(events) == 3
        assert session.methods() == ["Tracing.end"]
        assert session.listener_count() == 0

    @pytest.mark.asyncio
    async def test_timeout_removes_listeners(self, make_session):
        session = make_session(complete_trace=False)

        with pytest.raises(TraceCollectionTimeoutError) as exc_info:
            await collect_trace_data(session, timeout_ms=20)

        assert exc_info.value.timeout_ms == 20
        assert session.listener_count() == 0


class TestFPSTrackingFeature:
    """Tests for the resettable fps handle."""

    @pytest.mark.asyncio
    async def test_start_begins_tracing(self, fake_page, cdp_session):
        handle = await fps_tracking_feature.start(fake_page, FPSTrackingConfig(trace_timeout_ms=500))

        assert handle.is_active()
        assert cdp_session.methods() == ["Tracing.start"]

    @pytest.mark.asyncio
    async def test_collect_then_reset_per_iteration(self, fake_page, cdp_session):
        cdp_session.trace_batches = [
            frames("DrawFrame", 31, interval_us=1_000_000 // 30),
            frames("DrawFrame", 61, interval_us=1_000_000 // 60),
        ]
        handle = await fps_tracking_feature.start(fake_page, FPSTrackingConfig(trace_timeout_ms=500))

        first = await handle.collect()
        await handle.reset()
        second = await handle.collect()

        assert first.avg == pytest.approx(30, abs=0.1)
        assert second.avg == pytest.approx(60, abs=0.1)
        assert cdp_session.methods() == ["Tracing.start", "Tracing.end", "Tracing.start", "Tracing.end"]

    @pytest.mark.asyncio
    async def test_stop_after_collect_reuses_metrics(self, fake_page, cdp_session):
        cdp_session.trace_batches = [frames("DrawFrame", 11)]
        handle = await fps_tracking_feature.start(fake_page, FPSTrackingConfig(trace_timeout_ms=500))

        collected = await handle.collect()
        stopped = await handle.stop()

        assert stopped == collected
        assert cdp_session.methods().count("Tracing.end") == 1
        assert cdp_session.detached

    @pytest.mark.asyncio
    async def test_unsupported_browser_returns_none(self, firefox_page):
        assert await fps_tracking_feature.start(firefox_page) is None
        assert firefox_page.context.sessions == []

    @pytest.mark.asyncio
    async def test_cdp_unavailable_returns_none(self, fake_page):
        fake_page.context.session_error = RuntimeError("CDP session is not available")
        assert await fps_tracking_feature.start(fake_page) is None

    @pytest.mark.asyncio
    async def test_other_setup_errors_propagate(self, fake_page, cdp_session):
        cdp_session.errors["Tracing.start"] = ValueError("bad categories")

        with pytest.raises(ValueError):
            await fps_tracking_feature.start(fake_page)
        assert cdp_session.detached
