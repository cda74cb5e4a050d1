"""
Unit tests for the render profiler store helpers.

Tests perfgate/profiler/state.py and perfgate/runner/instance.py
"""

import pytest
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from perfgate.core.exceptions import ProfilerStateError
from perfgate.profiler.state import (
    PROFILER_STORE_KEY,
    STABILITY_TRACKER_KEY,
    ProfilerState,
    capture_profiler_state,
    reset_profiler,
    wait_for_initialization,
    wait_until_stable,
)
from perfgate.runner.instance import PerformanceInstance

SNAPSHOT = {
    "sampleCount": 3,
    "totalActualDuration": 12.5,
    "totalBaseDuration": 20,
    "phaseBreakdown": {"mount": 1, "update": 2},
    "components": {
        "Header": {"totalActualDuration": 4, "totalBaseDuration": 6, "renderCount": 1,
                   "phaseBreakdown": {"mount": 1}},
    },
}


def profiler_page(fake_page, snapshot=SNAPSHOT, reset_ok=True):
    calls = []

    def handler(expression, arg):
        calls.append(expression)
        if "sampleCount" in expression:
            return snapshot
        if "profiler.reset()" in expression:
            return reset_ok
        return None

    fake_page.evaluate_handler = handler
    return calls


class TestCapture:
    """Tests for reading the store."""

    def test_from_dict(self):
        state = ProfilerState.from_dict(SNAPSHOT)
        assert state.sample_count == 3
        assert state.components["Header"].render_count == 1
        assert state.phase_breakdown == {"mount": 1, "update": 2}

    @pytest.mark.asyncio
    async def test_capture(self, fake_page):
        profiler_page(fake_page)

        state = await capture_profiler_state(fake_page)

        assert state.total_actual_duration == 12.5
        assert fake_page.evaluate_calls[0][1] == PROFILER_STORE_KEY

    @pytest.mark.asyncio
    async def test_missing_store(self, fake_page):
        profiler_page(fake_page, snapshot=None)

        with pytest.raises(ProfilerStateError) as exc_info:
            await capture_profiler_state(fake_page)
        assert exc_info.value.phase == "validation"
        assert str(exc_info.value).startswith("[validation] ")

    @pytest.mark.asyncio
    async def test_zero_samples(self, fake_page):
        profiler_page(fake_page, snapshot={**SNAPSHOT, "sampleCount": 0})

        with pytest.raises(ProfilerStateError, match="zero samples"):
            await capture_profiler_state(fake_page)


class TestWaiting:
    """Tests for initialization and stability waits."""

    @pytest.mark.asyncio
    async def test_initialization_timeout(self, fake_page):
        fake_page.wait_error = PlaywrightTimeoutError("Timeout 50ms exceeded")

        with pytest.raises(ProfilerStateError) as exc_info:
            await wait_for_initialization(fake_page, timeout_ms=50)
        assert exc_info.value.phase == "initialization"

    @pytest.mark.asyncio
    async def test_wait_until_stable_arguments_and_cleanup(self, fake_page):
        await wait_until_stable(fake_page, stability_period_ms=500, check_interval_ms=50, max_wait_ms=3000)

        call = fake_page.wait_calls[0]
        assert call["polling"] == 50
        assert call["timeout"] == 3000
        assert call["arg"]["stabilityPeriod"] == 500
        assert fake_page.evaluate_calls[-1][1] == STABILITY_TRACKER_KEY

    @pytest.mark.asyncio
    async def test_stabilization_timeout_still_cleans_up(self, fake_page):
        fake_page.wait_error = PlaywrightTimeoutError("Timeout exceeded")

        with pytest.raises(ProfilerStateError) as exc_info:
            await wait_until_stable(fake_page, max_wait_ms=100)
        assert exc_info.value.phase == "stabilization"
        assert fake_page.evaluate_calls[-1][1] == STABILITY_TRACKER_KEY


class TestReset:
    """Tests for resetting the store."""

    @pytest.mark.asyncio
    async def test_reset(self, fake_page):
        profiler_page(fake_page)
        await reset_profiler(fake_page)

    @pytest.mark.asyncio
    async def test_reset_without_store(self, fake_page):
        profiler_page(fake_page, reset_ok=False)
        with pytest.raises(ProfilerStateError, match="store not available"):
            await reset_profiler(fake_page)


class TestPerformanceInstance:
    """Tests for the helper handed to test bodies."""

    @pytest.mark.asyncio
    async def test_init_waits_for_store_then_stability(self, fake_page):
        await PerformanceInstance(fake_page).init()
        assert len(fake_page.wait_calls) == 2
        assert fake_page.wait_calls[0]["arg"] == PROFILER_STORE_KEY

    @pytest.mark.asyncio
    async def test_reset_covers_features_marks_and_profiler(self, fake_page, make_feature):
        calls = profiler_page(fake_page)
        performance = PerformanceInstance(fake_page)
        feature = make_feature("fps-tracking")
        performance.set_tracking_handle("fps-tracking", await feature.start(fake_page))
        performance.mark("a")

        await performance.reset()

        assert "reset" in feature.events
        assert not performance.get_custom_metrics().has_data()
        assert any("profiler.reset()" in c for c in calls)

    def test_mark_and_measure(self, fake_page):
        performance = PerformanceInstance(fake_page)
        performance.mark("a")
        performance.mark("b")
        assert performance.measure("ab", "a", "b") >= 0
        assert len(performance.get_custom_metrics().measures) == 1
