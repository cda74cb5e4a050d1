"""
Unit tests for heap growth tracking.

Tests perfgate/features/memory_tracking.py
"""

import logging

import pytest

from perfgate.features.memory_tracking import (
    MemorySnapshot,
    calculate_memory_growth,
    extract_memory_snapshot,
    memory_tracking_feature,
)


def heap(used, total=None):
    return {"metrics": [
        {"name": "Documents", "value": 1},
        {"name": "JSHeapUsedSize", "value": used},
        {"name": "JSHeapTotalSize", "value": total or used * 2},
    ]}


class TestSnapshots:
    """Tests for snapshot parsing and growth."""

    def test_extract_snapshot(self):
        snapshot = extract_memory_snapshot(heap(1024, 4096)["metrics"])
        assert snapshot.js_heap_used_size == 1024
        assert snapshot.js_heap_total_size == 4096

    def test_missing_metrics_are_zero(self):
        snapshot = extract_memory_snapshot([])
        assert snapshot.js_heap_used_size == 0

    def test_growth_and_percent(self):
        before = MemorySnapshot(1000, 2000, 0)
        after = MemorySnapshot(1500, 2000, 1)

        metrics = calculate_memory_growth(before, after)

        assert metrics.heap_growth == 500
        assert metrics.heap_growth_percent == 50

    def test_shrinking_heap_is_negative(self):
        metrics = calculate_memory_growth(MemorySnapshot(2000, 0, 0), MemorySnapshot(1000, 0, 0))
        assert metrics.heap_growth == -1000
        assert metrics.heap_growth_percent == -50

    def test_zero_baseline_percent(self):
        metrics = calculate_memory_growth(MemorySnapshot(0, 0, 0), MemorySnapshot(100, 0, 0))
        assert metrics.heap_growth_percent == 0


class TestMemoryTrackingFeature:
    """Tests for the resettable memory handle."""

    @pytest.mark.asyncio
    async def test_growth_since_baseline(self, fake_page, cdp_session):
        cdp_session.responses["Performance.getMetrics"] = [heap(1000), heap(3000)]

        handle = await memory_tracking_feature.start(fake_page)
        metrics = await handle.collect()

        assert metrics.heap_growth == 2000
        assert cdp_session.methods()[0] == "Performance.enable"

    @pytest.mark.asyncio
    async def test_reset_takes_new_baseline(self, fake_page, cdp_session):
        cdp_session.responses["Performance.getMetrics"] = [heap(1000), heap(5000), heap(5500)]

        handle = await memory_tracking_feature.start(fake_page)
        await handle.reset()
        metrics = await handle.collect()

        assert metrics.heap_growth == 500

    @pytest.mark.asyncio
    async def test_stop_disables_domain(self, fake_page, cdp_session, caplog):
        cdp_session.responses["Performance.getMetrics"] = [heap(1000), heap(1200)]

        handle = await memory_tracking_feature.start(fake_page)
        with caplog.at_level(logging.INFO, logger="perfgate.features.memory_tracking"):
            metrics = await handle.stop()

        assert "Heap growth: 200 B (20.0%)" in caplog.text
        assert metrics.heap_growth == 200
        assert cdp_session.methods()[-1] == "Performance.disable"
        assert cdp_session.detached
