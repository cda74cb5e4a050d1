"""
Performance instance - the helper a test body receives as `context.performance`.

Usage:
    async def body(context):
        await context.page.goto(url)
        await context.performance.init()
        context.performance.mark("click")
        ...
        await context.performance.reset()
"""

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Optional

from perfgate.features.coordination import FeatureCoordination
from perfgate.features.custom_metrics import CustomMetrics, CustomMetricsStore
from perfgate.features.types import FeatureHandle
from perfgate.profiler.state import reset_profiler, wait_for_initialization, wait_until_stable

if TYPE_CHECKING:
    from playwright.async_api import Page

logger = logging.getLogger(__name__)


class PerformanceInstance:
    """
    Per-test helper bound to one page.

    Shares its FeatureCoordination with the runner, so `reset()` also resets
    every tracking feature the runner started.
    """

    def __init__(
        self,
        page: "Page",
        coordination: Optional[FeatureCoordination] = None,
        custom_metrics: Optional[CustomMetricsStore] = None,
    ):
        self.page = page
        self.coordination = coordination or FeatureCoordination()
        self.custom_metrics = custom_metrics or CustomMetricsStore()

    async def init(self) -> None:
        """Wait for the profiler store, then for rendering to settle. Navigate first."""
        await wait_for_initialization(self.page)
        await wait_until_stable(self.page)

    async def wait_for_initialization(self, timeout_ms: Optional[int] = None) -> None:
        await wait_for_initialization(self.page, timeout_ms)

    async def wait_until_stable(
        self,
        stability_period_ms: Optional[int] = None,
        check_interval_ms: Optional[int] = None,
        max_wait_ms: Optional[int] = None,
    ) -> None:
        await wait_until_stable(self.page, stability_period_ms, check_interval_ms, max_wait_ms)

    async def reset(self) -> None:
        """Clear profiler samples, custom metrics and every active feature's state."""
        names = await self.coordination.reset_all_active()
        self.custom_metrics.reset()
        await reset_profiler(self.page)
        logger.debug(f"[Performance] Reset (features: {', '.join(names) or 'none'})")

    def set_tracking_handle(self, name: str, handle: Optional[FeatureHandle]) -> None:
        self.coordination.set_handle(name, handle)

    def mark(self, name: str) -> None:
        self.custom_metrics.mark(name)

    def measure(self, name: str, start_mark: str, end_mark: str) -> float:
        return self.custom_metrics.measure(name, start_mark, end_mark)

    def get_custom_metrics(self) -> CustomMetrics:
        return self.custom_metrics.get_metrics()


@dataclass
class PerformanceContext:
    """What the test body is called with on every pass."""

    page: "Page"
    performance: PerformanceInstance
    config: Any  # RunConfig
    iteration: int
    is_warmup: bool = False
