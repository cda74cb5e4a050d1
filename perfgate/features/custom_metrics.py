"""
Custom marks and measures recorded from the test body.

Usage:
    store = CustomMetricsStore()
    store.mark("fetch-start")
    ...
    store.mark("fetch-end")
    store.measure("fetch", "fetch-start", "fetch-end")  # ms between the marks
"""

import logging
import time
from dataclasses import asdict, dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional

from perfgate.core.exceptions import CustomMetricError
from perfgate.features.handles import ManagedResettableHandle
from perfgate.features.types import Capability, FeatureName, FeatureState

if TYPE_CHECKING:
    from playwright.async_api import Page

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PerformanceMark:
    name: str
    timestamp: float  # ms since the store was created


@dataclass(frozen=True)
class PerformanceMeasure:
    name: str
    start_mark: str
    end_mark: str
    duration: float


@dataclass(frozen=True)
class CustomMetrics:
    marks: List[PerformanceMark] = field(default_factory=list)
    measures: List[PerformanceMeasure] = field(default_factory=list)

    def has_data(self) -> bool:
        return bool(self.marks or self.measures)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class CustomMetricsStore:
    """Marks keyed by name (re-marking overwrites), measures in call order."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._origin = clock()
        self._marks: Dict[str, float] = {}
        self._measures: List[PerformanceMeasure] = []

    def mark(self, name: str) -> None:
        self._marks[name] = (self._clock() - self._origin) * 1000

    def measure(self, name: str, start_mark: str, end_mark: str) -> float:
        """Record and return the ms between two existing marks."""
        for mark in (start_mark, end_mark):
            if mark not in self._marks:
                available = ", ".join(self._marks) or "none"
                raise CustomMetricError(
                    f'Performance mark "{mark}" not found. Available marks: {available}',
                    context={"measure": name},
                )
        duration = self._marks[end_mark] - self._marks[start_mark]
        self._measures.append(PerformanceMeasure(name, start_mark, end_mark, duration))
        return duration

    def get_marks(self) -> List[PerformanceMark]:
        return [PerformanceMark(name, ts) for name, ts in self._marks.items()]

    def get_measures(self) -> List[PerformanceMeasure]:
        return list(self._measures)

    def get_metrics(self) -> CustomMetrics:
        return CustomMetrics(marks=self.get_marks(), measures=self.get_measures())

    def reset(self) -> None:
        self._marks.clear()
        self._measures.clear()


@dataclass
class CustomMetricsState(FeatureState):
    store: Optional[CustomMetricsStore] = None


async def _collect(state: CustomMetricsState) -> CustomMetrics:
    return state.store.get_metrics()


async def _reset(state: CustomMetricsState) -> None:
    state.store.reset()


class CustomMetricsFeature:
    """Wraps a store owned by the test so marks reset with the other features."""

    name = FeatureName.CUSTOM_METRICS.value
    requires_capability = Capability.ANY

    async def start(
        self,
        page: "Page",
        options: Optional[CustomMetricsStore] = None,
    ) -> ManagedResettableHandle[CustomMetricsState, CustomMetrics]:
        state = CustomMetricsState(page=page, store=options or CustomMetricsStore())
        return ManagedResettableHandle(
            self.name,
            state,
            on_stop=_collect,
            on_reset=_reset,
            on_collect=_collect,
        )


custom_metrics_feature = CustomMetricsFeature()
