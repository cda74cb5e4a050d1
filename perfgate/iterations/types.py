"""Per-iteration results and their aggregates."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from perfgate.features.custom_metrics import CustomMetrics
from perfgate.features.fps_tracking import FPSMetrics
from perfgate.features.long_tasks import LongTaskMetrics
from perfgate.features.memory_tracking import MemoryMetrics
from perfgate.features.web_vitals import WebVitalsMetrics


class MetricKey(str, Enum):
    """Keys of the page-level metrics an iteration produces."""

    DURATION = "duration"
    BASE_DURATION = "base_duration"
    RERENDERS = "rerenders"
    FPS = "fps"
    HEAP_GROWTH = "memory.heap_growth"
    LCP = "web_vitals.lcp"
    INP = "web_vitals.inp"
    CLS = "web_vitals.cls"
    TTFB = "web_vitals.ttfb"
    FCP = "web_vitals.fcp"
    TBT = "long_tasks.tbt"
    LONG_TASK_MAX_DURATION = "long_tasks.max_duration"
    LONG_TASK_COUNT = "long_tasks.count"


@dataclass(frozen=True)
class ComponentIterationData:
    duration: float
    base_duration: float
    rerenders: int


@dataclass(frozen=True)
class IterationResult:
    """
    Everything captured in one pass. Frozen once the pass completes.

    `index` is 0 for the warmup pass, 1..N for counted passes.
    """

    index: int
    is_warmup: bool = False
    duration: float = 0
    base_duration: float = 0
    rerenders: int = 0
    wall_time_ms: float = 0
    components: Mapping[str, ComponentIterationData] = field(default_factory=dict)
    fps: Optional[FPSMetrics] = None
    memory: Optional[MemoryMetrics] = None
    web_vitals: Optional[WebVitalsMetrics] = None
    long_tasks: Optional[LongTaskMetrics] = None
    custom_metrics: Optional[CustomMetrics] = None

    def metric_values(self) -> Dict[MetricKey, Optional[float]]:
        """Flat view of the page-level metrics; None where not measured."""
        vitals = self.web_vitals
        tasks = self.long_tasks
        return {
            MetricKey.DURATION: self.duration,
            MetricKey.BASE_DURATION: self.base_duration,
            MetricKey.RERENDERS: self.rerenders,
            MetricKey.FPS: self.fps.avg if self.fps else None,
            MetricKey.HEAP_GROWTH: self.memory.heap_growth if self.memory else None,
            MetricKey.LCP: vitals.lcp if vitals else None,
            MetricKey.INP: vitals.inp if vitals else None,
            MetricKey.CLS: vitals.cls if vitals else None,
            MetricKey.TTFB: vitals.ttfb if vitals else None,
            MetricKey.FCP: vitals.fcp if vitals else None,
            MetricKey.TBT: tasks.tbt if tasks else None,
            MetricKey.LONG_TASK_MAX_DURATION: tasks.max_duration if tasks else None,
            MetricKey.LONG_TASK_COUNT: tasks.count if tasks else None,
        }


@dataclass(frozen=True)
class MetricSummary:
    """Aggregate of one metric over the counted iterations that measured it."""

    avg: float
    samples: int
    std_dev: float = 0
    min: Optional[float] = None
    max: Optional[float] = None
    p50: Optional[float] = None
    p95: Optional[float] = None
    p99: Optional[float] = None

    def statistic(self, name: str) -> Optional[float]:
        """Look up avg, p50, p95 or p99 by name."""
        return getattr(self, name)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "avg": self.avg,
            "p50": self.p50,
            "p95": self.p95,
            "p99": self.p99,
            "stdDev": self.std_dev,
            "min": self.min,
            "max": self.max,
            "samples": self.samples,
        }


@dataclass(frozen=True)
class ComponentSummary:
    duration: MetricSummary
    base_duration: MetricSummary
    rerenders: MetricSummary


@dataclass(frozen=True)
class IterationMetrics:
    """Aggregated view of a run. `results` holds only counted iterations."""

    iterations: int
    results: List[IterationResult]
    summaries: Dict[MetricKey, MetricSummary]
    components: Dict[str, ComponentSummary]
    warmup_result: Optional[IterationResult] = None

    def summary(self, key: MetricKey) -> Optional[MetricSummary]:
        return self.summaries.get(key)

    def average(self, key: MetricKey) -> Optional[float]:
        summary = self.summaries.get(key)
        return summary.avg if summary else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "iterations": self.iterations,
            "warmupDiscarded": self.warmup_result is not None,
            "metrics": {key.value: s.to_dict() for key, s in self.summaries.items()},
            "components": {
                component_id: {
                    "duration": c.duration.to_dict(),
                    "baseDuration": c.base_duration.to_dict(),
                    "rerenders": c.rerenders.to_dict(),
                }
                for component_id, c in self.components.items()
            },
        }
