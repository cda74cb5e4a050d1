"""Pydantic models for perfgate test configuration.

Every model accepts both snake_case and camelCase keys, so the same config can
be written in Python or loaded from a YAML file shared with other tooling.
"""

from enum import Enum
from typing import Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _ConfigModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
    )


# =============================================================================
# Enums
# =============================================================================

class NetworkPreset(str, Enum):
    """Named network throttling profiles."""

    SLOW_3G = "slow-3g"
    FAST_3G = "fast-3g"
    SLOW_4G = "slow-4g"
    FAST_4G = "fast-4g"
    OFFLINE = "offline"


# =============================================================================
# Thresholds
# =============================================================================

class PercentileThresholds(_ConfigModel):
    """Threshold for an aggregate and/or its percentiles. Unset or 0 means not enforced."""

    avg: Optional[float] = None
    p50: Optional[float] = None
    p95: Optional[float] = None
    p99: Optional[float] = None


# A bare number is shorthand for {"avg": number}
ThresholdValue = Union[float, PercentileThresholds]


class ComponentThresholds(_ConfigModel):
    """Per-component render thresholds, keyed by profiler id ("*" for the default)."""

    duration: Optional[ThresholdValue] = None
    rerenders: Optional[float] = None


class MemoryThresholds(_ConfigModel):
    heap_growth: Optional[ThresholdValue] = None


class WebVitalsThresholds(_ConfigModel):
    """Web vitals thresholds. Times in ms, CLS unitless."""

    lcp: Optional[ThresholdValue] = None
    inp: Optional[ThresholdValue] = None
    cls: Optional[ThresholdValue] = None
    ttfb: Optional[ThresholdValue] = None
    fcp: Optional[ThresholdValue] = None


class LongTaskThresholds(_ConfigModel):
    tbt: Optional[ThresholdValue] = None
    max_duration: Optional[ThresholdValue] = None
    max_count: Optional[ThresholdValue] = None


class ThresholdValues(_ConfigModel):
    """One layer of thresholds (the base layer or the CI overrides)."""

    profiler: Dict[str, ComponentThresholds] = Field(default_factory=dict)
    fps: Optional[ThresholdValue] = None
    memory: Optional[MemoryThresholds] = None
    web_vitals: Optional[WebVitalsThresholds] = None
    long_tasks: Optional[LongTaskThresholds] = None


class ThresholdConfig(_ConfigModel):
    """Base thresholds plus optional CI overrides merged over them."""

    base: ThresholdValues = Field(default_factory=ThresholdValues)
    ci: Optional[ThresholdValues] = None


# =============================================================================
# Buffers
# =============================================================================

class WebVitalsBuffers(_ConfigModel):
    lcp: Optional[float] = None
    inp: Optional[float] = None
    cls: Optional[float] = None
    ttfb: Optional[float] = None
    fcp: Optional[float] = None


class LongTaskBuffers(_ConfigModel):
    tbt: Optional[float] = None
    max_duration: Optional[float] = None
    max_count: Optional[float] = None


class BufferOverrides(_ConfigModel):
    """Per-test buffer percentages. Unset values fall back to settings defaults."""

    duration: Optional[float] = None
    rerenders: Optional[float] = None
    fps: Optional[float] = None
    heap_growth: Optional[float] = None
    web_vitals: Optional[WebVitalsBuffers] = None
    long_tasks: Optional[LongTaskBuffers] = None


# =============================================================================
# Test configuration
# =============================================================================

class NetworkConditions(_ConfigModel):
    """Custom network conditions. Throughput in bytes/second, -1 for unlimited."""

    latency: float
    download_throughput: float
    upload_throughput: float
    offline: bool = False


class PerformanceTestConfig(_ConfigModel):
    """
    Configuration for one performance test.

    `warmup` defaults to True in CI and False locally. `iterations`,
    `throttle_rate` default to settings values when unset.
    """

    name: Optional[str] = None
    warmup: Optional[bool] = None
    iterations: Optional[int] = None
    throttle_rate: Optional[float] = None
    network_throttling: Optional[Union[NetworkPreset, NetworkConditions]] = None
    export_trace: Union[bool, str] = False
    reset_page_between_iterations: bool = True
    thresholds: ThresholdConfig = Field(default_factory=ThresholdConfig)
    buffers: Optional[BufferOverrides] = None
