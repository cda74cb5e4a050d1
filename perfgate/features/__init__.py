"""
Browser instrumentation features.

Usage:
    from perfgate.features import FeatureCoordination, FeatureName, get_feature_registry

    registry = get_feature_registry()
    handle = await registry.start_feature(FeatureName.FPS_TRACKING, page)
"""

from perfgate.features.builtin import BUILTIN_FEATURES, get_feature_registry, register_builtin_features
from perfgate.features.coordination import FeatureCoordination
from perfgate.features.cpu_throttling import CPUThrottlingConfig
from perfgate.features.custom_metrics import CustomMetrics, CustomMetricsStore
from perfgate.features.fps_tracking import FPSMetrics, FPSTrackingConfig
from perfgate.features.handles import ManagedFeatureHandle, ManagedResettableHandle
from perfgate.features.long_tasks import LongTaskConfig, LongTaskMetrics
from perfgate.features.memory_tracking import MemoryMetrics
from perfgate.features.network_throttling import (
    NETWORK_PRESETS,
    format_network_conditions,
    resolve_network_conditions,
)
from perfgate.features.registry import FeatureRegistry
from perfgate.features.trace_capture import TraceCaptureConfig, TraceCaptureResult
from perfgate.features.types import (
    Capability,
    Feature,
    FeatureHandle,
    FeatureName,
    FeatureState,
    ResettableFeatureHandle,
)
from perfgate.features.utils import is_cdp_unsupported_error
from perfgate.features.web_vitals import WebVitalsMetrics

__all__ = [
    # Contract
    "Capability",
    "Feature",
    "FeatureHandle",
    "FeatureName",
    "FeatureState",
    "ResettableFeatureHandle",
    "ManagedFeatureHandle",
    "ManagedResettableHandle",
    # Registry / coordination
    "FeatureRegistry",
    "FeatureCoordination",
    "BUILTIN_FEATURES",
    "get_feature_registry",
    "register_builtin_features",
    # Options and results
    "CPUThrottlingConfig",
    "CustomMetrics",
    "CustomMetricsStore",
    "FPSMetrics",
    "FPSTrackingConfig",
    "LongTaskConfig",
    "LongTaskMetrics",
    "MemoryMetrics",
    "NETWORK_PRESETS",
    "TraceCaptureConfig",
    "TraceCaptureResult",
    "WebVitalsMetrics",
    # Helpers
    "format_network_conditions",
    "is_cdp_unsupported_error",
    "resolve_network_conditions",
]
