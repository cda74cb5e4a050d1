"""Default feature registry with every built-in feature registered."""

import threading
from typing import List, Optional

from perfgate.features.cpu_throttling import cpu_throttling_feature
from perfgate.features.custom_metrics import custom_metrics_feature
from perfgate.features.fps_tracking import fps_tracking_feature
from perfgate.features.long_tasks import long_tasks_feature
from perfgate.features.memory_tracking import memory_tracking_feature
from perfgate.features.network_throttling import network_throttling_feature
from perfgate.features.registry import FeatureRegistry
from perfgate.features.trace_capture import trace_capture_feature
from perfgate.features.types import Feature
from perfgate.features.web_vitals import web_vitals_feature

BUILTIN_FEATURES: List[Feature] = [
    cpu_throttling_feature,
    network_throttling_feature,
    fps_tracking_feature,
    memory_tracking_feature,
    web_vitals_feature,
    long_tasks_feature,
    trace_capture_feature,
    custom_metrics_feature,
]


def register_builtin_features(registry: FeatureRegistry) -> FeatureRegistry:
    for feature in BUILTIN_FEATURES:
        registry.register(feature)
    return registry


_registry: Optional[FeatureRegistry] = None
_registry_lock = threading.Lock()


def get_feature_registry() -> FeatureRegistry:
    """Get the process-wide registry (created on first use)."""
    global _registry
    if _registry is None:
        with _registry_lock:
            if _registry is None:
                _registry = register_builtin_features(FeatureRegistry())
    return _registry
