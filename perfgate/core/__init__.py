"""Configuration, models, errors, logging and formatting shared across perfgate."""

from perfgate.core.config import (
    Environment,
    PerformanceSettings,
    detect_environment,
    get_settings,
    load_test_config,
)
from perfgate.core.exceptions import (
    ConfigurationError,
    CustomMetricError,
    FeatureNotRegisteredError,
    FeatureRegistrationError,
    InvalidThresholdError,
    MissingThresholdError,
    PerfGateError,
    ProfilerStateError,
    ThresholdViolationError,
    TraceCollectionTimeoutError,
)
from perfgate.core.logging_config import get_logger, setup_logging
from perfgate.core.models import NetworkPreset, PerformanceTestConfig, ThresholdConfig, ThresholdValues

__all__ = [
    # Config
    "Environment",
    "PerformanceSettings",
    "detect_environment",
    "get_settings",
    "load_test_config",
    # Models
    "NetworkPreset",
    "PerformanceTestConfig",
    "ThresholdConfig",
    "ThresholdValues",
    # Errors
    "PerfGateError",
    "ConfigurationError",
    "CustomMetricError",
    "FeatureNotRegisteredError",
    "FeatureRegistrationError",
    "InvalidThresholdError",
    "MissingThresholdError",
    "ProfilerStateError",
    "ThresholdViolationError",
    "TraceCollectionTimeoutError",
    # Logging
    "get_logger",
    "setup_logging",
]
