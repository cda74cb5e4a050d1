"""Custom exceptions for perfgate."""

from typing import Any, Optional, Sequence


class PerfGateError(Exception):
    """Base exception for perfgate."""

    def __init__(self, message: str, context: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}


class ConfigurationError(PerfGateError):
    """Invalid test configuration. Raised before any iteration runs."""

    pass


class InvalidThresholdError(ConfigurationError):
    """A threshold or buffer value outside its allowed range."""

    def __init__(
        self,
        message: str,
        value: float,
        context: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message, context)
        self.value = value


class MissingThresholdError(ConfigurationError):
    """A profiled component has neither its own threshold nor a "*" default."""

    def __init__(
        self,
        component_id: str,
        available: Sequence[str],
        context: Optional[dict[str, Any]] = None,
    ):
        listed = ", ".join(available) if available else "none"
        message = (
            f'No threshold configured for component "{component_id}". '
            f'Add a "{component_id}" entry or a "*" default. Configured: {listed}'
        )
        super().__init__(message, context)
        self.component_id = component_id
        self.available = list(available)


class FeatureRegistrationError(PerfGateError):
    """Feature registry misuse (duplicate name)."""

    def __init__(self, feature_name: str, context: Optional[dict[str, Any]] = None):
        super().__init__(f'Feature "{feature_name}" is already registered', context)
        self.feature_name = feature_name


class FeatureNotRegisteredError(PerfGateError):
    """Start requested for a feature name that was never registered."""

    def __init__(self, feature_name: str, context: Optional[dict[str, Any]] = None):
        super().__init__(f'Feature "{feature_name}" is not registered', context)
        self.feature_name = feature_name


class TraceCollectionTimeoutError(PerfGateError):
    """Trace data did not arrive before the collection deadline."""

    def __init__(
        self,
        timeout_ms: int,
        events_received: int = 0,
        context: Optional[dict[str, Any]] = None,
    ):
        message = (
            f"Trace collection timed out after {timeout_ms}ms "
            f"({events_received} events received)"
        )
        super().__init__(message, context)
        self.timeout_ms = timeout_ms
        self.events_received = events_received


class CustomMetricError(PerfGateError):
    """Custom mark/measure misuse."""

    pass


class ProfilerStateError(PerfGateError):
    """
    The in-page render profiler store is missing or unusable.

    `phase` is one of "initialization", "stabilization", "validation".
    """

    def __init__(
        self,
        message: str,
        phase: str,
        context: Optional[dict[str, Any]] = None,
    ):
        super().__init__(f"[{phase}] {message}", context)
        self.phase = phase


class ThresholdViolationError(PerfGateError, AssertionError):
    """
    One or more aggregated metrics crossed their resolved bounds.

    Carries every failing check so callers can report them individually;
    the message holds one line per violated metric.
    """

    def __init__(self, violations: Sequence[Any], context: Optional[dict[str, Any]] = None):
        lines = [v.describe() for v in violations]
        header = f"{len(lines)} performance threshold(s) violated:"
        super().__init__("\n".join([header, *lines]), context)
        self.violations = list(violations)
