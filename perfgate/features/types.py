"""
Feature contract.

A feature is a pluggable piece of browser instrumentation. Starting it yields
a handle that owns the feature's resources until stopped. A start that returns
None means the capability is unsupported in this browser; callers log a
warning and carry on without it.
"""

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional, Protocol, TypeVar, runtime_checkable

if TYPE_CHECKING:
    from playwright.async_api import CDPSession, Page


TOptions = TypeVar("TOptions", contravariant=True)
TResult = TypeVar("TResult", covariant=True)


class FeatureName(str, Enum):
    """The closed set of built-in features."""

    CPU_THROTTLING = "cpu-throttling"
    NETWORK_THROTTLING = "network-throttling"
    FPS_TRACKING = "fps-tracking"
    MEMORY_TRACKING = "memory-tracking"
    WEB_VITALS = "web-vitals"
    LONG_TASKS = "long-tasks"
    TRACE = "trace"
    CUSTOM_METRICS = "custom-metrics"


class Capability(str, Enum):
    """What a feature needs from the browser."""

    CHROMIUM_ONLY = "chromium-only"
    ANY = "any"


@runtime_checkable
class FeatureHandle(Protocol[TResult]):
    """Handle to a started feature."""

    async def stop(self) -> Optional[TResult]:
        """Release resources and return final metrics (None if already stopped)."""
        ...

    def is_active(self) -> bool:
        ...


@runtime_checkable
class ResettableFeatureHandle(FeatureHandle[TResult], Protocol[TResult]):
    """Handle that can be reused across iterations without restarting."""

    async def reset(self) -> None:
        """Clear accumulated state, keeping the session open."""
        ...

    async def collect(self) -> Optional[TResult]:
        """Read metrics gathered since the last start/reset."""
        ...


class Feature(Protocol[TOptions, TResult]):
    """A registered feature definition."""

    name: str
    requires_capability: Capability

    async def start(self, page: "Page", options: TOptions) -> Optional[FeatureHandle[TResult]]:
        ...


@dataclass
class FeatureState:
    """
    Mutable state owned by exactly one handle.

    `active` is the single source of truth for whether stop/reset may proceed;
    it goes True -> False once and never back.
    """

    page: "Page"
    session: Optional["CDPSession"] = None
    active: bool = True


def is_resettable(handle: Any) -> bool:
    return isinstance(handle, ResettableFeatureHandle)
