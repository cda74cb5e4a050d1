"""Read, wait on and reset the render profiler store exposed by the page."""

from perfgate.profiler.state import (
    ProfilerState,
    capture_profiler_state,
    read_profiler_state,
    reset_profiler,
    wait_for_initialization,
    wait_until_stable,
)

__all__ = [
    "ProfilerState",
    "capture_profiler_state",
    "read_profiler_state",
    "reset_profiler",
    "wait_for_initialization",
    "wait_until_stable",
]
