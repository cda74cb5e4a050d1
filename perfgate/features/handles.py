"""
Concrete feature handles.

Features build their handles from a state object plus lifecycle callbacks:

    handle = ManagedFeatureHandle("cpu-throttling", state, on_stop=_stop)
    handle = ManagedResettableHandle(
        "fps-tracking", state, on_stop=_stop, on_reset=_reset, on_collect=_collect,
    )

The handle owns the exactly-once deactivation and the session detach, so the
callbacks only deal with their own CDP commands.
"""

import logging
from typing import Awaitable, Callable, Generic, Optional, TypeVar

from perfgate.features.types import FeatureState
from perfgate.features.utils import detach_session

logger = logging.getLogger(__name__)

TState = TypeVar("TState", bound=FeatureState)
TResult = TypeVar("TResult")


class ManagedFeatureHandle(Generic[TState, TResult]):
    """Handle with idempotent stop and guaranteed session release."""

    def __init__(
        self,
        name: str,
        state: TState,
        on_stop: Callable[[TState], Awaitable[Optional[TResult]]],
    ):
        self.name = name
        self.state = state
        self._on_stop = on_stop

    def is_active(self) -> bool:
        return self.state.active

    async def stop(self) -> Optional[TResult]:
        """
        Stop the feature and return its final result.

        A second call returns None. If the stop callback raises, the handle is
        still deactivated and its session detached before the error propagates.
        """
        if not self.state.active:
            return None
        self.state.active = False
        try:
            return await self._on_stop(self.state)
        except Exception as e:
            logger.debug(f"[{self.name}] Stop failed: {e}")
            raise
        finally:
            await detach_session(self.state.session)
            self.state.session = None

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name} active={self.state.active}>"


class ManagedResettableHandle(ManagedFeatureHandle[TState, TResult]):
    """Handle that survives iterations: reset clears state, collect reads it."""

    def __init__(
        self,
        name: str,
        state: TState,
        on_stop: Callable[[TState], Awaitable[Optional[TResult]]],
        on_reset: Callable[[TState], Awaitable[None]],
        on_collect: Optional[Callable[[TState], Awaitable[Optional[TResult]]]] = None,
    ):
        super().__init__(name, state, on_stop)
        self._on_reset = on_reset
        self._on_collect = on_collect

    async def reset(self) -> None:
        """
        Reset for the next iteration. No-op once inactive.

        A failed reset deactivates the handle and releases its session; the run
        continues without this feature.
        """
        if not self.state.active:
            return
        try:
            await self._on_reset(self.state)
        except Exception as e:
            logger.warning(f"[{self.name}] Reset failed, disabling feature: {e}")
            self.state.active = False
            await detach_session(self.state.session)
            self.state.session = None

    async def collect(self) -> Optional[TResult]:
        if not self.state.active or self._on_collect is None:
            return None
        return await self._on_collect(self.state)
