"""
Pytest fixtures for perfgate tests.

No real browser is involved: FakePage and FakeCDPSession stand in for the
Playwright objects the features talk to.
"""

import asyncio
from collections import defaultdict
from typing import Any, Callable, Dict, List, Optional

import pytest

from perfgate.core.config import Environment, PerformanceSettings
from perfgate.features.handles import ManagedFeatureHandle, ManagedResettableHandle
from perfgate.features.types import Capability, FeatureState


class FakeCDPSession:
    """
    Records every command. `Tracing.end` streams the next queued batch of
    trace events followed by `Tracing.tracingComplete`, like the browser does.
    """

    def __init__(
        self,
        responses: Optional[Dict[str, Any]] = None,
        trace_batches: Optional[List[List[dict]]] = None,
        errors: Optional[Dict[str, Exception]] = None,
        complete_trace: bool = True,
    ):
        self.responses = responses or {}
        self.trace_batches = list(trace_batches or [])
        self.errors = errors or {}
        self.complete_trace = complete_trace
        self.sent: List[tuple] = []
        self.listeners: Dict[str, List[Callable]] = defaultdict(list)
        self.detached = False

    async def send(self, method: str, params: Optional[dict] = None) -> Any:
        self.sent.append((method, params))
        if method in self.errors:
            raise self.errors[method]
        if method == "Tracing.end":
            asyncio.get_running_loop().call_soon(self._stream_trace)
        response = self.responses.get(method, {})
        if isinstance(response, list):
            return response.pop(0) if len(response) > 1 else response[0]
        return response

    def _stream_trace(self) -> None:
        batch = self.trace_batches.pop(0) if self.trace_batches else []
        if batch:
            self.emit("Tracing.dataCollected", {"value": batch})
        if self.complete_trace:
            self.emit("Tracing.tracingComplete", {})

    def on(self, event: str, handler: Callable) -> None:
        self.listeners[event].append(handler)

    def remove_listener(self, event: str, handler: Callable) -> None:
        self.listeners[event].remove(handler)

    def emit(self, event: str, params: Optional[dict] = None) -> None:
        for handler in list(self.listeners[event]):
            handler(params or {})

    async def detach(self) -> None:
        self.detached = True

    def methods(self) -> List[str]:
        return [method for method, _ in self.sent]

    def listener_count(self) -> int:
        return sum(len(handlers) for handlers in self.listeners.values())


class FakeBrowserType:
    def __init__(self, name: str):
        self.name = name


class FakeBrowser:
    def __init__(self, engine: str):
        self.browser_type = FakeBrowserType(engine)


class FakeContext:
    """Hands out queued sessions (fresh ones once the queue is empty)."""

    def __init__(self, browser: Optional[FakeBrowser] = None):
        self.browser = browser
        self.queued_sessions: List[FakeCDPSession] = []
        self.sessions: List[FakeCDPSession] = []
        self.session_error: Optional[Exception] = None

    async def new_cdp_session(self, page) -> FakeCDPSession:
        if self.session_error is not None:
            raise self.session_error
        session = self.queued_sessions.pop(0) if self.queued_sessions else FakeCDPSession()
        self.sessions.append(session)
        return session


class FakePage:
    """
    Minimal async Page. `evaluate` delegates to `evaluate_handler(expression, arg)`
    when set, otherwise returns None.
    """

    def __init__(self, browser: Optional[FakeBrowser] = None):
        self.context = FakeContext(browser)
        self.evaluate_handler: Optional[Callable[[str, Any], Any]] = None
        self.evaluate_calls: List[tuple] = []
        self.init_scripts: List[str] = []
        self.navigations: List[str] = []
        self.wait_calls: List[dict] = []
        self.wait_error: Optional[Exception] = None

    async def evaluate(self, expression: str, arg: Any = None) -> Any:
        self.evaluate_calls.append((expression, arg))
        if self.evaluate_handler is not None:
            return self.evaluate_handler(expression, arg)
        return None

    async def add_init_script(self, script: Optional[str] = None, path: Optional[str] = None) -> None:
        self.init_scripts.append(script)

    async def goto(self, url: str, **kwargs) -> None:
        self.navigations.append(url)

    async def wait_for_function(self, expression: str, arg: Any = None, polling: Any = None, timeout: Any = None):
        self.wait_calls.append({"expression": expression, "arg": arg, "polling": polling, "timeout": timeout})
        if self.wait_error is not None:
            raise self.wait_error
        return True


class FakeFeature:
    """
    Feature whose handle returns queued results: one per collect, then the
    final one on stop. Records lifecycle calls in `events`.
    """

    requires_capability = Capability.ANY

    def __init__(self, name: str, results: Optional[List[Any]] = None, resettable: bool = True,
                 supported: bool = True, final: Any = None):
        self.name = name
        self.results = list(results or [])
        self.resettable = resettable
        self.supported = supported
        self.final = final
        self.events: List[str] = []
        self.options: List[Any] = []
        self.handle = None

    async def start(self, page, options=None):
        self.events.append("start")
        self.options.append(options)
        if not self.supported:
            return None

        async def on_stop(state):
            self.events.append("stop")
            return self.final

        async def on_reset(state):
            self.events.append("reset")

        async def on_collect(state):
            self.events.append("collect")
            return self.results.pop(0) if self.results else None

        state = FeatureState(page=page)
        if self.resettable:
            self.handle = ManagedResettableHandle(self.name, state, on_stop, on_reset, on_collect)
        else:
            self.handle = ManagedFeatureHandle(self.name, state, on_stop)
        return self.handle


@pytest.fixture
def fake_page():
    """A page with no browser object (CDP features are attempted)."""
    return FakePage()


@pytest.fixture
def firefox_page():
    """A page driven by a non-Chromium browser."""
    return FakePage(browser=FakeBrowser("firefox"))


@pytest.fixture
def cdp_session(fake_page):
    """The session the next feature started on `fake_page` will receive."""
    session = FakeCDPSession()
    fake_page.context.queued_sessions.append(session)
    return session


@pytest.fixture
def make_feature():
    return FakeFeature


@pytest.fixture
def make_session():
    return FakeCDPSession


@pytest.fixture
def settings():
    """Settings with library defaults, independent of the CI env var."""
    return PerformanceSettings(CI=False)


@pytest.fixture
def local_env():
    return Environment(is_ci=False)


@pytest.fixture
def ci_env():
    return Environment(is_ci=True)
