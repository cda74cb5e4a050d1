"""
CDP helpers shared by the browser features.

Usage:
    session = await create_cdp_session(page)
    with cdp_listeners(session, {"Tracing.dataCollected": on_data}):
        await session.send("Tracing.end")
    await detach_session(session)
"""

import asyncio
import logging
import re
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, Iterator, List, Optional

from perfgate.core.exceptions import TraceCollectionTimeoutError
from perfgate.features.types import Capability

if TYPE_CHECKING:
    from playwright.async_api import CDPSession, Page

logger = logging.getLogger(__name__)

TraceEvent = Dict[str, Any]

_UNSUPPORTED_PATTERN = re.compile(
    r"CDP|not available|Protocol error|Target\.setAutoAttach|does not support",
    re.IGNORECASE,
)


def is_cdp_unsupported_error(error: BaseException) -> bool:
    """Whether an error means the browser lacks the debugging capability."""
    return bool(_UNSUPPORTED_PATTERN.search(str(error)))


def browser_engine(page: "Page") -> Optional[str]:
    """Name of the browser engine driving `page` ("chromium", "firefox", "webkit")."""
    browser = page.context.browser
    if browser is None:
        return None
    return browser.browser_type.name


def supports_capability(page: "Page", capability: Capability) -> bool:
    if capability == Capability.ANY:
        return True
    engine = browser_engine(page)
    # Persistent contexts expose no browser object; let session creation decide
    return engine is None or engine == "chromium"


async def create_cdp_session(page: "Page") -> "CDPSession":
    return await page.context.new_cdp_session(page)


async def detach_session(session: Optional["CDPSession"]) -> None:
    """Detach a CDP session. A session the browser already closed is not an error."""
    if session is None:
        return
    try:
        await session.detach()
    except Exception as e:
        logger.debug(f"[CDP] Session already detached: {e}")


async def open_feature_session(
    page: "Page",
    feature_name: str,
    setup: Callable[["CDPSession"], Awaitable[None]],
) -> Optional["CDPSession"]:
    """
    Create a CDP session and run `setup` on it.

    Returns None (with a warning) when the browser lacks CDP support. Any other
    failure detaches the session and propagates.
    """
    if not supports_capability(page, Capability.CHROMIUM_ONLY):
        logger.warning(f"[{feature_name}] Not supported on {browser_engine(page)} (requires Chromium)")
        return None

    session = None
    try:
        session = await create_cdp_session(page)
        await setup(session)
    except Exception as e:
        await detach_session(session)
        if is_cdp_unsupported_error(e):
            logger.warning(f"[{feature_name}] Not supported on this browser (CDP not available): {e}")
            return None
        raise
    return session


@contextmanager
def cdp_listeners(
    session: "CDPSession",
    handlers: Dict[str, Callable[..., Any]],
) -> Iterator[None]:
    """Register CDP event handlers for the duration of the block, removing them on every exit path."""
    for event, handler in handlers.items():
        session.on(event, handler)
    try:
        yield
    finally:
        for event, handler in handlers.items():
            session.remove_listener(event, handler)


async def collect_trace_data(session: "CDPSession", timeout_ms: int) -> List[TraceEvent]:
    """
    End tracing and gather every event the browser streams back.

    Waits for Tracing.tracingComplete or the deadline, whichever comes first.
    Raises TraceCollectionTimeoutError on the deadline. Listeners are removed
    on every exit path; detaching the session is left to the caller's cleanup.
    """
    loop = asyncio.get_running_loop()
    events: List[TraceEvent] = []
    complete: asyncio.Future = loop.create_future()

    def on_data(params: Dict[str, Any]) -> None:
        events.extend(params.get("value", []))

    def on_complete(params: Optional[Dict[str, Any]] = None) -> None:
        if not complete.done():
            complete.set_result(None)

    with cdp_listeners(session, {
        "Tracing.dataCollected": on_data,
        "Tracing.tracingComplete": on_complete,
    }):
        await session.send("Tracing.end")
        try:
            await asyncio.wait_for(complete, timeout=timeout_ms / 1000)
        except asyncio.TimeoutError as e:
            raise TraceCollectionTimeoutError(timeout_ms, len(events)) from e

    return events
