"""
Web vitals (LCP, INP, CLS, TTFB, FCP) from PerformanceObserver entries.

Works in any browser; observers the engine does not support leave their
metric as None.
"""

import logging
from dataclasses import asdict, dataclass
from typing import TYPE_CHECKING, Any, Dict, Optional

from perfgate.browser.store import BrowserStore
from perfgate.features.handles import ManagedResettableHandle
from perfgate.features.types import Capability, FeatureName, FeatureState

if TYPE_CHECKING:
    from playwright.async_api import Page

logger = logging.getLogger(__name__)

WEB_VITALS_STORE_KEY = "__WEB_VITALS__"

_SETUP_SCRIPT = """() => {
  const KEY = '__WEB_VITALS__';
  if (window[KEY] && window[KEY].initialized) {
    return;
  }
  const store = { lcp: null, inp: null, cls: 0, ttfb: null, fcp: null, initialized: true };
  window[KEY] = store;
  if (typeof PerformanceObserver === 'undefined') {
    return;
  }
  const observe = (options, onEntries) => {
    try {
      new PerformanceObserver((list) => onEntries(list.getEntries())).observe(options);
      return true;
    } catch (e) {
      return false;
    }
  };
  const recordInput = (entry) => {
    const delay = entry.processingStart - entry.startTime;
    if (store.inp === null || delay > store.inp) {
      store.inp = delay;
    }
  };
  observe({ type: 'largest-contentful-paint', buffered: true }, (entries) => {
    if (entries.length > 0) {
      const last = entries[entries.length - 1];
      store.lcp = last.renderTime || last.loadTime || last.startTime;
    }
  });
  const hasFirstInput = observe({ type: 'first-input', buffered: true }, (entries) => {
    entries.forEach(recordInput);
  });
  if (!hasFirstInput) {
    observe({ type: 'event', buffered: true, durationThreshold: 0 }, (entries) => {
      entries
        .filter((e) => e.name === 'pointerdown' || e.name === 'keydown' || e.name === 'click')
        .forEach(recordInput);
    });
  }
  observe({ type: 'layout-shift', buffered: true }, (entries) => {
    entries.forEach((e) => {
      if (!e.hadRecentInput) {
        store.cls += e.value;
      }
    });
  });
  observe({ type: 'paint', buffered: true }, (entries) => {
    entries.forEach((e) => {
      if (e.name === 'first-contentful-paint') {
        store.fcp = e.startTime;
      }
    });
  });
  try {
    const nav = performance.getEntriesByType('navigation');
    if (nav.length > 0) {
      store.ttfb = nav[0].responseStart;
    }
  } catch (e) {
    store.ttfb = null;
  }
}"""

_RESET_SCRIPT = """(store) => {
  store.lcp = null;
  store.inp = null;
  store.cls = 0;
  store.ttfb = null;
  store.fcp = null;
}"""

web_vitals_store = BrowserStore(WEB_VITALS_STORE_KEY, _SETUP_SCRIPT, _RESET_SCRIPT)


@dataclass(frozen=True)
class WebVitalsMetrics:
    """Times in ms. `cls` is None when no layout shift was observed."""

    lcp: Optional[float] = None
    inp: Optional[float] = None
    cls: Optional[float] = None
    ttfb: Optional[float] = None
    fcp: Optional[float] = None

    def has_data(self) -> bool:
        return any(v is not None for v in asdict(self).values())

    def to_dict(self) -> Dict[str, Optional[float]]:
        return asdict(self)


def parse_web_vitals(raw: Optional[Dict[str, Any]]) -> Optional[WebVitalsMetrics]:
    if raw is None:
        return None
    cls = raw.get("cls")
    return WebVitalsMetrics(
        lcp=raw.get("lcp"),
        inp=raw.get("inp"),
        # The store starts at 0, so 0 means nothing was observed
        cls=cls if cls else None,
        ttfb=raw.get("ttfb"),
        fcp=raw.get("fcp"),
    )


async def capture_web_vitals(page: "Page") -> Optional[WebVitalsMetrics]:
    return parse_web_vitals(await web_vitals_store.read(page))


@dataclass
class WebVitalsState(FeatureState):
    pass


async def _collect(state: WebVitalsState) -> Optional[WebVitalsMetrics]:
    return await capture_web_vitals(state.page)


async def _reset(state: WebVitalsState) -> None:
    await web_vitals_store.reset(state.page)


async def _stop(state: WebVitalsState) -> Optional[WebVitalsMetrics]:
    metrics = await capture_web_vitals(state.page)
    await web_vitals_store.teardown(state.page)
    return metrics


class WebVitalsFeature:
    name = FeatureName.WEB_VITALS.value
    requires_capability = Capability.ANY

    async def start(
        self,
        page: "Page",
        options: Any = None,
    ) -> ManagedResettableHandle[WebVitalsState, WebVitalsMetrics]:
        await web_vitals_store.inject(page)
        await web_vitals_store.ensure_initialized(page)
        logger.debug("[WebVitals] Observers installed")
        return ManagedResettableHandle(
            self.name,
            WebVitalsState(page=page),
            on_stop=_stop,
            on_reset=_reset,
            on_collect=_collect,
        )


web_vitals_feature = WebVitalsFeature()
