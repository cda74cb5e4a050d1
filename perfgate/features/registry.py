"""
Feature Registry - catalog of available features.

Used to start a feature by name and to stop every active handle at the end of
a test.

Usage:
    registry = FeatureRegistry()
    registry.register(fps_tracking_feature)

    handle = await registry.start_feature("fps-tracking", page, None)
    results = await registry.stop_all({"fps-tracking": handle})
"""

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from perfgate.core.exceptions import FeatureNotRegisteredError, FeatureRegistrationError
from perfgate.features.types import Feature, FeatureHandle

if TYPE_CHECKING:
    from playwright.async_api import Page

logger = logging.getLogger(__name__)


class FeatureRegistry:
    """Name -> Feature catalog. Duplicate registration is a programming error."""

    def __init__(self):
        self._features: Dict[str, Feature] = {}

    def register(self, feature: Feature) -> None:
        if feature.name in self._features:
            raise FeatureRegistrationError(feature.name)
        self._features[feature.name] = feature
        logger.debug(f"[FeatureRegistry] Registered {feature.name}")

    def get(self, name: str) -> Optional[Feature]:
        return self._features.get(name)

    def has(self, name: str) -> bool:
        return name in self._features

    def names(self) -> List[str]:
        return list(self._features)

    async def start_feature(
        self,
        name: str,
        page: "Page",
        options: Any = None,
    ) -> Optional[FeatureHandle]:
        """Start a registered feature. Returns None when the browser does not support it."""
        feature = self._features.get(name)
        if feature is None:
            raise FeatureNotRegisteredError(name)
        return await feature.start(page, options)

    async def stop_all(self, handles: Dict[str, FeatureHandle]) -> Dict[str, Any]:
        """
        Stop every handle concurrently.

        A failing stop yields None for that feature and a warning; the other
        handles are still stopped. `handles` is cleared afterwards.

        Returns:
            Dict of feature name -> final result (or None)
        """
        names = list(handles)
        outcomes = await asyncio.gather(
            *(handles[name].stop() for name in names),
            return_exceptions=True,
        )

        results: Dict[str, Any] = {}
        for name, outcome in zip(names, outcomes):
            if isinstance(outcome, BaseException):
                if isinstance(outcome, asyncio.CancelledError):
                    raise outcome
                logger.warning(f"[FeatureRegistry] Failed to stop {name}: {outcome}")
                results[name] = None
            else:
                results[name] = outcome

        handles.clear()
        return results
