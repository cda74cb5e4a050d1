"""
Feature Coordination - per-run map of live handles.

Holds one handle per feature name so the iteration runner can reset
instrumentation between passes and collect per-pass results.
"""

import logging
from typing import Any, Dict, List, Optional

from perfgate.features.types import FeatureHandle, is_resettable

logger = logging.getLogger(__name__)


class FeatureCoordination:
    """
    Only ever touched from the orchestrating task, so no lock is needed.
    """

    def __init__(self):
        self._handles: Dict[str, FeatureHandle] = {}

    def set_handle(self, name: str, handle: Optional[FeatureHandle]) -> None:
        """Register (overwrite) a handle; None removes the entry."""
        if handle is None:
            self._handles.pop(name, None)
        else:
            self._handles[name] = handle

    def get_handle(self, name: str) -> Optional[FeatureHandle]:
        return self._handles.get(name)

    def names(self) -> List[str]:
        return list(self._handles)

    async def reset_if_active(self, name: str) -> bool:
        """Reset one feature if it is registered, active and resettable."""
        handle = self._handles.get(name)
        if handle is None or not handle.is_active() or not is_resettable(handle):
            return False
        await handle.reset()
        # A failed reset deactivates the handle
        return handle.is_active()

    async def reset_all_active(self) -> List[str]:
        """Reset every active resettable handle in registration order. Returns the names reset."""
        reset: List[str] = []
        for name in list(self._handles):
            if await self.reset_if_active(name):
                reset.append(name)
        return reset

    async def collect_all_active(self) -> Dict[str, Any]:
        """Collect per-iteration results from every active resettable handle."""
        results: Dict[str, Any] = {}
        for name, handle in list(self._handles.items()):
            if handle.is_active() and is_resettable(handle):
                results[name] = await handle.collect()
        return results

    def clear(self) -> None:
        """Drop all registrations without stopping or resetting them."""
        self._handles.clear()

    def __len__(self) -> int:
        return len(self._handles)
