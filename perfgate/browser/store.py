"""
In-page metric stores.

A store is a plain object on `window` that observers installed by a setup
script write into. The setup script returns early when the store already
exists, so injecting it both as an init script and through evaluate never
registers duplicate observers.

Lifecycle:
    inject(page)             - run the setup script on every new document
    ensure_initialized(page) - run it now if the current document lacks it
    read(page)               - snapshot the store (None if missing)
    reset(page)              - clear recorded values, keep observers
    teardown(page)           - delete the store from window
"""

import logging
from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from playwright.async_api import Page

logger = logging.getLogger(__name__)

_IS_INITIALIZED = "(key) => window[key] !== undefined && window[key].initialized === true"

_READ = """(key) => {
  const store = window[key];
  if (!store || !store.initialized) {
    return null;
  }
  return JSON.parse(JSON.stringify(store));
}"""

_TEARDOWN = "(key) => { delete window[key]; }"


class BrowserStore:
    """
    Handle on one `window[key]` store.

    Args:
        key: Global property name, e.g. "__WEB_VITALS__"
        setup_script: JS function source, no arguments, creating the store
        reset_script: JS function source taking the store object
    """

    def __init__(self, key: str, setup_script: str, reset_script: str):
        self.key = key
        self.setup_script = setup_script
        self.reset_script = reset_script

    async def inject(self, page: "Page") -> None:
        await page.add_init_script(script=f"({self.setup_script})();")
        logger.debug(f"[BrowserStore] {self.key} injected via add_init_script")

    async def is_initialized(self, page: "Page") -> bool:
        return bool(await page.evaluate(_IS_INITIALIZED, self.key))

    async def ensure_initialized(self, page: "Page") -> None:
        """Covers documents created before inject (set_content, the current page)."""
        if not await self.is_initialized(page):
            await page.evaluate(self.setup_script)
            logger.debug(f"[BrowserStore] {self.key} injected via evaluate")

    async def read(self, page: "Page") -> Optional[dict[str, Any]]:
        await self.ensure_initialized(page)
        return await page.evaluate(_READ, self.key)

    async def reset(self, page: "Page") -> None:
        script = f"""(key) => {{
  const store = window[key];
  if (store) {{
    ({self.reset_script})(store);
  }}
}}"""
        await page.evaluate(script, self.key)
        logger.debug(f"[BrowserStore] {self.key} reset")

    async def teardown(self, page: "Page") -> None:
        await page.evaluate(_TEARDOWN, self.key)
        logger.debug(f"[BrowserStore] {self.key} removed")
