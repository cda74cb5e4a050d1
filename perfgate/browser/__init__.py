from perfgate.browser.store import BrowserStore

__all__ = ["BrowserStore"]
