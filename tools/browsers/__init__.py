"""Browsers domain - browser backends

_engine/ holds the private backend layer used by core.browser_process:
- base.py: AbstractBrowserBackend + launch/handle types
- playwright.py: Playwright implementation
- cdp_transport.py: raw per-page remote-debugging channel

Nothing here tracks panels or decides policy.
"""
