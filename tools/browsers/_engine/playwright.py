"""Playwright Browser Backend Implementation

Implements AbstractBrowserBackend using Playwright's async API, with the
raw per-page protocol channel opened by CDPTransport on the debug port.

Dependency: playwright
Setup: playwright install chromium (or point chrome_executable at a local install)
"""

import logging
from pathlib import Path
from typing import Any, List

from core.exceptions import LaunchFailure
from .base import AbstractBrowserBackend, EngineHandle, LaunchConfig
from .cdp_transport import CDPTransport, page_ws_url


class PlaywrightEngine(AbstractBrowserBackend):
    """Playwright implementation of browser backend."""

    # Playwright mutes audio by default; an embedded browser should not
    IGNORED_DEFAULT_ARGS = ["--mute-audio"]

    def __init__(self):
        self._playwright = None

    async def _ensure_playwright(self):
        """Lazily initialize Playwright."""
        if self._playwright is None:
            try:
                from playwright.async_api import async_playwright
            except ImportError:
                raise LaunchFailure(
                    "Playwright not installed. Run: pip install playwright"
                )
            self._playwright = await async_playwright().start()
            logging.info("Playwright engine initialized")
        return self._playwright

    async def launch(self, config: LaunchConfig) -> EngineHandle:
        """Launch the browser.

        Persistent context (user_data_dir set):
        - Uses launch_persistent_context()
        - Keeps cookies, logins, sessions across runs
        - No separate browser handle

        Ephemeral context:
        - Uses chromium.launch() + browser.new_context()
        - Fresh profile each time
        """
        playwright = await self._ensure_playwright()
        chromium = playwright.chromium

        launch_opts = {
            "executable_path": config.executable_path,
            "args": list(config.args),
            "headless": config.headless,
            "ignore_default_args": self.IGNORED_DEFAULT_ARGS,
        }

        try:
            if config.user_data_dir:
                profile_path = Path(config.user_data_dir)
                profile_path.mkdir(parents=True, exist_ok=True)
                logging.info(f"Using persistent profile: {profile_path}")

                context = await chromium.launch_persistent_context(
                    str(profile_path),
                    ignore_https_errors=config.ignore_https_errors,
                    **launch_opts,
                )
                logging.info(f"Launched {config.executable_path} with persistent profile")
                return EngineHandle(context=context)

            browser = await chromium.launch(**launch_opts)
            context = await browser.new_context(ignore_https_errors=config.ignore_https_errors)
            logging.info(f"Launched {config.executable_path} ephemeral")
            return EngineHandle(context=context, browser=browser)
        except Exception as e:
            logging.error(f"Failed to launch {config.executable_path}: {e}")
            await self.shutdown()
            raise LaunchFailure(f"Browser launch failed: {e}") from e

    async def pages(self, handle: EngineHandle) -> List[Any]:
        return list(handle.context.pages)

    async def new_page(self, handle: EngineHandle) -> Any:
        return await handle.context.new_page()

    async def open_transport(self, page: Any, debug_port: int) -> CDPTransport:
        # Short-lived Playwright session just to learn the target id
        probe = await page.context.new_cdp_session(page)
        try:
            info = await probe.send("Target.getTargetInfo")
        finally:
            await probe.detach()

        target_id = info["targetInfo"]["targetId"]
        transport = CDPTransport(page_ws_url(debug_port, target_id), target_id=target_id)
        return await transport.connect()

    async def close(self, handle: EngineHandle) -> None:
        """Close browser instance and stop Playwright."""
        try:
            await handle.context.close()
            if handle.browser is not None:
                await handle.browser.close()
            logging.info("Browser closed")
        finally:
            await self.shutdown()

    async def shutdown(self) -> None:
        """Stop Playwright.

        CRITICAL: async_playwright().start() MUST be matched with .stop().
        """
        if self._playwright:
            try:
                await self._playwright.stop()
                logging.info("Playwright engine stopped")
            except Exception as e:
                logging.warning(f"Error stopping Playwright: {e}")
            finally:
                self._playwright = None
