"""Panel Manager - Single Authority for Panels and the Shared Browser

RESPONSIBILITY:
- Create panels (lazily launching the shared BrowserProcess)
- Track live panels and which one is focused (`current`)
- Keep the host's "panel is active" context flag in sync with `current`
- Close the shared browser when the last panel goes away

DOES NOT:
- Talk to the protocol directly (ProtocolSession's job)
- Decide launch arguments (BrowserProcess's job)

INVARIANT: the active context flag is True exactly when `current` is set.
INVARIANT: `current` is None or a member of `panels`.
INVARIANT: the shared browser exists only while panels exist (or are being created).
"""

import asyncio
import logging
from dataclasses import replace
from pathlib import Path
from typing import Callable, Optional, Set

from core.browser_config import BrowserSettings, load_settings
from core.browser_process import BrowserProcess
from core.events import (
    EventStream,
    PanelBlurred,
    PanelDisposed,
    PanelFocused,
    WindowCreated,
    WindowDisposed,
    WindowOpenRequested,
)
from core.host import Host
from core.panel import Panel


ACTIVE_CONTEXT_KEY = "browse-panel-active"

BrowserFactory = Callable[[BrowserSettings, Host], BrowserProcess]


def default_browser_factory(settings: BrowserSettings, host: Host) -> BrowserProcess:
    return BrowserProcess(settings, notify=host.show_error)


class PanelManager:
    """Creates, tracks and tears down panels.

    Usage:
        manager = PanelManager(host)
        panel = await manager.create("https://example.com")
        ...
        await manager.dispose_all()
    """

    def __init__(
        self,
        host: Host,
        settings_loader: Callable[[], BrowserSettings] = load_settings,
        browser_factory: BrowserFactory = default_browser_factory,
    ):
        self.host = host
        self.panels: Set[Panel] = set()
        self.current: Optional[Panel] = None
        self.browser: Optional[BrowserProcess] = None
        self.events = EventStream("panel-manager")
        self._settings_loader = settings_loader
        self._browser_factory = browser_factory
        self._opening: Set[asyncio.Future] = set()
        self.config = settings_loader()

        self.events.subscribe(self._on_manager_event)

    async def _on_manager_event(self, event) -> None:
        if isinstance(event, WindowOpenRequested):
            # Not on the opener's event pump: disposing the opener must not cancel this
            task = asyncio.ensure_future(self.create(event.url))
            self._opening.add(task)
            task.add_done_callback(self._on_open_done)

    def _on_open_done(self, task: asyncio.Future) -> None:
        self._opening.discard(task)
        if task.cancelled():
            logging.info("Window open cancelled")
        elif task.exception() is not None:
            logging.error(f"Window open failed: {task.exception()}")

    def _refresh_settings(self) -> None:
        # The running browser keeps its port; a settings change cannot move it
        previous = self.config
        self.config = replace(self._settings_loader(), debug_port=previous.debug_port)

    async def _set_active(self, value: bool) -> None:
        await self.host.set_context(ACTIVE_CONTEXT_KEY, value)

    # =========================================================================
    # CREATE
    # =========================================================================

    async def create(self, start_url: Optional[str] = None) -> Panel:
        """Open a new panel on start_url (default: configured start URL)."""
        self._refresh_settings()
        url = str(start_url or self.config.start_url)

        if self.browser is None:
            self.browser = self._browser_factory(self.config, self.host)
        browser = self.browser

        panel = Panel(replace(self.config, start_url=url), browser, notify=self.host.show_error)
        self._wire(panel)

        # Counted before launch so concurrent creates keep the browser alive
        self.panels.add(panel)
        try:
            await panel.launch(url)
        except Exception as e:
            logging.error(f"Error creating panel: {e}")
            self.host.show_error(f"Failed to create panel: {e}")
            await self._abandon(panel, browser)
            raise
        except BaseException:
            logging.info(f"Panel creation for {url} cancelled")
            await self._abandon(panel, browser)
            raise

        if browser.debug_port is not None:
            self.config = replace(self.config, debug_port=browser.debug_port)
            panel.config = replace(panel.config, debug_port=browser.debug_port)

        await self.events.emit(WindowCreated(panel))
        panel.disposables.append(self.host.register_teardown(panel.dispose))

        logging.info(f"Created panel for {url} ({len(self.panels)} live)")
        return panel

    async def _abandon(self, panel: Panel, browser: BrowserProcess) -> None:
        """Undo a half-created panel without firing its lifecycle events."""
        panel.events.clear()
        panel.disposed = True
        self.panels.discard(panel)
        if self.current is panel:
            self.current = None
            await self._set_active(False)

        if panel.session is not None:
            try:
                await panel.session.dispose()
            except Exception as e:
                logging.warning(f"Failed to clean up half-created panel: {e}")

        if not self.panels and self.browser is browser:
            self.browser = None
            try:
                await browser.close()
            except Exception as e:
                logging.warning(f"Failed to close browser after failed create: {e}")

    async def create_from_file(self, filepath: str) -> Optional[Panel]:
        """Open a local file; optionally reload the panel when it changes."""
        if not filepath:
            return None

        panel = await self.create(Path(filepath).absolute().as_uri())

        if self.config.local_file_auto_reload:
            stop = self.host.watch_file(filepath, panel.reload)
            panel.disposables.append(stop)

        return panel

    # =========================================================================
    # PANEL EVENTS
    # =========================================================================

    def _wire(self, panel: Panel) -> None:
        async def on_panel_event(event) -> None:
            if isinstance(event, PanelDisposed):
                await self._on_disposed(panel)
            elif isinstance(event, WindowOpenRequested):
                await self.events.emit(event)
            elif isinstance(event, PanelFocused):
                self.current = panel
                await self._set_active(True)
            elif isinstance(event, PanelBlurred):
                if self.current is panel:
                    self.current = None
                    await self._set_active(False)

        panel.events.subscribe(on_panel_event)

    async def _on_disposed(self, panel: Panel) -> None:
        if self.current is panel:
            self.current = None
            await self._set_active(False)

        self.panels.discard(panel)

        if not self.panels and self.browser is not None:
            browser, self.browser = self.browser, None
            try:
                await browser.close()
            except Exception as e:
                # Already reported through the host by BrowserProcess
                logging.error(f"Error closing browser after last panel: {e}")

        await self.events.emit(WindowDisposed(panel))
        logging.info(f"Disposed panel for {panel.start_url} ({len(self.panels)} live)")

    # =========================================================================
    # BULK DISPOSAL
    # =========================================================================

    async def dispose_by_url(self, url: str) -> None:
        """Dispose every live panel whose start URL equals url, concurrently."""
        targets = [panel for panel in list(self.panels) if panel.config.start_url == url]
        await asyncio.gather(*(panel.dispose() for panel in targets))

    async def dispose_all(self) -> None:
        """Cancel pending window opens, then dispose every live panel."""
        opening = list(self._opening)
        for task in opening:
            task.cancel()
        if opening:
            await asyncio.wait(opening)
        await asyncio.gather(*(panel.dispose() for panel in list(self.panels)))
