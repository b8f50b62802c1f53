"""Panel - one user-facing browser surface backed by one tab

A panel owns exactly one ProtocolSession. It forwards host UI messages to
the session, forwards every session event back out through `messages`, and
reports its own lifecycle (focus, blur, disposed, window-open) through
`events`.
"""

import asyncio
import logging
from typing import Any, Callable, List, Optional

from core.browser_config import BrowserSettings
from core.events import (
    EventStream,
    PanelBlurred,
    PanelDisposed,
    PanelFocused,
    ProtocolEvent,
    WindowOpenRequested,
)
from core.protocol_session import ProtocolSession


WINDOW_OPEN_EVENT = "Page.windowOpen"


class Panel:
    def __init__(self, config: BrowserSettings, browser, notify: Optional[Callable[[str], None]] = None):
        self.config = config
        self.browser = browser
        self._notify = notify or (lambda message: None)
        self._disposing: Optional[asyncio.Future] = None
        self.session: Optional[ProtocolSession] = None
        self.focused = False
        self.disposed = False
        self.disposables: List[Callable[[], Any]] = []
        self.events = EventStream("panel")
        self.messages = EventStream("panel-messages")

    @property
    def start_url(self) -> str:
        return self.config.start_url

    async def launch(self, start_url: Optional[str] = None) -> None:
        """Get a session from the shared browser and open start_url in it."""
        url = start_url or self.config.start_url
        await self.browser.ensure_launched()
        self.session = await self.browser.new_session()
        self.session.subscribe(self._on_session_event)
        await self.navigate(url)
        logging.info(f"Panel {self.session.id} opened {url}")

    async def _on_session_event(self, event: Any) -> None:
        if isinstance(event, ProtocolEvent) and event.method == WINDOW_OPEN_EVENT:
            url = (event.result or {}).get("url")
            if url:
                await self.events.emit(WindowOpenRequested(url=url))
        await self.messages.emit(event)

    # =========================================================================
    # HOST UI
    # =========================================================================

    async def send(self, action: str, data: Optional[dict] = None, correlation_id: Optional[int] = None) -> None:
        if self.disposed or self.session is None:
            logging.debug(f"Dropping {action}: panel not live")
            return
        await self.session.send(action, data, correlation_id)

    async def handle_message(self, message: dict) -> None:
        """Entry point for messages posted by the host's panel UI.

        {"type": "page", "action", "data", "correlationId"}
        {"type": "windowOpenRequested", "url"}
        {"type": "focus"} / {"type": "blur"}
        """
        kind = message.get("type")
        if kind == "page":
            await self.send(message.get("action", ""), message.get("data"), message.get("correlationId"))
        elif kind == "windowOpenRequested":
            await self.events.emit(WindowOpenRequested(url=message["url"]))
        elif kind == "focus":
            await self.focus()
        elif kind == "blur":
            await self.blur()
        else:
            logging.warning(f"Unknown panel message type: {kind}")

    async def focus(self) -> None:
        self.focused = True
        await self.events.emit(PanelFocused(self))

    async def blur(self) -> None:
        self.focused = False
        await self.events.emit(PanelBlurred(self))

    async def navigate(self, url: str) -> None:
        """Load url. A failed load leaves the panel on the browser's error page."""
        if self.session is None:
            return
        try:
            await self.session.navigate(url)
        except Exception as e:
            logging.warning(f"Failed to open {url}: {e}")
            self._notify(f"Failed to open {url}: {e}")

    async def reload(self) -> None:
        if self.disposed or self.session is None:
            return
        logging.info(f"Reloading panel {self.session.id}")
        await self.session.reload()

    # =========================================================================
    # TEARDOWN
    # =========================================================================

    async def dispose(self) -> None:
        """Tear down once. Later calls (close, bulk dispose, host teardown) wait for that teardown."""
        if self._disposing is not None:
            await asyncio.wait({self._disposing})
            return
        if self.disposed:
            # Abandoned before it was ever live
            return
        self.disposed = True
        self.focused = False
        self._disposing = asyncio.ensure_future(self._dispose())
        await asyncio.shield(self._disposing)

    async def _dispose(self) -> None:
        for disposable in self.disposables:
            try:
                disposable()
            except Exception as e:
                logging.warning(f"Panel disposable failed: {e}")
        self.disposables.clear()

        try:
            if self.session is not None:
                await self.session.dispose()
        except Exception as e:
            self._notify(f"Failed to dispose panel: {e}")
            raise
        finally:
            await self.events.emit(PanelDisposed(self))
            self.events.clear()
            self.messages.clear()
