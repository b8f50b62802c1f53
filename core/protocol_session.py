"""Protocol Session - command/event channel for one page

Owned by exactly one Panel. Created by BrowserProcess.new_session().

RESPONSIBILITY:
- Install page-side hooks (exposed clipboard functions + startup script)
- Match the page's color scheme to the host theme
- Proxy arbitrary protocol commands and re-emit every inbound event
- Tear all of that down again in dispose()

INVARIANT: send() never raises. Every outcome is emitted exactly once as
CommandResult or CommandError carrying the caller's correlation id.
INVARIANT: Once detached, the session emits nothing, including late
responses to commands that were in flight.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

from core.events import CommandError, CommandResult, EventStream, ProtocolEvent
from core.exceptions import SessionAttachFailure
from core.page_hooks import ExposedFunc, REMOVE_BINDING_SCRIPT, STARTUP_SCRIPT


TransportFactory = Callable[[Any], Awaitable[Any]]

GO_FORWARD = "Page.goForward"
GO_BACK = ("Page.goBackward", "Page.goBack")
READ_CLIPBOARD = "Clipboard.readText"


class ProtocolSession:
    """Bidirectional channel bound to one browser tab."""

    def __init__(
        self,
        page: Any,
        clipboard: Any,
        transport_factory: TransportFactory,
        color_scheme: str = "dark",
    ):
        self.page = page
        self.clipboard = clipboard
        self.color_scheme = color_scheme
        self.events = EventStream("session")
        self._transport_factory = transport_factory
        self._transport = None
        self._unsubscribe_transport: Optional[Callable[[], None]] = None
        self._inbound: "asyncio.Queue[ProtocolEvent]" = asyncio.Queue()
        self._pump: Optional[asyncio.Task] = None
        self._detached = False

    @property
    def id(self) -> Optional[str]:
        """Target id of the tab (equals its main frame id); None before attach."""
        return getattr(self._transport, "target_id", None)

    @property
    def attached(self) -> bool:
        return self._transport is not None and not self._detached

    def subscribe(self, handler) -> Callable[[], None]:
        return self.events.subscribe(handler)

    # =========================================================================
    # ATTACH
    # =========================================================================

    async def attach(self) -> "ProtocolSession":
        """Install instrumentation and open the raw transport."""
        try:
            hooks = (
                (ExposedFunc.ENABLE_COPY_PASTE, self._enable_copy_paste),
                (ExposedFunc.EMIT_COPY, self._on_copy),
                (ExposedFunc.GET_PASTE, self._get_paste),
            )
            results = await asyncio.gather(
                *(self.page.expose_function(name.value, callback) for name, callback in hooks),
                return_exceptions=True,
            )
            for (name, _callback), result in zip(hooks, results):
                if isinstance(result, Exception):
                    logging.warning(f"Could not expose {name.value}: {result}")

            await self.page.add_init_script(script=STARTUP_SCRIPT)
            await self.page.emulate_media(color_scheme=self.color_scheme)

            self._transport = await self._transport_factory(self.page)
            self._unsubscribe_transport = self._transport.on_event(self._on_protocol_event)
            self._pump = asyncio.ensure_future(self._pump_events())
        except Exception as e:
            logging.error(f"Error attaching session: {e}")
            raise SessionAttachFailure(f"Session attach failed: {e}") from e

        logging.info(f"Session {self.id} attached")
        return self

    # Exposed to page script

    async def _enable_copy_paste(self) -> bool:
        return True

    async def _on_copy(self, text: str) -> bool:
        try:
            return await self.clipboard.write_text(text)
        except Exception as e:
            logging.warning(f"Copy from page not synced: {e}")
            return False

    async def _get_paste(self) -> str:
        try:
            return await self.clipboard.read_text()
        except Exception as e:
            logging.warning(f"Paste into page unavailable: {e}")
            return ""

    # =========================================================================
    # EVENTS
    # =========================================================================

    def _on_protocol_event(self, method: str, params: Any) -> None:
        if not self._detached:
            self._inbound.put_nowait(ProtocolEvent(method=method, result=params))

    async def _pump_events(self) -> None:
        # Preserves arrival order while letting handlers issue commands
        while True:
            event = await self._inbound.get()
            await self._emit(event)

    async def _emit(self, event: Any) -> None:
        if self._detached:
            return
        await self.events.emit(event)

    # =========================================================================
    # COMMANDS
    # =========================================================================

    async def send(self, action: str, data: Optional[dict] = None, correlation_id: Optional[int] = None) -> None:
        """Dispatch one command. Resolves by emission, never by return value."""
        try:
            if action == GO_FORWARD:
                await self.page.go_forward()
                result = None
            elif action in GO_BACK:
                await self.page.go_back()
                result = None
            elif action == READ_CLIPBOARD:
                result = await self.clipboard.read_text()
            else:
                if self._transport is None:
                    raise SessionAttachFailure("Session is not attached")
                result = await self._transport.send(action, data or {})
        except Exception as e:
            logging.debug(f"Command {action} failed: {e}")
            await self._emit(CommandError(correlation_id=correlation_id, error=str(e)))
            return

        await self._emit(CommandResult(correlation_id=correlation_id, result=result))

    async def navigate(self, url: str) -> None:
        await self.page.goto(url)

    async def reload(self) -> None:
        await self.page.reload()

    # =========================================================================
    # TEARDOWN
    # =========================================================================

    async def detach(self) -> None:
        """Stop event delivery and close the raw transport. Idempotent."""
        if self._detached:
            return
        self._detached = True
        self.events.clear()

        if self._unsubscribe_transport is not None:
            self._unsubscribe_transport()
            self._unsubscribe_transport = None

        if self._pump is not None:
            self._pump.cancel()
            try:
                await self._pump
            except asyncio.CancelledError:
                pass
            self._pump = None

        if self._transport is not None:
            await self._transport.detach()

        logging.info(f"Session {self.id} detached")

    async def dispose(self) -> None:
        """Detach, drop page hooks (best effort), close the page."""
        try:
            await self.detach()

            # The page is about to close; removal failures do not matter
            results = await asyncio.gather(
                *(self.page.evaluate(REMOVE_BINDING_SCRIPT, name.value) for name in ExposedFunc),
                return_exceptions=True,
            )
            for name, result in zip(ExposedFunc, results):
                if isinstance(result, Exception):
                    logging.debug(f"Ignoring failure removing {name.value}: {result}")

            await self.page.close()
        except Exception as e:
            logging.error(f"Error disposing session {self.id}: {e}")
            raise
