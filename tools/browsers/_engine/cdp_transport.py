"""Raw remote-debugging transport for one page

Speaks the DevTools JSON protocol over a WebSocket:
- Outbound: {"id", "method", "params"} with monotonically increasing ids
- Inbound with "id": response to a pending command
- Inbound with "method": event, handed to every catch-all listener

Dependency: aiohttp

DOES NOT:
- Interpret any method (ProtocolSession decides what to proxy)
- Reconnect (a lost browser surfaces as failing commands)
"""

import asyncio
import json
import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

import aiohttp

from core.exceptions import AlreadyClosed, CommandFailure


EventListener = Callable[[str, Any], None]


def page_ws_url(debug_port: int, target_id: str, host: str = "127.0.0.1") -> str:
    return f"ws://{host}:{debug_port}/devtools/page/{target_id}"


class CDPTransport:
    """One WebSocket connection to a page target."""

    def __init__(self, ws_url: str, target_id: Optional[str] = None):
        self.ws_url = ws_url
        self.target_id = target_id
        self._http: Optional[aiohttp.ClientSession] = None
        self._ws = None
        self._reader: Optional[asyncio.Task] = None
        self._next_id = 0
        self._pending: Dict[int, Tuple[str, asyncio.Future]] = {}
        self._listeners: List[EventListener] = []
        self._detached = False

    @property
    def connected(self) -> bool:
        return self._ws is not None and not self._detached

    async def connect(self) -> "CDPTransport":
        self._http = aiohttp.ClientSession()
        try:
            self._ws = await self._http.ws_connect(self.ws_url, max_msg_size=0)
        except Exception:
            await self._http.close()
            self._http = None
            raise
        self._reader = asyncio.ensure_future(self._read_loop())
        logging.info(f"CDP connected to {self.ws_url}")
        return self

    def on_event(self, listener: EventListener) -> Callable[[], None]:
        """Register a catch-all event listener; returns unsubscribe."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def send(self, method: str, params: Optional[dict] = None) -> Any:
        """Send a command and wait for its result.

        Raises CommandFailure for protocol error responses and
        AlreadyClosed once the transport is detached.
        """
        if not self.connected:
            raise AlreadyClosed(f"Transport detached, cannot send {method}")

        self._next_id += 1
        msg_id = self._next_id
        message = {"id": msg_id, "method": method, "params": params or {}}

        future = asyncio.get_running_loop().create_future()
        self._pending[msg_id] = (method, future)
        try:
            await self._ws.send_str(json.dumps(message))
            return await future
        finally:
            self._pending.pop(msg_id, None)

    def _dispatch(self, data: dict) -> None:
        if "id" in data:
            method, future = self._pending.get(data["id"], (None, None))
            if future is None or future.done():
                # Response for a command nobody waits for anymore
                return
            if "error" in data:
                error = data["error"]
                message = error.get("message", str(error)) if isinstance(error, dict) else str(error)
                future.set_exception(CommandFailure(method, message))
            else:
                future.set_result(data.get("result", {}))
            return

        method = data.get("method")
        if not method:
            return
        for listener in list(self._listeners):
            try:
                listener(method, data.get("params", {}))
            except Exception as e:
                logging.error(f"CDP event listener failed for {method}: {e}")

    async def _read_loop(self) -> None:
        try:
            async for msg in self._ws:
                if msg.type == aiohttp.WSMsgType.TEXT:
                    try:
                        self._dispatch(json.loads(msg.data))
                    except json.JSONDecodeError:
                        logging.warning(f"CDP sent invalid JSON on {self.ws_url}")
                elif msg.type == aiohttp.WSMsgType.ERROR:
                    logging.error(f"CDP WebSocket error: {self._ws.exception()}")
                    break
        finally:
            self._fail_pending(AlreadyClosed("Transport connection closed"))

    def _fail_pending(self, error: Exception) -> None:
        for _method, future in self._pending.values():
            if not future.done():
                future.set_exception(error)
        self._pending.clear()

    async def detach(self) -> None:
        """Close the connection. Safe to call more than once."""
        if self._detached:
            return
        self._detached = True
        self._listeners.clear()

        if self._reader is not None:
            self._reader.cancel()
            try:
                await self._reader
            except (asyncio.CancelledError, Exception):
                pass
            self._reader = None

        self._fail_pending(AlreadyClosed("Transport detached"))

        if self._ws is not None:
            await self._ws.close()
            self._ws = None
        if self._http is not None:
            await self._http.close()
            self._http = None

        logging.info(f"CDP detached from {self.ws_url}")
