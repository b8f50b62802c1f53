"""Event Streams - Explicit message passing between components

Each component owns one or more EventStream instances. Subscribers register
a handler and get back an unsubscribe callable. There is no global emitter.

Handlers may be plain callables or coroutine functions; emit() awaits them
in subscription order. A failing handler is logged and does not stop
delivery to the remaining subscribers.
"""

import inspect
import logging
from dataclasses import dataclass
from typing import Any, Callable, List, Optional


# =============================================================================
# SESSION EVENTS (ProtocolSession -> Panel)
# =============================================================================

@dataclass(frozen=True)
class CommandResult:
    """A command completed. Paired with its request by correlation_id only."""
    correlation_id: Optional[int]
    result: Any = None

    def to_message(self) -> dict:
        return {"correlationId": self.correlation_id, "result": self.result}


@dataclass(frozen=True)
class CommandError:
    """A command failed. Carries the error message, never the exception."""
    correlation_id: Optional[int]
    error: str

    def to_message(self) -> dict:
        return {"correlationId": self.correlation_id, "error": self.error}


@dataclass(frozen=True)
class ProtocolEvent:
    """Unsolicited protocol event (no correlation id)."""
    method: str
    result: Any = None

    def to_message(self) -> dict:
        return {"method": self.method, "result": self.result}


# =============================================================================
# PANEL EVENTS (Panel -> PanelManager)
# =============================================================================

@dataclass(frozen=True)
class PanelFocused:
    panel: Any


@dataclass(frozen=True)
class PanelBlurred:
    panel: Any


@dataclass(frozen=True)
class PanelDisposed:
    panel: Any


@dataclass(frozen=True)
class WindowOpenRequested:
    """A page asked to open a new top-level window."""
    url: str


# =============================================================================
# MANAGER EVENTS (PanelManager -> host)
# =============================================================================

@dataclass(frozen=True)
class WindowCreated:
    panel: Any


@dataclass(frozen=True)
class WindowDisposed:
    panel: Any


Handler = Callable[[Any], Any]


class EventStream:
    """Ordered list of subscribers for one outbound event stream."""

    def __init__(self, name: str = "events"):
        self.name = name
        self._handlers: List[Handler] = []

    def subscribe(self, handler: Handler) -> Callable[[], None]:
        """Register handler; returns an idempotent unsubscribe callable."""
        self._handlers.append(handler)

        def unsubscribe() -> None:
            if handler in self._handlers:
                self._handlers.remove(handler)

        return unsubscribe

    def once(self, handler: Handler) -> Callable[[], None]:
        """Register handler for the next event only."""
        unsubscribe: Callable[[], None]

        def wrapper(event):
            unsubscribe()
            return handler(event)

        unsubscribe = self.subscribe(wrapper)
        return unsubscribe

    async def emit(self, event: Any) -> None:
        for handler in list(self._handlers):
            try:
                result = handler(event)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logging.error(f"[{self.name}] handler failed for {type(event).__name__}: {e}")

    def clear(self) -> None:
        self._handlers.clear()

    def __len__(self) -> int:
        return len(self._handlers)
