"""Host collaborators

The application embedding the browser panels supplies these capabilities.
Only the contracts live here, plus HeadlessHost, a standalone host used by
main.py that logs instead of showing UI.
"""

import asyncio
import inspect
import logging
import os
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, List, Optional


OnChange = Callable[[], Any]


class Host(ABC):
    """What the control plane needs from its embedding application."""

    @abstractmethod
    def show_error(self, message: str) -> None:
        """User-visible error notification."""
        raise NotImplementedError

    @abstractmethod
    async def set_context(self, key: str, value: bool) -> None:
        """Flag a global UI condition (e.g. 'a panel is active')."""
        raise NotImplementedError

    @abstractmethod
    def register_teardown(self, callback: Callable[[], Awaitable[None]]) -> Callable[[], None]:
        """Run callback when the host tears down the panel's container.

        Returns a callable that unregisters it again.
        """
        raise NotImplementedError

    @abstractmethod
    def watch_file(self, path: str, on_change: OnChange) -> Callable[[], None]:
        """Call on_change whenever path changes; returns a stop callable."""
        raise NotImplementedError


class HeadlessHost(Host):
    """Host without UI: errors go to the log, context keys to a dict."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self.context: Dict[str, bool] = {}
        self.errors: List[str] = []
        self._teardown: List[Callable[[], Awaitable[None]]] = []
        self._loop = loop

    def show_error(self, message: str) -> None:
        self.errors.append(message)
        logging.error(message)

    async def set_context(self, key: str, value: bool) -> None:
        self.context[key] = value
        logging.debug(f"Context {key} = {value}")

    def register_teardown(self, callback: Callable[[], Awaitable[None]]) -> Callable[[], None]:
        self._teardown.append(callback)

        def unregister() -> None:
            if callback in self._teardown:
                self._teardown.remove(callback)

        return unregister

    async def teardown(self) -> None:
        """Run every registered teardown callback, newest first."""
        callbacks, self._teardown = self._teardown, []
        for callback in reversed(callbacks):
            try:
                await callback()
            except Exception as e:
                logging.warning(f"Teardown callback failed: {e}")

    def watch_file(self, path: str, on_change: OnChange) -> Callable[[], None]:
        """Watch one file with watchdog; on_change runs on the event loop."""
        from watchdog.events import FileSystemEventHandler
        from watchdog.observers import Observer

        loop = self._loop or asyncio.get_running_loop()
        target = os.path.abspath(path)

        def fire() -> None:
            result = on_change()
            if inspect.isawaitable(result):
                asyncio.ensure_future(result)

        class SingleFileHandler(FileSystemEventHandler):
            def on_modified(self, event):
                if not event.is_directory and os.path.abspath(event.src_path) == target:
                    loop.call_soon_threadsafe(fire)

            on_created = on_modified

        observer = Observer()
        observer.schedule(SingleFileHandler(), os.path.dirname(target), recursive=False)
        observer.start()
        logging.info(f"Watching {target} for changes")

        def stop() -> None:
            observer.stop()
            observer.join(timeout=2.0)

        return stop
