"""Browser Process - the single shared browser behind every panel

State machine: UNLAUNCHED -> LAUNCHING -> RUNNING -> CLOSED
CLOSED is terminal. A fresh instance must be constructed to launch again.

RESPONSIBILITY:
- Probe a free debug port, assemble launch arguments, start the browser
- Open pages and wrap them in attached ProtocolSessions
- Close the browser

DOES NOT:
- Decide when to close (PanelManager's job, via the live panel count)
- Own sessions (each Panel owns its own; only weak references are kept here)

GUARDRAIL: Concurrent ensure_launched() callers share one in-flight launch.
"""

import asyncio
import logging
import socket
import sys
import weakref
from enum import Enum
from typing import Callable, List, Optional

from core.browser_config import BrowserSettings
from core.exceptions import (
    AlreadyClosed,
    ExecutableNotFound,
    LaunchFailure,
    LaunchRequired,
)
from core.executable_locator import locate_executable
from core.protocol_session import ProtocolSession
from tools.browsers._engine.base import AbstractBrowserBackend, EngineHandle, LaunchConfig


class ProcessState(Enum):
    UNLAUNCHED = "unlaunched"
    LAUNCHING = "launching"
    RUNNING = "running"
    CLOSED = "closed"


def find_available_port(start: int, attempts: int = 100, host: str = "127.0.0.1") -> int:
    """First port >= start that can be bound on host.

    The probe socket is closed before returning, so the port is free for
    the browser to take.
    """
    for port in range(start, start + attempts):
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as probe:
            try:
                probe.bind((host, port))
            except OSError:
                logging.debug(f"Debug port {port} in use, trying next")
                continue
        return port
    raise LaunchFailure(f"No available debug port in range {start}-{start + attempts - 1}")


def build_launch_args(settings: BrowserSettings, debug_port: int, platform: Optional[str] = None) -> List[str]:
    args = [
        f"--remote-debugging-port={debug_port}",
        "--allow-file-access-from-files",
        "--remote-allow-origins=*",
    ]

    if settings.proxy:
        args.append(f"--proxy-server={settings.proxy}")

    if (platform or sys.platform).startswith("linux"):
        args.append("--no-sandbox")

    args.extend(settings.extra_args)
    return args


class BrowserProcess:
    """Owns the browser process and hands out ProtocolSessions."""

    def __init__(
        self,
        settings: BrowserSettings,
        engine: Optional[AbstractBrowserBackend] = None,
        clipboard=None,
        notify: Optional[Callable[[str], None]] = None,
        locator: Callable[[], Optional[str]] = locate_executable,
    ):
        self.settings = settings
        self.state = ProcessState.UNLAUNCHED
        self.debug_port: Optional[int] = None
        self.launch_config: Optional[LaunchConfig] = None
        self._engine = engine
        self._clipboard = clipboard
        self._notify = notify or (lambda message: None)
        self._locator = locator
        self._handle: Optional[EngineHandle] = None
        self._launch_task: Optional[asyncio.Future] = None
        self._sessions: "weakref.WeakSet[ProtocolSession]" = weakref.WeakSet()

    def _get_engine(self) -> AbstractBrowserBackend:
        """Lazily initialize browser engine."""
        if self._engine is None:
            from tools.browsers._engine.playwright import PlaywrightEngine
            self._engine = PlaywrightEngine()
        return self._engine

    def _get_clipboard(self):
        if self._clipboard is None:
            from tools.system.clipboard.bridge import ClipboardBridge
            self._clipboard = ClipboardBridge()
        return self._clipboard

    @property
    def is_running(self) -> bool:
        return self.state is ProcessState.RUNNING

    # =========================================================================
    # LAUNCH
    # =========================================================================

    async def ensure_launched(self) -> int:
        """Launch once; every concurrent caller awaits the same launch.

        Returns the resolved debug port.
        """
        if self.state is ProcessState.CLOSED:
            raise AlreadyClosed("Browser process is closed")
        if self.state is ProcessState.RUNNING:
            return self.debug_port

        if self._launch_task is None:
            self.state = ProcessState.LAUNCHING
            self._launch_task = asyncio.ensure_future(self._launch())

        await asyncio.shield(self._launch_task)
        return self.debug_port

    async def _launch(self) -> None:
        try:
            executable = self.settings.chrome_executable or self._locator()
            if not executable:
                raise ExecutableNotFound(
                    "No Chrome installation found, or no Chrome executable set in the settings"
                )

            port = find_available_port(self.settings.debug_port)
            args = build_launch_args(self.settings, port)

            config = LaunchConfig(
                executable_path=executable,
                args=args,
                debug_port=port,
                proxy=self.settings.proxy or None,
                no_sandbox="--no-sandbox" in args,
                user_data_dir=self.settings.user_data_dir,
                ignore_https_errors=self.settings.ignore_https_errors,
                headless=self.settings.headless,
            )

            engine = self._get_engine()
            handle = await engine.launch(config)

            if self.state is ProcessState.CLOSED:
                # close() ran while we were launching
                await engine.close(handle)
                raise AlreadyClosed("Browser process closed during launch")

            try:
                # Close the initial empty page; sessions track their own tabs only
                await asyncio.gather(*(page.close() for page in await engine.pages(handle)))
            except Exception:
                await engine.close(handle)
                raise

            self._handle = handle
            self.launch_config = config
            self.debug_port = port
            self.state = ProcessState.RUNNING
            logging.info(f"Browser launched on debug port {port} ({executable})")
        except AlreadyClosed:
            logging.info("Browser launch aborted by close()")
            raise
        except Exception as e:
            self.state = ProcessState.CLOSED
            logging.error(f"Failed to launch browser: {e}")
            self._notify(f"Failed to launch browser: {e}")
            raise

    # =========================================================================
    # SESSIONS
    # =========================================================================

    async def new_session(self) -> ProtocolSession:
        """Open a tab and return its attached ProtocolSession."""
        if self.state is ProcessState.CLOSED:
            raise AlreadyClosed("Browser process is closed")
        if self.state is not ProcessState.RUNNING:
            raise LaunchRequired("Browser must be launched before opening a session")

        engine = self._get_engine()
        page = None
        try:
            page = await engine.new_page(self._handle)
            session = ProtocolSession(
                page,
                self._get_clipboard(),
                transport_factory=lambda p: engine.open_transport(p, self.debug_port),
                color_scheme="dark" if self.settings.is_dark_theme else "light",
            )
            await session.attach()
        except Exception as e:
            logging.error(f"Failed to create new page: {e}")
            self._notify(f"Failed to create new page: {e}")
            await self._discard_page(page)
            raise
        except BaseException:
            await self._discard_page(page)
            raise

        self._sessions.add(session)
        return session

    async def _discard_page(self, page) -> None:
        if page is None:
            return
        try:
            await page.close()
        except Exception as e:
            logging.debug(f"Ignoring failure closing half-created page: {e}")

    # =========================================================================
    # TEARDOWN
    # =========================================================================

    async def close(self) -> None:
        """Terminate the browser. No-op if never launched or already closed."""
        previous = self.state
        if previous is ProcessState.CLOSED:
            logging.debug("Browser process already closed")
            return

        self.state = ProcessState.CLOSED
        if previous is ProcessState.UNLAUNCHED:
            return

        if previous is ProcessState.LAUNCHING and self._launch_task is not None:
            # The launch sees CLOSED and tears its own process down
            try:
                await asyncio.shield(self._launch_task)
            except Exception as e:
                logging.debug(f"Launch aborted by close: {e}")
            return

        try:
            for session in list(self._sessions):
                await session.detach()
            await self._get_engine().close(self._handle)
            logging.info("Browser process closed")
        except Exception as e:
            logging.error(f"Failed to dispose browser: {e}")
            self._notify(f"Failed to dispose browser: {e}")
            raise
        finally:
            self._handle = None
