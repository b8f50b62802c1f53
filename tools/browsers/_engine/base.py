"""Abstract Browser Backend Interface

Private abstraction layer between BrowserProcess and the automation library.

RESPONSIBILITY:
- Define interface for launching, page creation, transport opening, close
- Allow backend swapping (and fakes in tests) without touching BrowserProcess

DOES NOT:
- Make policy decisions (BrowserConfig's job)
- Probe ports or pick executables (BrowserProcess's job)
- Track panels or sessions
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, List, Optional


@dataclass(frozen=True)
class LaunchConfig:
    """Everything needed to start one browser process."""
    executable_path: str
    args: List[str] = field(default_factory=list)
    debug_port: int = 9222
    proxy: Optional[str] = None
    no_sandbox: bool = False
    user_data_dir: Optional[str] = None
    ignore_https_errors: bool = False
    headless: bool = True


@dataclass
class EngineHandle:
    """A running browser as the backend sees it.

    Persistent-profile launches have no separate browser object,
    so `browser` may be None while `context` is always set.
    """
    context: Any
    browser: Any = None


class AbstractBrowserBackend(ABC):
    """Interface for browser automation backends.

    Implementations:
    - PlaywrightEngine (playwright.py)

    All methods are coroutines.
    """

    @abstractmethod
    async def launch(self, config: LaunchConfig) -> EngineHandle:
        """Start the browser process described by config."""
        raise NotImplementedError

    @abstractmethod
    async def pages(self, handle: EngineHandle) -> List[Any]:
        """Pages currently open in the browser."""
        raise NotImplementedError

    @abstractmethod
    async def new_page(self, handle: EngineHandle) -> Any:
        """Open a new tab."""
        raise NotImplementedError

    @abstractmethod
    async def open_transport(self, page: Any, debug_port: int) -> Any:
        """Open the raw protocol transport for a page.

        Returns an attached object with send(), on_event(), detach()
        and a target_id attribute.
        """
        raise NotImplementedError

    @abstractmethod
    async def close(self, handle: EngineHandle) -> None:
        """Terminate the browser process."""
        raise NotImplementedError
