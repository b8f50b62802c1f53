"""Browser Panel Exception Hierarchy

Defines the failure taxonomy for the browser control plane:
- CommandFailure: scoped to one protocol command (never escalates past the session)
- LaunchRequired: a session was requested while the browser is not yet running
- Everything else: raised to the caller, surfaced to the user, re-raised
"""


class BrowserPanelError(RuntimeError):
    """Base class for all control-plane failures."""


class ExecutableNotFound(BrowserPanelError):
    """No usable browser binary was resolved.

    THROW when:
    - No explicit executable override is configured
    - AND none of the known install locations exist on disk
    """


class LaunchFailure(BrowserPanelError):
    """The browser process failed to start or no debug port could be bound."""


class LaunchRequired(BrowserPanelError):
    """A session was requested before the browser finished launching."""


class SessionAttachFailure(BrowserPanelError):
    """Page instrumentation or transport setup failed."""


class CommandFailure(BrowserPanelError):
    """An individual protocol command failed.

    Non-fatal. ProtocolSession converts this into an error event.
    """

    def __init__(self, method: str, message: str):
        super().__init__(message)
        self.method = method

    def __str__(self):
        return f"[{self.method}] {super().__str__()}"


class ClipboardUnavailable(BrowserPanelError):
    """The OS clipboard call failed."""


class AlreadyClosed(BrowserPanelError):
    """Operation attempted after teardown."""
