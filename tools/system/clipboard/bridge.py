"""Clipboard Bridge - async proxy over the OS clipboard

Exposes text read/write to page-side hooks and to the Clipboard.readText
command shortcut.

Dependencies: pyperclip (hard requirement)

CONSTRAINT: Text-only. Does not support images, rich text, or files.
CONSTRAINT: No locking. The OS clipboard is shared with every other
process on the machine; last writer wins.
"""

import asyncio
import logging

from core.exceptions import ClipboardUnavailable


class ClipboardBridge:
    """Read/write text on the system clipboard without blocking the loop."""

    def _backend(self):
        try:
            import pyperclip
        except ImportError:
            raise ClipboardUnavailable("Dependency not installed: pyperclip")
        return pyperclip

    async def read_text(self) -> str:
        backend = self._backend()
        try:
            content = await asyncio.to_thread(backend.paste)
        except Exception as e:
            raise ClipboardUnavailable(f"Failed to read clipboard: {e}") from e
        return content or ""

    async def write_text(self, text: str) -> bool:
        # Ensure text is string
        if not isinstance(text, str):
            text = str(text)

        backend = self._backend()
        try:
            await asyncio.to_thread(backend.copy, text)
        except Exception as e:
            raise ClipboardUnavailable(f"Failed to write to clipboard: {e}") from e

        logging.debug(f"Clipboard updated ({len(text)} chars)")
        return True
