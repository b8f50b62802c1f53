"""Executable Locator - finds an installed Chromium-family browser

Walks a static table of known distributions and their default binary
locations for the current platform. Returns the first candidate that
exists on disk and is executable, or None.

DOES NOT:
- Raise (absence is the None case; the caller decides the fallback)
- Launch anything
"""

import os
import shutil
import sys
from pathlib import Path
from typing import Dict, List, Optional, Tuple


def _windows_roots() -> List[str]:
    roots = []
    for var in ("LOCALAPPDATA", "PROGRAMFILES", "PROGRAMFILES(X86)"):
        value = os.getenv(var)
        if value:
            roots.append(value)
    return roots


# distribution -> {platform: [relative-or-absolute candidates]}
# Windows entries are relative to each of _windows_roots().
# Linux entries without a slash are resolved on PATH.
KNOWN_BROWSERS: Tuple[Tuple[str, Dict[str, List[str]]], ...] = (
    ("chrome", {
        "linux": ["google-chrome", "google-chrome-stable"],
        "darwin": ["/Applications/Google Chrome.app/Contents/MacOS/Google Chrome"],
        "win32": [r"Google\Chrome\Application\chrome.exe"],
    }),
    ("chrome-canary", {
        "linux": ["google-chrome-canary", "google-chrome-unstable"],
        "darwin": ["/Applications/Google Chrome Canary.app/Contents/MacOS/Google Chrome Canary"],
        "win32": [r"Google\Chrome SxS\Application\chrome.exe"],
    }),
    ("chromium", {
        "linux": ["chromium-browser", "chromium"],
        "darwin": ["/Applications/Chromium.app/Contents/MacOS/Chromium"],
        "win32": [r"Chromium\Application\chrome.exe"],
    }),
    ("edge", {
        "linux": ["microsoft-edge", "microsoft-edge-stable"],
        "darwin": ["/Applications/Microsoft Edge.app/Contents/MacOS/Microsoft Edge"],
        "win32": [r"Microsoft\Edge\Application\msedge.exe"],
    }),
    ("edge-beta", {
        "linux": ["microsoft-edge-beta"],
        "darwin": ["/Applications/Microsoft Edge Beta.app/Contents/MacOS/Microsoft Edge Beta"],
        "win32": [r"Microsoft\Edge Beta\Application\msedge.exe"],
    }),
    ("edge-dev", {
        "linux": ["microsoft-edge-dev"],
        "darwin": ["/Applications/Microsoft Edge Dev.app/Contents/MacOS/Microsoft Edge Dev"],
        "win32": [r"Microsoft\Edge Dev\Application\msedge.exe"],
    }),
)


def _platform_key(platform: str) -> str:
    if platform.startswith("linux"):
        return "linux"
    return platform


def candidate_paths(platform: Optional[str] = None) -> List[str]:
    """All candidate binary paths for a platform, in lookup order."""
    platform = _platform_key(platform or sys.platform)
    candidates: List[str] = []

    for _name, per_platform in KNOWN_BROWSERS:
        for entry in per_platform.get(platform, []):
            if platform == "win32":
                candidates.extend(str(Path(root) / entry) for root in _windows_roots())
            elif platform == "linux" and "/" not in entry:
                resolved = shutil.which(entry)
                if resolved:
                    candidates.append(resolved)
            else:
                candidates.append(entry)

    return candidates


def is_executable(path: str) -> bool:
    return os.path.isfile(path) and os.access(path, os.X_OK)


def locate_executable(platform: Optional[str] = None) -> Optional[str]:
    """Return the first installed browser binary, or None if none exist."""
    for path in candidate_paths(platform):
        if is_executable(path):
            return path
    return None
