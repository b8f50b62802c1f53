import sys
from pathlib import Path

import pytest

# Project root first, then tests/ so `from fakes import ...` works
ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(ROOT))
sys.path.insert(1, str(Path(__file__).parent))

from core.browser_config import BrowserConfig, BrowserSettings
from fakes import FakeClipboard, FakeEngine, RecordingHost, free_port


@pytest.fixture
def settings():
    return BrowserSettings(
        start_url="https://example.com",
        debug_port=free_port(),
        chrome_executable="/opt/fake/chrome",
    )


@pytest.fixture
def engine():
    return FakeEngine()


@pytest.fixture
def clipboard():
    return FakeClipboard()


@pytest.fixture
def host():
    return RecordingHost()


@pytest.fixture(autouse=True)
def reset_browser_config():
    """BrowserConfig is a process-wide singleton; isolate each test."""
    BrowserConfig._instance = None
    BrowserConfig._settings = None
    yield
    BrowserConfig._instance = None
    BrowserConfig._settings = None
