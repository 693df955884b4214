import os
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from unittest.mock import MagicMock, create_autospec

import pytest
from playwright.async_api import BrowserContext, Frame, Keyboard, Page

# Ensure src/ is importable when running pytest without installation
_SRC = Path(__file__).resolve().parents[1] / "src"
if str(_SRC) not in sys.path:
    sys.path.insert(0, str(_SRC))
os.environ.setdefault("HEADLESS", "true")


def _make_frame(url: str = "about:blank", name: str = "") -> MagicMock:
    # Specced on the real class so calls to missing methods fail loudly
    frame = create_autospec(Frame, instance=True)
    frame.url = url
    frame.name = name
    return frame


def _make_page(frames=()) -> MagicMock:
    page = create_autospec(Page, instance=True)
    page.keyboard = create_autospec(Keyboard, instance=True)
    page.frames = list(frames)
    return page


@pytest.fixture
def make_frame():
    return _make_frame


@pytest.fixture
def make_page():
    return _make_page


class FakeBrowser:
    """Stands in for BrowserManager: hands out one mocked context/page pair."""

    def __init__(self, page=None):
        self.page = page or _make_page()
        self.context = create_autospec(BrowserContext, instance=True)
        self.context.cookies.return_value = []
        self.sessions = []
        self.closed = 0

    @asynccontextmanager
    async def session(self, viewport=None, device_scale_factor=1):
        self.sessions.append((viewport, device_scale_factor))
        try:
            yield self.context, self.page
        finally:
            self.closed += 1

    async def shutdown(self):
        return None


@pytest.fixture
def fake_browser():
    return FakeBrowser()
