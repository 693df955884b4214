"""Shared Playwright browser for the API.

One Chromium process serves every request. It is launched lazily on first use
behind an ``asyncio.Lock`` so concurrent first callers wait for the same launch
instead of starting duplicates. Each request gets its own context and page,
which ``session()`` always closes again.

Usage:
    manager = BrowserManager(load_settings())
    async with manager.session(viewport={"width": 1280, "height": 800}) as (context, page):
        await page.goto(url)
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager, suppress
from importlib import metadata
from typing import TYPE_CHECKING, Any

from playwright.async_api import Browser, Playwright, async_playwright

from ..config.settings import Settings, load_settings

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from playwright.async_api import BrowserContext, Page

logger = logging.getLogger(__name__)

LAUNCH_ARGS = [
    "--no-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
    "--disable-setuid-sandbox",
    "--no-zygote",
    "--disable-features=site-per-process",
]

DEFAULT_VIEWPORT = {"width": 1280, "height": 800}

# Hide the most common automation fingerprints before any page script runs
STEALTH_INIT_SCRIPT = """
(() => {
  try {
    const proto = Object.getPrototypeOf(navigator);
    Object.defineProperty(proto, 'webdriver', { get: () => undefined });
    Object.defineProperty(navigator, 'languages', { get: () => ['pt-BR', 'pt', 'en'] });
    Object.defineProperty(navigator, 'plugins', { get: () => [1, 2, 3, 4, 5] });
    if (navigator.permissions && navigator.permissions.query) {
      const originalQuery = navigator.permissions.query.bind(navigator.permissions);
      navigator.permissions.query = (parameters) => {
        if (parameters && parameters.name === 'notifications') {
          return Promise.resolve({ state: Notification.permission });
        }
        return originalQuery(parameters);
      };
    }
  } catch (e) {}
})();
"""


class BrowserManager:
    """Owns the process-wide browser and hands out per-request sessions."""

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or load_settings()
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._lock = asyncio.Lock()

    @property
    def launched(self) -> bool:
        return self._browser is not None

    async def get_browser(self) -> Browser:
        """Return the shared browser, launching it on first use."""
        browser = self._browser
        if browser is not None and browser.is_connected():
            return browser

        async with self._lock:
            if self._browser is not None and self._browser.is_connected():
                return self._browser
            if self._browser is not None:
                logger.warning("Shared browser disconnected, relaunching")
                await self._close()
            self._browser = await self._launch()
            return self._browser

    async def _launch(self) -> Browser:
        logger.info("Launching Chromium (headless=%s)", self.settings.headless)
        playwright = await async_playwright().start()
        try:
            browser = await playwright.chromium.launch(
                headless=self.settings.headless, args=LAUNCH_ARGS
            )
        except Exception:
            with suppress(Exception):
                await playwright.stop()
            raise
        self._playwright = playwright
        return browser

    async def new_context(
        self,
        viewport: dict[str, int] | None = None,
        device_scale_factor: float = 1,
    ) -> BrowserContext:
        browser = await self.get_browser()
        context = await browser.new_context(
            user_agent=self.settings.user_agent,
            locale=self.settings.locale,
            timezone_id=self.settings.timezone_id,
            viewport=viewport or DEFAULT_VIEWPORT,  # type: ignore[arg-type]
            device_scale_factor=device_scale_factor,
            java_script_enabled=True,
            ignore_https_errors=True,
        )
        await context.add_init_script(STEALTH_INIT_SCRIPT)
        return context

    @asynccontextmanager
    async def session(
        self,
        viewport: dict[str, int] | None = None,
        device_scale_factor: float = 1,
    ) -> AsyncGenerator[tuple[BrowserContext, Page], None]:
        """Yield an isolated (context, page) pair, closed on every exit path."""
        context: BrowserContext | None = None
        page: Page | None = None
        try:
            context = await self.new_context(viewport, device_scale_factor)
            page = await context.new_page()
            yield context, page
        finally:
            if page is not None:
                with suppress(Exception):
                    await page.close()
            if context is not None:
                with suppress(Exception):
                    await context.close()

    async def _close(self) -> None:
        if self._browser is not None:
            with suppress(Exception):
                await self._browser.close()
        if self._playwright is not None:
            with suppress(Exception):
                await self._playwright.stop()
        self._browser = None
        self._playwright = None

    async def shutdown(self) -> None:
        """Close the shared browser. Open sessions are not waited for."""
        async with self._lock:
            if self._browser is None and self._playwright is None:
                return
            logger.info("Shutting down shared browser")
            await self._close()


async def apply_cookies(context: BrowserContext, cookies: Any, url: str | None) -> None:
    """Add cookies to ``context``; cookies without url/domain are bound to ``url``."""
    if not isinstance(cookies, list) or not cookies:
        return
    normalized = []
    for cookie in cookies:
        item = dict(cookie)
        if not item.get("url") and not item.get("domain") and url:
            item["url"] = url
        normalized.append(item)
    await context.add_cookies(normalized)


async def auto_scroll(page: Page, steps: int = 0, delay_ms: float = 400) -> None:
    """Press End ``steps`` times to trigger lazy-loaded content."""
    for _ in range(max(0, int(steps))):
        await page.keyboard.press("End")
        await page.wait_for_timeout(delay_ms)


def playwright_version() -> str:
    try:
        return metadata.version("playwright")
    except metadata.PackageNotFoundError:
        return "unknown"
