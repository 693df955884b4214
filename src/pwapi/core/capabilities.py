"""Capability handlers: screenshot, pdf, scrape, html, element-exists, actions, cookies.

Each handler is a plain coroutine taking its typed request and the shared
``BrowserManager``; the HTTP routes and the stored-script runner both call
them through ``invoke``/``dispatch``.
"""

from __future__ import annotations

import base64
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Awaitable, Callable

from pydantic import BaseModel, ValidationError

from ..adapters.browser import BrowserManager, apply_cookies, auto_scroll
from ..api.dto import (
    ActionsRequest,
    CapabilityRequest,
    CookiesRequest,
    ElementExistsRequest,
    HtmlRequest,
    PdfRequest,
    ScrapeRequest,
    ScreenshotRequest,
)
from .actions.interpreter import run_actions
from .errors import BadRequest, ClientError, ExecutionError
from .ir.model import parse_steps

if TYPE_CHECKING:
    from playwright.async_api import BrowserContext, Page

logger = logging.getLogger(__name__)

HTML_SAMPLE_CHARS = 1000
COOKIES_NAV_TIMEOUT_MS = 20000

PDF_OPTION_NAMES = {
    "format": "format",
    "landscape": "landscape",
    "scale": "scale",
    "width": "width",
    "height": "height",
    "margin": "margin",
    "outline": "outline",
    "tagged": "tagged",
    "printBackground": "print_background",
    "displayHeaderFooter": "display_header_footer",
    "headerTemplate": "header_template",
    "footerTemplate": "footer_template",
    "pageRanges": "page_ranges",
    "preferCSSPageSize": "prefer_css_page_size",
}


@dataclass
class BinaryPayload:
    content: bytes
    media_type: str
    filename: str | None = None

    def to_base64(self, **extra: Any) -> dict[str, Any]:
        return {
            "ok": True,
            "type": self.media_type,
            "length": len(self.content),
            "base64": base64.b64encode(self.content).decode("ascii"),
            **extra,
        }


CapabilityResult = BinaryPayload | dict[str, Any]


async def _open(
    context: BrowserContext, page: Page, req: CapabilityRequest, wait_until: str, timeout: float
) -> None:
    if req.cookies:
        await apply_cookies(context, req.cookies, req.url)
    await page.goto(req.url, wait_until=wait_until, timeout=timeout)  # type: ignore[arg-type]


async def take_screenshot(req: ScreenshotRequest, browser: BrowserManager) -> CapabilityResult:
    viewport = {"width": int(req.width), "height": int(req.height)}
    async with browser.session(viewport, req.deviceScaleFactor) as (context, page):
        await _open(context, page, req, req.waitUntil, req.timeout)
        if req.waitForSelector:
            await page.wait_for_selector(req.waitForSelector, timeout=req.timeout)
        if req.delay_after_load > 0:
            await page.wait_for_timeout(req.delay_after_load)
        if req.scrollSteps > 0:
            await auto_scroll(page, int(req.scrollSteps), req.scrollDelayMs)
        image = await page.screenshot(full_page=req.fullPage, clip=req.clip or None, type="png")

    payload = BinaryPayload(image, "image/png", "screenshot.png")
    return payload.to_base64() if req.asBase64 else payload


async def render_pdf(req: PdfRequest, browser: BrowserManager) -> CapabilityResult:
    async with browser.session() as (context, page):
        await _open(context, page, req, req.waitUntil, req.timeout)
        document = await page.pdf(**_pdf_options(req.printOptions))

    payload = BinaryPayload(document, "application/pdf", "page.pdf")
    return payload.to_base64() if req.asBase64 else payload


def _pdf_options(options: dict[str, Any]) -> dict[str, Any]:
    """Map camelCase print options to Playwright keywords, dropping unknown ones.

    ``path`` is not mapped, so callers cannot write files on the server.
    """
    known = set(PDF_OPTION_NAMES.values())
    out: dict[str, Any] = {}
    for key, value in (options or {}).items():
        name = PDF_OPTION_NAMES.get(key, key)
        if name in known:
            out[name] = value
    return out


async def scrape_page(req: ScrapeRequest, browser: BrowserManager) -> CapabilityResult:
    async with browser.session() as (context, page):
        await _open(context, page, req, req.waitUntil, req.timeout)
        if req.waitForSelector:
            await page.wait_for_selector(req.waitForSelector, timeout=max(1000, req.timeout - 1000))
        title = await page.title()
        content = await page.content() or ""
        result = None
        if req.evaluate:
            result = await page.evaluate(f"({req.evaluate})()")

    if req.asBase64:
        return {
            "ok": True,
            "type": "text/html",
            "title": title,
            "length": len(content),
            "base64": base64.b64encode(content.encode("utf-8")).decode("ascii"),
            "result": result,
        }
    return {
        "ok": True,
        "url": req.url,
        "title": title,
        "length": len(content),
        "result": result,
        "htmlSample": content[:HTML_SAMPLE_CHARS],
    }


async def fetch_html(req: HtmlRequest, browser: BrowserManager) -> CapabilityResult:
    async with browser.session() as (context, page):
        await _open(context, page, req, req.waitUntil, req.timeout)
        html = await page.content() or ""

    payload = BinaryPayload(html.encode("utf-8"), "text/html")
    if req.asBase64:
        # Length counts characters, like the non-base64 scrape response
        return payload.to_base64(length=len(html))
    return payload


async def element_exists(req: ElementExistsRequest, browser: BrowserManager) -> CapabilityResult:
    async with browser.session() as (context, page):
        await _open(context, page, req, req.waitUntil, req.timeout)
        element = await page.query_selector(req.selector)
    return {"exists": element is not None}


async def perform_actions(req: ActionsRequest, browser: BrowserManager) -> CapabilityResult:
    # Reject malformed scripts before a browser context is opened
    steps = parse_steps(req.actions)
    async with browser.session() as (context, page):
        await _open(context, page, req, req.waitUntil, req.timeout)
        outcome = await run_actions(page, steps, req.timeout)
    return outcome.to_dict()


async def manage_cookies(req: CookiesRequest, browser: BrowserManager) -> CapabilityResult:
    async with browser.session() as (context, page):
        await _open(context, page, req, "domcontentloaded", COOKIES_NAV_TIMEOUT_MS)
        cookies = await context.cookies(req.url)
    return {"ok": True, "cookies": cookies}


@dataclass(frozen=True)
class Capability:
    name: str
    request_model: type[BaseModel]
    handler: Callable[[Any, BrowserManager], Awaitable[CapabilityResult]]
    failure: str


CAPABILITIES: dict[str, Capability] = {
    cap.name: cap
    for cap in (
        Capability("screenshot", ScreenshotRequest, take_screenshot, "Failed to capture screenshot"),
        Capability("pdf", PdfRequest, render_pdf, "Failed to generate PDF"),
        Capability("scrape", ScrapeRequest, scrape_page, "Failed to scrape page"),
        Capability("html", HtmlRequest, fetch_html, "Failed to retrieve HTML"),
        Capability("element-exists", ElementExistsRequest, element_exists, "Failed to check element"),
        Capability("actions", ActionsRequest, perform_actions, "Failed to run actions"),
        Capability("cookies", CookiesRequest, manage_cookies, "Failed to manage cookies"),
    )
}


async def invoke(name: str, request: BaseModel, browser: BrowserManager) -> CapabilityResult:
    """Run a capability, turning unexpected failures into ``ExecutionError``."""
    capability = CAPABILITIES[name]
    try:
        return await capability.handler(request, browser)
    except ClientError:
        raise
    except Exception as exc:
        logger.exception("%s failed: %s", capability.failure, exc)
        raise ExecutionError(capability.failure, details=str(exc)) from exc


def validate_payload(name: str, payload: Any) -> BaseModel:
    capability = CAPABILITIES[name]
    try:
        return capability.request_model.model_validate(payload or {})
    except ValidationError as exc:
        raise BadRequest(
            f"Invalid {name} payload",
            details=exc.errors(include_url=False, include_context=False),
        ) from exc


async def dispatch(name: str, payload: Any, browser: BrowserManager) -> CapabilityResult:
    """Validate a raw payload for ``name`` and run it."""
    if name not in CAPABILITIES:
        raise BadRequest(f"Unsupported type: {name}")
    return await invoke(name, validate_payload(name, payload), browser)
