from __future__ import annotations

import os
import secrets
import time
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Header, Query, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from ..adapters.browser import playwright_version
from ..core.capabilities import BinaryPayload, CapabilityResult, invoke
from ..core.coerce import to_boolean_like
from ..core.errors import AuthError
from ..core.executor.runner import run_exec
from .dto import (
    ActionsRequest,
    CookiesRequest,
    ElementExistsRequest,
    ExecRequest,
    HtmlRequest,
    PdfRequest,
    ScrapeRequest,
    ScreenshotRequest,
)

STARTED_AT = time.monotonic()

ENDPOINTS_TEXT = """\
PLAYWRIGHT API v1.2

GET  /                      - this page
GET  /health                - service status
POST /api/screenshot        - capture a screenshot
POST /api/pdf               - render a PDF
POST /api/scrape            - scrape a page
POST /api/actions           - run an action script (frames supported)
POST /api/element-exists    - check for an element
POST /api/html              - fetch rendered HTML
POST /api/cookies           - set and read cookies
POST /api/exec              - run a stored script

Auth header: x-api-token
"""


async def require_token(request: Request, x_api_token: str | None = Header(None)) -> None:
    expected = request.app.state.settings.api_token
    if not expected:
        raise AuthError("Auth disabled on server, but endpoint requires it.")
    if not x_api_token or not secrets.compare_digest(x_api_token.encode(), expected.encode()):
        raise AuthError("Invalid or missing x-api-token")


router = APIRouter()
api = APIRouter(prefix="/api", dependencies=[Depends(require_token)])


def to_response(result: CapabilityResult) -> Response:
    if isinstance(result, BinaryPayload):
        headers = (
            {"Content-Disposition": f'inline; filename="{result.filename}"'}
            if result.filename
            else None
        )
        return Response(content=result.content, media_type=result.media_type, headers=headers)
    return JSONResponse(result)


def _query_base64(req, as_base64: str | None):
    """Honor ?asBase64= when the body did not set it."""
    if as_base64 is None or "asBase64" in req.model_fields_set:
        return req
    return req.model_copy(update={"asBase64": to_boolean_like(as_base64, False)})


@router.get("/", response_class=PlainTextResponse)
def index() -> str:
    return ENDPOINTS_TEXT


@router.get("/health")
def health(request: Request):
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "playwright": playwright_version(),
        "uptime": round(time.monotonic() - STARTED_AT, 3),
        "cpu": os.cpu_count(),
        "auth": "enabled" if request.app.state.settings.api_token else "disabled",
    }


@api.post("/screenshot")
async def screenshot(
    req: ScreenshotRequest, request: Request, asBase64: str | None = Query(None)
) -> Response:
    result = await invoke("screenshot", _query_base64(req, asBase64), request.app.state.browser)
    return to_response(result)


@api.post("/pdf")
async def pdf(req: PdfRequest, request: Request, asBase64: str | None = Query(None)) -> Response:
    result = await invoke("pdf", _query_base64(req, asBase64), request.app.state.browser)
    return to_response(result)


@api.post("/scrape")
async def scrape(
    req: ScrapeRequest, request: Request, asBase64: str | None = Query(None)
) -> Response:
    result = await invoke("scrape", _query_base64(req, asBase64), request.app.state.browser)
    return to_response(result)


@api.post("/html")
async def html(req: HtmlRequest, request: Request, asBase64: str | None = Query(None)) -> Response:
    result = await invoke("html", _query_base64(req, asBase64), request.app.state.browser)
    return to_response(result)


@api.post("/element-exists")
async def element_exists(req: ElementExistsRequest, request: Request) -> Response:
    return to_response(await invoke("element-exists", req, request.app.state.browser))


@api.post("/actions")
async def actions(req: ActionsRequest, request: Request) -> Response:
    return to_response(await invoke("actions", req, request.app.state.browser))


@api.post("/cookies")
async def cookies(req: CookiesRequest, request: Request) -> Response:
    return to_response(await invoke("cookies", req, request.app.state.browser))


@api.post("/exec")
async def exec_script(req: ExecRequest, request: Request) -> Response:
    state = request.app.state
    return to_response(await run_exec(req, state.script_store, state.browser))


router.include_router(api)
