from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .adapters.browser import BrowserManager
from .api.routes import router as api_router
from .config.settings import Settings, load_settings
from .core.errors import PwApiError
from .runtime.scripts import get_script_store
from .telemetry import init_telemetry, shutdown_telemetry

logger = logging.getLogger(__name__)


def _validation_message(errors: list[dict]) -> str:
    for err in errors:
        if err.get("type") == "missing":
            return f'Missing "{err["loc"][-1]}"'
    return "Invalid request body"


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or load_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await app.state.browser.shutdown()
        if app.state.script_store is not None:
            await app.state.script_store.close()
        shutdown_telemetry()

    app = FastAPI(title="Playwright API", version="1.2.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.browser = BrowserManager(settings)
    app.state.script_store = get_script_store(settings)

    app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])
    app.include_router(api_router)

    @app.exception_handler(PwApiError)
    async def pwapi_error(_request: Request, exc: PwApiError) -> JSONResponse:
        return JSONResponse(jsonable_encoder(exc.to_body()), status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def invalid_body(_request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = jsonable_encoder(exc.errors())
        return JSONResponse({"error": _validation_message(errors), "details": errors}, status_code=400)

    init_telemetry(app)
    return app
