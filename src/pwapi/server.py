from __future__ import annotations

import logging

import uvicorn

from .adapters.browser import playwright_version
from .app import create_app
from .config.settings import load_settings

logger = logging.getLogger("pwapi")


def main() -> None:
    """Run the HTTP API with uvicorn."""
    settings = load_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    masked = settings.api_token[:4] + "****" if settings.api_token else "(disabled)"
    logger.info("Playwright API v1.2 starting on %s:%s", settings.host, settings.port)
    logger.info("Auth token: %s", masked)
    logger.info("Playwright version: %s", playwright_version())
    logger.info("Script store backend: %s", settings.script_backend)

    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
