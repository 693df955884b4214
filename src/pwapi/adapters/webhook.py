"""Outbound JSON POST used by the ``postWebhook`` action."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ..core.coerce import to_number_or
from ..core.ir.model import WebhookResponse

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_MS = 30000


async def post_json(
    url: str,
    payload: Any,
    timeout_ms: float = DEFAULT_TIMEOUT_MS,
    client: httpx.AsyncClient | None = None,
) -> WebhookResponse:
    """POST ``payload`` as JSON and snapshot the response.

    Non-2xx statuses are returned, not raised; only transport failures
    (DNS, refused connection, timeout) propagate.
    """
    timeout_s = max(1000.0, to_number_or(timeout_ms, DEFAULT_TIMEOUT_MS)) / 1000.0
    body = payload if payload is not None else {}

    logger.debug("POST %s (timeout %.1fs)", url, timeout_s)
    if client is not None:
        response = await client.post(url, json=body, timeout=timeout_s)
    else:
        async with httpx.AsyncClient(timeout=timeout_s) as own_client:
            response = await own_client.post(url, json=body)

    logger.info("Webhook %s answered %s", url, response.status_code)
    return WebhookResponse(
        status=response.status_code,
        headers=dict(response.headers),
        body=response.text,
    )
