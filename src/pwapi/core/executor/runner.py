"""Stored-script execution (``/api/exec``).

A stored script is expanded into a final capability payload in three layers,
each later layer replacing whole top-level keys of the earlier one:

    defaults  <  dsl (then {{placeholders}} filled from params)  <  params.payload

and then handed to the matching capability handler.
"""

from __future__ import annotations

import logging
from typing import Any

from ...adapters.browser import BrowserManager
from ...api.dto import ExecRequest
from ...runtime.scripts import ScriptDocument, ScriptStore
from ..actions.template import deep_merge, interpolate
from ..capabilities import CapabilityResult, dispatch
from ..errors import BadRequest, ExecutionError, ScriptDisabled, ScriptNotFound

logger = logging.getLogger(__name__)

EXEC_TYPES = frozenset({"actions", "screenshot", "scrape", "pdf"})


def assemble_payload(document: ScriptDocument, params: dict[str, Any] | None) -> dict[str, Any]:
    params = params or {}
    base = deep_merge(document.defaults, document.dsl)
    interpolated = interpolate(base, params)
    override = params.get("payload")
    return deep_merge(interpolated, override if isinstance(override, dict) else {})


async def run_exec(
    req: ExecRequest,
    store: ScriptStore | None,
    browser: BrowserManager,
) -> CapabilityResult:
    # Without a registry, callers may pass a ready payload directly
    if store is None and req.type and req.payload is not None:
        if req.type not in EXEC_TYPES:
            raise BadRequest(f"Unsupported type: {req.type}")
        logger.info("exec: direct %s payload", req.type)
        return await dispatch(req.type, req.payload, browser)

    if store is None:
        raise ExecutionError("Script store not configured")
    if not req.key:
        raise BadRequest('Missing "key"')

    try:
        document = await store.get(req.key)
    except Exception as exc:
        logger.exception("exec: script lookup for %r failed", req.key)
        raise ExecutionError("Failed to execute script", details=str(exc)) from exc
    if document is None:
        raise ScriptNotFound("Script not found")
    if not document.enabled:
        raise ScriptDisabled("Script disabled")
    if document.type not in EXEC_TYPES:
        raise BadRequest(f"Unsupported script type: {document.type}")

    payload = assemble_payload(document, req.params)
    logger.info("exec: running script %r as %s", req.key, document.type)
    return await dispatch(document.type, payload, browser)
