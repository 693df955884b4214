"""Placeholder interpolation and layered payload merging for stored scripts."""

from __future__ import annotations

import copy
import json
import re
from typing import Any


PLACEHOLDER_RE = re.compile(r"\{\{\s*([\w.]+)\s*\}\}")


def lookup_path(params: Any, dotted: str) -> Any:
    """Walk ``params`` along a dotted path; any missing hop yields None."""
    current = params
    for part in dotted.split("."):
        if isinstance(current, dict):
            current = current.get(part)
        elif isinstance(current, list) and part.isdigit() and int(part) < len(current):
            current = current[int(part)]
        else:
            return None
        if current is None:
            return None
    return current


def _stringify(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (dict, list)):
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False)
    return str(value)


def interpolate(value: Any, params: dict[str, Any] | None) -> Any:
    """Replace ``{{dotted.path}}`` placeholders in every string of ``value``.

    Containers are rebuilt (dict keys are kept as-is, never interpolated) and
    non-string leaves pass through untouched. Unresolvable placeholders become
    empty strings.
    """
    params = params or {}
    if isinstance(value, str):
        if "{{" not in value:
            return value
        return PLACEHOLDER_RE.sub(lambda m: _stringify(lookup_path(params, m.group(1))), value)
    if isinstance(value, list):
        return [interpolate(v, params) for v in value]
    if isinstance(value, dict):
        return {k: interpolate(v, params) for k, v in value.items()}
    return value


def deep_merge(base: dict[str, Any] | None, override: dict[str, Any] | None) -> dict[str, Any]:
    """Layer ``override`` over ``base`` and return an independent copy.

    Only top-level keys are merged: a nested object in ``override`` replaces
    the one in ``base`` wholesale.
    """
    merged = dict(base or {})
    merged.update(override or {})
    return copy.deepcopy(merged)
