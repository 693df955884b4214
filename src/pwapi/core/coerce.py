"""Tolerant coercion of loosely-typed request values.

Inbound bodies are untyped JSON, so numbers and flags routinely arrive as
strings ("30000", "yes"). These helpers never raise; they fall back instead.
"""

from __future__ import annotations

import math
from typing import Any


_TRUE_WORDS = {"1", "true", "yes", "on"}
_FALSE_WORDS = {"0", "false", "no", "off"}


def to_number_or(value: Any, fallback: float) -> float:
    """Parse ``value`` as a number, returning ``fallback`` when it is not one."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return fallback
    try:
        number = float(value)
    except (TypeError, ValueError):
        return fallback
    return number if math.isfinite(number) else fallback


def to_boolean_like(value: Any, fallback: bool) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        word = value.strip().lower()
        if word in _TRUE_WORDS:
            return True
        if word in _FALSE_WORDS:
            return False
    return fallback
