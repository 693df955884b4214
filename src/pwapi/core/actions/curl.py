"""Render a captured request as an equivalent bash ``curl`` command line."""

from __future__ import annotations

import re

from ..ir.model import RequestDescriptor


# Headers curl recomputes itself; replaying them verbatim breaks the request
DROPPED_HEADERS = frozenset({"content-length", "host", "connection"})

_WHITESPACE_RE = re.compile(r"\s+")


def shell_quote(value: object) -> str:
    """Single-quote ``value`` for bash, escaping embedded quotes as ``'\\''``."""
    return "'" + str(value).replace("'", "'\\''") + "'"


def request_to_curl(request: RequestDescriptor) -> str:
    if not request.url:
        raise ValueError("request_to_curl: request has no url")

    method = (request.method or "GET").upper()
    header_flags = " ".join(
        f"-H {shell_quote(f'{name}: {value}')}"
        for name, value in request.headers.items()
        if value is not None and value != "" and name.lower() not in DROPPED_HEADERS
    )
    data_flag = (
        "" if method == "GET" or not request.post_data
        else f"--data-raw {shell_quote(request.post_data)}"
    )
    compressed_flag = (
        "--compressed"
        if any(name.lower() == "accept-encoding" and value for name, value in request.headers.items())
        else ""
    )

    command = f"curl {shell_quote(request.url)} -X {method} {header_flags} {data_flag} {compressed_flag}"
    return _WHITESPACE_RE.sub(" ", command).strip()
