"""Action DSL definitions.

A script is a flat list of step records, each tagged by ``type``. Raw JSON
steps are parsed into the frozen dataclasses below before the browser is
touched, so malformed scripts fail fast as client errors.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, ClassVar, Union

from ..coerce import to_number_or
from ..errors import BadRequest, UnsupportedStepKind


@dataclass(frozen=True)
class FrameHints:
    """Which frame a step acts on; all unset means the page itself."""

    url_equals: str | None = None
    url_includes: str | None = None
    name: str | None = None

    def is_empty(self) -> bool:
        return not (self.url_equals or self.url_includes or self.name)


@dataclass(frozen=True, kw_only=True)
class StepBase:
    kind: ClassVar[str]

    frame: FrameHints = field(default_factory=FrameHints)
    step_timeout: float | None = None  # ms; None means derive from the run timeout


@dataclass(frozen=True, kw_only=True)
class WaitForSelector(StepBase):
    kind: ClassVar[str] = "waitForSelector"

    selector: str
    state: str = "visible"  # visible|hidden|attached|detached


@dataclass(frozen=True, kw_only=True)
class Click(StepBase):
    kind: ClassVar[str] = "click"

    selector: str


@dataclass(frozen=True, kw_only=True)
class TypeText(StepBase):
    kind: ClassVar[str] = "type"

    selector: str
    text: str = ""
    delay: float = 0


@dataclass(frozen=True, kw_only=True)
class Fill(StepBase):
    kind: ClassVar[str] = "fill"

    selector: str
    value: str = ""


@dataclass(frozen=True, kw_only=True)
class Press(StepBase):
    kind: ClassVar[str] = "press"

    key: str  # e.g., "Enter", "Escape", "Tab"


@dataclass(frozen=True, kw_only=True)
class Wait(StepBase):
    kind: ClassVar[str] = "wait"

    ms: float = 1000


@dataclass(frozen=True, kw_only=True)
class WaitForRequest(StepBase):
    """Block until the page issues a matching network request."""

    kind: ClassVar[str] = "waitForRequest"

    url_includes_any: tuple[str, ...]
    method: str | None = None  # upper-cased
    timeout_ms: float | None = None
    save_as: str = "lastRequest"


@dataclass(frozen=True, kw_only=True)
class RequestToCurl(StepBase):
    kind: ClassVar[str] = "requestToCurl"

    from_var: str = "lastRequest"
    save_as: str = "lastCurl"


@dataclass(frozen=True, kw_only=True)
class PostWebhook(StepBase):
    kind: ClassVar[str] = "postWebhook"

    url: str
    request_var: str = "lastRequest"
    curl_var: str = "lastCurl"
    payload: dict[str, Any] | None = None
    timeout_ms: float | None = None
    save_as: str = "lastWebhookResponse"


Step = Union[
    WaitForSelector,
    Click,
    TypeText,
    Fill,
    Press,
    Wait,
    WaitForRequest,
    RequestToCurl,
    PostWebhook,
]


@dataclass(frozen=True)
class RequestDescriptor:
    """Snapshot of an observed network request."""

    url: str
    method: str = "GET"
    headers: dict[str, str] = field(default_factory=dict)
    post_data: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "url": self.url,
            "method": self.method,
            "headers": dict(self.headers),
            "postData": self.post_data,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RequestDescriptor:
        return cls(
            url=str(data.get("url") or ""),
            method=str(data.get("method") or "GET"),
            headers={str(k): str(v) for k, v in (data.get("headers") or {}).items()},
            post_data=str(data.get("postData") or data.get("post_data") or ""),
        )


@dataclass(frozen=True)
class WebhookResponse:
    status: int
    headers: dict[str, str] = field(default_factory=dict)
    body: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"status": self.status, "headers": dict(self.headers), "body": self.body}


@dataclass
class StepResult:
    type: str
    ok: bool = True
    save_as: str | None = None
    matched_url: str | None = None
    status: int | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"type": self.type, "ok": self.ok}
        if self.save_as is not None:
            out["saveAs"] = self.save_as
        if self.matched_url is not None:
            out["matchedUrl"] = self.matched_url
        if self.status is not None:
            out["status"] = self.status
        return out


# === Parsing ===


def _opt_str(value: Any) -> str | None:
    if value is None or value == "":
        return None
    return str(value)


def _required_str(raw: dict[str, Any], key: str, kind: str, index: int) -> str:
    value = raw.get(key)
    if value is None or value == "":
        raise BadRequest(f'{kind}: missing "{key}" at actions[{index}]')
    return str(value)


def _positive_or_none(value: Any) -> float | None:
    number = to_number_or(value, 0)
    return number if number >= 1 else None


def _common(raw: dict[str, Any]) -> dict[str, Any]:
    return {
        "frame": FrameHints(
            url_equals=_opt_str(raw.get("frameUrlEquals")),
            url_includes=_opt_str(raw.get("frameUrlIncludes")),
            name=_opt_str(raw.get("frameName")),
        ),
        "step_timeout": _positive_or_none(raw.get("stepTimeout")),
    }


def _wait_for_selector(raw: dict[str, Any], index: int) -> Step:
    return WaitForSelector(
        selector=_required_str(raw, "selector", "waitForSelector", index),
        state=str(raw.get("state") or "visible"),
        **_common(raw),
    )


def _click(raw: dict[str, Any], index: int) -> Step:
    return Click(selector=_required_str(raw, "selector", "click", index), **_common(raw))


def _type_text(raw: dict[str, Any], index: int) -> Step:
    text = raw.get("text")
    return TypeText(
        selector=_required_str(raw, "selector", "type", index),
        text="" if text is None else str(text),
        delay=max(0.0, to_number_or(raw.get("delay"), 0)),
        **_common(raw),
    )


def _fill(raw: dict[str, Any], index: int) -> Step:
    value = raw.get("value")
    return Fill(
        selector=_required_str(raw, "selector", "fill", index),
        value="" if value is None else str(value),
        **_common(raw),
    )


def _press(raw: dict[str, Any], index: int) -> Step:
    return Press(key=_required_str(raw, "key", "press", index), **_common(raw))


def _wait(raw: dict[str, Any], index: int) -> Step:
    return Wait(ms=max(0.0, to_number_or(raw.get("ms"), 1000)), **_common(raw))


def _wait_for_request(raw: dict[str, Any], index: int) -> Step:
    includes = raw.get("urlIncludesAny")
    if not isinstance(includes, list):
        # Older scripts used this name for the same filter
        includes = raw.get("cookieRequestUrlIncludesAny")
    parts = tuple(str(p) for p in (includes if isinstance(includes, list) else []) if p)
    if not parts:
        raise BadRequest(
            'waitForRequest: missing "urlIncludesAny" (non-empty array of strings) '
            f"at actions[{index}]"
        )
    method = raw.get("method")
    return WaitForRequest(
        url_includes_any=parts,
        method=str(method).upper() if method else None,
        timeout_ms=_positive_or_none(raw.get("timeout_ms")),
        save_as=str(raw.get("saveAs") or "lastRequest"),
        **_common(raw),
    )


def _request_to_curl(raw: dict[str, Any], index: int) -> Step:
    return RequestToCurl(
        from_var=str(raw.get("fromVar") or raw.get("requestVar") or "lastRequest"),
        save_as=str(raw.get("saveAs") or "lastCurl"),
        **_common(raw),
    )


def _post_webhook(raw: dict[str, Any], index: int) -> Step:
    url = raw.get("url") or raw.get("webhookUrl")
    if not url:
        raise BadRequest(f'postWebhook: missing "url" (or "webhookUrl") at actions[{index}]')
    payload = raw.get("payload")
    return PostWebhook(
        url=str(url),
        request_var=str(raw.get("requestVar") or "lastRequest"),
        curl_var=str(raw.get("curlVar") or "lastCurl"),
        payload=payload if isinstance(payload, dict) else None,
        timeout_ms=_positive_or_none(raw.get("timeout_ms")),
        save_as=str(raw.get("saveAs") or "lastWebhookResponse"),
        **_common(raw),
    )


STEP_PARSERS: dict[str, Callable[[dict[str, Any], int], Step]] = {
    WaitForSelector.kind: _wait_for_selector,
    Click.kind: _click,
    TypeText.kind: _type_text,
    Fill.kind: _fill,
    Press.kind: _press,
    Wait.kind: _wait,
    WaitForRequest.kind: _wait_for_request,
    RequestToCurl.kind: _request_to_curl,
    PostWebhook.kind: _post_webhook,
}


def parse_step(raw: Any, index: int = 0) -> Step:
    if not isinstance(raw, dict) or not raw.get("type"):
        raise BadRequest(f'Action missing "type" at actions[{index}]')
    kind = str(raw["type"])
    parser = STEP_PARSERS.get(kind)
    if parser is None:
        raise UnsupportedStepKind(kind, index)
    return parser(raw, index)


def parse_steps(raw_steps: Any) -> list[Step]:
    if not isinstance(raw_steps, list):
        raise BadRequest('"actions" must be an array')
    return [parse_step(raw, i) for i, raw in enumerate(raw_steps)]
