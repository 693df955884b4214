"""Action DSL interpreter.

Runs parsed steps strictly in order against one page, threading a per-run
variable store between them. The first failing step aborts the run; nothing
is retried.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Sequence, assert_never

from ...adapters.webhook import post_json
from ..errors import MissingVariable, PwApiError, StepFailed
from ..ir.model import (
    Click,
    Fill,
    PostWebhook,
    Press,
    RequestDescriptor,
    RequestToCurl,
    Step,
    StepResult,
    TypeText,
    Wait,
    WaitForRequest,
    WaitForSelector,
    WebhookResponse,
)
from .curl import request_to_curl
from .target import resolve_target

if TYPE_CHECKING:
    from playwright.async_api import Page, Request

    from .target import Target

logger = logging.getLogger(__name__)

MIN_STEP_TIMEOUT_MS = 1000
MAX_STEP_TIMEOUT_MS = 45000

WebhookPoster = Callable[[str, Any, float], Awaitable[WebhookResponse]]


def resolve_step_timeout(step: Step, run_timeout_ms: float) -> float:
    if step.step_timeout is not None and step.step_timeout >= 1:
        return step.step_timeout
    return min(MAX_STEP_TIMEOUT_MS, max(MIN_STEP_TIMEOUT_MS, run_timeout_ms))


def resolve_wait_timeout(explicit_ms: float | None, step_timeout_ms: float) -> float:
    if explicit_ms is not None and explicit_ms >= 1:
        return explicit_ms
    return step_timeout_ms


class VariableStore:
    """Named values captured during one run. Writing a name again overwrites it."""

    def __init__(self) -> None:
        self._values: dict[str, Any] = {}

    def __contains__(self, name: str) -> bool:
        return name in self._values

    def __len__(self) -> int:
        return len(self._values)

    def set(self, name: str, value: Any) -> None:
        self._values[name] = value

    def get(self, name: str, default: Any = None) -> Any:
        return self._values.get(name, default)

    def require(self, name: str, kind: str) -> Any:
        if name not in self._values or self._values[name] is None:
            raise MissingVariable(kind, name)
        return self._values[name]

    def snapshot(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        for name, value in self._values.items():
            to_dict = getattr(value, "to_dict", None)
            out[name] = to_dict() if callable(to_dict) else value
        return out


@dataclass
class ActionsOutcome:
    results: list[StepResult] = field(default_factory=list)
    variables: VariableStore = field(default_factory=VariableStore)

    def to_dict(self) -> dict[str, Any]:
        return {
            "ok": True,
            "results": [r.to_dict() for r in self.results],
            "vars": self.variables.snapshot(),
        }


def _as_request(value: Any, kind: str, name: str) -> RequestDescriptor:
    if isinstance(value, RequestDescriptor):
        return value
    if isinstance(value, dict) and value.get("url"):
        return RequestDescriptor.from_dict(value)
    raise MissingVariable(kind, name)


def default_webhook_payload(request: Any, curl: Any) -> dict[str, Any]:
    if isinstance(request, dict):
        request = RequestDescriptor.from_dict(request)
    if not isinstance(request, RequestDescriptor):
        request = None
    cookie = ""
    if request is not None:
        cookie = next(
            (v for k, v in request.headers.items() if k.lower() == "cookie"), ""
        )
    return {
        "captured_at": datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
        "source": "playwright_dsl",
        "request_url": request.url if request else None,
        "request_method": request.method if request else None,
        "cookie_header": (cookie or "").strip(),
        "curl": str(curl or ""),
    }


class ActionRunner:
    """Executes a step list against one page.

    Usage:
        runner = ActionRunner(page, run_timeout_ms=30000)
        outcome = await runner.run(parse_steps(raw_actions))
    """

    def __init__(
        self,
        page: Page,
        run_timeout_ms: float,
        post: WebhookPoster | None = None,
    ) -> None:
        self.page = page
        self.run_timeout_ms = run_timeout_ms
        self._post = post or post_json
        self.outcome = ActionsOutcome()

    @property
    def variables(self) -> VariableStore:
        return self.outcome.variables

    async def run(self, steps: Sequence[Step]) -> ActionsOutcome:
        for index, step in enumerate(steps):
            timeout = resolve_step_timeout(step, self.run_timeout_ms)
            target = resolve_target(self.page, step.frame)
            logger.debug("step %d: %s (timeout %.0fms)", index, step.kind, timeout)
            try:
                result = await self._execute(step, target, timeout)
            except PwApiError:
                raise
            except Exception as exc:
                raise StepFailed(index, step.kind, exc) from exc
            self.outcome.results.append(result)
        return self.outcome

    async def _execute(self, step: Step, target: Target, timeout: float) -> StepResult:
        match step:
            case WaitForSelector():
                await target.wait_for_selector(step.selector, state=step.state, timeout=timeout)
                return StepResult(step.kind)
            case Click():
                await target.click(step.selector, timeout=timeout)
                return StepResult(step.kind)
            case TypeText():
                await target.type(step.selector, step.text, delay=step.delay, timeout=timeout)
                return StepResult(step.kind)
            case Fill():
                await target.fill(step.selector, step.value, timeout=timeout)
                return StepResult(step.kind)
            case Press():
                # Keyboard input is page-level; frames route it to their focused element
                await self.page.keyboard.press(step.key)
                return StepResult(step.kind)
            case Wait():
                await target.wait_for_timeout(step.ms)
                return StepResult(step.kind)
            case WaitForRequest():
                return await self._wait_for_request(step, timeout)
            case RequestToCurl():
                return self._request_to_curl(step)
            case PostWebhook():
                return await self._post_webhook(step, timeout)
            case _:
                assert_never(step)

    async def _wait_for_request(self, step: WaitForRequest, step_timeout: float) -> StepResult:
        def matches(request: Request) -> bool:
            if not any(part in request.url for part in step.url_includes_any):
                return False
            return step.method is None or request.method.upper() == step.method

        # Only requests issued after this point are seen
        async with self.page.expect_request(
            matches, timeout=resolve_wait_timeout(step.timeout_ms, step_timeout)
        ) as request_info:
            pass
        request = await request_info.value
        descriptor = RequestDescriptor(
            url=request.url,
            method=request.method,
            headers=await request.all_headers(),
            post_data=request.post_data or "",
        )
        self.variables.set(step.save_as, descriptor)
        logger.info("Captured %s %s as %r", descriptor.method, descriptor.url, step.save_as)
        return StepResult(step.kind, save_as=step.save_as, matched_url=descriptor.url)

    def _request_to_curl(self, step: RequestToCurl) -> StepResult:
        raw = self.variables.require(step.from_var, step.kind)
        command = request_to_curl(_as_request(raw, step.kind, step.from_var))
        self.variables.set(step.save_as, command)
        return StepResult(step.kind, save_as=step.save_as)

    async def _post_webhook(self, step: PostWebhook, step_timeout: float) -> StepResult:
        if step.payload is not None:
            payload = step.payload
        else:
            payload = default_webhook_payload(
                self.variables.get(step.request_var), self.variables.get(step.curl_var, "")
            )
        response = await self._post(
            step.url, payload, resolve_wait_timeout(step.timeout_ms, step_timeout)
        )
        self.variables.set(step.save_as, response)
        return StepResult(step.kind, save_as=step.save_as, status=response.status)


async def run_actions(
    page: Page,
    steps: Sequence[Step],
    run_timeout_ms: float,
    post: WebhookPoster | None = None,
) -> ActionsOutcome:
    return await ActionRunner(page, run_timeout_ms, post=post).run(steps)
