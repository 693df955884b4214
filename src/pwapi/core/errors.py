"""Error taxonomy shared by the capability handlers and the HTTP layer."""

from __future__ import annotations

from typing import Any


class PwApiError(Exception):
    status_code = 500

    def __init__(self, message: str, details: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_body(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


class ClientError(PwApiError):
    """Caller-side failure; never wrapped into an execution error."""

    status_code = 400


class BadRequest(ClientError):
    status_code = 400


class UnsupportedStepKind(BadRequest):
    def __init__(self, kind: str, index: int | None = None) -> None:
        where = f" at actions[{index}]" if index is not None else ""
        super().__init__(f"Unsupported action type: {kind}{where}")
        self.kind = kind
        self.index = index


class AuthError(ClientError):
    status_code = 401


class ScriptDisabled(ClientError):
    status_code = 403


class ScriptNotFound(ClientError):
    status_code = 404


class ExecutionError(PwApiError):
    status_code = 500


class MissingVariable(ExecutionError):
    def __init__(self, kind: str, name: str) -> None:
        super().__init__(f'{kind}: vars["{name}"] not found')
        self.name = name


class StepFailed(ExecutionError):
    """A step raised while talking to the browser or a webhook."""

    def __init__(self, index: int, kind: str, cause: BaseException) -> None:
        super().__init__(f"{kind} (step {index}): {cause}")
        self.index = index
        self.kind = kind
