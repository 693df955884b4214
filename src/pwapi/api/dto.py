from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from ..core.coerce import to_boolean_like, to_number_or


def _default_print_options() -> dict[str, Any]:
    return {
        "format": "A4",
        "printBackground": True,
        "margin": {"top": "10mm", "right": "10mm", "bottom": "10mm", "left": "10mm"},
    }


class CapabilityRequest(BaseModel):
    """Common shape of every page-loading request.

    Numeric and boolean fields accept stringified values; anything that does
    not parse falls back to the field default instead of failing validation.
    """

    model_config = ConfigDict(extra="ignore")

    url: str = Field(..., min_length=1, description="Page to open")
    waitUntil: str = "networkidle"
    cookies: list[dict[str, Any]] | None = None
    timeout: float = 30000

    @field_validator("timeout", mode="before")
    @classmethod
    def _timeout(cls, v: Any, info: ValidationInfo) -> float:
        return max(0.0, to_number_or(v, cls.model_fields[info.field_name].default))

    @field_validator("cookies", mode="before")
    @classmethod
    def _cookies(cls, v: Any) -> Any:
        return v if isinstance(v, list) and v else None


class ScreenshotRequest(CapabilityRequest):
    width: float = 1366
    height: float = 768
    fullPage: bool = True
    waitForSelector: str | None = None
    deviceScaleFactor: float = 1
    clip: dict[str, float] | None = None  # {x, y, width, height}
    delayMs: float = 0
    waitAfter: float | None = None  # alias of delayMs, wins when present
    scrollSteps: float = 0
    scrollDelayMs: float = 400
    asBase64: bool = False

    @field_validator("width", "height", "deviceScaleFactor", "delayMs", mode="before")
    @classmethod
    def _number(cls, v: Any, info: ValidationInfo) -> float:
        return to_number_or(v, cls.model_fields[info.field_name].default)

    @field_validator("scrollSteps", "scrollDelayMs", mode="before")
    @classmethod
    def _non_negative(cls, v: Any, info: ValidationInfo) -> float:
        return max(0.0, to_number_or(v, cls.model_fields[info.field_name].default))

    @field_validator("waitAfter", mode="before")
    @classmethod
    def _wait_after(cls, v: Any) -> float | None:
        return None if v is None else to_number_or(v, 0)

    @field_validator("fullPage", "asBase64", mode="before")
    @classmethod
    def _flag(cls, v: Any, info: ValidationInfo) -> bool:
        return to_boolean_like(v, cls.model_fields[info.field_name].default)

    @property
    def delay_after_load(self) -> float:
        return self.waitAfter if self.waitAfter is not None else self.delayMs


class PdfRequest(CapabilityRequest):
    printOptions: dict[str, Any] = Field(default_factory=_default_print_options)
    asBase64: bool = False

    @field_validator("asBase64", mode="before")
    @classmethod
    def _flag(cls, v: Any) -> bool:
        return to_boolean_like(v, False)


class ScrapeRequest(CapabilityRequest):
    waitForSelector: str | None = None
    evaluate: str | None = Field(
        None,
        description="Source of a no-argument function run in the page as (fn)(). "
        "Trusted callers only: the code runs unsandboxed in the page context.",
    )
    asBase64: bool = False

    @field_validator("asBase64", mode="before")
    @classmethod
    def _flag(cls, v: Any) -> bool:
        return to_boolean_like(v, False)

    @field_validator("evaluate", mode="before")
    @classmethod
    def _evaluate(cls, v: Any) -> str | None:
        return v if isinstance(v, str) and v.strip() else None


class HtmlRequest(CapabilityRequest):
    asBase64: bool = False

    @field_validator("asBase64", mode="before")
    @classmethod
    def _flag(cls, v: Any) -> bool:
        return to_boolean_like(v, False)


class ElementExistsRequest(CapabilityRequest):
    selector: str = Field(..., min_length=1)
    waitUntil: str = "domcontentloaded"
    timeout: float = 15000


class ActionsRequest(CapabilityRequest):
    waitUntil: str = "domcontentloaded"
    actions: Any = Field(default_factory=list, description="Ordered action steps (checked when parsed)")


class CookiesRequest(CapabilityRequest):
    pass


class ExecRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    key: str | None = None
    params: dict[str, Any] = Field(default_factory=dict)
    type: str | None = None
    payload: dict[str, Any] | None = None

    @field_validator("params", mode="before")
    @classmethod
    def _params(cls, v: Any) -> Any:
        return v if isinstance(v, dict) else {}
