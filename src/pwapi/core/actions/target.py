from __future__ import annotations

from typing import TYPE_CHECKING, Union

if TYPE_CHECKING:
    from playwright.async_api import Frame, Page

    from ..ir.model import FrameHints

    Target = Union[Page, Frame]


def resolve_target(page: Page, hints: FrameHints) -> Target:
    """Pick the frame a step should act on, falling back to the page.

    Criteria are tried in order: exact URL, URL substring, frame name. A hint
    that matches no live frame is not an error; the page is used instead.
    """
    if hints.is_empty():
        return page
    frames = list(page.frames)
    if hints.url_equals:
        for frame in frames:
            if frame.url == hints.url_equals:
                return frame
    if hints.url_includes:
        for frame in frames:
            if hints.url_includes in frame.url:
                return frame
    if hints.name:
        for frame in frames:
            if frame.name == hints.name:
                return frame
    return page
