"""Tests for page/frame target resolution."""

from __future__ import annotations

from pwapi.core.actions.target import resolve_target
from pwapi.core.ir.model import FrameHints


def test_no_hints_returns_page(make_page, make_frame):
    page = make_page([make_frame("https://a.test/")])
    assert resolve_target(page, FrameHints()) is page


def test_exact_url_beats_substring(make_page, make_frame):
    loose = make_frame("https://pay.test/checkout/step?x=1")
    exact = make_frame("https://pay.test/checkout")
    page = make_page([loose, exact])
    hints = FrameHints(url_equals="https://pay.test/checkout", url_includes="checkout")
    assert resolve_target(page, hints) is exact


def test_substring_then_name(make_page, make_frame):
    named = make_frame("https://widgets.test/", name="chat")
    page = make_page([make_frame("https://main.test/"), named])
    assert resolve_target(page, FrameHints(url_includes="widgets")) is named
    assert resolve_target(page, FrameHints(url_includes="nowhere", name="chat")) is named


def test_falls_back_to_page_when_nothing_matches(make_page, make_frame):
    page = make_page([make_frame("https://main.test/", name="main")])
    hints = FrameHints(url_equals="https://other.test/", url_includes="other", name="other")
    assert resolve_target(page, hints) is page
