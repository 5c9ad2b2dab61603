"""Tests for the screenshot service.

The Playwright driver is replaced with mocks, so no browser is launched;
the tests cover page selection, per-viewport contexts, filename building,
per-page failure handling and the session history.
"""

import base64
import re
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from playwright.async_api import Error as PlaywrightError

from flowmap.errors import InvalidUrlError, ScreenshotError
from flowmap.models.screenshot import ScreenshotSession, Viewport
from flowmap.models.website import CrawlMetadata, WebsiteFlowData, WebsitePage
from flowmap.services.cache import SCREENSHOTS_KIND, WEBSITE_KIND
from flowmap.services.screenshots import (
    DESKTOP_USER_AGENT,
    HISTORY_LIMIT,
    MOBILE_USER_AGENT,
    capture_screenshots,
    clean_filename,
    screenshot_history,
    select_page_urls,
)

_BASE = "https://example.com"
_PNG = b"\x89PNG fake image bytes"
_ONE_VIEWPORT = [Viewport(name="desktop", width=800, height=600)]


class FakeBrowser:
    """The mocked ``async_playwright()`` tree: manager → chromium → browser → context → page."""

    def __init__(self, title: str = "Home Page") -> None:
        self.page = MagicMock()
        self.page.goto = AsyncMock()
        self.page.title = AsyncMock(return_value=title)
        self.page.screenshot = AsyncMock(return_value=_PNG)
        self.page.wait_for_timeout = AsyncMock()

        self.context = MagicMock()
        self.context.new_page = AsyncMock(return_value=self.page)
        self.context.close = AsyncMock()

        self.browser = MagicMock()
        self.browser.new_context = AsyncMock(return_value=self.context)
        self.browser.close = AsyncMock()

        self.playwright = MagicMock()
        self.playwright.chromium.launch = AsyncMock(return_value=self.browser)

        self.manager = MagicMock()
        self.manager.__aenter__ = AsyncMock(return_value=self.playwright)
        self.manager.__aexit__ = AsyncMock(return_value=False)

    def patch(self):
        return patch("flowmap.services.screenshots.async_playwright", return_value=self.manager)

    @property
    def visited(self):
        return [call.args[0] for call in self.page.goto.await_args_list]


def _flow_data(*paths: str) -> WebsiteFlowData:
    return WebsiteFlowData(
        pages=[
            WebsitePage(id=p.strip("/") or "home", url=f"{_BASE}{p}", title=p, path=p, links=[], depth=0)
            for p in paths
        ],
        connections=[],
        metadata=CrawlMetadata(base_url=_BASE, total_pages=len(paths), max_depth=0, crawl_time=1),
    )


class TestCleanFilename:
    @pytest.mark.parametrize(
        "text, expected",
        [
            ("Home Page", "home-page"),
            ("Hello, World!  Welcome", "hello-world-welcome"),
            ("Pricing | Plans & FAQ", "pricing-plans-faq"),
            ("a - b", "a-b"),
        ],
    )
    def test_cleans(self, text, expected):
        assert clean_filename(text) == expected

    def test_truncates_to_fifty_characters(self):
        assert clean_filename("x" * 80) == "x" * 50


class TestSelectPageUrls:
    def test_explicit_pages_are_capped(self, context):
        pages = [f"{_BASE}/{i}" for i in range(8)]
        assert select_page_urls(_BASE, pages, 3, context.store) == pages[:3]

    def test_cached_analysis_supplies_pages(self, context):
        context.store.upsert(WEBSITE_KIND, _BASE, _flow_data("/", "/about", "/blog"))
        assert select_page_urls(_BASE, None, 2, context.store) == [f"{_BASE}/", f"{_BASE}/about"]

    def test_falls_back_to_site_root(self, context):
        assert select_page_urls(_BASE, [], 5, context.store) == [_BASE]


class TestCaptureScreenshots:
    async def test_every_page_at_every_viewport(self, context):
        fake = FakeBrowser()
        with fake.patch():
            result = await capture_screenshots(
                _BASE, pages=[f"{_BASE}/", f"{_BASE}/about"], session_id="s1", context=context
            )

        assert [(s.viewport, s.url) for s in result.screenshots] == [
            ("desktop", f"{_BASE}/"),
            ("desktop", f"{_BASE}/about"),
            ("mobile", f"{_BASE}/"),
            ("mobile", f"{_BASE}/about"),
        ]
        assert result.session_id == "s1"
        assert result.metadata.total_screenshots == 4
        assert result.metadata.website_url == _BASE

        shot = result.screenshots[0]
        assert shot.title == "Home Page"
        assert base64.b64decode(shot.base64_data) == _PNG
        assert re.fullmatch(r"\d{4}-\d{2}-\d{2}-home-page-desktop-s1\.png", shot.filename)
        assert len({s.id for s in result.screenshots}) == 4

    async def test_one_context_per_viewport(self, context):
        fake = FakeBrowser()
        with fake.patch():
            await capture_screenshots(_BASE, context=context)

        desktop, mobile = fake.browser.new_context.await_args_list
        assert desktop.kwargs == {
            "viewport": {"width": 1366, "height": 768},
            "device_scale_factor": 2,
            "user_agent": DESKTOP_USER_AGENT,
        }
        assert mobile.kwargs["viewport"] == {"width": 375, "height": 812}
        assert mobile.kwargs["user_agent"] == MOBILE_USER_AGENT
        assert fake.context.close.await_count == 2
        fake.browser.close.assert_awaited_once()

    async def test_page_is_loaded_to_network_idle_and_shot_full_page(self, context):
        fake = FakeBrowser()
        with fake.patch():
            await capture_screenshots(
                _BASE, viewports=[Viewport(name="tablet", width=768, height=1024)], context=context
            )

        fake.page.goto.assert_awaited_once_with(_BASE, wait_until="networkidle", timeout=15_000)
        fake.page.screenshot.assert_awaited_once_with(full_page=True, type="png", animations="disabled")
        fake.page.wait_for_timeout.assert_awaited_once_with(1_000)

    async def test_generates_session_id(self, context):
        fake = FakeBrowser()
        with fake.patch():
            result = await capture_screenshots(_BASE, context=context)

        assert re.fullmatch(r"[0-9a-f-]{36}", result.session_id)

    async def test_untitled_page(self, context):
        fake = FakeBrowser(title="")
        with fake.patch():
            result = await capture_screenshots(_BASE, viewports=_ONE_VIEWPORT, context=context)

        assert result.screenshots[0].title == "Untitled Page"
        assert "-page-desktop-" in result.screenshots[0].filename

    async def test_failed_page_is_skipped(self, context):
        fake = FakeBrowser()

        async def goto(url, **kwargs):
            if url.endswith("/broken"):
                raise PlaywrightError("net::ERR_NAME_NOT_RESOLVED")

        fake.page.goto.side_effect = goto
        with fake.patch():
            result = await capture_screenshots(
                _BASE,
                pages=[f"{_BASE}/broken", f"{_BASE}/ok"],
                viewports=_ONE_VIEWPORT,
                context=context,
            )

        assert [s.url for s in result.screenshots] == [f"{_BASE}/ok"]

    async def test_non_http_page_is_skipped_without_navigating(self, context):
        fake = FakeBrowser()
        with fake.patch():
            result = await capture_screenshots(
                _BASE,
                pages=["file:///etc/passwd", f"{_BASE}/ok"],
                viewports=_ONE_VIEWPORT,
                context=context,
            )

        assert fake.visited == [f"{_BASE}/ok"]
        assert result.metadata.total_screenshots == 1

    async def test_uses_cached_analysis_pages(self, context):
        context.store.upsert(WEBSITE_KIND, _BASE, _flow_data("/", "/about"))
        fake = FakeBrowser()
        with fake.patch():
            await capture_screenshots(
                _BASE, viewports=_ONE_VIEWPORT, context=context
            )

        assert fake.visited == [f"{_BASE}/", f"{_BASE}/about"]

    async def test_invalid_site_url(self, context):
        fake = FakeBrowser()
        with fake.patch():
            with pytest.raises(InvalidUrlError):
                await capture_screenshots("ftp://example.com", context=context)

        fake.playwright.chromium.launch.assert_not_awaited()

    async def test_launch_failure_is_screenshot_error(self, context):
        fake = FakeBrowser()
        fake.playwright.chromium.launch.side_effect = PlaywrightError("Executable doesn't exist")
        with fake.patch():
            with pytest.raises(ScreenshotError):
                await capture_screenshots(_BASE, context=context)

        assert screenshot_history(_BASE, store=context.store) == []


class TestHistory:
    async def test_run_is_recorded(self, context):
        fake = FakeBrowser()
        with fake.patch():
            result = await capture_screenshots(_BASE, session_id="s1", context=context)

        [session] = screenshot_history(_BASE, store=context.store)
        assert session.session_id == "s1"
        assert session.total_screenshots == 2
        assert session.capture_time == result.metadata.capture_time

    async def test_newest_first_and_capped(self, context):
        older = [
            ScreenshotSession(
                session_id=f"old{i}", total_screenshots=1, capture_time=1, created_at="2026-01-01T00:00:00Z"
            )
            for i in range(HISTORY_LIMIT)
        ]
        context.store.upsert(SCREENSHOTS_KIND, _BASE, older)

        fake = FakeBrowser()
        with fake.patch():
            await capture_screenshots(_BASE, session_id="new", context=context)

        history = screenshot_history(_BASE, store=context.store)
        assert len(history) == HISTORY_LIMIT
        assert history[0].session_id == "new"
        assert history[-1].session_id == f"old{HISTORY_LIMIT - 2}"
