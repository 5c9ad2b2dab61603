"""Full-page screenshots of a website's pages with a headless Chromium browser.

A browser is launched per capture run and closed before returning.  Every
page is shot once per viewport; a page that fails to load is logged and
skipped so one broken URL does not cost the whole run.
"""

import base64
import logging
import re
import time
import uuid
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from playwright.async_api import Browser, Page, async_playwright
from playwright.async_api import Error as PlaywrightError

from flowmap.errors import InvalidUrlError, ScreenshotError
from flowmap.models.screenshot import (
    Screenshot,
    ScreenshotMetadata,
    ScreenshotResult,
    ScreenshotSession,
    Viewport,
)
from flowmap.services.cache import SCREENSHOTS_KIND, WEBSITE_KIND, ResultStore
from flowmap.services.context import ServiceContext, build_context
from flowmap.services.fetcher import validate_url

logger = logging.getLogger(__name__)

NAVIGATION_TIMEOUT_MS = 15_000
CAPTURE_DELAY_MS = 1_000  # pause between two shots in the same viewport
DEVICE_SCALE_FACTOR = 2
HISTORY_LIMIT = 10

DEFAULT_VIEWPORTS = (
    Viewport(name="desktop", width=1366, height=768),
    Viewport(name="mobile", width=375, height=812),
)
MOBILE_USER_AGENT = "Mozilla/5.0 (iPhone; CPU iPhone OS 14_0 like Mac OS X) AppleWebKit/605.1.15"
DESKTOP_USER_AGENT = "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36"

_UNSAFE_FILENAME_CHARS = re.compile(r"[^a-z0-9\s-]")


def clean_filename(text: str) -> str:
    """Lower-case *text* and reduce it to ``[a-z0-9-]``, at most 50 characters."""
    text = _UNSAFE_FILENAME_CHARS.sub("", text.lower())
    text = re.sub(r"\s+", "-", text)
    text = re.sub(r"-+", "-", text)
    return text.strip()[:50]


def select_page_urls(
    base_url: str,
    pages: Optional[Sequence[str]],
    max_pages: int,
    store: ResultStore,
) -> List[str]:
    """Pick the URLs to capture.

    Explicit *pages* win; otherwise the pages of a cached website analysis of
    *base_url* are used; otherwise just *base_url*.
    """
    if pages:
        return list(pages[:max_pages])

    flow_data = store.get(WEBSITE_KIND, base_url)
    if flow_data is not None and flow_data.pages:
        return [page.url for page in flow_data.pages[:max_pages]]

    return [base_url]


def screenshot_history(website_url: str, *, store: ResultStore) -> List[ScreenshotSession]:
    """Capture runs recorded for *website_url*, newest first."""
    return list(store.get(SCREENSHOTS_KIND, website_url) or [])


def _record_session(store: ResultStore, website_url: str, session: ScreenshotSession) -> None:
    history = screenshot_history(website_url, store=store)
    store.upsert(SCREENSHOTS_KIND, website_url, [session, *history][:HISTORY_LIMIT])


async def _capture_page(
    page: Page, url: str, viewport: Viewport, session_id: str, *, block_private: bool
) -> Screenshot:
    validate_url(url, block_private=block_private)
    await page.goto(url, wait_until="networkidle", timeout=NAVIGATION_TIMEOUT_MS)

    title = await page.title()
    day = datetime.now(timezone.utc).date().isoformat()
    png = await page.screenshot(full_page=True, type="png", animations="disabled")

    return Screenshot(
        id=str(uuid.uuid4()),
        filename=f"{day}-{clean_filename(title or 'page')}-{viewport.name}-{session_id}.png",
        viewport=viewport.name,
        url=url,
        title=title or "Untitled Page",
        base64_data=base64.b64encode(png).decode("ascii"),
    )


async def _capture_viewport(
    browser: Browser,
    viewport: Viewport,
    urls: Sequence[str],
    session_id: str,
    *,
    block_private: bool,
) -> List[Screenshot]:
    context = await browser.new_context(
        viewport={"width": viewport.width, "height": viewport.height},
        device_scale_factor=DEVICE_SCALE_FACTOR,
        user_agent=MOBILE_USER_AGENT if viewport.name == "mobile" else DESKTOP_USER_AGENT,
    )
    page = await context.new_page()

    shots: List[Screenshot] = []
    try:
        for url in urls:
            try:
                shot = await _capture_page(page, url, viewport, session_id, block_private=block_private)
            except (PlaywrightError, ValueError) as exc:
                logger.warning("Failed to capture screenshot for %s (%s): %s", url, viewport.name, exc)
                continue
            shots.append(shot)
            await page.wait_for_timeout(CAPTURE_DELAY_MS)
    finally:
        await context.close()

    return shots


async def capture_screenshots(
    website_url: str,
    *,
    session_id: Optional[str] = None,
    viewports: Optional[Sequence[Viewport]] = None,
    pages: Optional[Sequence[str]] = None,
    max_pages: int = 5,
    context: Optional[ServiceContext] = None,
) -> ScreenshotResult:
    """Screenshot up to *max_pages* pages of *website_url* at every viewport.

    Args:
        website_url: Site root; also the key for cached analyses and history.
        session_id: Groups the shots of this run; a UUID is generated if omitted.
        viewports: Defaults to :data:`DEFAULT_VIEWPORTS`.
        pages: Explicit page URLs; see :func:`select_page_urls`.

    Raises:
        InvalidUrlError: if *website_url* fails scheme / SSRF validation.
        ScreenshotError: if the browser cannot be launched or driven.
    """
    context = context or build_context()
    block_private = context.settings.block_private_addresses
    try:
        validate_url(website_url, block_private=block_private)
    except ValueError as exc:
        raise InvalidUrlError(str(exc)) from exc

    start = time.perf_counter()
    session_id = session_id or str(uuid.uuid4())
    urls = select_page_urls(website_url, pages, max_pages, context.store)
    logger.info("Capturing %d page(s) of %s, session %s", len(urls), website_url, session_id)

    shots: List[Screenshot] = []
    try:
        async with async_playwright() as pw:
            browser = await pw.chromium.launch(
                headless=True,
                args=[
                    # required when running as root inside a container
                    "--no-sandbox",
                    "--disable-dev-shm-usage",
                    "--disable-gpu",
                ],
            )
            try:
                for viewport in viewports or DEFAULT_VIEWPORTS:
                    shots.extend(
                        await _capture_viewport(browser, viewport, urls, session_id, block_private=block_private)
                    )
            finally:
                await browser.close()
    except PlaywrightError as exc:
        raise ScreenshotError(f"Failed to capture screenshots: {exc}") from exc

    capture_time = int((time.perf_counter() - start) * 1000)
    _record_session(
        context.store,
        website_url,
        ScreenshotSession(
            session_id=session_id,
            total_screenshots=len(shots),
            capture_time=capture_time,
            created_at=datetime.now(timezone.utc),
        ),
    )
    logger.info("Captured %d screenshot(s) of %s in %d ms", len(shots), website_url, capture_time)

    return ScreenshotResult(
        session_id=session_id,
        screenshots=shots,
        metadata=ScreenshotMetadata(
            total_screenshots=len(shots), capture_time=capture_time, website_url=website_url
        ),
    )
