"""Website crawler: BFS-walks same-host pages from a site's root and links them into a graph."""

import asyncio
import logging
import time
from collections import deque
from typing import Awaitable, Callable, Deque, Dict, List, Optional, Set, Tuple
from urllib.parse import urlparse
from urllib.robotparser import RobotFileParser

import httpx

from flowmap.config import Settings, get_settings
from flowmap.errors import CrawlError, CrawlTimeoutError, SiteUnreachableError
from flowmap.models.website import (
    Connection,
    CrawlMetadata,
    CrawlOptions,
    WebsiteFlowData,
    WebsitePage,
)
from flowmap.services.context import ServiceContext
from flowmap.services.fetcher import fetch_html, fetch_text
from flowmap.services.parser import parse_page
from flowmap.services.urls import is_internal, normalize_base_url, page_id, path_of

logger = logging.getLogger(__name__)

# Internal links followed from any single page
LINKS_PER_PAGE = 5

# Seed failures that mean the site is not there at all
_UNREACHABLE_STATUSES = {404, 410}


def _seed_error(url: str, exc: Exception) -> CrawlError:
    """Wrap a failure on the seed page in the matching :class:`CrawlError`."""
    if isinstance(exc, httpx.ConnectError) or (
        isinstance(exc, httpx.HTTPStatusError)
        and exc.response.status_code in _UNREACHABLE_STATUSES
    ):
        return SiteUnreachableError(f"Website not found or not accessible: {url} ({exc})")
    return CrawlError(f"Failed to crawl website {url}: {exc}")


class WebsiteCrawler:
    """Crawl one site, starting at the root of *seed_url*.

    State lives on the instance and is valid for a single :meth:`crawl` call.
    *sleep* takes seconds and is injectable so tests can observe the
    politeness delay without waiting for it.
    """

    def __init__(
        self,
        seed_url: str,
        options: Optional[CrawlOptions] = None,
        *,
        settings: Optional[Settings] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.settings = settings or get_settings()
        self.base_url = normalize_base_url(seed_url)
        self.root_url = f"{self.base_url}/"
        self._base_netloc = urlparse(self.base_url).netloc

        options = options or CrawlOptions(user_agent=self.settings.user_agent)
        self.options = options.model_copy(
            update={
                "max_pages": min(options.max_pages, self.settings.crawl_max_pages_limit),
                "max_depth": min(options.max_depth, self.settings.crawl_max_depth_limit),
            }
        )
        self._sleep = sleep

        self.visited: Set[str] = set()
        self.pages: List[WebsitePage] = []
        self._ids: Set[str] = set()
        self._fetch_count = 0

    async def crawl(self) -> WebsiteFlowData:
        start = time.perf_counter()
        logger.info(
            "Crawl started",
            extra={
                "base_url": self.base_url,
                "max_pages": self.options.max_pages,
                "max_depth": self.options.max_depth,
            },
        )

        async with httpx.AsyncClient(
            headers={"User-Agent": self.options.user_agent},
            timeout=self.options.timeout / 1000,
            follow_redirects=False,
        ) as client:
            robots = await self._load_robots(client) if self.options.respect_robots else None
            await self._walk(client, robots)

        connections = self._connections()
        metadata = CrawlMetadata(
            base_url=self.base_url,
            total_pages=len(self.pages),
            max_depth=max((p.depth for p in self.pages), default=0),
            crawl_time=int((time.perf_counter() - start) * 1000),
        )
        logger.info(
            "Crawl finished: %d pages, %d connections in %d ms",
            metadata.total_pages,
            len(connections),
            metadata.crawl_time,
        )
        return WebsiteFlowData(pages=list(self.pages), connections=connections, metadata=metadata)

    async def _walk(self, client: httpx.AsyncClient, robots: Optional[RobotFileParser]) -> None:
        queue: Deque[Tuple[str, int]] = deque([(self.root_url, 0)])

        while queue:
            url, depth = queue.popleft()
            if len(self.pages) >= self.options.max_pages:
                break
            if depth > self.options.max_depth or url in self.visited:
                continue
            self.visited.add(url)
            is_seed = url == self.root_url and depth == 0

            if robots is not None and not robots.can_fetch(self.options.user_agent, url):
                if is_seed:
                    raise CrawlError(f"Crawling {url} is disallowed by robots.txt")
                logger.info("Crawler: %s disallowed by robots.txt", url)
                continue

            if self._fetch_count:
                await self._sleep(self.options.delay / 1000)
            self._fetch_count += 1

            try:
                html = await fetch_html(
                    client, url, block_private=self.settings.block_private_addresses
                )
                parsed = parse_page(html, url)
            except (ValueError, httpx.HTTPError, RuntimeError) as exc:
                if is_seed:
                    raise _seed_error(url, exc) from exc
                logger.warning("Crawler: skipping %s – %s", url, exc)
                continue

            self.pages.append(
                WebsitePage(
                    id=self._unique_id(url),
                    url=url,
                    title=parsed.title,
                    path=path_of(url),
                    links=parsed.links,
                    is_entry_point=is_seed,
                    depth=depth,
                )
            )

            if depth < self.options.max_depth:
                internal = [link for link in parsed.links if is_internal(link, self._base_netloc)]
                for link in internal[:LINKS_PER_PAGE]:
                    if link not in self.visited:
                        queue.append((link, depth + 1))

    async def _load_robots(self, client: httpx.AsyncClient) -> Optional[RobotFileParser]:
        """Fetch and parse ``/robots.txt``; *None* (allow everything) when unavailable.

        A 401 or 403 on robots.txt disallows the whole site, as
        :meth:`RobotFileParser.read` does.
        """
        robots_url = f"{self.base_url}/robots.txt"
        try:
            text = await fetch_text(
                client, robots_url, block_private=self.settings.block_private_addresses
            )
        except httpx.HTTPStatusError as exc:
            parser = RobotFileParser(robots_url)
            if exc.response.status_code in (401, 403):
                logger.info("Crawler: robots.txt at %s is restricted, disallowing all", robots_url)
                parser.disallow_all = True
                return parser
            logger.info("Crawler: no usable robots.txt at %s – %s", robots_url, exc)
            return None
        except (ValueError, httpx.HTTPError, RuntimeError) as exc:
            logger.info("Crawler: no usable robots.txt at %s – %s", robots_url, exc)
            return None

        parser = RobotFileParser(robots_url)
        parser.parse(text.splitlines())
        return parser

    def _unique_id(self, url: str) -> str:
        base = page_id(url)
        candidate, n = base, 2
        while candidate in self._ids:
            candidate = f"{base}_{n}"
            n += 1
        self._ids.add(candidate)
        return candidate

    def _connections(self) -> List[Connection]:
        """Link every page to the collected pages its outbound URLs point at."""
        by_url: Dict[str, WebsitePage] = {page.url: page for page in self.pages}
        connections: List[Connection] = []
        for page in self.pages:
            for link in page.links:
                target = by_url.get(link)
                if target is not None and target.id != page.id:
                    connections.append(
                        Connection(source=page.id, target=target.id, type="navigation")
                    )
        return connections


async def crawl_website(
    seed_url: str,
    options: Optional[CrawlOptions] = None,
    *,
    context: Optional[ServiceContext] = None,
) -> WebsiteFlowData:
    """Crawl the site behind *seed_url* and return its page graph.

    Raises:
        InvalidUrlError: if *seed_url* is not an absolute http(s) URL.
        SiteUnreachableError: if the site's root cannot be reached.
        CrawlTimeoutError: if the whole crawl exceeds ``settings.crawl_deadline``.
        CrawlError: if the root page cannot be fetched or parsed for another reason.
    """
    settings = context.settings if context else get_settings()
    crawler = WebsiteCrawler(seed_url, options, settings=settings)
    try:
        return await asyncio.wait_for(crawler.crawl(), timeout=settings.crawl_deadline)
    except asyncio.TimeoutError as exc:
        raise CrawlTimeoutError(
            f"Website crawl timed out after {settings.crawl_deadline:g} seconds"
            f" ({len(crawler.pages)} pages collected)"
        ) from exc
