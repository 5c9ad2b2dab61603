"""URL helpers shared by the crawler and the API layer."""

import re
from typing import Optional
from urllib.parse import urljoin, urlparse

from flowmap.errors import InvalidUrlError

ALLOWED_SCHEMES = {"http", "https"}

# hrefs that never point at a crawlable page
_IGNORED_HREF_PREFIXES = ("javascript:", "mailto:", "tel:", "data:")

_NON_ALNUM_RE = re.compile(r"[^a-zA-Z0-9]")


def normalize_base_url(url: str) -> str:
    """Reduce *url* to ``scheme://host[:port]``.

    The crawl always starts at the site root, whatever path the caller gave.

    Raises:
        InvalidUrlError: if *url* has no http/https scheme or no host.
    """
    parsed = urlparse(url.strip())
    if parsed.scheme not in ALLOWED_SCHEMES or not parsed.netloc:
        raise InvalidUrlError(f"Invalid URL provided: {url!r}")
    return f"{parsed.scheme}://{parsed.netloc}"


def resolve_url(href: str, base_url: str) -> Optional[str]:
    """Return *href* as an absolute URL without fragment, or *None* if unusable."""
    href = href.strip()
    if not href or href.startswith("#") or href.lower().startswith(_IGNORED_HREF_PREFIXES):
        return None
    try:
        absolute = urljoin(base_url, href)
        parsed = urlparse(absolute)
    except ValueError:
        return None
    if parsed.scheme not in ALLOWED_SCHEMES or not parsed.netloc:
        return None
    return parsed._replace(path=parsed.path or "/", fragment="").geturl()


def is_internal(url: str, base_netloc: str) -> bool:
    """Return True when *url* is on *base_netloc* (host and port, scheme ignored)."""
    return urlparse(url).netloc == base_netloc


def path_of(url: str) -> str:
    return urlparse(url).path or "/"


def page_id(url: str) -> str:
    """Slug identifying a page by its path, e.g. ``/blog/post-1`` -> ``blog_post_1``."""
    return _NON_ALNUM_RE.sub("_", path_of(url)).strip("_") or "home"
