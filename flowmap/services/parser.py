from typing import List, NamedTuple

from bs4 import BeautifulSoup

from flowmap.services.urls import path_of, resolve_url


class ParsedPage(NamedTuple):
    title: str
    links: List[str]


def _extract_title(soup: BeautifulSoup, url: str) -> str:
    title_tag = soup.find("title")
    if title_tag:
        title = title_tag.get_text(strip=True)
        if title:
            return title
    return path_of(url)


def _extract_links(soup: BeautifulSoup, url: str) -> List[str]:
    """Return absolute targets of ``a[href]`` then ``form[action]``, de-duplicated in order."""
    seen: set = set()
    links: List[str] = []

    targets = [a["href"] for a in soup.select("a[href]")]
    targets += [form["action"] for form in soup.select("form[action]")]

    for target in targets:
        abs_url = resolve_url(str(target), url)
        if abs_url and abs_url not in seen:
            seen.add(abs_url)
            links.append(abs_url)
    return links


def parse_page(html: str, url: str) -> ParsedPage:
    """Extract the title and outbound link list from *html* fetched from *url*."""
    soup = BeautifulSoup(html, "lxml")
    return ParsedPage(title=_extract_title(soup, url), links=_extract_links(soup, url))
