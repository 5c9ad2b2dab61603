"""GitHub REST client used by the route analyzer.

Every call goes through :meth:`GitHubClient._request`, which consults the
shared :class:`~flowmap.services.rate_limit.RateLimitGate` first and retries a
rate-limited call exactly once after waiting for the quota to reset.
"""

import base64
import logging
import re
from typing import Any, Dict, List, Optional
from urllib.parse import quote, urlparse

import httpx

from flowmap.config import Settings, get_settings
from flowmap.errors import (
    GitHubError,
    GitHubNotFoundError,
    GitHubRateLimitError,
    InvalidUrlError,
)
from flowmap.models.repository import RateLimitState, RepoDetails, RepoFile, RepoRef
from flowmap.services.rate_limit import CORE, SEARCH, RateLimitGate

logger = logging.getLogger(__name__)

_REPO_URL_RE = re.compile(r"github\.com/([^/?#]+)/([^/?#]+)")

_CODE_EXTENSIONS = "extension:tsx OR extension:ts OR extension:jsx OR extension:js"

# Code-search queries for files that conventionally hold routes
_SEARCH_QUERIES = (
    "filename:page.tsx OR filename:page.ts OR filename:page.jsx OR filename:page.js",
    f"path:pages/ {_CODE_EXTENSIONS}",
    f"path:app/ {_CODE_EXTENSIONS}",
    "filename:route.tsx OR filename:route.ts OR filename:route.jsx OR filename:route.js",
    f'"Route" OR "Router" {_CODE_EXTENSIONS}',
)
_SEARCH_PAGE_SIZE = 50

# Directories probed, in order, when code search finds nothing
PROBE_PATHS = (
    "app",
    "pages",
    "src/app",
    "src/pages",
    "src/components",
    "components",
    "src",
    "routes",
    "router",
)
PROBE_DEPTH = 3

RELEVANT_EXTENSIONS = (".js", ".jsx", ".ts", ".tsx", ".vue", ".svelte")
RELEVANT_FILENAMES = {
    "package.json",
    "next.config.js",
    "next.config.mjs",
    "next.config.ts",
    "app.js",
    "app.ts",
}


def parse_repo_url(url: str) -> RepoRef:
    """Extract owner and repository name from a GitHub URL.

    Raises:
        InvalidUrlError: if *url* does not point at ``github.com/<owner>/<repo>``.
    """
    match = _REPO_URL_RE.search(url)
    if not match:
        raise InvalidUrlError("Invalid GitHub URL")
    repo = re.sub(r"\.git$", "", match.group(2))
    if not repo:
        raise InvalidUrlError("Invalid GitHub URL")
    return RepoRef(owner=match.group(1), repo=repo)


def is_relevant_file(filename: str) -> bool:
    return filename.endswith(RELEVANT_EXTENSIONS) or filename in RELEVANT_FILENAMES


def _resource_for(url: str) -> str:
    """Name of the rate-limit quota a call to *url* draws from."""
    return SEARCH if urlparse(url).path.startswith("/search/") else CORE


def _error_message(response: httpx.Response) -> str:
    try:
        message = response.json().get("message")
    except (ValueError, AttributeError):
        message = None
    return message or response.text[:200] or response.reason_phrase


def _is_rate_limited(response: httpx.Response, message: str) -> bool:
    if response.status_code not in (403, 429):
        return False
    return "rate limit" in message.lower() or response.headers.get("x-ratelimit-remaining") == "0"


class GitHubClient:
    """Async GitHub REST client.  Use as ``async with GitHubClient(token) as gh: ...``."""

    def __init__(
        self,
        token: Optional[str] = None,
        *,
        gate: Optional[RateLimitGate] = None,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.gate = gate or RateLimitGate(floor=self.settings.github_rate_limit_floor)

        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
            "User-Agent": self.settings.user_agent,
        }
        token = token or self.settings.github_token
        if token:
            headers["Authorization"] = f"Bearer {token}"

        self._client = httpx.AsyncClient(
            base_url=self.settings.github_api_url,
            headers=headers,
            timeout=self.settings.github_timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "GitHubClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    # ------------------------------------------------------------------
    # Transport and rate limiting
    # ------------------------------------------------------------------

    async def _send(self, method: str, url: str, resource: str = CORE, **kwargs: Any) -> httpx.Response:
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            raise GitHubError(f"GitHub request failed: {exc}") from exc

        self.gate.update_from_headers(response.headers, default_resource=resource)
        if response.is_success:
            return response

        message = _error_message(response)
        if _is_rate_limited(response, message):
            raise GitHubRateLimitError(message, response.status_code)
        if response.status_code == 404:
            raise GitHubNotFoundError(message, response.status_code)
        raise GitHubError(message, response.status_code)

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Send one API call behind the rate-limit gate, retrying once if rate limited.

        The call waits only on the quota it draws from: ``search`` for code
        search, ``core`` for everything else.
        """
        resource = _resource_for(url)
        async with self.gate.lock:
            if self.gate.get(resource) is None:
                await self.check_rate_limit()
            await self.gate.wait(resource)

        try:
            response = await self._send(method, url, resource, **kwargs)
        except GitHubRateLimitError:
            logger.info("Rate limit hit, checking status and retrying %s", url)
            async with self.gate.lock:
                await self.check_rate_limit()
                await self.gate.wait(resource)
            response = await self._send(method, url, resource, **kwargs)

        state = self.gate.get(resource)
        if state is not None and state.remaining and state.remaining % 100 == 0:
            logger.info("GitHub API requests remaining (%s): %d", resource, state.remaining)
        return response

    async def check_rate_limit(self) -> Optional[RateLimitState]:
        """Refresh the gate from ``/rate_limit``; keeps the previous state on failure.

        Both the ``core`` and ``search`` quotas are recorded; the ``core``
        snapshot is returned.
        """
        try:
            response = await self._send("GET", "/rate_limit")
            data = response.json()
            resources = data.get("resources", {})
            self.gate.update(RateLimitState.model_validate(resources.get("core") or data["rate"]), CORE)
            if resources.get("search"):
                self.gate.update(RateLimitState.model_validate(resources["search"]), SEARCH)
        except (GitHubError, KeyError, ValueError) as exc:
            logger.warning("Failed to check rate limit: %s", exc)
        return self.gate.state

    async def _paginate(self, url: str, params: Dict[str, Any], max_pages: int) -> List[dict]:
        """Collect ``items`` across up to *max_pages* pages, following ``Link: rel="next"``."""
        items: List[dict] = []
        next_url: Optional[str] = url
        next_params: Optional[Dict[str, Any]] = params

        for _ in range(max_pages):
            response = await self._request("GET", next_url, params=next_params)
            items.extend(response.json().get("items", []))
            next_url = response.links.get("next", {}).get("url")
            if not next_url:
                break
            # the next link already carries the query string
            next_params = None

        return items

    # ------------------------------------------------------------------
    # Repository metadata
    # ------------------------------------------------------------------

    def parse_repo_url(self, url: str) -> RepoRef:
        return parse_repo_url(url)

    async def validate_repo(self, owner: str, repo: str) -> bool:
        """Return True if the repository exists and is readable with the current credentials."""
        try:
            await self._request("GET", f"/repos/{owner}/{repo}")
        except GitHubRateLimitError:
            raise
        except GitHubError as exc:
            logger.info("Repository %s/%s not accessible: %s", owner, repo, exc)
            return False
        return True

    async def get_repo_info(self, owner: str, repo: str) -> RepoDetails:
        data = (await self._request("GET", f"/repos/{owner}/{repo}")).json()
        return RepoDetails(
            name=data["name"],
            full_name=data["full_name"],
            description=data.get("description"),
            language=data.get("language"),
            default_branch=data.get("default_branch") or "main",
            is_private=bool(data.get("private", False)),
        )

    # ------------------------------------------------------------------
    # File discovery
    # ------------------------------------------------------------------

    def _contents_url(self, owner: str, repo: str, path: str) -> str:
        url = f"/repos/{owner}/{repo}/contents"
        return f"{url}/{quote(path)}" if path else url

    async def search_route_files(self, owner: str, repo: str) -> List[RepoFile]:
        """Find likely route files with a handful of code-search queries.

        Queries that fail are logged and skipped; results are merged by path.
        """
        files: Dict[str, RepoFile] = {}

        for query in _SEARCH_QUERIES:
            q = f"repo:{owner}/{repo} {query}"
            try:
                items = await self._paginate(
                    "/search/code",
                    {"q": q, "per_page": _SEARCH_PAGE_SIZE},
                    self.settings.github_search_max_pages,
                )
            except GitHubError as exc:
                logger.warning("Search query failed: %s – %s", q, exc)
                continue

            for item in items:
                path = item.get("path")
                if path and path not in files:
                    files[path] = RepoFile(
                        name=item.get("name") or path.rsplit("/", 1)[-1],
                        path=path,
                        type="file",
                        sha=item.get("sha") or "",
                    )

        return list(files.values())

    async def get_directory_contents(
        self,
        owner: str,
        repo: str,
        path: str,
        branch: str,
        max_depth: int,
        current_depth: int = 0,
    ) -> List[RepoFile]:
        """List *path*, keeping directories and routing-relevant files.

        Sub-directories are listed recursively while ``current_depth < max_depth``.

        Raises:
            GitHubNotFoundError: if *path* does not exist on *branch*.
        """
        response = await self._request(
            "GET", self._contents_url(owner, repo, path), params={"ref": branch}
        )
        data = response.json()
        entries = data if isinstance(data, list) else [data]

        files: List[RepoFile] = []
        for item in entries:
            if item.get("type") == "file":
                if is_relevant_file(item["name"]):
                    files.append(
                        RepoFile(name=item["name"], path=item["path"], type="file", sha=item.get("sha", ""))
                    )
            elif item.get("type") == "dir":
                files.append(
                    RepoFile(name=item["name"], path=item["path"], type="dir", sha=item.get("sha", ""))
                )
                if current_depth < max_depth:
                    files.extend(
                        await self.get_directory_contents(
                            owner, repo, item["path"], branch, max_depth, current_depth + 1
                        )
                    )
        return files

    async def probe_repo_contents(self, owner: str, repo: str, branch: str) -> List[RepoFile]:
        """List the conventional routing directories plus the root's files."""
        files: Dict[str, RepoFile] = {}

        for target in PROBE_PATHS:
            try:
                found = await self.get_directory_contents(owner, repo, target, branch, PROBE_DEPTH)
            except GitHubNotFoundError:
                logger.info("Path %s not found, skipping...", target)
                continue
            except GitHubRateLimitError:
                raise
            except GitHubError as exc:
                logger.warning("Could not list %s: %s", target, exc)
                continue
            for f in found:
                files.setdefault(f.path, f)

        try:
            root = await self.get_directory_contents(owner, repo, "", branch, 0)
        except GitHubRateLimitError:
            raise
        except GitHubError as exc:
            logger.warning("Could not fetch root files: %s", exc)
        else:
            for f in root:
                if f.type == "file":
                    files.setdefault(f.path, f)

        return list(files.values())

    async def get_repo_contents(self, owner: str, repo: str, branch: str = "main") -> List[RepoFile]:
        """Return the routing-relevant file listing: code search first, directory probes second."""
        files = await self.search_route_files(owner, repo)
        if files:
            logger.info("Found %d potential route files via search", len(files))
            return files

        logger.info("Search found nothing for %s/%s, probing directories", owner, repo)
        return await self.probe_repo_contents(owner, repo, branch)

    async def get_file_content(self, owner: str, repo: str, path: str, branch: str = "main") -> str:
        """Return the decoded text of *path*; a 404 on ``main`` is retried once on ``master``."""
        try:
            response = await self._request(
                "GET", self._contents_url(owner, repo, path), params={"ref": branch}
            )
        except GitHubNotFoundError:
            if branch != "main":
                raise
            logger.info("%s not found on main, retrying on master", path)
            return await self.get_file_content(owner, repo, path, "master")

        data = response.json()
        if isinstance(data, list) or data.get("type") != "file":
            raise GitHubError(f"Path is not a file: {path}")
        return base64.b64decode(data.get("content", "")).decode("utf-8", errors="replace")
