"""Repository route analyzer: infers a routing convention from file paths and lists its routes."""

import asyncio
import logging
import posixpath
import re
import time
from typing import List, Optional, Sequence, Tuple

from flowmap.config import get_settings
from flowmap.errors import (
    AnalysisError,
    AnalysisRateLimitError,
    AnalysisTimeoutError,
    GitHubError,
    GitHubNotFoundError,
    GitHubRateLimitError,
    RepositoryNotFoundError,
)
from flowmap.models.repository import AnalysisResult, Framework, RepoFile, RepoRef, RouteData
from flowmap.services.context import ServiceContext
from flowmap.services.github import GitHubClient, parse_repo_url
from flowmap.services.source_inspector import (
    DEFAULT_COMPONENT,
    RegexSourceInspector,
    SourceInspector,
)

logger = logging.getLogger(__name__)

_PAGE_FILENAMES = {"page.tsx", "page.ts", "page.jsx", "page.js"}
_SCRIPT_RE = re.compile(r"\.(tsx?|jsx?)$")
_APP_ENTRY_RE = re.compile(r"^(App|index)\.(tsx?|jsx?)$")
_APP_PAGE_SUFFIX_RE = re.compile(r"(^|/)page\.(tsx?|jsx?)$")
_CATCH_ALL_RE = re.compile(r"\[\[?\.\.\.([^\]]+)\]\]?")
_DYNAMIC_RE = re.compile(r"\[([^\]]+)\]")
_ROUTE_GROUP_RE = re.compile(r"^\(.+\)$")

_ROUTER_PATH_MARKERS = ("router", "routes", "Route")
_ROUTER_FILE_MARKERS = ("router", "routes", "App")


# ---------------------------------------------------------------------------
# Pure path logic
# ---------------------------------------------------------------------------

def detect_framework(files: Sequence[RepoFile]) -> Framework:
    """Classify the routing convention from file paths; the first matching rule wins."""
    paths = [f.path for f in files]

    if any(p.startswith("app/") and "page." in p for p in paths):
        return "nextjs-app"
    if any(p.startswith(("pages/", "src/pages/")) for p in paths):
        return "nextjs-pages"
    if any(
        any(marker in p for marker in _ROUTER_PATH_MARKERS)
        or _APP_ENTRY_RE.match(posixpath.basename(p))
        for p in paths
    ):
        return "react-router"
    return "unknown"


def _convert_dynamic_segments(route: str) -> str:
    # catch-all first so "[...slug]" is not read as a plain "[param]"
    route = _CATCH_ALL_RE.sub(r":\1*", route)
    return _DYNAMIC_RE.sub(r":\1", route)


def app_router_path_to_route(file_path: str) -> str:
    """``app/blog/[slug]/page.tsx`` -> ``/blog/:slug``.  Route groups like ``(marketing)`` are dropped."""
    route = _APP_PAGE_SUFFIX_RE.sub("", re.sub(r"^app/", "", file_path))
    segments = [s for s in route.split("/") if s and not _ROUTE_GROUP_RE.match(s)]
    if not segments:
        return "/"
    return "/" + _convert_dynamic_segments("/".join(segments))


def pages_router_path_to_route(file_path: str, pages_dir: str) -> str:
    """``pages/blog/[id].tsx`` -> ``/blog/:id``; ``index`` files map to their directory."""
    route = file_path[len(pages_dir) + 1:] if file_path.startswith(pages_dir + "/") else file_path
    route = _SCRIPT_RE.sub("", route)

    if route == "index":
        return "/"
    if route.endswith("/index"):
        route = route[: -len("/index")]

    route = _convert_dynamic_segments(route)
    return route if route.startswith("/") else "/" + route


# ---------------------------------------------------------------------------
# Analyzer
# ---------------------------------------------------------------------------

class RouteAnalyzer:
    """Runs one repository analysis against a :class:`GitHubClient`.

    Directory probes and file fetches are issued one at a time; only the
    discovery phase is bounded by *discovery_timeout* (seconds).
    """

    def __init__(
        self,
        client: GitHubClient,
        *,
        inspector: Optional[SourceInspector] = None,
        discovery_timeout: Optional[float] = None,
    ) -> None:
        self.client = client
        self.inspector = inspector or RegexSourceInspector()
        self.discovery_timeout = (
            discovery_timeout if discovery_timeout is not None else client.settings.discovery_timeout
        )

    async def analyze_repository(self, repo_url: str) -> AnalysisResult:
        """Analyze the GitHub repository at *repo_url*.

        Raises:
            InvalidUrlError: if *repo_url* is not a GitHub repository URL.
            RepositoryNotFoundError: if the repository is missing or inaccessible.
            AnalysisTimeoutError: if file discovery exceeds the time budget.
            AnalysisRateLimitError: if GitHub keeps rate limiting after the retry.
            AnalysisError: for any other GitHub failure.
        """
        ref = parse_repo_url(repo_url)
        try:
            return await self._analyze(ref)
        except GitHubRateLimitError as exc:
            raise AnalysisRateLimitError(
                f"GitHub API rate limit exceeded while analyzing {ref.owner}/{ref.repo}: {exc}"
            ) from exc
        except GitHubNotFoundError as exc:
            raise RepositoryNotFoundError(f"Repository not found: {ref.owner}/{ref.repo}") from exc
        except GitHubError as exc:
            raise AnalysisError(f"Failed to analyze {ref.owner}/{ref.repo}: {exc}") from exc

    async def _analyze(self, ref: RepoRef) -> AnalysisResult:
        if not await self.client.validate_repo(ref.owner, ref.repo):
            raise RepositoryNotFoundError("Repository not found or not accessible")

        info = await self.client.get_repo_info(ref.owner, ref.repo)
        branch = info.default_branch

        logger.info("Starting analysis of %s/%s...", ref.owner, ref.repo)
        start = time.perf_counter()
        try:
            files = await asyncio.wait_for(
                self.client.get_repo_contents(ref.owner, ref.repo, branch),
                timeout=self.discovery_timeout,
            )
        except asyncio.TimeoutError as exc:
            raise AnalysisTimeoutError(
                f"Repository analysis timed out after {self.discovery_timeout:g} seconds"
            ) from exc
        logger.info(
            "Found %d files in repository (took %d ms)",
            len(files),
            int((time.perf_counter() - start) * 1000),
        )

        framework = detect_framework(files)
        if framework == "nextjs-app":
            routes, route_files = await self._analyze_app_router(ref, files, branch)
        elif framework == "nextjs-pages":
            routes, route_files = await self._analyze_pages_router(ref, files, branch)
        elif framework == "react-router":
            routes, route_files = await self._analyze_react_router(ref, files, branch)
        else:
            routes, route_files = [], 0

        logger.info(
            "Analysis of %s/%s finished",
            ref.owner,
            ref.repo,
            extra={"framework": framework, "routes": len(routes), "route_files": route_files},
        )
        return AnalysisResult(
            routes=routes,
            framework=framework,
            total_files=sum(1 for f in files if f.type == "file"),
            route_files=route_files,
        )

    async def _read(self, ref: RepoRef, file: RepoFile, branch: str) -> str:
        """Return the text of *file*, fetching it on first use and keeping it on ``file.content``."""
        if file.content is None:
            file.content = await self.client.get_file_content(ref.owner, ref.repo, file.path, branch)
        return file.content

    async def _component_name(self, ref: RepoRef, file: RepoFile, branch: str) -> str:
        try:
            content = await self._read(ref, file, branch)
        except GitHubRateLimitError:
            raise
        except GitHubError as exc:
            logger.warning("Could not read %s for its component name: %s", file.path, exc)
            return DEFAULT_COMPONENT
        return self.inspector.component_name(content) or DEFAULT_COMPONENT

    async def _analyze_app_router(
        self, ref: RepoRef, files: Sequence[RepoFile], branch: str
    ) -> Tuple[List[RouteData], int]:
        route_files = [
            f for f in files
            if f.type == "file" and f.path.startswith("app/") and f.name in _PAGE_FILENAMES
        ]

        routes: List[RouteData] = []
        for file in route_files:
            routes.append(
                RouteData(
                    path=app_router_path_to_route(file.path),
                    component=await self._component_name(ref, file, branch),
                    file_path=file.path,
                )
            )

        routes.sort(key=lambda r: r.path)
        return routes, len(route_files)

    async def _analyze_pages_router(
        self, ref: RepoRef, files: Sequence[RepoFile], branch: str
    ) -> Tuple[List[RouteData], int]:
        pages_dir = "pages" if any(f.path.startswith("pages/") for f in files) else "src/pages"
        route_files = [
            f for f in files
            if f.type == "file"
            and f.path.startswith(pages_dir + "/")
            and _SCRIPT_RE.search(f.name)
            # _app, _document and friends are not routes
            and not f.name.startswith("_")
        ]

        routes: List[RouteData] = []
        for file in route_files:
            routes.append(
                RouteData(
                    path=pages_router_path_to_route(file.path, pages_dir),
                    component=await self._component_name(ref, file, branch),
                    file_path=file.path,
                )
            )

        routes.sort(key=lambda r: r.path)
        return routes, len(route_files)

    async def _analyze_react_router(
        self, ref: RepoRef, files: Sequence[RepoFile], branch: str
    ) -> Tuple[List[RouteData], int]:
        candidates = [
            f for f in files
            if f.type == "file"
            and _SCRIPT_RE.search(f.name)
            and any(marker in f.path for marker in _ROUTER_FILE_MARKERS)
        ]

        routes: List[RouteData] = []
        route_files = 0
        for file in candidates:
            try:
                content = await self._read(ref, file, branch)
            except GitHubRateLimitError:
                raise
            except GitHubError as exc:
                logger.warning("Failed to analyze %s: %s", file.path, exc)
                continue

            extracted = self.inspector.jsx_routes(content, file.path)
            if not extracted and ("App." in file.path or "index." in file.path):
                extracted = [
                    RouteData(
                        path="/",
                        component=self.inspector.component_name(content) or "App",
                        file_path=file.path,
                    )
                ]

            routes.extend(extracted)
            if extracted:
                route_files += 1

        return routes, route_files


async def analyze_repository(
    repo_url: str,
    auth_token: Optional[str] = None,
    *,
    context: Optional[ServiceContext] = None,
) -> AnalysisResult:
    """Analyze *repo_url* with a fresh client sharing the context's rate-limit gate."""
    settings = context.settings if context else get_settings()
    gate = context.rate_limit_gate if context else None
    async with GitHubClient(auth_token, gate=gate, settings=settings) as client:
        return await RouteAnalyzer(client).analyze_repository(repo_url)
