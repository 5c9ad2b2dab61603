"""Best-effort inspection of JS/TS source text.

Nothing here parses JavaScript.  Component names and ``<Route>`` tags are
found with regular expressions, so false positives and misses are expected;
callers fall back to a default name instead of failing.  The
:class:`SourceInspector` protocol is the seam for a parser-backed
implementation.
"""

import re
from typing import List, Optional, Protocol

from flowmap.models.repository import RouteData

DEFAULT_COMPONENT = "Component"

# Tried in order; first match wins
_COMPONENT_PATTERNS = (
    re.compile(r"export\s+default\s+function\s+(\w+)"),
    re.compile(r"(?:export\s+default\s+)?const\s+(\w+)\s*=\s*\("),
    re.compile(r"function\s+(\w+)\s*\("),
)

# "<Route" but not "<Routes" / "<RouteGuard"
_ROUTE_BOUNDARY_RE = re.compile(r"</Route\s*>|<Route\b")
_PATH_ATTR_RE = re.compile(r"""\bpath\s*=\s*\{?\s*["'`]([^"'`]+)["'`]""")
_COMPONENT_ATTR_RE = re.compile(r"\bcomponent\s*=\s*\{\s*(\w+)")
_ELEMENT_ATTR_RE = re.compile(r"\belement\s*=\s*\{\s*<\s*(\w+)")
_CHILD_COMPONENT_RE = re.compile(r"<\s*([A-Z]\w*)")

# Longest opening tag we are willing to scan
_MAX_TAG_LENGTH = 2000


class SourceInspector(Protocol):
    def component_name(self, source: str) -> Optional[str]: ...

    def jsx_routes(self, source: str, file_path: str) -> List[RouteData]: ...


def _opening_tag_end(source: str, start: int) -> int:
    """Index just past the ``>`` closing the tag at *start*, ignoring ``>`` inside ``{...}``."""
    depth = 0
    limit = min(len(source), start + _MAX_TAG_LENGTH)
    for i in range(start + 1, limit):
        ch = source[i]
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth = max(0, depth - 1)
        elif ch == ">" and depth == 0:
            return i + 1
    return limit


def _join_route_path(parent: str, path: str) -> str:
    if path.startswith("/"):
        return path
    return f"{parent.rstrip('/')}/{path}"


class RegexSourceInspector:
    """Default :class:`SourceInspector` built on regular expressions."""

    def component_name(self, source: str) -> Optional[str]:
        for pattern in _COMPONENT_PATTERNS:
            match = pattern.search(source)
            if match:
                return match.group(1)
        return None

    def jsx_routes(self, source: str, file_path: str) -> List[RouteData]:
        """Return one route per ``<Route path="...">`` tag, in source order.

        The component comes from ``component={X}``, then ``element={<X .../>}``,
        then the first capitalized child element before the tag closes.
        Relative paths of nested routes are joined onto the enclosing route's
        path; a relative path with no enclosing route is made absolute.
        """
        routes: List[RouteData] = []
        # full paths of the <Route> elements enclosing the current position
        open_paths: List[str] = []

        for match in _ROUTE_BOUNDARY_RE.finditer(source):
            if match.group(0).startswith("</"):
                if open_paths:
                    open_paths.pop()
                continue

            tag_end = _opening_tag_end(source, match.start())
            tag = source[match.start():tag_end]
            self_closing = tag.rstrip().endswith("/>")
            parent = open_paths[-1] if open_paths else ""

            path_match = _PATH_ATTR_RE.search(tag)
            path = _join_route_path(parent, path_match.group(1)) if path_match else parent
            if not self_closing:
                open_paths.append(path)
            if not path_match:
                continue

            component_match = _COMPONENT_ATTR_RE.search(tag) or _ELEMENT_ATTR_RE.search(tag)
            if component_match is None and not self_closing:
                close = _ROUTE_BOUNDARY_RE.search(source, tag_end)
                body = source[tag_end:close.start() if close else tag_end + _MAX_TAG_LENGTH]
                component_match = _CHILD_COMPONENT_RE.search(body)

            routes.append(
                RouteData(
                    path=path,
                    component=component_match.group(1) if component_match else DEFAULT_COMPONENT,
                    file_path=file_path,
                )
            )

        return routes
