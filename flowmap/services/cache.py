"""Keyed result cache consulted by the API layer before running a pipeline.

Entries are stored per *kind* (``"website"``, ``"repository"`` or
``"screenshots"``) under a normalized seed key.  Conflicting writes for the
same key are resolved last-write-wins; entries optionally expire after a TTL.
"""

import time
from typing import Any, Callable, Dict, Optional, Protocol, Tuple

from flowmap.models.repository import RepoRef
from flowmap.services.urls import normalize_base_url

WEBSITE_KIND = "website"
REPOSITORY_KIND = "repository"
SCREENSHOTS_KIND = "screenshots"


class ResultStore(Protocol):
    def get(self, kind: str, key: str) -> Optional[Any]: ...

    def upsert(self, kind: str, key: str, value: Any) -> None: ...


class InMemoryResultStore:
    """Process-local :class:`ResultStore` with an optional TTL (0 = never expire)."""

    def __init__(self, ttl: int = 0, clock: Callable[[], float] = time.monotonic) -> None:
        self._ttl = ttl
        self._clock = clock
        self._entries: Dict[Tuple[str, str], Tuple[float, Any]] = {}

    def get(self, kind: str, key: str) -> Optional[Any]:
        entry = self._entries.get((kind, key))
        if entry is None:
            return None
        stored_at, value = entry
        if self._ttl and self._clock() - stored_at > self._ttl:
            del self._entries[(kind, key)]
            return None
        return value

    def upsert(self, kind: str, key: str, value: Any) -> None:
        self._entries[(kind, key)] = (self._clock(), value)

    def __len__(self) -> int:
        return len(self._entries)


def website_key(url: str) -> str:
    return normalize_base_url(url)


def repository_key(ref: RepoRef) -> str:
    return f"{ref.owner}/{ref.repo}".lower()
