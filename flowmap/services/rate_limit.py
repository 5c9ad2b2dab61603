"""Process-scoped GitHub rate-limit state and the wait-gate in front of every API call.

GitHub meters its API in separate *resources*: ``core`` for the REST
endpoints and ``search`` for code search, each with its own limit and reset
time.  The gate keeps one snapshot per resource so an exhausted search quota
never stalls a contents read, and vice versa.
"""

import asyncio
import logging
import math
import time
from typing import Awaitable, Callable, Dict, Mapping, Optional

from flowmap.models.repository import RateLimitState

logger = logging.getLogger(__name__)

CORE = "core"
SEARCH = "search"


class RateLimitGate:
    """Holds the last known :class:`RateLimitState` per resource and suspends callers near exhaustion.

    One gate is shared by every :class:`~flowmap.services.github.GitHubClient`
    in the process.  ``lock`` serializes the refresh-then-wait sequence so two
    analyses never act on the same stale snapshot.  *clock* returns epoch
    seconds and *sleep* takes seconds; both are injectable for tests.
    """

    def __init__(
        self,
        floor: int = 5,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.floor = floor
        self.states: Dict[str, RateLimitState] = {}
        self.lock = asyncio.Lock()
        self._clock = clock
        self._sleep = sleep

    @property
    def state(self) -> Optional[RateLimitState]:
        """Snapshot of the ``core`` resource."""
        return self.states.get(CORE)

    def get(self, resource: str = CORE) -> Optional[RateLimitState]:
        return self.states.get(resource)

    def update(self, state: RateLimitState, resource: str = CORE) -> None:
        self.states[resource] = state

    def update_from_headers(self, headers: Mapping[str, str], default_resource: str = CORE) -> None:
        """Refresh a snapshot from ``X-RateLimit-*`` response headers when present.

        ``X-RateLimit-Resource`` names the quota the headers describe; without
        it they are filed under *default_resource*.
        """
        try:
            state = RateLimitState(
                limit=int(headers["x-ratelimit-limit"]),
                remaining=int(headers["x-ratelimit-remaining"]),
                reset=int(headers["x-ratelimit-reset"]),
                used=int(headers.get("x-ratelimit-used", 0)),
            )
        except (KeyError, ValueError):
            return
        self.states[headers.get("x-ratelimit-resource") or default_resource] = state

    def wait_time(self, resource: str = CORE) -> float:
        """Seconds until *resource* resets, or 0 when there is headroom."""
        state = self.states.get(resource)
        if state is None or state.remaining > self.floor:
            return 0.0
        return max(0.0, state.reset - self._clock())

    async def wait(self, resource: str = CORE) -> None:
        delay = self.wait_time(resource)
        if delay <= 0:
            return
        logger.info("Rate limit exceeded (%s). Waiting %d seconds...", resource, math.ceil(delay))
        await self._sleep(delay)
