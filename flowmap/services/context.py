from dataclasses import dataclass
from typing import Optional

from flowmap.config import Settings, get_settings
from flowmap.services.cache import InMemoryResultStore, ResultStore
from flowmap.services.rate_limit import RateLimitGate


@dataclass
class ServiceContext:
    """Objects shared by every pipeline run in one process.

    Built once (see :func:`build_context`) and passed explicitly to
    :func:`~flowmap.services.crawler.crawl_website` and
    :func:`~flowmap.services.route_analyzer.analyze_repository`.
    """

    settings: Settings
    rate_limit_gate: RateLimitGate
    store: ResultStore


def build_context(settings: Optional[Settings] = None) -> ServiceContext:
    settings = settings or get_settings()
    return ServiceContext(
        settings=settings,
        rate_limit_gate=RateLimitGate(floor=settings.github_rate_limit_floor),
        store=InMemoryResultStore(ttl=settings.cache_ttl),
    )
