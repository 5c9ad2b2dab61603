"""Shared fixtures.

Network access is replaced with ``respx`` in the tests that need HTTP; the
DNS-based private-address check is stubbed out so test hosts never resolve.
"""

import pytest

from flowmap.config import Settings
from flowmap.services.context import build_context


@pytest.fixture(autouse=True)
def _no_dns_lookups(monkeypatch):
    monkeypatch.setattr("flowmap.services.fetcher._is_private_address", lambda hostname: False)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        github_token=None,
        block_private_addresses=False,
        crawl_deadline=30.0,
        discovery_timeout=30.0,
    )


@pytest.fixture
def context(settings):
    return build_context(settings)
