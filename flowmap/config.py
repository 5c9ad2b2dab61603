"""Runtime configuration for flowmap.

Values are read from environment variables with the ``FLOWMAP_`` prefix, e.g.
``FLOWMAP_DISCOVERY_TIMEOUT=60``.  The GitHub token is also picked up from the
conventional ``GITHUB_TOKEN`` variable.
"""

from functools import lru_cache

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # GitHub
    github_token: str | None = Field(
        default=None,
        validation_alias=AliasChoices("FLOWMAP_GITHUB_TOKEN", "GITHUB_TOKEN"),
    )
    github_api_url: str = "https://api.github.com"
    github_timeout: float = 30.0  # seconds
    github_search_max_pages: int = 1
    github_rate_limit_floor: int = 5  # wait for reset at or below this many calls

    # Repository analysis
    discovery_timeout: float = 90.0  # seconds

    # Website crawler
    crawl_deadline: float = 150.0  # seconds, whole crawl
    crawl_max_pages_limit: int = 30
    crawl_max_depth_limit: int = 5
    user_agent: str = "flowmap Website Analyzer 1.0"
    block_private_addresses: bool = True

    # Screenshots
    screenshot_max_pages_limit: int = 10

    # Result cache (seconds, 0 = never expire)
    cache_ttl: int = 86400

    log_level: str = "INFO"

    model_config = {"env_prefix": "FLOWMAP_", "case_sensitive": False, "populate_by_name": True}


@lru_cache
def get_settings() -> Settings:
    return Settings()
