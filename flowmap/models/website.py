from typing import List, Literal

from pydantic import BaseModel, ConfigDict, Field

ConnectionType = Literal["navigation", "form", "button", "link"]


class CrawlOptions(BaseModel):
    """Tuning knobs for a single crawl.  ``delay`` and ``timeout`` are milliseconds."""

    max_pages: int = Field(default=30, ge=1)
    max_depth: int = Field(default=3, ge=0)
    respect_robots: bool = True
    delay: int = Field(default=1000, ge=0)
    timeout: int = Field(default=10000, gt=0)
    user_agent: str = "flowmap Website Analyzer 1.0"


class WebsitePage(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    url: str
    title: str
    path: str
    links: List[str]
    is_entry_point: bool = Field(default=False, alias="isEntryPoint")
    depth: int


class Connection(BaseModel):
    model_config = ConfigDict(frozen=True)

    source: str
    target: str
    type: ConnectionType = "navigation"


class CrawlMetadata(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    base_url: str = Field(alias="baseUrl")
    total_pages: int = Field(alias="totalPages")
    max_depth: int = Field(alias="maxDepth")
    crawl_time: int = Field(alias="crawlTime")  # milliseconds


class WebsiteFlowData(BaseModel):
    """Result of one crawl: the page list plus the links between collected pages."""

    model_config = ConfigDict(frozen=True)

    pages: List[WebsitePage]
    connections: List[Connection]
    metadata: CrawlMetadata


CrawlResult = WebsiteFlowData
