from pydantic import BaseModel, ConfigDict, Field


class AnalyzeWebsiteRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    website_url: str = Field(alias="websiteUrl", min_length=1)
    # Out-of-range values are clamped by the router rather than rejected
    max_pages: int = Field(default=30, alias="maxPages", description="Pages to crawl (1–30).")
    max_depth: int = Field(default=3, alias="maxDepth", description="Link depth from the root (1–5).")
