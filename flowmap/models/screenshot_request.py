from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from flowmap.models.screenshot import Viewport


class TakeScreenshotsRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    website_url: str = Field(alias="websiteUrl", min_length=1)
    session_id: Optional[str] = Field(default=None, alias="sessionId")
    viewports: Optional[List[Viewport]] = Field(
        default=None, description="Defaults to desktop (1366×768) and mobile (375×812)."
    )
    pages: Optional[List[str]] = Field(
        default=None, description="Page URLs to capture; defaults to the pages of a cached analysis."
    )
    # Out-of-range values are clamped by the router rather than rejected
    max_pages: int = Field(default=5, alias="maxPages", description="Pages to capture (1–10).")
