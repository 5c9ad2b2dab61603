from datetime import datetime
from typing import List

from pydantic import BaseModel, ConfigDict, Field


class Viewport(BaseModel):
    name: str = Field(min_length=1)
    width: int = Field(gt=0)
    height: int = Field(gt=0)


class Screenshot(BaseModel):
    """One full-page PNG of one page at one viewport, base64-encoded."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    filename: str
    viewport: str
    url: str
    title: str
    base64_data: str = Field(alias="base64Data")


class ScreenshotMetadata(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    total_screenshots: int = Field(alias="totalScreenshots")
    capture_time: int = Field(alias="captureTime")  # milliseconds
    website_url: str = Field(alias="websiteUrl")


class ScreenshotResult(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    session_id: str = Field(alias="sessionId")
    screenshots: List[Screenshot]
    metadata: ScreenshotMetadata


class ScreenshotSession(BaseModel):
    """History entry for one capture run; the images themselves are not kept."""

    model_config = ConfigDict(frozen=True)

    session_id: str
    total_screenshots: int
    capture_time: int  # milliseconds
    created_at: datetime
