from typing import List, Optional

from pydantic import BaseModel

from flowmap.models.repository import AnalysisResult
from flowmap.models.screenshot import ScreenshotResult, ScreenshotSession
from flowmap.models.website import WebsiteFlowData


class WebsiteAnalysisResponse(BaseModel):
    success: bool
    data: Optional[WebsiteFlowData] = None
    message: str = ""
    cached: bool = False


class RepositoryAnalysisResponse(BaseModel):
    success: bool
    data: Optional[AnalysisResult] = None
    message: str = ""
    cached: bool = False


class ScreenshotResponse(BaseModel):
    success: bool
    data: Optional[ScreenshotResult] = None
    message: str = ""


class ScreenshotHistoryResponse(BaseModel):
    success: bool
    data: List[ScreenshotSession] = []
    message: str = ""
