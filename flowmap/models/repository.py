from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

Framework = Literal["nextjs-app", "nextjs-pages", "react-router", "unknown"]


class RepoRef(BaseModel):
    """Owner/repo pair parsed from a GitHub URL."""

    owner: str
    repo: str


class RepoDetails(BaseModel):
    name: str
    full_name: str
    description: Optional[str] = None
    language: Optional[str] = None
    default_branch: str = "main"
    is_private: bool = False


class RepoFile(BaseModel):
    """A file or directory entry returned by the contents or search API."""

    name: str
    path: str
    type: Literal["file", "dir"]
    sha: str = ""
    content: Optional[str] = None


class RateLimitState(BaseModel):
    limit: int
    remaining: int
    reset: int  # epoch seconds
    used: int = 0


class RouteData(BaseModel):
    path: str
    component: str = "Component"
    file_path: Optional[str] = None
    children: Optional[List["RouteData"]] = None


class AnalysisResult(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    routes: List[RouteData]
    framework: Framework
    total_files: int = Field(alias="totalFiles")
    route_files: int = Field(alias="routeFiles")
