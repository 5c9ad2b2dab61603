from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class AnalyzeRepositoryRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    repo_url: str = Field(alias="repoUrl", min_length=1)
    github_token: Optional[str] = Field(
        default=None,
        alias="githubToken",
        description="Optional token; raises the GitHub rate limit and enables code search.",
    )
