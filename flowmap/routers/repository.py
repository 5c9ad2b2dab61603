import logging
import re

from fastapi import APIRouter, HTTPException, Request

from flowmap.errors import FlowMapError
from flowmap.limiter import limiter
from flowmap.models.repository_request import AnalyzeRepositoryRequest
from flowmap.models.response import RepositoryAnalysisResponse
from flowmap.routers.errors import http_error
from flowmap.services.cache import REPOSITORY_KIND, repository_key
from flowmap.services.context import ServiceContext
from flowmap.services.github import parse_repo_url
from flowmap.services.route_analyzer import analyze_repository

logger = logging.getLogger(__name__)

router = APIRouter()

_CACHE_KIND = REPOSITORY_KIND
_GITHUB_REPO_URL_RE = re.compile(r"^https://github\.com/[\w\-.]+/[\w\-.]+/?$")


@router.post(
    "/analyze",
    response_model=RepositoryAnalysisResponse,
    summary="Analyze a GitHub repository's routing structure",
)
@limiter.limit("5/minute")
async def analyze(request: Request, body: AnalyzeRepositoryRequest) -> RepositoryAnalysisResponse:
    context: ServiceContext = request.app.state.context
    repo_url = body.repo_url.strip()

    if not _GITHUB_REPO_URL_RE.match(repo_url):
        raise HTTPException(status_code=400, detail="Invalid GitHub repository URL")

    key = repository_key(parse_repo_url(repo_url))
    cached = context.store.get(_CACHE_KIND, key)
    if cached is not None:
        return RepositoryAnalysisResponse(
            success=True, data=cached, message=f"Retrieved cached analysis for {key}", cached=True
        )

    logger.info("Repository analysis requested", extra={"repo": key})
    try:
        result = await analyze_repository(repo_url, body.github_token, context=context)
    except FlowMapError as exc:
        logger.warning("Repository analysis failed for %s: %s", key, exc)
        raise http_error(exc, subject="repository") from exc

    context.store.upsert(_CACHE_KIND, key, result)
    return RepositoryAnalysisResponse(
        success=True,
        data=result,
        message=f"Successfully analyzed {repo_url} ({result.framework}, {len(result.routes)} routes)",
        cached=False,
    )
