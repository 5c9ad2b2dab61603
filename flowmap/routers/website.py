import logging

from fastapi import APIRouter, Query, Request

from flowmap.errors import FlowMapError
from flowmap.limiter import limiter
from flowmap.models.response import WebsiteAnalysisResponse
from flowmap.models.website import CrawlOptions
from flowmap.models.website_request import AnalyzeWebsiteRequest
from flowmap.routers.errors import http_error, normalize_or_400
from flowmap.services.cache import WEBSITE_KIND
from flowmap.services.context import ServiceContext
from flowmap.services.crawler import crawl_website

logger = logging.getLogger(__name__)

router = APIRouter()

_CACHE_KIND = WEBSITE_KIND


@router.post(
    "/analyze-website",
    response_model=WebsiteAnalysisResponse,
    summary="Crawl a website and return its page graph",
    description=(
        "Starting from the root of *websiteUrl*, follows same-host links up to "
        "`maxDepth` levels deep and collects up to `maxPages` pages.  Results "
        "are cached per site."
    ),
)
@limiter.limit("5/minute")
async def analyze_website(request: Request, body: AnalyzeWebsiteRequest) -> WebsiteAnalysisResponse:
    context: ServiceContext = request.app.state.context
    settings = context.settings
    url = normalize_or_400(body.website_url)

    cached = context.store.get(_CACHE_KIND, url)
    if cached is not None:
        return WebsiteAnalysisResponse(
            success=True, data=cached, message=f"Retrieved cached analysis for {url}", cached=True
        )

    options = CrawlOptions(
        max_pages=min(max(body.max_pages, 1), settings.crawl_max_pages_limit),
        max_depth=min(max(body.max_depth, 1), settings.crawl_max_depth_limit),
        user_agent=settings.user_agent,
    )
    logger.info(
        "Website analysis requested",
        extra={"url": url, "max_pages": options.max_pages, "max_depth": options.max_depth},
    )

    try:
        flow_data = await crawl_website(url, options, context=context)
    except FlowMapError as exc:
        logger.warning("Website analysis failed for %s: %s", url, exc)
        raise http_error(exc, subject="website") from exc

    context.store.upsert(_CACHE_KIND, url, flow_data)
    return WebsiteAnalysisResponse(
        success=True, data=flow_data, message=f"Successfully analyzed {url}", cached=False
    )


@router.get(
    "/analyze-website",
    response_model=WebsiteAnalysisResponse,
    summary="Return the cached page graph of a website, if any",
)
async def cached_website(request: Request, url: str = Query(...)) -> WebsiteAnalysisResponse:
    context: ServiceContext = request.app.state.context
    key = normalize_or_400(url)

    cached = context.store.get(_CACHE_KIND, key)
    if cached is None:
        return WebsiteAnalysisResponse(
            success=False, message="No cached analysis found for this website", cached=False
        )
    return WebsiteAnalysisResponse(success=True, data=cached, cached=True)
