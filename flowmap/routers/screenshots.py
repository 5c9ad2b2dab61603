import logging

from fastapi import APIRouter, Query, Request

from flowmap.errors import FlowMapError
from flowmap.limiter import limiter
from flowmap.models.response import ScreenshotHistoryResponse, ScreenshotResponse
from flowmap.models.screenshot_request import TakeScreenshotsRequest
from flowmap.routers.errors import http_error, normalize_or_400
from flowmap.services.context import ServiceContext
from flowmap.services.screenshots import capture_screenshots, screenshot_history

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Screenshots"])


@router.post(
    "/take-screenshots",
    response_model=ScreenshotResponse,
    summary="Capture full-page screenshots of a website",
    description=(
        "Renders each page in a headless Chromium browser and returns one PNG "
        "(base64) per page and viewport.  Pages come from `pages`, else from a "
        "cached `/analyze-website` result, else the site root.\n\n"
        "**Note:** this endpoint is slow because it spins up a real browser "
        "for each request."
    ),
)
@limiter.limit("3/minute")
async def take_screenshots(request: Request, body: TakeScreenshotsRequest) -> ScreenshotResponse:
    context: ServiceContext = request.app.state.context
    url = normalize_or_400(body.website_url)
    max_pages = min(max(body.max_pages, 1), context.settings.screenshot_max_pages_limit)
    logger.info("Screenshot capture requested", extra={"url": url, "max_pages": max_pages})

    try:
        result = await capture_screenshots(
            url,
            session_id=body.session_id,
            viewports=body.viewports,
            pages=body.pages,
            max_pages=max_pages,
            context=context,
        )
    except FlowMapError as exc:
        logger.error("Screenshot capture failed for %s: %s", url, exc)
        raise http_error(exc, subject="website") from exc

    return ScreenshotResponse(
        success=True,
        data=result,
        message=f"Successfully captured {len(result.screenshots)} screenshots",
    )


@router.get(
    "/take-screenshots",
    response_model=ScreenshotHistoryResponse,
    summary="List the most recent screenshot sessions of a website",
)
async def screenshot_sessions(
    request: Request, website_url: str = Query(..., alias="websiteUrl")
) -> ScreenshotHistoryResponse:
    context: ServiceContext = request.app.state.context
    sessions = screenshot_history(normalize_or_400(website_url), store=context.store)
    return ScreenshotHistoryResponse(
        success=True,
        data=sessions,
        message=f"Found {len(sessions)} screenshot session(s)" if sessions else "No previous screenshots found",
    )
