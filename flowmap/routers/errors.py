"""Translate pipeline errors into HTTP errors with a user-facing message."""

from fastapi import HTTPException

from flowmap.errors import (
    FlowMapError,
    InvalidUrlError,
    NotFoundError,
    PipelineTimeoutError,
    RateLimitError,
)
from flowmap.services.cache import website_key


def http_error(exc: FlowMapError, *, subject: str = "target") -> HTTPException:
    if isinstance(exc, InvalidUrlError):
        return HTTPException(status_code=400, detail=str(exc))
    if isinstance(exc, NotFoundError):
        return HTTPException(
            status_code=404,
            detail=f"The {subject} was not found or is not accessible. Please check the URL and try again.",
        )
    if isinstance(exc, RateLimitError):
        return HTTPException(
            status_code=429,
            detail="Rate limit exceeded. Wait a moment or supply a GitHub token and try again.",
        )
    if isinstance(exc, PipelineTimeoutError):
        return HTTPException(
            status_code=408,
            detail=f"Analysis of the {subject} timed out. Try fewer pages or a smaller depth.",
        )
    return HTTPException(status_code=502, detail=str(exc))


def normalize_or_400(url: str) -> str:
    """Reduce *url* to its site root, or raise a 400 for a malformed URL."""
    try:
        return website_key(url)
    except InvalidUrlError as exc:
        raise HTTPException(status_code=400, detail="Invalid website URL format") from exc
