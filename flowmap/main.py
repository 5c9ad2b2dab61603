import logging
import logging.config

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from flowmap.config import get_settings
from flowmap.limiter import limiter
from flowmap.routers.repository import router as repository_router
from flowmap.routers.screenshots import router as screenshots_router
from flowmap.routers.website import router as website_router
from flowmap.services.context import build_context

settings = get_settings()

logging.config.dictConfig(
    {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {
                "format": '{"time": "%(asctime)s", "level": "%(levelname)s", "logger": "%(name)s", "message": "%(message)s"}',
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "json",
            },
        },
        "root": {"level": settings.log_level.upper(), "handlers": ["console"]},
    }
)

logger = logging.getLogger(__name__)

app = FastAPI(
    title="flowmap – Navigation Structure API",
    description=(
        "Maps the routes of a GitHub repository or the page graph of a live "
        "website into nodes and connections for flow-chart rendering, and "
        "captures full-page screenshots of its pages."
    ),
    version="1.0.0",
)

# One context per process: shared rate-limit gate and result cache
app.state.context = build_context(settings)

# Rate-limiting state
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception for %s", request.url)
    return JSONResponse(status_code=500, content={"detail": "An unexpected error occurred."})


app.include_router(website_router)
app.include_router(repository_router)
app.include_router(screenshots_router)


@app.get("/", summary="Health check")
async def root() -> dict:
    return {"message": "Hello from flowmap"}
