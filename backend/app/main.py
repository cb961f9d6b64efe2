"""FastAPI application entry point."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from backend.app.api.routes.health import router as health_router
from backend.app.api.routes.posts import router as posts_router
from backend.app.core.errors import ApiError, normalize_unknown_error
from backend.app.core.logging import EVENT_APP_START, EVENT_CONFIG_LOADED, setup_logging
from backend.app.core.settings import settings
from backend.app.db.engine import init_db
from backend.app.db.migrations import run_migrations

setup_logging(settings.log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    logger.info(EVENT_APP_START)
    logger.info("%s: %s", EVENT_CONFIG_LOADED, settings.safe_dump())
    init_db()
    run_migrations()
    logger.info("Hive API ready")
    yield
    logger.info("Hive API shutting down")


app = FastAPI(
    title="Hive API",
    version="0.1.0",
    description="A small microblog: anonymous reads, operator-only writes.",
    lifespan=lifespan,
)


@app.exception_handler(ApiError)
async def api_error_handler(_request: Request, exc: ApiError) -> JSONResponse:
    """The single place domain errors become HTTP responses."""
    return JSONResponse(
        status_code=exc.http_status,
        content=exc.body(),
        headers=exc.headers or None,
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(
    request: Request, exc: StarletteHTTPException,
) -> JSONResponse:
    """Framework errors (unmatched routes, wrong method, bad auth header)."""
    if exc.status_code == 404:
        return await api_error_handler(request, ApiError.not_found())
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler: log details, return safe generic message."""
    error = normalize_unknown_error(exc, operation=f"{request.method} {request.url.path}")
    return JSONResponse(status_code=error.http_status, content=error.body())


# health must be matched before the /{post_id} catch-all
app.include_router(health_router, tags=["health"])
app.include_router(posts_router, tags=["posts"])


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
