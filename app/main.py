from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable

from fastapi import FastAPI, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.api import router
from app.web import router as web_router
from logging_config import configure_logging
from services.weather import build_default_service

logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
    "Vary": "Origin",
}


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    service = build_default_service()
    service.store.ensure_schema()
    logger.info("Weather store ready at %s", service.store.url)
    try:
        yield
    finally:
        service.store.dispose()
        build_default_service.cache_clear()


async def add_cors_headers(
    request: Request, call_next: Callable[[Request], Awaitable[Response]]
) -> Response:
    """Attach permissive CORS headers; answer preflight requests directly."""
    if request.method == "OPTIONS":
        response = Response(status_code=status.HTTP_200_OK)
    else:
        response = await call_next(request)
    response.headers.update(CORS_HEADERS)
    return response


async def request_validation_handler(
    _request: Request, exc: RequestValidationError
) -> JSONResponse:
    logger.info("Rejected request body.", extra={"reason": exc.errors()})
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": "Failed to parse request body"},
    )


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(
        title="Weather Station Service",
        description="Collects temperature and pressure readings and serves recent history.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.middleware("http")(add_cors_headers)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.include_router(router)
    app.include_router(web_router)
    return app

app = create_app()
