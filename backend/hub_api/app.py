"""Application factory for the Streamhub API."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..resolver.errors import RelayUpstreamError, ResolverError
from .routers import content, health, providers, proxy
from .schemas import ErrorModel
from .settings import HubSettings
from .state import AppState

logger = logging.getLogger(__name__)

AVAILABLE_ENDPOINTS = [
    "GET /health",
    "GET /status",
    "GET /providers",
    "GET /api/providers",
    "GET /api/search?query=&page=&provider=",
    "GET /api/:provider/catalog",
    "GET /api/:provider/posts?filter=&page=",
    "GET /api/:provider/search?query=&page=",
    "GET /api/:provider/meta?link=",
    "GET /api/:provider/episodes?url=",
    "GET /api/:provider/stream?link=&type=",
    "GET /api/proxy/stream?url=",
    "GET /api/proxy/video?url=&headers=",
]


def error_response(status_code: int, error: str, details: object = None) -> JSONResponse:
    body = ErrorModel(error=error, details=details).model_dump(exclude_none=True)
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body))


def create_app(
    settings: HubSettings | None = None,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Build and configure the FastAPI application.

    ``transport`` replaces the network for every outbound request, which is
    how the tests stand in for provider sites and media origins.
    """

    resolved_settings = settings or HubSettings()
    app_state = AppState(settings=resolved_settings, transport=transport)

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        yield
        await app_state.aclose()

    app = FastAPI(title="Streamhub API", version="0.1.0", lifespan=lifespan)
    app.state.app_state = app_state
    app.state.settings = app_state.settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["Content-Length", "Content-Range", "Accept-Ranges"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        logger.info("%s %s", request.method, request.url.path)
        return await call_next(request)

    @app.exception_handler(ResolverError)
    async def handle_resolver_error(request: Request, exc: ResolverError) -> JSONResponse:
        details = exc.details
        if isinstance(exc, RelayUpstreamError) and details is None and exc.upstream_status is not None:
            details = {"upstreamStatus": exc.upstream_status}
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return error_response(exc.status_code, exc.message, details)

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        return error_response(400, "Invalid request parameters", exc.errors())

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        if exc.status_code == 404:
            return error_response(404, "Not found", {"availableEndpoints": AVAILABLE_ENDPOINTS})
        return error_response(exc.status_code, str(exc.detail))

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("%s %s raised an unexpected error", request.method, request.url.path)
        return error_response(500, "Internal server error", f"{type(exc).__name__}: {exc}")

    # /api/proxy/* must be matched before /api/{provider}/*
    for router in (
        health.router,
        providers.router,
        proxy.router,
        content.router,
    ):
        app.include_router(router)

    return app
