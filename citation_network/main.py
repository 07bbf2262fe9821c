"""FastAPI application entry point for the citation-network engine."""

import logging
from contextlib import asynccontextmanager

import redis.asyncio as aioredis
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from citation_network.api.routes import router
from citation_network.config import get_settings
from citation_network.errors import (
    ExternalServiceError,
    GraphConstructionError,
    NotFoundError,
    ValidationError,
)
from citation_network.services.job_search_client import JobSearchClient
from citation_network.services.session_backends import InMemorySessionBackend

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifespan: startup and shutdown."""
    settings = get_settings()

    if settings.relationship_backend == "memory":
        app.state.session_backend = InMemorySessionBackend(
            max_sessions=settings.relationship_cache_max_sessions
        )
    else:
        app.state.session_backend = aioredis.from_url(
            settings.redis_url, decode_responses=True
        )

    app.state.search_client = JobSearchClient(
        api_key=settings.search_api_key,
        base_url=settings.search_api_base_url,
        poll_interval=settings.job_poll_interval_seconds,
        max_attempts=settings.job_max_attempts,
        timeout=settings.search_request_timeout_seconds,
    )

    logger.info(
        "Application started (relationship backend: %s)", settings.relationship_backend
    )
    yield

    # Shutdown
    await app.state.search_client.close()
    await app.state.session_backend.aclose()
    logger.info("Application shut down")


def _error_response(status_code: int, exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()
    logging.getLogger().setLevel(settings.log_level)

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        debug=settings.debug,
        lifespan=lifespan,
    )

    # CORS middleware
    allow_origin_regex = r"^http://localhost:\d+$" if settings.environment == "development" else None
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_origin_regex=allow_origin_regex,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError):
        return _error_response(400, exc)

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError):
        return _error_response(404, exc)

    @app.exception_handler(ExternalServiceError)
    async def external_service_handler(request: Request, exc: ExternalServiceError):
        logger.warning("Search service error on %s: %s", request.url.path, exc.message)
        return _error_response(502, exc)

    @app.exception_handler(GraphConstructionError)
    async def graph_construction_handler(request: Request, exc: GraphConstructionError):
        logger.error("Graph construction failed on %s: %s", request.url.path, exc)
        return _error_response(500, exc)

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled exception: %s", exc)
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error"},
        )

    # Include API routes
    app.include_router(router, prefix=settings.api_v1_prefix)

    return app


app = create_app()
