"""
FastAPI application factory.
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src import __version__
from src.core.exceptions import (
    MatchingError,
    ModelLoadError,
    NoEmbeddingError,
    NotFoundError,
)
from src.core.matching import MatchOrchestrator, get_match_orchestrator
from src.utils.config import get_settings
from src.utils.logger import get_logger, setup_logging

from .routes import health_router, router

logger = get_logger(__name__)


def _status_for(error: MatchingError) -> int:
    if isinstance(error, NotFoundError):
        return status.HTTP_404_NOT_FOUND
    if isinstance(error, NoEmbeddingError):
        return status.HTTP_409_CONFLICT
    if isinstance(error, ModelLoadError):
        return status.HTTP_500_INTERNAL_SERVER_ERROR
    if error.retryable:
        return status.HTTP_503_SERVICE_UNAVAILABLE
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def matching_error_handler(request: Request, exc: MatchingError) -> JSONResponse:
    """Map typed pipeline errors to JSON error responses."""
    status_code = _status_for(exc)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    else:
        logger.info(f"{request.method} {request.url.path}: {exc}")

    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "error": str(exc),
            "code": exc.code,
            "retryable": exc.retryable,
        },
    )


def create_app(orchestrator: Optional[MatchOrchestrator] = None) -> FastAPI:
    """
    Build the HTTP application.

    Args:
        orchestrator: Orchestrator to serve; defaults to the process-wide one.
    """
    settings = get_settings()
    setup_logging()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        # Let background embeddings finish before shutdown
        await app.state.orchestrator.drain()

    app = FastAPI(
        title=settings.name,
        description=settings.description,
        version=__version__,
        lifespan=lifespan,
    )
    app.state.orchestrator = orchestrator or get_match_orchestrator()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.api.cors_origins,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )
    app.add_exception_handler(MatchingError, matching_error_handler)
    app.include_router(router)
    app.include_router(health_router)
    return app
