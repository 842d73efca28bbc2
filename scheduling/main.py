"""
FastAPI application for provider availability and bookings
"""
import logging

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager

from scheduling.api.v1.router import api_v1_router
from scheduling.config.database import create_tables
from scheduling.config.settings import get_settings
from scheduling.core.exceptions import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    SchedulingError,
)
from scheduling.core.middleware import correlation_id_middleware, request_logging_middleware
from scheduling.core.monitoring import health_router
from scheduling.utils.my_logging import setup_logging

settings = get_settings()
logger = logging.getLogger(__name__)


def status_code_for(error: SchedulingError) -> int:
    """HTTP status for a rejected scheduling operation"""
    if isinstance(error, NotFoundError):
        return 404
    if isinstance(error, ConflictError):
        return 409
    if isinstance(error, AuthorizationError):
        return 403
    return 400


async def scheduling_error_handler(request: Request, exc: SchedulingError):
    status_code = status_code_for(exc)
    logger.info(
        f"{request.method} {request.url.path} rejected: {exc.code} ({exc.message})",
        extra={"correlation_id": getattr(request.state, "correlation_id", "unknown")}
    )
    return JSONResponse(status_code=status_code, content=exc.to_dict())


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    # Startup
    setup_logging()
    create_tables()
    logger.info(f"{settings.APP_NAME} starting up, API at /api/v1/, health check at /health")

    yield

    # Shutdown
    logger.info(f"{settings.APP_NAME} shutting down")


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""

    app = FastAPI(
        title=settings.APP_NAME,
        description="Provider availability, bookable slots and booking conflict checks",
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
    )

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE", "PUT"],
        allow_headers=["*"],
    )

    # Add custom middleware
    app.middleware("http")(request_logging_middleware)
    app.middleware("http")(correlation_id_middleware)

    app.add_exception_handler(SchedulingError, scheduling_error_handler)

    # Include routers
    app.include_router(health_router, prefix="/health", tags=["monitoring"])
    app.include_router(api_v1_router, prefix="/api/v1")

    @app.get("/")
    async def root():
        return {
            "service": settings.APP_NAME,
            "version": "0.1.0",
            "status": "running",
            "endpoints": {
                "api": "/api/v1",
                "health": "/health",
                "docs": "/docs" if settings.DEBUG else "disabled"
            }
        }

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(
        "scheduling.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level="info"
    )
