"""Main FastAPI application for HireLink."""

import asyncio
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from hirelink import __version__
from hirelink.api.models import ErrorResponse
from hirelink.api.routes import all_routers
from hirelink.config import settings
from hirelink.core.errors import HireLinkError
from hirelink.service import Marketplace
from hirelink.utils.logging import configure_logging, get_logger

# Configure logging
configure_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    logger.info("Starting HireLink API")
    marketplace: Marketplace = app.state.marketplace

    try:
        await marketplace.start()
        logger.info("Application startup completed successfully")
    except Exception as e:
        logger.error("Application startup failed", error=str(e))
        raise

    yield

    logger.info("Shutting down HireLink API")
    try:
        await marketplace.close()
        logger.info("Application shutdown completed successfully")
    except Exception as e:
        logger.error("Application shutdown error", error=str(e))


def create_app(marketplace: Optional[Marketplace] = None) -> FastAPI:
    """Create and configure the FastAPI application."""

    app = FastAPI(
        title="HireLink API",
        description="Hiring marketplace approval and lifecycle workflows",
        version=__version__,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )
    app.state.marketplace = marketplace or Marketplace()

    setup_middleware(app)
    setup_exception_handlers(app)

    for router in all_routers:
        app.include_router(router, prefix="/api/v1")

    @app.get("/")
    async def root():
        return {
            "name": "HireLink API",
            "version": __version__,
            "status": "running",
            "docs": "/docs" if settings.debug else "disabled",
        }

    return app


def setup_middleware(app: FastAPI) -> None:
    """Setup application middleware."""

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["ETag"],
    )

    if settings.allowed_hosts:
        app.add_middleware(TrustedHostMiddleware, allowed_hosts=settings.allowed_hosts)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start_time = asyncio.get_running_loop().time()

        logger.info(
            "Request started",
            method=request.method,
            url=str(request.url),
            client_ip=request.client.host if request.client else None,
        )

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "Request failed",
                method=request.method,
                url=str(request.url),
                error=str(e),
                duration_seconds=asyncio.get_running_loop().time() - start_time,
            )
            raise

        logger.info(
            "Request completed",
            method=request.method,
            url=str(request.url),
            status_code=response.status_code,
            duration_seconds=asyncio.get_running_loop().time() - start_time,
        )
        return response


def _error(status_code: int, kind: str, message: str, details: Optional[Dict[str, Any]] = None) -> JSONResponse:
    envelope = ErrorResponse(
        kind=kind,
        message=message,
        details=details,
        timestamp=datetime.now(timezone.utc),
    )
    return JSONResponse(status_code=status_code, content=jsonable_encoder(envelope, exclude_none=True))


def setup_exception_handlers(app: FastAPI) -> None:
    """Setup global exception handlers."""

    @app.exception_handler(HireLinkError)
    async def hirelink_exception_handler(request: Request, exc: HireLinkError):
        logger.warning(
            "Operation refused",
            kind=exc.kind,
            message=exc.message,
            status_code=exc.http_status,
            url=str(request.url),
        )
        return _error(exc.http_status, exc.kind, exc.message, exc.details)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        logger.warning("Validation error", errors=exc.errors(), url=str(request.url))
        return _error(
            422,
            "ValidationError",
            "Request validation failed",
            {"validation_errors": jsonable_encoder(exc.errors())},
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        logger.warning("HTTP exception", status_code=exc.status_code, detail=exc.detail, url=str(request.url))
        return _error(exc.status_code, "HTTPException", str(exc.detail))

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.error(
            "Unhandled exception",
            error=str(exc),
            error_type=type(exc).__name__,
            url=str(request.url),
        )
        return _error(
            500,
            "InternalServerError",
            "An unexpected error occurred",
            {"error_type": type(exc).__name__} if settings.debug else None,
        )
