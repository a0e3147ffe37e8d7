"""FastAPI application factory"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from sqlalchemy.orm.exc import StaleDataError
from starlette.responses import Response

from agriloan_gateway.api.dependencies import get_request_id
from agriloan_gateway.api.middleware import RequestIDMiddleware, MetricsMiddleware
from agriloan_gateway.api.v1 import field_logs, listings, loans, negotiations, users
from agriloan_gateway.domain.exceptions import (
    ExternalServiceError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from agriloan_gateway.infrastructure.database.session import init_db
from agriloan_gateway.infrastructure.observability.logging import setup_logging
from agriloan_gateway.config import settings

# Setup structured logging
setup_logging(settings.log_level)

# Domain error -> HTTP status
ERROR_STATUS = (
    (ValidationError, 422),
    (InvalidStateError, 409),
    (NotFoundError, 404),
    (ExternalServiceError, 503),
    (StaleDataError, 409),
)


def _error_handler(status_code: int):
    async def handle(request: Request, exc: Exception) -> JSONResponse:
        logging.warning(
            f"Request rejected: {exc}",
            extra={"request_id": get_request_id(request), "error": type(exc).__name__, "status": status_code},
        )
        detail = str(exc)
        if isinstance(exc, StaleDataError):
            detail = "The record was modified concurrently; reload and retry"
        return JSONResponse(status_code=status_code, content={"detail": detail})

    return handle


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="AgriLoan Gateway",
        description="Agricultural micro-loan lifecycle and produce marketplace service",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    for exc_class, status_code in ERROR_STATUS:
        app.add_exception_handler(exc_class, _error_handler(status_code))

    # Health check endpoint
    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Register API routers
    app.include_router(users.router, prefix="/v1", tags=["users"])
    app.include_router(loans.router, prefix="/v1", tags=["loans"])
    app.include_router(field_logs.router, prefix="/v1", tags=["field-logs"])
    app.include_router(listings.router, prefix="/v1", tags=["listings"])
    app.include_router(negotiations.router, prefix="/v1", tags=["negotiations"])

    return app


app = create_app()
