"""FastAPI application factory"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from coop_ledger.api.middleware import RequestIDMiddleware, MetricsMiddleware
from coop_ledger.api.v1 import budgets, credits, payments, reports, subsidies, transactions
from coop_ledger.config import settings
from coop_ledger.domain.exceptions import (
    ConsistencyError,
    DomainException,
    InvalidTransitionError,
    NotFoundError,
    ProviderError,
    ValidationError,
)
from coop_ledger.infrastructure.database.models import Base
from coop_ledger.infrastructure.database.session import engine
from coop_ledger.infrastructure.locks import CooperativeLocks
from coop_ledger.infrastructure.observability.logging import logger, setup_logging

# Setup structured logging
setup_logging(settings.log_level)

STATUS_BY_ERROR = {
    ValidationError: 422,
    InvalidTransitionError: 409,
    NotFoundError: 404,
    ProviderError: 502,
    ConsistencyError: 500,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    Base.metadata.create_all(bind=engine)
    yield


async def handle_domain_exception(request: Request, exc: DomainException) -> JSONResponse:
    """Map the domain error taxonomy onto HTTP status codes"""
    status_code = next(
        (code for cls, code in STATUS_BY_ERROR.items() if isinstance(exc, cls)),
        400,
    )
    log = logger.error if status_code >= 500 else logger.warning
    log(
        f"{exc.kind}: {exc}",
        extra={"request_id": getattr(request.state, "request_id", None), "path": request.url.path},
    )
    return JSONResponse(
        status_code=status_code,
        content={
            "error": exc.kind,
            "detail": str(exc),
            "errors": getattr(exc, "errors", [str(exc)]),
        },
    )


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Cooperative Finance Ledger",
        description="Ledger, budgets, credits, subsidies and collective payment redistribution",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.locks = CooperativeLocks()

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    app.add_exception_handler(DomainException, handle_domain_exception)

    # Health check endpoint
    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Register API routers
    app.include_router(transactions.router, prefix="/v1", tags=["transactions"])
    app.include_router(budgets.router, prefix="/v1", tags=["budgets"])
    app.include_router(credits.router, prefix="/v1", tags=["credits"])
    app.include_router(subsidies.router, prefix="/v1", tags=["subsidies"])
    app.include_router(payments.router, prefix="/v1", tags=["payments"])
    app.include_router(reports.router, prefix="/v1", tags=["reports"])

    return app


app = create_app()
