"""FastAPI application factory"""

from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from finhome_engine.api.middleware import RequestIDMiddleware, MetricsMiddleware
from finhome_engine.api.v1 import plans, recurring
from finhome_engine.infrastructure.observability.logging import setup_logging
from finhome_engine.config import settings

setup_logging(settings.log_level)


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="FinHome Engine",
        description="Loan projections, rate recommendations and recurring transactions",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Last added runs first
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    app.include_router(recurring.router, prefix="/v1", tags=["recurring"])
    app.include_router(plans.router, prefix="/v1", tags=["plans"])

    return app


app = create_app()
