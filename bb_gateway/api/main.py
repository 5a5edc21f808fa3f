"""FastAPI application factory"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from bb_gateway.api.dependencies import GatewayServices, build_services, get_services
from bb_gateway.api.middleware import RequestIDMiddleware, MetricsMiddleware
from bb_gateway.api.v1 import statement, token
from bb_gateway.config import Settings, settings
from bb_gateway.domain.exceptions import BankAPIError, ServiceUnavailableError, UpstreamRejectedError
from bb_gateway.infrastructure.observability.logging import setup_logging

logger = logging.getLogger(__name__)


def create_app(config: Optional[Settings] = None, services: Optional[GatewayServices] = None) -> FastAPI:
    """Create and configure FastAPI application"""
    config = config or settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Certificate and token state live for the life of the process
        if getattr(app.state, "services", None) is None:
            app.state.services = build_services(config)
        logger.info(
            "Gateway started",
            extra={
                "environment": config.environment,
                "oauth_url": config.oauth_url,
                "api_url": config.api_url,
                "mtls_enabled": config.use_mtls,
                "cert_loaded": app.state.services.certificates.get_identity() is not None,
            },
        )
        yield
        logger.info("Gateway stopped")

    app = FastAPI(
        title="BB Statement Gateway",
        description="OAuth token cache, mTLS bootstrap and statement/balance proxy for the bank API",
        version="2.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.services = services

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    @app.exception_handler(ServiceUnavailableError)
    async def service_unavailable_handler(request: Request, exc: ServiceUnavailableError):
        return JSONResponse(
            status_code=503,
            content={"error": {"message": "Bank service unavailable", "kind": exc.kind, "details": str(exc)}},
        )

    @app.exception_handler(UpstreamRejectedError)
    async def upstream_rejected_handler(request: Request, exc: UpstreamRejectedError):
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": {
                    "message": "Bank API rejected the request",
                    "kind": exc.kind,
                    "status": exc.status_code,
                    "details": exc.body,
                }
            },
        )

    @app.exception_handler(BankAPIError)
    async def bank_error_handler(request: Request, exc: BankAPIError):
        return JSONResponse(status_code=502, content={"error": {"message": str(exc), "kind": exc.kind}})

    # Health check endpoint
    @app.get("/health")
    def health_check(services: GatewayServices = Depends(get_services)):
        return {
            "status": "ok",
            "service": config.service_name,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "environment": config.environment,
            "mtls": config.use_mtls,
            "token_cached": services.token_cache.inspect().cached,
            "cert_loaded": services.certificates.get_identity() is not None,
        }

    @app.get("/info")
    def info(services: GatewayServices = Depends(get_services)):
        token_info = services.token_cache.inspect()
        certificate_error = services.certificates.last_error
        return {
            "server": {"name": app.title, "version": app.version, "environment": config.environment},
            "authentication": {
                "token_cached": token_info.cached,
                "expires_at": token_info.expires_at.isoformat() if token_info.expires_at else None,
                "expires_in": max(token_info.expires_in, 0),
            },
            "mtls": {
                "enabled": config.use_mtls,
                "cert_path": config.cert_path,
                "cert_loaded": services.certificates.get_identity() is not None,
                "failure_kind": certificate_error.kind if certificate_error else None,
            },
            "endpoints": {
                "health": "/health",
                "info": "/info",
                "metrics": "/metrics",
                "token": "/v1/token",
                "token_refresh": "/v1/token/refresh",
                "statement": "/v1/statement/{branch}/{account}",
                "balance": "/v1/balance/{branch}/{account}",
            },
        }

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Register API routers
    app.include_router(token.router, prefix="/v1", tags=["token"])
    app.include_router(statement.router, prefix="/v1", tags=["statement"])

    return app


setup_logging(settings.log_level)
app = create_app()
