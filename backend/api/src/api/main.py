"""FastAPI application for the storefront payment API.

This package provides REST endpoints for:
- Health checks
- Payment intent creation and verification
- Stripe webhook reconciliation
"""

from datetime import UTC, datetime
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from mangum import Mangum

from api.exceptions import register_exception_handlers
from api.middleware.correlation import CORRELATION_ID_HEADER, CorrelationIdMiddleware
from api.routes import health_router, payments_router, webhooks_router
from storefront import __version__
from storefront.config import AppConfig, get_app_config
from storefront.utils.logging import configure_logging, get_logger

logger = get_logger(__name__)

CORS_ALLOW_HEADERS = [
    "authorization",
    "x-client-info",
    "apikey",
    "content-type",
    "idempotency-key",
    "stripe-signature",
    "x-correlation-id",
]


def create_app(config: AppConfig | None = None) -> FastAPI:
    """Build the FastAPI application.

    Args:
        config: Process configuration. Defaults to the environment.
    """
    config = config or get_app_config()
    configure_logging(config.log_level)

    app = FastAPI(
        title="Storefront Payments API",
        description="Payment intent lifecycle and webhook reconciliation",
        version=__version__,
    )

    # CorrelationIdMiddleware added first so CORS wraps it
    app.add_middleware(CorrelationIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(config.allowed_origins),
        allow_credentials=False,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=CORS_ALLOW_HEADERS,
        expose_headers=[CORRELATION_ID_HEADER],
    )

    register_exception_handlers(app)

    # Include routers under /api prefix
    app.include_router(health_router, prefix="/api")
    app.include_router(payments_router, prefix="/api")
    app.include_router(webhooks_router, prefix="/api")

    @app.get("/api/ping")
    async def ping() -> dict[str, Any]:
        """Root health check endpoint at /api/ping."""
        return {
            "status": "ok",
            "timestamp": datetime.now(UTC).isoformat(),
            "service": "storefront-payments",
        }

    logger.info("API configured for environment %s", config.environment)
    return app


app = create_app()

# Lambda handler - Mangum wraps FastAPI for AWS Lambda + API Gateway
handler = Mangum(app, lifespan="off")


def run_server(host: str = "0.0.0.0", port: int = 8080, reload: bool = True) -> None:
    """Run the FastAPI server.

    Args:
        host: Host to bind to (default: 0.0.0.0)
        port: Port to listen on (default: 8080)
        reload: Enable hot reload for development (default: True)
    """
    import uvicorn

    if reload:
        # Use string reference for reload mode (uvicorn requirement)
        uvicorn.run(
            "api.main:app",
            host=host,
            port=port,
            reload=True,
            reload_dirs=["backend/api/src", "backend/shared/src"],
        )
    else:
        uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    run_server()
