"""Health check endpoint."""

from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter

from storefront import __version__
from storefront.config import get_app_config

router = APIRouter(tags=["health"])


@router.get("/health", summary="Health check")
async def health() -> dict[str, Any]:
    """Liveness probe. Does not touch the store or the processor."""
    return {
        "status": "healthy",
        "environment": get_app_config().environment,
        "version": __version__,
        "timestamp": datetime.now(UTC).isoformat(),
    }
