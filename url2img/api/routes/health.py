"""
Health Routes
=============

FastAPI routes for health check endpoints.
"""

from typing import Any, Dict

import psutil  # type: ignore
from fastapi import APIRouter, Request

from url2img import __version__
from url2img.config.logging import get_logger
from url2img.models.schemas import HealthStatus

router = APIRouter(prefix="/api/v1", tags=["Health"])

logger = get_logger(__name__)


def get_memory_usage() -> Dict[str, float]:
    """Get memory usage statistics."""
    process = psutil.Process()
    return {
        "memory_mb": process.memory_info().rss / 1024 / 1024,
        "memory_percent": process.memory_percent(),
    }


async def check_system_health(request: Request) -> Dict[str, Any]:
    """
    Check health of the engine, result store and dispatcher.

    Returns:
        Dictionary with status of each component
    """
    state = request.app.state
    store_healthy = await state.store.ping()

    return {
        "engine": bool(state.engine.healthy),
        "result_store": store_healthy,
        "stored_results": await state.store.size() if store_healthy else 0,
        "in_flight": state.dispatcher.in_flight,
    }


@router.get("/health", response_model=HealthStatus)
async def health_check(request: Request) -> HealthStatus:
    """Get application health status."""
    components = await check_system_health(request)
    healthy = components["engine"] and components["result_store"]

    health_status = HealthStatus(
        status="healthy" if healthy else "unhealthy",
        version=__version__,
        memory_usage=round(get_memory_usage()["memory_mb"], 2),
        **components,
    )

    logger.debug("Health check completed", status=health_status.status, **components)
    return health_status
