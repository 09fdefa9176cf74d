"""
Health check endpoints for the REST API.
Provides basic and detailed health status of the service and its dependencies.
"""

import asyncio

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import text
from starlette.concurrency import run_in_threadpool

from shared.config.logging import get_logger
from shared.config.settings import settings
from shared.infrastructure.db import get_db_context
from shared.infrastructure.events import get_redis_pool

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["health"])

CHECK_TIMEOUT = 3.0


@router.get("/health")
def health_check():
    """
    Basic health check endpoint.
    Returns service status without checking dependencies.
    """
    return {
        "status": "healthy",
        "service": "rest-api",
        "environment": settings.environment,
    }


def _ping_database() -> None:
    with get_db_context() as db:
        db.execute(text("SELECT 1"))


async def _check(component: str, ping) -> dict:
    try:
        await asyncio.wait_for(ping(), timeout=CHECK_TIMEOUT)
        return {"status": "healthy"}
    except Exception as e:
        logger.warning("Health check failed", component=component, error=str(e))
        return {"status": "unhealthy", "error": str(e)}


async def _ping_redis() -> None:
    client = await get_redis_pool()
    await client.ping()


@router.get("/health/detailed")
async def detailed_health_check():
    """
    Health of the database and Redis.

    Returns 503 Service Unavailable if any dependency is down.
    """
    database, redis_status = await asyncio.gather(
        _check("database", lambda: run_in_threadpool(_ping_database)),
        _check("redis", _ping_redis),
    )
    dependencies = {"database": database, "redis": redis_status}
    all_healthy = all(dep["status"] == "healthy" for dep in dependencies.values())

    checks = {
        "service": "rest-api",
        "environment": settings.environment,
        "status": "healthy" if all_healthy else "degraded",
        "dependencies": dependencies,
    }
    if not all_healthy:
        return JSONResponse(content=checks, status_code=503)
    return checks
