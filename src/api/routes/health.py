"""
Health check endpoints.
"""

import time

from fastapi import APIRouter

from src.application.dto.responses import HealthResponse
from src.config import get_logger, get_settings

logger = get_logger(__name__)

router = APIRouter(prefix="/api/health", tags=["health"])

# Track startup time
_start_time = time.time()


@router.get("", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """
    Health check.

    Tests SQLite connectivity and reports the applied schema version.
    """
    from src.infrastructure.storage.sqlite import get_pool
    from src.infrastructure.storage.sqlite.migrations import get_migration_status

    settings = get_settings()
    database = False
    schema_version = None

    try:
        pool = await get_pool()
        async with pool.acquire() as conn:
            await conn.execute("SELECT 1")
        database = True
        schema_version = (await get_migration_status())["current_version"]
    except Exception as e:
        logger.warning("health_check_database_failed", error=str(e))

    return HealthResponse(
        status="healthy" if database else "unhealthy",
        version=settings.app_version,
        uptime_seconds=time.time() - _start_time,
        database=database,
        schema_version=schema_version,
    )
