"""
JSON API router — health check and hello endpoints.

Endpoints:
  GET /health     — Service status with database connectivity
  GET /api/hello  — Simple JSON greeting
"""

from datetime import datetime, timezone

import structlog
from fastapi import APIRouter
from sqlalchemy.exc import SQLAlchemyError

from webbase.config import settings
from webbase.database import check_connection, get_connection_info
from webbase.dependencies import DbDep
from webbase.schemas.api import ApiResponse, DatabaseHealthInfo, HealthResponse

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check(db: DbDep):
    """
    Health check endpoint for deployment probes.

    Always answers 200 with status "healthy" while the process is up; the
    ``database`` block reports whether the database answered.
    """
    info = get_connection_info(db)
    try:
        connected = await check_connection(db)
    except (SQLAlchemyError, OSError) as exc:
        logger.error("database_health_check_failed", error=str(exc))
        await db.rollback()
        connected = False

    return HealthResponse(
        status="healthy",
        service=settings.APP_NAME,
        version=settings.APP_VERSION,
        database=DatabaseHealthInfo(connected=connected, **info),
    )


@router.get("/api/hello", response_model=ApiResponse, tags=["API"])
async def api_hello():
    return ApiResponse(
        message=f"Hello from {settings.APP_NAME}! A modern Python web server template built with FastAPI.",
        status="success",
        timestamp=datetime.now(timezone.utc).isoformat(),
    )
