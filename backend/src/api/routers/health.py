"""Health check endpoints."""
import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.redis import get_redis_client
from db.session import get_async_session
from schemas.envelope import ApiResponse


logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    database: str
    cache: str


@router.get("/health", response_model=ApiResponse[HealthResponse])
async def health_check(
    db: AsyncSession = Depends(get_async_session),
) -> ApiResponse[HealthResponse]:
    """Check application, database and cache health."""
    db_status = "healthy"
    try:
        await db.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError):
        logger.exception("Database health check failed")
        db_status = "unhealthy"

    # The API keeps serving without Redis, so a missing cache only degrades
    redis_client = get_redis_client()
    if redis_client is None or not redis_client.is_connected:
        cache_status = "disabled"
    elif await redis_client.ping():
        cache_status = "healthy"
    else:
        cache_status = "unhealthy"

    return ApiResponse.ok(HealthResponse(
        status="healthy" if db_status == "healthy" else "degraded",
        database=db_status,
        cache=cache_status,
    ))
