"""
Health check endpoint.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import text
from datetime import datetime, timezone
import logging

from scrutiny.database import get_db
from scrutiny.models.schemas import HealthCheckResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/", response_model=HealthCheckResponse)
async def health_check(db: AsyncSession = Depends(get_db)):
    """
    Health check endpoint to verify system status.

    Returns:
        HealthCheckResponse with the status of the database
    """
    db_status = "ok"
    try:
        await db.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        db_status = "error"

    return HealthCheckResponse(
        status="healthy" if db_status == "ok" else "degraded",
        database=db_status,
        timestamp=datetime.now(timezone.utc),
    )
