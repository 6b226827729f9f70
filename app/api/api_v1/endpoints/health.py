"""
Health check endpoints.
"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.schemas.common import HealthResponse
from app.core.config import settings
from app.db.session import get_db

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("", response_model=HealthResponse)
async def health_check(db: AsyncSession = Depends(get_db)):
    """Health check including database connectivity."""
    details = {}
    status = "healthy"

    try:
        await db.execute(text("SELECT 1"))
        details["database"] = {"status": "healthy", "message": "Database connection successful"}
    except Exception as e:
        logger.error(f"Health check database failure: {e}")
        details["database"] = {"status": "unhealthy", "message": f"Database connection failed: {str(e)}"}
        status = "unhealthy"

    return HealthResponse(
        status=status,
        timestamp=datetime.now(timezone.utc),
        version=settings.VERSION,
        details=details,
    )
