"""
Health check endpoint for monitoring and diagnostics.
"""
import logging
import time

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.database import get_db

logger = logging.getLogger(__name__)

router = APIRouter()

STARTED_AT = time.time()


def format_uptime(seconds: float) -> str:
    seconds = int(seconds)
    days, rest = divmod(seconds, 86400)
    hours, rest = divmod(rest, 3600)
    minutes, secs = divmod(rest, 60)
    if days:
        return f"{days}d {hours}h {minutes}m {secs}s"
    if hours:
        return f"{hours}h {minutes}m {secs}s"
    if minutes:
        return f"{minutes}m {secs}s"
    return f"{secs}s"


@router.get("/health")
async def health_check(db: Session = Depends(get_db)):
    """
    Health check that verifies the API is up and the database answers SELECT 1.

    Returns 503 when the database is unreachable.
    """
    db_ok = True
    try:
        db.execute(text("SELECT 1")).fetchone()
    except SQLAlchemyError as e:
        logger.error(f"Database health check failed: {e}", exc_info=True)
        db_ok = False

    uptime = time.time() - STARTED_AT
    body = {
        "status": "healthy" if db_ok else "degraded",
        "database": {"type": "sqlite", "status": "connected" if db_ok else "disconnected"},
        "uptime": int(uptime),
        "uptimeFormatted": format_uptime(uptime),
        "environment": settings.APP_ENV,
    }
    return JSONResponse(
        status_code=status.HTTP_200_OK if db_ok else status.HTTP_503_SERVICE_UNAVAILABLE,
        content=body,
    )
