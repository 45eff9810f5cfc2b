"""Health checks and monitoring endpoints"""
from cryptography.fernet import Fernet
from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.orm import Session

from app.config.database import get_db
from app.config.settings import get_settings

health_router = APIRouter()


@health_router.get("/")
async def health_check():
    """Basic health check"""
    return {"status": "healthy", "service": "slot-engine"}


@health_router.get("/detailed")
async def detailed_health_check(db: Session = Depends(get_db)):
    """
    Detailed health check with dependencies.

    External calendars are best effort, so a missing or invalid token key
    only disables busy lookups and does not degrade the service.
    """
    checks = {
        "api": "healthy",
        "database": "unknown",
        "calendar_tokens": "unknown",
    }

    try:
        db.execute(text("SELECT 1"))
        checks["database"] = "healthy"
    except Exception as e:
        checks["database"] = f"unhealthy: {str(e)}"

    key = get_settings().CALENDAR_ENCRYPTION_KEY
    if not key:
        checks["calendar_tokens"] = "not configured"
    else:
        try:
            Fernet(key.encode())
            checks["calendar_tokens"] = "healthy"
        except ValueError:
            checks["calendar_tokens"] = "invalid key"

    checks["overall"] = "healthy" if checks["database"] == "healthy" else "degraded"
    return checks
