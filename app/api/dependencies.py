# ============================================================================
# FILE: app/api/dependencies.py
# Shared FastAPI dependencies
# ============================================================================
from fastapi import Depends
from sqlalchemy.orm import Session

from app.config.database import get_db
from app.services.calendar.busy_time_service import BusyTimeProvider, CalendarBusyService


def get_busy_provider(db: Session = Depends(get_db)) -> BusyTimeProvider:
    """External calendar free/busy source for the current request"""
    return CalendarBusyService(db)
