# ============================================================================
# app/api/v1/slots.py
# Public slot endpoints - thin HTTP layer over the availability services
# ============================================================================
from fastapi import APIRouter, Depends, HTTPException, Query, Path
from sqlalchemy.orm import Session
from datetime import date
from typing import List, Optional
from uuid import UUID

from app.api.dependencies import get_busy_provider
from app.config.database import get_db
from app.schemas.availability import (
    DaySlotsResponse,
    HolidayEntry,
    MonthAvailabilityResponse,
    TeamDaySlotsResponse,
)
from app.services.availability.availability_service import AvailabilityService
from app.services.calendar.busy_time_service import BusyTimeProvider
from app.services.scheduling.errors import NotFoundError
from app.services.scheduling.holiday_gate import get_public_holidays
from app.services.team.team_scheduling_service import TeamSchedulingService

router = APIRouter(tags=["slots"])


@router.get("/slots", response_model=DaySlotsResponse)
async def get_slots(
        username: str = Query(..., description="Host username"),
        event_slug: str = Query(..., description="Event type slug"),
        target_date: date = Query(..., alias="date", description="Date in YYYY-MM-DD, host timezone"),
        db: Session = Depends(get_db),
        busy_provider: BusyTimeProvider = Depends(get_busy_provider)
):
    """Bookable start times of an individual event type on one date"""
    try:
        user, event_type = AvailabilityService.get_user_event_type(db, username, event_slug)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    return await AvailabilityService.get_available_slots(db, user, event_type, target_date, busy_provider)


@router.get("/slots/month", response_model=MonthAvailabilityResponse)
async def get_month_availability(
        username: str = Query(..., description="Host username"),
        event_slug: str = Query(..., description="Event type slug"),
        month: str = Query(..., pattern=r"^\d{4}-\d{2}$", description="Month in YYYY-MM"),
        db: Session = Depends(get_db),
        busy_provider: BusyTimeProvider = Depends(get_busy_provider)
):
    """Dates of a month that have at least one bookable slot"""
    year, month_number = (int(part) for part in month.split("-"))
    if not 1 <= month_number <= 12:
        raise HTTPException(status_code=422, detail="Month must be between 01 and 12")

    try:
        user, event_type = AvailabilityService.get_user_event_type(db, username, event_slug)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    dates = await AvailabilityService.get_available_dates(db, user, event_type, year, month_number, busy_provider)
    return MonthAvailabilityResponse(month=month, available_dates=dates)


@router.get("/event-types/{event_type_id}/slots", response_model=TeamDaySlotsResponse)
async def get_team_slots(
        event_type_id: UUID = Path(..., description="Team event type ID"),
        target_date: date = Query(..., alias="date", description="Date in YYYY-MM-DD, team timezone"),
        db: Session = Depends(get_db),
        busy_provider: BusyTimeProvider = Depends(get_busy_provider)
):
    """Round-robin or collective slots of a team event type"""
    try:
        event_type = TeamSchedulingService.get_team_event_type(db, event_type_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    return await TeamSchedulingService.get_team_slots(db, event_type, target_date, busy_provider)


@router.get("/holidays", response_model=List[HolidayEntry])
async def list_holidays(
        country: str = Query(..., description="ISO country code or timezone name"),
        year: int = Query(..., ge=1970, le=2100),
        month: Optional[int] = Query(None, ge=1, le=12)
):
    """Public holidays, for the holiday blocking settings"""
    return get_public_holidays(country, year, month)
