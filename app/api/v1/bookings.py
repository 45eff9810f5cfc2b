# ============================================================================
# app/api/v1/bookings.py
# ============================================================================
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.api.dependencies import get_busy_provider
from app.config.database import get_db
from app.schemas.availability import BookingRequest, BookingResponse
from app.services.booking.booking_service import BookingService
from app.services.calendar.busy_time_service import BusyTimeProvider
from app.services.scheduling.errors import NoMemberAvailableError, NotFoundError, SlotUnavailableError

router = APIRouter(prefix="/bookings", tags=["bookings"])


@router.post("", response_model=BookingResponse, status_code=201)
async def create_booking(
        request: BookingRequest,
        db: Session = Depends(get_db),
        busy_provider: BusyTimeProvider = Depends(get_busy_provider)
):
    """Book a slot; team event types are assigned or fanned out to members"""
    try:
        return await BookingService.create_booking(db, request, busy_provider)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except NoMemberAvailableError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except SlotUnavailableError as e:
        raise HTTPException(status_code=409, detail=str(e))
