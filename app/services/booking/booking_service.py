# ============================================================================
# app/services/booking/booking_service.py
# ============================================================================
"""Service for creating bookings from slots offered by the availability core"""
import logging
import uuid
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy.orm import Session

from app.config.settings import get_settings
from app.models import Booking, BookingStatus, EventType, SchedulingType, User
from app.schemas.availability import BookingRequest, BookingResponse
from app.services.availability.availability_service import AvailabilityService
from app.services.calendar.busy_time_service import BusyTimeProvider
from app.services.scheduling.errors import NotFoundError, SlotUnavailableError
from app.services.team.team_scheduling_service import TeamSchedulingService
from app.utils.time_utils import ensure_utc, format_hhmm, get_tz

settings = get_settings()

logger = logging.getLogger(__name__)


class BookingService:
    """
    Handles booking creation.

    Every path re-validates the requested time against fresh bookings and
    external busy data right before committing. This narrows, but does not
    close, the race between two guests booking the same time; the database
    remains the final arbiter.
    """

    @staticmethod
    def _new_booking(
            request: BookingRequest,
            event_type: EventType,
            host_id: uuid.UUID,
            start: datetime,
            end: datetime,
            collective_group_id: Optional[uuid.UUID] = None
    ) -> Booking:
        return Booking(
            id=uuid.uuid4(),
            event_type_id=event_type.id,
            host_id=host_id,
            guest_name=request.guest_name,
            guest_email=request.guest_email,
            guest_timezone=request.guest_timezone,
            start_time=ensure_utc(start),
            end_time=ensure_utc(end),
            status=BookingStatus.CONFIRMED,
            collective_group_id=collective_group_id,
        )

    @staticmethod
    def _is_offered(start: datetime, tz, slots: List[str]) -> bool:
        if start.second or start.microsecond:
            return False
        return format_hhmm(start, tz) in slots

    @staticmethod
    def _persist(db: Session, bookings: List[Booking]) -> List[Booking]:
        db.add_all(bookings)
        db.commit()
        for booking in bookings:
            db.refresh(booking)
        return bookings

    @staticmethod
    async def create_booking(
            db: Session,
            request: BookingRequest,
            busy_provider: BusyTimeProvider,
            now: Optional[datetime] = None
    ) -> BookingResponse:
        """
        Create the booking rows for a requested slot.

        Raises:
            NotFoundError: unknown or inactive event type
            SlotUnavailableError: the slot is not (or no longer) offered
            NoMemberAvailableError: round-robin found nobody free
        """
        event_type = db.query(EventType).filter_by(id=request.event_type_id, is_active=True).first()
        if not event_type:
            raise NotFoundError(f"Event type {request.event_type_id} not found")

        start = request.start_time
        end = start + timedelta(minutes=event_type.duration)

        if event_type.scheduling_type == SchedulingType.ROUND_ROBIN:
            bookings = await BookingService._create_round_robin(db, request, event_type, start, end, busy_provider, now)
        elif event_type.scheduling_type == SchedulingType.COLLECTIVE:
            bookings = await BookingService._create_collective(db, request, event_type, start, end, busy_provider, now)
        else:
            bookings = await BookingService._create_individual(db, request, event_type, start, end, busy_provider, now)

        logger.info(
            f"Created {len(bookings)} booking(s) for event type {event_type.id} at {ensure_utc(start).isoformat()}"
        )
        return BookingResponse(
            booking_ids=[b.id for b in bookings],
            host_ids=[b.host_id for b in bookings],
            start_time=ensure_utc(start),
            end_time=ensure_utc(end),
            status=BookingStatus.CONFIRMED,
        )

    @staticmethod
    async def _create_individual(db, request, event_type, start, end, busy_provider, now) -> List[Booking]:
        host = db.query(User).filter_by(id=event_type.user_id, is_active=True).first()
        if not host:
            raise NotFoundError(f"Host of event type {event_type.id} not found")

        if not await AvailabilityService.is_slot_bookable(db, host, event_type, start, busy_provider, now):
            raise SlotUnavailableError(f"{start.isoformat()} is not available for {host.username}")

        return BookingService._persist(db, [BookingService._new_booking(request, event_type, host.id, start, end)])

    @staticmethod
    async def _create_round_robin(db, request, event_type, start, end, busy_provider, now) -> List[Booking]:
        team_tz = get_tz(event_type.team.timezone or settings.DEFAULT_TIMEZONE)
        slot_date = start.astimezone(team_tz).date()
        display = await TeamSchedulingService.get_round_robin_slots(db, event_type, slot_date, busy_provider, now)
        if not BookingService._is_offered(start, team_tz, display.slots):
            raise SlotUnavailableError(f"{start.isoformat()} is not offered by team {event_type.team_id}")

        assignment = await TeamSchedulingService.assign_member(db, event_type, start, busy_provider)
        booking = BookingService._new_booking(request, event_type, assignment.member_id, start, end)
        return BookingService._persist(db, [booking])

    @staticmethod
    async def _create_collective(db, request, event_type, start, end, busy_provider, now) -> List[Booking]:
        team_tz = get_tz(event_type.team.timezone or settings.DEFAULT_TIMEZONE)
        slot_date = start.astimezone(team_tz).date()
        display = await TeamSchedulingService.get_collective_slots(db, event_type, slot_date, busy_provider, now)
        if not BookingService._is_offered(start, team_tz, display.slots):
            raise SlotUnavailableError(f"{start.isoformat()} is not free for every member of team {event_type.team_id}")

        # One logical booking, one row per member
        group_id = uuid.uuid4()
        members = TeamSchedulingService.get_members(db, event_type.team_id)
        return BookingService._persist(db, [
            BookingService._new_booking(request, event_type, member.user_id, start, end, group_id)
            for member in members
        ])
