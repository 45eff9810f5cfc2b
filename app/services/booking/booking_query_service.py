# ============================================================================
# app/services/booking/booking_query_service.py
# Read side of the booking store used by the conflict checker
# ============================================================================
from sqlalchemy.orm import Session
from datetime import datetime
from typing import Dict, Iterable, List
from uuid import UUID

from app.models.booking import Booking, BookingStatus
from app.schemas.availability import BusyInterval
from app.utils.time_utils import ensure_utc


class BookingQueryService:
    """Service layer for reading bookings that block a host's time."""

    @staticmethod
    def get_busy_intervals(
            db: Session,
            host_ids: Iterable[UUID],
            start: datetime,
            end: datetime
    ) -> Dict[UUID, List[BusyInterval]]:
        """
        Non-cancelled bookings of the hosts overlapping [start, end), grouped by host.

        Every host id is present in the result, with an empty list when free.
        """
        host_ids = list(host_ids)
        busy: Dict[UUID, List[BusyInterval]] = {host_id: [] for host_id in host_ids}
        if not host_ids:
            return busy

        bookings = db.query(Booking).filter(
            Booking.host_id.in_(host_ids),
            Booking.status != BookingStatus.CANCELLED,
            Booking.start_time < ensure_utc(end),
            Booking.end_time > ensure_utc(start)
        ).order_by(Booking.start_time.asc()).all()

        for booking in bookings:
            busy[booking.host_id].append(BusyInterval(
                start=ensure_utc(booking.start_time),
                end=ensure_utc(booking.end_time),
            ))
        return busy
