# ===== app/services/availability/availability_service.py =====
import calendar
import logging
from datetime import date, datetime, timedelta, timezone
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy.orm import Session

from app.config.settings import get_settings
from app.models import AvailabilityOverride, AvailabilityRule, EventType, SchedulingType, User
from app.schemas.availability import (
    DateOverride,
    DaySlotsResponse,
    EventTypeConfig,
    FreeBusyResult,
    TimeWindow,
    WeeklyRule,
)
from app.services.booking.booking_query_service import BookingQueryService
from app.services.calendar.busy_time_service import BusyTimeProvider
from app.services.scheduling import holiday_gate
from app.services.scheduling.availability_resolver import find_override, resolve_windows
from app.services.scheduling.conflict_checker import ConflictChecker
from app.services.scheduling.errors import NotFoundError
from app.services.scheduling.slot_generator import generate_slot_starts, generate_slots, is_beyond_horizon
from app.utils.time_utils import end_of_day, get_tz, start_of_day

settings = get_settings()

logger = logging.getLogger(__name__)


class HostSchedule:
    """Durable availability settings of one host, read once per request"""

    def __init__(
            self,
            user_id: UUID,
            timezone_name: str,
            rules: List[WeeklyRule],
            overrides: List[DateOverride],
            block_holidays: bool = False,
            holiday_country: Optional[str] = None
    ):
        self.user_id = user_id
        self.timezone_name = timezone_name
        self.tz = get_tz(timezone_name)
        self.rules = rules
        self.overrides = overrides
        self.block_holidays = block_holidays
        self.holiday_country = holiday_country

    def has_override(self, target_date: date) -> bool:
        return find_override(self.overrides, target_date) is not None

    def is_holiday_blocked(self, target_date: date) -> bool:
        return holiday_gate.blocks_day(
            target_date,
            self.block_holidays,
            self.has_override(target_date),
            self.timezone_name,
            self.holiday_country,
        )

    def windows(self, target_date: date) -> List[TimeWindow]:
        """Open windows of the date; a blocked holiday has none"""
        if self.is_holiday_blocked(target_date):
            return []
        return resolve_windows(self.rules, self.overrides, target_date, self.tz)

    def windows_between(self, range_start: datetime, range_end: datetime) -> List[TimeWindow]:
        """
        Open windows clipped to [range_start, range_end).

        The range is usually a day in another timezone, so every local date
        it touches is resolved on its own.
        """
        windows = []
        current = range_start.astimezone(self.tz).date()
        last = range_end.astimezone(self.tz).date()
        while current <= last:
            for window in self.windows(current):
                start = max(window.start, range_start)
                end = min(window.end, range_end)
                if start < end:
                    windows.append(TimeWindow(start=start, end=end))
            current += timedelta(days=1)
        return windows


class AvailabilityService:
    """Slot computation for individual hosts"""

    @staticmethod
    def get_event_type_config(event_type: EventType) -> EventTypeConfig:
        return EventTypeConfig(
            duration=event_type.duration,
            buffer_before=event_type.buffer_before or 0,
            buffer_after=event_type.buffer_after or 0,
            min_notice=event_type.min_notice or 0,
            max_days_ahead=(
                event_type.max_days_ahead
                if event_type.max_days_ahead is not None
                else settings.DEFAULT_MAX_DAYS_AHEAD
            ),
            scheduling_type=event_type.scheduling_type,
        )

    @staticmethod
    def get_user_event_type(db: Session, username: str, event_slug: str) -> Tuple[User, EventType]:
        """Active individual event type of a user, by username and slug"""
        user = db.query(User).filter_by(username=username, is_active=True).first()
        if not user:
            raise NotFoundError(f"User {username} not found")

        event_type = db.query(EventType).filter_by(
            user_id=user.id,
            slug=event_slug,
            is_active=True,
            team_id=None
        ).first()
        if not event_type:
            raise NotFoundError(f"Event type {event_slug} not found for {username}")

        return user, event_type

    @staticmethod
    def load_host_schedule(
            db: Session,
            user: User,
            start_date: Optional[date] = None,
            end_date: Optional[date] = None
    ) -> HostSchedule:
        """Weekly rules and the overrides between start_date and end_date"""
        rules = db.query(AvailabilityRule).filter_by(user_id=user.id).all()

        override_query = db.query(AvailabilityOverride).filter(AvailabilityOverride.user_id == user.id)
        if start_date and end_date:
            override_query = override_query.filter(AvailabilityOverride.date.between(start_date, end_date))

        return HostSchedule(
            user_id=user.id,
            timezone_name=user.timezone or settings.DEFAULT_TIMEZONE,
            rules=[
                WeeklyRule(day_of_week=r.day_of_week, start_time=r.start_time, end_time=r.end_time)
                for r in rules
            ],
            overrides=[
                DateOverride(date=o.date, is_available=o.is_available, start_time=o.start_time, end_time=o.end_time)
                for o in override_query.all()
            ],
            block_holidays=bool(user.block_holidays),
            holiday_country=user.holiday_country,
        )

    @staticmethod
    def busy_range(schedule: HostSchedule, start_date: date, end_date: date, config: EventTypeConfig):
        """Instants whose bookings can touch a buffered candidate between the two dates"""
        return (
            start_of_day(start_date, schedule.tz) - timedelta(minutes=config.buffer_before),
            end_of_day(end_date, schedule.tz) + timedelta(minutes=config.buffer_after),
        )

    @staticmethod
    async def build_conflict_checker(
            db: Session,
            user_id: UUID,
            start: datetime,
            end: datetime,
            busy_provider: BusyTimeProvider
    ) -> Tuple[ConflictChecker, FreeBusyResult]:
        """Busy context of one host: stored bookings plus external calendar"""
        bookings = BookingQueryService.get_busy_intervals(db, [user_id], start, end).get(user_id, [])
        external = await busy_provider.get_busy_times(user_id, start, end)
        return ConflictChecker(bookings=bookings, external=external.intervals), external

    @staticmethod
    async def get_available_slots(
            db: Session,
            user: User,
            event_type: EventType,
            target_date: date,
            busy_provider: BusyTimeProvider,
            now: Optional[datetime] = None
    ) -> DaySlotsResponse:
        """
        Bookable start times of one host on one date.

        Returns:
            DaySlotsResponse with "HH:MM" slots in the host's timezone, in
            availability-window order. Empty for days off, holidays and
            dates outside the booking horizon.
        """
        now = now or datetime.now(timezone.utc)
        config = AvailabilityService.get_event_type_config(event_type)
        schedule = AvailabilityService.load_host_schedule(db, user, target_date, target_date)
        response = DaySlotsResponse(date=target_date, timezone=schedule.timezone_name)

        if schedule.is_holiday_blocked(target_date):
            logger.info(f"{target_date} is a public holiday for user {user.id}, no slots")
            response.is_holiday = True
            return response

        if is_beyond_horizon(target_date, now, config.max_days_ahead, schedule.tz):
            return response

        windows = schedule.windows(target_date)
        if not windows:
            return response

        start, end = AvailabilityService.busy_range(schedule, target_date, target_date, config)
        checker, external = await AvailabilityService.build_conflict_checker(db, user.id, start, end, busy_provider)

        response.slots = generate_slots(
            target_date,
            windows,
            config,
            now,
            lambda s, e: checker.is_free(s, e, config.buffer_before, config.buffer_after),
            schedule.tz,
        )
        response.calendar_degraded = external.degraded
        return response

    @staticmethod
    async def get_available_dates(
            db: Session,
            user: User,
            event_type: EventType,
            year: int,
            month: int,
            busy_provider: BusyTimeProvider,
            now: Optional[datetime] = None
    ) -> List[str]:
        """YYYY-MM-DD dates of a month with at least one bookable slot"""
        now = now or datetime.now(timezone.utc)
        config = AvailabilityService.get_event_type_config(event_type)
        local_now = now.astimezone(get_tz(user.timezone or settings.DEFAULT_TIMEZONE))
        month_start = date(year, month, 1)
        month_end = date(year, month, calendar.monthrange(year, month)[1])
        range_start = max(month_start, local_now.date())
        range_end = min(month_end, (local_now + timedelta(days=config.max_days_ahead)).date())

        if range_start > range_end:
            return []

        schedule = AvailabilityService.load_host_schedule(db, user, range_start, range_end)
        start, end = AvailabilityService.busy_range(schedule, range_start, range_end, config)
        checker, _ = await AvailabilityService.build_conflict_checker(db, user.id, start, end, busy_provider)

        available_dates = []
        current = range_start
        while current <= range_end:
            windows = schedule.windows(current)
            if windows and generate_slots(
                    current,
                    windows,
                    config,
                    now,
                    lambda s, e: checker.is_free(s, e, config.buffer_before, config.buffer_after),
                    schedule.tz,
            ):
                available_dates.append(current.isoformat())
            current += timedelta(days=1)

        return available_dates

    @staticmethod
    async def is_slot_bookable(
            db: Session,
            user: User,
            event_type: EventType,
            slot_start: datetime,
            busy_provider: BusyTimeProvider,
            now: Optional[datetime] = None
    ) -> bool:
        """Re-validate a requested start against fresh availability and busy data"""
        if event_type.scheduling_type != SchedulingType.INDIVIDUAL:
            raise ValueError("is_slot_bookable only handles individual event types")

        now = now or datetime.now(timezone.utc)
        config = AvailabilityService.get_event_type_config(event_type)
        schedule_tz = get_tz(user.timezone or settings.DEFAULT_TIMEZONE)
        target_date = slot_start.astimezone(schedule_tz).date()
        schedule = AvailabilityService.load_host_schedule(db, user, target_date, target_date)

        if is_beyond_horizon(target_date, now, config.max_days_ahead, schedule.tz):
            return False

        windows = schedule.windows(target_date)
        if not windows:
            return False

        start, end = AvailabilityService.busy_range(schedule, target_date, target_date, config)
        checker, _ = await AvailabilityService.build_conflict_checker(db, user.id, start, end, busy_provider)
        starts = generate_slot_starts(
            windows,
            config,
            now,
            lambda s, e: checker.is_free(s, e, config.buffer_before, config.buffer_after),
        )
        return slot_start in starts
