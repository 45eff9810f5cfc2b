"""Shared test fixtures for the slot engine tests."""

import os

# Must be set before app.config.database builds its engine
os.environ.setdefault("DATABASE_URL", "sqlite://")

import uuid
from datetime import date, datetime, time, timezone
from typing import Dict, Generator, List, Optional

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.models import (
    AvailabilityOverride,
    AvailabilityRule,
    Base,
    Booking,
    BookingStatus,
    EventType,
    SchedulingType,
    Team,
    TeamMember,
    User,
)
from app.schemas.availability import BusyInterval, CalendarStatus, FreeBusyResult

# Sunday noon UTC; the next day (2026-03-02) is a Monday
NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
MONDAY = date(2026, 3, 2)
TUESDAY = date(2026, 3, 3)

MON = 1
TUE = 2


def utc(day: date, hhmm: str) -> datetime:
    hours, minutes = (int(p) for p in hhmm.split(":"))
    return datetime.combine(day, time(hours, minutes), tzinfo=timezone.utc)


def busy(day: date, start: str, end: str) -> BusyInterval:
    return BusyInterval(start=utc(day, start), end=utc(day, end))


class FakeBusyProvider:
    """External calendar stand-in keyed by user id."""

    def __init__(self, busy_by_user: Optional[Dict[uuid.UUID, List[BusyInterval]]] = None,
                 status: CalendarStatus = CalendarStatus.OK):
        self.busy_by_user = busy_by_user or {}
        self.status = status
        self.calls = []

    async def get_busy_times(self, user_id, start, end) -> FreeBusyResult:
        self.calls.append((user_id, start, end))
        if self.status != CalendarStatus.OK:
            return FreeBusyResult(status=self.status)
        return FreeBusyResult(intervals=self.busy_by_user.get(user_id, []))


@pytest.fixture
def engine():
    """In-memory SQLite shared across connections."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine) -> Generator[Session, None, None]:
    """Database session bound to the in-memory engine."""
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def busy_provider() -> FakeBusyProvider:
    """External calendar with nothing busy."""
    return FakeBusyProvider()


@pytest.fixture
def make_user(db):
    """Create a user with weekly rules given as (day_of_week, "HH:MM", "HH:MM")."""

    def _make_user(username="host", timezone_name="UTC", rules=((MON, "09:00", "12:00"),), **kwargs):
        user = User(username=username, email=f"{username}@example.com", timezone=timezone_name, **kwargs)
        for day, start, end in rules:
            user.availability_rules.append(AvailabilityRule(
                day_of_week=day,
                start_time=time.fromisoformat(start),
                end_time=time.fromisoformat(end),
            ))
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make_user


@pytest.fixture
def make_override(db):
    """Create a date override for a user."""

    def _make_override(user, day, is_available, start=None, end=None, reason=None):
        override = AvailabilityOverride(
            user_id=user.id,
            date=day,
            is_available=is_available,
            start_time=time.fromisoformat(start) if start else None,
            end_time=time.fromisoformat(end) if end else None,
            reason=reason,
        )
        db.add(override)
        db.commit()
        return override

    return _make_override


@pytest.fixture
def make_event_type(db):
    """Create an individual or team event type."""

    def _make_event_type(user=None, team=None, slug="intro", duration=30,
                         scheduling_type=SchedulingType.INDIVIDUAL, **kwargs):
        event_type = EventType(
            user_id=user.id if user else None,
            team_id=team.id if team else None,
            title=slug.title(),
            slug=slug,
            duration=duration,
            scheduling_type=scheduling_type,
            **kwargs,
        )
        db.add(event_type)
        db.commit()
        db.refresh(event_type)
        return event_type

    return _make_event_type


@pytest.fixture
def make_team(db):
    """Create a team; members get priorities in list order."""

    def _make_team(members, slug="support", timezone_name="UTC"):
        team = Team(name=slug.title(), slug=slug, timezone=timezone_name)
        db.add(team)
        db.flush()
        for priority, user in enumerate(members):
            db.add(TeamMember(team_id=team.id, user_id=user.id, priority=priority))
        db.commit()
        db.refresh(team)
        return team

    return _make_team


@pytest.fixture
def make_booking(db):
    """Create a booking for a host."""

    def _make_booking(host, event_type, start, end, status=BookingStatus.CONFIRMED):
        booking = Booking(
            event_type_id=event_type.id,
            host_id=host.id,
            guest_name="Guest",
            guest_email="guest@example.com",
            start_time=start,
            end_time=end,
            status=status,
        )
        db.add(booking)
        db.commit()
        return booking

    return _make_booking
