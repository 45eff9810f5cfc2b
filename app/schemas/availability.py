# app/schemas/availability.py
from __future__ import annotations
from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Annotated, List, Literal, Optional, Union
from datetime import date as Date, datetime, time
from enum import Enum
from uuid import UUID

from app.models.event_type import SchedulingType


class WeeklyRule(BaseModel):
    """Recurring working hours for one weekday"""
    model_config = ConfigDict(frozen=True)

    day_of_week: int = Field(..., description="Day of week (0=Sunday, 6=Saturday)", ge=0, le=6)
    start_time: time = Field(..., description="Window start (local wall time)")
    end_time: time = Field(..., description="Window end (local wall time)")


class DateOverride(BaseModel):
    """Per-date exception replacing the weekly rules of that date"""
    model_config = ConfigDict(frozen=True)

    date: Date
    is_available: bool
    start_time: Optional[time] = None
    end_time: Optional[time] = None


class WeeklyAvailability(BaseModel):
    """A day resolved from the user's weekly rules"""
    source: Literal["weekly"] = "weekly"
    rules: List[WeeklyRule] = Field(default_factory=list)


class OverrideAvailability(BaseModel):
    """A day resolved from an explicit date override"""
    source: Literal["override"] = "override"
    override: DateOverride


# Exactly one source per day: an override replaces the weekly rules, never merges
DayAvailability = Annotated[
    Union[WeeklyAvailability, OverrideAvailability],
    Field(discriminator="source"),
]


class TimeWindow(BaseModel):
    """Half-open window [start, end) of aware datetimes"""
    model_config = ConfigDict(frozen=True)

    start: datetime
    end: datetime


class BusyInterval(BaseModel):
    """Half-open busy period [start, end)"""
    model_config = ConfigDict(frozen=True)

    start: datetime
    end: datetime


class CalendarStatus(str, Enum):
    OK = "ok"
    NOT_CONNECTED = "not_connected"
    UNAVAILABLE = "unavailable"


class FreeBusyResult(BaseModel):
    """External calendar lookup outcome; intervals are empty unless status is OK"""
    intervals: List[BusyInterval] = Field(default_factory=list)
    status: CalendarStatus = CalendarStatus.OK

    @property
    def degraded(self) -> bool:
        return self.status == CalendarStatus.UNAVAILABLE


class EventTypeConfig(BaseModel):
    """Slot-relevant part of an event type"""
    duration: int = Field(..., description="Meeting length in minutes", gt=0)
    buffer_before: int = Field(0, ge=0)
    buffer_after: int = Field(0, ge=0)
    min_notice: int = Field(0, description="Minutes of notice required", ge=0)
    max_days_ahead: int = Field(60, description="Booking horizon in days", ge=0)
    scheduling_type: SchedulingType = SchedulingType.INDIVIDUAL


class TeamMemberInfo(BaseModel):
    user_id: UUID
    priority: int = 0


class RotationState(BaseModel):
    """Round-robin pointer read from and written back to the team store"""
    team_id: UUID
    last_assigned_member_id: Optional[UUID] = None
    version: int = 0


class AssignmentResult(BaseModel):
    member_id: UUID
    rotation: RotationState


class TeamSlot(BaseModel):
    time: str = Field(..., description="Start time (HH:MM)")
    available_member_ids: List[UUID] = Field(default_factory=list)


class DaySlotsResponse(BaseModel):
    """Slots for one host and date"""
    date: Date
    timezone: str
    slots: List[str] = Field(default_factory=list)
    is_holiday: bool = False
    calendar_degraded: bool = False


class TeamDaySlotsResponse(BaseModel):
    """Slots for a team event type on one date"""
    date: Date
    timezone: str
    scheduling_type: SchedulingType
    slots: List[str] = Field(default_factory=list)
    members_by_slot: List[TeamSlot] = Field(default_factory=list)
    calendar_degraded: bool = False


class MonthAvailabilityResponse(BaseModel):
    month: str = Field(..., description="YYYY-MM")
    available_dates: List[str] = Field(default_factory=list)


class HolidayEntry(BaseModel):
    date: str
    name: str


class BookingRequest(BaseModel):
    """Booking attempt for a slot shown to the guest"""
    event_type_id: UUID
    start_time: datetime = Field(..., description="Requested start (timezone-aware)")
    guest_name: str = Field(..., min_length=1)
    guest_email: str = Field(..., min_length=3)
    guest_timezone: str = Field("UTC")

    @field_validator("start_time")
    @classmethod
    def require_timezone(cls, v: datetime) -> datetime:
        if v.tzinfo is None:
            raise ValueError("start_time must include a UTC offset")
        return v


class BookingResponse(BaseModel):
    booking_ids: List[UUID]
    host_ids: List[UUID]
    start_time: datetime
    end_time: datetime
    status: str
