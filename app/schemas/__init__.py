# app/schemas/__init__.py
from .availability import (
    WeeklyRule,
    DateOverride,
    WeeklyAvailability,
    OverrideAvailability,
    DayAvailability,
    TimeWindow,
    BusyInterval
)

from .availability import (
    CalendarStatus,
    FreeBusyResult,
    EventTypeConfig,
    TeamMemberInfo,
    RotationState,
    AssignmentResult,
    TeamSlot
)

from .availability import (
    DaySlotsResponse,
    TeamDaySlotsResponse,
    MonthAvailabilityResponse,
    HolidayEntry,
    BookingRequest,
    BookingResponse
)

__all__ = [
    # Availability inputs
    "WeeklyRule",
    "DateOverride",
    "WeeklyAvailability",
    "OverrideAvailability",
    "DayAvailability",
    "TimeWindow",
    "BusyInterval",

    # Scheduling values
    "CalendarStatus",
    "FreeBusyResult",
    "EventTypeConfig",
    "TeamMemberInfo",
    "RotationState",
    "AssignmentResult",
    "TeamSlot",

    # API payloads
    "DaySlotsResponse",
    "TeamDaySlotsResponse",
    "MonthAvailabilityResponse",
    "HolidayEntry",
    "BookingRequest",
    "BookingResponse",
]
