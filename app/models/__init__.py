# app/models/__init__.py
from .base import Base
from .user import User
from .availability import AvailabilityRule, AvailabilityOverride
from .event_type import EventType, SchedulingType
from .booking import Booking, BookingStatus
from .team import Team, TeamMember
from .calendar_integration import CalendarIntegration

__all__ = [
    "Base",
    "User",
    "AvailabilityRule",
    "AvailabilityOverride",
    "EventType",
    "SchedulingType",
    "Booking",
    "BookingStatus",
    "Team",
    "TeamMember",
    "CalendarIntegration",
]
