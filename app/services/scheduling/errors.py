# app/services/scheduling/errors.py
"""Scheduling failures that callers must surface instead of an empty result"""


class SchedulingError(Exception):
    """Base class for scheduling failures"""


class NotFoundError(SchedulingError):
    """Referenced user, team or event type does not exist or is inactive"""


class NoMemberAvailableError(SchedulingError):
    """Round-robin assignment found nobody free for the requested time"""

    def __init__(self, team_id, start, end):
        self.team_id = team_id
        self.start = start
        self.end = end
        super().__init__(f"No member of team {team_id} is available for {start.isoformat()} - {end.isoformat()}")


class SlotUnavailableError(SchedulingError):
    """Requested slot is no longer bookable (re-validation failed)"""
