# ===== app/services/team/team_scheduling_service.py =====
"""
Round-robin and collective scheduling for team event types.

Each member's inputs (settings, bookings, external busy times) are gathered
independently, the external lookups concurrently, and then reduced with the
pure union/intersection/rotation functions of the team aggregator.
"""
import asyncio
import logging
from datetime import date, datetime, timedelta, timezone
from typing import Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy.orm import Session

from app.config.settings import get_settings
from app.models import EventType, SchedulingType, Team, TeamMember, User
from app.schemas.availability import (
    AssignmentResult,
    RotationState,
    TeamDaySlotsResponse,
    TeamMemberInfo,
)
from app.services.availability.availability_service import AvailabilityService, HostSchedule
from app.services.booking.booking_query_service import BookingQueryService
from app.services.calendar.busy_time_service import BusyTimeProvider
from app.services.scheduling.conflict_checker import ConflictChecker
from app.services.scheduling.errors import NotFoundError
from app.services.scheduling.slot_generator import generate_slots, is_beyond_horizon
from app.services.scheduling.team_aggregator import (
    assign_round_robin,
    intersect_member_windows,
    merge_member_slots,
)
from app.utils.time_utils import get_tz, start_of_day

settings = get_settings()

logger = logging.getLogger(__name__)


class MemberContext:
    """One member's schedule and busy data for the current request"""

    def __init__(self, info: TeamMemberInfo, schedule: HostSchedule, checker: ConflictChecker, degraded: bool):
        self.info = info
        self.schedule = schedule
        self.checker = checker
        self.degraded = degraded

    @property
    def user_id(self) -> UUID:
        return self.info.user_id


class TeamSchedulingService:
    """Team slot display and round-robin assignment"""

    # ---------------------------------------------------------------- store

    @staticmethod
    def get_team_event_type(db: Session, event_type_id: UUID) -> EventType:
        event_type = db.query(EventType).filter_by(id=event_type_id, is_active=True).first()
        if not event_type or event_type.team_id is None:
            raise NotFoundError(f"Team event type {event_type_id} not found")
        return event_type

    @staticmethod
    def get_members(db: Session, team_id: UUID) -> List[TeamMember]:
        """Members ordered by ascending priority"""
        return (
            db.query(TeamMember)
            .filter_by(team_id=team_id)
            .order_by(TeamMember.priority.asc())
            .all()
        )

    @staticmethod
    def get_rotation_state(db: Session, team_id: UUID) -> RotationState:
        team = db.query(Team).filter_by(id=team_id).first()
        if not team:
            raise NotFoundError(f"Team {team_id} not found")
        return RotationState(
            team_id=team.id,
            last_assigned_member_id=team.last_assigned_member_id,
            version=team.rotation_version or 0,
        )

    @staticmethod
    def save_rotation_state(db: Session, rotation: RotationState) -> RotationState:
        """
        Persist the rotation pointer with an optimistic version check.

        A concurrent assignment that already moved the pointer loses the check;
        the pointer is then overwritten anyway (last write wins) and the drift
        is logged.
        """
        updated = db.query(Team).filter(
            Team.id == rotation.team_id,
            Team.rotation_version == rotation.version
        ).update({
            Team.last_assigned_member_id: rotation.last_assigned_member_id,
            Team.rotation_version: rotation.version + 1,
        }, synchronize_session=False)

        if not updated:
            logger.warning(
                f"Rotation pointer of team {rotation.team_id} changed concurrently, "
                f"overwriting with {rotation.last_assigned_member_id}"
            )
            team = db.query(Team).filter_by(id=rotation.team_id).one()
            team.last_assigned_member_id = rotation.last_assigned_member_id
            team.rotation_version = (team.rotation_version or 0) + 1

        db.commit()
        team = db.query(Team).filter_by(id=rotation.team_id).one()
        return RotationState(
            team_id=team.id,
            last_assigned_member_id=team.last_assigned_member_id,
            version=team.rotation_version,
        )

    # --------------------------------------------------------- per member

    @staticmethod
    def team_day(target_date: date, team_tz) -> Tuple[datetime, datetime]:
        """[start, end) of target_date in the team's timezone"""
        return start_of_day(target_date, team_tz), start_of_day(target_date + timedelta(days=1), team_tz)

    @staticmethod
    async def load_member_contexts(
            db: Session,
            members: List[TeamMember],
            busy_start: datetime,
            busy_end: datetime,
            busy_provider: BusyTimeProvider
    ) -> List[MemberContext]:
        """
        Settings and busy data of every member for one instant range.

        The range is shared by all members whatever their timezone; each
        member's overrides are loaded for every local date it touches.
        External lookups run concurrently.
        """
        users: Dict[UUID, User] = {
            u.id: u for u in db.query(User).filter(User.id.in_([m.user_id for m in members])).all()
        }

        schedules = []
        for member in members:
            user = users.get(member.user_id)
            if user is None:
                logger.error(f"Team member {member.user_id} has no user row, skipping")
                continue
            user_tz = get_tz(user.timezone or settings.DEFAULT_TIMEZONE)
            schedule = AvailabilityService.load_host_schedule(
                db,
                user,
                busy_start.astimezone(user_tz).date(),
                busy_end.astimezone(user_tz).date(),
            )
            schedules.append((member, schedule))

        if not schedules:
            return []

        bookings = BookingQueryService.get_busy_intervals(
            db, [s.user_id for _, s in schedules], busy_start, busy_end
        )

        external_results = await asyncio.gather(*(
            busy_provider.get_busy_times(schedule.user_id, busy_start, busy_end)
            for _, schedule in schedules
        ))

        return [
            MemberContext(
                info=TeamMemberInfo(user_id=member.user_id, priority=member.priority or 0),
                schedule=schedule,
                checker=ConflictChecker(bookings=bookings.get(schedule.user_id, []), external=external.intervals),
                degraded=external.degraded,
            )
            for (member, schedule), external in zip(schedules, external_results)
        ]

    # ------------------------------------------------------------ display

    @staticmethod
    async def get_team_slots(
            db: Session,
            event_type: EventType,
            target_date: date,
            busy_provider: BusyTimeProvider,
            now: Optional[datetime] = None
    ) -> TeamDaySlotsResponse:
        """Dispatch to round-robin or collective display by the event's scheduling type"""
        if event_type.scheduling_type == SchedulingType.COLLECTIVE:
            return await TeamSchedulingService.get_collective_slots(db, event_type, target_date, busy_provider, now)
        return await TeamSchedulingService.get_round_robin_slots(db, event_type, target_date, busy_provider, now)

    @staticmethod
    async def get_round_robin_slots(
            db: Session,
            event_type: EventType,
            target_date: date,
            busy_provider: BusyTimeProvider,
            now: Optional[datetime] = None
    ) -> TeamDaySlotsResponse:
        """Times at which at least one member is free, with the free members"""
        now = now or datetime.now(timezone.utc)
        config = AvailabilityService.get_event_type_config(event_type)
        team = event_type.team
        tz = get_tz(team.timezone or settings.DEFAULT_TIMEZONE)
        response = TeamDaySlotsResponse(
            date=target_date,
            timezone=team.timezone or settings.DEFAULT_TIMEZONE,
            scheduling_type=SchedulingType.ROUND_ROBIN,
        )

        members = TeamSchedulingService.get_members(db, team.id)
        if not members or is_beyond_horizon(target_date, now, config.max_days_ahead, tz):
            return response

        day_start, day_end = TeamSchedulingService.team_day(target_date, tz)
        contexts = await TeamSchedulingService.load_member_contexts(
            db,
            members,
            day_start - timedelta(minutes=config.buffer_before),
            day_end + timedelta(minutes=config.buffer_after),
            busy_provider,
        )

        slots_by_member = {}
        for ctx in contexts:
            slots_by_member[ctx.user_id] = generate_slots(
                target_date,
                ctx.schedule.windows_between(day_start, day_end),
                config,
                now,
                lambda s, e, checker=ctx.checker: checker.is_free(s, e, config.buffer_before, config.buffer_after),
                tz,
            )

        response.members_by_slot = merge_member_slots(slots_by_member)
        response.slots = [slot.time for slot in response.members_by_slot]
        response.calendar_degraded = any(ctx.degraded for ctx in contexts)
        return response

    @staticmethod
    async def get_collective_slots(
            db: Session,
            event_type: EventType,
            target_date: date,
            busy_provider: BusyTimeProvider,
            now: Optional[datetime] = None
    ) -> TeamDaySlotsResponse:
        """Times at which every member is free"""
        now = now or datetime.now(timezone.utc)
        config = AvailabilityService.get_event_type_config(event_type)
        team = event_type.team
        tz = get_tz(team.timezone or settings.DEFAULT_TIMEZONE)
        response = TeamDaySlotsResponse(
            date=target_date,
            timezone=team.timezone or settings.DEFAULT_TIMEZONE,
            scheduling_type=SchedulingType.COLLECTIVE,
        )

        members = TeamSchedulingService.get_members(db, team.id)
        if not members or is_beyond_horizon(target_date, now, config.max_days_ahead, tz):
            return response

        day_start, day_end = TeamSchedulingService.team_day(target_date, tz)
        contexts = await TeamSchedulingService.load_member_contexts(
            db,
            members,
            day_start - timedelta(minutes=config.buffer_before),
            day_end + timedelta(minutes=config.buffer_after),
            busy_provider,
        )
        if len(contexts) != len(members):
            return response

        common = intersect_member_windows([ctx.schedule.windows_between(day_start, day_end) for ctx in contexts])
        if not common:
            return response

        def everyone_free(slot_start, slot_end):
            return all(
                ctx.checker.is_free(slot_start, slot_end, config.buffer_before, config.buffer_after)
                for ctx in contexts
            )

        response.slots = generate_slots(target_date, common, config, now, everyone_free, tz)
        response.calendar_degraded = any(ctx.degraded for ctx in contexts)
        return response

    # --------------------------------------------------------- assignment

    @staticmethod
    async def assign_member(
            db: Session,
            event_type: EventType,
            slot_start: datetime,
            busy_provider: BusyTimeProvider
    ) -> AssignmentResult:
        """
        Pick the team member who receives a round-robin booking.

        Walks members in priority order starting after the last assigned
        member and returns the first one whose conflict check passes. Busy
        data of every member is fetched around the requested instant, so
        members in other timezones are checked against the same time. The
        advanced rotation pointer is persisted before returning so the next
        search resumes after this pick.

        Raises:
            NoMemberAvailableError: nobody is free for the requested time
        """
        config = AvailabilityService.get_event_type_config(event_type)
        slot_end = slot_start + timedelta(minutes=config.duration)
        team_id = event_type.team_id

        members = TeamSchedulingService.get_members(db, team_id)
        rotation = TeamSchedulingService.get_rotation_state(db, team_id)

        contexts = await TeamSchedulingService.load_member_contexts(
            db,
            members,
            slot_start - timedelta(minutes=config.buffer_before),
            slot_end + timedelta(minutes=config.buffer_after),
            busy_provider,
        )
        checkers = {ctx.user_id: ctx.checker for ctx in contexts}

        def is_member_free(member_id: UUID) -> bool:
            checker = checkers.get(member_id)
            return checker is not None and checker.is_free(
                slot_start, slot_end, config.buffer_before, config.buffer_after
            )

        result = assign_round_robin(
            [ctx.info for ctx in contexts],
            rotation,
            slot_start,
            slot_end,
            is_member_free,
        )
        result.rotation = TeamSchedulingService.save_rotation_state(db, result.rotation)
        logger.info(f"Round-robin assigned {result.member_id} for team {team_id} at {slot_start.isoformat()}")
        return result
