"""
Team Aggregator

Combines per-member results for team event types:

- round-robin display: union of member slots, attributed to the members free at each time
- round-robin assignment: first free member in rotation order after the last pick
- collective: intersection of every member's windows

Everything here is pure; the team scheduling service gathers the per-member
inputs concurrently and reduces them with these functions.
"""
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence
from uuid import UUID

from app.schemas.availability import (
    AssignmentResult,
    RotationState,
    TeamMemberInfo,
    TeamSlot,
    TimeWindow,
)
from app.services.scheduling.errors import NoMemberAvailableError


def merge_member_slots(slots_by_member: Mapping[UUID, Iterable[str]]) -> List[TeamSlot]:
    """Union of member slots keyed by time, sorted by time string"""
    members_by_time: Dict[str, List[UUID]] = {}
    for member_id, times in slots_by_member.items():
        for slot_time in times:
            members = members_by_time.setdefault(slot_time, [])
            if member_id not in members:
                members.append(member_id)

    return [
        TeamSlot(time=slot_time, available_member_ids=members)
        for slot_time, members in sorted(members_by_time.items())
        if members
    ]


def intersect_windows(first: Sequence[TimeWindow], second: Sequence[TimeWindow]) -> List[TimeWindow]:
    """Pairwise intersection, keeping only non-empty overlaps"""
    result = []
    for a in first:
        for b in second:
            start = max(a.start, b.start)
            end = min(a.end, b.end)
            if start < end:
                result.append(TimeWindow(start=start, end=end))
    return result


def intersect_member_windows(windows_by_member: Sequence[Sequence[TimeWindow]]) -> List[TimeWindow]:
    """
    Windows in which every member is available.

    A member without windows empties the result: collective events need
    everybody.
    """
    if not windows_by_member:
        return []

    common: Optional[List[TimeWindow]] = None
    for windows in windows_by_member:
        if not windows:
            return []
        common = list(windows) if common is None else intersect_windows(common, windows)
        if not common:
            return []
    return common


def rotation_order(members: Sequence[TeamMemberInfo], last_assigned_member_id: Optional[UUID]) -> List[TeamMemberInfo]:
    """Members by ascending priority, starting right after the last assigned one"""
    ordered = sorted(members, key=lambda m: m.priority)
    if not ordered or last_assigned_member_id is None:
        return ordered

    last_index = next(
        (i for i, m in enumerate(ordered) if m.user_id == last_assigned_member_id),
        None,
    )
    if last_index is None:
        return ordered

    start = (last_index + 1) % len(ordered)
    return ordered[start:] + ordered[:start]


def assign_round_robin(
        members: Sequence[TeamMemberInfo],
        rotation: RotationState,
        slot_start: datetime,
        slot_end: datetime,
        is_member_free: Callable[[UUID], bool]
) -> AssignmentResult:
    """
    Pick the member who gets a booking and advance the rotation.

    Raises:
        NoMemberAvailableError: nobody in the team is free for the slot
    """
    for member in rotation_order(members, rotation.last_assigned_member_id):
        if is_member_free(member.user_id):
            return AssignmentResult(
                member_id=member.user_id,
                rotation=RotationState(
                    team_id=rotation.team_id,
                    last_assigned_member_id=member.user_id,
                    version=rotation.version,
                ),
            )

    raise NoMemberAvailableError(rotation.team_id, slot_start, slot_end)
