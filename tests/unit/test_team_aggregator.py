"""Tests for team union, intersection and round-robin rotation."""

import uuid
from datetime import date, datetime, time, timedelta, timezone

import pytest

from app.schemas.availability import RotationState, TeamMemberInfo, TimeWindow
from app.services.scheduling.errors import NoMemberAvailableError
from app.services.scheduling.team_aggregator import (
    assign_round_robin,
    intersect_member_windows,
    merge_member_slots,
    rotation_order,
)

DAY = date(2026, 3, 2)
ALICE, BOB, CAROL = uuid.uuid4(), uuid.uuid4(), uuid.uuid4()
TEAM = uuid.uuid4()


def at(hhmm):
    return datetime.combine(DAY, time.fromisoformat(hhmm), tzinfo=timezone.utc)


def window(start, end):
    return TimeWindow(start=at(start), end=at(end))


@pytest.fixture
def members():
    return [
        TeamMemberInfo(user_id=ALICE, priority=0),
        TeamMemberInfo(user_id=BOB, priority=1),
        TeamMemberInfo(user_id=CAROL, priority=2),
    ]


class TestMergeMemberSlots:

    def test_union_sorted_by_time(self):
        merged = merge_member_slots({
            ALICE: ["10:00", "09:00"],
            BOB: ["09:30", "10:00"],
        })

        assert [s.time for s in merged] == ["09:00", "09:30", "10:00"]
        assert merged[2].available_member_ids == [ALICE, BOB]
        assert merged[1].available_member_ids == [BOB]

    def test_no_duplicate_members(self):
        merged = merge_member_slots({ALICE: ["09:00", "09:00"]})

        assert merged[0].available_member_ids == [ALICE]

    def test_empty(self):
        assert merge_member_slots({ALICE: [], BOB: []}) == []


class TestIntersectMemberWindows:

    def test_two_members(self):
        """A free 09:00-12:00, B free 10:00-11:00: only 10:00-11:00 is common."""
        common = intersect_member_windows([[window("09:00", "12:00")], [window("10:00", "11:00")]])

        assert common == [window("10:00", "11:00")]

    def test_split_windows(self):
        common = intersect_member_windows([
            [window("09:00", "12:00")],
            [window("08:00", "09:30"), window("11:00", "13:00")],
        ])

        assert common == [window("09:00", "09:30"), window("11:00", "12:00")]

    def test_member_without_windows_empties(self):
        assert intersect_member_windows([[window("09:00", "12:00")], []]) == []

    def test_touching_windows_do_not_intersect(self):
        assert intersect_member_windows([[window("09:00", "10:00")], [window("10:00", "11:00")]]) == []

    def test_no_members(self):
        assert intersect_member_windows([]) == []

    def test_order_independent(self):
        a = [window("09:00", "12:00")]
        b = [window("10:00", "11:30")]
        c = [window("10:30", "13:00")]

        assert intersect_member_windows([a, b, c]) == intersect_member_windows([c, a, b])


class TestRotationOrder:

    def test_priority_order_without_history(self, members):
        assert [m.user_id for m in rotation_order(members, None)] == [ALICE, BOB, CAROL]

    def test_starts_after_last_assigned(self, members):
        assert [m.user_id for m in rotation_order(members, BOB)] == [CAROL, ALICE, BOB]

    def test_unknown_last_member_restarts(self, members):
        assert [m.user_id for m in rotation_order(members, uuid.uuid4())] == [ALICE, BOB, CAROL]

    def test_sorts_by_priority(self, members):
        shuffled = [members[2], members[0], members[1]]

        assert [m.user_id for m in rotation_order(shuffled, None)] == [ALICE, BOB, CAROL]


class TestAssignRoundRobin:

    def test_fair_over_three_requests(self, members):
        rotation = RotationState(team_id=TEAM)
        picked = []

        for hour in ("09:00", "10:00", "11:00"):
            start = at(hour)
            result = assign_round_robin(members, rotation, start, start + timedelta(minutes=30), lambda _: True)
            picked.append(result.member_id)
            rotation = result.rotation

        assert picked == [ALICE, BOB, CAROL]

    def test_resumes_after_last_assigned(self, members):
        rotation = RotationState(team_id=TEAM, last_assigned_member_id=CAROL, version=4)

        result = assign_round_robin(members, rotation, at("09:00"), at("09:30"), lambda _: True)

        assert result.member_id == ALICE
        assert result.rotation.last_assigned_member_id == ALICE
        assert result.rotation.version == 4

    def test_skips_busy_members(self, members):
        rotation = RotationState(team_id=TEAM, last_assigned_member_id=ALICE)

        result = assign_round_robin(members, rotation, at("09:00"), at("09:30"), lambda m: m == ALICE)

        assert result.member_id == ALICE

    def test_nobody_free(self, members):
        rotation = RotationState(team_id=TEAM, last_assigned_member_id=BOB)

        with pytest.raises(NoMemberAvailableError) as exc:
            assign_round_robin(members, rotation, at("09:00"), at("09:30"), lambda _: False)

        assert exc.value.team_id == TEAM
        assert exc.value.start == at("09:00")

    def test_input_rotation_unchanged(self, members):
        rotation = RotationState(team_id=TEAM)

        assign_round_robin(members, rotation, at("09:00"), at("09:30"), lambda _: True)

        assert rotation.last_assigned_member_id is None
