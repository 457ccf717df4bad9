"""
Tests for scorecard classification, rocks and individual goals.
"""

import pytest
from datetime import datetime, timedelta, timezone
from uuid import uuid4

from cadence_os.models import GoalStatus, RockLevel, RockStatus
from cadence_os.services.common import NotFoundError, PermissionDeniedError, ValidationError, current_quarter
from cadence_os.services.rocks import GoalService, RockFilters, RockService, goal_progress
from cadence_os.services.scorecard import (
    ScorecardService,
    goal_bucket,
    is_below_goal,
    latest_values,
    threshold_status,
    trend,
)


# =============================================================================
# CLASSIFICATION
# =============================================================================


class TestThresholdStatus:
    def test_unknown_value_or_goal_is_on_track(self):
        assert threshold_status(None, 100, 50, 80) == "on_track"
        assert threshold_status(40, None, 50, 80) == "on_track"

    def test_red_and_yellow_bands_are_inclusive(self):
        assert threshold_status(50, 100, 50, 80) == "off_track"
        assert threshold_status(80, 100, 50, 80) == "at_risk"
        assert threshold_status(81, 100, 50, 80) == "on_track"

    def test_without_thresholds(self):
        assert threshold_status(10, 100, None, None) == "on_track"


class TestGoalComparison:
    def test_below_goal_is_strict(self):
        assert is_below_goal(99, 100) is True
        assert is_below_goal(100, 100) is False
        assert is_below_goal(None, 100) is False
        assert is_below_goal(10, None) is False

    def test_goal_bucket(self):
        assert goal_bucket(99, 100) == "off_track"
        assert goal_bucket(100, 100) == "on_track"
        assert goal_bucket(None, 100) is None


class TestTrend:
    def test_direction_of_latest_value(self):
        assert trend([12, 10]) == "up"
        assert trend([8, 10]) == "down"
        assert trend([10, 10]) == "flat"

    def test_single_value_is_flat(self):
        assert trend([10]) == "flat"
        assert trend([]) == "flat"


class TestGoalProgress:
    def test_percent_rounded_and_capped(self):
        assert goal_progress(1, 3) == 33
        assert goal_progress(2, 3) == 67
        assert goal_progress(150, 100) == 100

    def test_no_target_means_no_progress(self):
        assert goal_progress(5, None) == 0
        assert goal_progress(5, 0) == 0
        assert goal_progress(None, 10) == 0


# =============================================================================
# METRICS
# =============================================================================


class TestScorecardService:
    @pytest.fixture
    def scorecard(self, session) -> ScorecardService:
        return ScorecardService(session)

    @pytest.fixture
    async def metric(self, scorecard, session, org, member):
        metric = await scorecard.create_metric(
            org.id,
            {"name": "Qualified leads", "owner_id": member.id, "goal": 40, "threshold_red": 20},
        )
        await session.commit()
        return metric

    async def test_create_assigns_display_order(self, scorecard, org, member, metric):
        second = await scorecard.create_metric(org.id, {"name": "Demos", "owner_id": member.id})

        assert metric.display_order == 1
        assert second.display_order == 2
        assert second.frequency == "weekly"

    async def test_create_requires_name_and_owner(self, scorecard, org):
        with pytest.raises(ValidationError, match="Name and owner_id are required"):
            await scorecard.create_metric(org.id, {"name": "Orphan"})

    async def test_owner_records_value(self, scorecard, org, member, metric):
        value = await scorecard.record_value(org.id, metric.id, member.id, False, 25, notes="Slow week")

        assert value.value == 25
        assert value.source == "manual"
        assert value.notes == "Slow week"

    async def test_other_members_cannot_record(self, scorecard, org, elt, metric):
        with pytest.raises(PermissionDeniedError):
            await scorecard.record_value(org.id, metric.id, elt.id, False, 25)

    async def test_admin_records_for_anyone(self, scorecard, org, admin, metric):
        value = await scorecard.record_value(org.id, metric.id, admin.id, True, 30)

        assert value.metric_id == metric.id

    async def test_value_is_required(self, scorecard, org, member, metric):
        with pytest.raises(ValidationError, match="Value is required"):
            await scorecard.record_value(org.id, metric.id, member.id, False, None)

    async def test_list_attaches_latest_value_and_trend(self, scorecard, org, member, metric):
        now = datetime.now(timezone.utc)
        await scorecard.record_value(org.id, metric.id, member.id, False, 30, recorded_at=now - timedelta(days=7))
        await scorecard.record_value(org.id, metric.id, member.id, False, 18, recorded_at=now)

        [row] = await scorecard.list_metrics(org.id)

        assert row.current_value == 18
        assert row.trend == "down"
        assert row.status == "off_track"
        assert row.below_goal is True

    async def test_values_newest_first(self, scorecard, org, member, metric):
        now = datetime.now(timezone.utc)
        await scorecard.record_value(org.id, metric.id, member.id, False, 1, recorded_at=now - timedelta(days=14))
        await scorecard.record_value(org.id, metric.id, member.id, False, 2, recorded_at=now)

        values = await scorecard.list_values(org.id, metric.id, limit=1)

        assert [v.value for v in values] == [2]

    async def test_latest_values_per_metric(self, scorecard, session, org, member, metric):
        other = await scorecard.create_metric(org.id, {"name": "Demos", "owner_id": member.id})
        now = datetime.now(timezone.utc)
        for weeks_ago, value in enumerate([40, 35, 30, 25]):
            await scorecard.record_value(
                org.id, metric.id, member.id, False, value, recorded_at=now - timedelta(weeks=weeks_ago)
            )
        await scorecard.record_value(org.id, other.id, member.id, False, 7, recorded_at=now)

        latest = await latest_values(session, [metric.id, other.id], per_metric=2)

        assert [v.value for v in latest[metric.id]] == [40, 35]
        assert [v.value for v in latest[other.id]] == [7]

    async def test_metric_from_another_org(self, scorecard, metric):
        with pytest.raises(NotFoundError, match="Metric not found"):
            await scorecard.get_metric(uuid4(), metric.id)


# =============================================================================
# ROCKS AND GOALS
# =============================================================================


class TestRocks:
    @pytest.fixture
    def rocks(self, session) -> RockService:
        return RockService(session)

    async def test_create_defaults_to_current_quarter(self, rocks, org, member):
        rock = await rocks.create_rock(org.id, True, {"title": "Ship v2", "owner_id": member.id})

        assert (rock.quarter, rock.year) == current_quarter()
        assert rock.status == RockStatus.NOT_STARTED
        assert rock.rock_level == RockLevel.COMPANY

    async def test_only_leadership_creates(self, rocks, org, member):
        with pytest.raises(PermissionDeniedError):
            await rocks.create_rock(org.id, False, {"title": "Ship v2", "owner_id": member.id})

    async def test_owner_updates_status(self, rocks, org, member):
        rock = await rocks.create_rock(org.id, True, {"title": "Ship v2", "owner_id": member.id})

        updated = await rocks.update_rock(org.id, rock.id, member.id, False, {"status": "at_risk"})

        assert updated.status == RockStatus.AT_RISK

    async def test_non_owner_cannot_update(self, rocks, org, member, elt):
        rock = await rocks.create_rock(org.id, True, {"title": "Ship v2", "owner_id": member.id})

        with pytest.raises(PermissionDeniedError):
            await rocks.update_rock(org.id, rock.id, elt.id, False, {"status": "at_risk"})

    async def test_filters(self, rocks, org, member, elt):
        await rocks.create_rock(org.id, True, {"title": "A", "owner_id": member.id, "status": "off_track"})
        await rocks.create_rock(org.id, True, {"title": "B", "owner_id": elt.id})

        off_track = await rocks.list_rocks(org.id, RockFilters(status="off_track"))
        mine = await rocks.list_rocks(org.id, RockFilters(owner_id=elt.id))

        assert [r.title for r in off_track] == ["A"]
        assert [r.title for r in mine] == ["B"]

    async def test_invalid_status_filter(self, rocks, org):
        with pytest.raises(ValidationError, match="Invalid status: sideways"):
            await rocks.list_rocks(org.id, RockFilters(status="sideways"))

    async def test_delete_is_admin_only(self, rocks, org, member):
        rock = await rocks.create_rock(org.id, True, {"title": "Ship v2", "owner_id": member.id})

        with pytest.raises(PermissionDeniedError):
            await rocks.delete_rock(org.id, rock.id, is_admin=False)
        await rocks.delete_rock(org.id, rock.id, is_admin=True)
        with pytest.raises(NotFoundError):
            await rocks.get_rock(org.id, rock.id)


class TestGoals:
    @pytest.fixture
    def goals(self, session) -> GoalService:
        return GoalService(session)

    async def test_members_create_their_own(self, goals, org, member):
        goal = await goals.create_goal(org.id, member.id, False, {"title": "Close 5 deals", "target_value": 5})

        assert goal.owner_id == member.id
        assert goal.status == GoalStatus.ON_TRACK

    async def test_members_cannot_create_for_others(self, goals, org, member, elt):
        with pytest.raises(PermissionDeniedError, match="Can only create goals for yourself"):
            await goals.create_goal(org.id, member.id, False, {"title": "X", "owner_id": elt.id})

    async def test_leadership_creates_for_others(self, goals, org, member, elt):
        goal = await goals.create_goal(org.id, elt.id, True, {"title": "X", "owner_id": member.id})

        assert goal.owner_id == member.id

    async def test_unknown_rock(self, goals, org, member):
        with pytest.raises(NotFoundError, match="Rock not found"):
            await goals.create_goal(org.id, member.id, False, {"title": "X", "rock_id": uuid4()})
