"""
Tests for the L10 meeting lifecycle.

These verify:
1. CREATE: a new meeting gets the seven-step agenda
2. START: scorecard and rocks are snapshotted once
3. END: open agenda items close and the summary lands in notes
4. PREVIEW: prep data is gathered for a scheduled meeting
"""

import pytest
from datetime import date, datetime, timedelta, timezone
from uuid import uuid4

from sqlalchemy.ext.asyncio import AsyncSession

from cadence_os.models import (
    AgendaSection,
    Headline,
    Metric,
    MetricValue,
    MeetingStatus,
    Rock,
    RockStatus,
    Todo,
    TodoReviewStatus,
)
from cadence_os.services.common import (
    InvalidTransitionError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from cadence_os.services import meetings as meetings_module
from cadence_os.services.ids import IDSService, QueueIssueInput
from cadence_os.services.meetings import (
    CreateMeetingInput,
    EndMeetingInput,
    MeetingService,
    duration_in_minutes,
)


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def service(session, session_factory) -> MeetingService:
    return MeetingService(session, session_factory)


@pytest.fixture
async def meeting(service, session, org, admin, member, next_week):
    meeting = await service.create_meeting(
        org.id,
        admin.id,
        CreateMeetingInput(
            title="Leadership L10",
            scheduled_at=next_week,
            attendee_ids=[admin.id, member.id],
        ),
    )
    await session.commit()
    return meeting


async def add_metric(session: AsyncSession, org, owner, name: str, goal, value) -> Metric:
    metric = Metric(organization_id=org.id, name=name, owner_id=owner.id, goal=goal, unit="k")
    session.add(metric)
    await session.flush()
    if value is not None:
        session.add(
            MetricValue(
                metric_id=metric.id,
                value=value,
                recorded_at=datetime.now(timezone.utc) - timedelta(days=1),
            )
        )
    await session.commit()
    return metric


async def add_rock(session: AsyncSession, org, owner, title: str, status: RockStatus) -> Rock:
    rock = Rock(
        organization_id=org.id,
        title=title,
        owner_id=owner.id,
        status=status,
        due_date=date.today() + timedelta(days=30),
    )
    session.add(rock)
    await session.commit()
    return rock


# =============================================================================
# CREATE / UPDATE / DELETE
# =============================================================================


class TestCreateMeeting:
    async def test_seeds_standard_agenda(self, meeting):
        sections = [item.section for item in meeting.agenda_items]
        minutes = [item.duration_minutes for item in meeting.agenda_items]

        assert meeting.status == MeetingStatus.SCHEDULED
        assert sections == [
            AgendaSection.SEGUE,
            AgendaSection.SCORECARD,
            AgendaSection.ROCKS,
            AgendaSection.HEADLINES,
            AgendaSection.TODOS,
            AgendaSection.IDS,
            AgendaSection.CONCLUDE,
        ]
        assert minutes == [5, 5, 5, 5, 5, 60, 5]
        assert [item.sort_order for item in meeting.agenda_items] == list(range(1, 8))

    async def test_records_attendees_once(self, service, session, org, admin, next_week):
        meeting = await service.create_meeting(
            org.id,
            admin.id,
            CreateMeetingInput("Pillar L10", next_week, attendee_ids=[admin.id, admin.id]),
        )

        assert [a.profile_id for a in meeting.attendees] == [admin.id]

    async def test_title_is_required(self, service, org, admin, next_week):
        with pytest.raises(ValidationError, match="Title and scheduled_at are required"):
            await service.create_meeting(org.id, admin.id, CreateMeetingInput("", next_week))

    async def test_only_creator_or_admin_can_edit(self, service, meeting, org, member):
        with pytest.raises(PermissionDeniedError):
            await service.update_meeting(org.id, meeting.id, member.id, False, {"title": "Mine"})

    async def test_admin_edit_replaces_attendees(self, service, meeting, org, admin, elt):
        updated = await service.update_meeting(
            org.id, meeting.id, admin.id, True, {"title": "Renamed", "attendee_ids": [elt.id]}
        )

        assert updated.title == "Renamed"
        assert [a.profile_id for a in updated.attendees] == [elt.id]

    async def test_update_without_fields(self, service, meeting, org, admin):
        with pytest.raises(ValidationError, match="No valid fields to update"):
            await service.update_meeting(org.id, meeting.id, admin.id, True, {"bogus": 1})

    async def test_delete(self, service, meeting, org):
        await service.delete_meeting(org.id, meeting.id)

        with pytest.raises(NotFoundError):
            await service.get_meeting(org.id, meeting.id)


# =============================================================================
# START / END
# =============================================================================


class TestStartMeeting:
    async def test_snapshots_scorecard_and_active_rocks(
        self, service, session, meeting, org, admin
    ):
        await add_metric(session, org, admin, "Revenue", goal=100, value=120)
        await add_rock(session, org, admin, "Launch v2", RockStatus.ON_TRACK)
        await add_rock(session, org, admin, "Old rock", RockStatus.COMPLETE)

        started = await service.start_meeting(org.id, meeting.id)

        assert started.status == MeetingStatus.IN_PROGRESS
        assert started.started_at is not None
        assert [m["name"] for m in started.scorecard_snapshot] == ["Revenue"]
        assert started.scorecard_snapshot[0]["current_value"] == 120
        assert [r["title"] for r in started.rocks_snapshot] == ["Launch v2"]
        assert started.rocks_snapshot[0]["owner"]["full_name"] == "Alice Admin"

        agenda = await service.list_agenda(org.id, meeting.id)
        assert agenda[0].started_at is not None
        assert all(item.started_at is None for item in agenda[1:])

    async def test_returns_full_detail(self, service, meeting, org):
        started = await service.start_meeting(org.id, meeting.id)

        assert len(started.agenda_items) == 7
        assert started.agenda_items[0].started_at is not None
        assert {a.profile.full_name for a in started.attendees} == {"Alice Admin", "Sam Senior"}
        assert started.issues_discussed == []
        assert started.todos_reviewed == []

    async def test_cannot_start_twice(self, service, session, meeting, org):
        await service.start_meeting(org.id, meeting.id)
        await session.commit()

        with pytest.raises(InvalidTransitionError, match="Cannot start meeting with status: in_progress"):
            await service.start_meeting(org.id, meeting.id)


class TestEndMeeting:
    async def test_writes_summary_and_closes_agenda(self, service, session, meeting, org, admin):
        await service.start_meeting(org.id, meeting.id)
        await service.add_headline(
            org.id, meeting.id, admin.id, admin.full_name, "Closed Acme", "customer"
        )
        await session.commit()

        ended = await service.end_meeting(
            org.id,
            meeting.id,
            EndMeetingInput(
                rating=9,
                ratings={str(admin.id): 9},
                cascading_messages="Office closed Friday.",
            ),
        )

        assert ended.status == MeetingStatus.COMPLETED
        assert ended.ended_at is not None
        assert ended.duration_minutes == 0
        assert ended.rating == 9
        assert ended.notes.startswith("# L10 Meeting Summary")
        assert "- Alice Admin — rated **9/10**" in ended.notes
        assert "- Sam Senior\n" in ended.notes
        assert "🎉 Closed Acme — *Alice Admin*" in ended.notes
        assert ended.notes.endswith("Office closed Friday.\n")

        agenda = await service.list_agenda(org.id, meeting.id)
        assert all(item.completed_at is not None for item in agenda)

    async def test_cannot_end_scheduled_meeting(self, service, meeting, org):
        with pytest.raises(InvalidTransitionError, match="Cannot end meeting with status: scheduled"):
            await service.end_meeting(org.id, meeting.id)

    async def test_headlines_follow_the_start_day(self, service, session, meeting, org, admin):
        started = await service.start_meeting(org.id, meeting.id)
        late_start = datetime.combine(
            date.today() - timedelta(days=1), datetime.min.time(), tzinfo=timezone.utc
        ) + timedelta(hours=23, minutes=50)
        started.started_at = late_start
        session.add_all([
            Headline(
                organization_id=org.id,
                title="Late-night win",
                created_by=admin.id,
                created_at=late_start + timedelta(minutes=5),
            ),
            Headline(
                organization_id=org.id,
                title="Old news",
                created_by=admin.id,
                created_at=late_start - timedelta(days=2),
            ),
        ])
        await session.commit()

        ended = await service.end_meeting(org.id, meeting.id)

        assert "Late-night win" in ended.notes
        assert "Old news" not in ended.notes

    def test_duration_rounds_half_minutes_up(self):
        start = datetime(2025, 3, 3, 15, 0, tzinfo=timezone.utc)

        assert duration_in_minutes(start, start + timedelta(minutes=89, seconds=30)) == 90
        assert duration_in_minutes(start, start + timedelta(minutes=89, seconds=29)) == 89
        assert duration_in_minutes(None, start) == 0


# =============================================================================
# PREVIEW
# =============================================================================


class TestPreview:
    async def test_collects_prep_data(self, service, session, meeting, org, admin):
        await IDSService(session).queue_issue(
            org.id, meeting.id, admin.id, QueueIssueInput(title="Pricing confusion")
        )
        await add_rock(session, org, admin, "SOC 2", RockStatus.OFF_TRACK)
        await add_rock(session, org, admin, "Launch v2", RockStatus.ON_TRACK)
        await add_metric(session, org, admin, "Revenue", goal=100, value=80)
        await add_metric(session, org, admin, "Pipeline", goal=100, value=150)
        session.add_all([
            Todo(organization_id=org.id, title="Overdue", due_date=date.today() - timedelta(days=3)),
            Todo(
                organization_id=org.id,
                title="Done already",
                due_date=date.today() - timedelta(days=3),
                is_complete=True,
            ),
        ])
        await session.commit()

        preview = await service.preview(org.id, meeting.id)

        assert preview.counts == {
            "queued_issues": 1,
            "off_track_rocks": 1,
            "below_goal_metrics": 1,
            "carryover_todos": 1,
        }
        assert preview.queued_issues[0].title == "Pricing confusion"
        assert preview.below_goal_metrics[0].metric.name == "Revenue"
        assert preview.carryover_todos[0].title == "Overdue"

    async def test_failed_read_leaves_others_intact(
        self, service, session, meeting, org, admin, monkeypatch
    ):
        await IDSService(session).queue_issue(
            org.id, meeting.id, admin.id, QueueIssueInput(title="Pricing confusion")
        )
        await add_rock(session, org, admin, "SOC 2", RockStatus.OFF_TRACK)
        await add_metric(session, org, admin, "Revenue", goal=100, value=80)
        session.add(
            Todo(organization_id=org.id, title="Overdue", due_date=date.today() - timedelta(days=3))
        )
        await session.commit()

        async def broken_metrics(*args, **kwargs):
            raise RuntimeError("scorecard unavailable")

        monkeypatch.setattr(meetings_module, "load_metrics_with_values", broken_metrics)

        preview = await service.preview(org.id, meeting.id)

        assert preview.below_goal_metrics == []
        assert preview.counts == {
            "queued_issues": 1,
            "off_track_rocks": 1,
            "below_goal_metrics": 0,
            "carryover_todos": 1,
        }
        assert preview.off_track_rocks[0].title == "SOC 2"

    async def test_unknown_meeting(self, service, org):
        with pytest.raises(NotFoundError, match="Meeting not found"):
            await service.preview(org.id, uuid4())


# =============================================================================
# AGENDA / HEADLINES / TO-DO REVIEW
# =============================================================================


class TestAgenda:
    async def test_next_and_previous(self, service, session, meeting, org):
        await service.start_meeting(org.id, meeting.id)

        agenda = await service.update_agenda(org.id, meeting.id, "next")
        assert agenda[0].completed_at is not None
        assert agenda[1].started_at is not None

        agenda = await service.update_agenda(org.id, meeting.id, "previous")
        assert agenda[1].started_at is None
        assert agenda[0].completed_at is None

    async def test_navigate_jumps_to_item(self, service, meeting, org):
        await service.start_meeting(org.id, meeting.id)
        ids_item = (await service.list_agenda(org.id, meeting.id))[5]

        agenda = await service.update_agenda(org.id, meeting.id, "navigate", ids_item.id)

        assert agenda[0].completed_at is not None
        assert agenda[5].started_at is not None
        assert agenda[5].completed_at is None

    async def test_update_notes(self, service, meeting, org):
        item = meeting.agenda_items[0]

        agenda = await service.update_agenda(
            org.id, meeting.id, "update_notes", item.id, notes="Everyone's good news"
        )

        assert agenda[0].notes == "Everyone's good news"

    async def test_next_without_active_item(self, service, meeting, org):
        with pytest.raises(ValidationError, match="No active agenda item"):
            await service.update_agenda(org.id, meeting.id, "next")

    async def test_unknown_action(self, service, meeting, org):
        with pytest.raises(ValidationError, match="Unknown action: skip"):
            await service.update_agenda(org.id, meeting.id, "skip")


class TestHeadlines:
    async def test_add_and_remove(self, service, meeting, org, admin):
        headline = await service.add_headline(
            org.id, meeting.id, admin.id, admin.full_name, "Jo is back", "employee"
        )
        loaded = await service.get_meeting(org.id, meeting.id)
        assert [h["text"] for h in loaded.headlines] == ["Jo is back"]
        assert headline["author_name"] == "Alice Admin"

        await service.remove_headline(org.id, meeting.id, headline["id"])
        loaded = await service.get_meeting(org.id, meeting.id)
        assert loaded.headlines == []

    async def test_text_is_required(self, service, meeting, org, admin):
        with pytest.raises(ValidationError, match="Text is required"):
            await service.add_headline(org.id, meeting.id, admin.id, admin.full_name, "")


class TestTodoReview:
    @pytest.fixture
    async def todo(self, session, org, member):
        todo = Todo(
            organization_id=org.id,
            title="Send deck",
            owner_id=member.id,
            due_date=date(2025, 3, 3),
        )
        session.add(todo)
        await session.commit()
        return todo

    async def test_done_completes_the_todo(self, service, meeting, org, todo):
        review, created = await service.review_todo(org.id, meeting.id, todo.id, "done")

        assert created is True
        assert review.status == TodoReviewStatus.DONE
        assert review.todo.is_complete is True
        assert review.todo.completed_at is not None

    async def test_pushed_moves_due_date_a_week(self, service, meeting, org, todo):
        review, _ = await service.review_todo(org.id, meeting.id, todo.id, "pushed")

        assert review.todo.due_date == date(2025, 3, 10)
        assert review.todo.is_complete is False

    async def test_second_review_updates_the_row(self, service, meeting, org, todo):
        await service.review_todo(org.id, meeting.id, todo.id, "not_done")
        review, created = await service.review_todo(org.id, meeting.id, todo.id, "done")

        assert created is False
        reviews = await service.list_todo_reviews(org.id, meeting.id)
        assert [r.status for r in reviews] == [TodoReviewStatus.DONE]

    async def test_invalid_status(self, service, meeting, org, todo):
        with pytest.raises(ValidationError, match="Invalid status"):
            await service.review_todo(org.id, meeting.id, todo.id, "skipped")

    async def test_unknown_todo(self, service, meeting, org, todo):
        with pytest.raises(NotFoundError, match="Todo not found"):
            await service.review_todo(org.id, meeting.id, uuid4(), "done")

