"""
Tests for the IDS queue, issue resolution, and the in-meeting stepper.
"""

import pytest
from datetime import date
from uuid import uuid4

from sqlalchemy import select

from cadence_os.models import Issue, IssueOutcome, IssueStatus, MeetingStatus, Todo
from cadence_os.services.common import InvalidTransitionError, NotFoundError, ValidationError
from cadence_os.services.ids import (
    KILLED_RESOLUTION,
    IDSService,
    QueueIssueInput,
    ResolveIssueInput,
)
from cadence_os.services.ids_workflow import IDSStep, IDSWorkflow
from cadence_os.services.meetings import CreateMeetingInput, MeetingService


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def ids(session) -> IDSService:
    return IDSService(session)


@pytest.fixture
async def meeting(session, session_factory, org, admin, next_week):
    meeting = await MeetingService(session, session_factory).create_meeting(
        org.id, admin.id, CreateMeetingInput("Leadership L10", next_week)
    )
    await session.commit()
    return meeting


@pytest.fixture
async def issue(session, org, member) -> Issue:
    issue = Issue(organization_id=org.id, title="Churn spike", raised_by=member.id)
    session.add(issue)
    await session.commit()
    return issue


# =============================================================================
# QUEUE
# =============================================================================


class TestQueue:
    async def test_new_issues_append_in_order(self, ids, meeting, org, admin):
        first = await ids.queue_issue(org.id, meeting.id, admin.id, QueueIssueInput(title="Hiring"))
        second = await ids.queue_issue(org.id, meeting.id, admin.id, QueueIssueInput(title="Pricing"))

        assert (first.queue_order, second.queue_order) == (1, 2)
        assert first.status == IssueStatus.OPEN
        assert first.raised_by == admin.id
        queue = await ids.list_queue(org.id, meeting.id)
        assert [i.title for i in queue] == ["Hiring", "Pricing"]

    async def test_existing_issue_by_id(self, ids, meeting, org, admin, issue):
        queued = await ids.queue_issue(org.id, meeting.id, admin.id, QueueIssueInput(issue_id=issue.id))

        assert queued.id == issue.id
        assert queued.queued_for_meeting_id == meeting.id
        assert queued.queue_order == 1

    async def test_issue_cannot_be_queued_twice(self, ids, meeting, org, admin, issue):
        await ids.queue_issue(org.id, meeting.id, admin.id, QueueIssueInput(issue_id=issue.id))

        with pytest.raises(ValidationError, match="already queued"):
            await ids.queue_issue(org.id, meeting.id, admin.id, QueueIssueInput(issue_id=issue.id))

    async def test_needs_issue_id_or_title(self, ids, meeting, org, admin):
        with pytest.raises(ValidationError, match="Either issue_id or title is required"):
            await ids.queue_issue(org.id, meeting.id, admin.id, QueueIssueInput())

    async def test_only_scheduled_meetings(self, ids, session, meeting, org, admin):
        meeting.status = MeetingStatus.COMPLETED
        await session.commit()

        with pytest.raises(InvalidTransitionError, match="scheduled meetings"):
            await ids.queue_issue(org.id, meeting.id, admin.id, QueueIssueInput(title="Late"))

    async def test_reorder_rewrites_positions(self, ids, meeting, org, admin):
        a = await ids.queue_issue(org.id, meeting.id, admin.id, QueueIssueInput(title="A"))
        b = await ids.queue_issue(org.id, meeting.id, admin.id, QueueIssueInput(title="B"))
        c = await ids.queue_issue(org.id, meeting.id, admin.id, QueueIssueInput(title="C"))

        queue = await ids.reorder_queue(org.id, meeting.id, [c.id, a.id, b.id])

        assert [(i.title, i.queue_order) for i in queue] == [("C", 1), ("A", 2), ("B", 3)]

    async def test_reorder_rejects_foreign_issue(self, ids, meeting, org, admin, issue):
        await ids.queue_issue(org.id, meeting.id, admin.id, QueueIssueInput(title="A"))

        with pytest.raises(ValidationError, match=f"Issue {issue.id} is not queued"):
            await ids.reorder_queue(org.id, meeting.id, [issue.id])

    async def test_remove_from_queue(self, ids, meeting, org, admin, issue):
        await ids.queue_issue(org.id, meeting.id, admin.id, QueueIssueInput(issue_id=issue.id))

        await ids.remove_from_queue(org.id, meeting.id, issue.id)

        assert await ids.list_queue(org.id, meeting.id) == []
        assert issue.queue_order is None

    async def test_unknown_meeting(self, ids, org, admin):
        with pytest.raises(NotFoundError, match="Meeting not found"):
            await ids.list_queue(org.id, uuid4())


# =============================================================================
# RESOLUTION
# =============================================================================


class TestResolveIssue:
    @pytest.fixture
    async def queued(self, ids, session, meeting, org, admin, issue) -> Issue:
        await ids.queue_issue(org.id, meeting.id, admin.id, QueueIssueInput(issue_id=issue.id))
        await session.commit()
        return issue

    async def test_solved_resolves_and_dequeues(self, ids, meeting, org, queued):
        discussed = await ids.resolve_issue(
            org.id,
            meeting.id,
            ResolveIssueInput(
                issue_id=queued.id,
                outcome="solved",
                decision_notes="Add a retention offer",
                discussion_duration_seconds=420,
            ),
        )

        assert discussed.outcome == "solved"
        assert discussed.discussion_duration_seconds == 420
        assert discussed.todo_id is None
        assert discussed.issue.status == IssueStatus.RESOLVED
        assert discussed.issue.resolution == "Add a retention offer"
        assert discussed.issue.resolved_at is not None
        assert discussed.issue.queued_for_meeting_id is None
        assert discussed.issue.queue_order is None

    async def test_killed_uses_fixed_resolution(self, ids, meeting, org, queued):
        discussed = await ids.resolve_issue(
            org.id, meeting.id, ResolveIssueInput(issue_id=queued.id, outcome="killed")
        )

        assert discussed.issue.status == IssueStatus.RESOLVED
        assert discussed.issue.resolution == KILLED_RESOLUTION

    async def test_pushed_leaves_issue_open(self, ids, meeting, org, queued):
        discussed = await ids.resolve_issue(
            org.id, meeting.id, ResolveIssueInput(issue_id=queued.id, outcome="pushed")
        )

        assert discussed.issue.status == IssueStatus.OPEN
        assert discussed.issue.resolved_at is None
        assert discussed.issue.queued_for_meeting_id is None

    async def test_todo_created_spawns_linked_todo(self, ids, session, meeting, org, member, queued):
        discussed = await ids.resolve_issue(
            org.id,
            meeting.id,
            ResolveIssueInput(
                issue_id=queued.id,
                outcome="todo_created",
                todo_title="Call top 10 churned accounts",
                todo_owner_id=member.id,
                todo_due_date=date(2025, 3, 10),
            ),
        )

        todo = (await session.execute(select(Todo).where(Todo.id == discussed.todo_id))).scalar_one()
        assert todo.title == "Call top 10 churned accounts"
        assert todo.owner_id == member.id
        assert todo.meeting_id == meeting.id
        assert todo.issue_id == queued.id
        assert discussed.issue.status == IssueStatus.OPEN

    async def test_todo_created_requires_all_todo_fields(self, ids, meeting, org, queued):
        with pytest.raises(ValidationError, match="todo_title, todo_owner_id, and todo_due_date"):
            await ids.resolve_issue(
                org.id,
                meeting.id,
                ResolveIssueInput(issue_id=queued.id, outcome="todo_created", todo_title="Call"),
            )

    async def test_invalid_outcome(self, ids, meeting, org, queued):
        with pytest.raises(ValidationError, match="Invalid outcome"):
            await ids.resolve_issue(
                org.id, meeting.id, ResolveIssueInput(issue_id=queued.id, outcome="escalated")
            )

    async def test_discussed_list_in_order(self, ids, meeting, org, admin, queued):
        other = await ids.queue_issue(org.id, meeting.id, admin.id, QueueIssueInput(title="Office"))
        await ids.resolve_issue(org.id, meeting.id, ResolveIssueInput(queued.id, "pushed"))
        await ids.resolve_issue(org.id, meeting.id, ResolveIssueInput(other.id, "solved"))

        discussed = await ids.list_discussed(org.id, meeting.id)

        assert [d.issue.title for d in discussed] == ["Churn spike", "Office"]


# =============================================================================
# STEPPER
# =============================================================================


class TestIDSWorkflow:
    def test_reorder_only_while_prioritizing(self):
        flow = IDSWorkflow(["a", "b", "c"])

        assert flow.move(0, 1) is True
        assert flow.issues == ["b", "a", "c"]
        assert flow.move(0, -1) is False

        flow.start()
        assert flow.move(1, 1) is False
        assert flow.issues == ["b", "a", "c"]

    def test_steps_through_identify_discuss_solve(self):
        flow = IDSWorkflow(["a"])
        assert flow.advance() == IDSStep.PRIORITIZE

        flow.start()
        assert flow.step == IDSStep.IDENTIFY
        assert flow.advance() == IDSStep.DISCUSS
        assert flow.advance() == IDSStep.SOLVE
        assert flow.advance() == IDSStep.SOLVE
        assert flow.back() == IDSStep.DISCUSS

    def test_resolve_moves_to_next_unresolved(self):
        flow = IDSWorkflow(["a", "b", "c"])
        flow.start()

        assert flow.resolve(IssueOutcome.SOLVED) == "b"
        assert flow.step == IDSStep.IDENTIFY
        assert flow.resolve("pushed") == "c"
        assert flow.remaining == ["c"]

    def test_resolve_does_not_wrap(self):
        flow = IDSWorkflow(["a", "b"])
        flow.start()
        flow.current_index = 1

        assert flow.resolve("killed") == "b"
        assert flow.current_index == 1
        assert flow.remaining == ["a"]
        assert flow.is_complete is False

        flow.current_index = 0
        flow.resolve("solved")
        assert flow.is_complete is True

    def test_resolve_ignored_while_prioritizing(self):
        flow = IDSWorkflow(["a"])

        assert flow.resolve("solved") is None
        assert flow.outcomes == {}

    def test_empty_list(self):
        flow = IDSWorkflow([])

        assert flow.current is None
        assert flow.is_complete is False
