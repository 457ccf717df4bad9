"""
IDS Service: issue queueing and resolution for L10 meetings.

Issues are queued onto a scheduled meeting in an explicit order, then worked
through Identify-Discuss-Solve during the meeting. Each resolution is recorded
as an l10_issues_discussed row with one of four outcomes.
"""

import logging
from dataclasses import dataclass
from datetime import date
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..models import (
    Issue,
    IssueDiscussed,
    IssueOutcome,
    IssueStatus,
    Meeting,
    MeetingStatus,
    Todo,
)
from .common import (
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
    utcnow,
)

logger = logging.getLogger(__name__)

VALID_OUTCOMES = [o.value for o in IssueOutcome]
KILLED_RESOLUTION = "Killed - not a real issue"


@dataclass
class ResolveIssueInput:
    """Outcome of discussing one issue."""
    issue_id: UUID | None
    outcome: str | None
    decision_notes: str | None = None
    discussion_duration_seconds: int | None = None
    todo_title: str | None = None
    todo_owner_id: UUID | None = None
    todo_due_date: date | None = None


@dataclass
class QueueIssueInput:
    """Queue an existing issue by id, or create a new one from a title."""
    issue_id: UUID | None = None
    title: str | None = None
    description: str | None = None
    priority: int | None = None


class IDSService:
    """Issue queue and resolution operations for one organization."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _get_meeting(self, organization_id: UUID, meeting_id: UUID) -> Meeting:
        result = await self.session.execute(
            select(Meeting).where(
                Meeting.id == meeting_id,
                Meeting.organization_id == organization_id,
            )
        )
        meeting = result.scalar_one_or_none()
        if not meeting:
            raise NotFoundError("Meeting not found")
        return meeting

    async def _get_issue(self, organization_id: UUID, issue_id: UUID) -> Issue:
        result = await self.session.execute(
            select(Issue).where(
                Issue.id == issue_id,
                Issue.organization_id == organization_id,
            )
        )
        issue = result.scalar_one_or_none()
        if not issue:
            raise NotFoundError("Issue not found")
        return issue

    # =========================================================================
    # RESOLUTION
    # =========================================================================

    async def resolve_issue(
        self,
        organization_id: UUID,
        meeting_id: UUID,
        input: ResolveIssueInput,
    ) -> IssueDiscussed:
        """
        Record the outcome of one issue.

        - todo_created spawns a To-Do linked to the meeting and the issue
        - solved and killed mark the issue resolved
        - every outcome takes the issue off the meeting queue
        """
        if not input.issue_id or not input.outcome:
            raise ValidationError("issue_id and outcome are required")
        if input.outcome not in VALID_OUTCOMES:
            raise ValidationError(
                f"Invalid outcome. Must be one of: {', '.join(VALID_OUTCOMES)}"
            )

        await self._get_meeting(organization_id, meeting_id)
        issue = await self._get_issue(organization_id, input.issue_id)
        outcome = IssueOutcome(input.outcome)

        todo_id = None
        if outcome == IssueOutcome.TODO_CREATED:
            if not input.todo_title or not input.todo_owner_id or not input.todo_due_date:
                raise ValidationError(
                    "todo_title, todo_owner_id, and todo_due_date are required "
                    "for todo_created outcome"
                )
            todo = Todo(
                organization_id=organization_id,
                title=input.todo_title,
                owner_id=input.todo_owner_id,
                due_date=input.todo_due_date,
                meeting_id=meeting_id,
                issue_id=issue.id,
            )
            self.session.add(todo)
            await self.session.flush()
            todo_id = todo.id

        discussed = IssueDiscussed(
            meeting_id=meeting_id,
            issue_id=issue.id,
            outcome=outcome.value,
            decision_notes=input.decision_notes,
            discussion_duration_seconds=input.discussion_duration_seconds,
            todo_id=todo_id,
            discussed_at=utcnow(),
        )
        self.session.add(discussed)

        if outcome in (IssueOutcome.SOLVED, IssueOutcome.KILLED):
            issue.status = IssueStatus.RESOLVED
            issue.resolution = (
                input.decision_notes if outcome == IssueOutcome.SOLVED else KILLED_RESOLUTION
            )
            issue.resolved_at = utcnow()

        issue.queued_for_meeting_id = None
        issue.queue_order = None

        await self.session.flush()
        logger.info(f"Issue {issue.id} resolved as {outcome.value} in meeting {meeting_id}")
        return await self._get_discussed(discussed.id)

    async def _get_discussed(self, discussed_id: UUID) -> IssueDiscussed:
        result = await self.session.execute(
            select(IssueDiscussed)
            .options(
                selectinload(IssueDiscussed.issue),
                selectinload(IssueDiscussed.todo),
            )
            .where(IssueDiscussed.id == discussed_id)
        )
        return result.scalar_one()

    async def list_discussed(
        self, organization_id: UUID, meeting_id: UUID
    ) -> list[IssueDiscussed]:
        await self._get_meeting(organization_id, meeting_id)
        result = await self.session.execute(
            select(IssueDiscussed)
            .options(
                selectinload(IssueDiscussed.issue),
                selectinload(IssueDiscussed.todo),
            )
            .where(IssueDiscussed.meeting_id == meeting_id)
            .order_by(IssueDiscussed.discussed_at.asc())
        )
        return list(result.scalars())

    # =========================================================================
    # QUEUE
    # =========================================================================

    async def list_queue(self, organization_id: UUID, meeting_id: UUID) -> list[Issue]:
        await self._get_meeting(organization_id, meeting_id)
        return await self._queued(meeting_id)

    async def _queued(self, meeting_id: UUID) -> list[Issue]:
        result = await self.session.execute(
            select(Issue)
            .options(selectinload(Issue.raiser))
            .where(Issue.queued_for_meeting_id == meeting_id)
            .order_by(Issue.queue_order.asc().nulls_last(), Issue.created_at.asc())
            .execution_options(populate_existing=True)
        )
        return list(result.scalars())

    async def queue_issue(
        self,
        organization_id: UUID,
        meeting_id: UUID,
        profile_id: UUID,
        input: QueueIssueInput,
    ) -> Issue:
        """Append an issue to a scheduled meeting's queue."""
        meeting = await self._get_meeting(organization_id, meeting_id)
        if meeting.status != MeetingStatus.SCHEDULED:
            raise InvalidTransitionError("Can only queue issues for scheduled meetings")

        max_order = await self.session.scalar(
            select(func.max(Issue.queue_order)).where(
                Issue.queued_for_meeting_id == meeting_id
            )
        )
        next_order = (max_order or 0) + 1

        if input.issue_id:
            issue = await self._get_issue(organization_id, input.issue_id)
            if issue.queued_for_meeting_id:
                raise ValidationError("Issue is already queued for a meeting")
            issue.queued_for_meeting_id = meeting_id
            issue.queue_order = next_order
        elif input.title:
            issue = Issue(
                organization_id=organization_id,
                title=input.title,
                description=input.description,
                priority=input.priority,
                raised_by=profile_id,
                status=IssueStatus.OPEN,
                queued_for_meeting_id=meeting_id,
                queue_order=next_order,
            )
            self.session.add(issue)
        else:
            raise ValidationError("Either issue_id or title is required")

        await self.session.flush()
        result = await self.session.execute(
            select(Issue)
            .options(selectinload(Issue.raiser))
            .where(Issue.id == issue.id)
        )
        return result.scalar_one()

    async def reorder_queue(
        self,
        organization_id: UUID,
        meeting_id: UUID,
        issue_ids: list[UUID],
    ) -> list[Issue]:
        """Rewrite queue_order as 1..n following the given id order."""
        await self._get_meeting(organization_id, meeting_id)
        if not issue_ids:
            raise ValidationError("issue_ids array is required")

        queued = {issue.id: issue for issue in await self._queued(meeting_id)}
        for issue_id in issue_ids:
            if issue_id not in queued:
                raise ValidationError(f"Issue {issue_id} is not queued for this meeting")

        for position, issue_id in enumerate(issue_ids, start=1):
            queued[issue_id].queue_order = position

        await self.session.flush()
        return await self._queued(meeting_id)

    async def remove_from_queue(
        self,
        organization_id: UUID,
        meeting_id: UUID,
        issue_id: UUID,
    ) -> None:
        await self._get_meeting(organization_id, meeting_id)
        issue = await self._get_issue(organization_id, issue_id)
        if issue.queued_for_meeting_id != meeting_id:
            raise ValidationError("Issue is not queued for this meeting")
        issue.queued_for_meeting_id = None
        issue.queue_order = None
        await self.session.flush()
