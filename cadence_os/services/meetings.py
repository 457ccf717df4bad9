"""
Meeting Service: L10 meeting lifecycle.

Status flow:
    scheduled -> in_progress -> completed   (or cancelled)

- start() snapshots the scorecard and active rocks exactly once
- end() auto-completes open agenda items and writes the markdown summary
- preview() aggregates pre-meeting prep data; each read fails independently
"""

import logging
import math
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from ..models import (
    AgendaItem,
    AgendaSection,
    Headline,
    Issue,
    IssueDiscussed,
    Meeting,
    MeetingAttendee,
    MeetingStatus,
    MeetingType,
    Rock,
    RockStatus,
    Todo,
    TodoReviewStatus,
    TodoReviewed,
)
from .common import (
    InvalidTransitionError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
    ensure_utc,
    gather_reads,
    gather_reads_or_empty,
    utcnow,
)
from .meeting_summary import (
    AttendeeLine,
    HeadlineLine,
    IssueLine,
    NewTodoLine,
    SummaryInput,
    TodoReviewLine,
    build_summary,
)
from .scorecard import MetricWithValue, latest_values, load_metrics_with_values

logger = logging.getLogger(__name__)

# (section, minutes) in running order
DEFAULT_AGENDA: tuple[tuple[AgendaSection, int], ...] = (
    (AgendaSection.SEGUE, 5),
    (AgendaSection.SCORECARD, 5),
    (AgendaSection.ROCKS, 5),
    (AgendaSection.HEADLINES, 5),
    (AgendaSection.TODOS, 5),
    (AgendaSection.IDS, 60),
    (AgendaSection.CONCLUDE, 5),
)

SNAPSHOT_ROCK_STATUSES = (RockStatus.ON_TRACK, RockStatus.AT_RISK, RockStatus.OFF_TRACK)
PREVIEW_ROCK_STATUSES = (RockStatus.OFF_TRACK, RockStatus.AT_RISK)

UPDATABLE_FIELDS = ("title", "meeting_type", "scheduled_at", "status", "notes")


# =============================================================================
# DATA TRANSFER OBJECTS
# =============================================================================


@dataclass
class CreateMeetingInput:
    """Input for scheduling a meeting."""
    title: str | None
    scheduled_at: datetime | None
    meeting_type: MeetingType = MeetingType.LEADERSHIP
    attendee_ids: list[UUID] = field(default_factory=list)


@dataclass
class EndMeetingInput:
    """Optional feedback captured when a meeting ends."""
    rating: float | None = None
    ratings: dict[str, float] | None = None
    cascading_messages: str | None = None


@dataclass
class MeetingPreview:
    """Pre-meeting prep data."""
    meeting: Meeting
    queued_issues: list[Issue]
    off_track_rocks: list[Rock]
    below_goal_metrics: list[MetricWithValue]
    carryover_todos: list[Todo]

    @property
    def counts(self) -> dict[str, int]:
        return {
            "queued_issues": len(self.queued_issues),
            "off_track_rocks": len(self.off_track_rocks),
            "below_goal_metrics": len(self.below_goal_metrics),
            "carryover_todos": len(self.carryover_todos),
        }


def duration_in_minutes(started_at: datetime | None, ended_at: datetime) -> int:
    """Whole minutes between start and end, halves rounded up."""
    if started_at is None:
        return 0
    elapsed = (ended_at - ensure_utc(started_at)).total_seconds() / 60
    return max(0, math.floor(elapsed + 0.5))


def rock_snapshot(rock: Rock) -> dict[str, Any]:
    owner = rock.owner
    return {
        "id": str(rock.id),
        "title": rock.title,
        "status": rock.status.value,
        "rock_level": rock.rock_level.value,
        "due_date": rock.due_date.isoformat() if rock.due_date else None,
        "owner": {"id": str(owner.id), "full_name": owner.full_name} if owner else None,
    }


# =============================================================================
# SERVICE
# =============================================================================


class MeetingService:
    """
    L10 meeting operations scoped to one organization.

    `session` carries the request transaction; `session_factory` opens the
    extra sessions used for concurrent reads.
    """

    def __init__(
        self,
        session: AsyncSession,
        session_factory: async_sessionmaker[AsyncSession],
    ):
        self.session = session
        self.session_factory = session_factory

    # -------------------------------------------------------------------------
    # Loading
    # -------------------------------------------------------------------------

    async def _get(self, organization_id: UUID, meeting_id: UUID, detail: bool = False) -> Meeting:
        options = [selectinload(Meeting.creator)]
        if detail:
            options += [
                selectinload(Meeting.agenda_items),
                selectinload(Meeting.attendees).selectinload(MeetingAttendee.profile),
                selectinload(Meeting.issues_discussed).selectinload(IssueDiscussed.issue),
                selectinload(Meeting.issues_discussed).selectinload(IssueDiscussed.todo),
                selectinload(Meeting.todos_reviewed).selectinload(TodoReviewed.todo),
            ]
        result = await self.session.execute(
            select(Meeting)
            .options(*options)
            .where(Meeting.id == meeting_id, Meeting.organization_id == organization_id)
            .execution_options(populate_existing=True)
        )
        meeting = result.scalar_one_or_none()
        if not meeting:
            raise NotFoundError("Meeting not found")
        return meeting

    async def get_meeting(self, organization_id: UUID, meeting_id: UUID) -> Meeting:
        """Meeting with agenda, attendees, issues discussed and to-dos reviewed."""
        return await self._get(organization_id, meeting_id, detail=True)

    async def list_meetings(
        self,
        organization_id: UUID,
        status: str | None = None,
        limit: int = 20,
        upcoming: bool = False,
    ) -> list[Meeting]:
        query = (
            select(Meeting)
            .options(
                selectinload(Meeting.creator),
                selectinload(Meeting.attendees).selectinload(MeetingAttendee.profile),
            )
            .where(Meeting.organization_id == organization_id)
        )
        if upcoming:
            query = query.where(
                Meeting.status.in_([MeetingStatus.SCHEDULED, MeetingStatus.IN_PROGRESS])
            ).order_by(Meeting.scheduled_at.asc())
        else:
            query = query.order_by(Meeting.scheduled_at.desc())
        if status:
            try:
                query = query.where(Meeting.status == MeetingStatus(status))
            except ValueError:
                raise ValidationError(f"Invalid status: {status}")

        result = await self.session.execute(query.limit(limit))
        return list(result.scalars())

    # -------------------------------------------------------------------------
    # CRUD
    # -------------------------------------------------------------------------

    async def create_meeting(
        self,
        organization_id: UUID,
        created_by: UUID,
        input: CreateMeetingInput,
    ) -> Meeting:
        """Schedule a meeting and seed the standard seven-step agenda."""
        if not input.title or not input.scheduled_at:
            raise ValidationError("Title and scheduled_at are required")

        meeting = Meeting(
            organization_id=organization_id,
            title=input.title,
            meeting_type=input.meeting_type or MeetingType.LEADERSHIP,
            scheduled_at=input.scheduled_at,
            status=MeetingStatus.SCHEDULED,
            headlines=[],
            created_by=created_by,
        )
        self.session.add(meeting)
        await self.session.flush()

        for profile_id in dict.fromkeys(input.attendee_ids):
            self.session.add(MeetingAttendee(meeting_id=meeting.id, profile_id=profile_id))

        for index, (section, minutes) in enumerate(DEFAULT_AGENDA, start=1):
            self.session.add(
                AgendaItem(
                    meeting_id=meeting.id,
                    section=section,
                    duration_minutes=minutes,
                    sort_order=index,
                )
            )
        await self.session.flush()

        logger.info(f"Scheduled L10 meeting {meeting.id} for org {organization_id}")
        return await self.get_meeting(organization_id, meeting.id)

    async def update_meeting(
        self,
        organization_id: UUID,
        meeting_id: UUID,
        profile_id: UUID,
        is_admin: bool,
        updates: dict[str, Any],
    ) -> Meeting:
        """Edit a meeting. Allowed for admins and the meeting's creator."""
        meeting = await self._get(organization_id, meeting_id)
        if not is_admin and meeting.created_by != profile_id:
            raise PermissionDeniedError("Forbidden")

        changes = {k: v for k, v in updates.items() if k in UPDATABLE_FIELDS and v is not None}
        attendee_ids = updates.get("attendee_ids")
        if not changes and attendee_ids is None:
            raise ValidationError("No valid fields to update")

        if "meeting_type" in changes:
            changes["meeting_type"] = MeetingType(changes["meeting_type"])
        if "status" in changes:
            changes["status"] = MeetingStatus(changes["status"])

        for key, value in changes.items():
            setattr(meeting, key, value)

        if attendee_ids is not None:
            await self._replace_attendees(meeting.id, attendee_ids)

        await self.session.flush()
        return await self.get_meeting(organization_id, meeting_id)

    async def _replace_attendees(self, meeting_id: UUID, attendee_ids: list[UUID]) -> None:
        result = await self.session.execute(
            select(MeetingAttendee).where(MeetingAttendee.meeting_id == meeting_id)
        )
        existing = {a.profile_id: a for a in result.scalars()}
        wanted = list(dict.fromkeys(attendee_ids))
        for profile_id, attendee in existing.items():
            if profile_id not in wanted:
                await self.session.delete(attendee)
        for profile_id in wanted:
            if profile_id not in existing:
                self.session.add(MeetingAttendee(meeting_id=meeting_id, profile_id=profile_id))

    async def delete_meeting(self, organization_id: UUID, meeting_id: UUID) -> None:
        meeting = await self._get(organization_id, meeting_id, detail=True)
        await self.session.delete(meeting)
        await self.session.flush()
        logger.info(f"Deleted L10 meeting {meeting_id}")

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def start_meeting(self, organization_id: UUID, meeting_id: UUID) -> Meeting:
        """scheduled -> in_progress, capturing scorecard and rock snapshots."""
        meeting = await self._get(organization_id, meeting_id)
        if meeting.status != MeetingStatus.SCHEDULED:
            raise InvalidTransitionError(
                f"Cannot start meeting with status: {meeting.status.value}"
            )

        async def read_metrics(session: AsyncSession) -> list[MetricWithValue]:
            return await load_metrics_with_values(session, organization_id)

        async def read_rocks(session: AsyncSession) -> list[Rock]:
            result = await session.execute(
                select(Rock)
                .options(selectinload(Rock.owner))
                .where(
                    Rock.organization_id == organization_id,
                    Rock.status.in_(SNAPSHOT_ROCK_STATUSES),
                )
                .order_by(Rock.created_at.asc())
            )
            return list(result.scalars())

        metrics, rocks = await gather_reads(self.session_factory, read_metrics, read_rocks)

        now = utcnow()
        meeting.status = MeetingStatus.IN_PROGRESS
        meeting.started_at = now
        meeting.scorecard_snapshot = [m.snapshot() for m in metrics]
        meeting.rocks_snapshot = [rock_snapshot(r) for r in rocks]

        result = await self.session.execute(
            select(AgendaItem)
            .where(AgendaItem.meeting_id == meeting.id)
            .order_by(AgendaItem.sort_order.asc())
            .limit(1)
        )
        first_item = result.scalar_one_or_none()
        if first_item:
            first_item.started_at = now

        await self.session.flush()
        logger.info(
            f"Started L10 meeting {meeting_id} "
            f"({len(metrics)} metrics, {len(rocks)} rocks snapshotted)"
        )
        return await self.get_meeting(organization_id, meeting_id)

    async def end_meeting(
        self,
        organization_id: UUID,
        meeting_id: UUID,
        input: EndMeetingInput | None = None,
    ) -> Meeting:
        """in_progress -> completed, writing duration, ratings and summary."""
        input = input or EndMeetingInput()
        meeting = await self._get(organization_id, meeting_id)
        if meeting.status != MeetingStatus.IN_PROGRESS:
            raise InvalidTransitionError(
                f"Cannot end meeting with status: {meeting.status.value}"
            )

        ended_at = utcnow()
        duration = duration_in_minutes(meeting.started_at, ended_at)

        summary_input = await self._gather_summary_input(meeting, ended_at, duration, input)
        summary = build_summary(summary_input)

        result = await self.session.execute(
            select(AgendaItem).where(
                AgendaItem.meeting_id == meeting.id,
                AgendaItem.completed_at.is_(None),
            )
        )
        for item in result.scalars():
            item.completed_at = ended_at

        meeting.status = MeetingStatus.COMPLETED
        meeting.ended_at = ended_at
        meeting.duration_minutes = duration
        meeting.rating = input.rating
        meeting.ratings = input.ratings
        meeting.cascading_messages = input.cascading_messages
        meeting.notes = summary

        await self.session.flush()
        logger.info(f"Ended L10 meeting {meeting_id} after {duration} minutes")
        return await self.get_meeting(organization_id, meeting_id)

    async def _gather_summary_input(
        self,
        meeting: Meeting,
        ended_at: datetime,
        duration: int,
        input: EndMeetingInput,
    ) -> SummaryInput:
        meeting_id = meeting.id
        organization_id = meeting.organization_id
        scorecard_snapshot = meeting.scorecard_snapshot or []
        rocks_snapshot = meeting.rocks_snapshot or []
        day_start = datetime.combine(
            ensure_utc(meeting.started_at or ended_at).date(), time.min, tzinfo=timezone.utc
        )

        async def read_issues(session: AsyncSession) -> list[IssueLine]:
            result = await session.execute(
                select(IssueDiscussed)
                .options(
                    selectinload(IssueDiscussed.issue),
                    selectinload(IssueDiscussed.todo).selectinload(Todo.owner),
                )
                .where(IssueDiscussed.meeting_id == meeting_id)
                .order_by(IssueDiscussed.discussed_at.asc())
            )
            lines = []
            for row in result.scalars():
                todo = row.todo
                lines.append(
                    IssueLine(
                        title=row.issue.title if row.issue else "Unknown Issue",
                        outcome=row.outcome,
                        decision_notes=row.decision_notes,
                        todo_title=todo.title if todo else None,
                        todo_owner=todo.owner.full_name if todo and todo.owner else None,
                        todo_due_date=todo.due_date if todo else None,
                    )
                )
            return lines

        async def read_todo_reviews(session: AsyncSession) -> list[TodoReviewLine]:
            result = await session.execute(
                select(TodoReviewed)
                .options(selectinload(TodoReviewed.todo).selectinload(Todo.owner))
                .where(TodoReviewed.meeting_id == meeting_id)
            )
            return [
                TodoReviewLine(
                    title=row.todo.title if row.todo else "Unknown",
                    status=row.status.value,
                    owner=row.todo.owner.full_name if row.todo and row.todo.owner else None,
                )
                for row in result.scalars()
            ]

        async def read_headlines(session: AsyncSession) -> list[HeadlineLine]:
            result = await session.execute(
                select(Headline)
                .options(selectinload(Headline.creator))
                .where(
                    Headline.organization_id == organization_id,
                    Headline.created_at >= day_start,
                )
                .order_by(Headline.created_at.desc())
            )
            return [
                HeadlineLine(
                    title=h.title,
                    headline_type=h.headline_type.value,
                    author=h.creator.full_name if h.creator else None,
                    created_at=ensure_utc(h.created_at),
                )
                for h in result.scalars()
            ]

        async def read_attendees(session: AsyncSession) -> list[AttendeeLine]:
            result = await session.execute(
                select(MeetingAttendee)
                .options(selectinload(MeetingAttendee.profile))
                .where(MeetingAttendee.meeting_id == meeting_id)
            )
            return [
                AttendeeLine(
                    profile_id=str(a.profile_id),
                    full_name=a.profile.full_name if a.profile else "Unknown",
                )
                for a in result.scalars()
            ]

        async def read_new_todos(session: AsyncSession) -> list[NewTodoLine]:
            result = await session.execute(
                select(Todo)
                .options(selectinload(Todo.owner))
                .where(Todo.meeting_id == meeting_id)
                .order_by(Todo.created_at.asc())
            )
            return [
                NewTodoLine(
                    title=t.title,
                    owner=t.owner.full_name if t.owner else None,
                    due_date=t.due_date,
                )
                for t in result.scalars()
            ]

        async def read_metric_values(session: AsyncSession) -> dict[str, float | None]:
            ids = [UUID(m["id"]) for m in scorecard_snapshot if m.get("id")]
            latest = await latest_values(session, ids)
            return {str(k): v[0].value for k, v in latest.items() if v}

        async def read_rock_statuses(session: AsyncSession) -> dict[str, str]:
            ids = [UUID(r["id"]) for r in rocks_snapshot if r.get("id")]
            if not ids:
                return {}
            result = await session.execute(
                select(Rock.id, Rock.status).where(Rock.id.in_(ids))
            )
            return {str(rock_id): status.value for rock_id, status in result.all()}

        (
            issues,
            todo_reviews,
            headlines,
            attendees,
            new_todos,
            metric_values,
            rock_statuses,
        ) = await gather_reads(
            self.session_factory,
            read_issues,
            read_todo_reviews,
            read_headlines,
            read_attendees,
            read_new_todos,
            read_metric_values,
            read_rock_statuses,
        )

        for item in meeting.headlines or []:
            created = item.get("created_at")
            headlines.append(
                HeadlineLine(
                    title=item.get("text", ""),
                    headline_type=item.get("headline_type", "general"),
                    author=item.get("author_name"),
                    created_at=ensure_utc(datetime.fromisoformat(created)) if created else ended_at,
                )
            )

        return SummaryInput(
            meeting_date=ensure_utc(meeting.scheduled_at),
            duration_minutes=duration,
            attendees=attendees,
            ratings=input.ratings,
            scorecard_snapshot=scorecard_snapshot,
            current_metric_values=metric_values,
            rocks_snapshot=rocks_snapshot,
            current_rock_statuses=rock_statuses,
            headlines=headlines,
            todos_reviewed=todo_reviews,
            issues_discussed=issues,
            new_todos=new_todos,
            cascading_messages=input.cascading_messages,
        )

    # -------------------------------------------------------------------------
    # Preview
    # -------------------------------------------------------------------------

    async def preview(self, organization_id: UUID, meeting_id: UUID) -> MeetingPreview:
        """Everything the facilitator needs before the meeting starts."""
        meeting = await self.get_meeting(organization_id, meeting_id)
        scheduled_date: date = meeting.scheduled_at.date()

        async def read_queued(session: AsyncSession) -> list[Issue]:
            result = await session.execute(
                select(Issue)
                .options(selectinload(Issue.raiser))
                .where(Issue.queued_for_meeting_id == meeting_id)
                .order_by(Issue.queue_order.asc().nulls_last(), Issue.created_at.asc())
            )
            return list(result.scalars())

        async def read_rocks(session: AsyncSession) -> list[Rock]:
            result = await session.execute(
                select(Rock)
                .options(selectinload(Rock.owner))
                .where(
                    Rock.organization_id == organization_id,
                    Rock.status.in_(PREVIEW_ROCK_STATUSES),
                )
                .order_by(Rock.status.asc(), Rock.due_date.asc())
            )
            return list(result.scalars())

        async def read_below_goal(session: AsyncSession) -> list[MetricWithValue]:
            metrics = await load_metrics_with_values(
                session, organization_id, with_goal_only=True
            )
            return [m for m in metrics if m.below_goal]

        async def read_carryover(session: AsyncSession) -> list[Todo]:
            result = await session.execute(
                select(Todo)
                .options(selectinload(Todo.owner))
                .where(
                    Todo.organization_id == organization_id,
                    Todo.is_complete.is_(False),
                    Todo.due_date < scheduled_date,
                )
                .order_by(Todo.due_date.asc())
            )
            return list(result.scalars())

        reads = await gather_reads_or_empty(
            self.session_factory,
            queued_issues=read_queued,
            off_track_rocks=read_rocks,
            below_goal_metrics=read_below_goal,
            carryover_todos=read_carryover,
        )
        return MeetingPreview(meeting=meeting, **reads)

    # -------------------------------------------------------------------------
    # Agenda
    # -------------------------------------------------------------------------

    async def list_agenda(self, organization_id: UUID, meeting_id: UUID) -> list[AgendaItem]:
        await self._get(organization_id, meeting_id)
        return await self._agenda(meeting_id)

    async def _agenda(self, meeting_id: UUID) -> list[AgendaItem]:
        result = await self.session.execute(
            select(AgendaItem)
            .where(AgendaItem.meeting_id == meeting_id)
            .order_by(AgendaItem.sort_order.asc())
            .execution_options(populate_existing=True)
        )
        return list(result.scalars())

    async def update_agenda(
        self,
        organization_id: UUID,
        meeting_id: UUID,
        action: str | None,
        agenda_item_id: UUID | None = None,
        notes: str | None = None,
    ) -> list[AgendaItem]:
        """
        Move through the agenda.

        - navigate: complete the active item, start `agenda_item_id`
        - next: complete the active item, start the following one
        - previous: reset the active item, reopen the one before it
        - update_notes: set notes on `agenda_item_id`
        """
        await self._get(organization_id, meeting_id)
        if not action:
            raise ValidationError("Action is required")

        items = await self._agenda(meeting_id)
        by_id = {item.id: item for item in items}
        active = next(
            (i for i in items if i.started_at is not None and i.completed_at is None),
            None,
        )
        now = utcnow()

        if action in ("navigate", "update_notes"):
            if not agenda_item_id:
                raise ValidationError("agenda_item_id is required")
            target = by_id.get(agenda_item_id)
            if target is None:
                raise NotFoundError("Agenda item not found")
            if action == "navigate":
                if active is not None and active is not target:
                    active.completed_at = now
                target.started_at = now
                target.completed_at = None
            else:
                target.notes = notes
        elif action in ("next", "previous"):
            if active is None:
                raise ValidationError("No active agenda item")
            index = items.index(active)
            if action == "next":
                active.completed_at = now
                if index + 1 < len(items):
                    items[index + 1].started_at = now
            else:
                active.started_at = None
                active.completed_at = None
                if index > 0:
                    items[index - 1].completed_at = None
        else:
            raise ValidationError(f"Unknown action: {action}")

        await self.session.flush()
        return await self._agenda(meeting_id)

    # -------------------------------------------------------------------------
    # Headlines
    # -------------------------------------------------------------------------

    async def add_headline(
        self,
        organization_id: UUID,
        meeting_id: UUID,
        author_id: UUID,
        author_name: str,
        text: str | None,
        headline_type: str = "general",
    ) -> dict[str, Any]:
        """Append a headline captured during the meeting."""
        if not text:
            raise ValidationError("Text is required")
        meeting = await self._get(organization_id, meeting_id)

        headline = {
            "id": str(uuid4()),
            "text": text,
            "headline_type": headline_type,
            "author_id": str(author_id),
            "author_name": author_name,
            "created_at": utcnow().isoformat(),
        }
        # Reassign so the JSON column is marked dirty
        meeting.headlines = [*(meeting.headlines or []), headline]
        await self.session.flush()
        return headline

    async def remove_headline(
        self, organization_id: UUID, meeting_id: UUID, headline_id: str | None
    ) -> None:
        if not headline_id:
            raise ValidationError("headline_id is required")
        meeting = await self._get(organization_id, meeting_id)
        meeting.headlines = [h for h in meeting.headlines or [] if h.get("id") != headline_id]
        await self.session.flush()

    # -------------------------------------------------------------------------
    # To-do review
    # -------------------------------------------------------------------------

    async def review_todo(
        self,
        organization_id: UUID,
        meeting_id: UUID,
        todo_id: UUID | None,
        status: str | None,
    ) -> tuple[TodoReviewed, bool]:
        """
        Mark a to-do done, not done or pushed for this meeting.

        Returns (review, created). Done completes the to-do; pushed moves its
        due date out a week. Reviewing the same to-do again updates the row.
        """
        if not todo_id or not status:
            raise ValidationError("todo_id and status are required")
        valid = [s.value for s in TodoReviewStatus]
        if status not in valid:
            raise ValidationError(f"Invalid status. Must be one of: {', '.join(valid)}")
        review_status = TodoReviewStatus(status)

        await self._get(organization_id, meeting_id)
        result = await self.session.execute(
            select(Todo).where(Todo.id == todo_id, Todo.organization_id == organization_id)
        )
        todo = result.scalar_one_or_none()
        if not todo:
            raise NotFoundError("Todo not found")

        result = await self.session.execute(
            select(TodoReviewed).where(
                TodoReviewed.meeting_id == meeting_id,
                TodoReviewed.todo_id == todo_id,
            )
        )
        review = result.scalar_one_or_none()
        created = review is None
        now = utcnow()
        if review is None:
            review = TodoReviewed(meeting_id=meeting_id, todo_id=todo_id, status=review_status)
            self.session.add(review)
        review.status = review_status
        review.reviewed_at = now

        if review_status == TodoReviewStatus.DONE and todo.completed_at is None:
            todo.is_complete = True
            todo.completed_at = now
        elif review_status == TodoReviewStatus.PUSHED and todo.due_date:
            todo.due_date = todo.due_date + timedelta(days=7)

        await self.session.flush()
        result = await self.session.execute(
            select(TodoReviewed)
            .options(selectinload(TodoReviewed.todo))
            .where(TodoReviewed.id == review.id)
        )
        return result.scalar_one(), created

    async def list_todo_reviews(
        self, organization_id: UUID, meeting_id: UUID
    ) -> list[TodoReviewed]:
        await self._get(organization_id, meeting_id)
        result = await self.session.execute(
            select(TodoReviewed)
            .options(selectinload(TodoReviewed.todo))
            .where(TodoReviewed.meeting_id == meeting_id)
            .order_by(TodoReviewed.reviewed_at.asc())
        )
        return list(result.scalars())
