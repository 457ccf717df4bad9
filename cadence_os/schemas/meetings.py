"""Schemas for L10 meetings, the issue queue and IDS resolutions."""

from datetime import date, datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field

from .base import CadenceBaseModel, ProfileRef, TimestampMixin


# =============================================================================
# REQUESTS
# =============================================================================


class MeetingCreate(BaseModel):
    """Fields are optional here so the service can answer with its own 400."""

    title: str | None = None
    scheduled_at: datetime | None = None
    meeting_type: str = "leadership"
    attendee_ids: list[UUID] = Field(default_factory=list)


class MeetingUpdate(BaseModel):
    title: str | None = None
    meeting_type: str | None = None
    scheduled_at: datetime | None = None
    status: str | None = None
    notes: str | None = None
    attendee_ids: list[UUID] | None = None


class MeetingEnd(BaseModel):
    rating: float | None = Field(default=None, ge=1, le=10)
    ratings: dict[str, float] | None = None
    cascading_messages: str | None = None


class AgendaAction(BaseModel):
    action: str | None = None
    agenda_item_id: UUID | None = None
    notes: str | None = None


class HeadlineCreate(BaseModel):
    text: str | None = None
    headline_type: str = "general"


class TodoReviewCreate(BaseModel):
    todo_id: UUID | None = None
    status_at_review: str | None = None


class QueueIssueRequest(BaseModel):
    issue_id: UUID | None = None
    title: str | None = None
    description: str | None = None
    priority: int | None = None


class ReorderQueueRequest(BaseModel):
    issue_ids: list[UUID] = Field(default_factory=list)


class ResolveIssueRequest(BaseModel):
    issue_id: UUID | None = None
    outcome: str | None = None
    decision_notes: str | None = None
    discussion_duration_seconds: int | None = None
    todo_title: str | None = None
    todo_owner_id: UUID | None = None
    todo_due_date: date | None = None


# =============================================================================
# RESPONSES
# =============================================================================


class AgendaItemResponse(CadenceBaseModel):
    id: UUID
    section: str
    duration_minutes: int
    sort_order: int
    started_at: datetime | None = None
    completed_at: datetime | None = None
    notes: str | None = None


class AttendeeResponse(CadenceBaseModel):
    profile_id: UUID
    attended: bool | None = None
    profile: ProfileRef | None = None


class IssueRef(CadenceBaseModel):
    id: UUID
    title: str
    description: str | None = None
    status: str
    priority: int | None = None


class TodoRef(CadenceBaseModel):
    id: UUID
    title: str
    owner_id: UUID | None = None
    due_date: date | None = None
    is_complete: bool = False


class QueuedIssueResponse(IssueRef):
    queue_order: int | None = None
    created_at: datetime
    raiser: ProfileRef | None = None


class IssueDiscussedResponse(CadenceBaseModel):
    id: UUID
    meeting_id: UUID
    issue_id: UUID
    outcome: str | None = None
    decision_notes: str | None = None
    discussion_duration_seconds: int | None = None
    todo_id: UUID | None = None
    discussed_at: datetime
    issue: IssueRef | None = None
    todo: TodoRef | None = None


class TodoReviewResponse(CadenceBaseModel):
    id: UUID
    meeting_id: UUID
    todo_id: UUID
    status: str
    reviewed_at: datetime
    todo: TodoRef | None = None


class MeetingSummary(CadenceBaseModel, TimestampMixin):
    """List view of a meeting."""

    id: UUID
    title: str
    meeting_type: str
    scheduled_at: datetime
    status: str
    started_at: datetime | None = None
    ended_at: datetime | None = None
    duration_minutes: int | None = None
    rating: float | None = None
    created_by: UUID | None = None
    creator: ProfileRef | None = None


class MeetingResponse(MeetingSummary):
    """Full meeting with agenda, snapshots and outcomes."""

    ratings: dict[str, float] | None = None
    headlines: list[dict[str, Any]] = Field(default_factory=list)
    cascading_messages: str | None = None
    notes: str | None = None
    scorecard_snapshot: list[dict[str, Any]] | None = None
    rocks_snapshot: list[dict[str, Any]] | None = None
    agenda_items: list[AgendaItemResponse] = Field(default_factory=list)
    attendees: list[AttendeeResponse] = Field(default_factory=list)
    issues_discussed: list[IssueDiscussedResponse] = Field(default_factory=list)
    todos_reviewed: list[TodoReviewResponse] = Field(default_factory=list)


class PreviewRock(CadenceBaseModel):
    id: UUID
    title: str
    status: str
    due_date: date | None = None
    owner: ProfileRef | None = None


class PreviewMetric(BaseModel):
    id: UUID
    name: str
    goal: float | None = None
    unit: str | None = None
    current_value: float | None = None
    owner: ProfileRef | None = None


class PreviewTodo(TodoRef):
    owner: ProfileRef | None = None


class MeetingPreviewResponse(BaseModel):
    meeting: MeetingSummary
    queued_issues: list[QueuedIssueResponse]
    off_track_rocks: list[PreviewRock]
    below_goal_metrics: list[PreviewMetric]
    carryover_todos: list[PreviewTodo]
    counts: dict[str, int]
