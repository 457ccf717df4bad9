"""Schemas for issues and to-dos."""

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel

from .base import CadenceBaseModel, ProfileRef, TimestampMixin


class IssueCreate(BaseModel):
    title: str | None = None
    description: str | None = None
    owner_id: UUID | None = None
    priority: int | None = None


class IssueUpdate(IssueCreate):
    status: str | None = None
    resolution: str | None = None


class IssueResponse(CadenceBaseModel, TimestampMixin):
    id: UUID
    title: str
    description: str | None = None
    raised_by: UUID | None = None
    owner_id: UUID | None = None
    priority: int | None = None
    status: str
    resolution: str | None = None
    resolved_at: datetime | None = None
    queued_for_meeting_id: UUID | None = None
    queue_order: int | None = None
    raiser: ProfileRef | None = None
    owner: ProfileRef | None = None


class TodoCreate(BaseModel):
    title: str | None = None
    description: str | None = None
    owner_id: UUID | None = None
    due_date: date | None = None
    issue_id: UUID | None = None
    meeting_id: UUID | None = None


class TodoUpdate(BaseModel):
    title: str | None = None
    description: str | None = None
    owner_id: UUID | None = None
    due_date: date | None = None
    is_complete: bool | None = None
    issue_id: UUID | None = None


class TodoResponse(CadenceBaseModel, TimestampMixin):
    id: UUID
    title: str
    description: str | None = None
    owner_id: UUID | None = None
    created_by: UUID | None = None
    due_date: date | None = None
    is_complete: bool
    completed_at: datetime | None = None
    meeting_id: UUID | None = None
    issue_id: UUID | None = None
    owner: ProfileRef | None = None
