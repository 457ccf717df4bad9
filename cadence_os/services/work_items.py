"""Issues and to-dos outside of a meeting."""

import logging
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..models import Issue, IssueStatus, Todo
from .common import NotFoundError, PermissionDeniedError, ValidationError, utcnow

logger = logging.getLogger(__name__)

ISSUE_FIELDS = {"title", "description", "owner_id", "priority", "status", "resolution"}
TODO_FIELDS = {"title", "description", "owner_id", "due_date", "is_complete", "issue_id"}


class IssueService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_issues(
        self,
        organization_id: UUID,
        status: str | None = None,
        priority: int | None = None,
        owner_id: UUID | None = None,
    ) -> list[Issue]:
        """Open issues by default, highest priority first."""
        try:
            wanted = IssueStatus(status) if status else IssueStatus.OPEN
        except ValueError:
            raise ValidationError(f"Invalid status: {status}")

        query = (
            select(Issue)
            .options(selectinload(Issue.raiser), selectinload(Issue.owner))
            .where(Issue.organization_id == organization_id, Issue.status == wanted)
            .order_by(Issue.priority.asc().nulls_last(), Issue.created_at.desc())
        )
        if priority is not None:
            query = query.where(Issue.priority == priority)
        if owner_id:
            query = query.where(Issue.owner_id == owner_id)
        result = await self.session.execute(query)
        return list(result.scalars())

    async def get_issue(self, organization_id: UUID, issue_id: UUID) -> Issue:
        result = await self.session.execute(
            select(Issue)
            .options(selectinload(Issue.raiser), selectinload(Issue.owner))
            .where(Issue.id == issue_id, Issue.organization_id == organization_id)
            .execution_options(populate_existing=True)
        )
        issue = result.scalar_one_or_none()
        if not issue:
            raise NotFoundError("Issue not found")
        return issue

    async def create_issue(
        self, organization_id: UUID, profile_id: UUID, data: dict[str, Any]
    ) -> Issue:
        if not data.get("title"):
            raise ValidationError("Title is required")
        values = {
            k: v for k, v in data.items()
            if k in ISSUE_FIELDS and k not in ("status", "resolution") and v is not None
        }
        issue = Issue(
            organization_id=organization_id,
            raised_by=profile_id,
            status=IssueStatus.OPEN,
            **values,
        )
        self.session.add(issue)
        await self.session.flush()
        return await self.get_issue(organization_id, issue.id)

    async def update_issue(
        self, organization_id: UUID, issue_id: UUID, updates: dict[str, Any]
    ) -> Issue:
        issue = await self.get_issue(organization_id, issue_id)
        changes = {k: v for k, v in updates.items() if k in ISSUE_FIELDS}
        if not changes:
            raise ValidationError("No valid fields to update")

        if changes.get("status") is not None:
            changes["status"] = IssueStatus(changes["status"])
            if changes["status"] == IssueStatus.RESOLVED and issue.status != IssueStatus.RESOLVED:
                issue.resolved_at = utcnow()
            elif changes["status"] != IssueStatus.RESOLVED:
                issue.resolved_at = None

        for key, value in changes.items():
            setattr(issue, key, value)
        await self.session.flush()
        return await self.get_issue(organization_id, issue_id)

    async def delete_issue(
        self, organization_id: UUID, issue_id: UUID, profile_id: UUID, is_admin: bool
    ) -> None:
        issue = await self.get_issue(organization_id, issue_id)
        if not is_admin and issue.raised_by != profile_id:
            raise PermissionDeniedError("Forbidden")
        await self.session.delete(issue)
        await self.session.flush()


class TodoService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_todos(
        self,
        organization_id: UUID,
        status: str | None = None,
        owner_id: UUID | None = None,
    ) -> list[Todo]:
        """status: open (default), completed, or all."""
        query = (
            select(Todo)
            .options(selectinload(Todo.owner), selectinload(Todo.creator))
            .where(Todo.organization_id == organization_id)
            .order_by(Todo.due_date.asc().nulls_last(), Todo.created_at.desc())
        )
        if status == "completed":
            query = query.where(Todo.is_complete.is_(True))
        elif status in (None, "open"):
            query = query.where(Todo.is_complete.is_(False))
        elif status != "all":
            raise ValidationError(f"Invalid status: {status}")
        if owner_id:
            query = query.where(Todo.owner_id == owner_id)
        result = await self.session.execute(query)
        return list(result.scalars())

    async def get_todo(self, organization_id: UUID, todo_id: UUID) -> Todo:
        result = await self.session.execute(
            select(Todo)
            .options(selectinload(Todo.owner), selectinload(Todo.creator))
            .where(Todo.id == todo_id, Todo.organization_id == organization_id)
            .execution_options(populate_existing=True)
        )
        todo = result.scalar_one_or_none()
        if not todo:
            raise NotFoundError("Todo not found")
        return todo

    async def create_todo(
        self, organization_id: UUID, profile_id: UUID, data: dict[str, Any]
    ) -> Todo:
        if not data.get("title"):
            raise ValidationError("Title is required")
        values = {
            k: v for k, v in data.items()
            if k in TODO_FIELDS and k != "is_complete" and v is not None
        }
        values.setdefault("owner_id", profile_id)
        todo = Todo(
            organization_id=organization_id,
            created_by=profile_id,
            meeting_id=data.get("meeting_id"),
            **values,
        )
        self.session.add(todo)
        await self.session.flush()
        return await self.get_todo(organization_id, todo.id)

    def _check_access(self, todo: Todo, profile_id: UUID, is_admin: bool) -> None:
        if not is_admin and profile_id not in (todo.owner_id, todo.created_by):
            raise PermissionDeniedError("Forbidden")

    async def update_todo(
        self,
        organization_id: UUID,
        todo_id: UUID,
        profile_id: UUID,
        is_admin: bool,
        updates: dict[str, Any],
    ) -> Todo:
        """Admin, owner or creator. Completing stamps completed_at."""
        todo = await self.get_todo(organization_id, todo_id)
        self._check_access(todo, profile_id, is_admin)

        changes = {k: v for k, v in updates.items() if k in TODO_FIELDS}
        if not changes:
            raise ValidationError("No valid fields to update")

        if changes.get("is_complete") is True:
            todo.completed_at = utcnow()
        elif changes.get("is_complete") is False:
            todo.completed_at = None

        for key, value in changes.items():
            setattr(todo, key, value)
        await self.session.flush()
        return await self.get_todo(organization_id, todo_id)

    async def delete_todo(
        self, organization_id: UUID, todo_id: UUID, profile_id: UUID, is_admin: bool
    ) -> None:
        todo = await self.get_todo(organization_id, todo_id)
        self._check_access(todo, profile_id, is_admin)
        await self.session.delete(todo)
        await self.session.flush()
