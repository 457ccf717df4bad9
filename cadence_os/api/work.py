"""API routes for issues and to-dos."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from ..core import OrgContextDep, SessionDep
from ..schemas import IssueCreate, IssueResponse, IssueUpdate, TodoCreate, TodoResponse, TodoUpdate
from ..services.common import CadenceError
from ..services.work_items import IssueService, TodoService
from .errors import http_error

router = APIRouter(tags=["issues", "todos"])


def get_issue_service(session: SessionDep) -> IssueService:
    return IssueService(session)


def get_todo_service(session: SessionDep) -> TodoService:
    return TodoService(session)


IssueServiceDep = Annotated[IssueService, Depends(get_issue_service)]
TodoServiceDep = Annotated[TodoService, Depends(get_todo_service)]


# =============================================================================
# ISSUES
# =============================================================================


@router.get("/issues", response_model=list[IssueResponse])
async def list_issues(
    current_user: OrgContextDep,
    service: IssueServiceDep,
    status_filter: Annotated[str | None, Query(alias="status")] = None,
    priority: int | None = None,
    owner_id: UUID | None = None,
):
    try:
        return await service.list_issues(
            current_user.organization_id, status=status_filter, priority=priority, owner_id=owner_id
        )
    except CadenceError as e:
        raise http_error(e) from e


@router.post("/issues", response_model=IssueResponse, status_code=status.HTTP_201_CREATED)
async def create_issue(data: IssueCreate, current_user: OrgContextDep, service: IssueServiceDep):
    try:
        return await service.create_issue(
            current_user.organization_id, current_user.id, data.model_dump(exclude_unset=True)
        )
    except CadenceError as e:
        raise http_error(e) from e


@router.get("/issues/{issue_id}", response_model=IssueResponse)
async def get_issue(issue_id: UUID, current_user: OrgContextDep, service: IssueServiceDep):
    try:
        return await service.get_issue(current_user.organization_id, issue_id)
    except CadenceError as e:
        raise http_error(e) from e


@router.patch("/issues/{issue_id}", response_model=IssueResponse)
async def update_issue(
    issue_id: UUID,
    data: IssueUpdate,
    current_user: OrgContextDep,
    service: IssueServiceDep,
):
    try:
        return await service.update_issue(
            current_user.organization_id, issue_id, data.model_dump(exclude_unset=True)
        )
    except CadenceError as e:
        raise http_error(e) from e
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e


@router.delete("/issues/{issue_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_issue(issue_id: UUID, current_user: OrgContextDep, service: IssueServiceDep):
    try:
        await service.delete_issue(
            current_user.organization_id, issue_id, current_user.id, current_user.is_admin
        )
    except CadenceError as e:
        raise http_error(e) from e
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# =============================================================================
# TO-DOS
# =============================================================================


@router.get("/todos", response_model=list[TodoResponse])
async def list_todos(
    current_user: OrgContextDep,
    service: TodoServiceDep,
    status_filter: Annotated[str | None, Query(alias="status")] = None,
    owner_id: UUID | None = None,
    mine: bool = False,
):
    if mine and not owner_id:
        owner_id = current_user.id
    try:
        return await service.list_todos(
            current_user.organization_id, status=status_filter, owner_id=owner_id
        )
    except CadenceError as e:
        raise http_error(e) from e


@router.post("/todos", response_model=TodoResponse, status_code=status.HTTP_201_CREATED)
async def create_todo(data: TodoCreate, current_user: OrgContextDep, service: TodoServiceDep):
    try:
        return await service.create_todo(
            current_user.organization_id, current_user.id, data.model_dump(exclude_unset=True)
        )
    except CadenceError as e:
        raise http_error(e) from e


@router.get("/todos/{todo_id}", response_model=TodoResponse)
async def get_todo(todo_id: UUID, current_user: OrgContextDep, service: TodoServiceDep):
    try:
        return await service.get_todo(current_user.organization_id, todo_id)
    except CadenceError as e:
        raise http_error(e) from e


@router.patch("/todos/{todo_id}", response_model=TodoResponse)
async def update_todo(
    todo_id: UUID,
    data: TodoUpdate,
    current_user: OrgContextDep,
    service: TodoServiceDep,
):
    try:
        return await service.update_todo(
            current_user.organization_id,
            todo_id,
            current_user.id,
            current_user.is_admin,
            data.model_dump(exclude_unset=True),
        )
    except CadenceError as e:
        raise http_error(e) from e


@router.delete("/todos/{todo_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_todo(todo_id: UUID, current_user: OrgContextDep, service: TodoServiceDep):
    try:
        await service.delete_todo(
            current_user.organization_id, todo_id, current_user.id, current_user.is_admin
        )
    except CadenceError as e:
        raise http_error(e) from e
    return Response(status_code=status.HTTP_204_NO_CONTENT)
