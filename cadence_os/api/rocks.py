"""API routes for rocks and individual goals."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status

from ..core import OrgContextDep, SessionDep
from ..models import IndividualGoal
from ..schemas import GoalCreate, GoalResponse, GoalUpdate, RockCreate, RockResponse, RockUpdate
from ..services.common import CadenceError
from ..services.rocks import GoalService, RockFilters, RockService, goal_progress
from .errors import http_error

router = APIRouter(tags=["rocks"])


def get_rock_service(session: SessionDep) -> RockService:
    return RockService(session)


def get_goal_service(session: SessionDep) -> GoalService:
    return GoalService(session)


RockServiceDep = Annotated[RockService, Depends(get_rock_service)]
GoalServiceDep = Annotated[GoalService, Depends(get_goal_service)]


def goal_to_response(goal: IndividualGoal) -> GoalResponse:
    response = GoalResponse.model_validate(goal)
    response.progress = goal_progress(goal.current_value, goal.target_value)
    return response


# =============================================================================
# ROCKS
# =============================================================================


@router.get("/rocks", response_model=list[RockResponse])
async def list_rocks(
    current_user: OrgContextDep,
    service: RockServiceDep,
    quarter: Annotated[int | None, Query(ge=1, le=4)] = None,
    year: int | None = None,
    status_filter: Annotated[str | None, Query(alias="status")] = None,
    owner_id: UUID | None = None,
    level: str | None = None,
):
    try:
        return await service.list_rocks(
            current_user.organization_id,
            RockFilters(quarter=quarter, year=year, status=status_filter, owner_id=owner_id, level=level),
        )
    except CadenceError as e:
        raise http_error(e) from e


@router.post("/rocks", response_model=RockResponse, status_code=status.HTTP_201_CREATED)
async def create_rock(data: RockCreate, current_user: OrgContextDep, service: RockServiceDep):
    try:
        return await service.create_rock(
            current_user.organization_id,
            current_user.is_leadership,
            data.model_dump(exclude_unset=True),
        )
    except CadenceError as e:
        raise http_error(e) from e


@router.get("/rocks/{rock_id}", response_model=RockResponse)
async def get_rock(rock_id: UUID, current_user: OrgContextDep, service: RockServiceDep):
    try:
        return await service.get_rock(current_user.organization_id, rock_id)
    except CadenceError as e:
        raise http_error(e) from e


@router.patch("/rocks/{rock_id}", response_model=RockResponse)
async def update_rock(
    rock_id: UUID,
    data: RockUpdate,
    current_user: OrgContextDep,
    service: RockServiceDep,
):
    try:
        return await service.update_rock(
            current_user.organization_id,
            rock_id,
            current_user.id,
            current_user.is_leadership,
            data.model_dump(exclude_unset=True),
        )
    except CadenceError as e:
        raise http_error(e) from e


@router.delete("/rocks/{rock_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_rock(rock_id: UUID, current_user: OrgContextDep, service: RockServiceDep):
    try:
        await service.delete_rock(current_user.organization_id, rock_id, current_user.is_admin)
    except CadenceError as e:
        raise http_error(e) from e
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# =============================================================================
# GOALS
# =============================================================================


@router.get("/goals", response_model=list[GoalResponse])
async def list_goals(
    current_user: OrgContextDep,
    service: GoalServiceDep,
    owner_id: UUID | None = None,
    rock_id: UUID | None = None,
    status_filter: Annotated[str | None, Query(alias="status")] = None,
    my_goals: bool = False,
):
    if my_goals and not owner_id:
        owner_id = current_user.id
    try:
        goals = await service.list_goals(
            current_user.organization_id, owner_id=owner_id, rock_id=rock_id, status=status_filter
        )
    except CadenceError as e:
        raise http_error(e) from e
    return [goal_to_response(g) for g in goals]


@router.post("/goals", response_model=GoalResponse, status_code=status.HTTP_201_CREATED)
async def create_goal(data: GoalCreate, current_user: OrgContextDep, service: GoalServiceDep):
    try:
        goal = await service.create_goal(
            current_user.organization_id,
            current_user.id,
            current_user.is_leadership,
            data.model_dump(exclude_unset=True),
        )
    except CadenceError as e:
        raise http_error(e) from e
    return goal_to_response(goal)


@router.get("/goals/{goal_id}", response_model=GoalResponse)
async def get_goal(goal_id: UUID, current_user: OrgContextDep, service: GoalServiceDep):
    try:
        goal = await service.get_goal(current_user.organization_id, goal_id)
    except CadenceError as e:
        raise http_error(e) from e
    return goal_to_response(goal)


@router.patch("/goals/{goal_id}", response_model=GoalResponse)
async def update_goal(
    goal_id: UUID,
    data: GoalUpdate,
    current_user: OrgContextDep,
    service: GoalServiceDep,
):
    """Owner or admin/ELT only."""
    try:
        goal = await service.update_goal(
            current_user.organization_id,
            goal_id,
            current_user.id,
            current_user.is_leadership,
            data.model_dump(exclude_unset=True),
        )
    except CadenceError as e:
        raise http_error(e) from e
    return goal_to_response(goal)


@router.delete("/goals/{goal_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_goal(goal_id: UUID, current_user: OrgContextDep, service: GoalServiceDep):
    try:
        await service.delete_goal(
            current_user.organization_id, goal_id, current_user.id, current_user.is_leadership
        )
    except CadenceError as e:
        raise http_error(e) from e
    return Response(status_code=status.HTTP_204_NO_CONTENT)
