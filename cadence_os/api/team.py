"""API routes for pillars and team members."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Response, status

from ..core import AdminDep, OrgContextDep, SessionDep
from ..schemas import (
    PillarCreate,
    PillarDetailResponse,
    PillarResponse,
    PillarUpdate,
    ProfileRef,
    TeamMemberCreate,
    TeamMemberResponse,
    TeamMemberUpdate,
)
from ..services.common import CadenceError
from ..services.team import PillarService, TeamMemberService
from .errors import http_error

router = APIRouter(tags=["team"])


def get_pillar_service(session: SessionDep) -> PillarService:
    return PillarService(session)


def get_member_service(session: SessionDep) -> TeamMemberService:
    return TeamMemberService(session)


PillarServiceDep = Annotated[PillarService, Depends(get_pillar_service)]
MemberServiceDep = Annotated[TeamMemberService, Depends(get_member_service)]


# =============================================================================
# PILLARS
# =============================================================================


@router.get("/pillars", response_model=list[PillarResponse])
async def list_pillars(current_user: OrgContextDep, service: PillarServiceDep):
    pillars = await service.list_pillars(current_user.organization_id)
    return [
        PillarResponse.model_validate(p.pillar).model_copy(update={"member_count": p.member_count})
        for p in pillars
    ]


@router.post("/pillars", response_model=PillarResponse, status_code=status.HTTP_201_CREATED)
async def create_pillar(data: PillarCreate, current_user: AdminDep, service: PillarServiceDep):
    try:
        return await service.create_pillar(
            current_user.organization_id, data.model_dump(exclude_unset=True)
        )
    except CadenceError as e:
        raise http_error(e) from e


@router.get("/pillars/{pillar_id}", response_model=PillarDetailResponse)
async def get_pillar(pillar_id: UUID, current_user: OrgContextDep, service: PillarServiceDep):
    try:
        pillar = await service.get_pillar(current_user.organization_id, pillar_id)
        members = await service.list_members(current_user.organization_id, pillar_id)
    except CadenceError as e:
        raise http_error(e) from e
    return PillarDetailResponse.model_validate(pillar).model_copy(
        update={
            "members": [ProfileRef.model_validate(m) for m in members],
            "member_count": len(members),
        }
    )


@router.patch("/pillars/{pillar_id}", response_model=PillarResponse)
async def update_pillar(
    pillar_id: UUID,
    data: PillarUpdate,
    current_user: AdminDep,
    service: PillarServiceDep,
):
    try:
        return await service.update_pillar(
            current_user.organization_id, pillar_id, data.model_dump(exclude_unset=True)
        )
    except CadenceError as e:
        raise http_error(e) from e


@router.delete("/pillars/{pillar_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_pillar(pillar_id: UUID, current_user: AdminDep, service: PillarServiceDep):
    """Refused while any team member is assigned to the pillar."""
    try:
        await service.delete_pillar(current_user.organization_id, pillar_id)
    except CadenceError as e:
        raise http_error(e) from e
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# =============================================================================
# TEAM MEMBERS
# =============================================================================


@router.get("/team-members", response_model=list[TeamMemberResponse])
async def list_team_members(
    current_user: OrgContextDep,
    service: MemberServiceDep,
    include_inactive: bool = False,
):
    return await service.list_members(current_user.organization_id, include_inactive)


@router.post("/team-members", response_model=TeamMemberResponse, status_code=status.HTTP_201_CREATED)
async def create_team_member(
    data: TeamMemberCreate,
    current_user: AdminDep,
    service: MemberServiceDep,
):
    """Invite someone; their profile is claimed on first sign-in."""
    try:
        return await service.create_member(
            current_user.organization_id, data.model_dump(exclude_unset=True)
        )
    except CadenceError as e:
        raise http_error(e) from e
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e


@router.get("/team-members/{member_id}", response_model=TeamMemberResponse)
async def get_team_member(member_id: UUID, current_user: OrgContextDep, service: MemberServiceDep):
    try:
        return await service.get_member(current_user.organization_id, member_id)
    except CadenceError as e:
        raise http_error(e) from e


@router.patch("/team-members/{member_id}", response_model=TeamMemberResponse)
async def update_team_member(
    member_id: UUID,
    data: TeamMemberUpdate,
    current_user: OrgContextDep,
    service: MemberServiceDep,
):
    try:
        return await service.update_member(
            current_user.organization_id,
            member_id,
            current_user.id,
            current_user.is_admin,
            data.model_dump(exclude_unset=True),
        )
    except CadenceError as e:
        raise http_error(e) from e
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e


@router.delete("/team-members/{member_id}", response_model=TeamMemberResponse)
async def deactivate_team_member(
    member_id: UUID,
    current_user: AdminDep,
    service: MemberServiceDep,
):
    """Deactivate rather than delete; profiles stay referenced by history."""
    try:
        return await service.deactivate_member(
            current_user.organization_id, member_id, current_user.id
        )
    except CadenceError as e:
        raise http_error(e) from e
