"""API routes for the daily AI briefing."""

from dataclasses import asdict
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends

from ..core import CurrentUserDep, OptionalProfileDep, SessionDep, SessionFactoryDep
from ..schemas import BriefingResponse
from ..services.briefing import BriefingResult, BriefingService
from ..services.common import CadenceError
from .errors import http_error

router = APIRouter(prefix="/briefings", tags=["briefings"])


def get_briefing_service(session: SessionDep, session_factory: SessionFactoryDep) -> BriefingService:
    return BriefingService(session, session_factory)


BriefingServiceDep = Annotated[BriefingService, Depends(get_briefing_service)]


@router.get("", response_model=BriefingResponse)
async def get_briefing(
    profile: OptionalProfileDep,
    service: BriefingServiceDep,
    regenerate: bool = False,
):
    """
    Today's briefing for the caller.

    Never fails for a signed-in caller: a missing profile, missing
    organization, missing API key or LLM failure all produce fallback
    content with `is_fallback` and `fallback_reason` set.
    """
    result = await service.get_briefing(profile, regenerate=regenerate)
    return BriefingResponse(**asdict(result))


@router.post("/{briefing_id}/viewed", response_model=BriefingResponse)
async def mark_briefing_viewed(
    briefing_id: UUID,
    current_user: CurrentUserDep,
    service: BriefingServiceDep,
):
    try:
        row = await service.mark_viewed(current_user.id, briefing_id)
    except CadenceError as e:
        raise http_error(e) from e
    return BriefingResponse(**asdict(BriefingResult.from_row(row, is_cached=True)))
