"""API routes for L10 meetings."""

from typing import Annotated, Any
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from ..core import AdminDep, LeadershipDep, OrgContextDep, SessionDep, SessionFactoryDep
from ..models import MeetingType
from ..schemas import (
    AgendaAction,
    AgendaItemResponse,
    HeadlineCreate,
    IssueDiscussedResponse,
    MeetingCreate,
    MeetingEnd,
    MeetingPreviewResponse,
    MeetingResponse,
    MeetingSummary,
    MeetingUpdate,
    PreviewMetric,
    PreviewRock,
    PreviewTodo,
    QueuedIssueResponse,
    QueueIssueRequest,
    ReorderQueueRequest,
    ResolveIssueRequest,
    SuccessResponse,
    TodoReviewCreate,
    TodoReviewResponse,
)
from ..services.common import CadenceError
from ..services.ids import IDSService, QueueIssueInput, ResolveIssueInput
from ..services.meetings import CreateMeetingInput, EndMeetingInput, MeetingPreview, MeetingService
from .errors import http_error

router = APIRouter(prefix="/l10", tags=["l10"])


def get_meeting_service(session: SessionDep, session_factory: SessionFactoryDep) -> MeetingService:
    return MeetingService(session, session_factory)


def get_ids_service(session: SessionDep) -> IDSService:
    return IDSService(session)


MeetingServiceDep = Annotated[MeetingService, Depends(get_meeting_service)]
IDSServiceDep = Annotated[IDSService, Depends(get_ids_service)]


# =============================================================================
# HELPERS
# =============================================================================


def preview_to_response(preview: MeetingPreview) -> MeetingPreviewResponse:
    return MeetingPreviewResponse(
        meeting=MeetingSummary.model_validate(preview.meeting),
        queued_issues=[QueuedIssueResponse.model_validate(i) for i in preview.queued_issues],
        off_track_rocks=[PreviewRock.model_validate(r) for r in preview.off_track_rocks],
        below_goal_metrics=[
            PreviewMetric(**m.snapshot()) for m in preview.below_goal_metrics
        ],
        carryover_todos=[PreviewTodo.model_validate(t) for t in preview.carryover_todos],
        counts=preview.counts,
    )


# =============================================================================
# MEETING CRUD
# =============================================================================


@router.get("", response_model=list[MeetingSummary])
async def list_meetings(
    current_user: OrgContextDep,
    service: MeetingServiceDep,
    status_filter: Annotated[str | None, Query(alias="status")] = None,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
    upcoming: bool = False,
):
    """List meetings, newest first; `upcoming=true` lists open meetings soonest first."""
    try:
        return await service.list_meetings(
            current_user.organization_id, status=status_filter, limit=limit, upcoming=upcoming
        )
    except CadenceError as e:
        raise http_error(e) from e


@router.post("", response_model=MeetingResponse, status_code=status.HTTP_201_CREATED)
async def create_meeting(
    data: MeetingCreate,
    current_user: LeadershipDep,
    service: MeetingServiceDep,
):
    try:
        meeting_type = MeetingType(data.meeting_type)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Invalid meeting_type: {data.meeting_type}") from e

    try:
        return await service.create_meeting(
            current_user.organization_id,
            current_user.id,
            CreateMeetingInput(
                title=data.title,
                scheduled_at=data.scheduled_at,
                meeting_type=meeting_type,
                attendee_ids=data.attendee_ids,
            ),
        )
    except CadenceError as e:
        raise http_error(e) from e


@router.get("/{meeting_id}", response_model=MeetingResponse)
async def get_meeting(meeting_id: UUID, current_user: OrgContextDep, service: MeetingServiceDep):
    try:
        return await service.get_meeting(current_user.organization_id, meeting_id)
    except CadenceError as e:
        raise http_error(e) from e


@router.put("/{meeting_id}", response_model=MeetingResponse)
@router.patch("/{meeting_id}", response_model=MeetingResponse)
async def update_meeting(
    meeting_id: UUID,
    data: MeetingUpdate,
    current_user: OrgContextDep,
    service: MeetingServiceDep,
):
    try:
        return await service.update_meeting(
            current_user.organization_id,
            meeting_id,
            current_user.id,
            current_user.is_admin,
            data.model_dump(exclude_unset=True),
        )
    except CadenceError as e:
        raise http_error(e) from e
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e


@router.delete("/{meeting_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_meeting(meeting_id: UUID, current_user: AdminDep, service: MeetingServiceDep):
    try:
        await service.delete_meeting(current_user.organization_id, meeting_id)
    except CadenceError as e:
        raise http_error(e) from e
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# =============================================================================
# LIFECYCLE
# =============================================================================


@router.post("/{meeting_id}/start", response_model=MeetingResponse)
async def start_meeting(meeting_id: UUID, current_user: OrgContextDep, service: MeetingServiceDep):
    """Start a scheduled meeting and snapshot the scorecard and rocks."""
    try:
        return await service.start_meeting(current_user.organization_id, meeting_id)
    except CadenceError as e:
        raise http_error(e) from e


@router.post("/{meeting_id}/end", response_model=MeetingResponse)
async def end_meeting(
    meeting_id: UUID,
    current_user: OrgContextDep,
    service: MeetingServiceDep,
    data: MeetingEnd | None = None,
):
    """End an in-progress meeting and write its markdown summary to `notes`."""
    data = data or MeetingEnd()
    try:
        return await service.end_meeting(
            current_user.organization_id,
            meeting_id,
            EndMeetingInput(
                rating=data.rating,
                ratings=data.ratings,
                cascading_messages=data.cascading_messages,
            ),
        )
    except CadenceError as e:
        raise http_error(e) from e


@router.get("/{meeting_id}/preview", response_model=MeetingPreviewResponse)
async def preview_meeting(meeting_id: UUID, current_user: OrgContextDep, service: MeetingServiceDep):
    try:
        preview = await service.preview(current_user.organization_id, meeting_id)
    except CadenceError as e:
        raise http_error(e) from e
    return preview_to_response(preview)


# =============================================================================
# AGENDA
# =============================================================================


@router.get("/{meeting_id}/agenda", response_model=list[AgendaItemResponse])
async def list_agenda(meeting_id: UUID, current_user: OrgContextDep, service: MeetingServiceDep):
    try:
        return await service.list_agenda(current_user.organization_id, meeting_id)
    except CadenceError as e:
        raise http_error(e) from e


@router.put("/{meeting_id}/agenda", response_model=list[AgendaItemResponse])
async def update_agenda(
    meeting_id: UUID,
    data: AgendaAction,
    current_user: OrgContextDep,
    service: MeetingServiceDep,
):
    """navigate / next / previous / update_notes."""
    try:
        return await service.update_agenda(
            current_user.organization_id,
            meeting_id,
            data.action,
            agenda_item_id=data.agenda_item_id,
            notes=data.notes,
        )
    except CadenceError as e:
        raise http_error(e) from e


@router.patch("/{meeting_id}/agenda/{item_id}", response_model=list[AgendaItemResponse])
async def navigate_agenda(
    meeting_id: UUID,
    item_id: UUID,
    current_user: OrgContextDep,
    service: MeetingServiceDep,
):
    """Make one agenda item the active one."""
    try:
        return await service.update_agenda(
            current_user.organization_id, meeting_id, "navigate", agenda_item_id=item_id
        )
    except CadenceError as e:
        raise http_error(e) from e


# =============================================================================
# HEADLINES
# =============================================================================


@router.post("/{meeting_id}/headlines", status_code=status.HTTP_201_CREATED)
async def add_headline(
    meeting_id: UUID,
    data: HeadlineCreate,
    current_user: OrgContextDep,
    service: MeetingServiceDep,
) -> dict[str, Any]:
    try:
        return await service.add_headline(
            current_user.organization_id,
            meeting_id,
            current_user.id,
            current_user.profile.full_name,
            data.text,
            data.headline_type,
        )
    except CadenceError as e:
        raise http_error(e) from e


@router.delete("/{meeting_id}/headlines", response_model=SuccessResponse)
async def remove_headline(
    meeting_id: UUID,
    current_user: OrgContextDep,
    service: MeetingServiceDep,
    headline_id: str | None = None,
):
    """Remove the headline named by the `headline_id` query param."""
    try:
        await service.remove_headline(current_user.organization_id, meeting_id, headline_id)
    except CadenceError as e:
        raise http_error(e) from e
    return SuccessResponse()


@router.delete("/{meeting_id}/headlines/{headline_id}", response_model=SuccessResponse)
async def remove_headline_by_path(
    meeting_id: UUID,
    headline_id: str,
    current_user: OrgContextDep,
    service: MeetingServiceDep,
):
    return await remove_headline(meeting_id, current_user, service, headline_id)


# =============================================================================
# TO-DO REVIEW
# =============================================================================


@router.get("/{meeting_id}/todos", response_model=list[TodoReviewResponse])
async def list_todo_reviews(meeting_id: UUID, current_user: OrgContextDep, service: MeetingServiceDep):
    try:
        return await service.list_todo_reviews(current_user.organization_id, meeting_id)
    except CadenceError as e:
        raise http_error(e) from e


@router.post("/{meeting_id}/todos", response_model=TodoReviewResponse)
async def review_todo(
    meeting_id: UUID,
    data: TodoReviewCreate,
    response: Response,
    current_user: OrgContextDep,
    service: MeetingServiceDep,
):
    """Record done / not_done / pushed; 201 on first review, 200 on re-review."""
    try:
        review, created = await service.review_todo(
            current_user.organization_id, meeting_id, data.todo_id, data.status_at_review
        )
    except CadenceError as e:
        raise http_error(e) from e
    response.status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
    return review


# =============================================================================
# IDS
# =============================================================================


@router.get("/{meeting_id}/issues", response_model=list[IssueDiscussedResponse])
async def list_discussed(meeting_id: UUID, current_user: OrgContextDep, service: IDSServiceDep):
    try:
        return await service.list_discussed(current_user.organization_id, meeting_id)
    except CadenceError as e:
        raise http_error(e) from e


@router.post(
    "/{meeting_id}/issues",
    response_model=IssueDiscussedResponse,
    status_code=status.HTTP_201_CREATED,
)
async def resolve_issue(
    meeting_id: UUID,
    data: ResolveIssueRequest,
    current_user: OrgContextDep,
    service: IDSServiceDep,
):
    """Record the outcome of an issue worked through IDS."""
    try:
        return await service.resolve_issue(
            current_user.organization_id,
            meeting_id,
            ResolveIssueInput(**data.model_dump()),
        )
    except CadenceError as e:
        raise http_error(e) from e


@router.get("/{meeting_id}/queue", response_model=list[QueuedIssueResponse])
async def list_queue(meeting_id: UUID, current_user: OrgContextDep, service: IDSServiceDep):
    try:
        return await service.list_queue(current_user.organization_id, meeting_id)
    except CadenceError as e:
        raise http_error(e) from e


@router.post(
    "/{meeting_id}/queue",
    response_model=QueuedIssueResponse,
    status_code=status.HTTP_201_CREATED,
)
async def queue_issue(
    meeting_id: UUID,
    data: QueueIssueRequest,
    current_user: OrgContextDep,
    service: IDSServiceDep,
):
    try:
        return await service.queue_issue(
            current_user.organization_id,
            meeting_id,
            current_user.id,
            QueueIssueInput(**data.model_dump()),
        )
    except CadenceError as e:
        raise http_error(e) from e


@router.put("/{meeting_id}/queue/reorder", response_model=list[QueuedIssueResponse])
@router.patch("/{meeting_id}/queue/reorder", response_model=list[QueuedIssueResponse])
async def reorder_queue(
    meeting_id: UUID,
    data: ReorderQueueRequest,
    current_user: OrgContextDep,
    service: IDSServiceDep,
):
    try:
        return await service.reorder_queue(current_user.organization_id, meeting_id, data.issue_ids)
    except CadenceError as e:
        raise http_error(e) from e


@router.delete("/{meeting_id}/queue/{issue_id}", response_model=SuccessResponse)
async def remove_from_queue(
    meeting_id: UUID,
    issue_id: UUID,
    current_user: OrgContextDep,
    service: IDSServiceDep,
):
    try:
        await service.remove_from_queue(current_user.organization_id, meeting_id, issue_id)
    except CadenceError as e:
        raise http_error(e) from e
    return SuccessResponse()
