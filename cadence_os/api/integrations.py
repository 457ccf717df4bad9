"""Integration Router for stored integrations, Slack and Google Calendar.

Provides the per-organization integration records, the Slack and Google
Calendar OAuth handshakes, and the Slack Events webhook.
"""

import json
import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, Header, HTTPException, Request, Response, status
from fastapi.responses import RedirectResponse

from ..core import AdminDep, OrgContextDep, SessionDep
from ..core.security import verify_slack_signature
from ..schemas import (
    AuthorizationUrlResponse,
    IntegrationResponse,
    IntegrationUpdate,
    IntegrationUpsert,
    SuccessResponse,
)
from ..services.common import CadenceError
from ..services.integrations import IntegrationService
from ..services.oauth import GoogleCalendarOAuthService, SlackOAuthService
from ..services.slack import SlackEventService
from .errors import http_error

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/integrations", tags=["integrations"])


def get_integration_service(session: SessionDep) -> IntegrationService:
    return IntegrationService(session)


def get_slack_oauth_service(session: SessionDep) -> SlackOAuthService:
    return SlackOAuthService(session)


def get_google_oauth_service(session: SessionDep) -> GoogleCalendarOAuthService:
    return GoogleCalendarOAuthService(session)


def get_slack_event_service(session: SessionDep) -> SlackEventService:
    return SlackEventService(session)


IntegrationServiceDep = Annotated[IntegrationService, Depends(get_integration_service)]
SlackOAuthDep = Annotated[SlackOAuthService, Depends(get_slack_oauth_service)]
GoogleOAuthDep = Annotated[GoogleCalendarOAuthService, Depends(get_google_oauth_service)]
SlackEventDep = Annotated[SlackEventService, Depends(get_slack_event_service)]


# =============================================================================
# SLACK OAUTH
# =============================================================================


@router.get("/slack/oauth", response_model=AuthorizationUrlResponse)
async def slack_oauth(current_user: AdminDep, service: SlackOAuthDep):
    """
    Start the Slack install.

    Creates a single-use state row and returns the URL the frontend
    should send the admin to.
    """
    try:
        url = await service.authorization_url(current_user.organization_id, current_user.id)
    except CadenceError as e:
        raise http_error(e) from e
    return AuthorizationUrlResponse(authorization_url=url)


@router.get("/slack/callback")
async def slack_oauth_callback(
    service: SlackOAuthDep,
    code: str | None = None,
    state: str | None = None,
    error: str | None = None,
):
    """Slack redirects here; we always bounce back to the settings page."""
    redirect_url = await service.handle_callback(code, state, error)
    return RedirectResponse(url=redirect_url, status_code=status.HTTP_302_FOUND)


@router.get("/slack/status")
async def slack_status(current_user: OrgContextDep, service: SlackOAuthDep):
    return await service.status(current_user.organization_id)


@router.delete("/slack", response_model=SuccessResponse)
async def slack_disconnect(current_user: AdminDep, service: SlackOAuthDep):
    disconnected = await service.disconnect(current_user.organization_id)
    if not disconnected:
        raise HTTPException(status_code=404, detail="Slack not connected")
    return SuccessResponse()


# =============================================================================
# SLACK EVENTS WEBHOOK
# =============================================================================


@router.post("/slack/events")
async def slack_events(
    request: Request,
    background_tasks: BackgroundTasks,
    service: SlackEventDep,
    x_slack_signature: Annotated[str | None, Header()] = None,
    x_slack_request_timestamp: Annotated[str | None, Header()] = None,
):
    """
    Handle Slack Events API callbacks.

    The url_verification handshake is answered before the signature check
    so the endpoint can be registered. Replies to mentions are posted in a
    background task so Slack gets its acknowledgement within 3 seconds.
    """
    body = await request.body()
    try:
        payload = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise HTTPException(status_code=400, detail="Invalid JSON")
    if not isinstance(payload, dict):
        raise HTTPException(status_code=400, detail="Invalid JSON")

    if payload.get("type") == "url_verification":
        return {"challenge": payload.get("challenge")}

    if not verify_slack_signature(body, x_slack_request_timestamp, x_slack_signature):
        raise HTTPException(status_code=401, detail="Invalid Slack signature")

    if payload.get("type") == "event_callback":
        routed = await service.handle_event(payload)
        if routed:
            reply, token = routed
            background_tasks.add_task(service.send_reply, token, reply)

    return {"ok": True}


# =============================================================================
# GOOGLE CALENDAR OAUTH
# =============================================================================


@router.get("/google-calendar/oauth", response_model=AuthorizationUrlResponse)
async def google_calendar_oauth(current_user: OrgContextDep, service: GoogleOAuthDep):
    try:
        url = await service.authorization_url(current_user.organization_id, current_user.id)
    except CadenceError as e:
        raise http_error(e) from e
    return AuthorizationUrlResponse(authorization_url=url)


@router.get("/google-calendar/callback")
async def google_calendar_callback(
    service: GoogleOAuthDep,
    code: str | None = None,
    state: str | None = None,
    error: str | None = None,
):
    redirect_url = await service.handle_callback(code, state, error)
    return RedirectResponse(url=redirect_url, status_code=status.HTTP_302_FOUND)


@router.get("/google-calendar/status")
async def google_calendar_status(current_user: OrgContextDep, service: GoogleOAuthDep):
    return await service.status(current_user.id)


@router.delete("/google-calendar", response_model=SuccessResponse)
async def google_calendar_disconnect(current_user: OrgContextDep, service: GoogleOAuthDep):
    disconnected = await service.disconnect(current_user.id)
    if not disconnected:
        raise HTTPException(status_code=404, detail="Google Calendar not connected")
    return SuccessResponse()


# =============================================================================
# STORED INTEGRATIONS
# =============================================================================


@router.get("", response_model=list[IntegrationResponse])
async def list_integrations(current_user: AdminDep, service: IntegrationServiceDep):
    return await service.list_integrations(current_user.organization_id)


@router.post("", response_model=IntegrationResponse, status_code=status.HTTP_201_CREATED)
async def upsert_integration(
    data: IntegrationUpsert,
    current_user: AdminDep,
    service: IntegrationServiceDep,
):
    """Create the organization's integration of this type, or replace it."""
    try:
        return await service.upsert_integration(
            current_user.organization_id, data.model_dump(exclude_unset=True)
        )
    except CadenceError as e:
        raise http_error(e) from e


@router.get("/{integration_id}", response_model=IntegrationResponse)
async def get_integration(
    integration_id: UUID,
    current_user: AdminDep,
    service: IntegrationServiceDep,
):
    try:
        return await service.get_integration(current_user.organization_id, integration_id)
    except CadenceError as e:
        raise http_error(e) from e


@router.patch("/{integration_id}", response_model=IntegrationResponse)
async def update_integration(
    integration_id: UUID,
    data: IntegrationUpdate,
    current_user: AdminDep,
    service: IntegrationServiceDep,
):
    try:
        return await service.update_integration(
            current_user.organization_id, integration_id, data.model_dump(exclude_unset=True)
        )
    except CadenceError as e:
        raise http_error(e) from e


@router.delete("/{integration_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_integration(
    integration_id: UUID,
    current_user: AdminDep,
    service: IntegrationServiceDep,
):
    try:
        await service.delete_integration(current_user.organization_id, integration_id)
    except CadenceError as e:
        raise http_error(e) from e
    return Response(status_code=status.HTTP_204_NO_CONTENT)
