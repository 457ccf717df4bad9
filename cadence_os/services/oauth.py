"""
OAuth Service: Slack workspace and Google Calendar connections.

Each handshake is two requests. The authorize step stores a short-lived
oauth_states row and hands back the provider URL; the callback consumes
that row, exchanges the code, and stores the encrypted tokens.

Callbacks never raise. Every failure becomes a redirect to the settings
page with an `error` code the frontend knows how to display.
"""

import logging
import secrets
from dataclasses import dataclass
from datetime import timedelta
from typing import Any
from urllib.parse import urlencode
from uuid import UUID

import httpx
from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import get_settings
from ..core.crypto import TokenEncryptionError, encrypt_token
from ..models import (
    IntegrationType,
    OAuthState,
    Profile,
    SlackUserMapping,
    SlackWorkspace,
    UserIntegration,
)
from .common import CadenceError, ValidationError, ensure_utc, utcnow
from .slack import SlackAPI, SlackAPIError, workspace_for_org

logger = logging.getLogger(__name__)

STATE_TTL = timedelta(minutes=10)

SLACK_AUTHORIZE_URL = "https://slack.com/oauth/v2/authorize"
SLACK_BOT_SCOPES = [
    "chat:write",
    "chat:write.public",
    "commands",
    "channels:read",
    "users:read",
    "users:read.email",
    "team:read",
]

GOOGLE_AUTHORIZE_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_URL = "https://www.googleapis.com/oauth2/v2/userinfo"
GOOGLE_CALENDAR_SCOPES = [
    "https://www.googleapis.com/auth/calendar.events",
    "https://www.googleapis.com/auth/calendar.readonly",
]


class IntegrationNotConfiguredError(CadenceError):
    """Provider client credentials are missing from settings."""
    pass


class OAuthCallbackError(Exception):
    """Callback failure carrying the redirect error code."""

    def __init__(self, code: str):
        self.code = code
        super().__init__(code)


def settings_redirect(**params: str) -> str:
    """Settings page URL with success/error query params."""
    return f"{get_settings().integrations_redirect_base}?{urlencode(params)}"


@dataclass
class ConsumedState:
    organization_id: UUID
    profile_id: UUID
    redirect_uri: str | None


# =============================================================================
# STATE ROWS
# =============================================================================


class OAuthStateStore:
    """Create and consume oauth_states rows."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self,
        organization_id: UUID,
        profile_id: UUID,
        integration_type: str,
        redirect_uri: str,
    ) -> str:
        state = secrets.token_hex(32)
        self.session.add(
            OAuthState(
                state=state,
                organization_id=organization_id,
                profile_id=profile_id,
                integration_type=integration_type,
                redirect_uri=redirect_uri,
                expires_at=utcnow() + STATE_TTL,
            )
        )
        await self.session.flush()
        return state

    async def consume(self, state: str, integration_type: str) -> ConsumedState:
        """Delete the row and return its payload; expired rows are deleted too."""
        result = await self.session.execute(
            select(OAuthState).where(
                OAuthState.state == state,
                OAuthState.integration_type == integration_type,
            )
        )
        row = result.scalar_one_or_none()
        if not row:
            raise OAuthCallbackError("invalid_state")

        consumed = ConsumedState(
            organization_id=row.organization_id,
            profile_id=row.profile_id,
            redirect_uri=row.redirect_uri,
        )
        expired = ensure_utc(row.expires_at) < utcnow()

        await self.session.execute(delete(OAuthState).where(OAuthState.id == row.id))
        await self.session.flush()

        if expired:
            raise OAuthCallbackError("state_expired")
        return consumed

    async def purge_expired(self) -> int:
        result = await self.session.execute(
            delete(OAuthState).where(OAuthState.expires_at < utcnow())
        )
        return result.rowcount or 0


# =============================================================================
# SLACK
# =============================================================================


class SlackOAuthService:
    """Connect one Slack workspace per organization."""

    def __init__(self, session: AsyncSession, api: SlackAPI | None = None):
        self.session = session
        self.api = api or SlackAPI()
        self.states = OAuthStateStore(session)

    @staticmethod
    def redirect_uri() -> str:
        settings = get_settings()
        return settings.slack_redirect_uri or settings.callback_url("/integrations/slack/callback")

    async def authorization_url(self, organization_id: UUID, profile_id: UUID) -> str:
        settings = get_settings()
        if not settings.slack_enabled:
            raise IntegrationNotConfiguredError("Slack integration not configured")

        existing = await workspace_for_org(self.session, organization_id)
        if existing:
            raise ValidationError("Slack already connected")

        redirect_uri = self.redirect_uri()
        state = await self.states.create(
            organization_id, profile_id, IntegrationType.SLACK.value, redirect_uri
        )
        params = {
            "client_id": settings.slack_client_id,
            "scope": ",".join(SLACK_BOT_SCOPES),
            "redirect_uri": redirect_uri,
            "state": state,
        }
        return f"{SLACK_AUTHORIZE_URL}?{urlencode(params)}"

    async def handle_callback(
        self, code: str | None, state: str | None, error: str | None
    ) -> str:
        """Finish the handshake and return the settings-page redirect URL."""
        try:
            await self._complete(code, state, error)
        except OAuthCallbackError as e:
            logger.warning(f"Slack OAuth callback failed: {e.code}")
            return settings_redirect(error=e.code)
        except Exception:
            logger.exception("Unexpected error in Slack OAuth callback")
            return settings_redirect(error="unexpected_error")
        return settings_redirect(success="slack_connected")

    async def _complete(self, code: str | None, state: str | None, error: str | None) -> None:
        if error:
            raise OAuthCallbackError("slack_oauth_denied")
        if not code or not state:
            raise OAuthCallbackError("missing_params")

        consumed = await self.states.consume(state, IntegrationType.SLACK.value)

        try:
            payload = await self.api.oauth_access(code, consumed.redirect_uri)
        except (SlackAPIError, httpx.HTTPError) as e:
            logger.error(f"Slack token exchange failed: {e}")
            raise OAuthCallbackError("token_exchange_failed") from e

        team = payload.get("team") or {}
        bot_token = payload.get("access_token")
        if not team.get("id") or not bot_token:
            raise OAuthCallbackError("invalid_response")

        icon = await self.api.team_icon(bot_token)

        try:
            async with self.session.begin_nested():
                workspace = SlackWorkspace(
                    organization_id=consumed.organization_id,
                    workspace_id=team["id"],
                    workspace_name=team.get("name"),
                    workspace_icon=icon,
                    access_token=encrypt_token(bot_token),
                    bot_user_id=payload.get("bot_user_id"),
                    scope=payload.get("scope"),
                    installed_by=consumed.profile_id,
                    is_active=True,
                )
                self.session.add(workspace)
        except (SQLAlchemyError, TokenEncryptionError) as e:
            logger.error(f"Failed to save Slack workspace {team['id']}: {e}")
            raise OAuthCallbackError("save_failed") from e

        logger.info(
            f"Slack workspace {team.get('name')} ({team['id']}) connected "
            f"for org {consumed.organization_id}"
        )

        try:
            await self.sync_user_mappings(consumed.organization_id, bot_token)
        except (SlackAPIError, httpx.HTTPError) as e:
            logger.error(f"Failed to sync Slack users for org {consumed.organization_id}: {e}")

    async def sync_user_mappings(self, organization_id: UUID, bot_token: str) -> int:
        """Upsert a mapping per workspace member, matched to profiles by email."""
        members = await self.api.list_members(bot_token)

        result = await self.session.execute(
            select(Profile.id, Profile.email).where(Profile.organization_id == organization_id)
        )
        profiles_by_email = {email.lower(): profile_id for profile_id, email in result.all()}

        result = await self.session.execute(
            select(SlackUserMapping).where(SlackUserMapping.organization_id == organization_id)
        )
        existing = {m.slack_user_id: m for m in result.scalars()}

        matched = 0
        for member in members:
            email = (member.get("email") or "").lower() or None
            profile_id = profiles_by_email.get(email) if email else None
            if profile_id:
                matched += 1

            mapping = existing.get(member["id"])
            if mapping is None:
                mapping = SlackUserMapping(
                    organization_id=organization_id,
                    slack_user_id=member["id"],
                )
                self.session.add(mapping)
            mapping.slack_email = email
            mapping.slack_display_name = member.get("display_name")
            if profile_id:
                mapping.profile_id = profile_id
                mapping.match_method = "auto_email"

        await self.session.flush()
        logger.info(
            f"Synced {len(members)} Slack users for org {organization_id} ({matched} matched)"
        )
        return matched

    async def status(self, organization_id: UUID) -> dict[str, Any]:
        workspace = await workspace_for_org(self.session, organization_id)
        if not workspace:
            return {"connected": False, "workspace": None}

        total = await self.session.scalar(
            select(func.count(SlackUserMapping.id)).where(
                SlackUserMapping.organization_id == organization_id
            )
        )
        matched = await self.session.scalar(
            select(func.count(SlackUserMapping.id)).where(
                SlackUserMapping.organization_id == organization_id,
                SlackUserMapping.profile_id.is_not(None),
            )
        )
        return {
            "connected": True,
            "workspace": {
                "id": workspace.id,
                "workspace_id": workspace.workspace_id,
                "workspace_name": workspace.workspace_name,
                "workspace_icon": workspace.workspace_icon,
                "connected_at": ensure_utc(workspace.created_at),
            },
            "user_mappings": {"total": total or 0, "matched": matched or 0},
        }

    async def disconnect(self, organization_id: UUID) -> bool:
        workspace = await workspace_for_org(self.session, organization_id)
        if not workspace:
            return False
        workspace.is_active = False
        await self.session.flush()
        logger.info(f"Slack workspace {workspace.workspace_id} disconnected for org {organization_id}")
        return True


# =============================================================================
# GOOGLE CALENDAR
# =============================================================================


class GoogleCalendarOAuthService:
    """Per-user Google Calendar connection."""

    def __init__(self, session: AsyncSession, timeout: float = 30.0):
        self.session = session
        self.timeout = timeout
        self.states = OAuthStateStore(session)

    @staticmethod
    def redirect_uri() -> str:
        settings = get_settings()
        return settings.google_redirect_uri or settings.callback_url(
            "/integrations/google-calendar/callback"
        )

    async def authorization_url(self, organization_id: UUID, profile_id: UUID) -> str:
        settings = get_settings()
        if not settings.google_enabled:
            raise IntegrationNotConfiguredError("Google Calendar integration not configured")

        redirect_uri = self.redirect_uri()
        state = await self.states.create(
            organization_id, profile_id, IntegrationType.GOOGLE_CALENDAR.value, redirect_uri
        )
        params = {
            "client_id": settings.google_client_id,
            "redirect_uri": redirect_uri,
            "response_type": "code",
            "scope": " ".join(GOOGLE_CALENDAR_SCOPES),
            "access_type": "offline",
            "prompt": "consent",
            "state": state,
        }
        return f"{GOOGLE_AUTHORIZE_URL}?{urlencode(params)}"

    async def handle_callback(
        self, code: str | None, state: str | None, error: str | None
    ) -> str:
        try:
            await self._complete(code, state, error)
        except OAuthCallbackError as e:
            logger.warning(f"Google Calendar OAuth callback failed: {e.code}")
            return settings_redirect(error=e.code)
        except Exception:
            logger.exception("Unexpected error in Google Calendar OAuth callback")
            return settings_redirect(error="unexpected_error")
        return settings_redirect(success="google_calendar_connected")

    async def _exchange_code(self, code: str, redirect_uri: str | None) -> dict[str, Any]:
        settings = get_settings()
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(
                GOOGLE_TOKEN_URL,
                data={
                    "code": code,
                    "client_id": settings.google_client_id,
                    "client_secret": settings.google_client_secret,
                    "redirect_uri": redirect_uri or self.redirect_uri(),
                    "grant_type": "authorization_code",
                },
            )
        if response.status_code != 200:
            logger.error(f"Google token exchange failed: {response.status_code} - {response.text}")
            raise OAuthCallbackError("token_exchange_failed")
        tokens = response.json()
        if not tokens.get("access_token"):
            raise OAuthCallbackError("token_exchange_failed")
        return tokens

    async def _account_email(self, access_token: str) -> str | None:
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(
                    GOOGLE_USERINFO_URL,
                    headers={"Authorization": f"Bearer {access_token}"},
                )
            if response.status_code == 200:
                return response.json().get("email")
            logger.error(f"Google userinfo request failed: {response.status_code}")
        except httpx.HTTPError as e:
            logger.error(f"Google userinfo request failed: {e}")
        return None

    async def _complete(self, code: str | None, state: str | None, error: str | None) -> None:
        if error:
            raise OAuthCallbackError("google_oauth_denied")
        if not code or not state:
            raise OAuthCallbackError("missing_params")

        consumed = await self.states.consume(state, IntegrationType.GOOGLE_CALENDAR.value)

        try:
            tokens = await self._exchange_code(code, consumed.redirect_uri)
        except httpx.HTTPError as e:
            logger.error(f"Google token exchange failed: {e}")
            raise OAuthCallbackError("token_exchange_failed") from e

        email = await self._account_email(tokens["access_token"])
        expires_at = None
        if tokens.get("expires_in"):
            expires_at = utcnow() + timedelta(seconds=int(tokens["expires_in"]))
        scopes = tokens["scope"].split(" ") if tokens.get("scope") else GOOGLE_CALENDAR_SCOPES

        try:
            async with self.session.begin_nested():
                result = await self.session.execute(
                    select(UserIntegration).where(
                        UserIntegration.profile_id == consumed.profile_id,
                        UserIntegration.integration_type == IntegrationType.GOOGLE_CALENDAR.value,
                    )
                )
                integration = result.scalar_one_or_none()
                if integration is None:
                    integration = UserIntegration(
                        profile_id=consumed.profile_id,
                        organization_id=consumed.organization_id,
                        integration_type=IntegrationType.GOOGLE_CALENDAR.value,
                    )
                    self.session.add(integration)

                integration.access_token = encrypt_token(tokens["access_token"])
                # Google omits the refresh token on re-consent; keep the stored one.
                if tokens.get("refresh_token"):
                    integration.refresh_token = encrypt_token(tokens["refresh_token"])
                integration.token_expires_at = expires_at
                integration.external_account_email = email
                integration.scopes = scopes
                integration.status = "active"
        except (SQLAlchemyError, TokenEncryptionError) as e:
            logger.error(f"Failed to save Google Calendar tokens for {consumed.profile_id}: {e}")
            raise OAuthCallbackError("save_failed") from e

        logger.info(f"Google Calendar connected for profile {consumed.profile_id}")

    async def _get(self, profile_id: UUID) -> UserIntegration | None:
        result = await self.session.execute(
            select(UserIntegration).where(
                UserIntegration.profile_id == profile_id,
                UserIntegration.integration_type == IntegrationType.GOOGLE_CALENDAR.value,
            )
        )
        return result.scalar_one_or_none()

    async def status(self, profile_id: UUID) -> dict[str, Any]:
        integration = await self._get(profile_id)
        if not integration or integration.status != "active":
            return {"connected": False, "email": None}
        return {
            "connected": True,
            "email": integration.external_account_email,
            "expires_at": ensure_utc(integration.token_expires_at),
        }

    async def disconnect(self, profile_id: UUID) -> bool:
        integration = await self._get(profile_id)
        if not integration:
            return False
        integration.status = "disconnected"
        integration.access_token = None
        integration.refresh_token = None
        await self.session.flush()
        logger.info(f"Google Calendar disconnected for profile {profile_id}")
        return True
