"""
Slack Service: Web API calls, Block Kit replies, and Events API routing.

Handles:
- OAuth token exchange and workspace metadata (oauth.v2.access, team.info)
- Workspace member listing for email-based profile matching
- app_mention keyword routing with in-thread replies
"""

import logging
from dataclasses import dataclass
from typing import Any
from uuid import UUID

import httpx
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import get_settings
from ..core.crypto import decrypt_token
from ..models import SlackWorkspace

logger = logging.getLogger(__name__)

SLACK_API_BASE = "https://slack.com/api"


class SlackAPIError(Exception):
    """Slack returned ok=false or an HTTP error."""

    def __init__(self, method: str, error: str):
        self.method = method
        self.error = error
        super().__init__(f"Slack {method} failed: {error}")


# =============================================================================
# WEB API CLIENT
# =============================================================================


class SlackAPI:
    """Thin async wrapper over the Slack Web API methods we use."""

    def __init__(self, timeout: float = 30.0):
        self.timeout = timeout

    async def _call(
        self,
        method: str,
        token: str | None = None,
        data: dict[str, Any] | None = None,
        json_body: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            if data is not None or json_body is not None:
                response = await client.post(
                    f"{SLACK_API_BASE}/{method}", headers=headers, data=data, json=json_body
                )
            else:
                response = await client.get(
                    f"{SLACK_API_BASE}/{method}", headers=headers, params=params
                )

        payload = response.json()
        if not payload.get("ok"):
            logger.error(f"Slack API error on {method}: {payload.get('error')}")
            raise SlackAPIError(method, payload.get("error", "unknown_error"))
        return payload

    async def oauth_access(self, code: str, redirect_uri: str | None) -> dict[str, Any]:
        settings = get_settings()
        return await self._call(
            "oauth.v2.access",
            data={
                "client_id": settings.slack_client_id,
                "client_secret": settings.slack_client_secret,
                "code": code,
                "redirect_uri": redirect_uri or "",
            },
        )

    async def team_icon(self, token: str) -> str | None:
        """Workspace icon URL, or None when team.info is unavailable."""
        try:
            payload = await self._call("team.info", token=token)
        except (SlackAPIError, httpx.HTTPError) as e:
            logger.error(f"Failed to fetch Slack team info: {e}")
            return None
        icon = payload.get("team", {}).get("icon") or {}
        return icon.get("image_132") or icon.get("image_88")

    async def list_members(self, token: str) -> list[dict[str, Any]]:
        """All human, non-deleted workspace members."""
        members = []
        cursor = None
        while True:
            params: dict[str, Any] = {"limit": 200}
            if cursor:
                params["cursor"] = cursor
            payload = await self._call("users.list", token=token, params=params)

            for member in payload.get("members", []):
                if member.get("is_bot") or member.get("deleted") or member.get("id") == "USLACKBOT":
                    continue
                profile = member.get("profile", {})
                members.append({
                    "id": member.get("id"),
                    "email": profile.get("email"),
                    "display_name": (
                        profile.get("display_name") or profile.get("real_name") or member.get("name")
                    ),
                })

            cursor = payload.get("response_metadata", {}).get("next_cursor")
            if not cursor:
                break
        return members

    async def post_message(
        self,
        token: str,
        channel: str,
        text: str,
        blocks: list[dict] | None = None,
        thread_ts: str | None = None,
    ) -> dict[str, Any]:
        body: dict[str, Any] = {"channel": channel, "text": text}
        if blocks:
            body["blocks"] = blocks
        if thread_ts:
            body["thread_ts"] = thread_ts
        return await self._call("chat.postMessage", token=token, json_body=body)


# =============================================================================
# BLOCK KIT BUILDERS
# =============================================================================


class SlackBlocks:
    """Factory for the bot's Block Kit replies."""

    @staticmethod
    def help_message(app_url: str) -> list[dict]:
        return [
            {
                "type": "section",
                "text": {
                    "type": "mrkdwn",
                    "text": (
                        "*What I can do*\n\n"
                        "Mention me with one of these keywords:\n"
                        "• `help` - Show this message\n"
                        "• `rocks` - Link to this quarter's company rocks\n"
                        "• `scorecard` - Link to your team's metrics"
                    ),
                },
            },
            {
                "type": "context",
                "elements": [
                    {"type": "mrkdwn", "text": f"<{app_url}|Open Cadence>"},
                ],
            },
        ]


@dataclass
class SlackReply:
    """Message to post back into a thread."""
    channel: str
    thread_ts: str
    text: str
    blocks: list[dict] | None = None


def reply_for_mention(text: str | None, app_url: str) -> tuple[str, list[dict] | None]:
    """Keyword-route an @-mention to a canned reply."""
    text = (text or "").lower()
    if "help" in text:
        return "Hi! Here's what I can help with:", SlackBlocks.help_message(app_url)
    if "rocks" in text or "quarterly" in text:
        return f"This quarter's company rocks are here: {app_url}/rocks", None
    if "scorecard" in text or "metrics" in text:
        return f"Your team's metrics are on the scorecard: {app_url}/scorecard", None
    return "Hi! I'm Cadence. Mention me with `help` to see what I can do!", None


# =============================================================================
# EVENTS API
# =============================================================================


class SlackEventService:
    """Turns Events API payloads into replies for connected workspaces."""

    def __init__(self, session: AsyncSession, api: SlackAPI | None = None):
        self.session = session
        self.api = api or SlackAPI()

    async def get_active_workspace(self, team_id: str) -> SlackWorkspace | None:
        result = await self.session.execute(
            select(SlackWorkspace).where(
                SlackWorkspace.workspace_id == team_id,
                SlackWorkspace.is_active.is_(True),
            )
        )
        return result.scalars().first()

    async def handle_event(self, payload: dict[str, Any]) -> tuple[SlackReply, str] | None:
        """
        Resolve an event callback to (reply, bot token).

        Returns None when the event needs no reply: unknown workspace,
        unsupported event type, or a mention without a channel/ts.
        """
        event = payload.get("event")
        if not isinstance(event, dict):
            return None

        team_id = payload.get("team_id") or event.get("team")
        if not team_id:
            return None

        workspace = await self.get_active_workspace(team_id)
        if not workspace:
            logger.info(f"Ignoring Slack event for unknown workspace {team_id}")
            return None

        if event.get("type") != "app_mention":
            return None
        if not event.get("channel") or not event.get("ts"):
            return None

        text, blocks = reply_for_mention(event.get("text"), get_settings().frontend_url)
        reply = SlackReply(
            channel=event["channel"],
            thread_ts=event["ts"],
            text=text,
            blocks=blocks,
        )
        return reply, decrypt_token(workspace.access_token)

    async def send_reply(self, token: str, reply: SlackReply) -> None:
        """Post a reply in-thread. Runs as a background task, so failures are logged."""
        try:
            await self.api.post_message(
                token,
                reply.channel,
                reply.text,
                blocks=reply.blocks,
                thread_ts=reply.thread_ts,
            )
        except (SlackAPIError, httpx.HTTPError) as e:
            logger.error(f"Failed to reply to Slack mention in {reply.channel}: {e}")


async def workspace_for_org(session: AsyncSession, organization_id: UUID) -> SlackWorkspace | None:
    result = await session.execute(
        select(SlackWorkspace).where(
            SlackWorkspace.organization_id == organization_id,
            SlackWorkspace.is_active.is_(True),
        )
    )
    return result.scalars().first()
