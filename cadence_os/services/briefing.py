"""Daily briefing generation.

Gathers a cross-entity snapshot of the organization (metrics, rocks, issues,
updates, alerts, to-dos, meetings, V/TO, anomalies, mentions) and asks Google
Gemini to turn it into a short morning briefing. One briefing is stored per
profile per day.

Failure modes are returned as fallback content rather than raised:
- profile_not_found: caller has no profile yet
- no_organization: profile has not finished onboarding
- api_key_missing: GEMINI_API_KEY is not configured
- generation_failed: the model call or its JSON failed
"""

import json
import logging
from dataclasses import asdict, dataclass, field
from datetime import date, datetime, timedelta
from typing import Any
from uuid import UUID, uuid4

import httpx
from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from ..core.config import get_settings
from ..models import (
    VTO,
    Alert,
    Briefing,
    Issue,
    IssueStatus,
    Meeting,
    MeetingStatus,
    Mention,
    MetricAnomaly,
    Pillar,
    Profile,
    Rock,
    Todo,
    Update,
)
from .common import NotFoundError, current_quarter, ensure_utc, gather_reads, utcnow
from .scorecard import load_metrics_with_values

logger = logging.getLogger(__name__)

PROFILE_NOT_FOUND_SUMMARY = "Your profile is being set up. Please refresh in a moment."
NO_ORGANIZATION_SUMMARY = "Complete onboarding to see your personalized briefing."
API_KEY_MISSING_SUMMARY = (
    "AI briefing generation is not configured. Please add GEMINI_API_KEY "
    "to enable AI-powered briefings."
)
GENERATION_FAILED_SUMMARY = (
    "We couldn't generate your briefing right now. Please try again in a few minutes."
)


class BriefingGenerationError(Exception):
    """The model call failed or returned something unusable."""
    pass


# =============================================================================
# DATA TRANSFER OBJECTS
# =============================================================================


@dataclass
class BriefingContext:
    """Everything the model sees when writing a briefing."""
    user: dict[str, Any]
    metrics: list[dict[str, Any]] = field(default_factory=list)
    rocks: list[dict[str, Any]] = field(default_factory=list)
    issues: list[dict[str, Any]] = field(default_factory=list)
    updates: list[dict[str, Any]] = field(default_factory=list)
    alerts: list[dict[str, Any]] = field(default_factory=list)
    pending_todos: int = 0
    upcoming_meeting: dict[str, Any] | None = None
    vto: dict[str, Any] | None = None
    anomalies: list[dict[str, Any]] = field(default_factory=list)
    mentions: list[dict[str, Any]] = field(default_factory=list)

    @property
    def unacknowledged_alerts(self) -> list[dict[str, Any]]:
        return [a for a in self.alerts if not a["acknowledged"]]

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class BriefingResult:
    """A briefing as returned to the client."""
    profile_id: UUID | None
    briefing_date: date
    content: dict[str, Any]
    generated_at: datetime
    id: UUID | None = None
    viewed_at: datetime | None = None
    is_cached: bool = False
    is_fallback: bool = False
    fallback_reason: str | None = None

    @classmethod
    def from_row(cls, row: Briefing, is_cached: bool = False) -> "BriefingResult":
        return cls(
            id=row.id,
            profile_id=row.profile_id,
            briefing_date=row.briefing_date,
            content=row.content,
            generated_at=ensure_utc(row.generated_at),
            viewed_at=ensure_utc(row.viewed_at),
            is_cached=is_cached,
        )


def fallback_content(
    greeting: str,
    summary: str,
    attention_needed: list[str] | None = None,
) -> dict[str, Any]:
    return {
        "greeting": greeting,
        "summary": summary,
        "highlights": [],
        "attention_needed": attention_needed or [],
        "opportunities": [],
        "meeting_prep": None,
    }


def greeting_for(profile: Profile | None) -> str:
    if profile and profile.full_name:
        return f"Good morning, {profile.full_name}!"
    return "Good morning!"


# =============================================================================
# MODEL CLIENT
# =============================================================================


class BriefingGenerator:
    """Writes a briefing from a BriefingContext using Google Gemini."""

    GEMINI_API_URL = "https://generativelanguage.googleapis.com/v1beta/models/gemini-2.0-flash:generateContent"

    SYSTEM_PROMPT = """You are an executive assistant helping a senior leader prepare for their day.
Generate a concise, actionable morning briefing based on the provided context.

Your response must be valid JSON matching this structure:
{
    "greeting": "A brief, personalized greeting",
    "summary": "2-3 sentence overview of the day's priorities, referencing strategic goals when relevant",
    "highlights": ["2-4 positive developments or wins"],
    "attention_needed": ["2-4 items requiring attention, ordered by urgency/impact"],
    "opportunities": ["1-2 strategic opportunities or suggestions"],
    "meeting_prep": "Prep notes if there's an upcoming meeting, otherwise null"
}

GUIDELINES:
- Be concise and direct, executives are busy
- Prioritize by business impact and alignment with the V/TO
- Use specific numbers and names when relevant
- Flag urgent items clearly, especially threshold breaches and anomalies
- Keep the tone professional but warm"""

    def __init__(self, api_key: str | None = None):
        settings = get_settings()
        self.api_key = api_key if api_key is not None else settings.gemini_api_key

    @property
    def is_configured(self) -> bool:
        """Check if Gemini API is configured."""
        return bool(self.api_key)

    async def generate(self, context: BriefingContext) -> dict[str, Any]:
        """Return briefing content. Raises BriefingGenerationError on any failure."""
        prompt = self._build_prompt(context)
        try:
            response = await self._call_gemini(prompt)
        except httpx.HTTPError as e:
            raise BriefingGenerationError(f"Gemini request failed: {e}") from e
        return self._parse_response(response)

    def _build_prompt(self, context: BriefingContext) -> str:
        user = context.user
        role = ", ".join(
            part for part in (user.get("role"), user.get("pillar"), user.get("access_level")) if part
        )
        lines = [f"Generate a morning briefing for {user.get('name')} ({role}).", ""]

        if context.vto:
            lines += [
                "STRATEGIC CONTEXT (V/TO):",
                f"- Purpose: {context.vto.get('purpose') or 'Not defined'}",
                f"- 10-Year Target: {context.vto.get('ten_year_target') or 'Not defined'}",
                f"- 1-Year Plan: {json.dumps(context.vto.get('one_year_plan') or {})}",
                "",
            ]

        lines.append(f"Metrics ({len(context.metrics)} tracked):")
        lines += [
            f"- {m['name']}: {m['current_value'] if m['current_value'] is not None else 'No data'} "
            f"(Goal: {m['goal'] if m['goal'] is not None else 'None'}, {m['status']}, "
            f"{m['trend']} trend, Owner: {m['owner']})"
            for m in context.metrics
        ] or ["No metrics data"]

        if context.anomalies:
            lines += ["", f"DATA ANOMALIES DETECTED ({len(context.anomalies)}):"]
            lines += [
                f"- [{a['severity'].upper()}] {a['metric_name']}: {a['description'] or a['type']}"
                for a in context.anomalies[:5]
            ]

        at_risk = [r for r in context.rocks if r["status"] in ("at_risk", "off_track")]
        lines += ["", f"Rocks this quarter ({len(context.rocks)}, {len(at_risk)} at risk):"]
        lines += [
            f"- {r['title']}: {r['status']} (Owner: {r['owner']}"
            + (f", Due: {r['due_date']}" if r["due_date"] else "")
            + ")"
            for r in context.rocks
        ] or ["No rocks"]

        lines += ["", f"Open Issues ({len(context.issues)}):"]
        lines += [
            f"- [Priority {i['priority']}] {i['title']} (Raised by: {i['owner'] or 'Unassigned'})"
            for i in context.issues[:5]
        ] or ["No open issues"]

        lines += ["", "Recent Updates (last 24h):"]
        lines += [
            f"- {u['author']} ({u['type']}): {(u['content'] or '')[:100]}"
            for u in context.updates[:5]
        ] or ["No recent updates"]

        unacknowledged = context.unacknowledged_alerts
        lines += ["", f"Unacknowledged Alerts ({len(unacknowledged)}):"]
        lines += [
            f"- [{a['severity'].upper()}] {a['title']}" for a in unacknowledged[:3]
        ] or ["None"]

        lines += ["", f"Pending To-Dos: {context.pending_todos}"]
        if context.upcoming_meeting:
            meeting = context.upcoming_meeting
            lines.append(f"Next Meeting: {meeting['title']} ({meeting['type']}) at {meeting['scheduled_at']}")
        else:
            lines.append("No meetings scheduled today")

        if context.mentions:
            lines += ["", f"Unread Mentions ({len(context.mentions)}):"]
            lines += [
                f"- {m['author']} mentioned you on {m['entity_type']}: \"{m['preview'][:50]}\""
                for m in context.mentions
            ]
        else:
            lines.append("No unread mentions")

        lines += ["", "Generate the briefing JSON:"]
        return "\n".join(lines)

    async def _call_gemini(self, prompt: str) -> dict[str, Any]:
        """Call Gemini API with the briefing prompt."""
        url = f"{self.GEMINI_API_URL}?key={self.api_key}"

        payload = {
            "contents": [
                {
                    "parts": [
                        {"text": self.SYSTEM_PROMPT},
                        {"text": f"\n\n{prompt}"},
                    ]
                }
            ],
            "generationConfig": {
                "temperature": 0.4,
                "maxOutputTokens": 1024,
                "responseMimeType": "application/json",
            },
        }

        async with httpx.AsyncClient(timeout=30.0) as client:
            response = await client.post(
                url,
                json=payload,
                headers={"Content-Type": "application/json"},
            )

            if response.status_code != 200:
                logger.error(f"Gemini API error: {response.status_code} - {response.text}")
                raise BriefingGenerationError(f"Gemini API error: {response.status_code}")

            try:
                return response.json()
            except ValueError as e:
                logger.error(f"Gemini returned a non-JSON body: {response.text[:200]}")
                raise BriefingGenerationError("Gemini returned a non-JSON body") from e

    def _parse_response(self, response: dict[str, Any]) -> dict[str, Any]:
        """Pull the briefing JSON out of a Gemini response."""
        try:
            if not isinstance(response, dict):
                raise ValueError("Response is not a JSON object")
            candidates = response.get("candidates", [])
            if not candidates:
                raise ValueError("No candidates in response")

            parts = candidates[0].get("content", {}).get("parts", [])
            if not parts:
                raise ValueError("No parts in response")

            text = parts[0].get("text", "")

            # Handle potential markdown code blocks
            if "```json" in text:
                text = text.split("```json")[1].split("```")[0]
            elif "```" in text:
                text = text.split("```")[1].split("```")[0]

            data = json.loads(text.strip())
            if not isinstance(data, dict):
                raise ValueError("Briefing is not a JSON object")

        except (json.JSONDecodeError, KeyError, ValueError, AttributeError, TypeError) as e:
            logger.error(f"Failed to parse Gemini response: {e}")
            logger.debug(f"Raw response: {response}")
            raise BriefingGenerationError(f"Unparseable briefing: {e}") from e

        return {
            "greeting": str(data.get("greeting") or "Good morning!"),
            "summary": str(data.get("summary") or ""),
            "highlights": list(data.get("highlights") or []),
            "attention_needed": list(data.get("attention_needed") or []),
            "opportunities": list(data.get("opportunities") or []),
            "meeting_prep": data.get("meeting_prep"),
        }


# =============================================================================
# SERVICE
# =============================================================================


class BriefingService:
    """Cached, per-day briefings for one profile at a time."""

    def __init__(
        self,
        session: AsyncSession,
        session_factory: async_sessionmaker[AsyncSession],
        generator: BriefingGenerator | None = None,
    ):
        self.session = session
        self.session_factory = session_factory
        self.generator = generator or BriefingGenerator()

    async def get_briefing(
        self,
        profile: Profile | None,
        regenerate: bool = False,
        today: date | None = None,
    ) -> BriefingResult:
        """Today's briefing for a profile, generating and storing it when needed."""
        today = today or utcnow().date()
        now = utcnow()

        if profile is None:
            return BriefingResult(
                profile_id=None,
                briefing_date=today,
                content=fallback_content(greeting_for(None), PROFILE_NOT_FOUND_SUMMARY),
                generated_at=now,
                is_fallback=True,
                fallback_reason="profile_not_found",
            )

        if profile.organization_id is None:
            return BriefingResult(
                profile_id=profile.id,
                briefing_date=today,
                content=fallback_content(greeting_for(profile), NO_ORGANIZATION_SUMMARY),
                generated_at=now,
                is_fallback=True,
                fallback_reason="no_organization",
            )

        existing = await self._get_row(profile.id, today)
        if existing and not regenerate:
            if existing.viewed_at is None:
                existing.viewed_at = now
                await self.session.flush()
            return BriefingResult.from_row(existing, is_cached=True)

        context = await self.gather_context(profile)

        if not self.generator.is_configured:
            return BriefingResult(
                profile_id=profile.id,
                briefing_date=today,
                content=fallback_content(
                    greeting_for(profile),
                    API_KEY_MISSING_SUMMARY,
                    [a["title"] for a in context.unacknowledged_alerts],
                ),
                generated_at=now,
                is_fallback=True,
                fallback_reason="api_key_missing",
            )

        try:
            content = await self.generator.generate(context)
        except BriefingGenerationError as e:
            logger.error(f"Briefing generation failed for profile {profile.id}: {e}")
            return BriefingResult(
                profile_id=profile.id,
                briefing_date=today,
                content=fallback_content(greeting_for(profile), GENERATION_FAILED_SUMMARY),
                generated_at=now,
                is_fallback=True,
                fallback_reason="generation_failed",
            )

        row = await self._upsert_row(
            profile.id,
            today,
            content=content,
            context=json.loads(json.dumps(context.to_dict(), default=str)),
            generated_at=now,
            viewed_at=now,
        )

        logger.info(f"Generated briefing for profile {profile.id} on {today.isoformat()}")
        return BriefingResult.from_row(row)

    async def _upsert_row(
        self, profile_id: UUID, briefing_date: date, **values: Any
    ) -> Briefing:
        """Insert today's row or overwrite it if another writer got there first."""
        dialect = self.session.get_bind().dialect.name
        insert = pg_insert if dialect == "postgresql" else sqlite_insert
        stmt = insert(Briefing).values(
            id=uuid4(), profile_id=profile_id, briefing_date=briefing_date, **values
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[Briefing.profile_id, Briefing.briefing_date],
            set_={key: stmt.excluded[key] for key in values},
        )
        await self.session.execute(stmt)

        row = await self._get_row(profile_id, briefing_date)
        if row is None:
            raise BriefingGenerationError("Briefing row missing after upsert")
        return row

    async def _get_row(self, profile_id: UUID, briefing_date: date) -> Briefing | None:
        result = await self.session.execute(
            select(Briefing).where(
                Briefing.profile_id == profile_id,
                Briefing.briefing_date == briefing_date,
            )
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def mark_viewed(self, profile_id: UUID, briefing_id: UUID) -> Briefing:
        result = await self.session.execute(
            select(Briefing).where(
                Briefing.id == briefing_id,
                Briefing.profile_id == profile_id,
            )
        )
        briefing = result.scalar_one_or_none()
        if not briefing:
            raise NotFoundError("Briefing not found")
        if briefing.viewed_at is None:
            briefing.viewed_at = utcnow()
            await self.session.flush()
        return briefing

    # -------------------------------------------------------------------------
    # Context
    # -------------------------------------------------------------------------

    async def gather_context(self, profile: Profile) -> BriefingContext:
        """Run the ten context reads concurrently."""
        organization_id = profile.organization_id
        profile_id = profile.id
        now = utcnow()
        yesterday = now - timedelta(hours=24)
        tomorrow = now + timedelta(hours=24)
        quarter, year = current_quarter(now.date())
        pillar_name = None
        if profile.pillar_id:
            pillar_name = await self.session.scalar(
                select(Pillar.name).where(Pillar.id == profile.pillar_id)
            )

        async def read_metrics(session: AsyncSession) -> list[dict]:
            metrics = await load_metrics_with_values(session, organization_id)
            return [
                {
                    "name": m.metric.name,
                    "current_value": m.current_value,
                    "goal": m.metric.goal,
                    "unit": m.metric.unit,
                    "trend": m.trend,
                    "status": m.status,
                    "owner": m.metric.owner.full_name if m.metric.owner else "Unknown",
                }
                for m in metrics[:20]
            ]

        async def read_rocks(session: AsyncSession) -> list[dict]:
            result = await session.execute(
                select(Rock)
                .options(selectinload(Rock.owner))
                .where(
                    Rock.organization_id == organization_id,
                    Rock.quarter == quarter,
                    Rock.year == year,
                )
            )
            return [
                {
                    "title": r.title,
                    "status": r.status.value,
                    "owner": r.owner.full_name if r.owner else "Unknown",
                    "due_date": r.due_date.isoformat() if r.due_date else None,
                }
                for r in result.scalars()
            ]

        async def read_issues(session: AsyncSession) -> list[dict]:
            result = await session.execute(
                select(Issue)
                .options(selectinload(Issue.raiser))
                .where(
                    Issue.organization_id == organization_id,
                    Issue.status != IssueStatus.RESOLVED,
                )
                .order_by(Issue.priority.asc().nulls_last())
                .limit(10)
            )
            return [
                {
                    "title": i.title,
                    "priority": i.priority,
                    "owner": i.raiser.full_name if i.raiser else None,
                }
                for i in result.scalars()
            ]

        async def read_updates(session: AsyncSession) -> list[dict]:
            result = await session.execute(
                select(Update)
                .options(selectinload(Update.author))
                .where(
                    Update.organization_id == organization_id,
                    Update.created_at >= yesterday,
                )
                .order_by(Update.created_at.desc())
                .limit(10)
            )
            return [
                {
                    "author": u.author.full_name if u.author else "Unknown",
                    "type": u.update_type,
                    "content": u.content,
                }
                for u in result.scalars()
            ]

        async def read_alerts(session: AsyncSession) -> list[dict]:
            result = await session.execute(
                select(Alert)
                .options(selectinload(Alert.acknowledgments))
                .where(
                    Alert.organization_id == organization_id,
                    Alert.created_at >= yesterday,
                )
                .order_by(Alert.created_at.desc())
                .limit(10)
            )
            return [
                {
                    "title": a.title,
                    "severity": a.severity,
                    "acknowledged": any(ack.profile_id == profile_id for ack in a.acknowledgments),
                }
                for a in result.scalars()
            ]

        async def read_pending_todos(session: AsyncSession) -> int:
            count = await session.scalar(
                select(func.count(Todo.id)).where(
                    Todo.organization_id == organization_id,
                    Todo.owner_id == profile_id,
                    Todo.completed_at.is_(None),
                )
            )
            return count or 0

        async def read_next_meeting(session: AsyncSession) -> dict | None:
            result = await session.execute(
                select(Meeting)
                .where(
                    Meeting.organization_id == organization_id,
                    Meeting.status == MeetingStatus.SCHEDULED,
                    Meeting.scheduled_at >= now,
                    Meeting.scheduled_at <= tomorrow,
                )
                .order_by(Meeting.scheduled_at.asc())
                .limit(1)
            )
            meeting = result.scalar_one_or_none()
            if not meeting:
                return None
            return {
                "title": meeting.title,
                "type": meeting.meeting_type.value,
                "scheduled_at": ensure_utc(meeting.scheduled_at).isoformat(),
            }

        async def read_vto(session: AsyncSession) -> dict | None:
            result = await session.execute(
                select(VTO).where(VTO.organization_id == organization_id)
            )
            vto = result.scalar_one_or_none()
            if not vto:
                return None
            return {
                "purpose": vto.purpose,
                "niche": vto.niche,
                "core_values": vto.core_values or [],
                "ten_year_target": vto.ten_year_target,
                "three_year_picture": vto.three_year_picture,
                "one_year_plan": vto.one_year_plan,
            }

        async def read_anomalies(session: AsyncSession) -> list[dict]:
            result = await session.execute(
                select(MetricAnomaly)
                .options(selectinload(MetricAnomaly.metric))
                .where(
                    MetricAnomaly.organization_id == organization_id,
                    MetricAnomaly.resolved_at.is_(None),
                )
                .order_by(MetricAnomaly.detected_at.desc())
                .limit(10)
            )
            return [
                {
                    "metric_name": a.metric.name if a.metric else "Unknown",
                    "type": a.anomaly_type,
                    "severity": a.severity,
                    "description": a.description,
                }
                for a in result.scalars()
            ]

        async def read_mentions(session: AsyncSession) -> list[dict]:
            result = await session.execute(
                select(Mention)
                .options(selectinload(Mention.mentioner))
                .where(
                    Mention.mentioned_profile_id == profile_id,
                    Mention.read_at.is_(None),
                )
                .order_by(Mention.created_at.desc())
                .limit(5)
            )
            return [
                {
                    "author": m.mentioner.full_name if m.mentioner else "Someone",
                    "entity_type": m.entity_type,
                    "preview": (m.content or "")[:100],
                }
                for m in result.scalars()
            ]

        (
            metrics,
            rocks,
            issues,
            updates,
            alerts,
            pending_todos,
            upcoming_meeting,
            vto,
            anomalies,
            mentions,
        ) = await gather_reads(
            self.session_factory,
            read_metrics,
            read_rocks,
            read_issues,
            read_updates,
            read_alerts,
            read_pending_todos,
            read_next_meeting,
            read_vto,
            read_anomalies,
            read_mentions,
        )

        return BriefingContext(
            user={
                "name": profile.full_name,
                "role": profile.role or profile.title,
                "pillar": pillar_name,
                "access_level": profile.access_level.value,
            },
            metrics=metrics,
            rocks=rocks,
            issues=issues,
            updates=updates,
            alerts=alerts,
            pending_todos=pending_todos,
            upcoming_meeting=upcoming_meeting,
            vto=vto,
            anomalies=anomalies,
            mentions=mentions,
        )
