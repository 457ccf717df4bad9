"""
Tests for daily briefings: fallbacks, caching, and the pre-generation job.
"""

import pytest
from datetime import date, datetime, timezone

import httpx
from sqlalchemy import select

from cadence_os.jobs.briefing_cron import generate_briefings, list_recipients
from cadence_os.models import AccessLevel, Alert, Briefing, ProfileStatus, Todo
from cadence_os.services.briefing import (
    API_KEY_MISSING_SUMMARY,
    GENERATION_FAILED_SUMMARY,
    NO_ORGANIZATION_SUMMARY,
    PROFILE_NOT_FOUND_SUMMARY,
    BriefingContext,
    BriefingGenerationError,
    BriefingGenerator,
    BriefingService,
)
from cadence_os.services.common import NotFoundError

CONTENT = {
    "greeting": "Good morning, Alice!",
    "summary": "Revenue is ahead of plan.",
    "highlights": ["Closed Acme"],
    "attention_needed": [],
    "opportunities": [],
    "meeting_prep": None,
}


class StubGenerator(BriefingGenerator):
    """Returns canned content and remembers what it was asked."""

    def __init__(self, content=None, error: Exception | None = None):
        super().__init__(api_key="test-key")
        self.content = content or CONTENT
        self.error = error
        self.contexts: list[BriefingContext] = []

    async def generate(self, context: BriefingContext) -> dict:
        self.contexts.append(context)
        if self.error:
            raise self.error
        return dict(self.content)


def gemini_response(text: str) -> dict:
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


# =============================================================================
# FALLBACKS
# =============================================================================


class TestFallbacks:
    async def test_missing_profile(self, session, session_factory):
        result = await BriefingService(session, session_factory, StubGenerator()).get_briefing(None)

        assert result.is_fallback is True
        assert result.fallback_reason == "profile_not_found"
        assert result.content["greeting"] == "Good morning!"
        assert result.content["summary"] == PROFILE_NOT_FOUND_SUMMARY

    async def test_profile_without_organization(self, session, session_factory, profile_factory):
        profile = profile_factory(None, "Nina New", AccessLevel.SLT)

        result = await BriefingService(session, session_factory, StubGenerator()).get_briefing(profile)

        assert result.fallback_reason == "no_organization"
        assert result.content["greeting"] == "Good morning, Nina New!"
        assert result.content["summary"] == NO_ORGANIZATION_SUMMARY

    async def test_api_key_missing_lists_unacknowledged_alerts(self, session, session_factory, org, admin):
        session.add(Alert(organization_id=org.id, title="Server down", created_at=datetime.now(timezone.utc)))
        await session.commit()

        service = BriefingService(session, session_factory, BriefingGenerator(api_key=""))
        result = await service.get_briefing(admin)

        assert result.fallback_reason == "api_key_missing"
        assert result.content["summary"] == API_KEY_MISSING_SUMMARY
        assert result.content["attention_needed"] == ["Server down"]
        assert await session.scalar(select(Briefing.id)) is None

    async def test_generation_failure_is_not_stored(self, session, session_factory, admin):
        generator = StubGenerator(error=BriefingGenerationError("Gemini API error: 500"))

        result = await BriefingService(session, session_factory, generator).get_briefing(admin)

        assert result.fallback_reason == "generation_failed"
        assert result.content["summary"] == GENERATION_FAILED_SUMMARY
        assert await session.scalar(select(Briefing.id)) is None


# =============================================================================
# GENERATION AND CACHING
# =============================================================================


class TestGetBriefing:
    async def test_generates_and_stores(self, session, session_factory, org, admin):
        session.add(Todo(organization_id=org.id, title="Send deck", owner_id=admin.id))
        await session.commit()
        generator = StubGenerator()

        result = await BriefingService(session, session_factory, generator).get_briefing(admin)

        assert result.is_fallback is False
        assert result.is_cached is False
        assert result.content == CONTENT
        assert result.viewed_at is not None
        assert generator.contexts[0].pending_todos == 1
        assert generator.contexts[0].user["name"] == "Alice Admin"

        row = await session.scalar(select(Briefing).where(Briefing.profile_id == admin.id))
        assert row.context["pending_todos"] == 1

    async def test_second_call_is_served_from_cache(self, session, session_factory, admin):
        generator = StubGenerator()
        service = BriefingService(session, session_factory, generator)
        first = await service.get_briefing(admin)
        await session.commit()

        second = await service.get_briefing(admin)

        assert second.is_cached is True
        assert second.id == first.id
        assert len(generator.contexts) == 1

    async def test_regenerate_overwrites_todays_row(self, session, session_factory, admin):
        service = BriefingService(session, session_factory, StubGenerator())
        first = await service.get_briefing(admin)
        await session.commit()

        service.generator = StubGenerator({**CONTENT, "summary": "Fresh take."})
        second = await service.get_briefing(admin, regenerate=True)

        assert second.is_cached is False
        assert second.id == first.id
        assert second.content["summary"] == "Fresh take."

    async def test_one_row_per_day(self, session, session_factory, admin):
        service = BriefingService(session, session_factory, StubGenerator())
        await service.get_briefing(admin, today=date(2025, 3, 3))
        await session.commit()
        await service.get_briefing(admin, today=date(2025, 3, 4))

        dates = (await session.execute(select(Briefing.briefing_date))).scalars().all()
        assert sorted(dates) == [date(2025, 3, 3), date(2025, 3, 4)]

    async def test_concurrent_first_writers_share_one_row(
        self, session, session_factory, admin, monkeypatch
    ):
        first = await BriefingService(session, session_factory, StubGenerator()).get_briefing(admin)
        await session.commit()

        async with session_factory() as other:
            late = BriefingService(
                other, session_factory, StubGenerator({**CONTENT, "summary": "Second writer."})
            )
            real_get_row = late._get_row
            reads = []

            async def stale_first_read(profile_id, briefing_date):
                reads.append(briefing_date)
                if len(reads) == 1:
                    return None
                return await real_get_row(profile_id, briefing_date)

            monkeypatch.setattr(late, "_get_row", stale_first_read)
            second = await late.get_briefing(admin)
            await other.commit()

        assert second.id == first.id
        assert second.content["summary"] == "Second writer."
        rows = (await session.execute(select(Briefing.id))).scalars().all()
        assert rows == [first.id]

    async def test_mark_viewed_other_profile(self, session, session_factory, admin, member):
        service = BriefingService(session, session_factory, StubGenerator())
        result = await service.get_briefing(admin)

        with pytest.raises(NotFoundError, match="Briefing not found"):
            await service.mark_viewed(member.id, result.id)


# =============================================================================
# MODEL RESPONSE PARSING
# =============================================================================


class TestParseResponse:
    def test_plain_json(self):
        content = BriefingGenerator(api_key="k")._parse_response(
            gemini_response('{"greeting": "Hi", "summary": "All good", "highlights": ["A"]}')
        )

        assert content == {
            "greeting": "Hi",
            "summary": "All good",
            "highlights": ["A"],
            "attention_needed": [],
            "opportunities": [],
            "meeting_prep": None,
        }

    def test_fenced_json(self):
        content = BriefingGenerator(api_key="k")._parse_response(
            gemini_response('```json\n{"summary": "Fenced"}\n```')
        )

        assert content["summary"] == "Fenced"
        assert content["greeting"] == "Good morning!"

    def test_no_candidates(self):
        with pytest.raises(BriefingGenerationError):
            BriefingGenerator(api_key="k")._parse_response({"candidates": []})

    def test_non_object(self):
        with pytest.raises(BriefingGenerationError):
            BriefingGenerator(api_key="k")._parse_response(gemini_response("[1, 2]"))

    def test_response_not_an_object(self):
        with pytest.raises(BriefingGenerationError):
            BriefingGenerator(api_key="k")._parse_response(["candidates"])

    async def test_non_json_body_falls_back(self, session, session_factory, admin, monkeypatch):
        async def html_page(self, url, **kwargs):
            return httpx.Response(200, text="<html>oops</html>")

        monkeypatch.setattr(httpx.AsyncClient, "post", html_page)
        service = BriefingService(session, session_factory, BriefingGenerator(api_key="k"))

        result = await service.get_briefing(admin)

        assert result.fallback_reason == "generation_failed"
        assert result.content["summary"] == GENERATION_FAILED_SUMMARY
        assert await session.scalar(select(Briefing.id)) is None

    def test_not_configured_without_key(self):
        assert BriefingGenerator(api_key="").is_configured is False
        assert BriefingGenerator(api_key="k").is_configured is True


# =============================================================================
# PRE-GENERATION JOB
# =============================================================================


class TestBriefingJob:
    async def test_recipients_are_active_opted_in_members(
        self, session, org, admin, elt, member, profile_factory
    ):
        elt.receives_briefing = False
        member.status = ProfileStatus.INACTIVE
        session.add(profile_factory(None, "Nina New", AccessLevel.SLT))
        await session.commit()

        recipients = await list_recipients(session)

        assert [p.id for p in recipients] == [admin.id]

    async def test_generates_for_each_recipient(self, session_factory, admin, member):
        results = await generate_briefings(session_factory, StubGenerator())

        assert results["profiles"] == 2
        assert results["generated"] == 2
        assert results["failed"] == 0

        again = await generate_briefings(session_factory, StubGenerator())
        assert again["cached"] == 2

    async def test_fallbacks_are_counted(self, session_factory, admin):
        generator = StubGenerator(error=BriefingGenerationError("boom"))

        results = await generate_briefings(session_factory, generator)

        assert results["fallbacks"] == 1
        assert results["errors"] == [f"{admin.id}: generation_failed"]
