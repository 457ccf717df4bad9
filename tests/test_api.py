"""
HTTP-level tests: status codes, error bodies and access control.
"""

import pytest
from uuid import uuid4

from cadence_os.core.config import get_settings
from cadence_os.core.dependencies import get_optional_profile
from cadence_os.main import app


# =============================================================================
# ERROR MODEL
# =============================================================================


class TestErrors:
    async def test_unauthenticated(self, client):
        app.dependency_overrides.pop(get_optional_profile)

        response = await client.get("/l10")

        assert response.status_code == 401
        assert response.json() == {"error": "Unauthorized"}

    async def test_unknown_meeting(self, client):
        response = await client.get(f"/l10/{uuid4()}")

        assert response.status_code == 404
        assert response.json() == {"error": "Meeting not found"}

    async def test_request_validation_is_400(self, client):
        response = await client.post("/todos", json={"title": "Ship", "due_date": "someday"})

        assert response.status_code == 400
        assert response.json()["error"].startswith("due_date: ")

    async def test_service_validation_is_400(self, client):
        response = await client.post("/issues", json={"description": "no title"})

        assert response.status_code == 400
        assert response.json() == {"error": "Title is required"}

    async def test_health(self, client):
        response = await client.get("http://test/health")

        assert response.json()["status"] == "healthy"


# =============================================================================
# MEETINGS
# =============================================================================


class TestMeetingsAPI:
    async def create(self, client, **overrides):
        body = {"title": "Leadership L10", "scheduled_at": "2030-03-03T09:00:00Z"}
        body.update(overrides)
        return await client.post("/l10", json=body)

    async def test_create_start_end(self, client):
        created = await self.create(client)
        assert created.status_code == 201
        meeting_id = created.json()["id"]
        assert len(created.json()["agenda_items"]) == 7

        started = await client.post(f"/l10/{meeting_id}/start")
        assert started.status_code == 200
        assert started.json()["status"] == "in_progress"

        ended = await client.post(f"/l10/{meeting_id}/end", json={"rating": 8})
        assert ended.status_code == 200
        assert ended.json()["status"] == "completed"
        assert ended.json()["rating"] == 8
        assert ended.json()["notes"]

    async def test_end_before_start_is_400(self, client):
        meeting_id = (await self.create(client)).json()["id"]

        response = await client.post(f"/l10/{meeting_id}/end")

        assert response.status_code == 400
        assert response.json() == {"error": "Cannot end meeting with status: scheduled"}

    async def test_rating_out_of_range(self, client):
        meeting_id = (await self.create(client)).json()["id"]
        await client.post(f"/l10/{meeting_id}/start")

        response = await client.post(f"/l10/{meeting_id}/end", json={"rating": 11})

        assert response.status_code == 400
        assert response.json()["error"].startswith("rating: ")

    async def test_invalid_meeting_type(self, client):
        response = await self.create(client, meeting_type="offsite")

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid meeting_type: offsite"}

    async def test_member_cannot_delete(self, client, member):
        meeting_id = (await self.create(client)).json()["id"]
        client.auth_state.profile = member

        response = await client.delete(f"/l10/{meeting_id}")

        assert response.status_code == 403
        assert response.json() == {"error": "Forbidden - Admin access required"}

    async def test_admin_deletes(self, client):
        meeting_id = (await self.create(client)).json()["id"]

        response = await client.delete(f"/l10/{meeting_id}")

        assert response.status_code == 204
        assert (await client.get(f"/l10/{meeting_id}")).status_code == 404

    async def test_queue_and_resolve(self, client):
        meeting_id = (await self.create(client)).json()["id"]

        queued = await client.post(f"/l10/{meeting_id}/queue", json={"title": "Hiring plan"})
        assert queued.status_code == 201
        issue_id = queued.json()["id"]

        resolved = await client.post(
            f"/l10/{meeting_id}/issues",
            json={"issue_id": issue_id, "outcome": "solved", "decision_notes": "Hire two AEs"},
        )
        assert resolved.status_code == 201
        assert resolved.json()["issue"]["status"] == "resolved"

        queue = await client.get(f"/l10/{meeting_id}/queue")
        assert queue.json() == []


# =============================================================================
# WORK ITEMS AND TEAM
# =============================================================================


class TestWorkAPI:
    async def test_issue_lifecycle(self, client, admin):
        created = await client.post("/issues", json={"title": "Churn spike", "priority": 1})
        assert created.status_code == 201
        assert created.json()["raised_by"] == str(admin.id)
        assert created.json()["status"] == "open"
        issue_id = created.json()["id"]

        listed = await client.get("/issues")
        assert [i["id"] for i in listed.json()] == [issue_id]

        deleted = await client.delete(f"/issues/{issue_id}")
        assert deleted.status_code == 204

    async def test_todo_defaults_owner_to_caller(self, client, member):
        client.auth_state.profile = member

        created = await client.post("/todos", json={"title": "Send deck", "due_date": "2030-03-07"})

        assert created.status_code == 201
        assert created.json()["owner_id"] == str(member.id)

    async def test_other_members_cannot_edit_todo(self, client, member, elt):
        client.auth_state.profile = member
        todo_id = (await client.post("/todos", json={"title": "Send deck"})).json()["id"]
        client.auth_state.profile = elt

        response = await client.patch(f"/todos/{todo_id}", json={"is_complete": True})

        assert response.status_code == 403


class TestTeamAPI:
    async def test_admin_creates_pillar(self, client):
        response = await client.post("/pillars", json={"name": "Customer Success"})

        assert response.status_code == 201
        assert response.json()["slug"] == "customer-success"

    async def test_member_cannot_create_pillar(self, client, member):
        client.auth_state.profile = member

        response = await client.post("/pillars", json={"name": "Sales"})

        assert response.status_code == 403

    async def test_invite_then_deactivate(self, client):
        invited = await client.post(
            "/team-members", json={"email": "Nina@Acme.test", "full_name": "Nina New"}
        )
        assert invited.status_code == 201
        assert invited.json()["email"] == "nina@acme.test"
        assert invited.json()["status"] == "invited"

        deactivated = await client.delete(f"/team-members/{invited.json()['id']}")
        assert deactivated.status_code == 200
        assert deactivated.json()["status"] == "inactive"


# =============================================================================
# DATA SOURCES AND BRIEFINGS
# =============================================================================


class TestDataSourcesAPI:
    async def test_create_hubspot_source(self, client):
        response = await client.post(
            "/data-sources",
            json={
                "name": "New deals",
                "source_type": "hubspot",
                "hubspot_object": "deals",
                "hubspot_property": "amount",
                "hubspot_aggregation": "sum",
            },
        )

        assert response.status_code == 201
        assert response.json()["metrics_count"] == 0

    async def test_bigquery_needs_placeholders(self, client):
        response = await client.post(
            "/data-sources",
            json={
                "name": "Signups",
                "source_type": "bigquery",
                "bigquery_query": "SELECT COUNT(*) AS n FROM signups",
                "bigquery_value_column": "n",
            },
        )

        assert response.status_code == 400
        assert "placeholders" in response.json()["error"]


class TestBriefingsAPI:
    async def test_missing_api_key_falls_back(self, client, monkeypatch):
        monkeypatch.setattr(get_settings(), "gemini_api_key", "")

        response = await client.get("/briefings")

        assert response.status_code == 200
        assert response.json()["is_fallback"] is True
        assert response.json()["fallback_reason"] == "api_key_missing"

    async def test_signed_out_gets_fallback(self, client):
        client.auth_state.profile = None

        response = await client.get("/briefings")

        assert response.status_code == 200
        assert response.json()["fallback_reason"] == "profile_not_found"

    @pytest.mark.parametrize("path", ["/metrics", "/rocks", "/goals", "/integrations"])
    async def test_listings_respond(self, client, path):
        response = await client.get(path)

        assert response.status_code == 200
