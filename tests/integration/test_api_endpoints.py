"""API endpoint integration tests.

Tests the FastAPI endpoints for timecards, audit history and readiness.
"""

from decimal import Decimal
from uuid import uuid4

from httpx import AsyncClient

from talent_logistics.events import ReadinessAreaFinalized, TimecardStatusChanged
from talent_logistics.models import ProjectLocation


class TestHealthEndpoints:
    """Test health check endpoints."""

    async def test_health_check(self, client: AsyncClient):
        response = await client.get("/health")
        assert response.status_code == 200

        data = response.json()
        assert data["status"] == "healthy"
        assert data["database"] == "healthy"

    async def test_readiness_and_liveness(self, client: AsyncClient):
        assert (await client.get("/ready")).json() == {"status": "ready"}
        assert (await client.get("/live")).json() == {"status": "alive"}


class TestAuthentication:
    async def test_missing_user_header(self, client: AsyncClient, timecard):
        response = await client.post(
            "/api/v1/timecards/submit", json={"timecardId": str(timecard.id)}
        )

        assert response.status_code == 401
        assert response.json()["code"] == "UNAUTHORIZED"

    async def test_unknown_profile(self, client: AsyncClient, timecard):
        response = await client.post(
            "/api/v1/timecards/submit",
            headers={"X-User-ID": str(uuid4())},
            json={"timecardId": str(timecard.id)},
        )

        assert response.status_code == 404
        assert response.json()["code"] == "PROFILE_NOT_FOUND"

    async def test_malformed_user_id(self, client: AsyncClient, project):
        response = await client.get(
            f"/api/v1/projects/{project.id}/readiness", headers={"X-User-ID": "not-a-uuid"}
        )
        assert response.status_code == 401


class TestTimecardEndpoints:
    async def test_owner_edit(self, client: AsyncClient, timecard, auth):
        response = await client.post(
            "/api/v1/timecards/edit",
            headers=auth["owner"],
            json={
                "timecardId": str(timecard.id),
                "dailyUpdates": {"day_0": {"check_in_time": "08:30"}},
            },
        )

        assert response.status_code == 200, response.text
        data = response.json()
        assert data["success"] is True
        assert data["changes"] == [
            {"field": "check_in", "newValue": "08:30:00", "workDate": "2026-03-02"}
        ]
        assert Decimal(data["timecard"]["total_hours"]) == Decimal("8.5")
        assert data["timecard"]["status"] == "draft"

    async def test_unchanged_edit(self, client: AsyncClient, timecard, auth):
        response = await client.post(
            "/api/v1/timecards/edit",
            headers=auth["owner"],
            json={"timecardId": str(timecard.id), "updates": {"total_hours": 8.0}},
        )

        assert response.status_code == 400
        assert response.json()["code"] == "NO_CHANGES_DETECTED"

    async def test_admin_edit_needs_note(self, client: AsyncClient, timecard, auth):
        response = await client.post(
            "/api/v1/timecards/edit",
            headers=auth["admin"],
            json={"timecardId": str(timecard.id), "updates": {"total_hours": 9}},
        )

        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"

    async def test_escort_cannot_approve(self, client: AsyncClient, timecard, auth, force_status):
        await force_status(timecard, "submitted")

        response = await client.post(
            "/api/v1/timecards/approve",
            headers=auth["other_escort"],
            json={"timecardId": str(timecard.id)},
        )

        assert response.status_code == 403
        assert response.json()["code"] == "INSUFFICIENT_PERMISSIONS"

    async def test_submit_reject_and_history(self, client: AsyncClient, timecard, auth, publisher):
        submit = await client.post(
            "/api/v1/timecards/submit",
            headers=auth["owner"],
            json={"timecardId": str(timecard.id)},
        )
        assert submit.status_code == 200, submit.text
        assert submit.json()["timecard"]["status"] == "submitted"

        reject = await client.post(
            "/api/v1/timecards/reject",
            headers=auth["admin"],
            json={"timecardId": str(timecard.id), "comments": "missing break"},
        )
        assert reject.status_code == 200, reject.text
        assert reject.json()["timecard"]["rejection_reason"] == "missing break"

        history = await client.get(
            f"/api/v1/timecards/{timecard.id}/audit-logs",
            headers=auth["owner"],
            params={"grouped": "true"},
        )
        assert history.status_code == 200, history.text
        groups = history.json()["data"]
        assert [g["action_type"] for g in groups] == ["rejection_edit", "user_edit"]
        assert {c["field_name"] for c in groups[0]["changes"]} == {"status", "rejection_reason"}
        assert history.json()["pagination"] == {
            "total": 3,
            "limit": 50,
            "offset": 0,
            "has_more": False,
        }

        statuses = [e.to_status for e in publisher.of_type(TimecardStatusChanged)]
        assert statuses == ["submitted", "rejected"]

    async def test_reject_requires_comments(self, client: AsyncClient, timecard, auth, force_status):
        await force_status(timecard, "submitted")

        response = await client.post(
            "/api/v1/timecards/reject",
            headers=auth["admin"],
            json={"timecardId": str(timecard.id), "comments": ""},
        )

        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"

    async def test_bulk_approve(self, client: AsyncClient, timecard, auth, force_status):
        await force_status(timecard, "submitted")

        response = await client.post(
            "/api/v1/timecards/approve/bulk",
            headers=auth["in_house"],
            json={"timecardIds": [str(timecard.id)], "comments": "Week closed"},
        )

        assert response.status_code == 200, response.text
        assert response.json()["approvedCount"] == 1

    async def test_missing_timecard(self, client: AsyncClient, auth):
        response = await client.post(
            "/api/v1/timecards/submit",
            headers=auth["owner"],
            json={"timecardId": str(uuid4())},
        )

        assert response.status_code == 404
        assert response.json()["code"] == "TIMECARD_NOT_FOUND"


class TestAuditLogEndpoint:
    async def _submit(self, client, timecard, auth):
        response = await client.post(
            "/api/v1/timecards/submit",
            headers=auth["owner"],
            json={"timecardId": str(timecard.id)},
        )
        assert response.status_code == 200, response.text

    async def test_other_users_are_denied(self, client: AsyncClient, timecard, auth):
        await self._submit(client, timecard, auth)

        response = await client.get(
            f"/api/v1/timecards/{timecard.id}/audit-logs", headers=auth["other_escort"]
        )
        assert response.status_code == 403

    async def test_approver_can_read_flat_list(self, client: AsyncClient, timecard, auth):
        await self._submit(client, timecard, auth)

        response = await client.get(
            f"/api/v1/timecards/{timecard.id}/audit-logs",
            headers=auth["in_house"],
            params={"action_type": "user_edit", "limit": 1},
        )

        assert response.status_code == 200, response.text
        body = response.json()
        assert len(body["data"]) == 1
        assert body["data"][0]["field_name"] == "status"
        assert body["data"][0]["new_value"] == "submitted"
        assert body["pagination"]["total"] == 1
        assert body["pagination"]["has_more"] is False

    async def test_invalid_action_type(self, client: AsyncClient, timecard, auth):
        response = await client.get(
            f"/api/v1/timecards/{timecard.id}/audit-logs",
            headers=auth["owner"],
            params={"action_type": "user_edit,deleted"},
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid query parameters"

    async def test_limit_out_of_range(self, client: AsyncClient, timecard, auth):
        response = await client.get(
            f"/api/v1/timecards/{timecard.id}/audit-logs",
            headers=auth["owner"],
            params={"limit": 500},
        )

        assert response.status_code == 400


class TestReadinessEndpoints:
    async def test_get_readiness(self, client: AsyncClient, project, auth):
        url = f"/api/v1/projects/{project.id}/readiness"

        first = await client.get(url, headers=auth["coordinator"])
        assert first.status_code == 200, first.text
        body = first.json()
        assert body["cached"] is False
        assert body["data"]["overall_status"] == "getting-started"
        assert body["data"]["todoItems"][0]["id"] == "assign-team"
        assert body["data"]["featureAvailability"]["timeTracking"]["available"] is False

        second = await client.get(url, headers=auth["coordinator"])
        assert second.json()["cached"] is True

        refreshed = await client.get(url, headers=auth["coordinator"], params={"refresh": "true"})
        assert refreshed.json()["cached"] is False

    async def test_unknown_project(self, client: AsyncClient, auth):
        response = await client.get(f"/api/v1/projects/{uuid4()}/readiness", headers=auth["admin"])

        assert response.status_code == 404
        assert response.json()["code"] == "PROJECT_NOT_FOUND"

    async def test_finalize_default_only_locations(self, client: AsyncClient, project, auth):
        response = await client.post(
            f"/api/v1/projects/{project.id}/readiness/finalize",
            headers=auth["admin"],
            json={"area": "locations"},
        )

        assert response.status_code == 400
        body = response.json()
        assert body["code"] == "CANNOT_FINALIZE"
        assert body["detail"] == (
            "Cannot finalize locations with default setup only. Add custom locations first."
        )

    async def test_finalize_invalid_area(self, client: AsyncClient, project, auth):
        response = await client.post(
            f"/api/v1/projects/{project.id}/readiness/finalize",
            headers=auth["admin"],
            json={"area": "catering"},
        )

        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"

    async def test_finalize_and_unfinalize(self, client: AsyncClient, session, project, auth, publisher):
        session.add(ProjectLocation(project_id=project.id, name="Green Room", is_default=False))
        await session.commit()
        url = f"/api/v1/projects/{project.id}/readiness/finalize"

        denied = await client.post(url, headers=auth["coordinator"], json={"area": "locations"})
        assert denied.status_code == 403

        finalized = await client.post(url, headers=auth["in_house"], json={"area": "locations"})
        assert finalized.status_code == 200, finalized.text
        assert finalized.json()["finalizedBy"] == str(auth["in_house"]["X-User-ID"])

        readiness = await client.get(
            f"/api/v1/projects/{project.id}/readiness", headers=auth["admin"]
        )
        assert readiness.json()["data"]["locations_status"] == "finalized"

        not_admin = await client.request(
            "DELETE", url, headers=auth["in_house"], json={"area": "locations"}
        )
        assert not_admin.status_code == 403

        unfinalized = await client.request(
            "DELETE", url, headers=auth["admin"], json={"area": "locations"}
        )
        assert unfinalized.status_code == 200, unfinalized.text
        assert [e.finalized for e in publisher.of_type(ReadinessAreaFinalized)] == [True, False]

    async def test_invalidate(self, client: AsyncClient, project, auth, readiness_cache):
        await client.get(f"/api/v1/projects/{project.id}/readiness", headers=auth["admin"])
        assert len(readiness_cache) == 1

        response = await client.post(
            f"/api/v1/projects/{project.id}/readiness/invalidate", headers=auth["admin"]
        )

        assert response.status_code == 200, response.text
        assert response.json()["overallStatus"] == "getting-started"
        assert len(readiness_cache) == 0
