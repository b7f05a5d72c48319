import pytest
import httpx

from tests.constants import CENTER_A_ID, STUDENT_A2_ID, CENTER_A_USER_ID, CENTER_B_USER_ID, PARENT_A_USER_ID
from tests.helpers import auth_headers


@pytest.mark.anyio
class TestCatalogsAPI:

    async def test_discipline_category_crud(self, client: httpx.AsyncClient, sandbox):
        headers = auth_headers(CENTER_A_USER_ID)
        response = await client.post(
            "/discipline-categories/",
            json={"center_id": str(CENTER_A_ID), "name": "Disruption", "default_severity": "moderate"},
            headers=headers
        )
        assert response.status_code == 201
        entry_id = response.json()["id"]

        response = await client.patch(f"/discipline-categories/{entry_id}", json={"is_active": False}, headers=headers)
        assert response.status_code == 200
        assert response.json()["is_active"] is False

        response = await client.get(
            "/discipline-categories/", params={"center_id": str(CENTER_A_ID), "active_only": True}, headers=headers
        )
        assert response.json() == []

        response = await client.delete(f"/discipline-categories/{entry_id}", headers=auth_headers(CENTER_B_USER_ID))
        assert response.status_code == 403
        response = await client.delete(f"/discipline-categories/{entry_id}", headers=headers)
        assert response.status_code == 204

    async def test_activity_types(self, client: httpx.AsyncClient, sandbox):
        headers = auth_headers(CENTER_A_USER_ID)
        response = await client.post(
            "/activity-types/", json={"center_id": str(CENTER_A_ID), "name": "Story time"}, headers=headers
        )
        assert response.status_code == 201

        response = await client.get("/activity-types/", params={"center_id": str(CENTER_A_ID)}, headers=headers)
        assert [r["name"] for r in response.json()] == ["Story time"]

        response = await client.get(
            "/activity-types/", params={"center_id": str(CENTER_A_ID)}, headers=auth_headers(PARENT_A_USER_ID)
        )
        assert response.status_code == 403


@pytest.mark.anyio
class TestParentLinksAPI:

    async def test_link_and_unlink(self, client: httpx.AsyncClient, sandbox):
        body = {"parent_user_id": str(PARENT_A_USER_ID), "student_id": str(STUDENT_A2_ID)}
        response = await client.post("/users/parent-links", json=body, headers=auth_headers(CENTER_A_USER_ID))
        assert response.status_code == 201

        response = await client.post("/users/parent-links", json=body, headers=auth_headers(CENTER_A_USER_ID))
        assert response.status_code == 400

        response = await client.request("DELETE", "/users/parent-links", json=body, headers=auth_headers(CENTER_A_USER_ID))
        assert response.status_code == 200
        assert response.json()["success"] is True
