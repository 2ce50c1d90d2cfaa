"""
API tests for the team controller.
"""

import pytest
from fastapi import status
from httpx import AsyncClient

from tests.factories import TeamPayloadFactory


async def _create_team(client, headers, **overrides):
    response = await client.post("/api/teams", headers=headers, json=TeamPayloadFactory(**overrides))
    assert response.status_code == status.HTTP_201_CREATED
    return response.json()


class TestTeams:
    @pytest.mark.asyncio
    async def test_create_and_list(self, client: AsyncClient, test_user):
        created = await _create_team(client, test_user["headers"], name="Design")

        teams = (await client.get("/api/teams", headers=test_user["headers"])).json()

        assert [t["id"] for t in teams] == [created["id"]]
        assert teams[0]["name"] == "Design"
        assert teams[0]["member_count"] == 1
        assert teams[0]["creator_name"] == test_user["username"]

    @pytest.mark.asyncio
    async def test_blank_name_rejected(self, client: AsyncClient, test_user):
        response = await client.post("/api/teams", headers=test_user["headers"], json={"name": "   "})
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    @pytest.mark.asyncio
    async def test_invite_flow(self, client: AsyncClient, test_user, test_user_2):
        team = await _create_team(client, test_user["headers"])

        response = await client.post(
            f"/api/teams/{team['id']}/invite", headers=test_user["headers"], json={"email": test_user_2["email"]}
        )
        assert response.status_code == status.HTTP_201_CREATED

        members = (await client.get("/api/teams/members", headers=test_user_2["headers"])).json()
        assert {(m["username"], m["role"]) for m in members} == {("alice", "admin"), ("bob", "member")}

        notifications = (await client.get("/api/notifications", headers=test_user_2["headers"])).json()
        assert notifications[0]["category"] == "team"

        again = await client.post(
            f"/api/teams/{team['id']}/invite", headers=test_user["headers"], json={"email": test_user_2["email"]}
        )
        assert again.status_code == status.HTTP_400_BAD_REQUEST

    @pytest.mark.asyncio
    async def test_invite_by_non_member_forbidden(self, client: AsyncClient, test_user, test_user_2):
        team = await _create_team(client, test_user["headers"])

        response = await client.post(
            f"/api/teams/{team['id']}/invite", headers=test_user_2["headers"], json={"email": test_user_2["email"]}
        )
        assert response.status_code == status.HTTP_403_FORBIDDEN

    @pytest.mark.asyncio
    async def test_invite_unknown_email(self, client: AsyncClient, test_user):
        team = await _create_team(client, test_user["headers"])

        response = await client.post(
            f"/api/teams/{team['id']}/invite", headers=test_user["headers"], json={"email": "ghost@example.com"}
        )
        assert response.status_code == status.HTTP_404_NOT_FOUND

    @pytest.mark.asyncio
    async def test_delete_team_owner_only(self, client: AsyncClient, test_user, test_user_2):
        team = await _create_team(client, test_user["headers"])
        await client.post(
            f"/api/teams/{team['id']}/invite",
            headers=test_user["headers"],
            json={"email": test_user_2["email"], "role": "admin"},
        )

        forbidden = await client.delete(f"/api/teams/{team['id']}", headers=test_user_2["headers"])
        assert forbidden.status_code == status.HTTP_403_FORBIDDEN

        deleted = await client.delete(f"/api/teams/{team['id']}", headers=test_user["headers"])
        assert deleted.status_code == status.HTTP_200_OK
        assert (await client.get("/api/teams", headers=test_user_2["headers"])).json() == []

    @pytest.mark.asyncio
    async def test_delete_missing_team(self, client: AsyncClient, test_user):
        response = await client.delete("/api/teams/4242", headers=test_user["headers"])
        assert response.status_code == status.HTTP_404_NOT_FOUND

    @pytest.mark.asyncio
    async def test_remove_member(self, client: AsyncClient, test_user, test_user_2):
        team = await _create_team(client, test_user["headers"])
        await client.post(
            f"/api/teams/{team['id']}/invite", headers=test_user["headers"], json={"email": test_user_2["email"]}
        )

        owner_removal = await client.delete(
            f"/api/teams/{team['id']}/members/{test_user['id']}", headers=test_user["headers"]
        )
        assert owner_removal.status_code == status.HTTP_400_BAD_REQUEST

        response = await client.delete(
            f"/api/teams/{team['id']}/members/{test_user_2['id']}", headers=test_user["headers"]
        )
        assert response.status_code == status.HTTP_200_OK

        missing = await client.delete(
            f"/api/teams/{team['id']}/members/{test_user_2['id']}", headers=test_user["headers"]
        )
        assert missing.status_code == status.HTTP_404_NOT_FOUND
