"""API tests for user administration endpoints"""
import pytest


class TestListUsers:
    @pytest.mark.asyncio
    async def test_admin_lists_users(self, api):
        response = await api.client.get("/users", headers=api.headers("admin"))

        body = response.json()
        assert response.status_code == 200
        assert body["total"] == 4
        assert {u["email"] for u in body["users"]} == {
            "admin@example.com", "mod@example.com", "user@example.com", "other@example.com"
        }

    @pytest.mark.asyncio
    async def test_search_by_email(self, api):
        response = await api.client.get("/users?search=MOD@", headers=api.headers("admin"))

        assert [u["email"] for u in response.json()["users"]] == ["mod@example.com"]

    @pytest.mark.asyncio
    async def test_paging(self, api):
        response = await api.client.get("/users?limit=3&page=2", headers=api.headers("admin"))

        body = response.json()
        assert (body["page"], body["total_pages"], len(body["users"])) == (2, 2, 1)

    @pytest.mark.asyncio
    async def test_non_admin_forbidden(self, api):
        response = await api.client.get("/users", headers=api.headers("moderator"))
        assert response.status_code == 403


class TestCreateUser:
    @pytest.mark.asyncio
    async def test_register_moderator(self, api):
        response = await api.client.post(
            "/users",
            json={"email": "New.Mod@Example.com", "role": "moderator", "skills": ["Docker", " docker ", "Docker"]},
            headers=api.headers("admin"),
        )

        body = response.json()
        assert response.status_code == 201
        assert body["email"] == "new.mod@example.com"
        assert body["role"] == "moderator"
        assert body["skills"] == ["Docker", "docker"]

    @pytest.mark.asyncio
    async def test_duplicate_email(self, api):
        response = await api.client.post(
            "/users", json={"email": "user@example.com"}, headers=api.headers("admin")
        )
        assert response.status_code == 400
        assert response.json()["error"] == "ValidationException"
        assert "correlation_id" in response.json()

    @pytest.mark.asyncio
    async def test_invalid_role(self, api):
        response = await api.client.post(
            "/users", json={"email": "x@example.com", "role": "root"}, headers=api.headers("admin")
        )
        assert response.status_code == 422


class TestUpdateUser:
    @pytest.mark.asyncio
    async def test_promote_with_skills(self, api):
        response = await api.client.patch(
            "/users",
            json={"email": "user@example.com", "role": "moderator", "skills": ["MongoDB"]},
            headers=api.headers("admin"),
        )

        body = response.json()
        assert body["role"] == "moderator"
        assert body["skills"] == ["MongoDB"]

    @pytest.mark.asyncio
    async def test_empty_skills_keep_existing(self, api):
        response = await api.client.patch(
            "/users",
            json={"email": "mod@example.com", "role": "admin", "skills": []},
            headers=api.headers("admin"),
        )

        body = response.json()
        assert body["role"] == "admin"
        assert body["skills"] == ["React", "Node.js"]

    @pytest.mark.asyncio
    async def test_unknown_email(self, api):
        response = await api.client.patch(
            "/users", json={"email": "ghost@example.com", "role": "admin"}, headers=api.headers("admin")
        )
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_new_moderator_receives_matching_tickets(self, api):
        await api.client.patch(
            "/users",
            json={"email": "other@example.com", "role": "moderator", "skills": ["Docker"]},
            headers=api.headers("admin"),
        )

        created = await api.client.post(
            "/tickets",
            json={"title": "Build broken", "description": "docker compose fails on CI"},
            headers=api.headers("user"),
        )
        ticket_id = created.json()["ticket"]["id"]
        detail = await api.client.get(f"/tickets/{ticket_id}", headers=api.headers("admin"))

        assert detail.json()["ticket"]["assigned_to"]["email"] == "other@example.com"
