import uuid

import pytest
from httpx import AsyncClient


async def create(client: AsyncClient, username: str) -> dict:
    resp = await client.post("/api/users", json={"username": username})
    assert resp.status_code == 201, resp.text
    return resp.json()


@pytest.mark.asyncio
class TestCreateUserEndpoint:
    """
    POST /api/users

    Fixtures used:
      - client: httpx AsyncClient bound to the app over the per-test database.
    """

    async def test_create_returns_201_with_location(self, client: AsyncClient):
        resp = await client.post("/api/users", json={"username": "alice"})

        assert resp.status_code == 201
        body = resp.json()
        assert set(body) == {"id", "username", "createdAt"}
        assert body["username"] == "alice"
        assert resp.headers["location"] == f"/api/users/{body['id']}"

    async def test_duplicate_returns_409(self, client: AsyncClient):
        await create(client, "alice")

        resp = await client.post("/api/users", json={"username": "alice"})

        assert resp.status_code == 409
        assert resp.json() == {
            "detail": "Username 'alice' already exists",
            "code": "duplicate",
            "fields": ["username"],
        }

    @pytest.mark.parametrize("payload", [{}, {"username": "ab"}, {"username": "has space"}, {"username": None}])
    async def test_invalid_body_returns_422(self, client: AsyncClient, payload):
        resp = await client.post("/api/users", json=payload)

        assert resp.status_code == 422


@pytest.mark.asyncio
class TestGetUserEndpoints:

    async def test_get_by_id(self, client: AsyncClient):
        created = await create(client, "alice")

        resp = await client.get(f"/api/users/{created['id']}")

        assert resp.status_code == 200
        assert resp.json() == created

    async def test_get_unknown_id_returns_404(self, client: AsyncClient):
        resp = await client.get(f"/api/users/{uuid.uuid4()}")

        assert resp.status_code == 404
        assert resp.json()["code"] == "not_found"

    async def test_get_malformed_id_returns_400(self, client: AsyncClient):
        resp = await client.get("/api/users/not-a-uuid")

        assert resp.status_code == 400
        assert resp.json()["code"] == "invalid_input"

    async def test_get_by_username(self, client: AsyncClient):
        created = await create(client, "alice")

        resp = await client.get("/api/users", params={"username": "alice"})

        assert resp.status_code == 200
        assert resp.json()["id"] == created["id"]

    async def test_get_by_unknown_username_returns_404(self, client: AsyncClient):
        resp = await client.get("/api/users", params={"username": "ghost"})

        assert resp.status_code == 404

    async def test_get_by_blank_username_returns_400(self, client: AsyncClient):
        resp = await client.get("/api/users", params={"username": "   "})

        assert resp.status_code == 400


@pytest.mark.asyncio
class TestListAndAvailabilityEndpoints:

    async def test_list_pages(self, client: AsyncClient):
        for name in ("alice", "bob", "carol"):
            await create(client, name)

        first = (await client.get("/api/users/list", params={"offset": 0, "limit": 2})).json()
        second = (await client.get("/api/users/list", params={"offset": 2, "limit": 2})).json()

        assert first["total"] == 3
        assert len(first["items"]) == 2
        assert len(second["items"]) == 1
        assert "createdAt" in first["items"][0]
        names = {u["username"] for u in first["items"] + second["items"]}
        assert names == {"alice", "bob", "carol"}

    async def test_list_limit_above_maximum_returns_400(self, client: AsyncClient):
        resp = await client.get("/api/users/list", params={"limit": 1000})

        assert resp.status_code == 400
        assert resp.json()["fields"] == ["limit"]

    async def test_list_negative_offset_returns_422(self, client: AsyncClient):
        resp = await client.get("/api/users/list", params={"offset": -1})

        assert resp.status_code == 422

    async def test_availability(self, client: AsyncClient):
        before = await client.get("/api/users/availability", params={"username": "alice"})
        await create(client, "alice")
        after = await client.get("/api/users/availability", params={"username": "alice"})

        assert before.json() == {"username": "alice", "available": True}
        assert after.json() == {"username": "alice", "available": False}


@pytest.mark.asyncio
class TestUpdateAndDeleteEndpoints:

    async def test_patch_username(self, client: AsyncClient):
        created = await create(client, "alice")

        resp = await client.patch(f"/api/users/{created['id']}", json={"username": "alicia"})

        assert resp.status_code == 200
        assert resp.json()["username"] == "alicia"
        assert resp.json()["id"] == created["id"]

    async def test_patch_to_taken_name_returns_409(self, client: AsyncClient):
        await create(client, "alice")
        bob = await create(client, "bob")

        resp = await client.patch(f"/api/users/{bob['id']}", json={"username": "alice"})

        assert resp.status_code == 409

    async def test_patch_unknown_user_returns_404(self, client: AsyncClient):
        resp = await client.patch(f"/api/users/{uuid.uuid4()}", json={"username": "alicia"})

        assert resp.status_code == 404

    async def test_delete_then_delete_again(self, client: AsyncClient):
        created = await create(client, "alice")

        first = await client.delete(f"/api/users/{created['id']}")
        second = await client.delete(f"/api/users/{created['id']}")

        assert first.status_code == 204
        assert second.status_code == 404
        assert (await client.get(f"/api/users/{created['id']}")).status_code == 404
