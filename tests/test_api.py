"""
HTTP API tests: authentication, task routes, error bodies and the admin
dashboard.
"""

import pytest
from httpx import AsyncClient

from taskdesk.config import settings
from taskdesk.db import base as db_base
from taskdesk.db.repositories import AdminActionRepository
from taskdesk.images.store import ImageStoreError

from conftest import TEST_PASSWORD, auth_headers

PNG_DATA_URI = "data:image/png;base64,iVBORw0KGgoAAAANSUhEUg=="


def session_token(response) -> str:
    """Pull the session token out of the Set-Cookie header."""
    header = response.headers["set-cookie"]
    name, _, rest = header.partition("=")
    assert name == settings.session_cookie_name
    return rest.split(";", 1)[0]


async def audit_actions() -> list[str]:
    async with db_base.get_session() as session:
        rows = await AdminActionRepository(session).list_recent(limit=100)
    return [action.action for action, _ in rows]


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    response = await client.get("/api/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


@pytest.mark.asyncio
async def test_signup_sets_cookie_and_hides_hash(client: AsyncClient):
    response = await client.post(
        "/api/auth/signup",
        json={"username": "carol", "email": "carol@example.com", "password": "hunter22"},
    )
    client.cookies.clear()

    assert response.status_code == 201
    body = response.json()
    assert body["username"] == "carol"
    assert body["role"] == "user"
    assert "password" not in body and "password_hash" not in body

    token = session_token(response)
    me = await client.get("/api/auth/me", headers={"Cookie": f"jwt={token}"})
    assert me.status_code == 200
    assert me.json()["username"] == "carol"


@pytest.mark.asyncio
async def test_signup_validation_error_body(client: AsyncClient):
    response = await client.post(
        "/api/auth/signup",
        json={"username": "carol", "email": "nope", "password": "hunter22"},
    )

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid email format"}


@pytest.mark.asyncio
async def test_overlong_password_is_400(client: AsyncClient, users):
    response = await client.post(
        "/api/auth/signup",
        json={"username": "carol", "email": "carol@example.com", "password": "p" * 100},
    )
    assert response.status_code == 400
    assert response.json() == {"error": "Password must be at most 72 bytes long"}

    changed = await client.put(
        "/api/profile/password",
        json={"currentPassword": TEST_PASSWORD, "newPassword": "p" * 100},
        headers=auth_headers(users["alice"]),
    )
    assert changed.status_code == 400
    assert changed.json() == {"error": "Password must be at most 72 bytes long"}


@pytest.mark.asyncio
async def test_login_and_logout(client: AsyncClient, users):
    bad = await client.post("/api/auth/login", json={"username": "alice", "password": "nope!!"})
    assert bad.status_code == 401
    assert bad.json() == {"error": "Invalid username or password"}

    good = await client.post(
        "/api/auth/login", json={"username": "alice", "password": TEST_PASSWORD}
    )
    client.cookies.clear()
    assert good.status_code == 200
    assert good.json()["id"] == str(users["alice"].id)
    assert "HttpOnly" in good.headers["set-cookie"]

    out = await client.post("/api/auth/logout")
    assert out.status_code == 200
    assert out.json() == {"message": "Logged out successfully"}


@pytest.mark.asyncio
async def test_admin_session_events_are_audited(client: AsyncClient, users, dispatcher):
    login = await client.post(
        "/api/auth/login", json={"username": "root", "password": TEST_PASSWORD}
    )
    client.cookies.clear()
    token = session_token(login)

    await client.post(
        "/api/auth/signup",
        json={"username": "carol", "email": "carol@example.com", "password": "hunter22"},
        headers={"Cookie": f"jwt={token}"},
    )
    await client.post("/api/auth/logout", headers={"Cookie": f"jwt={token}"})
    client.cookies.clear()

    # a regular user's login is not audited
    await client.post("/api/auth/login", json={"username": "alice", "password": TEST_PASSWORD})
    client.cookies.clear()
    await dispatcher.drain()

    assert sorted(await audit_actions()) == ["Admin login", "Admin logout", "Created new user"]


@pytest.mark.asyncio
async def test_task_routes_require_authentication(client: AsyncClient):
    for method, path in [
        ("GET", "/api/tasks"),
        ("POST", "/api/tasks"),
        ("GET", "/api/tasks/search?q=x"),
        ("GET", "/api/tasks/00000000-0000-0000-0000-000000000000"),
    ]:
        response = await client.request(method, path)
        assert response.status_code == 401, path
        assert "error" in response.json()


@pytest.mark.asyncio
async def test_invalid_token_is_unauthorized(client: AsyncClient):
    response = await client.get("/api/tasks", headers={"Authorization": "Bearer garbage"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_task_lifecycle(client: AsyncClient, users, image_store):
    headers = auth_headers(users["alice"])

    created = await client.post(
        "/api/tasks",
        json={"title": "Write report", "dueDate": "2030-01-01", "image": PNG_DATA_URI},
        headers=headers,
    )
    assert created.status_code == 201
    task = created.json()
    assert task["status"] == "pending"
    assert task["priority"] == "medium"
    assert task["image"] == "https://img.test/tasks/1.png"
    assert task["due_date"].startswith("2030-01-01T00:00:00")

    fetched = await client.get(f"/api/tasks/{task['id']}", headers=headers)
    assert fetched.json() == task

    updated = await client.put(
        f"/api/tasks/{task['id']}",
        json={"status": "completed", "owner_id": str(users["bob"].id)},
        headers=headers,
    )
    assert updated.status_code == 200
    assert updated.json()["status"] == "completed"
    assert updated.json()["owner_id"] == str(users["alice"].id)

    listed = await client.get("/api/tasks", params={"status": "completed"}, headers=headers)
    assert listed.json()["total"] == 1
    assert listed.json()["pages"] == 1

    found = await client.get("/api/tasks/search", params={"q": "REPORT"}, headers=headers)
    assert [t["id"] for t in found.json()] == [task["id"]]

    deleted = await client.delete(f"/api/tasks/{task['id']}", headers=headers)
    assert deleted.json() == {"message": "Task deleted successfully."}

    gone = await client.get(f"/api/tasks/{task['id']}", headers=headers)
    assert gone.status_code == 404
    assert gone.json() == {"error": "Task not found."}


@pytest.mark.asyncio
async def test_other_users_tasks_are_not_found(client: AsyncClient, users):
    created = await client.post(
        "/api/tasks", json={"title": "private"}, headers=auth_headers(users["alice"])
    )
    task_id = created.json()["id"]
    bob = auth_headers(users["bob"])

    assert (await client.get(f"/api/tasks/{task_id}", headers=bob)).status_code == 404
    assert (
        await client.put(f"/api/tasks/{task_id}", json={"title": "x"}, headers=bob)
    ).status_code == 404
    assert (await client.delete(f"/api/tasks/{task_id}", headers=bob)).status_code == 404
    assert (await client.get("/api/tasks", headers=bob)).json()["total"] == 0


@pytest.mark.asyncio
async def test_bad_input_is_400(client: AsyncClient, users):
    headers = auth_headers(users["alice"])

    bad_id = await client.get("/api/tasks/not-a-uuid", headers=headers)
    assert bad_id.json() == {"error": "Invalid task ID."}
    assert bad_id.status_code == 400

    assert (await client.post("/api/tasks", json={}, headers=headers)).status_code == 400
    assert (
        await client.get("/api/tasks", params={"page": "abc"}, headers=headers)
    ).status_code == 400
    assert (
        await client.get("/api/tasks", params={"page": 0}, headers=headers)
    ).status_code == 400
    assert (await client.get("/api/tasks/search", headers=headers)).status_code == 400


@pytest.mark.asyncio
async def test_upload_failure_is_reported(client: AsyncClient, users, image_store):
    image_store.fail_with = ImageStoreError("boom")
    response = await client.post(
        "/api/tasks",
        json={"title": "t", "image": PNG_DATA_URI},
        headers=auth_headers(users["alice"]),
    )

    assert response.status_code == 400
    assert response.json() == {"error": "Failed to upload image.", "details": "boom"}
    listed = await client.get("/api/tasks", headers=auth_headers(users["alice"]))
    assert listed.json()["total"] == 0


@pytest.mark.asyncio
async def test_admin_task_mutation_is_audited(client: AsyncClient, users, dispatcher):
    admin = auth_headers(users["admin"])

    created = await client.post("/api/tasks", json={"title": "admin task"}, headers=admin)
    await client.get(f"/api/tasks/{created.json()['id']}", headers=admin)
    await client.post("/api/tasks", json={"title": "user task"}, headers=auth_headers(users["alice"]))
    await dispatcher.drain()

    assert await audit_actions() == ["Created task"]


@pytest.mark.asyncio
async def test_profile_update_and_password_change(client: AsyncClient, users, image_store):
    headers = auth_headers(users["alice"])

    response = await client.put(
        "/api/profile",
        json={"username": "alicia", "profileImg": PNG_DATA_URI},
        headers=headers,
    )
    assert response.status_code == 200
    assert response.json()["username"] == "alicia"
    assert response.json()["profile_img"] == "https://img.test/profile_pics/1.png"

    changed = await client.put(
        "/api/profile/password",
        json={"currentPassword": TEST_PASSWORD, "newPassword": "brand-new"},
        headers=headers,
    )
    assert changed.status_code == 200

    login = await client.post(
        "/api/auth/login", json={"username": "alicia", "password": "brand-new"}
    )
    client.cookies.clear()
    assert login.status_code == 200


@pytest.mark.asyncio
async def test_dashboard_is_admin_only(client: AsyncClient, users):
    anonymous = await client.get("/api/admin/dashboard")
    assert anonymous.status_code == 401

    forbidden = await client.get("/api/admin/dashboard", headers=auth_headers(users["alice"]))
    assert forbidden.status_code == 403
    assert forbidden.json() == {"error": "Access denied. Admins only."}

    await client.post("/api/tasks", json={"title": "t"}, headers=auth_headers(users["alice"]))
    allowed = await client.get("/api/admin/dashboard", headers=auth_headers(users["admin"]))
    assert allowed.status_code == 200
    body = allowed.json()
    assert body["user_count"] == 3
    assert body["admin_count"] == 1
    assert body["task_count"] == 1
    assert body["most_active_users"][0]["username"] == "alice"
