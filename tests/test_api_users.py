"""HTTP tests for the admin users router."""

import pytest

from conftest import PASSWORD
from festauth.services.users import ROLE_CHANGED_EVENT


async def _login(client, identifier):
    r = await client.post(
        "/api/v1/auth/login", json={"identifier": identifier, "password": PASSWORD}
    )
    assert r.status_code == 200


@pytest.mark.asyncio
async def test_requires_session(client):
    r = await client.get("/api/v1/users")
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_requires_admin(client, make_user):
    await make_user()
    await _login(client, "alice")

    r = await client.get("/api/v1/users")

    assert r.status_code == 403


@pytest.mark.asyncio
async def test_list_hides_shadow_users(client, make_user):
    await make_user("boss", role="admin")
    await make_user()
    await make_user("hidden", is_shadow_user=True)
    await _login(client, "boss")

    r = await client.get("/api/v1/users")
    assert r.status_code == 200
    assert r.json()["total"] == 2
    assert {u["username"] for u in r.json()["items"]} == {"boss", "alice"}
    assert all("password_hash" not in u for u in r.json()["items"])

    r = await client.get("/api/v1/users", params={"include_shadow": True})
    assert r.json()["total"] == 3

    r = await client.get("/api/v1/users", params={"shadow_only": True})
    assert [u["username"] for u in r.json()["items"]] == ["hidden"]


@pytest.mark.asyncio
async def test_create_user(client, make_user):
    await make_user("boss", role="admin")
    await _login(client, "boss")

    r = await client.post(
        "/api/v1/users",
        json={"name": "Eve", "email": "eve@example.com", "password": "long-enough-pw", "role": "admin"},
    )

    assert r.status_code == 201
    assert r.json()["data"]["role"] == "admin"


@pytest.mark.asyncio
async def test_change_role_broadcasts(client, make_user, broadcaster):
    await make_user("boss", role="admin")
    alice = await make_user()
    await _login(client, "boss")

    r = await client.patch(f"/api/v1/users/{alice.id}/role", json={"role": "admin"})

    assert r.status_code == 200
    assert r.json()["data"]["role"] == "admin"
    broadcaster.broadcast.assert_awaited_once_with(
        ROLE_CHANGED_EVENT, {"userId": str(alice.id), "newRole": "admin"}
    )


@pytest.mark.asyncio
async def test_cannot_demote_self(client, make_user):
    boss = await make_user("boss", role="admin")
    await _login(client, "boss")

    r = await client.patch(f"/api/v1/users/{boss.id}/role", json={"role": "user"})

    assert r.status_code == 400
    assert r.json()["error"] == "cannot_demote_self"


@pytest.mark.asyncio
async def test_invalid_role_rejected(client, make_user):
    await make_user("boss", role="admin")
    alice = await make_user()
    await _login(client, "boss")

    r = await client.patch(f"/api/v1/users/{alice.id}/role", json={"role": "superuser"})

    assert r.status_code == 422


@pytest.mark.asyncio
async def test_change_shadow_status(client, make_user):
    await make_user("boss", role="admin")
    alice = await make_user()
    await _login(client, "boss")

    r = await client.patch(f"/api/v1/users/{alice.id}/shadow", json={"is_shadow_user": True})
    assert r.status_code == 200
    assert r.json()["data"]["is_shadow_user"] is True

    r = await client.get("/api/v1/users")
    assert "alice" not in {u["username"] for u in r.json()["items"]}


@pytest.mark.asyncio
async def test_unknown_user_is_404(client, make_user):
    await make_user("boss", role="admin")
    await _login(client, "boss")

    r = await client.patch(
        "/api/v1/users/0b5e6b1c-0000-4000-8000-000000000000/shadow", json={"is_shadow_user": True}
    )

    assert r.status_code == 404


@pytest.mark.asyncio
async def test_admin_triggered_password_reset(client, make_user, mailer):
    await make_user("boss", role="admin")
    alice = await make_user()
    await _login(client, "boss")

    r = await client.post(f"/api/v1/users/{alice.id}/password-reset")

    assert r.status_code == 200
    mailer.send_password_reset.assert_awaited_once()
    assert mailer.send_password_reset.call_args.args[0] == "alice@example.com"
