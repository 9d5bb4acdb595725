"""HTTP tests for the auth and password-reset routers."""

from urllib.parse import parse_qs, urlparse

import pytest

from conftest import PASSWORD


async def _login(client, identifier, password=PASSWORD):
    return await client.post(
        "/api/v1/auth/login", json={"identifier": identifier, "password": password}
    )


@pytest.mark.asyncio
async def test_health(client):
    r = await client.get("/health")
    assert r.status_code == 200
    assert r.json()["status"] == "ok"


@pytest.mark.asyncio
async def test_login_sets_cookie_and_session(client, make_user, settings):
    alice = await make_user()

    r = await _login(client, "alice")
    assert r.status_code == 200
    body = r.json()
    assert body["success"] is True
    assert body["user"]["id"] == str(alice.id)
    assert client.cookies.get(settings.auth_cookie_name)

    set_cookie = r.headers["set-cookie"].lower()
    assert "httponly" in set_cookie
    assert "samesite=lax" in set_cookie
    assert "max-age=604800" in set_cookie

    r = await client.get("/api/v1/auth/session")
    assert r.json()["authenticated"] is True
    assert r.json()["user"]["username"] == "alice"


@pytest.mark.asyncio
async def test_login_failure_is_401(client, make_user):
    await make_user()

    r = await _login(client, "alice", "wrong-password")

    assert r.status_code == 401
    assert r.json()["error"] == "invalid_credentials"


@pytest.mark.asyncio
async def test_locked_account_is_423(client, make_user, settings):
    await make_user()
    for _ in range(settings.lockout_threshold):
        await _login(client, "alice", "wrong-password")

    r = await _login(client, "alice")

    assert r.status_code == 423
    assert r.json()["error"] == "account_locked"


@pytest.mark.asyncio
async def test_logout_ends_session(client, make_user, settings):
    await make_user()
    await _login(client, "alice")

    r = await client.post("/api/v1/auth/logout")
    assert r.status_code == 200
    assert not client.cookies.get(settings.auth_cookie_name)

    r = await client.get("/api/v1/auth/session")
    assert r.json() == {"authenticated": False, "user": None}


@pytest.mark.asyncio
async def test_refresh_without_cookie_is_401(client):
    r = await client.post("/api/v1/auth/refresh")
    assert r.status_code == 401
    assert r.json()["error"] == "invalid_token"


@pytest.mark.asyncio
async def test_refresh_with_session(client, make_user):
    await make_user()
    await _login(client, "alice")

    r = await client.post("/api/v1/auth/refresh")

    assert r.status_code == 200
    assert r.json()["user"]["username"] == "alice"


@pytest.mark.asyncio
async def test_register(client):
    payload = {"name": "Carla", "email": "carla@example.com", "password": "long-enough-pw"}

    r = await client.post("/api/v1/auth/register", json=payload)
    assert r.status_code == 201
    assert r.json()["data"]["role"] == "user"

    r = await client.post("/api/v1/auth/register", json=payload)
    assert r.status_code == 409
    assert r.json()["error"] == "user_already_exists"


@pytest.mark.asyncio
async def test_register_validation(client):
    r = await client.post(
        "/api/v1/auth/register",
        json={"name": "Dan", "email": "dan@example.com", "password": "short"},
    )
    assert r.status_code == 422
    assert r.json()["error"] == "weak_password"

    r = await client.post(
        "/api/v1/auth/register",
        json={"name": "Dan", "email": "not-an-email", "password": "long-enough-pw"},
    )
    assert r.status_code == 422


@pytest.mark.asyncio
async def test_impersonation_round_trip(client, make_user):
    boss = await make_user("boss", role="admin")
    alice = await make_user()
    await _login(client, "boss")

    r = await client.get("/api/v1/auth/session/admin")
    assert r.json()["authenticated"] is True

    r = await client.post(f"/api/v1/auth/become/{alice.id}")
    assert r.status_code == 200
    assert r.json()["user"]["is_temporary_session"] is True
    assert "max-age=7200" in r.headers["set-cookie"].lower()

    r = await client.get("/api/v1/auth/session/temporary")
    assert r.json() == {"is_temporary_session": True}
    r = await client.get("/api/v1/auth/session")
    assert r.json()["user"]["id"] == str(alice.id)
    r = await client.get("/api/v1/auth/session/admin")
    assert r.json()["authenticated"] is False
    # Admin-only routes are out of reach while acting as a regular user
    r = await client.get("/api/v1/users")
    assert r.status_code == 403

    r = await client.post("/api/v1/auth/restore")
    assert r.status_code == 200
    assert r.json()["user"]["id"] == str(boss.id)

    r = await client.get("/api/v1/auth/session/temporary")
    assert r.json() == {"is_temporary_session": False}


@pytest.mark.asyncio
async def test_become_as_regular_user_is_403(client, make_user):
    await make_user()
    bob = await make_user("bob")
    await _login(client, "alice")

    r = await client.post(f"/api/v1/auth/become/{bob.id}")

    assert r.status_code == 403
    assert r.json()["error"] == "unauthorized"


@pytest.mark.asyncio
async def test_restore_from_normal_session_is_409(client, make_user):
    await make_user("boss", role="admin")
    await _login(client, "boss")

    r = await client.post("/api/v1/auth/restore")

    assert r.status_code == 409
    assert r.json()["error"] == "no_temporary_session"


@pytest.mark.asyncio
async def test_password_reset_flow(client, make_user, mailer):
    await make_user()

    r = await client.post("/api/v1/password-reset/request", json={"email": "alice@example.com"})
    assert r.status_code == 200
    url = mailer.send_password_reset.call_args.args[2]
    token = parse_qs(urlparse(url).query)["token"][0]

    r = await client.get("/api/v1/password-reset/validate", params={"token": token})
    assert r.status_code == 200
    assert r.json()["data"]["name"] == "Alice"

    r = await client.post(
        "/api/v1/password-reset/confirm", json={"token": token, "password": "a-brand-new-password"}
    )
    assert r.status_code == 200

    r = await client.post(
        "/api/v1/password-reset/confirm", json={"token": token, "password": "another-new-password"}
    )
    assert r.status_code == 400
    assert r.json()["error"] == "invalid_or_expired"

    assert (await _login(client, "alice", "a-brand-new-password")).status_code == 200


@pytest.mark.asyncio
async def test_password_reset_request_for_unknown_email(client, mailer):
    r = await client.post("/api/v1/password-reset/request", json={"email": "nobody@example.com"})

    assert r.status_code == 200
    assert r.json()["success"] is True
    mailer.send_password_reset.assert_not_awaited()


@pytest.mark.asyncio
async def test_register_rejects_username_with_at_sign(client):
    r = await client.post(
        "/api/v1/auth/register",
        json={
            "name": "Mallory",
            "email": "mallory@example.com",
            "password": "long-enough-pw",
            "username": "carol@example.com",
        },
    )
    assert r.status_code == 422
