"""Tests for the authentication endpoints."""

import asyncio

import httpx
import pytest

PASSWORD = "correct-horse-battery"


def _register(client, email="ada@bulwark.io", name="Ada", password=PASSWORD, ip="192.0.2.10"):
    return client.post(
        "/api/auth/register",
        json={"name": name, "email": email, "password": password},
        headers={"X-Forwarded-For": ip},
    )


def _login(client, email="ada@bulwark.io", password=PASSWORD, ip="192.0.2.20"):
    return client.post(
        "/api/auth/login",
        json={"email": email, "password": password},
        headers={"X-Forwarded-For": ip},
    )


class TestRegister:
    def test_register_returns_token_user_and_csrf(self, client):
        response = _register(client)

        assert response.status_code == 201
        body = response.json()
        assert body["token"].count(".") == 2
        assert len(body["csrfToken"]) == 64
        assert body["user"]["email"] == "ada@bulwark.io"
        assert body["user"]["name"] == "Ada"
        assert body["user"]["role"] == "user"
        assert "password" not in body["user"]

    def test_register_sets_csrf_cookie(self, client):
        response = _register(client)
        cookie = response.headers["set-cookie"]

        assert cookie.startswith("csrf-token=")
        assert "HttpOnly" in cookie
        assert "SameSite=Strict" in cookie
        assert "Path=/" in cookie
        assert "Max-Age=86400" in cookie

    def test_cookie_is_not_the_body_token(self, client):
        response = _register(client)

        assert response.json()["csrfToken"] not in response.headers["set-cookie"]

    def test_token_identifies_new_user(self, app, client):
        body = _register(client).json()
        context = app.state.token_authenticator.authenticate(body["token"])

        assert context.user_id == body["user"]["id"]
        assert context.role == "user"

    def test_register_cannot_request_admin(self, client):
        response = client.post(
            "/api/auth/register",
            json={"name": "Eve", "email": "eve@bulwark.io", "password": PASSWORD, "role": "admin"},
        )

        assert response.status_code == 201
        assert response.json()["user"]["role"] == "user"

    def test_duplicate_email_rejected(self, client):
        _register(client)
        response = _register(client, name="Other", ip="192.0.2.11")

        assert response.status_code == 400
        assert response.json() == {"error": "User with this email already exists"}

    def test_password_stored_hashed(self, app, client):
        _register(client)
        user = asyncio.run(app.state.user_repository.get_by_email("ada@bulwark.io"))

        assert user.password != PASSWORD
        assert user.password.startswith("$argon2id$")

    @pytest.mark.parametrize(
        "payload,field",
        [
            ({"name": "Ada", "email": "not-an-email", "password": PASSWORD}, "email"),
            ({"name": "Ada", "email": "ada@bulwark.io", "password": "short"}, "password"),
            ({"name": "", "email": "ada@bulwark.io", "password": PASSWORD}, "name"),
            ({"email": "ada@bulwark.io", "password": PASSWORD}, "name"),
        ],
    )
    def test_validation_errors(self, client, payload, field):
        response = client.post("/api/auth/register", json=payload)

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "Validation failed"
        assert field in [error["field"] for error in body["errors"]]

    def test_malformed_json_rejected(self, client):
        response = client.post(
            "/api/auth/register",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400


class TestLogin:
    def test_login_success(self, client):
        _register(client)

        response = _login(client)

        assert response.status_code == 200
        body = response.json()
        assert body["user"]["email"] == "ada@bulwark.io"
        assert body["token"]
        assert body["csrfToken"]
        assert "csrf-token=" in response.headers["set-cookie"]

    def test_each_login_issues_new_csrf_pair(self, client):
        _register(client)

        first = _login(client).json()["csrfToken"]
        second = _login(client).json()["csrfToken"]

        assert first != second

    def test_wrong_password(self, client):
        _register(client)

        response = _login(client, password="not-the-password")

        assert response.status_code == 401
        assert response.json() == {"error": "Invalid credentials"}
        assert "set-cookie" not in response.headers

    def test_unknown_email_same_message(self, client):
        response = _login(client, email="ghost@bulwark.io")

        assert response.status_code == 401
        assert response.json() == {"error": "Invalid credentials"}

    def test_user_without_password_cannot_login(self, app, client):
        asyncio.run(app.state.user_repository.create(name="NoPw", email="nopw@bulwark.io", password=None))

        assert _login(client, email="nopw@bulwark.io").status_code == 401


class TestLogout:
    def test_logout_revokes_csrf_entry(self, app, client, register_user):
        session = register_user()

        response = client.post("/api/auth/logout", headers=session.headers())

        assert response.status_code == 200
        assert response.json() == {"message": "Logged out successfully"}
        assert response.headers["set-cookie"] == "csrf-token=; HttpOnly; SameSite=Strict; Path=/; Max-Age=0"
        assert app.state.csrf.validate(session.cookie, session.csrf_token) is False

    def test_logout_requires_bearer_token(self, client, register_user):
        session = register_user()

        response = client.post("/api/auth/logout", headers=session.headers() | {"Authorization": ""})

        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"

    def test_logout_requires_csrf(self, client, register_user):
        session = register_user()
        client.cookies.clear()

        response = client.post("/api/auth/logout", headers=session.headers(csrf=False))

        assert response.status_code == 403

    def test_bearer_token_survives_logout(self, client, register_user):
        session = register_user()
        client.post("/api/auth/logout", headers=session.headers())

        response = client.get(f"/api/users/{session.user['id']}", headers=session.headers(csrf=False))

        assert response.status_code == 200


class TestBearerAuthentication:
    def test_missing_token(self, client):
        response = client.get("/api/users/whatever")

        assert response.status_code == 401
        assert response.json() == {"error": "Unauthorized"}

    def test_invalid_token(self, client):
        response = client.get("/api/users/whatever", headers={"Authorization": "Bearer a.b.c"})

        assert response.status_code == 401
        assert response.json() == {"error": "Invalid token"}

    def test_non_bearer_scheme(self, client):
        response = client.get("/api/users/whatever", headers={"Authorization": "Basic dXNlcjpwYXNz"})

        assert response.status_code == 401

    def test_expired_token(self, app, client, register_user):
        session = register_user()
        expired = app.state.token_authenticator.issue({"sub": session.user["id"], "role": "user"}, now=0)

        response = client.get(f"/api/users/{session.user['id']}", headers={"Authorization": f"Bearer {expired}"})

        assert response.status_code == 401
        assert response.json() == {"error": "Invalid token"}

    def test_token_from_other_app_secret(self, make_client, register_user):
        session = register_user()
        other = make_client(jwt_secret="a-completely-different-secret-0123456789abcdef")

        response = other.get(f"/api/users/{session.user['id']}", headers=session.headers(csrf=False))

        assert response.status_code == 401


class TestConcurrentRegistration:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("store", ["memory", "database"])
    async def test_same_email_registers_once(self, make_client, tmp_path, store):
        app = make_client(user_store=store, database_url=f"sqlite+aiosqlite:///{tmp_path / 'race.db'}").app
        users = app.state.user_repository
        if store == "database":
            await users.initialize()
        body = {"name": "Dup", "email": "dup@bulwark.io", "password": PASSWORD}

        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
            responses = await asyncio.gather(
                *(
                    client.post("/api/auth/register", json=body, headers={"X-Forwarded-For": f"198.51.100.{i}"})
                    for i in range(3)
                )
            )

        try:
            assert sorted(r.status_code for r in responses) == [201, 400, 400]
            for response in responses:
                if response.status_code == 400:
                    assert response.json() == {"error": "User with this email already exists"}
            assert len(await users.list_all()) == 1
        finally:
            await users.close()
