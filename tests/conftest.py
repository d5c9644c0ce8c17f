"""Pytest configuration and fixtures for Bulwark tests.

Every test builds its own application through ``create_app(settings)``, so
CSRF entries, rate-limit windows and users never leak between tests.
"""

import asyncio
import itertools
import os
import re
import uuid
from dataclasses import dataclass
from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

# Set test environment variables before importing app modules
TEST_JWT_SECRET = "test-signing-secret-0123456789abcdef0123456789"
os.environ.setdefault("JWT_SECRET", TEST_JWT_SECRET)
os.environ.setdefault("ENVIRONMENT", "test")

from bulwark.core.config import Settings  # noqa: E402
from bulwark.main import create_app  # noqa: E402

TEST_PASSWORD = "correct-horse-battery"

_CSRF_COOKIE_RE = re.compile(r"csrf-token=([0-9a-f]+)")
_client_addresses = itertools.count(1)


def make_settings(**overrides: Any) -> Settings:
    """Settings isolated from the developer's .env file."""
    values: dict[str, Any] = {
        "jwt_secret": TEST_JWT_SECRET,
        "environment": "test",
        "user_store": "memory",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)  # type: ignore[call-arg]


def _next_client_address() -> str:
    n = next(_client_addresses)
    return f"10.0.{n // 250}.{n % 250 + 1}"


def csrf_cookie_from(response) -> str:
    """Extract the CSRF cookie value from a Set-Cookie header."""
    match = _CSRF_COOKIE_RE.search(response.headers.get("set-cookie", ""))
    assert match is not None, "response did not set a csrf-token cookie"
    return match.group(1)


@dataclass
class Session:
    """Credentials a signed-in browser would hold."""

    token: str
    csrf_token: str
    cookie: str
    user: dict[str, Any]

    def headers(self, csrf: bool = True) -> dict[str, str]:
        headers = {"Authorization": f"Bearer {self.token}"}
        if csrf:
            headers["X-CSRF-Token"] = self.csrf_token
            headers["Cookie"] = f"csrf-token={self.cookie}"
        return headers


@pytest.fixture
def settings(tmp_path) -> Settings:
    return make_settings(public_dir=str(tmp_path / "public"))


@pytest.fixture
def app(settings) -> FastAPI:
    return create_app(settings)


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


@pytest.fixture
def register_user(client):
    """Factory registering a fresh user; each call uses its own client address."""

    def _register(name: str = "Test User", email: str | None = None, password: str = TEST_PASSWORD) -> Session:
        email = email or f"user-{uuid.uuid4().hex[:8]}@bulwark.io"
        response = client.post(
            "/api/auth/register",
            json={"name": name, "email": email, "password": password},
            headers={"X-Forwarded-For": _next_client_address()},
        )
        assert response.status_code == 201, response.text
        body = response.json()
        return Session(
            token=body["token"],
            csrf_token=body["csrfToken"],
            cookie=csrf_cookie_from(response),
            user=body["user"],
        )

    return _register


@pytest.fixture
def admin_session(app) -> Session:
    """An admin user created directly in the repository with a signed token."""
    users = app.state.user_repository
    user = asyncio.run(users.create(name="Admin", email="admin@bulwark.io", password=None, role="admin"))
    token = app.state.token_authenticator.issue_for_user(user.id, user.email, user.name, user.role)
    pair = app.state.csrf.issue()
    return Session(
        token=token,
        csrf_token=pair.token,
        cookie=pair.cookie,
        user={"id": user.id, "email": user.email, "name": user.name, "role": user.role},
    )


@pytest.fixture
def make_client(tmp_path):
    """Factory for a client over an app built with setting overrides."""

    def _make(**overrides: Any) -> TestClient:
        overrides.setdefault("public_dir", str(tmp_path / "public"))
        return TestClient(create_app(make_settings(**overrides)))

    return _make
