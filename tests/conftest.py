"""Shared fixtures: an app on a throwaway SQLite file and helpers to act as users."""
from collections.abc import Callable, Generator
from typing import Any

import pytest
from flask import Flask
from flask.testing import FlaskClient

from forum.api import create_app
from forum.api.db.models import Role
from forum.api.db.repository import Repository

STRONG_PASSWORD = "Str0ng!Passw0rd"


@pytest.fixture
def app(tmp_path) -> Generator[Flask]:
    app = create_app(
        {
            "ENV": "dev",
            "SECRET_KEY": "test-secret",
            "DATABASE_URL": f"sqlite:///{tmp_path / 'forum.sqlite3'}",
            "REDIS_URL": "",
            "REVOCATION_FILE": str(tmp_path / "revoked_jtis.txt"),
            "JWT_AUD": "",
        },
        create_tables=True,
    )
    app.config["TESTING"] = True
    yield app
    app.extensions["forum"]["engine"].dispose()


@pytest.fixture
def client(app: Flask) -> FlaskClient:
    # cookies are sent explicitly by the tests that need them
    return app.test_client(use_cookies=False)


@pytest.fixture
def repository(app: Flask) -> Repository:
    return app.extensions["forum"]["repository"]


@pytest.fixture
def signup(client: FlaskClient) -> Callable[..., tuple[dict, dict]]:
    """Sign a user up through the REST surface; returns (user, auth headers)."""
    def _signup(
        email: str = "alice@forum.io",
        firstname: str = "Alice",
        lastname: str = "Liddell",
        password: str = STRONG_PASSWORD,
    ) -> tuple[dict, dict]:
        response = client.post(
            "/auth/signup",
            json={"email": email, "password": password, "firstname": firstname, "lastname": lastname},
        )
        assert response.status_code == 201, response.get_json()
        body = response.get_json()
        return body["user"], {"Authorization": f"Bearer {body['authToken']}"}
    return _signup


@pytest.fixture
def make_admin(repository: Repository) -> Callable[[str], None]:
    def _make_admin(user_id: str) -> None:
        repository.set_user_role(user_id, Role.ADMIN)
    return _make_admin


@pytest.fixture
def graphql(client: FlaskClient) -> Callable[..., dict[str, Any]]:
    def _graphql(query: str, variables: dict | None = None, headers: dict | None = None) -> dict[str, Any]:
        response = client.post(
            "/graphql",
            json={"query": query, "variables": variables or {}},
            headers=headers or {},
        )
        assert response.status_code == 200, response.get_json()
        return response.get_json()
    return _graphql