"""Pytest configuration and shared fixtures."""
import os

os.environ.setdefault("ENVIRONMENT", "test")

import pytest
from unittest.mock import patch
from fastapi.testclient import TestClient

from tests import factories


@pytest.fixture(autouse=True)
def memory_token_store():
    """Keep token state in memory so tests never need a Redis server."""
    from app.infrastructure import redis as redis_module

    with patch.object(redis_module, "get_redis_client", return_value=None):
        redis_module.reset_token_stores()
        yield
        redis_module.reset_token_stores()


@pytest.fixture(autouse=True)
def clean_records():
    """Empty every repository between tests."""
    from app.domain.record import clear_all

    clear_all()
    yield
    clear_all()


@pytest.fixture
def application():
    """The application under test."""
    from main import app
    return app


@pytest.fixture
def client(application):
    """FastAPI test client."""
    return TestClient(application)


@pytest.fixture
def path_for(application):
    """Resolve a route name to its path, e.g. ``path_for("post", id=1)``."""
    def resolve(name, **params):
        return str(application.url_path_for(name, **params))
    return resolve


@pytest.fixture
def attributes_for():
    return factories.attributes_for


@pytest.fixture
def password():
    return "secret123"


@pytest.fixture
def registered_user(password):
    """A persisted user with a known password."""
    from app.core.auth import hash_password
    from app.domain.user import User

    attributes = factories.attributes_for("user")
    return User.objects.create({
        "email": attributes["email"],
        "name": attributes["name"],
        "password_hash": hash_password(password),
    })


@pytest.fixture
def access_token(registered_user):
    from app.core.auth import create_access_token
    return create_access_token(registered_user)


@pytest.fixture
def auth_headers(access_token):
    return {"Authorization": f"Bearer {access_token}"}


@pytest.fixture
def authenticated_client(client, auth_headers):
    """Authenticated test client with a bearer token."""
    client.headers.update(auth_headers)
    return client
