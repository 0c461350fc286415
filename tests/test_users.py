"""Tests for sessions, registrations and password recovery."""
from unittest.mock import patch

import pytest
from fastapi import status

from app.domain.user import User


def _register(client, **overrides):
    body = {"email": "new@example.com", "password": "secret123", "name": "New User"}
    body.update(overrides)
    return client.post("/users", json=body)


class TestSessions:
    """Sign in and sign out."""

    def test_sign_in_form(self, client):
        response = client.get("/users/sign_in")

        assert response.status_code == status.HTTP_200_OK
        assert response.template.name == "users/sessions/new.html"

    def test_sign_in(self, client, registered_user, password):
        response = client.post("/users/sign_in", json={"email": registered_user.email, "password": password})

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["token_type"] == "bearer"
        assert data["user"]["email"] == registered_user.email
        assert data["user"]["sign_in_count"] == 1
        assert "password_hash" not in data["user"]

    def test_sign_in_wrong_password(self, client, registered_user):
        response = client.post("/users/sign_in", json={"email": registered_user.email, "password": "wrong"})

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_sign_out_revokes_token(self, client, auth_headers):
        response = client.delete("/users/sign_out", headers=auth_headers)

        assert response.status_code == status.HTTP_204_NO_CONTENT
        assert client.get("/users/me", headers=auth_headers).status_code == status.HTTP_401_UNAUTHORIZED

    def test_sign_out_requires_token(self, client):
        assert client.delete("/users/sign_out").status_code == status.HTTP_401_UNAUTHORIZED


class TestRegistrations:
    """Sign up, edit and cancel accounts."""

    def test_sign_up_form(self, client):
        response = client.get("/users/sign_up")

        assert response.status_code == status.HTTP_200_OK
        assert response.context["password_min_length"] == 6

    def test_register(self, client):
        response = _register(client, email="New@Example.com")

        assert response.status_code == status.HTTP_201_CREATED
        assert response.json()["user"]["email"] == "new@example.com"
        assert User.objects.count() == 1

    def test_registered_user_can_sign_in(self, client):
        _register(client)

        response = client.post("/users/sign_in", json={"email": "new@example.com", "password": "secret123"})

        assert response.status_code == status.HTTP_200_OK

    def test_duplicate_email(self, client, registered_user):
        response = _register(client, email=registered_user.email)

        assert response.status_code == status.HTTP_409_CONFLICT

    def test_short_password(self, client):
        response = _register(client, password="abc")

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert User.objects.count() == 0

    def test_password_confirmation_mismatch(self, client):
        response = _register(client, password_confirmation="different")

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    def test_invalid_email(self, client):
        assert _register(client, email="not-an-email").status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    def test_me(self, authenticated_client, registered_user):
        response = authenticated_client.get("/users/me")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["id"] == registered_user.id

    def test_me_requires_token(self, client):
        response = client.get("/users/me")

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.headers["WWW-Authenticate"] == "Bearer"

    def test_update_name(self, authenticated_client, registered_user, password):
        response = authenticated_client.put("/users", json={"current_password": password, "name": "Renamed"})

        assert response.status_code == status.HTTP_200_OK
        assert User.objects.find(registered_user.id).name == "Renamed"

    def test_update_password(self, client, authenticated_client, registered_user, password):
        authenticated_client.put("/users", json={"current_password": password, "password": "changed123"})

        response = client.post("/users/sign_in", json={"email": registered_user.email, "password": "changed123"})

        assert response.status_code == status.HTTP_200_OK

    def test_update_requires_current_password(self, authenticated_client, registered_user):
        response = authenticated_client.put("/users", json={"current_password": "wrong", "name": "Renamed"})

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert User.objects.find(registered_user.id).name == registered_user.name

    def test_update_to_taken_email(self, authenticated_client, password):
        _register(authenticated_client, email="taken@example.com")

        response = authenticated_client.put("/users", json={"current_password": password, "email": "taken@example.com"})

        assert response.status_code == status.HTTP_409_CONFLICT

    def test_cancel(self, authenticated_client, registered_user):
        response = authenticated_client.delete("/users")

        assert response.status_code == status.HTTP_204_NO_CONTENT
        assert User.objects.find_by(id=registered_user.id) is None
        assert authenticated_client.get("/users/me").status_code == status.HTTP_401_UNAUTHORIZED


class TestPasswords:
    """Password recovery."""

    @pytest.fixture
    def reset_token(self, client, registered_user):
        with patch("app.api.users.deliver_reset_instructions") as deliver:
            response = client.post("/users/password", json={"email": registered_user.email})

        assert response.status_code == status.HTTP_202_ACCEPTED
        user, token = deliver.call_args.args
        assert user == registered_user
        return token

    def test_unknown_email_gets_same_response(self, client):
        with patch("app.api.users.deliver_reset_instructions") as deliver:
            response = client.post("/users/password", json={"email": "nobody@example.com"})

        assert response.status_code == status.HTTP_202_ACCEPTED
        deliver.assert_not_called()

    def test_reset_password(self, client, registered_user, reset_token):
        response = client.put("/users/password", json={
            "reset_password_token": reset_token,
            "password": "brandnew1",
            "password_confirmation": "brandnew1",
        })

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["user"]["id"] == registered_user.id
        signed_in = client.post("/users/sign_in", json={"email": registered_user.email, "password": "brandnew1"})
        assert signed_in.status_code == status.HTTP_200_OK

    def test_reset_token_is_single_use(self, client, reset_token):
        body = {"reset_password_token": reset_token, "password": "brandnew1"}

        assert client.put("/users/password", json=body).status_code == status.HTTP_200_OK
        assert client.put("/users/password", json=body).status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    def test_invalid_reset_token(self, client):
        response = client.put("/users/password", json={"reset_password_token": "bogus", "password": "brandnew1"})

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    def test_short_password_keeps_token(self, client, reset_token):
        short = client.put("/users/password", json={"reset_password_token": reset_token, "password": "abc"})
        valid = client.put("/users/password", json={"reset_password_token": reset_token, "password": "brandnew1"})

        assert short.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert valid.status_code == status.HTTP_200_OK
