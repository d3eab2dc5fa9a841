"""Tests for the auth module: tokens, login endpoints, and dev mode bypass."""

import pytest

from notevault.core import token_factory
from notevault.core.token_factory import create_token, decode_token
from notevault.core.config import settings
from notevault.exceptions import AuthenticationError, ValidationError
from notevault.models import User
from notevault.services import user_service
from tests.conftest import bearer, post_action


class TestTokenFactory:

    def test_create_and_decode(self):
        token = create_token(7, "alice", "test-secret")
        payload = decode_token(token, "test-secret")
        assert payload is not None
        assert payload.sub == 7
        assert payload.username == "alice"

    def test_wrong_secret_returns_none(self):
        token = create_token(7, "alice", "correct-secret")
        assert decode_token(token, "wrong-secret") is None

    def test_expired_token_returns_none(self):
        token = create_token(7, "alice", "secret", expires_hours=-1)
        assert decode_token(token, "secret") is None

    def test_foreign_issuer_returns_none(self, monkeypatch):
        monkeypatch.setattr(token_factory, "ISSUER", "someone-else")
        token = create_token(7, "alice", "secret")
        monkeypatch.undo()
        assert decode_token(token, "secret") is None

    def test_malformed_token_returns_none(self):
        assert decode_token("not.a.token", "secret") is None
        assert decode_token("", "secret") is None

    def test_unsupported_algorithm(self):
        with pytest.raises(ValueError):
            create_token(7, "alice", "secret", algorithm="RS256")


class TestUserService:

    def test_register_and_authenticate(self, db):
        user = user_service.register_user(db, "carol", "pw")
        assert user_service.authenticate(db, "carol", "pw").user_id == user.user_id

    def test_password_not_stored_plain(self, db):
        user = user_service.register_user(db, "carol", "pw")
        assert user.password_hash != "pw"

    def test_wrong_password(self, db):
        user_service.register_user(db, "carol", "pw")
        with pytest.raises(AuthenticationError):
            user_service.authenticate(db, "carol", "nope")

    def test_duplicate_username(self, db):
        user_service.register_user(db, "carol", "pw")
        with pytest.raises(ValidationError):
            user_service.register_user(db, "carol", "other")

    def test_blank_username_or_password(self, db):
        with pytest.raises(ValidationError):
            user_service.register_user(db, " ", "pw")
        with pytest.raises(ValidationError):
            user_service.register_user(db, "dave", "")

    def test_remember_token_round_trip(self, db, user):
        token = user_service.issue_remember_token(db, user.user_id)
        assert user_service.verify_remember_token(db, token).user_id == user.user_id
        assert user.remember_token != token

        user_service.clear_remember_token(db, user.user_id)
        assert user_service.verify_remember_token(db, token) is None

    def test_get_or_create_is_stable(self, db):
        first = user_service.get_or_create_user(db, "dev")
        second = user_service.get_or_create_user(db, "dev")
        assert first.user_id == second.user_id


class TestAuthDisabledMode:
    """When AUTH_ENABLED=false (default), requests act as the development account."""

    def test_requests_succeed_without_token(self, client):
        resp = post_action(client, "createFolder", path="Anon")
        assert resp.status_code == 200

    def test_dev_account_created_once(self, client, db):
        post_action(client, "list")
        post_action(client, "list")
        assert db.query(User).filter(User.username == settings.dev_username).count() == 1


class TestAuthEnabledMode:

    def test_missing_token_is_401(self, client, auth_enabled):
        resp = post_action(client, "list")
        assert resp.status_code == 401
        assert resp.json()["error"] == "Not authenticated"

    def test_invalid_token_is_401(self, client, auth_enabled):
        resp = post_action(client, "list", headers={"Authorization": "Bearer garbage"})
        assert resp.status_code == 401
        assert resp.json()["error"] == "Invalid or expired token"

    def test_token_for_unknown_user_is_401(self, client, auth_enabled):
        resp = post_action(client, "list", headers=bearer(999, "ghost"))
        assert resp.status_code == 401

    def test_valid_token(self, client, user, auth_enabled):
        resp = post_action(client, "list", headers=bearer(user.user_id, user.username))
        assert resp.status_code == 200

    def test_users_are_isolated(self, client, user, make_user, auth_enabled):
        other = make_user("bob")
        alice, bob = bearer(user.user_id, user.username), bearer(other.user_id, other.username)

        note_id = post_action(client, "save", headers=alice, title="Private", content="secret").json()["noteid"]

        assert post_action(client, "load", headers=bob, noteid=note_id).status_code == 404
        assert post_action(client, "delete", headers=bob, noteid=note_id).status_code == 404
        assert post_action(client, "save", headers=bob, noteid=note_id, title="x", content="y").status_code == 404
        assert post_action(client, "list", headers=bob).json()["items"] == []
        assert post_action(client, "load", headers=alice, noteid=note_id).json()["content"] == "secret"


class TestLoginEndpoints:

    def test_login_returns_usable_token(self, client, user, auth_enabled):
        resp = client.post("/api/auth/login", json={"username": "alice", "password": "correct horse"})
        assert resp.status_code == 200
        body = resp.json()
        assert body["userid"] == user.user_id
        assert body["remember_token"] is None

        headers = {"Authorization": f"Bearer {body['access_token']}"}
        assert post_action(client, "list", headers=headers).status_code == 200

    def test_login_wrong_password(self, client, user):
        resp = client.post("/api/auth/login", json={"username": "alice", "password": "wrong"})
        assert resp.status_code == 401

    def test_remember_flow(self, client, user, auth_enabled):
        body = client.post(
            "/api/auth/login", json={"username": "alice", "password": "correct horse", "remember": True}
        ).json()
        remember = body["remember_token"]
        assert remember

        resp = client.post("/api/auth/remember", json={"remember_token": remember})
        assert resp.status_code == 200
        assert resp.json()["userid"] == user.user_id

        headers = {"Authorization": f"Bearer {resp.json()['access_token']}"}
        assert client.post("/api/auth/logout", headers=headers).status_code == 200
        assert client.post("/api/auth/remember", json={"remember_token": remember}).status_code == 401

    def test_bad_remember_token(self, client, user):
        assert client.post("/api/auth/remember", json={"remember_token": "nope"}).status_code == 401
