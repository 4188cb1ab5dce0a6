"""Tests for bearer-token identity resolution and request context building."""
import time
from pathlib import Path

from flask import Flask
from jose import jwt

from forum.api.auth.context import USER_NOT_FOUND, RequestContext, build_request_context
from forum.api.auth.identity import (
    MALFORMED_HEADER,
    MISSING_HEADER,
    IdentityResult,
    bearer_token,
    resolve_identity,
)
from forum.api.auth.token import issue_token, revoke_token
from forum.api.db.models import Role
from forum.api.db.repository import Repository


def _claims(**overrides) -> dict:
    now = int(time.time())
    claims = {"sub": "some-user", "jti": "jti-1", "typ": "access", "iat": now, "exp": now + 60}
    claims.update(overrides)
    return claims


class TestBearerToken:
    def test_extracts_token(self) -> None:
        assert bearer_token("Bearer abc.def.ghi") == "abc.def.ghi"

    def test_scheme_is_case_insensitive(self) -> None:
        assert bearer_token("bearer abc") == "abc"

    def test_rejects_other_schemes(self) -> None:
        assert bearer_token("Basic dXNlcjpwYXNz") is None

    def test_rejects_missing_token(self) -> None:
        assert bearer_token("Bearer ") is None


class TestResolveIdentity:
    def test_missing_header(self, app: Flask) -> None:
        with app.app_context():
            result = resolve_identity(None)
        assert result == IdentityResult(authenticated=False, failure_reason=MISSING_HEADER)

    def test_malformed_header(self, app: Flask) -> None:
        with app.app_context():
            result = resolve_identity("Token abc")
        assert not result.authenticated
        assert result.failure_reason == MALFORMED_HEADER

    def test_valid_token(self, app: Flask) -> None:
        with app.app_context():
            token, _ = issue_token("user-123")
            result = resolve_identity(f"Bearer {token}")
        assert result.authenticated
        assert result.subject_id == "user-123"
        assert result.failure_reason == ""

    def test_bad_signature_reports_decode_error(self, app: Flask) -> None:
        token = jwt.encode(_claims(), "some-other-secret", algorithm="HS256")
        with app.app_context():
            result = resolve_identity(f"Bearer {token}")
        assert not result.authenticated
        assert result.subject_id == ""
        assert "Signature verification failed" in result.failure_reason

    def test_expired_token(self, app: Flask) -> None:
        past = int(time.time()) - 3600
        token = jwt.encode(_claims(iat=past - 60, exp=past), "test-secret", algorithm="HS256")
        with app.app_context():
            result = resolve_identity(f"Bearer {token}")
        assert not result.authenticated
        assert "expired" in result.failure_reason

    def test_garbage_token_never_raises(self, app: Flask) -> None:
        with app.app_context():
            result = resolve_identity("Bearer not-a-jwt")
        assert not result.authenticated
        assert result.failure_reason

    def test_token_without_subject(self, app: Flask) -> None:
        claims = _claims()
        del claims["sub"]
        token = jwt.encode(claims, "test-secret", algorithm="HS256")
        with app.app_context():
            result = resolve_identity(f"Bearer {token}")
        assert not result.authenticated
        assert result.failure_reason == "Token has no subject"

    def test_revoked_token(self, app: Flask) -> None:
        with app.app_context():
            token, _ = issue_token("user-123")
            assert revoke_token(token)
            result = resolve_identity(f"Bearer {token}")
        assert not result.authenticated
        assert result.failure_reason == "Token has been revoked"

    def test_corrupt_revocation_file_does_not_break_resolution(self, app: Flask) -> None:
        path = Path(app.config["REVOCATION_FILE"])
        path.write_text("garbage\njti-x not-a-number\n", encoding="utf-8")
        with app.app_context():
            token, _ = issue_token("user-123")
            result = resolve_identity(f"Bearer {token}")
        assert result.authenticated

    def test_unreadable_revocation_file_rejects_token(self, app: Flask) -> None:
        Path(app.config["REVOCATION_FILE"]).mkdir()
        with app.app_context():
            token, _ = issue_token("user-123")
            result = resolve_identity(f"Bearer {token}")
        assert not result.authenticated
        assert result.failure_reason == "Token has been revoked"


class FakeRepository:
    def __init__(self, users: dict) -> None:
        self.users = users

    def find_user_by_id(self, user_id: str):
        return self.users.get(user_id)


class TestBuildRequestContext:
    def test_unauthenticated_passes_reason_through(self) -> None:
        identity = IdentityResult(authenticated=False, failure_reason=MISSING_HEADER)
        ctx = build_request_context(identity, FakeRepository({}))
        assert ctx == RequestContext(authenticated=False, failure_reason=MISSING_HEADER)

    def test_attaches_role(self) -> None:
        identity = IdentityResult(authenticated=True, subject_id="u1")
        ctx = build_request_context(identity, FakeRepository({"u1": {"id": "u1", "role": "ADMIN"}}))
        assert ctx.authenticated
        assert ctx.subject_id == "u1"
        assert ctx.role == "ADMIN"

    def test_deleted_subject_is_demoted(self) -> None:
        identity = IdentityResult(authenticated=True, subject_id="ghost")
        ctx = build_request_context(identity, FakeRepository({}))
        assert not ctx.authenticated
        assert ctx.subject_id == ""
        assert ctx.role == ""
        assert ctx.failure_reason == USER_NOT_FOUND

    def test_reads_role_from_store(self, repository: Repository) -> None:
        user = repository.create_user("carol@forum.io", "hash", "Carol", "C")
        repository.set_user_role(user["id"], Role.ADMIN)
        identity = IdentityResult(authenticated=True, subject_id=user["id"])
        ctx = build_request_context(identity, repository)
        assert ctx.role == "ADMIN"
