"""
Tests for authentication and authorization primitives.

Covers:
- Password hashing
- Session and confirmation token creation, decoding, expiry
- CSRF middleware and security headers middleware
- Capability matrix (authorize / require)
- Wedding scopes (owner / manager / participant)
- Session resolution for inline and malformed cookies
"""

from __future__ import annotations

import uuid
from datetime import timedelta
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch
from urllib.parse import quote

import jwt as pyjwt
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.core.auth import (
    ROLE_CAPABILITIES,
    Capability,
    Identity,
    WeddingScope,
    authorize,
    authorize_wedding,
    create_confirmation_token,
    create_session_token,
    decode_confirmation_token,
    decode_session_token,
    generate_csrf_token,
    has_capability,
    hash_password,
    require,
    resolve_session,
    verify_password,
    wedding_scopes,
)
from app.core.errors import Forbidden, InvalidSession
from app.core.middleware import SECURITY_HEADERS, CSRFMiddleware, SecurityHeadersMiddleware
from app.core.session import InlineIdentity
from weddingshare_shared.schemas.common import Role


def _identity(role: Role, user_id: uuid.UUID | None = None) -> Identity:
    return Identity(id=user_id or uuid.uuid4(), email=f"{role.value}@example.com", name=None, role=role)


# ---------------------------------------------------------------------------
# Unit Tests: Password hashing
# ---------------------------------------------------------------------------

class TestPasswordHashing:
    def test_hash_and_verify(self):
        password = "MySecureP@ssw0rd!"
        hashed = hash_password(password)
        assert hashed != password
        assert verify_password(password, hashed)

    def test_wrong_password_fails(self):
        hashed = hash_password("correct-password")
        assert not verify_password("wrong-password", hashed)

    def test_different_hashes_for_same_password(self):
        """bcrypt uses random salt, so hashes differ."""
        h1 = hash_password("same")
        h2 = hash_password("same")
        assert h1 != h2
        assert verify_password("same", h1)
        assert verify_password("same", h2)


# ---------------------------------------------------------------------------
# Unit Tests: Tokens
# ---------------------------------------------------------------------------

class TestSessionToken:
    def test_create_and_decode(self):
        uid = uuid.uuid4()
        token = create_session_token(uid, "super_admin")
        payload = decode_session_token(token)
        assert payload["sub"] == str(uid)
        assert payload["role"] == "super_admin"
        assert payload["iss"] == "weddingshare"
        assert payload["jti"]

    def test_expired_token_raises(self):
        token = create_session_token(uuid.uuid4(), "admin", expires_delta=timedelta(seconds=-1))
        with pytest.raises(pyjwt.ExpiredSignatureError):
            decode_session_token(token)

    def test_tampered_token_raises(self):
        token = create_session_token(uuid.uuid4(), "admin")
        header, _, signature = token.split(".")
        forged_claims = create_session_token(uuid.uuid4(), "super_admin").split(".")[1]
        tampered = f"{header}.{forged_claims}.{signature}"
        with pytest.raises(pyjwt.InvalidSignatureError):
            decode_session_token(tampered)

    def test_confirmation_token_is_not_a_session(self):
        token = create_confirmation_token(uuid.uuid4(), "a@example.com")
        with pytest.raises(pyjwt.InvalidAudienceError):
            decode_session_token(token)

    def test_session_token_is_not_a_confirmation(self):
        token = create_session_token(uuid.uuid4(), "admin")
        with pytest.raises(pyjwt.InvalidAudienceError):
            decode_confirmation_token(token)

    def test_confirmation_carries_email(self):
        uid = uuid.uuid4()
        claims = decode_confirmation_token(create_confirmation_token(uid, "a@example.com"))
        assert claims["sub"] == str(uid)
        assert claims["email"] == "a@example.com"


class TestCSRFToken:
    def test_generates_unique_tokens(self):
        t1 = generate_csrf_token()
        t2 = generate_csrf_token()
        assert t1 != t2
        assert len(t1) > 20


# ---------------------------------------------------------------------------
# Integration Tests: Middleware
# ---------------------------------------------------------------------------

class TestSecurityHeadersMiddleware:
    def test_headers_present(self):
        app = FastAPI()
        app.add_middleware(SecurityHeadersMiddleware)

        @app.get("/test")
        async def test_endpoint():
            return {"ok": True}

        client = TestClient(app)
        resp = client.get("/test")
        assert resp.status_code == 200
        for header, value in SECURITY_HEADERS.items():
            assert resp.headers.get(header) == value

    def test_csp_allows_media_cdn(self):
        assert "res.cloudinary.com" in SECURITY_HEADERS["Content-Security-Policy"]


class TestCSRFMiddleware:
    def _make_app(self, enabled: bool = True) -> FastAPI:
        app = FastAPI()
        app.add_middleware(CSRFMiddleware, enabled=enabled)

        @app.get("/test")
        async def get_test():
            return {"ok": True}

        @app.post("/test")
        async def post_test():
            return {"ok": True}

        @app.post("/auth/login")
        async def login():
            return {"ok": True}

        return app

    def test_get_passes_without_csrf(self):
        client = TestClient(self._make_app())
        resp = client.get("/test")
        assert resp.status_code == 200

    def test_post_without_session_cookie_passes(self):
        """No session cookie = not a browser session, skip CSRF."""
        client = TestClient(self._make_app())
        resp = client.post("/test")
        assert resp.status_code == 200

    def test_post_with_session_but_no_csrf_fails(self):
        client = TestClient(self._make_app(), cookies={"session-token": "some-jwt"})
        resp = client.post("/test")
        assert resp.status_code == 403
        body = resp.json()
        assert body["success"] is False
        assert body["code"] == "CSRF_VALIDATION_FAILED"

    def test_post_with_matching_csrf_passes(self):
        csrf_token = "test-csrf-token"
        client = TestClient(
            self._make_app(),
            cookies={"session-token": "some-jwt", "csrf-token": csrf_token},
        )
        resp = client.post("/test", headers={"X-CSRF-Token": csrf_token})
        assert resp.status_code == 200

    def test_post_with_mismatched_csrf_fails(self):
        client = TestClient(
            self._make_app(),
            cookies={"session-token": "some-jwt", "csrf-token": "token-a"},
        )
        resp = client.post("/test", headers={"X-CSRF-Token": "token-b"})
        assert resp.status_code == 403

    def test_login_is_exempt(self):
        client = TestClient(self._make_app(), cookies={"session-token": "stale"})
        resp = client.post("/auth/login")
        assert resp.status_code == 200

    def test_disabled_middleware_passes_everything(self):
        client = TestClient(self._make_app(enabled=False), cookies={"session-token": "some-jwt"})
        resp = client.post("/test")
        assert resp.status_code == 200


# ---------------------------------------------------------------------------
# Unit Tests: Capability matrix
# ---------------------------------------------------------------------------

class TestCapabilities:
    def test_application_admin_runs_the_platform(self):
        identity = _identity(Role.APPLICATION_ADMIN)
        assert has_capability(identity, Capability.REVIEW_APPLICATIONS)
        assert has_capability(identity, Capability.MANAGE_PLATFORM_USERS)
        assert not has_capability(identity, Capability.CREATE_WEDDING)

    def test_super_admin_and_admin_create_weddings(self):
        for role in (Role.SUPER_ADMIN, Role.ADMIN):
            identity = _identity(role)
            assert authorize(identity, Capability.CREATE_WEDDING) is identity
            assert has_capability(identity, Capability.MODERATE_MEDIA)

    def test_only_super_admin_owns_weddings(self):
        owners = [role for role, caps in ROLE_CAPABILITIES.items() if Capability.OWN_WEDDINGS in caps]
        assert owners == [Role.SUPER_ADMIN]

    def test_guest_has_no_capabilities(self):
        identity = _identity(Role.GUEST)
        for capability in Capability:
            with pytest.raises(Forbidden):
                authorize(identity, capability)

    def test_custom_message(self):
        with pytest.raises(Forbidden) as exc_info:
            authorize(_identity(Role.ADMIN), Capability.REVIEW_APPLICATIONS, "Application admin required.")
        assert exc_info.value.status_code == 403
        assert exc_info.value.detail == "Application admin required."

    @pytest.mark.asyncio
    async def test_require_dependency(self):
        dependency = require(Capability.REVIEW_APPLICATIONS)
        reviewer = _identity(Role.APPLICATION_ADMIN)
        assert await dependency(reviewer) is reviewer
        with pytest.raises(Forbidden):
            await dependency(_identity(Role.SUPER_ADMIN))


# ---------------------------------------------------------------------------
# Unit Tests: Wedding scopes
# ---------------------------------------------------------------------------

class TestWeddingScopes:
    def _wedding(self, owner_id: uuid.UUID):
        return SimpleNamespace(id=uuid.uuid4(), super_admin_id=owner_id)

    def test_owner_holds_every_scope(self):
        owner = _identity(Role.SUPER_ADMIN)
        scopes = wedding_scopes(owner, self._wedding(owner.id), set())
        assert scopes == {WeddingScope.OWNER, WeddingScope.MANAGER, WeddingScope.PARTICIPANT}

    def test_other_super_admin_has_no_scope(self):
        wedding = self._wedding(uuid.uuid4())
        assert wedding_scopes(_identity(Role.SUPER_ADMIN), wedding, set()) == set()

    def test_listed_admin_manages(self):
        admin = _identity(Role.ADMIN)
        scopes = wedding_scopes(admin, self._wedding(uuid.uuid4()), {admin.id})
        assert scopes == {WeddingScope.MANAGER, WeddingScope.PARTICIPANT}

    def test_unlisted_admin_is_refused(self):
        admin = _identity(Role.ADMIN)
        with pytest.raises(Forbidden):
            authorize_wedding(admin, self._wedding(uuid.uuid4()), set(), WeddingScope.PARTICIPANT)

    def test_guest_only_participates(self):
        guest = _identity(Role.GUEST)
        wedding = self._wedding(uuid.uuid4())
        assert authorize_wedding(guest, wedding, set(), WeddingScope.PARTICIPANT) == {WeddingScope.PARTICIPANT}
        with pytest.raises(Forbidden):
            authorize_wedding(guest, wedding, {guest.id}, WeddingScope.MANAGER)

    def test_admin_listed_as_owner_id_is_not_owner(self):
        admin = _identity(Role.ADMIN)
        scopes = wedding_scopes(admin, self._wedding(admin.id), set())
        assert WeddingScope.OWNER not in scopes


# ---------------------------------------------------------------------------
# Unit Tests: Session resolution without a database
# ---------------------------------------------------------------------------

class TestResolveSession:
    def _inline_cookie(self, role: Role = Role.ADMIN) -> tuple[str, uuid.UUID]:
        uid = uuid.uuid4()
        cookie = quote(InlineIdentity(id=uid, email="dev@example.com", name="Dev", role=role).model_dump_json())
        return cookie, uid

    @pytest.mark.asyncio
    async def test_inline_rejected_by_default(self):
        cookie, _ = self._inline_cookie()
        with pytest.raises(InvalidSession):
            await resolve_session(cookie, AsyncMock(), AsyncMock())

    @pytest.mark.asyncio
    async def test_inline_accepted_when_enabled(self):
        cookie, uid = self._inline_cookie(Role.SUPER_ADMIN)
        with patch("app.core.auth.settings.allow_inline_sessions", True):
            identity = await resolve_session(cookie, AsyncMock(), AsyncMock())
        assert identity.id == uid
        assert identity.role == Role.SUPER_ADMIN
        assert identity.source == "inline"

    @pytest.mark.asyncio
    async def test_garbage_cookie_is_invalid(self):
        with pytest.raises(InvalidSession) as exc_info:
            await resolve_session("not-a-token", AsyncMock(), AsyncMock())
        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_rejected_provider_token_is_invalid(self):
        provider_token = pyjwt.encode({"sub": "x", "iss": "https://supabase.example"}, "other-secret", algorithm="HS256")
        gateway = AsyncMock()
        gateway.get_user.return_value = None
        with pytest.raises(InvalidSession):
            await resolve_session(provider_token, AsyncMock(), gateway)
        gateway.get_user.assert_awaited_once_with(provider_token)

    @pytest.mark.asyncio
    async def test_forged_signed_token_is_invalid(self):
        forged = pyjwt.encode(
            {"sub": str(uuid.uuid4()), "iss": "weddingshare", "aud": "session"},
            "wrong-secret",
            algorithm="HS256",
        )
        with pytest.raises(InvalidSession):
            await resolve_session(forged, AsyncMock(), AsyncMock())
