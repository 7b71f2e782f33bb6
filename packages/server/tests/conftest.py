"""
Shared fixtures: in-memory database, fake provider gateways, authenticated clients.
"""

from __future__ import annotations

import datetime as dt
import json
import os
import uuid
from typing import Optional

# Settings are read once at import time, so the environment must be ready first.
os.environ.setdefault("WS_DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("WS_SECRET_KEY", "test-secret-key-for-weddingshare-suite")
os.environ.setdefault("WS_CSRF_ENABLED", "false")
os.environ.setdefault("WS_APP_URL", "https://weddingshare.test")

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

from app.core.auth import create_session_token
from app.core.database import drop_db, engine, get_session_context, init_db
from app.core.errors import UpstreamFailure
from app.core.identity import ProviderUser, get_identity_gateway
from app.core.mailer import Mailer, get_mailer
from app.core.media import MediaGateway, UploadedAsset, get_media_gateway
from app.core.session import SESSION_COOKIE
from app.main import app
from app.models.user import User
from app.models.wedding import Wedding, WeddingMember
from weddingshare_shared.schemas.common import MemberRole, Role


# ---------------------------------------------------------------------------
# Fake gateways
# ---------------------------------------------------------------------------

class FakeIdentityGateway:
    """In-memory stand-in for the Supabase auth API."""

    configured = True

    def __init__(self):
        self.accounts: dict[str, tuple[ProviderUser, str]] = {}
        self.tokens: dict[str, ProviderUser] = {}
        self.deleted: list[uuid.UUID] = []
        self.updates: list[tuple[uuid.UUID, dict]] = []
        self.fail_create = False

    def register(self, email: str, password: str, *, confirmed: bool = True, user_id: Optional[uuid.UUID] = None) -> ProviderUser:
        user = ProviderUser(id=user_id or uuid.uuid4(), email=email, email_confirmed=confirmed)
        self.accounts[email] = (user, password)
        return user

    async def get_user(self, token: str) -> Optional[ProviderUser]:
        return self.tokens.get(token)

    async def sign_in_with_password(self, email: str, password: str) -> Optional[ProviderUser]:
        account = self.accounts.get(email)
        if account is None or account[1] != password:
            return None
        return account[0]

    async def create_user(self, email, password, *, email_confirm, metadata=None) -> ProviderUser:
        if self.fail_create or email in self.accounts:
            raise UpstreamFailure("Failed to create user account")
        return self.register(email, password, confirmed=email_confirm)

    async def get_user_by_id(self, user_id):
        for user, _ in self.accounts.values():
            if user.id == user_id:
                return user
        return None

    async def update_user_by_id(self, user_id, patch):
        self.updates.append((user_id, patch))
        return await self.get_user_by_id(user_id)

    async def delete_user(self, user_id) -> None:
        self.deleted.append(user_id)
        self.accounts = {e: a for e, a in self.accounts.items() if a[0].id != user_id}


class FakeMediaGateway(MediaGateway):
    """Real URL building and upload checks; storage calls are recorded instead of sent."""

    def __init__(self):
        super().__init__("demo-cloud", "key", "secret", max_bytes=1024 * 1024)
        self.uploads: list[dict] = []
        self.destroyed: list[str] = []
        self.fail_destroy = False

    async def upload(self, data, *, folder=None, public_id=None, resource_type="auto") -> UploadedAsset:
        if hasattr(data, "read"):
            data = data.read()
        full_id = f"{folder}/{public_id}"
        self.uploads.append({"folder": folder, "public_id": public_id, "size": len(data)})
        return UploadedAsset(
            public_id=full_id,
            secure_url=f"https://res.cloudinary.com/demo-cloud/image/upload/{full_id}",
            bytes=len(data),
            format=None,
            resource_type="image",
        )

    async def destroy(self, public_id: str, resource_type: str = "image") -> None:
        if self.fail_destroy:
            raise UpstreamFailure("Failed to delete media")
        self.destroyed.append(public_id)


class MailOutbox:
    """Captures what the mailer posts to the Resend API."""

    def __init__(self):
        self.messages: list[dict] = []
        self.fail = False

    def handler(self, request: httpx.Request) -> httpx.Response:
        if self.fail:
            return httpx.Response(500, json={"message": "provider down"})
        self.messages.append(json.loads(request.content))
        return httpx.Response(200, json={"id": str(uuid.uuid4())})

    def to(self, address: str) -> list[dict]:
        return [m for m in self.messages if address in m["to"]]


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
async def database():
    await init_db()
    yield
    await drop_db()
    await engine.dispose()


@pytest.fixture
def identity_gateway() -> FakeIdentityGateway:
    return FakeIdentityGateway()


@pytest.fixture
def media_gateway() -> FakeMediaGateway:
    return FakeMediaGateway()


@pytest.fixture
def outbox() -> MailOutbox:
    return MailOutbox()


@pytest.fixture
async def mailer(outbox):
    client = httpx.AsyncClient(transport=httpx.MockTransport(outbox.handler))
    mailer = Mailer("re_test_key", client=client)
    yield mailer
    await mailer.aclose()


@pytest.fixture
async def client(database, identity_gateway, media_gateway, mailer):
    app.dependency_overrides[get_identity_gateway] = lambda: identity_gateway
    app.dependency_overrides[get_media_gateway] = lambda: media_gateway
    app.dependency_overrides[get_mailer] = lambda: mailer
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(database):
    async def _make_user(
        email: Optional[str] = None,
        role: Role = Role.ADMIN,
        **fields,
    ) -> User:
        email = email or f"{role.value}-{uuid.uuid4().hex[:8]}@example.com"
        fields.setdefault("name", email.split("@")[0])
        fields.setdefault("email_confirmed", True)
        async with get_session_context() as session:
            user = User(email=email, role=role.value, **fields)
            session.add(user)
        return user

    return _make_user


@pytest.fixture
def make_wedding(database):
    async def _make_wedding(owner: User, admins: tuple[User, ...] = (), **fields) -> Wedding:
        suffix = uuid.uuid4().hex[:6]
        fields.setdefault("name", "Alice & Bob")
        fields.setdefault("code", f"ALICEBOB{suffix}")
        fields.setdefault("subdomain", f"alice-bob-{suffix}")
        fields.setdefault("location", "Cape Town")
        fields.setdefault("status", "active")
        async with get_session_context() as session:
            wedding = Wedding(super_admin_id=owner.id, date=dt.date(2027, 6, 12), **fields)
            session.add(wedding)
            await session.flush()
            for admin in admins:
                session.add(WeddingMember(wedding_id=wedding.id, user_id=admin.id, role=MemberRole.ADMIN.value))
        return wedding

    return _make_wedding


@pytest.fixture
def login(client):
    """Point the client's session cookie at ``user``."""

    def _login(user: User) -> AsyncClient:
        client.cookies.set(SESSION_COOKIE, create_session_token(user.id, user.role))
        return client

    return _login
