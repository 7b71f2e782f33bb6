"""
Authentication and authorization for WeddingShare.

Supports:
- Password hashing for locally provisioned accounts
- Signed session and email-confirmation tokens (HS256)
- Session resolution from the ``session-token`` cookie
- Capability-based authorization with per-route capability sets
- Wedding-scoped checks (owner / manager / participant)
"""

from __future__ import annotations

import secrets
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Iterable, Optional

import bcrypt
import jwt
import structlog
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.config import get_settings
from app.core.database import get_session
from app.core.errors import Forbidden, InvalidSession, Unauthenticated, UserNotFound
from app.core.identity import IdentityGateway, get_identity_gateway
from app.core.session import (
    SESSION_COOKIE,
    InlineSessionToken,
    ProviderSessionToken,
    SignedSessionToken,
    classify_session_token,
)
from app.models.user import User
from app.models.wedding import Wedding, WeddingMember
from weddingshare_shared.schemas.common import Role

log = structlog.get_logger()
settings = get_settings()

SESSION_AUDIENCE = "session"
CONFIRMATION_AUDIENCE = "email-confirmation"

# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------

def hash_password(password: str) -> str:
    """Hash a password using bcrypt with cost factor 12."""
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=12)).decode()


def verify_password(password: str, hashed: str) -> bool:
    """Verify a password against a bcrypt hash."""
    return bcrypt.checkpw(password.encode(), hashed.encode())


# ---------------------------------------------------------------------------
# JWT
# ---------------------------------------------------------------------------

def create_session_token(
    user_id: uuid.UUID,
    role: str,
    *,
    expires_delta: timedelta | None = None,
) -> str:
    """Create a signed session JWT for the ``session-token`` cookie."""
    now = datetime.now(timezone.utc)
    exp = now + (expires_delta or timedelta(days=settings.session_max_age_days))
    payload = {
        "sub": str(user_id),
        "role": role,
        "iss": settings.session_issuer,
        "aud": SESSION_AUDIENCE,
        "iat": now,
        "exp": exp,
        "jti": str(uuid.uuid4()),
    }
    return jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)


def decode_session_token(token: str) -> dict:
    """Decode and verify a session JWT. Raises jwt.PyJWTError on failure."""
    return jwt.decode(
        token,
        settings.secret_key,
        algorithms=[settings.jwt_algorithm],
        audience=SESSION_AUDIENCE,
        issuer=settings.session_issuer,
    )


def create_confirmation_token(
    user_id: uuid.UUID,
    email: str,
    *,
    expires_delta: timedelta | None = None,
) -> str:
    """Token carried by email-confirmation links."""
    now = datetime.now(timezone.utc)
    exp = now + (expires_delta or timedelta(hours=settings.confirmation_token_hours))
    payload = {
        "sub": str(user_id),
        "email": email,
        "iss": settings.session_issuer,
        "aud": CONFIRMATION_AUDIENCE,
        "iat": now,
        "exp": exp,
    }
    return jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)


def decode_confirmation_token(token: str) -> dict:
    """Raises jwt.PyJWTError when the link is forged, expired or not a confirmation token."""
    return jwt.decode(
        token,
        settings.secret_key,
        algorithms=[settings.jwt_algorithm],
        audience=CONFIRMATION_AUDIENCE,
        issuer=settings.session_issuer,
    )


# ---------------------------------------------------------------------------
# CSRF Token
# ---------------------------------------------------------------------------

def generate_csrf_token() -> str:
    """Generate a random CSRF token."""
    return secrets.token_urlsafe(32)


# ---------------------------------------------------------------------------
# Session resolution
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Identity:
    """The caller, as established by the session cookie."""

    id: uuid.UUID
    email: str
    name: Optional[str]
    role: Role
    source: str = "signed"  # inline | signed | provider

    @classmethod
    def from_user(cls, user: User, source: str) -> "Identity":
        return cls(id=user.id, email=user.email, name=user.name, role=Role(user.role), source=source)


async def _load_user(user_id: uuid.UUID, session: AsyncSession) -> User:
    result = await session.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if not user:
        raise UserNotFound()
    if not user.is_active:
        raise Unauthenticated("Account is disabled")
    return user


async def resolve_session(
    raw: str,
    session: AsyncSession,
    identity_gateway: IdentityGateway,
) -> Identity:
    """Turn a raw cookie value into an Identity, or raise 401/404."""
    token = classify_session_token(raw, settings.session_issuer)

    if isinstance(token, InlineSessionToken):
        if not settings.allow_inline_sessions:
            log.warning("auth.inline_session_rejected")
            raise InvalidSession()
        claims = token.identity
        return Identity(id=claims.id, email=claims.email, name=claims.name, role=claims.role, source="inline")

    if isinstance(token, SignedSessionToken):
        try:
            payload = decode_session_token(token.token)
            user_id = uuid.UUID(payload["sub"])
        except (jwt.PyJWTError, KeyError, ValueError):
            raise InvalidSession()
        user = await _load_user(user_id, session)
        return Identity.from_user(user, source="signed")

    if isinstance(token, ProviderSessionToken):
        provider_user = await identity_gateway.get_user(token.token)
        if provider_user is None:
            raise InvalidSession()
        user = await _load_user(provider_user.id, session)
        return Identity.from_user(user, source="provider")

    log.info("auth.malformed_session", reason=token.reason)
    raise InvalidSession()


async def get_identity(
    request: Request,
    session: AsyncSession = Depends(get_session),
    identity_gateway: IdentityGateway = Depends(get_identity_gateway),
) -> Identity:
    """Main authentication dependency. Reads the ``session-token`` cookie."""
    raw = request.cookies.get(SESSION_COOKIE)
    if not raw:
        raise Unauthenticated()
    identity = await resolve_session(raw, session, identity_gateway)
    request.state.identity = identity
    return identity


# ---------------------------------------------------------------------------
# Capabilities
# ---------------------------------------------------------------------------

class Capability(str, Enum):
    REVIEW_APPLICATIONS = "review_applications"
    MANAGE_PLATFORM_USERS = "manage_platform_users"
    CREATE_WEDDING = "create_wedding"
    MODERATE_MEDIA = "moderate_media"
    OWN_WEDDINGS = "own_weddings"


# No role inherits from another: application admins run the platform, not weddings.
ROLE_CAPABILITIES: dict[Role, frozenset[Capability]] = {
    Role.APPLICATION_ADMIN: frozenset({Capability.REVIEW_APPLICATIONS, Capability.MANAGE_PLATFORM_USERS}),
    Role.SUPER_ADMIN: frozenset({Capability.CREATE_WEDDING, Capability.MODERATE_MEDIA, Capability.OWN_WEDDINGS}),
    Role.ADMIN: frozenset({Capability.CREATE_WEDDING, Capability.MODERATE_MEDIA}),
    Role.GUEST: frozenset(),
}


def has_capability(identity: Identity, capability: Capability) -> bool:
    return capability in ROLE_CAPABILITIES.get(identity.role, frozenset())


def authorize(identity: Identity, capability: Capability, message: Optional[str] = None) -> Identity:
    """Raise Forbidden unless the identity's role grants ``capability``."""
    if not has_capability(identity, capability):
        log.info(
            "auth.forbidden",
            user_id=str(identity.id),
            role=identity.role.value,
            capability=capability.value,
        )
        raise Forbidden(message or "Access denied")
    return identity


def require(capability: Capability, message: Optional[str] = None):
    """Route dependency factory: ``Depends(require(Capability.CREATE_WEDDING))``."""

    async def dependency(identity: Identity = Depends(get_identity)) -> Identity:
        return authorize(identity, capability, message)

    return dependency


# ---------------------------------------------------------------------------
# Wedding scopes
# ---------------------------------------------------------------------------

class WeddingScope(str, Enum):
    OWNER = "owner"
    MANAGER = "manager"
    PARTICIPANT = "participant"


async def load_admin_ids(wedding_id: uuid.UUID, session: AsyncSession) -> set[uuid.UUID]:
    """Ids of the wedding's active admin members."""
    result = await session.execute(
        select(WeddingMember.user_id).where(
            WeddingMember.wedding_id == wedding_id,
            WeddingMember.role == Role.ADMIN.value,
            WeddingMember.is_active == True,  # noqa: E712
        )
    )
    return set(result.scalars().all())


def wedding_scopes(identity: Identity, wedding: Wedding, admin_ids: Iterable[uuid.UUID]) -> set[WeddingScope]:
    scopes: set[WeddingScope] = set()
    if identity.role == Role.SUPER_ADMIN and wedding.super_admin_id == identity.id:
        scopes.add(WeddingScope.OWNER)
    if WeddingScope.OWNER in scopes or (identity.role == Role.ADMIN and identity.id in set(admin_ids)):
        scopes.add(WeddingScope.MANAGER)
    # Any guest may take part in any wedding.
    if WeddingScope.MANAGER in scopes or identity.role == Role.GUEST:
        scopes.add(WeddingScope.PARTICIPANT)
    return scopes


def authorize_wedding(
    identity: Identity,
    wedding: Wedding,
    admin_ids: Iterable[uuid.UUID],
    scope: WeddingScope,
    message: Optional[str] = None,
) -> set[WeddingScope]:
    """Raise Forbidden unless the identity holds ``scope`` on the wedding. Returns all held scopes."""
    scopes = wedding_scopes(identity, wedding, admin_ids)
    if scope not in scopes:
        log.info(
            "auth.wedding_forbidden",
            user_id=str(identity.id),
            wedding_id=str(wedding.id),
            scope=scope.value,
        )
        raise Forbidden(message or "Access denied")
    return scopes
