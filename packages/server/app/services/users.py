"""
Account service — login, signup, email confirmation and guest join.
"""

from __future__ import annotations

import base64
import binascii
import json
import re
import uuid
from typing import Optional

import jwt
import pydantic
import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.auth import create_confirmation_token, decode_confirmation_token, verify_password
from app.core.errors import (
    Conflict,
    Forbidden,
    NotFound,
    Unauthenticated,
    UpstreamFailure,
    ValidationError,
)
from app.core.identity import IdentityGateway
from app.core.mailer import Mailer
from app.models.user import User
from app.models.wedding import Wedding
from app.services import notifications
from app.services import weddings as wedding_service
from weddingshare_shared.schemas.common import MemberRole, Role
from weddingshare_shared.schemas.users import (
    ConfirmEmailRequest,
    ConfirmWeddingSignupRequest,
    GuestJoinRequest,
    LoginRequest,
    SignupRequest,
    WeddingData,
    WeddingSignupRequest,
)

log = structlog.get_logger()

TEMPORARY_USER_NAME = "Temporary User"


async def get_user_by_email(email: str, session: AsyncSession) -> Optional[User]:
    result = await session.execute(select(User).where(User.email == email))
    return result.scalar_one_or_none()


async def get_user(user_id: uuid.UUID, session: AsyncSession) -> Optional[User]:
    result = await session.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def _ensure_email_free(email: str, session: AsyncSession) -> None:
    if await get_user_by_email(email, session):
        raise Conflict("User with this email already exists")


# ---------------------------------------------------------------------------
# Login
# ---------------------------------------------------------------------------

async def login(
    req: LoginRequest,
    session: AsyncSession,
    identity: IdentityGateway,
) -> User:
    """Check credentials locally (bcrypt) or with the identity provider."""
    user = await get_user_by_email(req.email, session)

    if user is not None and user.password_hash:
        if not verify_password(req.password, user.password_hash):
            log.warning("auth.login_failure", email=req.email, reason="bad_password")
            raise Unauthenticated("Invalid credentials")
    else:
        provider_user = await identity.sign_in_with_password(req.email, req.password)
        if provider_user is None:
            log.warning("auth.login_failure", email=req.email, reason="provider_rejected")
            raise Unauthenticated("Invalid credentials")
        if user is None:
            log.warning("auth.login_failure", email=req.email, reason="no_local_user")
            raise Unauthenticated("User not found in system")

    if not user.is_active:
        raise Unauthenticated("Account is disabled")

    if not user.email_confirmed:
        raise Forbidden("Email not confirmed", requiresConfirmation=True, email=user.email)

    log.info("auth.login_success", user_id=str(user.id), role=user.role)
    return user


# ---------------------------------------------------------------------------
# Signup & confirmation
# ---------------------------------------------------------------------------

async def signup(
    req: SignupRequest,
    session: AsyncSession,
    identity: IdentityGateway,
    mailer: Mailer,
) -> User:
    """Create an account.

    With ``wedding_id`` the caller was invited to administer that wedding: the
    account is confirmed straight away. Otherwise a confirmation link is mailed.
    """
    await _ensure_email_free(req.email, session)

    if req.wedding_id is not None:
        wedding = await wedding_service.get_wedding(req.wedding_id, session)
        provider_user = await identity.create_user(
            req.email, req.password, email_confirm=True, metadata={"name": req.name, "role": Role.ADMIN.value}
        )
        user = User(
            id=provider_user.id,
            email=req.email,
            name=req.name,
            role=Role.ADMIN.value,
            email_confirmed=True,
        )
        try:
            session.add(user)
            await session.flush()
            await wedding_service.add_member(wedding.id, user.id, MemberRole.ADMIN, session)
        except SQLAlchemyError as exc:
            log.error("auth.signup_store_failed", email=req.email, error=str(exc))
            await identity.delete_user(provider_user.id)
            raise UpstreamFailure("Failed to create user account") from exc

        await notifications.send_best_effort(mailer, user.email, notifications.render_welcome(user.name))
        log.info("user.registered", user_id=str(user.id), email=user.email, wedding_id=str(wedding.id))
        return user

    provider_user = await identity.create_user(
        req.email, req.password, email_confirm=False, metadata={"name": req.name, "role": Role.ADMIN.value}
    )
    user = User(
        id=provider_user.id,
        email=req.email,
        name=req.name,
        role=Role.ADMIN.value,
        email_confirmed=False,
    )
    try:
        session.add(user)
        await session.flush()
    except SQLAlchemyError as exc:
        log.error("auth.signup_store_failed", email=req.email, error=str(exc))
        await identity.delete_user(provider_user.id)
        raise UpstreamFailure("Failed to create user account") from exc

    token = create_confirmation_token(user.id, user.email)
    await notifications.send_best_effort(
        mailer,
        user.email,
        notifications.render_confirmation(user.name, notifications.confirmation_url(token, user.email)),
    )
    log.info("user.registered", user_id=str(user.id), email=user.email, confirmed=False)
    return user


async def confirm_email(
    req: ConfirmEmailRequest,
    session: AsyncSession,
    identity: IdentityGateway,
) -> tuple[User, bool]:
    """Mark the account confirmed. Returns (user, was_already_confirmed)."""
    try:
        claims = decode_confirmation_token(req.token)
        user_id = uuid.UUID(claims["sub"])
    except (jwt.PyJWTError, KeyError, ValueError):
        raise ValidationError("Invalid confirmation link")

    user = await get_user(user_id, session)
    if user is None:
        raise ValidationError("Invalid confirmation link")
    if user.email != req.email:
        raise ValidationError("Email mismatch in confirmation link")
    if user.email_confirmed:
        return user, True

    user.email_confirmed = True
    session.add(user)
    await session.flush()

    # Accounts without a provider record (local or temporary) are confirmed locally only.
    try:
        provider_user = await identity.get_user_by_id(user.id)
        if provider_user is not None and not provider_user.email_confirmed:
            await identity.update_user_by_id(user.id, {"email_confirm": True})
    except UpstreamFailure:
        log.warning("auth.provider_confirm_failed", user_id=str(user.id))

    log.info("user.email_confirmed", user_id=str(user.id))
    return user, False


async def resend_confirmation(email: str, session: AsyncSession, mailer: Mailer) -> None:
    user = await get_user_by_email(email, session)
    if user is None:
        raise NotFound("User not found")
    token = create_confirmation_token(user.id, user.email)
    subject, html = notifications.render_confirmation(user.name, notifications.confirmation_url(token, user.email))
    try:
        await mailer.send(user.email, subject, html)
    except UpstreamFailure:
        raise UpstreamFailure("Failed to send confirmation email")
    log.info("user.confirmation_resent", user_id=str(user.id))


# ---------------------------------------------------------------------------
# Two-step wedding signup
# ---------------------------------------------------------------------------

def encode_wedding_data(data: WeddingData) -> str:
    return base64.b64encode(data.model_dump_json().encode()).decode()


def decode_wedding_data(value: str) -> WeddingData:
    try:
        return WeddingData.model_validate(json.loads(base64.b64decode(value, validate=True)))
    except (binascii.Error, UnicodeDecodeError, json.JSONDecodeError, pydantic.ValidationError):
        raise ValidationError("Invalid wedding data")


async def wedding_signup(req: WeddingSignupRequest, session: AsyncSession, mailer: Mailer) -> User:
    """Step one: reserve the email with a temporary admin row and mail the link."""
    await _ensure_email_free(req.email, session)

    user = User(email=req.email, name=TEMPORARY_USER_NAME, role=Role.ADMIN.value)
    session.add(user)
    await session.flush()

    token = create_confirmation_token(user.id, user.email)
    url = notifications.confirmation_url(token, user.email, encode_wedding_data(req.wedding_data))
    subject, html = notifications.render_confirmation("Wedding Admin", url)
    try:
        await mailer.send(user.email, subject, html)
    except UpstreamFailure:
        # Raising rolls the temporary row back with the request transaction.
        raise UpstreamFailure("Failed to send confirmation email")

    log.info("user.wedding_signup_started", user_id=str(user.id), email=user.email)
    return user


async def confirm_wedding_signup(
    req: ConfirmWeddingSignupRequest,
    session: AsyncSession,
    identity: IdentityGateway,
) -> tuple[User, Optional[Wedding]]:
    """Step two: create the real account and, when wedding data came along, the wedding."""
    wedding_data = decode_wedding_data(req.wedding_data) if req.wedding_data else None

    try:
        claims = decode_confirmation_token(req.token)
        temp_id = uuid.UUID(claims["sub"])
    except (jwt.PyJWTError, KeyError, ValueError):
        raise ValidationError("Invalid or expired confirmation link")

    temp_user = await get_user(temp_id, session)
    if temp_user is None or temp_user.email != req.email:
        raise ValidationError("Invalid or expired confirmation link")

    provider_user = await identity.create_user(
        req.email, req.password, email_confirm=True, metadata={"name": req.name, "role": Role.ADMIN.value}
    )

    try:
        await session.delete(temp_user)
        await session.flush()
        user = User(
            id=provider_user.id,
            email=req.email,
            name=req.name,
            role=Role.ADMIN.value,
            email_confirmed=True,
        )
        session.add(user)
        await session.flush()
    except SQLAlchemyError as exc:
        log.error("auth.wedding_signup_store_failed", email=req.email, error=str(exc))
        await identity.delete_user(provider_user.id)
        raise UpstreamFailure("Failed to update user account") from exc

    wedding = None
    if wedding_data is not None:
        try:
            wedding = await wedding_service.create_wedding_record(
                user,
                name=wedding_data.name,
                date=wedding_data.date,
                location=wedding_data.location,
                description=wedding_data.description,
                session=session,
            )
        except SQLAlchemyError as exc:
            log.error("auth.wedding_signup_wedding_failed", email=req.email, error=str(exc))
            await identity.delete_user(provider_user.id)
            raise UpstreamFailure("Failed to create wedding") from exc

    log.info(
        "user.wedding_signup_completed",
        user_id=str(user.id),
        wedding_id=str(wedding.id) if wedding else None,
    )
    return user, wedding


# ---------------------------------------------------------------------------
# Guest join
# ---------------------------------------------------------------------------

def guest_email(name: str, wedding_code: str) -> str:
    local_part = re.sub(r"\s+", "", name.lower())
    return f"{local_part}@{wedding_code}.guest"


async def guest_join(req: GuestJoinRequest, session: AsyncSession) -> tuple[User, Wedding]:
    """Join a wedding by its code as a named guest, creating the guest account on first use."""
    result = await session.execute(
        select(Wedding).where(
            Wedding.code == req.wedding_code,
            Wedding.is_active == True,  # noqa: E712
        )
    )
    wedding = result.scalar_one_or_none()
    if wedding is None:
        raise ValidationError("Invalid wedding code")

    email = guest_email(req.name, req.wedding_code)
    user = await get_user_by_email(email, session)
    if user is None:
        user = User(
            email=email,
            name=req.name,
            role=Role.GUEST.value,
            wedding_id=wedding.id,
            email_confirmed=True,
        )
        session.add(user)
        await session.flush()
        log.info("user.guest_created", user_id=str(user.id), wedding_id=str(wedding.id))
    elif not user.is_active:
        raise Unauthenticated("Account is disabled")

    if await wedding_service.get_membership(wedding.id, user.id, session) is None:
        await wedding_service.add_member(wedding.id, user.id, MemberRole.GUEST, session)

    return user, wedding
