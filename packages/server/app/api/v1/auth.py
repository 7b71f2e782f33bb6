"""
Authentication endpoints.

- Email/password login (local bcrypt accounts + identity provider)
- Signup, email confirmation and the two-step wedding signup
- Guest join by wedding code
- Session inspection and logout
"""

from __future__ import annotations

from datetime import timedelta
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import Identity, create_session_token, generate_csrf_token, get_identity
from app.core.config import get_settings
from app.core.database import get_session
from app.core.identity import IdentityGateway, get_identity_gateway
from app.core.mailer import Mailer, get_mailer
from app.core.session import CSRF_COOKIE, SESSION_COOKIE
from app.models.user import User
from app.services import users as user_service
from weddingshare_shared.schemas.common import Envelope
from weddingshare_shared.schemas.users import (
    ConfirmEmailRequest,
    ConfirmWeddingSignupRequest,
    GuestJoinRequest,
    LoginRequest,
    ResendConfirmationRequest,
    SessionEnvelope,
    SessionUser,
    SignupRequest,
    UserEnvelope,
    UserResponse,
    WeddingSignupRequest,
)
from weddingshare_shared.schemas.weddings import WeddingResponse

log = structlog.get_logger()
settings = get_settings()
router = APIRouter()

# Cookie config
COOKIE_KWARGS = {
    "secure": not settings.debug,  # allow non-HTTPS in dev
    "samesite": "lax",
    "path": "/",
}


class WeddingSignupEnvelope(Envelope):
    user: UserResponse
    wedding: Optional[WeddingResponse] = None


class GuestSessionEnvelope(Envelope):
    user: UserResponse
    wedding: WeddingResponse


def _set_session_cookies(response: Response, token: str, csrf: str, max_age: timedelta) -> None:
    """Set the session JWT and CSRF cookies on a response."""
    seconds = int(max_age.total_seconds())
    response.set_cookie(key=SESSION_COOKIE, value=token, httponly=True, max_age=seconds, **COOKIE_KWARGS)
    response.set_cookie(
        key=CSRF_COOKIE,
        value=csrf,
        httponly=False,  # JS must read this
        max_age=seconds,
        **COOKIE_KWARGS,
    )


def _start_session(response: Response, user: User, max_age: timedelta) -> None:
    token = create_session_token(user.id, user.role, expires_delta=max_age)
    _set_session_cookies(response, token, generate_csrf_token(), max_age)


# ---------------------------------------------------------------------------
# Login / session
# ---------------------------------------------------------------------------

@router.post("/login", response_model=UserEnvelope)
async def login(
    body: LoginRequest,
    response: Response,
    session: AsyncSession = Depends(get_session),
    identity: IdentityGateway = Depends(get_identity_gateway),
):
    """Authenticate with email/password and receive a session cookie."""
    user = await user_service.login(body, session, identity)
    _start_session(response, user, timedelta(days=settings.session_max_age_days))
    return UserEnvelope(message="Login successful", user=UserResponse.model_validate(user))


@router.post("/logout", response_model=Envelope)
async def logout(response: Response):
    response.delete_cookie(SESSION_COOKIE, path="/")
    response.delete_cookie(CSRF_COOKIE, path="/")
    return Envelope(message="Logged out successfully")


@router.get("/session", response_model=SessionEnvelope)
async def current_session(identity: Identity = Depends(get_identity)):
    return SessionEnvelope(
        user=SessionUser(id=identity.id, email=identity.email, name=identity.name, role=identity.role)
    )


@router.get("/providers")
async def providers():
    """Sign-in methods the web client may offer."""
    return {"google": bool(settings.google_client_id), "credentials": True}


# ---------------------------------------------------------------------------
# Signup & confirmation
# ---------------------------------------------------------------------------

@router.post("/signup", response_model=UserEnvelope, status_code=201)
async def signup(
    body: SignupRequest,
    session: AsyncSession = Depends(get_session),
    identity: IdentityGateway = Depends(get_identity_gateway),
    mailer: Mailer = Depends(get_mailer),
):
    user = await user_service.signup(body, session, identity, mailer)
    if user.email_confirmed:
        message = "Account created successfully"
    else:
        message = "Account created. Please check your email to confirm your account."
    return UserEnvelope(message=message, user=UserResponse.model_validate(user))


@router.post("/confirm", response_model=UserEnvelope)
async def confirm(
    body: ConfirmEmailRequest,
    session: AsyncSession = Depends(get_session),
    identity: IdentityGateway = Depends(get_identity_gateway),
):
    user, already = await user_service.confirm_email(body, session, identity)
    message = "Email already confirmed" if already else "Email confirmed successfully"
    return UserEnvelope(message=message, user=UserResponse.model_validate(user))


@router.post("/resend-confirmation", response_model=Envelope)
async def resend_confirmation(
    body: ResendConfirmationRequest,
    session: AsyncSession = Depends(get_session),
    mailer: Mailer = Depends(get_mailer),
):
    await user_service.resend_confirmation(body.email, session, mailer)
    return Envelope(message="Confirmation email sent")


@router.post("/wedding-signup", response_model=Envelope, status_code=201)
async def wedding_signup(
    body: WeddingSignupRequest,
    session: AsyncSession = Depends(get_session),
    mailer: Mailer = Depends(get_mailer),
):
    """Step one of the wedding signup: mail a confirmation link carrying the wedding details."""
    await user_service.wedding_signup(body, session, mailer)
    return Envelope(message="Please check your email to confirm your account")


@router.post("/confirm-wedding-signup", response_model=WeddingSignupEnvelope, status_code=201)
async def confirm_wedding_signup(
    body: ConfirmWeddingSignupRequest,
    session: AsyncSession = Depends(get_session),
    identity: IdentityGateway = Depends(get_identity_gateway),
):
    user, wedding = await user_service.confirm_wedding_signup(body, session, identity)
    return WeddingSignupEnvelope(
        message="Account created successfully",
        user=UserResponse.model_validate(user),
        wedding=WeddingResponse.model_validate(wedding) if wedding else None,
    )


# ---------------------------------------------------------------------------
# Guests
# ---------------------------------------------------------------------------

@router.post("/guest", response_model=GuestSessionEnvelope)
async def guest_login(
    body: GuestJoinRequest,
    response: Response,
    session: AsyncSession = Depends(get_session),
):
    """Join a wedding as a named guest. The guest session lasts one day."""
    user, wedding = await user_service.guest_join(body, session)
    _start_session(response, user, timedelta(hours=settings.guest_session_hours))
    log.info("auth.guest_login", user_id=str(user.id), wedding_id=str(wedding.id))
    return GuestSessionEnvelope(
        message="Welcome to the wedding!",
        user=UserResponse.model_validate(user),
        wedding=WeddingResponse.model_validate(wedding),
    )
