"""
Outgoing email templates and in-app notifications.
"""

from __future__ import annotations

import datetime as dt
import uuid
from html import escape
from typing import Optional
from urllib.parse import quote, urlencode

import structlog
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.config import get_settings
from app.core.errors import NotFound, UpstreamFailure
from app.core.mailer import Mailer
from app.models.planning import Notification
from weddingshare_shared.schemas.common import NotificationType

log = structlog.get_logger()
settings = get_settings()

_BUTTON_STYLE = (
    "background: linear-gradient(135deg, #ec4899, #8b5cf6); color: white; padding: 15px 30px; "
    "text-decoration: none; border-radius: 8px; display: inline-block; font-weight: bold;"
)


# ---------------------------------------------------------------------------
# Links
# ---------------------------------------------------------------------------

def confirmation_url(token: str, email: str, wedding_data: Optional[str] = None) -> str:
    params = {"token": token, "email": email}
    if wedding_data:
        params["weddingData"] = wedding_data
    return f"{settings.base_url}/auth/confirm?{urlencode(params, quote_via=quote)}"


def join_url(wedding_id: uuid.UUID, guest_id: Optional[uuid.UUID] = None) -> str:
    url = f"{settings.base_url}/join?wedding={wedding_id}"
    if guest_id:
        url += f"&guest={guest_id}"
    return url


def signin_url() -> str:
    return f"{settings.base_url}/auth/signin"


def signup_url(wedding, email: str) -> str:
    """Signup link for an invited wedding admin, prefilled with the wedding details."""
    params = {
        "wedding": str(wedding.id),
        "name": wedding.name,
        "date": wedding.date.isoformat(),
        "location": wedding.location,
        "email": email,
    }
    return f"{settings.base_url}/auth/signup?{urlencode(params, quote_via=quote)}"


# ---------------------------------------------------------------------------
# Templates
# ---------------------------------------------------------------------------

def _layout(title: str, body: str) -> str:
    return (
        '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">'
        f'<h1 style="color: #ec4899;">{title}</h1>'
        f"{body}"
        '<hr style="border: none; border-top: 1px solid #eee; margin: 30px 0;">'
        '<p style="font-size: 12px; color: #999; text-align: center;">WeddingShare</p>'
        "</div>"
    )


def _button(url: str, label: str) -> str:
    return (
        f'<div style="text-align: center; margin: 30px 0;">'
        f'<a href="{escape(url)}" style="{_BUTTON_STYLE}">{label}</a></div>'
    )


def render_welcome(name: str) -> tuple[str, str]:
    body = (
        f"<p>Hello {escape(name)},</p>"
        "<p>Your WeddingShare account has been created successfully. "
        "You can now log in and start managing your weddings.</p>"
        + _button(signin_url(), "Sign in")
        + "<p>Best regards,<br>The WeddingShare Team</p>"
    )
    return "Welcome to WeddingShare!", _layout("Welcome to WeddingShare!", body)


def render_confirmation(name: str, url: str) -> tuple[str, str]:
    body = (
        f"<p>Hi {escape(name)},</p>"
        "<p>Thank you for signing up for WeddingShare! To complete your account setup, "
        "please confirm your email address by clicking the button below.</p>"
        + _button(url, "Confirm Email Address")
        + '<p style="font-size: 14px; color: #666;">If the button doesn\'t work, copy this link into your browser:<br>'
        f"{escape(url)}</p>"
        f'<p style="font-size: 12px; color: #999;">This link expires in {settings.confirmation_token_hours} hours. '
        "If you didn't create an account, you can safely ignore this email.</p>"
    )
    return "Confirm your WeddingShare account", _layout("Confirm Your Account", body)


def render_guest_invitation(
    guest_name: str, wedding_name: str, wedding_date: dt.date, location: str, url: str
) -> tuple[str, str]:
    body = (
        f"<h2>{escape(wedding_name)}</h2>"
        f"<p><strong>Date:</strong> {wedding_date.isoformat()}<br>"
        f"<strong>Location:</strong> {escape(location)}</p>"
        f"<p>Hi {escape(guest_name)},<br><br>"
        "You've been invited to join the wedding celebration! View the wedding gallery, "
        "share your photos, and RSVP to the event.</p>"
        + _button(url, "Join Wedding Gallery")
    )
    return f"You're invited to {wedding_name}!", _layout("You're Invited!", body)


def render_admin_invitation(
    wedding_name: str, wedding_date: dt.date, location: str, admin_name: str, login_url: str, signup_url: str
) -> tuple[str, str]:
    body = (
        f"<p>{escape(admin_name)} has invited you to manage <strong>{escape(wedding_name)}</strong> "
        f"({wedding_date.isoformat()}, {escape(location)}).</p>"
        "<p>Already have an account? Sign in to get started.</p>"
        + _button(login_url, "Sign in")
        + "<p>New to WeddingShare? Create your account with this email address.</p>"
        + _button(signup_url, "Create account")
    )
    return f"You've been invited to manage {wedding_name}", _layout("Wedding Management Invitation", body)


# ---------------------------------------------------------------------------
# Sending
# ---------------------------------------------------------------------------

async def send_best_effort(mailer: Mailer, to: str, message: tuple[str, str]) -> bool:
    """Send, logging instead of raising when the mail provider fails."""
    subject, html = message
    try:
        return await mailer.send(to, subject, html)
    except UpstreamFailure:
        log.warning("email.best_effort_failed", to=to, subject=subject)
        return False


# ---------------------------------------------------------------------------
# In-app notifications
# ---------------------------------------------------------------------------

async def notify(
    user_id: uuid.UUID,
    title: str,
    message: str,
    session: AsyncSession,
    *,
    wedding_id: Optional[uuid.UUID] = None,
    type: NotificationType = NotificationType.INFO,
) -> Notification:
    notification = Notification(
        user_id=user_id,
        wedding_id=wedding_id,
        title=title,
        message=message,
        type=type.value,
    )
    session.add(notification)
    await session.flush()
    return notification


async def list_notifications(user_id: uuid.UUID, session: AsyncSession) -> list[Notification]:
    result = await session.execute(
        select(Notification)
        .where(Notification.user_id == user_id)
        .order_by(Notification.created_at.desc())
    )
    return list(result.scalars().all())


async def mark_read(notification_id: uuid.UUID, user_id: uuid.UUID, session: AsyncSession) -> Notification:
    result = await session.execute(
        select(Notification).where(
            Notification.id == notification_id,
            Notification.user_id == user_id,
        )
    )
    notification = result.scalar_one_or_none()
    if not notification:
        raise NotFound("Notification not found")
    notification.is_read = True
    session.add(notification)
    await session.flush()
    return notification
