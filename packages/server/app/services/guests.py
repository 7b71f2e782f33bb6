"""
Guest list service — invitations and RSVPs.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

import structlog
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.auth import Identity, WeddingScope, load_admin_ids, wedding_scopes
from app.core.errors import Conflict, Forbidden, NotFound
from app.core.mailer import Mailer
from app.models.planning import WeddingGuest
from app.models.user import User
from app.services import notifications
from app.services import weddings as wedding_service
from weddingshare_shared.schemas.planning import GuestInviteRequest, GuestUpdateRequest

log = structlog.get_logger()


async def list_guests(wedding_id: uuid.UUID, identity: Identity, session: AsyncSession) -> list[WeddingGuest]:
    await wedding_service.authorize_wedding_access(identity, wedding_id, WeddingScope.MANAGER, session)
    result = await session.execute(
        select(WeddingGuest)
        .where(WeddingGuest.wedding_id == wedding_id)
        .order_by(WeddingGuest.invited_at.desc())
    )
    return list(result.scalars().all())


async def invite_guest(
    req: GuestInviteRequest,
    identity: Identity,
    session: AsyncSession,
    mailer: Mailer,
) -> WeddingGuest:
    wedding, _ = await wedding_service.authorize_wedding_access(
        identity, req.wedding_id, WeddingScope.MANAGER, session
    )

    existing = await session.execute(
        select(WeddingGuest.id).where(
            WeddingGuest.wedding_id == wedding.id,
            WeddingGuest.guest_email == req.guest_email,
        )
    )
    if existing.first() is not None:
        raise Conflict("Guest already invited to this wedding")

    result = await session.execute(select(User).where(User.email == req.guest_email))
    user = result.scalar_one_or_none()

    guest = WeddingGuest(
        wedding_id=wedding.id,
        guest_id=user.id if user else None,
        guest_name=req.guest_name,
        guest_email=req.guest_email,
        invited_by=identity.id,
        plus_one=req.plus_one,
        plus_one_name=req.plus_one_name,
    )
    session.add(guest)
    await session.flush()

    await notifications.send_best_effort(
        mailer,
        guest.guest_email,
        notifications.render_guest_invitation(
            guest.guest_name or "Guest",
            wedding.name,
            wedding.date,
            wedding.location,
            notifications.join_url(wedding.id, guest.id),
        ),
    )
    log.info("guest.invited", guest_id=str(guest.id), wedding_id=str(wedding.id), linked=user is not None)
    return guest


async def _get_guest(guest_id: uuid.UUID, session: AsyncSession) -> WeddingGuest:
    result = await session.execute(select(WeddingGuest).where(WeddingGuest.id == guest_id))
    guest = result.scalar_one_or_none()
    if not guest:
        raise NotFound("Guest not found")
    return guest


async def update_guest(
    guest_id: uuid.UUID,
    req: GuestUpdateRequest,
    identity: Identity,
    session: AsyncSession,
) -> WeddingGuest:
    """Managers edit any entry; a guest edits their own (matched by account or email)."""
    guest = await _get_guest(guest_id, session)
    wedding = await wedding_service.get_wedding(guest.wedding_id, session)
    scopes = wedding_scopes(identity, wedding, await load_admin_ids(wedding.id, session))
    is_self = guest.guest_id == identity.id or guest.guest_email == identity.email
    if WeddingScope.MANAGER not in scopes and not is_self:
        raise Forbidden("Access denied")

    if req.rsvp_status is not None and req.rsvp_status.value != guest.rsvp_status:
        guest.rsvp_status = req.rsvp_status.value
        guest.responded_at = datetime.now(timezone.utc)
    if req.dietary_restrictions is not None:
        guest.dietary_restrictions = req.dietary_restrictions
    if req.plus_one_name is not None:
        guest.plus_one_name = req.plus_one_name

    session.add(guest)
    await session.flush()
    log.info("guest.updated", guest_id=str(guest.id), rsvp=guest.rsvp_status)
    return guest


async def remove_guest(guest_id: uuid.UUID, identity: Identity, session: AsyncSession) -> None:
    guest = await _get_guest(guest_id, session)
    await wedding_service.authorize_wedding_access(identity, guest.wedding_id, WeddingScope.MANAGER, session)
    await session.delete(guest)
    await session.flush()
    log.info("guest.removed", guest_id=str(guest_id), by=str(identity.id))
