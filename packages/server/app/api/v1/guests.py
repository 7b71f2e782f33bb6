"""
Guest list endpoints: invitations and RSVPs.
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import Identity, get_identity
from app.core.database import get_session
from app.core.mailer import Mailer, get_mailer
from app.services import guests as guest_service
from weddingshare_shared.schemas.common import Envelope
from weddingshare_shared.schemas.planning import (
    GuestEnvelope,
    GuestInviteRequest,
    GuestListEnvelope,
    GuestResponse,
    GuestUpdateRequest,
)

router = APIRouter()


@router.get("", response_model=GuestListEnvelope)
async def list_guests(
    wedding_id: uuid.UUID = Query(...),
    identity: Identity = Depends(get_identity),
    session: AsyncSession = Depends(get_session),
):
    guests = await guest_service.list_guests(wedding_id, identity, session)
    return GuestListEnvelope(guests=[GuestResponse.model_validate(g) for g in guests])


@router.post("", response_model=GuestEnvelope, status_code=201)
async def invite_guest(
    body: GuestInviteRequest,
    identity: Identity = Depends(get_identity),
    session: AsyncSession = Depends(get_session),
    mailer: Mailer = Depends(get_mailer),
):
    guest = await guest_service.invite_guest(body, identity, session, mailer)
    return GuestEnvelope(message="Guest invited successfully", guest=GuestResponse.model_validate(guest))


@router.put("/{guest_id}", response_model=GuestEnvelope)
async def update_guest(
    guest_id: uuid.UUID,
    body: GuestUpdateRequest,
    identity: Identity = Depends(get_identity),
    session: AsyncSession = Depends(get_session),
):
    guest = await guest_service.update_guest(guest_id, body, identity, session)
    return GuestEnvelope(message="Guest updated successfully", guest=GuestResponse.model_validate(guest))


@router.delete("/{guest_id}", response_model=Envelope)
async def remove_guest(
    guest_id: uuid.UUID,
    identity: Identity = Depends(get_identity),
    session: AsyncSession = Depends(get_session),
):
    await guest_service.remove_guest(guest_id, identity, session)
    return Envelope(message="Guest removed successfully")
