"""
Wedding endpoints: CRUD, lifecycle, subdomains, membership.

Lifecycle: draft → active → completed, any state → archived (terminal).
- Subdomains are validated and unique; one is generated when not supplied
- Creators without the super admin role become admin members
- Invitations create memberships, invite links and in-app notifications
"""

from __future__ import annotations

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import Capability, Identity, WeddingScope, get_identity, require
from app.core.database import get_session
from app.core.mailer import Mailer, get_mailer
from app.core.media import MediaGateway, get_media_gateway
from app.services import weddings as wedding_service
from weddingshare_shared.schemas.common import Envelope
from weddingshare_shared.schemas.weddings import (
    InviteEnvelope,
    InviteRequest,
    MembersEnvelope,
    PublicWeddingEnvelope,
    WeddingCreateRequest,
    WeddingDetailEnvelope,
    WeddingEnvelope,
    WeddingListEnvelope,
    WeddingResponse,
    WeddingUpdateRequest,
)

router = APIRouter()


@router.get("", response_model=WeddingListEnvelope)
async def list_weddings(
    identity: Identity = Depends(get_identity),
    session: AsyncSession = Depends(get_session),
):
    weddings = await wedding_service.list_weddings(identity, session)
    return WeddingListEnvelope(weddings=[WeddingResponse.model_validate(w) for w in weddings])


@router.post("", response_model=WeddingEnvelope, status_code=201)
async def create_wedding(
    body: WeddingCreateRequest,
    identity: Identity = Depends(require(Capability.CREATE_WEDDING)),
    session: AsyncSession = Depends(get_session),
    mailer: Mailer = Depends(get_mailer),
):
    wedding = await wedding_service.create_wedding(body, identity, session, mailer)
    return WeddingEnvelope(message="Wedding created successfully", wedding=WeddingResponse.model_validate(wedding))


@router.get("/validate-subdomain", response_model=Envelope)
async def validate_subdomain(
    subdomain: str = Query(...),
    exclude: Optional[uuid.UUID] = Query(default=None),
    session: AsyncSession = Depends(get_session),
):
    await wedding_service.ensure_subdomain_available(subdomain, session, exclude_id=exclude)
    return Envelope(message="Subdomain is available")


@router.get("/subdomain/{subdomain}", response_model=PublicWeddingEnvelope)
async def get_wedding_by_subdomain(
    subdomain: str,
    session: AsyncSession = Depends(get_session),
):
    return PublicWeddingEnvelope(wedding=await wedding_service.get_public_wedding(subdomain, session))


@router.get("/{wedding_id}", response_model=WeddingDetailEnvelope)
async def get_wedding(
    wedding_id: uuid.UUID,
    identity: Identity = Depends(get_identity),
    session: AsyncSession = Depends(get_session),
):
    wedding, _ = await wedding_service.authorize_wedding_access(
        identity, wedding_id, WeddingScope.MANAGER, session
    )
    return WeddingDetailEnvelope(wedding=await wedding_service.wedding_detail(wedding, session))


@router.put("/{wedding_id}", response_model=WeddingEnvelope)
async def update_wedding(
    wedding_id: uuid.UUID,
    body: WeddingUpdateRequest,
    identity: Identity = Depends(get_identity),
    session: AsyncSession = Depends(get_session),
):
    wedding, _ = await wedding_service.authorize_wedding_access(
        identity, wedding_id, WeddingScope.MANAGER, session
    )
    wedding = await wedding_service.update_wedding(wedding, body, session)
    return WeddingEnvelope(message="Wedding updated successfully", wedding=WeddingResponse.model_validate(wedding))


@router.delete("/{wedding_id}", response_model=Envelope)
async def delete_wedding(
    wedding_id: uuid.UUID,
    identity: Identity = Depends(get_identity),
    session: AsyncSession = Depends(get_session),
    media: MediaGateway = Depends(get_media_gateway),
):
    wedding, _ = await wedding_service.authorize_wedding_access(
        identity, wedding_id, WeddingScope.OWNER, session, "Only super admin can delete weddings"
    )
    await wedding_service.delete_wedding(wedding, session, media)
    return Envelope(message="Wedding deleted successfully")


# ---------------------------------------------------------------------------
# Membership
# ---------------------------------------------------------------------------

@router.post("/{wedding_id}/invite", response_model=InviteEnvelope)
async def invite(
    wedding_id: uuid.UUID,
    body: InviteRequest,
    identity: Identity = Depends(get_identity),
    session: AsyncSession = Depends(get_session),
):
    wedding, _ = await wedding_service.authorize_wedding_access(
        identity, wedding_id, WeddingScope.MANAGER, session
    )
    outcome = await wedding_service.invite_members(wedding, body, session)
    return InviteEnvelope(
        message=f"Successfully processed {len(outcome.results)} invitations",
        data=outcome,
    )


@router.get("/{wedding_id}/invite", response_model=MembersEnvelope)
async def list_members(
    wedding_id: uuid.UUID,
    identity: Identity = Depends(get_identity),
    session: AsyncSession = Depends(get_session),
):
    """Members and active invite links. Open to managers and active members."""
    wedding = await wedding_service.get_wedding(wedding_id, session)
    member = await wedding_service.get_membership(wedding.id, identity.id, session)
    if member is None or not member.is_active:
        await wedding_service.authorize_wedding_access(identity, wedding_id, WeddingScope.MANAGER, session)
    return MembersEnvelope(data=await wedding_service.list_members(wedding, session))
