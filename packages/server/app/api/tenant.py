"""
Public wedding pages, reached through the tenant resolver.

``alice-and-bob.weddingshare.com/media`` is served as
``/subdomain/alice-and-bob/media``.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_session
from app.core.media import MediaGateway, get_media_gateway
from app.services import media as media_service
from app.services import weddings as wedding_service
from weddingshare_shared.schemas.media import MediaListEnvelope
from weddingshare_shared.schemas.weddings import PublicWeddingEnvelope

router = APIRouter()


@router.get("/{subdomain}", response_model=PublicWeddingEnvelope)
async def wedding_page(subdomain: str, session: AsyncSession = Depends(get_session)):
    return PublicWeddingEnvelope(wedding=await wedding_service.get_public_wedding(subdomain, session))


@router.get("/{subdomain}/media", response_model=MediaListEnvelope)
async def wedding_gallery(
    subdomain: str,
    session: AsyncSession = Depends(get_session),
    gateway: MediaGateway = Depends(get_media_gateway),
):
    return MediaListEnvelope(media=await media_service.public_gallery(subdomain, session, gateway))
