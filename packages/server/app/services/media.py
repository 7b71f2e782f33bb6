"""
Media service — uploads, listing, moderation and deletion of wedding photos and videos.
"""

from __future__ import annotations

import re
import time
import uuid
from datetime import datetime, timezone
from typing import BinaryIO, Optional

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.auth import Capability, Identity, WeddingScope, authorize, load_admin_ids, wedding_scopes
from app.core.errors import Forbidden, NotFound, UpstreamFailure
from app.core.media import MediaGateway
from app.models.media import Media
from app.models.wedding import Wedding
from app.services import weddings as wedding_service
from weddingshare_shared.schemas.common import MediaStatus, MediaType, Role
from weddingshare_shared.schemas.media import MediaResponse, MediaUpdateRequest

log = structlog.get_logger()


def storage_public_id(filename: str, now_ms: Optional[int] = None) -> str:
    """``{epoch_ms}_{filename}`` with anything but ASCII letters and digits replaced."""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return f"{now_ms}_{re.sub(r'[^a-zA-Z0-9]', '_', filename)}"


def media_type_for(content_type: Optional[str]) -> MediaType:
    return MediaType.VIDEO if (content_type or "").startswith("video/") else MediaType.IMAGE


def to_response(media: Media, gateway: Optional[MediaGateway] = None) -> MediaResponse:
    response = MediaResponse.model_validate(media, from_attributes=True)
    if gateway is not None and gateway.configured and media.public_id:
        response.thumbnail_url = gateway.thumbnail_url(media.public_id, resource_type=media.type)
    return response


async def _get_media(media_id: uuid.UUID, session: AsyncSession) -> Media:
    result = await session.execute(select(Media).where(Media.id == media_id))
    media = result.scalar_one_or_none()
    if not media:
        raise NotFound("Media not found")
    return media


async def _scopes_for(identity: Identity, wedding_id: uuid.UUID, session: AsyncSession) -> set[WeddingScope]:
    wedding = await wedding_service.get_wedding(wedding_id, session)
    return wedding_scopes(identity, wedding, await load_admin_ids(wedding.id, session))


async def upload_media(
    *,
    wedding_id: uuid.UUID,
    filename: str,
    content_type: Optional[str],
    stream: BinaryIO,
    size: int,
    description: Optional[str],
    identity: Identity,
    session: AsyncSession,
    gateway: MediaGateway,
) -> Media:
    wedding, _ = await wedding_service.authorize_wedding_access(
        identity, wedding_id, WeddingScope.PARTICIPANT, session
    )
    # Rejected on the declared size; the stream is only read by the CDN upload.
    gateway.check_upload(filename, size)

    media_type = media_type_for(content_type)
    asset = await gateway.upload(
        stream,
        folder=f"weddings/{wedding.id}",
        public_id=storage_public_id(filename),
        resource_type="auto",
    )

    auto_approved = identity.role != Role.GUEST
    media = Media(
        wedding_id=wedding.id,
        uploaded_by=identity.id,
        type=media_type.value,
        url=asset.secure_url,
        public_id=asset.public_id,
        filename=filename,
        size=asset.bytes or size,
        mime_type=content_type or "application/octet-stream",
        description=description,
        is_approved=auto_approved,
        approved_by=identity.id if auto_approved else None,
        approved_at=datetime.now(timezone.utc) if auto_approved else None,
        tags=[description] if description else [],
    )
    try:
        session.add(media)
        await session.flush()
    except SQLAlchemyError as exc:
        log.error("media.store_failed", wedding_id=str(wedding.id), public_id=asset.public_id, error=str(exc))
        try:
            await gateway.destroy(asset.public_id, resource_type=media_type.value)
        except UpstreamFailure:
            log.warning("media.compensation_failed", public_id=asset.public_id)
        raise UpstreamFailure("Failed to save media") from exc

    log.info(
        "media.uploaded",
        media_id=str(media.id),
        wedding_id=str(wedding.id),
        type=media.type,
        approved=media.is_approved,
    )
    return media


async def list_media(
    wedding_id: uuid.UUID,
    identity: Identity,
    session: AsyncSession,
    status: Optional[MediaStatus] = None,
) -> list[Media]:
    await wedding_service.authorize_wedding_access(identity, wedding_id, WeddingScope.PARTICIPANT, session)

    query = select(Media).where(Media.wedding_id == wedding_id)
    if identity.role == Role.GUEST:
        query = query.where(Media.is_approved == True)  # noqa: E712
    elif status == MediaStatus.APPROVED:
        query = query.where(Media.is_approved == True)  # noqa: E712
    elif status == MediaStatus.PENDING:
        query = query.where(Media.is_approved == False)  # noqa: E712
    result = await session.execute(query.order_by(Media.created_at.desc()))
    return list(result.scalars().all())


async def get_media(media_id: uuid.UUID, identity: Identity, session: AsyncSession) -> Media:
    media = await _get_media(media_id, session)
    scopes = await _scopes_for(identity, media.wedding_id, session)
    if WeddingScope.MANAGER in scopes or media.uploaded_by == identity.id:
        return media
    if identity.role == Role.GUEST and media.is_approved:
        return media
    raise Forbidden("Access denied")


async def _authorize_edit(media: Media, identity: Identity, session: AsyncSession) -> None:
    scopes = await _scopes_for(identity, media.wedding_id, session)
    if WeddingScope.MANAGER not in scopes and media.uploaded_by != identity.id:
        raise Forbidden("Access denied")


async def update_media(
    media_id: uuid.UUID,
    req: MediaUpdateRequest,
    identity: Identity,
    session: AsyncSession,
) -> Media:
    media = await _get_media(media_id, session)
    await _authorize_edit(media, identity, session)

    if req.is_approved is not None:
        authorize(identity, Capability.MODERATE_MEDIA, "Only admins can change media approval status")
        if req.is_approved != media.is_approved:
            media.is_approved = req.is_approved
            media.approved_by = identity.id if req.is_approved else None
            media.approved_at = datetime.now(timezone.utc) if req.is_approved else None
            log.info("media.moderated", media_id=str(media.id), approved=media.is_approved, by=str(identity.id))
    if req.description is not None:
        media.description = req.description

    media.updated_at = datetime.now(timezone.utc)
    session.add(media)
    await session.flush()
    return media


async def delete_media(
    media_id: uuid.UUID,
    identity: Identity,
    session: AsyncSession,
    gateway: MediaGateway,
) -> None:
    media = await _get_media(media_id, session)
    await _authorize_edit(media, identity, session)

    public_id, media_type = media.public_id, media.type
    await session.delete(media)
    await session.flush()

    if public_id:
        try:
            await gateway.destroy(public_id, resource_type=media_type)
        except UpstreamFailure:
            log.warning("media.storage_cleanup_failed", media_id=str(media_id), public_id=public_id)
    log.info("media.deleted", media_id=str(media_id), by=str(identity.id))


async def public_gallery(
    subdomain: str, session: AsyncSession, gateway: MediaGateway
) -> list[MediaResponse]:
    """Approved media of an active wedding, with CDN-optimized and thumbnail URLs."""
    result = await session.execute(
        select(Wedding).where(
            Wedding.subdomain == subdomain,
            Wedding.is_active == True,  # noqa: E712
        )
    )
    wedding = result.scalar_one_or_none()
    if not wedding:
        raise NotFound("Wedding not found")

    result = await session.execute(
        select(Media)
        .where(Media.wedding_id == wedding.id, Media.is_approved == True)  # noqa: E712
        .order_by(Media.created_at.desc())
    )
    gallery = []
    for media in result.scalars().all():
        response = to_response(media, gateway)
        if gateway.configured and media.public_id:
            response.url = gateway.optimized_url(media.public_id, width=1200, resource_type=media.type)
        gallery.append(response)
    return gallery
