"""
Media endpoints: upload, gallery listing, moderation, deletion.

- Guest uploads wait for approval; admin uploads are approved on arrival
- Guests only ever see approved items
"""

from __future__ import annotations

import os
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import Identity, get_identity
from app.core.database import get_session
from app.core.media import MediaGateway, get_media_gateway
from app.services import media as media_service
from weddingshare_shared.schemas.common import Envelope, MediaStatus
from weddingshare_shared.schemas.media import MediaEnvelope, MediaListEnvelope, MediaUpdateRequest

router = APIRouter()


def _declared_size(file: UploadFile) -> int:
    """Size of the spooled upload, without reading it."""
    if file.size is not None:
        return file.size
    position = file.file.tell()
    file.file.seek(0, os.SEEK_END)
    size = file.file.tell()
    file.file.seek(position)
    return size


@router.post("/upload", response_model=MediaEnvelope, status_code=201)
async def upload(
    file: UploadFile = File(...),
    wedding_id: uuid.UUID = Form(...),
    description: Optional[str] = Form(default=None),
    identity: Identity = Depends(get_identity),
    session: AsyncSession = Depends(get_session),
    gateway: MediaGateway = Depends(get_media_gateway),
):
    media = await media_service.upload_media(
        wedding_id=wedding_id,
        filename=file.filename or "upload",
        content_type=file.content_type,
        stream=file.file,
        size=_declared_size(file),
        description=description or None,
        identity=identity,
        session=session,
        gateway=gateway,
    )
    return MediaEnvelope(message="Media uploaded successfully", media=media_service.to_response(media, gateway))


@router.get("", response_model=MediaListEnvelope)
async def list_media(
    wedding_id: uuid.UUID = Query(...),
    status: Optional[MediaStatus] = Query(default=None),
    identity: Identity = Depends(get_identity),
    session: AsyncSession = Depends(get_session),
    gateway: MediaGateway = Depends(get_media_gateway),
):
    items = await media_service.list_media(wedding_id, identity, session, status)
    return MediaListEnvelope(media=[media_service.to_response(m, gateway) for m in items])


@router.get("/{media_id}", response_model=MediaEnvelope)
async def get_media(
    media_id: uuid.UUID,
    identity: Identity = Depends(get_identity),
    session: AsyncSession = Depends(get_session),
    gateway: MediaGateway = Depends(get_media_gateway),
):
    media = await media_service.get_media(media_id, identity, session)
    return MediaEnvelope(media=media_service.to_response(media, gateway))


@router.put("/{media_id}", response_model=MediaEnvelope)
async def update_media(
    media_id: uuid.UUID,
    body: MediaUpdateRequest,
    identity: Identity = Depends(get_identity),
    session: AsyncSession = Depends(get_session),
    gateway: MediaGateway = Depends(get_media_gateway),
):
    media = await media_service.update_media(media_id, body, identity, session)
    return MediaEnvelope(message="Media updated successfully", media=media_service.to_response(media, gateway))


@router.delete("/{media_id}", response_model=Envelope)
async def delete_media(
    media_id: uuid.UUID,
    identity: Identity = Depends(get_identity),
    session: AsyncSession = Depends(get_session),
    gateway: MediaGateway = Depends(get_media_gateway),
):
    await media_service.delete_media(media_id, identity, session, gateway)
    return Envelope(message="Media deleted successfully")
