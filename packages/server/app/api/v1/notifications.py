"""
In-app notification endpoints for the current user.
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import Identity, get_identity
from app.core.database import get_session
from app.services import notifications as notification_service
from weddingshare_shared.schemas.planning import (
    NotificationEnvelope,
    NotificationListEnvelope,
    NotificationResponse,
)

router = APIRouter()


@router.get("", response_model=NotificationListEnvelope)
async def list_notifications(
    identity: Identity = Depends(get_identity),
    session: AsyncSession = Depends(get_session),
):
    items = await notification_service.list_notifications(identity.id, session)
    return NotificationListEnvelope(notifications=[NotificationResponse.model_validate(n) for n in items])


@router.post("/{notification_id}/read", response_model=NotificationEnvelope)
async def mark_read(
    notification_id: uuid.UUID,
    identity: Identity = Depends(get_identity),
    session: AsyncSession = Depends(get_session),
):
    notification = await notification_service.mark_read(notification_id, identity.id, session)
    return NotificationEnvelope(notification=NotificationResponse.model_validate(notification))
