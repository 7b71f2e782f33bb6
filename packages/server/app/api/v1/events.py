"""
Wedding schedule endpoints.
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import Identity, get_identity
from app.core.database import get_session
from app.services import events as event_service
from weddingshare_shared.schemas.common import Envelope
from weddingshare_shared.schemas.planning import (
    EventCreateRequest,
    EventEnvelope,
    EventListEnvelope,
    EventResponse,
    EventUpdateRequest,
)

router = APIRouter()


@router.get("", response_model=EventListEnvelope)
async def list_events(
    wedding_id: uuid.UUID = Query(...),
    identity: Identity = Depends(get_identity),
    session: AsyncSession = Depends(get_session),
):
    events = await event_service.list_events(wedding_id, identity, session)
    return EventListEnvelope(events=[EventResponse.model_validate(e) for e in events])


@router.post("", response_model=EventEnvelope, status_code=201)
async def create_event(
    body: EventCreateRequest,
    identity: Identity = Depends(get_identity),
    session: AsyncSession = Depends(get_session),
):
    event = await event_service.create_event(body, identity, session)
    return EventEnvelope(message="Event created successfully", event=EventResponse.model_validate(event))


@router.put("/{event_id}", response_model=EventEnvelope)
async def update_event(
    event_id: uuid.UUID,
    body: EventUpdateRequest,
    identity: Identity = Depends(get_identity),
    session: AsyncSession = Depends(get_session),
):
    event = await event_service.update_event(event_id, body, identity, session)
    return EventEnvelope(message="Event updated successfully", event=EventResponse.model_validate(event))


@router.delete("/{event_id}", response_model=Envelope)
async def delete_event(
    event_id: uuid.UUID,
    identity: Identity = Depends(get_identity),
    session: AsyncSession = Depends(get_session),
):
    await event_service.delete_event(event_id, identity, session)
    return Envelope(message="Event deleted successfully")
