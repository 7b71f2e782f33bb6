"""
Wedding schedule service.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

import structlog
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.auth import Identity, WeddingScope, load_admin_ids, wedding_scopes
from app.core.errors import Forbidden, NotFound
from app.models.planning import Event
from app.services import weddings as wedding_service
from weddingshare_shared.schemas.planning import EventCreateRequest, EventUpdateRequest

log = structlog.get_logger()


async def list_events(wedding_id: uuid.UUID, identity: Identity, session: AsyncSession) -> list[Event]:
    await wedding_service.authorize_wedding_access(identity, wedding_id, WeddingScope.PARTICIPANT, session)
    result = await session.execute(
        select(Event).where(Event.wedding_id == wedding_id).order_by(Event.start_time)
    )
    return list(result.scalars().all())


async def create_event(req: EventCreateRequest, identity: Identity, session: AsyncSession) -> Event:
    await wedding_service.authorize_wedding_access(identity, req.wedding_id, WeddingScope.MANAGER, session)
    event = Event(**req.model_dump(), created_by=identity.id)
    session.add(event)
    await session.flush()
    log.info("event.created", event_id=str(event.id), wedding_id=str(event.wedding_id))
    return event


async def _editable_event(event_id: uuid.UUID, identity: Identity, session: AsyncSession) -> Event:
    result = await session.execute(select(Event).where(Event.id == event_id))
    event = result.scalar_one_or_none()
    if not event:
        raise NotFound("Event not found")
    wedding = await wedding_service.get_wedding(event.wedding_id, session)
    scopes = wedding_scopes(identity, wedding, await load_admin_ids(wedding.id, session))
    if WeddingScope.MANAGER not in scopes and event.created_by != identity.id:
        raise Forbidden("Access denied")
    return event


async def update_event(
    event_id: uuid.UUID, req: EventUpdateRequest, identity: Identity, session: AsyncSession
) -> Event:
    event = await _editable_event(event_id, identity, session)
    for field, value in req.model_dump(exclude_unset=True).items():
        if value is not None or field in ("end_time", "description", "location"):
            setattr(event, field, value)
    event.updated_at = datetime.now(timezone.utc)
    session.add(event)
    await session.flush()
    log.info("event.updated", event_id=str(event.id))
    return event


async def delete_event(event_id: uuid.UUID, identity: Identity, session: AsyncSession) -> None:
    event = await _editable_event(event_id, identity, session)
    await session.delete(event)
    await session.flush()
    log.info("event.deleted", event_id=str(event_id), by=str(identity.id))
