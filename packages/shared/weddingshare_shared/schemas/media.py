from __future__ import annotations

import datetime as dt
from typing import Optional
from uuid import UUID

from pydantic import BaseModel

from .common import Envelope, MediaType


class MediaUpdateRequest(BaseModel):
    is_approved: Optional[bool] = None
    description: Optional[str] = None


class MediaResponse(BaseModel):
    id: UUID
    wedding_id: UUID
    uploaded_by: UUID
    type: MediaType
    url: str
    thumbnail_url: Optional[str] = None
    filename: str
    size: int
    mime_type: str
    description: Optional[str] = None
    is_approved: bool
    approved_by: Optional[UUID] = None
    approved_at: Optional[dt.datetime] = None
    tags: list[str] = []
    created_at: dt.datetime
    updated_at: dt.datetime


class MediaEnvelope(Envelope):
    media: MediaResponse


class MediaListEnvelope(Envelope):
    media: list[MediaResponse]
