"""Media model (photos and videos stored on the CDN)."""

from datetime import datetime
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import JSONType, TimestampMixin, UUIDMixin


class Media(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "media"

    wedding_id: uuid.UUID = Field(foreign_key="weddings.id", nullable=False, index=True)
    uploaded_by: uuid.UUID = Field(foreign_key="users.id", nullable=False, index=True)
    type: str = Field(nullable=False)  # image | video
    url: str = Field(nullable=False)
    public_id: Optional[str] = None  # storage identifier, needed for transformations and deletion
    filename: str = Field(nullable=False)
    size: int = Field(default=0, nullable=False)
    mime_type: str = Field(nullable=False)
    description: Optional[str] = None
    is_approved: bool = Field(default=False, nullable=False)
    approved_by: Optional[uuid.UUID] = Field(default=None, foreign_key="users.id")
    approved_at: Optional[datetime] = Field(default=None, sa_type=sa.DateTime(timezone=True))
    tags: list = Field(default_factory=list, sa_type=JSONType, nullable=False)
