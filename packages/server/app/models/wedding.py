"""Wedding (tenant) model and its membership / invite-link tables."""

import datetime as dt
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin, utcnow


class Wedding(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "weddings"

    name: str = Field(nullable=False, index=True)
    code: str = Field(unique=True, nullable=False, index=True)
    subdomain: Optional[str] = Field(default=None, unique=True, index=True)
    date: dt.date = Field(nullable=False)
    location: str = Field(nullable=False)
    description: Optional[str] = None
    status: str = Field(default="draft", nullable=False)  # draft | active | completed | archived
    is_active: bool = Field(default=True, nullable=False)
    super_admin_id: uuid.UUID = Field(foreign_key="users.id", nullable=False, index=True)
    subscription_plan_id: Optional[str] = None


class WeddingMember(UUIDMixin, SQLModel, table=True):
    """A user's membership of a wedding. Active ``admin`` rows are the wedding's admins."""

    __tablename__ = "wedding_members"
    __table_args__ = (sa.UniqueConstraint("wedding_id", "user_id"),)

    wedding_id: uuid.UUID = Field(foreign_key="weddings.id", nullable=False, index=True)
    user_id: uuid.UUID = Field(foreign_key="users.id", nullable=False, index=True)
    role: str = Field(default="guest", nullable=False)  # guest | admin
    is_active: bool = Field(default=True, nullable=False)
    invited_at: dt.datetime = Field(
        default_factory=utcnow, nullable=False, sa_type=sa.DateTime(timezone=True)
    )


class InviteLink(UUIDMixin, SQLModel, table=True):
    __tablename__ = "invite_links"

    wedding_id: uuid.UUID = Field(foreign_key="weddings.id", nullable=False, index=True)
    code: str = Field(unique=True, nullable=False, index=True)
    max_uses: Optional[int] = None
    uses: int = Field(default=0, nullable=False)
    expires_at: Optional[dt.datetime] = Field(default=None, sa_type=sa.DateTime(timezone=True))
    is_active: bool = Field(default=True, nullable=False)
    created_at: dt.datetime = Field(
        default_factory=utcnow, nullable=False, sa_type=sa.DateTime(timezone=True)
    )
