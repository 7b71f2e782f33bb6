"""User model."""

from datetime import datetime
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin


class User(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "users"

    email: str = Field(unique=True, index=True, nullable=False)
    name: str = Field(nullable=False)
    role: str = Field(default="guest", nullable=False)  # guest | admin | super_admin | application_admin
    is_active: bool = Field(default=True, nullable=False)
    email_confirmed: bool = Field(default=False, nullable=False)
    password_hash: Optional[str] = Field(default=None)  # bcrypt hash for locally provisioned accounts
    # Guests created through the join-by-code flow belong to one wedding.
    wedding_id: Optional[uuid.UUID] = Field(default=None, index=True)
    invited: bool = Field(default=False, nullable=False)

    # Subscription block (super admins)
    subscription_plan: Optional[str] = None
    subscription_status: Optional[str] = None
    subscription_expires_at: Optional[datetime] = Field(
        default=None, sa_type=sa.DateTime(timezone=True)
    )
