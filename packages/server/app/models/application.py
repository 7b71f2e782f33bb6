"""Super admin application model."""

from datetime import datetime
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import UUIDMixin, utcnow


class SuperAdminApplication(UUIDMixin, SQLModel, table=True):
    __tablename__ = "super_admin_applications"

    business_name: str = Field(nullable=False)
    business_type: str = Field(nullable=False)  # venue | photography_studio | event_planner | other
    contact_person: str = Field(nullable=False)
    email: str = Field(unique=True, nullable=False, index=True)
    phone: Optional[str] = None
    address: Optional[str] = None
    website: Optional[str] = None
    description: Optional[str] = None
    expected_weddings_per_month: Optional[int] = None
    status: str = Field(default="pending", nullable=False, index=True)  # pending | approved | rejected
    submitted_at: datetime = Field(
        default_factory=utcnow, nullable=False, sa_type=sa.DateTime(timezone=True)
    )
    reviewed_at: Optional[datetime] = Field(default=None, sa_type=sa.DateTime(timezone=True))
    reviewed_by: Optional[uuid.UUID] = Field(default=None, foreign_key="users.id")
    payment_verified: bool = Field(default=False, nullable=False)
    trial_end_date: Optional[datetime] = Field(default=None, sa_type=sa.DateTime(timezone=True))
    notes: Optional[str] = None
