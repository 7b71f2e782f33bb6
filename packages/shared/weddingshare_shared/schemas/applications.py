"""Super admin application schemas (venues, studios and planners applying to host weddings)."""

from __future__ import annotations

import datetime as dt
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from .common import EmailAddress, Envelope


class BusinessType(str, Enum):
    VENUE = "venue"
    PHOTOGRAPHY_STUDIO = "photography_studio"
    EVENT_PLANNER = "event_planner"
    OTHER = "other"


class ApplicationStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ApplicationCreateRequest(BaseModel):
    business_name: str = Field(min_length=1, max_length=200)
    business_type: BusinessType = BusinessType.OTHER
    contact_person: str = Field(min_length=1, max_length=200)
    email: EmailAddress
    phone: Optional[str] = None
    address: Optional[str] = None
    website: Optional[str] = None
    description: Optional[str] = None
    expected_weddings_per_month: Optional[int] = Field(default=None, ge=0)


class ApplicationReviewRequest(BaseModel):
    status: str
    payment_verified: bool = False
    trial_end_date: Optional[dt.datetime] = None
    notes: Optional[str] = None

    @field_validator("status")
    @classmethod
    def _decision(cls, value: str) -> str:
        if value not in (ApplicationStatus.APPROVED.value, ApplicationStatus.REJECTED.value):
            raise ValueError('Status must be either "approved" or "rejected"')
        return value


class ApplicationResponse(BaseModel):
    id: UUID
    business_name: str
    business_type: BusinessType
    contact_person: str
    email: str
    phone: Optional[str] = None
    address: Optional[str] = None
    website: Optional[str] = None
    description: Optional[str] = None
    expected_weddings_per_month: Optional[int] = None
    status: ApplicationStatus
    submitted_at: dt.datetime
    reviewed_at: Optional[dt.datetime] = None
    reviewed_by: Optional[UUID] = None
    payment_verified: bool = False
    trial_end_date: Optional[dt.datetime] = None
    notes: Optional[str] = None

    model_config = {"from_attributes": True}


class ApplicationEnvelope(Envelope):
    application: ApplicationResponse


class ApplicationListEnvelope(Envelope):
    applications: list[ApplicationResponse]
