"""
Wedding (tenant) schemas.

Covers: wedding CRUD request/response, lifecycle states and transitions,
member invitations.
"""

from __future__ import annotations

import datetime as dt
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from .common import EmailAddress, Envelope, MemberRole


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class WeddingStatus(str, Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    COMPLETED = "completed"
    ARCHIVED = "archived"


# Valid lifecycle transitions
WEDDING_TRANSITIONS: dict[WeddingStatus, set[WeddingStatus]] = {
    WeddingStatus.DRAFT: {WeddingStatus.ACTIVE, WeddingStatus.ARCHIVED},
    WeddingStatus.ACTIVE: {WeddingStatus.COMPLETED, WeddingStatus.ARCHIVED},
    WeddingStatus.COMPLETED: {WeddingStatus.ACTIVE, WeddingStatus.ARCHIVED},
    WeddingStatus.ARCHIVED: set(),
}


def validate_transition(current: WeddingStatus, target: WeddingStatus) -> tuple[bool, str]:
    """Validate a wedding lifecycle transition.

    Returns (is_valid, error_message).
    """
    if current == target:
        return False, f"Wedding is already {current.value}"
    if target in WEDDING_TRANSITIONS[current]:
        return True, ""
    return False, f"Cannot transition wedding from {current.value} to {target.value}"


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------

class WeddingCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    date: dt.date
    location: str = Field(min_length=1, max_length=300)
    admin_email: EmailAddress
    description: Optional[str] = None
    subdomain: Optional[str] = None
    subscription_plan_id: Optional[str] = None


class WeddingUpdateRequest(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    date: Optional[dt.date] = None
    location: Optional[str] = Field(default=None, min_length=1, max_length=300)
    description: Optional[str] = None
    subdomain: Optional[str] = None
    status: Optional[WeddingStatus] = None


class InviteRequest(BaseModel):
    emails: list[EmailAddress] = Field(min_length=1)
    role: MemberRole = MemberRole.GUEST
    message: Optional[str] = None
    max_uses: Optional[int] = Field(default=None, ge=1)
    expires_at: Optional[dt.datetime] = None


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------

class WeddingResponse(BaseModel):
    id: UUID
    name: str
    code: str
    subdomain: Optional[str] = None
    date: dt.date
    location: str
    description: Optional[str] = None
    status: WeddingStatus
    is_active: bool
    super_admin_id: UUID
    subscription_plan_id: Optional[str] = None
    created_at: dt.datetime
    updated_at: dt.datetime

    model_config = {"from_attributes": True}


class WeddingDetail(WeddingResponse):
    url: Optional[str] = None
    admin_ids: list[UUID] = []
    guest_count: int = 0
    photo_count: int = 0


class WeddingEnvelope(Envelope):
    wedding: WeddingResponse


class WeddingDetailEnvelope(Envelope):
    wedding: WeddingDetail


class WeddingListEnvelope(Envelope):
    weddings: list[WeddingResponse]


class PublicWedding(BaseModel):
    """What a visitor of a wedding subdomain gets to see."""
    id: UUID
    name: str
    subdomain: Optional[str] = None
    date: dt.date
    location: str
    description: Optional[str] = None
    url: Optional[str] = None
    guest_count: int = 0
    photo_count: int = 0


class PublicWeddingEnvelope(Envelope):
    wedding: PublicWedding


class InviteResult(BaseModel):
    email: str
    status: str  # invited | already_member
    user_id: UUID
    invite_code: Optional[str] = None
    invite_link: Optional[str] = None


class InviteError(BaseModel):
    email: str
    error: str


class InviteOutcome(BaseModel):
    results: list[InviteResult]
    errors: list[InviteError]


class InviteEnvelope(Envelope):
    data: InviteOutcome


class MemberResponse(BaseModel):
    id: UUID
    user_id: UUID
    name: Optional[str] = None
    email: Optional[str] = None
    role: MemberRole
    invited_at: dt.datetime


class InviteLinkResponse(BaseModel):
    id: UUID
    code: str
    max_uses: Optional[int] = None
    uses: int = 0
    expires_at: Optional[dt.datetime] = None
    created_at: dt.datetime

    model_config = {"from_attributes": True}


class MembersData(BaseModel):
    members: list[MemberResponse]
    invite_links: list[InviteLinkResponse]


class MembersEnvelope(Envelope):
    data: MembersData
