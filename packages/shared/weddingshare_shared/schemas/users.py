"""Account, session and signup schemas."""

from __future__ import annotations

import datetime as dt
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from .common import EmailAddress, Envelope, Role


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------

class LoginRequest(BaseModel):
    email: str = Field(min_length=1)
    password: str = Field(min_length=1)


class SignupRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    email: EmailAddress
    password: str
    wedding_id: Optional[UUID] = None

    @field_validator("password")
    @classmethod
    def _password_length(cls, value: str) -> str:
        if len(value) < 6:
            raise ValueError("Password must be at least 6 characters long")
        return value


class ConfirmEmailRequest(BaseModel):
    token: str = Field(min_length=1)
    email: str = Field(min_length=1)


class ResendConfirmationRequest(BaseModel):
    email: str = Field(min_length=1)


class WeddingData(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    date: dt.date
    location: str = Field(min_length=1)
    description: Optional[str] = None


class WeddingSignupRequest(BaseModel):
    email: EmailAddress
    wedding_data: WeddingData


class ConfirmWeddingSignupRequest(BaseModel):
    token: str = Field(min_length=1)
    email: str = Field(min_length=1)
    name: str = Field(min_length=1, max_length=200)
    password: str = Field(min_length=6)
    wedding_data: Optional[str] = None  # base64 JSON as carried in the confirmation link


class GuestJoinRequest(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    wedding_code: str = Field(min_length=1)


class SuperAdminCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    email: EmailAddress
    password: str = Field(min_length=6)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------

class UserResponse(BaseModel):
    id: UUID
    email: str
    name: str
    role: Role
    is_active: bool = True
    email_confirmed: bool = False
    created_at: Optional[dt.datetime] = None

    model_config = {"from_attributes": True}


class SessionUser(BaseModel):
    id: UUID
    email: str
    name: Optional[str] = None
    role: Role


class UserEnvelope(Envelope):
    user: UserResponse


class SessionEnvelope(Envelope):
    user: SessionUser


class SuperAdminStats(BaseModel):
    id: UUID
    name: str
    email: str
    created_at: Optional[dt.datetime] = None
    wedding_count: int = 0
    total_storage_mb: float = 0
    total_media_count: int = 0
    last_activity: Optional[dt.datetime] = None


class SuperAdminSummary(BaseModel):
    total_super_admins: int
    total_weddings: int
    total_storage_mb: float
    total_media_files: int


class SuperAdminListData(BaseModel):
    super_admins: list[SuperAdminStats]
    summary: SuperAdminSummary


class SuperAdminListEnvelope(Envelope):
    data: SuperAdminListData


class DirectUser(UserResponse):
    wedding_count: int = 0
    media_count: int = 0
    storage_used: int = 0
    storage_used_mb: float = 0


class DirectUserSummary(BaseModel):
    total_direct_users: int
    total_weddings: int
    total_media: int
    total_storage_mb: float
    confirmed_users: int
    unconfirmed_users: int


class DirectUserListEnvelope(Envelope):
    users: list[DirectUser]
    summary: DirectUserSummary
