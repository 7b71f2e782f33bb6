"""
Per-wedding planning schemas.

Covers: guest list and RSVPs, schedule events, guest questions and their
answers, in-app notifications.
"""

from __future__ import annotations

import datetime as dt
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from .common import EmailAddress, Envelope, NotificationType


class RsvpStatus(str, Enum):
    PENDING = "pending"
    ATTENDING = "attending"
    DECLINED = "declined"
    MAYBE = "maybe"


class QuestionType(str, Enum):
    TEXT = "text"
    MULTIPLE_CHOICE = "multiple_choice"
    YES_NO = "yes_no"
    RATING = "rating"


# ---------------------------------------------------------------------------
# Guests
# ---------------------------------------------------------------------------

class GuestInviteRequest(BaseModel):
    wedding_id: UUID
    guest_email: EmailAddress
    guest_name: Optional[str] = Field(default=None, max_length=200)
    plus_one: bool = False
    plus_one_name: Optional[str] = None


class GuestUpdateRequest(BaseModel):
    rsvp_status: Optional[RsvpStatus] = None
    dietary_restrictions: Optional[str] = None
    plus_one_name: Optional[str] = None


class GuestResponse(BaseModel):
    id: UUID
    wedding_id: UUID
    guest_id: Optional[UUID] = None
    guest_name: Optional[str] = None
    guest_email: str
    rsvp_status: RsvpStatus
    plus_one: bool = False
    plus_one_name: Optional[str] = None
    dietary_restrictions: Optional[str] = None
    invited_at: dt.datetime
    responded_at: Optional[dt.datetime] = None

    model_config = {"from_attributes": True}


class GuestEnvelope(Envelope):
    guest: GuestResponse


class GuestListEnvelope(Envelope):
    guests: list[GuestResponse]


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------

class EventCreateRequest(BaseModel):
    wedding_id: UUID
    title: str = Field(min_length=1, max_length=200)
    start_time: dt.datetime
    end_time: Optional[dt.datetime] = None
    description: Optional[str] = None
    location: Optional[str] = None
    event_type: str = "other"
    is_public: bool = False


class EventUpdateRequest(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    start_time: Optional[dt.datetime] = None
    end_time: Optional[dt.datetime] = None
    description: Optional[str] = None
    location: Optional[str] = None
    event_type: Optional[str] = None
    is_public: Optional[bool] = None


class EventResponse(BaseModel):
    id: UUID
    wedding_id: UUID
    title: str
    description: Optional[str] = None
    start_time: dt.datetime
    end_time: Optional[dt.datetime] = None
    location: Optional[str] = None
    event_type: str
    is_public: bool
    created_by: UUID
    created_at: dt.datetime
    updated_at: dt.datetime

    model_config = {"from_attributes": True}


class EventEnvelope(Envelope):
    event: EventResponse


class EventListEnvelope(Envelope):
    events: list[EventResponse]


# ---------------------------------------------------------------------------
# Questions & answers
# ---------------------------------------------------------------------------

class QuestionCreateRequest(BaseModel):
    wedding_id: UUID
    question_text: str = Field(min_length=1)
    question_type: QuestionType
    is_required: bool = False
    options: list[str] = []
    is_public: bool = False


class QuestionUpdateRequest(BaseModel):
    question_text: Optional[str] = Field(default=None, min_length=1)
    question_type: Optional[QuestionType] = None
    is_required: Optional[bool] = None
    options: Optional[list[str]] = None
    is_public: Optional[bool] = None


class AnswerCreateRequest(BaseModel):
    question_id: UUID
    answer_text: str = Field(min_length=1)


class AnswerUpdateRequest(BaseModel):
    answer_text: str = Field(min_length=1)


class AnswerResponse(BaseModel):
    id: UUID
    question_id: UUID
    answer_text: str
    answered_by: UUID
    created_at: dt.datetime

    model_config = {"from_attributes": True}


class QuestionResponse(BaseModel):
    id: UUID
    wedding_id: UUID
    question_text: str
    question_type: QuestionType
    is_required: bool
    options: Optional[list[str]] = None
    is_public: bool
    created_by: UUID
    created_at: dt.datetime
    updated_at: dt.datetime
    answers: Optional[list[AnswerResponse]] = None

    model_config = {"from_attributes": True}


class QuestionEnvelope(Envelope):
    question: QuestionResponse


class QuestionListEnvelope(Envelope):
    questions: list[QuestionResponse]


class AnswerEnvelope(Envelope):
    answer: AnswerResponse


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------

class NotificationResponse(BaseModel):
    id: UUID
    wedding_id: Optional[UUID] = None
    title: str
    message: str
    type: NotificationType
    is_read: bool
    created_at: dt.datetime

    model_config = {"from_attributes": True}


class NotificationEnvelope(Envelope):
    notification: NotificationResponse


class NotificationListEnvelope(Envelope):
    notifications: list[NotificationResponse]
