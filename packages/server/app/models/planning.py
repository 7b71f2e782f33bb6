"""Per-wedding planning tables: guest list, schedule, questions, answers, notifications."""

from datetime import datetime
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import JSONType, TimestampMixin, UUIDMixin, utcnow


class WeddingGuest(UUIDMixin, SQLModel, table=True):
    __tablename__ = "wedding_guests"
    __table_args__ = (sa.UniqueConstraint("wedding_id", "guest_email"),)

    wedding_id: uuid.UUID = Field(foreign_key="weddings.id", nullable=False, index=True)
    guest_id: Optional[uuid.UUID] = Field(default=None, foreign_key="users.id")
    guest_name: Optional[str] = None
    guest_email: str = Field(nullable=False, index=True)
    invited_by: uuid.UUID = Field(foreign_key="users.id", nullable=False)
    rsvp_status: str = Field(default="pending", nullable=False)  # pending | attending | declined | maybe
    plus_one: bool = Field(default=False, nullable=False)
    plus_one_name: Optional[str] = None
    dietary_restrictions: Optional[str] = None
    invited_at: datetime = Field(
        default_factory=utcnow, nullable=False, sa_type=sa.DateTime(timezone=True)
    )
    responded_at: Optional[datetime] = Field(default=None, sa_type=sa.DateTime(timezone=True))


class Event(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "events"

    wedding_id: uuid.UUID = Field(foreign_key="weddings.id", nullable=False, index=True)
    title: str = Field(nullable=False)
    description: Optional[str] = None
    start_time: datetime = Field(nullable=False, sa_type=sa.DateTime(timezone=True))
    end_time: Optional[datetime] = Field(default=None, sa_type=sa.DateTime(timezone=True))
    location: Optional[str] = None
    event_type: str = Field(default="other", nullable=False)
    is_public: bool = Field(default=False, nullable=False)
    created_by: uuid.UUID = Field(foreign_key="users.id", nullable=False)


class Question(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "questions"

    wedding_id: uuid.UUID = Field(foreign_key="weddings.id", nullable=False, index=True)
    question_text: str = Field(nullable=False)
    question_type: str = Field(nullable=False)  # text | multiple_choice | yes_no | rating
    is_required: bool = Field(default=False, nullable=False)
    options: Optional[list] = Field(default=None, sa_type=JSONType)  # multiple_choice only
    is_public: bool = Field(default=False, nullable=False)
    created_by: uuid.UUID = Field(foreign_key="users.id", nullable=False)


class Answer(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "answers"
    __table_args__ = (sa.UniqueConstraint("question_id", "answered_by"),)

    question_id: uuid.UUID = Field(foreign_key="questions.id", nullable=False, index=True)
    answer_text: str = Field(nullable=False)
    answered_by: uuid.UUID = Field(foreign_key="users.id", nullable=False, index=True)


class Notification(UUIDMixin, SQLModel, table=True):
    __tablename__ = "notifications"

    user_id: uuid.UUID = Field(foreign_key="users.id", nullable=False, index=True)
    wedding_id: Optional[uuid.UUID] = Field(default=None, foreign_key="weddings.id")
    title: str = Field(nullable=False)
    message: str = Field(nullable=False)
    type: str = Field(default="info", nullable=False)  # info | success | warning | error
    is_read: bool = Field(default=False, nullable=False)
    created_at: datetime = Field(
        default_factory=utcnow, nullable=False, sa_type=sa.DateTime(timezone=True)
    )
