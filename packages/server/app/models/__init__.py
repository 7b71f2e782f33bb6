# SQLModel definitions — imported here to ensure metadata is populated before create_all.
from .base import UUIDMixin, TimestampMixin  # noqa: F401
from .user import User  # noqa: F401
from .wedding import Wedding, WeddingMember, InviteLink  # noqa: F401
from .application import SuperAdminApplication  # noqa: F401
from .media import Media  # noqa: F401
from .planning import WeddingGuest, Event, Question, Answer, Notification  # noqa: F401
