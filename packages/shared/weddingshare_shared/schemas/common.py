import re
from enum import Enum
from typing import Annotated, Optional

from pydantic import AfterValidator, BaseModel

# Same loose check the web client applies before submitting a form.
EMAIL_PATTERN = r"^[^\s@]+@[^\s@]+\.[^\s@]+$"


def check_email(value: str) -> str:
    value = value.strip()
    if not re.match(EMAIL_PATTERN, value):
        raise ValueError("Please provide a valid email address")
    return value


EmailAddress = Annotated[str, AfterValidator(check_email)]


class Role(str, Enum):
    GUEST = "guest"
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"
    APPLICATION_ADMIN = "application_admin"


class MemberRole(str, Enum):
    GUEST = "guest"
    ADMIN = "admin"


class MediaType(str, Enum):
    IMAGE = "image"
    VIDEO = "video"


class MediaStatus(str, Enum):
    APPROVED = "approved"
    PENDING = "pending"


class NotificationType(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


class Envelope(BaseModel):
    """Base of every response body: ``{success, message?, ...payload}``."""
    success: bool = True
    message: Optional[str] = None
