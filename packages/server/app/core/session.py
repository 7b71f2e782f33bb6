"""
Session cookie classification.

The ``session-token`` cookie arrives in one of three shapes, decided purely by
its structure before any verification happens:

- ``InlineSessionToken``: URL-encoded JSON ``{id, email, name, role}``. Nothing
  vouches for it, so it is only honoured when inline sessions are enabled.
- ``SignedSessionToken``: a JWT issued by this server (``iss`` matches our issuer).
- ``ProviderSessionToken``: any other JWT, to be verified by the identity provider.

Anything else is a ``MalformedSessionToken``.
"""

from __future__ import annotations

import re
import uuid
from dataclasses import dataclass
from typing import Optional, Union
from urllib.parse import unquote

import jwt
import pydantic
from pydantic import BaseModel

from weddingshare_shared.schemas.common import Role

SESSION_COOKIE = "session-token"
CSRF_COOKIE = "csrf-token"
CSRF_HEADER = "X-CSRF-Token"

_JWT_SHAPE = re.compile(r"^[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+\.[A-Za-z0-9_-]*$")


class InlineIdentity(BaseModel):
    id: uuid.UUID
    email: str
    name: Optional[str] = None
    role: Role


@dataclass(frozen=True)
class InlineSessionToken:
    identity: InlineIdentity


@dataclass(frozen=True)
class SignedSessionToken:
    token: str


@dataclass(frozen=True)
class ProviderSessionToken:
    token: str


@dataclass(frozen=True)
class MalformedSessionToken:
    reason: str


SessionToken = Union[InlineSessionToken, SignedSessionToken, ProviderSessionToken, MalformedSessionToken]


def _unverified_claims(token: str) -> Optional[dict]:
    try:
        return jwt.decode(token, options={"verify_signature": False})
    except jwt.DecodeError:
        return None


def classify_session_token(raw: str, issuer: str) -> SessionToken:
    """Decide which kind of session token ``raw`` is. Never verifies signatures."""
    value = unquote(raw or "").strip()
    if not value:
        return MalformedSessionToken("empty")

    if value.startswith("{") and value.endswith("}"):
        try:
            identity = InlineIdentity.model_validate_json(value)
        except pydantic.ValidationError:
            return MalformedSessionToken("inline identity is incomplete")
        return InlineSessionToken(identity)

    if _JWT_SHAPE.match(value):
        claims = _unverified_claims(value)
        if claims is None:
            return MalformedSessionToken("undecodable jwt")
        if claims.get("iss") == issuer:
            return SignedSessionToken(value)
        return ProviderSessionToken(value)

    return MalformedSessionToken("unrecognised token shape")

