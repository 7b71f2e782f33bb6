"""
Identity provider gateway (Supabase Auth).

One async client is created at startup and shared by every request through
``get_identity_gateway``. Provider errors are turned into ``UpstreamFailure``
here so routes never see SDK exceptions.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Any, Optional

import structlog
from fastapi import Request
from supabase import AsyncClient, AuthApiError, AuthError, acreate_client

from app.core.config import Settings
from app.core.errors import UpstreamFailure

log = structlog.get_logger()


@dataclass(frozen=True)
class ProviderUser:
    id: uuid.UUID
    email: str
    email_confirmed: bool


def _to_provider_user(user: Any) -> Optional[ProviderUser]:
    if user is None:
        return None
    return ProviderUser(
        id=uuid.UUID(str(user.id)),
        email=user.email or "",
        email_confirmed=getattr(user, "email_confirmed_at", None) is not None,
    )


def _is_rejection(exc: AuthApiError) -> bool:
    """4xx: the provider refused the token or credentials. Anything else is an outage."""
    status = getattr(exc, "status", None)
    return isinstance(status, int) and 400 <= status < 500


class IdentityGateway:
    """Thin async wrapper over the Supabase auth and auth-admin APIs."""

    def __init__(self, client: Optional[AsyncClient]):
        self._client = client

    @property
    def configured(self) -> bool:
        return self._client is not None

    def _auth(self):
        if self._client is None:
            raise UpstreamFailure("Identity provider is not configured")
        return self._client.auth

    async def get_user(self, token: str) -> Optional[ProviderUser]:
        """Verify an access token. Returns None when the provider rejects it."""
        try:
            response = await self._auth().get_user(token)
        except AuthApiError as exc:
            if not _is_rejection(exc):
                log.error("identity.get_user_failed", status=getattr(exc, "status", None), error=str(exc))
                raise UpstreamFailure("Failed to verify session") from exc
            log.info("identity.token_rejected", status=getattr(exc, "status", None))
            return None
        except AuthError as exc:
            log.error("identity.get_user_failed", error=str(exc))
            raise UpstreamFailure("Failed to verify session") from exc
        return _to_provider_user(response.user if response else None)

    async def sign_in_with_password(self, email: str, password: str) -> Optional[ProviderUser]:
        """Check credentials. Returns None on bad credentials."""
        try:
            response = await self._auth().sign_in_with_password(
                {"email": email, "password": password}
            )
        except AuthApiError as exc:
            if not _is_rejection(exc):
                log.error("identity.sign_in_failed", email=email, status=getattr(exc, "status", None), error=str(exc))
                raise UpstreamFailure("Login failed") from exc
            log.info("identity.sign_in_rejected", email=email, status=getattr(exc, "status", None))
            return None
        except AuthError as exc:
            log.error("identity.sign_in_failed", email=email, error=str(exc))
            raise UpstreamFailure("Login failed") from exc
        return _to_provider_user(response.user)

    async def create_user(
        self,
        email: str,
        password: str,
        *,
        email_confirm: bool,
        metadata: Optional[dict] = None,
    ) -> ProviderUser:
        try:
            response = await self._auth().admin.create_user(
                {
                    "email": email,
                    "password": password,
                    "email_confirm": email_confirm,
                    "user_metadata": metadata or {},
                }
            )
        except AuthError as exc:
            log.error("identity.create_user_failed", email=email, error=str(exc))
            raise UpstreamFailure("Failed to create user account") from exc
        user = _to_provider_user(response.user)
        if user is None:
            raise UpstreamFailure("Failed to create user account")
        log.info("identity.user_created", provider_id=str(user.id), email=email)
        return user

    async def get_user_by_id(self, user_id: uuid.UUID) -> Optional[ProviderUser]:
        try:
            response = await self._auth().admin.get_user_by_id(str(user_id))
        except AuthError as exc:
            log.error("identity.lookup_failed", provider_id=str(user_id), error=str(exc))
            raise UpstreamFailure("Failed to look up user") from exc
        return _to_provider_user(response.user if response else None)

    async def update_user_by_id(self, user_id: uuid.UUID, patch: dict) -> Optional[ProviderUser]:
        try:
            response = await self._auth().admin.update_user_by_id(str(user_id), patch)
        except AuthError as exc:
            log.error("identity.update_failed", provider_id=str(user_id), error=str(exc))
            raise UpstreamFailure("Failed to update user") from exc
        return _to_provider_user(response.user if response else None)

    async def delete_user(self, user_id: uuid.UUID) -> None:
        """Compensation step. Failures are logged, never raised."""
        try:
            await self._auth().admin.delete_user(str(user_id))
        except (AuthError, UpstreamFailure) as exc:
            log.error("identity.compensation_failed", provider_id=str(user_id), error=str(exc))
            return
        log.info("identity.user_deleted", provider_id=str(user_id))

    async def aclose(self) -> None:
        self._client = None
        log.info("identity.closed")


async def create_identity_gateway(settings: Settings) -> IdentityGateway:
    """Build the gateway at startup. Without credentials every call fails with 500."""
    if not settings.supabase_url or not settings.supabase_service_role_key:
        log.warning("identity.not_configured")
        return IdentityGateway(None)
    client = await acreate_client(settings.supabase_url, settings.supabase_service_role_key)
    log.info("identity.ready", url=settings.supabase_url)
    return IdentityGateway(client)


def get_identity_gateway(request: Request) -> IdentityGateway:
    """FastAPI dependency: the process-wide identity gateway."""
    return request.app.state.identity
