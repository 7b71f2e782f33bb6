"""
Transactional mail through the Resend HTTP API.
"""

from __future__ import annotations

from typing import Optional

import httpx
import structlog
from fastapi import Request

from app.core.config import Settings
from app.core.errors import UpstreamFailure

log = structlog.get_logger()


class Mailer:
    def __init__(
        self,
        api_key: str,
        *,
        api_url: str = "https://api.resend.com/emails",
        sender: str = "WeddingShare <noreply@weddingshare.com>",
        dev_recipient: str = "",
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._api_key = api_key
        self._api_url = api_url
        self.sender = sender
        self.dev_recipient = dev_recipient
        self._client = client or httpx.AsyncClient(timeout=10.0)

    @classmethod
    def from_settings(cls, settings: Settings) -> "Mailer":
        return cls(
            settings.resend_api_key,
            api_url=settings.resend_api_url,
            sender=settings.mail_from,
            dev_recipient=settings.resend_dev_email,
        )

    async def send(self, to: str, subject: str, html: str) -> bool:
        """Send one message. Returns False when mail is not configured.

        With a dev recipient configured, every message goes there instead and
        the subject names the intended recipient.
        """
        if not self._api_key:
            log.info("email.skipped", to=to, subject=subject)
            return False

        recipient = to
        if self.dev_recipient:
            recipient = self.dev_recipient
            subject = f"[DEV → {to}] {subject}"

        try:
            response = await self._client.post(
                self._api_url,
                headers={"Authorization": f"Bearer {self._api_key}"},
                json={"from": self.sender, "to": [recipient], "subject": subject, "html": html},
            )
            response.raise_for_status()
        except httpx.HTTPError as exc:
            log.error("email.failed", to=to, recipient=recipient, error=str(exc))
            raise UpstreamFailure("Failed to send email") from exc

        log.info("email.sent", to=to, recipient=recipient, subject=subject)
        return True

    async def aclose(self) -> None:
        await self._client.aclose()


def get_mailer(request: Request) -> Mailer:
    """FastAPI dependency: the process-wide mailer."""
    return request.app.state.mailer
