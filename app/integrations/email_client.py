# app/integrations/email_client.py
from __future__ import annotations

import logging

import httpx

from app.core.config import settings

logger = logging.getLogger(__name__)


class EmailError(Exception):
    pass


class EmailClient:
    """Thin client for the transactional e-mail HTTP API."""

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        *,
        sender: str | None = None,
        timeout: float = 15,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url if base_url is not None else settings.EMAIL_API_URL
        self.api_key = api_key if api_key is not None else settings.EMAIL_API_KEY
        self.sender = sender or settings.EMAIL_FROM
        self.timeout = timeout
        self.transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.base_url and self.api_key)

    async def send(
        self,
        *,
        to: str,
        subject: str,
        text: str,
        reply_to: str | None = None,
    ) -> bool:
        if not self.configured:
            logger.warning("Email not configured; skipping '%s' to %s", subject, to)
            return False

        payload = {"from": self.sender, "to": [to], "subject": subject, "text": text}
        if reply_to:
            payload["reply_to"] = reply_to

        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            r = await client.post(
                f"{self.base_url.rstrip('/')}/emails",
                json=payload,
                headers={"Authorization": f"Bearer {self.api_key}"},
            )

        if r.status_code >= 400:
            raise EmailError(f"Email API error {r.status_code}: {r.text}")

        logger.info("Email '%s' sent to %s", subject, to)
        return True
