# app/services/emails.py
from __future__ import annotations

from sqlalchemy.ext.asyncio import async_sessionmaker

from app.core.config import settings
from app.integrations.email_client import EmailClient

UPGRADE_EMAIL_KIND = "email.upgrade"
INVITE_EMAIL_KIND = "email.invite"


def upgrade_email_payload(*, email: str, name: str | None, plan: str) -> dict:
    return {"email": email, "name": name, "plan": plan}


def invite_email_payload(*, email: str, role: str, workspace_id: str, workspace_name: str) -> dict:
    return {"email": email, "role": role, "workspace_id": workspace_id, "workspace_name": workspace_name}


def make_email_handlers(client: EmailClient | None = None) -> dict:
    """Outbox handlers for e-mail kinds, bound to one client."""
    client = client or EmailClient()

    async def send_upgrade(payload: dict, session_factory: async_sessionmaker) -> None:
        greeting = f"Hi {payload['name']}," if payload.get("name") else "Hi there,"
        await client.send(
            to=payload["email"],
            subject=f"Thank you for upgrading to {payload['plan']}!",
            text=(
                f"{greeting}\n\n"
                f"Your workspace is now on the {payload['plan']} plan. "
                "Your new limits are already active.\n"
            ),
            reply_to=settings.EMAIL_REPLY_TO,
        )

    async def send_invite(payload: dict, session_factory: async_sessionmaker) -> None:
        await client.send(
            to=payload["email"],
            subject=f"You've been invited to join {payload['workspace_name']}",
            text=(
                f"You've been invited to join the {payload['workspace_name']} workspace "
                f"as {payload.get('role') or 'member'}.\n"
            ),
        )

    return {UPGRADE_EMAIL_KIND: send_upgrade, INVITE_EMAIL_KIND: send_invite}
