# app/services/audit.py
from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.deps import WorkspaceContext
from app.core.ids import create_id
from app.models.audit_log import AuditLog
from app.services.outbox import enqueue_event

logger = logging.getLogger(__name__)

AUDIT_LOG_KIND = "audit_log"


def record_audit_log(
    db: AsyncSession,
    ctx: WorkspaceContext,
    *,
    action: str,
    program_id: str | None,
    targets: list[dict],
    description: str,
) -> None:
    # rides on the caller's transaction; written by the outbox worker after commit
    enqueue_event(
        db,
        kind=AUDIT_LOG_KIND,
        payload={
            "action": action,
            "workspace_id": ctx.workspace_id,
            "program_id": program_id,
            "actor_id": ctx.user.id,
            "actor_name": ctx.user.name,
            "targets": targets,
            "description": description,
        },
    )


async def write_audit_log(payload: dict, session_factory: async_sessionmaker) -> None:
    async with session_factory() as db:
        db.add(
            AuditLog(
                id=create_id("audit_"),
                workspace_id=payload["workspace_id"],
                program_id=payload.get("program_id"),
                action=payload["action"],
                actor_id=payload.get("actor_id"),
                actor_name=payload.get("actor_name"),
                description=payload.get("description"),
                targets=payload.get("targets") or [],
            )
        )
        await db.commit()

    logger.info(
        "audit %s workspace=%s targets=%s",
        payload["action"],
        payload["workspace_id"],
        [t.get("id") for t in payload.get("targets") or []],
    )
