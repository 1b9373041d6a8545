# app/services/outbox.py
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Awaitable, Callable, Mapping

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.config import settings
from app.models.outbox import OutboxEvent

logger = logging.getLogger(__name__)

# handler(payload, session_factory)
OutboxHandler = Callable[[dict, async_sessionmaker], Awaitable[None]]


class UnknownOutboxKind(Exception):
    pass


def enqueue_event(db: AsyncSession, *, kind: str, payload: dict) -> OutboxEvent:
    """Add a side effect to the caller's transaction. Nothing is sent until it commits."""
    event = OutboxEvent(kind=kind, payload=payload, status="pending", attempts=0)
    db.add(event)
    return event


async def _claim_batch(db: AsyncSession, batch_size: int) -> list[OutboxEvent]:
    stmt = (
        select(OutboxEvent)
        .where(OutboxEvent.status == "pending")
        .order_by(OutboxEvent.id.asc())
        .limit(batch_size)
        .with_for_update(skip_locked=True)
    )
    res = await db.execute(stmt)
    return list(res.scalars().all())


async def dispatch_pending(
    session_factory: async_sessionmaker,
    handlers: Mapping[str, OutboxHandler],
    *,
    batch_size: int | None = None,
    max_attempts: int | None = None,
) -> int:
    """
    Deliver one batch of pending events. Returns how many were delivered.

    Each handler gets its own session; a failing event is recorded on its row
    and never stops the rest of the batch.
    """
    batch_size = batch_size or settings.OUTBOX_BATCH_SIZE
    max_attempts = max_attempts or settings.OUTBOX_MAX_ATTEMPTS

    delivered = 0

    async with session_factory() as db:
        events = await _claim_batch(db, batch_size)

        for event in events:
            try:
                handler = handlers.get(event.kind)
                if handler is None:
                    raise UnknownOutboxKind(f"No handler for outbox kind '{event.kind}'")

                await handler(dict(event.payload or {}), session_factory)

            except Exception as e:
                logger.exception("Outbox event %s (%s) failed", event.id, event.kind)
                event.attempts = (event.attempts or 0) + 1
                event.last_error = f"{type(e).__name__}: {e}"[:2000]
                if event.attempts >= max_attempts:
                    event.status = "failed"
                continue

            event.status = "done"
            event.attempts = (event.attempts or 0) + 1
            event.processed_at = datetime.now(timezone.utc)
            delivered += 1

        await db.commit()

    return delivered


class OutboxWorker:
    """Polls the outbox in the background for the lifetime of the app."""

    def __init__(
        self,
        session_factory: async_sessionmaker,
        handlers: Mapping[str, OutboxHandler],
        *,
        poll_seconds: float | None = None,
    ):
        self.session_factory = session_factory
        self.handlers = handlers
        self.poll_seconds = poll_seconds if poll_seconds is not None else settings.OUTBOX_POLL_SECONDS
        self._stop = asyncio.Event()
        self._wake = asyncio.Event()
        self._task: asyncio.Task | None = None

    def start(self) -> None:
        if self._task is None:
            self._task = asyncio.create_task(self._run(), name="outbox-worker")

    async def stop(self) -> None:
        self._stop.set()
        self._wake.set()
        if self._task is not None:
            await self._task
            self._task = None

    async def _run(self) -> None:
        logger.info("Outbox worker started (poll=%ss)", self.poll_seconds)
        while not self._stop.is_set():
            try:
                await dispatch_pending(self.session_factory, self.handlers)
            except Exception:
                # DB hiccup; try again next tick
                logger.exception("Outbox dispatch loop error")

            try:
                await asyncio.wait_for(self._wake.wait(), timeout=self.poll_seconds)
            except asyncio.TimeoutError:
                pass
            self._wake.clear()
        logger.info("Outbox worker stopped")
