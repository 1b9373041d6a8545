from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# IMPORTANT:
# This imports ALL models so SQLAlchemy registers tables + FKs correctly
import app.models  # noqa: F401

from app.core.config import settings
from app.core.db import SessionLocal
from app.core.logging import configure_logging
from app.core.redis import close_redis

# Routers
from app.routers.commissions import router as commissions_router
from app.routers.discounts import router as discounts_router
from app.routers.stripe_webhook import router as stripe_webhook_router

from app.services.audit import AUDIT_LOG_KIND, write_audit_log
from app.services.emails import make_email_handlers
from app.services.outbox import OutboxWorker

configure_logging(settings.LOG_LEVEL)


def outbox_handlers() -> dict:
    handlers = {AUDIT_LOG_KIND: write_audit_log}
    handlers.update(make_email_handlers())
    return handlers


@asynccontextmanager
async def lifespan(app: FastAPI):
    worker = None
    if settings.OUTBOX_WORKER_ENABLED:
        worker = OutboxWorker(SessionLocal, outbox_handlers())
        worker.start()
    app.state.outbox_worker = worker

    yield

    if worker is not None:
        await worker.stop()
    await close_redis()


app = FastAPI(title="Partner Programs API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Programs: discounts
app.include_router(discounts_router)

# Commissions
app.include_router(commissions_router)

# Billing
app.include_router(stripe_webhook_router)


@app.get("/health", tags=["Health"])
async def health():
    return {"status": "ok"}
