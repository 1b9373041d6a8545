# app/routers/stripe_webhook.py
from __future__ import annotations

import logging

import stripe
from fastapi import APIRouter, HTTPException, Request
from starlette.concurrency import run_in_threadpool

from app.core.config import settings
from app.core.db import SessionLocal
from app.core.redis import get_redis
from app.services.billing import checkout_session_completed

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/stripe", tags=["Billing Webhook"])

RELEVANT_EVENTS = {"checkout.session.completed"}


async def retrieve_subscription(subscription_id: str):
    # stripe-python is sync; keep it off the event loop
    return await run_in_threadpool(
        stripe.Subscription.retrieve, subscription_id, api_key=settings.STRIPE_SECRET_KEY
    )


@router.post("/webhook")
async def stripe_webhook(request: Request):
    if not settings.STRIPE_SECRET_KEY or not settings.STRIPE_WEBHOOK_SECRET:
        raise HTTPException(status_code=500, detail="Stripe webhook not configured")

    payload = await request.body()
    sig_header = request.headers.get("stripe-signature")
    try:
        event = stripe.Webhook.construct_event(
            payload=payload, sig_header=sig_header, secret=settings.STRIPE_WEBHOOK_SECRET
        )
    except (ValueError, stripe.SignatureVerificationError) as e:
        logger.warning("Rejected Stripe webhook: %s", e)
        raise HTTPException(status_code=400, detail=f"Webhook error: {e}")

    if event["type"] not in RELEVANT_EVENTS:
        return {"received": True, "ignored": event["type"]}

    await checkout_session_completed(
        event,
        session_factory=SessionLocal,
        retrieve_subscription=retrieve_subscription,
        redis=get_redis(),
    )

    return {"received": True}
