# app/services/billing.py
from __future__ import annotations

import asyncio
import json
import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import async_sessionmaker

from app.models.workspace import DefaultDomains, RestrictedToken, User, Workspace, WorkspaceUser
from app.services.emails import (
    INVITE_EMAIL_KIND,
    UPGRADE_EMAIL_KIND,
    invite_email_payload,
    upgrade_email_payload,
)
from app.services.outbox import enqueue_event
from app.services.plans import BillingPlan, get_plan_from_price_id

logger = logging.getLogger(__name__)

# subscription id -> stripe subscription (dict-like)
RetrieveSubscription = Callable[[str], Awaitable[Any]]


def _get(obj: Any, key: str, default: Any = None) -> Any:
    # stripe objects are dict subclasses; tests pass plain dicts
    if obj is None:
        return default
    try:
        return obj[key]
    except (KeyError, TypeError, IndexError):
        return getattr(obj, key, default)


def _first_price_id(subscription: Any) -> Optional[str]:
    items = _get(_get(subscription, "items"), "data") or []
    if not items:
        return None
    return _get(_get(items[0], "price"), "id")


async def settle_independently(named: dict[str, Awaitable[Any]]) -> dict[str, BaseException]:
    """
    Run side effects concurrently; one failing never cancels the others.
    Returns the failures by name, after logging them.
    """
    names = list(named)
    results = await asyncio.gather(*named.values(), return_exceptions=True)

    failures: dict[str, BaseException] = {}
    for name, result in zip(names, results):
        if isinstance(result, BaseException):
            failures[name] = result
            logger.error("Side effect '%s' failed: %r", name, result, exc_info=result)
    return failures


# -------------------------
# Side effects
# -------------------------

async def _complete_onboarding(
    session_factory: async_sessionmaker,
    redis: Any,
    *,
    workspace_id: str,
    users: list[dict],
) -> None:
    if redis is None:
        logger.warning("Redis unavailable; onboarding state for workspace %s not updated", workspace_id)
        return

    async with session_factory() as db:
        workspace = await db.get(Workspace, workspace_id)
    if workspace is None:
        logger.error("Failed to complete onboarding for workspace %s", workspace_id)
        return

    async def _mark_users() -> None:
        await settle_independently(
            {
                f"onboarding_step:{u['id']}": redis.set(f"onboarding-step:{u['id']}", "completed")
                for u in users
            }
        )

    async def _send_saved_invites() -> None:
        raw = await redis.get(f"invites:{workspace_id}")
        invites = json.loads(raw) if raw else []
        if not invites:
            return

        async with session_factory() as db:
            for invite in invites:
                enqueue_event(
                    db,
                    kind=INVITE_EMAIL_KIND,
                    payload=invite_email_payload(
                        email=invite["email"],
                        role=invite.get("role") or "member",
                        workspace_id=workspace.id,
                        workspace_name=workspace.name,
                    ),
                )
            await db.commit()

        await redis.delete(f"invites:{workspace_id}")

    await settle_independently(
        {
            "onboarding_steps": _mark_users(),
            "saved_invites": _send_saved_invites(),
        }
    )


async def _enqueue_upgrade_emails(
    session_factory: async_sessionmaker,
    *,
    users: list[dict],
    plan: BillingPlan,
) -> None:
    recipients = [u for u in users if u.get("email")]
    if not recipients:
        return

    async with session_factory() as db:
        for u in recipients:
            enqueue_event(
                db,
                kind=UPGRADE_EMAIL_KIND,
                payload=upgrade_email_payload(email=u["email"], name=u.get("name"), plan=plan.name),
            )
        await db.commit()


async def _update_token_rate_limits(
    session_factory: async_sessionmaker,
    *,
    workspace_id: str,
    rate_limit: int,
) -> None:
    async with session_factory() as db:
        await db.execute(
            update(RestrictedToken)
            .where(RestrictedToken.workspace_id == workspace_id)
            .values(rate_limit=rate_limit)
        )
        await db.commit()


async def _enable_premium_domain(session_factory: async_sessionmaker, *, workspace_id: str) -> None:
    async with session_factory() as db:
        res = await db.execute(
            update(DefaultDomains)
            .where(DefaultDomains.workspace_id == workspace_id)
            .values(premium_domain=True)
        )
        if res.rowcount == 0:
            db.add(DefaultDomains(workspace_id=workspace_id, premium_domain=True))
        await db.commit()


async def _expire_token_cache(redis: Any, *, hashed_keys: list[str]) -> None:
    if not hashed_keys:
        return
    if redis is None:
        logger.warning("Redis unavailable; %d cached tokens not expired", len(hashed_keys))
        return
    await redis.delete(*[f"tokenCache:{k}" for k in hashed_keys])


# -------------------------
# checkout.session.completed
# -------------------------

async def checkout_session_completed(
    event: Any,
    *,
    session_factory: async_sessionmaker,
    retrieve_subscription: RetrieveSubscription,
    redis: Any = None,
) -> Optional[str]:
    """
    Move a workspace onto the plan it just paid for.

    Bad payloads are logged and dropped (the processor owns retries).
    Returns the upgraded workspace id, or None when the event was dropped.
    """
    session = _get(_get(event, "data"), "object") or {}

    if _get(session, "mode") == "setup":
        return None

    workspace_id = _get(session, "client_reference_id")
    customer = _get(session, "customer")
    subscription_id = _get(session, "subscription")
    if not workspace_id or not customer or not subscription_id:
        logger.warning(
            "Missing items in checkout.session.completed (workspace=%s customer=%s subscription=%s)",
            workspace_id,
            customer,
            subscription_id,
        )
        return None

    subscription = await retrieve_subscription(str(subscription_id))
    price_id = _first_price_id(subscription)
    plan = get_plan_from_price_id(price_id)
    if plan is None:
        logger.warning("Invalid price ID in checkout.session.completed event: %s", price_id)
        return None

    stripe_id = customer if isinstance(customer, str) else str(_get(customer, "id"))
    limits = plan.limits

    async with session_factory() as db:
        try:
            workspace = await db.get(Workspace, str(workspace_id), with_for_update=True)
            if workspace is None:
                logger.warning("checkout.session.completed for unknown workspace %s", workspace_id)
                return None

            workspace.stripe_id = stripe_id
            workspace.billing_cycle_start = datetime.now(timezone.utc).day
            workspace.plan = plan.name.lower()
            workspace.usage_limit = limits.clicks
            workspace.links_limit = limits.links
            workspace.payouts_limit = limits.payouts
            workspace.domains_limit = limits.domains
            workspace.ai_limit = limits.ai
            workspace.tags_limit = limits.tags
            workspace.folders_limit = limits.folders
            workspace.users_limit = limits.users
            workspace.payment_failed_at = None

            res_users = await db.execute(
                select(User.id, User.name, User.email)
                .join(WorkspaceUser, WorkspaceUser.user_id == User.id)
                .where(WorkspaceUser.workspace_id == workspace.id, User.is_machine.is_(False))
                .order_by(User.id.asc())
            )
            users = [{"id": r[0], "name": r[1], "email": r[2]} for r in res_users.all()]

            res_tokens = await db.execute(
                select(RestrictedToken.hashed_key).where(RestrictedToken.workspace_id == workspace.id)
            )
            hashed_keys = [r[0] for r in res_tokens.all()]

            await db.commit()
        except Exception:
            await db.rollback()
            raise

    logger.info("Workspace %s upgraded to %s", workspace_id, plan.name)

    await settle_independently(
        {
            "complete_onboarding": _complete_onboarding(
                session_factory, redis, workspace_id=str(workspace_id), users=users
            ),
            "upgrade_emails": _enqueue_upgrade_emails(session_factory, users=users, plan=plan),
            "token_rate_limits": _update_token_rate_limits(
                session_factory, workspace_id=str(workspace_id), rate_limit=limits.api
            ),
            "premium_domain": _enable_premium_domain(session_factory, workspace_id=str(workspace_id)),
            "token_cache": _expire_token_cache(redis, hashed_keys=hashed_keys),
        }
    )
    return str(workspace_id)
