# app/core/redis.py
from __future__ import annotations

import logging
from typing import Optional

import redis.asyncio as redis

from app.core.config import settings

logger = logging.getLogger(__name__)

_client: Optional[redis.Redis] = None


def get_redis() -> Optional[redis.Redis]:
    """
    Lazily build the shared client. Returns None when REDIS_URL isn't set;
    callers skip cache/onboarding work in that case.
    """
    global _client

    if _client is not None:
        return _client

    if not settings.REDIS_URL:
        logger.warning("REDIS_URL not set - cache and onboarding state disabled")
        return None

    _client = redis.Redis.from_url(settings.REDIS_URL, decode_responses=True, socket_timeout=1.0)
    return _client


async def close_redis() -> None:
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None
