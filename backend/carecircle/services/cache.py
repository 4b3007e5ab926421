"""Read-through cache for membership and active-alert listings.

Entries are JSON lists keyed per senior and dropped whenever a mutation
touches them. Redis errors never fail a request: the read falls through
to the database and the write is skipped.
"""

import json
import logging
import uuid
from typing import Any

from redis.exceptions import RedisError

from carecircle.config import settings
from carecircle.core.redis_client import get_redis

logger = logging.getLogger(__name__)


def members_key(senior_id: uuid.UUID) -> str:
    return f"senior:{senior_id}:members"


def active_alerts_key(senior_id: uuid.UUID, scope: str = "all") -> str:
    return f"senior:{senior_id}:alerts:active:{scope}"


def senior_keys(senior_id: uuid.UUID) -> list[str]:
    """All cache keys derived from one senior's circle."""
    return [
        members_key(senior_id),
        active_alerts_key(senior_id, "all"),
        active_alerts_key(senior_id, "critical"),
    ]


async def get_cached(key: str) -> Any | None:
    redis = await get_redis()
    if redis is None:
        return None
    try:
        cached = await redis.get(key)
    except RedisError:
        logger.warning("Cache read failed for %s", key, exc_info=True)
        return None
    return json.loads(cached) if cached else None


async def set_cached(key: str, value: Any, ttl: int | None = None) -> None:
    redis = await get_redis()
    if redis is None:
        return
    try:
        await redis.setex(
            key, ttl or settings.CACHE_TTL_SECONDS, json.dumps(value, default=str),
        )
    except RedisError:
        logger.warning("Cache write failed for %s", key, exc_info=True)


async def invalidate(*keys: str) -> None:
    if not keys:
        return
    redis = await get_redis()
    if redis is None:
        return
    try:
        await redis.delete(*keys)
    except RedisError:
        logger.warning("Cache invalidation failed for %s", ", ".join(keys), exc_info=True)


async def invalidate_senior(senior_id: uuid.UUID) -> None:
    await invalidate(*senior_keys(senior_id))
