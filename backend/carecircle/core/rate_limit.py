"""Shared rate limiter instance.

Code redemption is the one endpoint worth brute-forcing (a 5 character
code space), so it gets its own stricter limit on top of the default.
Counters live in Redis when it is reachable, in memory otherwise.
"""

import logging

import redis as sync_redis
from slowapi import Limiter
from slowapi.util import get_remote_address

from carecircle.config import settings

logger = logging.getLogger(__name__)

DEFAULT_LIMITS = ["100/minute"]


def _create_limiter() -> Limiter:
    try:
        client = sync_redis.from_url(settings.REDIS_URL, socket_connect_timeout=1)
        client.ping()
        client.close()
        logger.info("Rate limiter: Redis storage (%s)", settings.REDIS_URL)
        return Limiter(
            key_func=get_remote_address,
            default_limits=DEFAULT_LIMITS,
            storage_uri=settings.REDIS_URL,
        )
    except Exception:
        logger.warning("Rate limiter: Redis unavailable, using in-memory storage")
        return Limiter(key_func=get_remote_address, default_limits=DEFAULT_LIMITS)


limiter = _create_limiter()
