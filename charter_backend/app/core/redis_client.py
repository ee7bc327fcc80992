"""
Redis connection used as the notification transport.

Only imported when notifications are enabled; the client connects lazily
on its first command.
"""

import logging

import redis.asyncio as redis
from redis.exceptions import RedisError

from charter_backend.app.core.config import settings

logger = logging.getLogger("charter.events")

redis_client = redis.from_url(
    settings.redis_url,
    decode_responses=settings.redis_decode_responses,
)


async def transport_status(client=None) -> str:
    """
    Report whether the event channel can be reached.

    Returns:
        "up" or "down"
    """
    client = client or redis_client
    try:
        await client.ping()
    except (RedisError, OSError) as exc:
        logger.warning("Notification transport unreachable", extra={"error": str(exc)})
        return "down"
    return "up"
