import logging
from typing import Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)

# Provider retries arrive well within a day
DEDUP_TTL_SECONDS = 24 * 60 * 60


def get_redis_client(redis_url: Optional[str]):
    if not redis_url:
        logger.warning("REDIS_URL not set, duplicate webhook suppression disabled")
        return None
    return redis.from_url(redis_url, decode_responses=True)


def dedup_key(message_id: str) -> str:
    return f"whatsapp:inbound:{message_id}"


class MessageDeduplicator:
    """
    Best-effort claim of inbound provider message ids.

    claim() returns False only when Redis positively says the id was seen before.
    No Redis, no id, or a Redis failure all mean "process it".
    """

    def __init__(self, redis_url: Optional[str] = None, ttl: int = DEDUP_TTL_SECONDS, client=None):
        self.ttl = ttl
        self._client = client if client is not None else get_redis_client(redis_url)

    async def claim(self, message_id: Optional[str]) -> bool:
        if not message_id or self._client is None:
            return True
        key = dedup_key(message_id)
        try:
            created = await self._client.set(key, "1", nx=True, ex=self.ttl)
        except RedisError as e:
            logger.warning("[Webhook] Redis unavailable for dedup (%s), processing anyway", e)
            return True
        return bool(created)

    async def release(self, message_id: Optional[str]):
        """Forget a claimed id so a redelivery is processed again."""
        if not message_id or self._client is None:
            return
        try:
            await self._client.delete(dedup_key(message_id))
        except RedisError as e:
            logger.warning("[Webhook] Could not release dedup claim for %s: %s", message_id, e)

    async def aclose(self):
        if self._client is not None:
            await self._client.aclose()
