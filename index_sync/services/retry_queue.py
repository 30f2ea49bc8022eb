"""Redis-backed retry queue for failed object store events.

Messages follow at-least-once, visibility-timeout semantics:
- receive_one() claims one visible message and hides it for a hold period
- delete_by_receipt() acknowledges it, only with the current receipt handle
- a claimed message that is never acknowledged becomes visible again once
  the hold expires and is redelivered with a new receipt handle

Layout (all keys prefixed with the queue name):
- <name>:visible   sorted set, message id -> epoch second it becomes visible
- <name>:bodies    hash, message id -> JSON body
- <name>:receipts  hash, message id -> receipt token of the latest delivery
- <name>:counts    hash, message id -> delivery count
"""

import logging
import time
from typing import Optional
from uuid import uuid4

import redis.asyncio as aioredis

from ..config import settings
from ..schemas.envelope import RetryEnvelope

logger = logging.getLogger(__name__)

SEND_SCRIPT = """
redis.call('HSET', KEYS[2], ARGV[1], ARGV[2])
redis.call('ZADD', KEYS[1], ARGV[3], ARGV[1])
return ARGV[1]
"""

RECEIVE_SCRIPT = """
local ids = redis.call('ZRANGEBYSCORE', KEYS[1], '-inf', ARGV[1], 'LIMIT', 0, 1)
if #ids == 0 then
    return nil
end
local id = ids[1]
redis.call('ZADD', KEYS[1], tonumber(ARGV[1]) + tonumber(ARGV[2]), id)
redis.call('HSET', KEYS[3], id, ARGV[3])
local count = redis.call('HINCRBY', KEYS[4], id, 1)
return {id, redis.call('HGET', KEYS[2], id), tostring(count)}
"""

DELETE_SCRIPT = """
if redis.call('HGET', KEYS[3], ARGV[1]) ~= ARGV[2] then
    return 0
end
redis.call('ZREM', KEYS[1], ARGV[1])
redis.call('HDEL', KEYS[2], ARGV[1])
redis.call('HDEL', KEYS[3], ARGV[1])
redis.call('HDEL', KEYS[4], ARGV[1])
return 1
"""


class RetryQueueError(Exception):
    """Raised when a retry queue operation fails."""

    pass


class RetryQueue:
    """Visibility-timeout queue of failed events stored in Redis."""

    def __init__(self, name: Optional[str] = None, client: Optional[aioredis.Redis] = None):
        self.name = name or settings.retry_queue_name
        self._redis = client

    async def connect(self) -> None:
        """Open the Redis connection."""
        self._redis = await aioredis.from_url(
            settings.redis_url,
            socket_timeout=settings.redis_socket_timeout,
            decode_responses=True,
        )
        await self._redis.ping()
        logger.info("Retry queue %s connected", self.name)

    async def disconnect(self) -> None:
        if self._redis:
            await self._redis.close()
            self._redis = None

    @property
    def client(self) -> aioredis.Redis:
        """Get Redis client instance."""
        if self._redis is None:
            raise RuntimeError("Retry queue not connected. Call connect() first.")
        return self._redis

    @property
    def _keys(self) -> list[str]:
        return [
            f"{self.name}:visible",
            f"{self.name}:bodies",
            f"{self.name}:receipts",
            f"{self.name}:counts",
        ]

    async def send(self, body: str) -> str:
        """
        Enqueue a message, visible immediately.

        Returns:
            The new message id
        """
        message_id = uuid4().hex
        keys = self._keys
        await self.client.eval(SEND_SCRIPT, 2, keys[0], keys[1], message_id, body, time.time())
        logger.debug("Queued message %s on %s", message_id, self.name)
        return message_id

    async def receive_one(self, visibility_hold: int) -> Optional[RetryEnvelope]:
        """
        Claim at most one visible message.

        Args:
            visibility_hold: Seconds the message stays hidden from other
                receivers unless deleted

        Returns:
            The envelope, or None if no message is visible
        """
        now = time.time()
        token = uuid4().hex
        result = await self.client.eval(
            RECEIVE_SCRIPT, 4, *self._keys, now, visibility_hold, token
        )
        if not result:
            return None

        # Redis truncates a Lua reply table at the first nil, so a message
        # whose body is gone comes back as [id]
        if len(result) != 3 or result[1] is None:
            raise RetryQueueError(f"Message {result[0]} on {self.name} has no body")
        message_id, body, count = result

        return RetryEnvelope(
            message_id=message_id,
            body=body,
            receipt_handle=f"{message_id}:{token}",
            visible_at=now + visibility_hold,
            receive_count=int(count),
        )

    async def delete_by_receipt(self, receipt_handle: str) -> None:
        """
        Acknowledge a message.

        Raises:
            RetryQueueError: If the handle is malformed or no longer current
                (the message was redelivered or already deleted)
        """
        message_id, sep, token = receipt_handle.partition(":")
        if not sep or not message_id or not token:
            raise RetryQueueError(f"Malformed receipt handle: {receipt_handle!r}")

        deleted = await self.client.eval(
            DELETE_SCRIPT, 4, *self._keys, message_id, token
        )
        if not deleted:
            raise RetryQueueError(
                f"Receipt handle for message {message_id} is stale or unknown"
            )

    async def depth(self) -> int:
        """Number of messages on the queue, visible or in flight."""
        return await self.client.zcard(self._keys[0])
