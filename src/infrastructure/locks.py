"""
Redis-based distributed lock.

Guards the reconciliation sweep so that, with several API processes
running, only one of them walks the pending and applied actions per
interval.  Per-driver writes never depend on it: they are serialized by
row locks in the database.

Acquire is ``SET NX EX``; release is a Lua check-and-delete so a worker
whose lock already expired cannot delete a successor's lock.
"""

from __future__ import annotations

import logging
import uuid

import redis.asyncio as aioredis

logger = logging.getLogger(__name__)

_RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
else
    return 0
end
"""


class DistributedLock:
    def __init__(
        self, client: aioredis.Redis, name: str, ttl_seconds: int = 300
    ):
        self.redis = client
        self.key = f"discipline:lock:{name}"
        self.ttl = ttl_seconds
        self.token = str(uuid.uuid4())

    async def acquire(self) -> bool:
        """Try to acquire. Returns True on success."""
        return bool(
            await self.redis.set(self.key, self.token, nx=True, ex=self.ttl)
        )

    async def release(self) -> bool:
        """Release if still owned.  False means the TTL ran out first."""
        released = bool(await self.redis.eval(_RELEASE_SCRIPT, 1, self.key, self.token))
        if not released:
            logger.warning(
                "Lock %s expired before release (ttl=%ds)", self.key, self.ttl
            )
        return released

    async def __aenter__(self):
        if not await self.acquire():
            raise RuntimeError(f"Could not acquire lock: {self.key}")
        return self

    async def __aexit__(self, *args):
        await self.release()
