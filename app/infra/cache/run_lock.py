# app/infra/cache/run_lock.py
import os
import uuid
import logging
from typing import Optional

import redis.asyncio as aioredis

from app.domain.ports import RunGuardPort

logger = logging.getLogger("suppadvisor.lock")

SYNC_LOCK_KEY = os.getenv("SYNC_LOCK_KEY", "lock:vademecum-sync")
SYNC_LOCK_TTL = int(os.getenv("SYNC_LOCK_TTL_SECONDS", str(6 * 60 * 60)))

# compare-and-delete: only the token holder frees the key
_RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
end
return 0
"""


class InProcessRunGuard(RunGuardPort):
    """Run-in-progress flag. Enough for a single event loop / single worker."""

    def __init__(self) -> None:
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    async def acquire(self) -> bool:
        # no await between check and set, so this is atomic on one loop
        if self._running:
            return False
        self._running = True
        return True

    async def release(self) -> None:
        self._running = False


class RedisRunGuard(RunGuardPort):
    """
    Cross-process variant for deployments running several API workers:
    `SET key token NX EX ttl`. The TTL frees the lock if the holder dies
    mid-run.
    """

    def __init__(self, client: Optional[aioredis.Redis] = None, key: str = SYNC_LOCK_KEY, ttl: int = SYNC_LOCK_TTL):
        self.r = client or aioredis.from_url(
            os.getenv("REDIS_URL", "redis://localhost:6379/0"),
            encoding="utf-8",
            decode_responses=True,
        )
        self.key = key
        self.ttl = ttl
        self._token: Optional[str] = None

    @classmethod
    def from_env(cls) -> "RedisRunGuard":
        url = os.getenv("REDIS_URL", "redis://localhost:6379/0")
        return cls(aioredis.from_url(url, encoding="utf-8", decode_responses=True))

    async def acquire(self) -> bool:
        token = uuid.uuid4().hex
        ok = await self.r.set(self.key, token, nx=True, ex=self.ttl)
        if not ok:
            return False
        self._token = token
        return True

    async def release(self) -> None:
        if self._token is None:
            return
        try:
            await self.r.eval(_RELEASE_SCRIPT, 1, self.key, self._token)
        except Exception:
            logger.exception("failed to release sync lock %s; it expires in %ss", self.key, self.ttl)
        finally:
            self._token = None

    async def ping(self) -> bool:
        return bool(await self.r.ping())
