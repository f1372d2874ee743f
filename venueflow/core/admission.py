"""
Admission serialization for head approval.

Two head approvals whose venue or resource sets intersect must not both pass
the allocation check against the same committed state. Each approval holds
the keys ``venue:<id>`` and ``resource:<id>`` for its whole
check-and-commit; keys are always taken in sorted order so that two holders
can never wait on each other.

The memory backend is enough for a single worker process. The redis backend
extends the same guarantee across processes.
"""

import asyncio
import logging
import time
import uuid
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Iterable, List, Optional

from redis.asyncio import Redis

from venueflow.core.exceptions import AdmissionBusyError
from venueflow.core.settings import AdmissionSettings

logger = logging.getLogger(__name__)

RELEASE_SCRIPT = """
if redis.call("GET", KEYS[1]) == ARGV[1] then
    return redis.call("DEL", KEYS[1])
else
    return 0
end
"""


def admission_keys(venue_id: int, resource_ids: Iterable[int]) -> List[str]:
    keys = {f"venue:{venue_id}"}
    keys.update(f"resource:{rid}" for rid in resource_ids)
    return sorted(keys)


class AdmissionLockManager:
    """Base class. Subclasses implement a single-key acquire/release pair."""

    backend = "abstract"

    def __init__(self, wait_seconds: float = 10.0) -> None:
        self.wait_seconds = wait_seconds

    async def _acquire(self, key: str, deadline: float) -> Any:
        raise NotImplementedError

    async def _release(self, key: str, token: Any) -> None:
        raise NotImplementedError

    @asynccontextmanager
    async def hold(self, keys: Iterable[str]) -> AsyncIterator[List[str]]:
        ordered = sorted(set(keys))
        deadline = time.monotonic() + self.wait_seconds
        held: List[tuple] = []
        try:
            for key in ordered:
                token = await self._acquire(key, deadline)
                if token is None:
                    logger.warning(
                        "Admission key busy",
                        extra={"key": key, "backend": self.backend},
                    )
                    raise AdmissionBusyError(
                        f"Could not acquire admission lock for {key}, try again"
                    )
                held.append((key, token))
            yield ordered
        finally:
            for key, token in reversed(held):
                await self._release(key, token)


class _KeyLock:
    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = asyncio.Lock()
        self.users = 0


class MemoryAdmissionLockManager(AdmissionLockManager):
    """Per-key asyncio locks, dropped once nobody holds or waits on them."""

    backend = "memory"

    def __init__(self, wait_seconds: float = 10.0) -> None:
        super().__init__(wait_seconds)
        self._locks: Dict[str, _KeyLock] = {}

    async def _acquire(self, key: str, deadline: float) -> Any:
        entry = self._locks.get(key)
        if entry is None:
            entry = self._locks[key] = _KeyLock()
        entry.users += 1
        try:
            await asyncio.wait_for(
                entry.lock.acquire(), timeout=max(deadline - time.monotonic(), 0)
            )
        except asyncio.TimeoutError:
            self._forget(key, entry)
            return None
        return entry

    async def _release(self, key: str, token: Any) -> None:
        token.lock.release()
        self._forget(key, token)

    def _forget(self, key: str, entry: _KeyLock) -> None:
        entry.users -= 1
        if entry.users == 0 and self._locks.get(key) is entry:
            del self._locks[key]

    def active_keys(self) -> List[str]:
        return sorted(self._locks)


class RedisAdmissionLockManager(AdmissionLockManager):
    """SET NX with an expiry per key; released only by the holder's token."""

    backend = "redis"

    def __init__(
        self,
        redis_client: Redis,
        *,
        lock_timeout: int = 30,
        wait_seconds: float = 10.0,
        poll_interval: float = 0.05,
        prefix: str = "admission_lock",
    ) -> None:
        super().__init__(wait_seconds)
        self.redis = redis_client
        self.lock_timeout = lock_timeout
        self.poll_interval = poll_interval
        self.prefix = prefix

    async def _acquire(self, key: str, deadline: float) -> Any:
        lock_key = f"{self.prefix}:{key}"
        lock_value = str(uuid.uuid4())
        while True:
            acquired = await self.redis.set(
                lock_key, lock_value, ex=self.lock_timeout, nx=True
            )
            if acquired:
                return lock_value
            if time.monotonic() >= deadline:
                return None
            await asyncio.sleep(self.poll_interval)

    async def _release(self, key: str, token: Any) -> None:
        lock_key = f"{self.prefix}:{key}"
        result: Any = await self.redis.eval(RELEASE_SCRIPT, 1, lock_key, token)
        if not result:
            logger.warning(
                "Admission lock expired before release", extra={"key": key}
            )


def build_admission_lock_manager(
    config: AdmissionSettings, redis_client: Optional[Redis] = None
) -> AdmissionLockManager:
    if config.LOCK_BACKEND == "redis":
        if redis_client is None:
            raise RuntimeError("Redis admission backend needs a redis client")
        return RedisAdmissionLockManager(
            redis_client,
            lock_timeout=config.LOCK_TIMEOUT_SECONDS,
            wait_seconds=config.LOCK_WAIT_SECONDS,
            poll_interval=config.LOCK_POLL_INTERVAL,
        )
    return MemoryAdmissionLockManager(wait_seconds=config.LOCK_WAIT_SECONDS)
