import logging
import time
from contextlib import contextmanager
from typing import Dict, List, Optional, Union

import redis.asyncio as redis
from redis.exceptions import RedisError

from .config import Settings
from .errors import StoreUnavailable

logger = logging.getLogger(__name__)

# Key names
PENDING_QUEUE = "queue:pending"
JOB_KEY = "job:{}"
RESULT_KEY = "result:{}"
ERROR_KEY = "error:{}"


class AsyncInMemoryRedis:
    """Async stand-in for the subset of Redis commands storysong uses.

    Values are kept as strings like a client created with decode_responses=True.
    Expiry is applied lazily on access.
    """

    def __init__(self):
        self._values: Dict[str, str] = {}
        self._lists: Dict[str, List[str]] = {}
        self._expires: Dict[str, float] = {}

    def _purge(self, name: str):
        deadline = self._expires.get(name)
        if deadline is not None and deadline <= time.time():
            self._values.pop(name, None)
            self._lists.pop(name, None)
            del self._expires[name]

    async def ping(self) -> bool:
        return True

    async def get(self, name: str) -> Optional[str]:
        self._purge(name)
        return self._values.get(name)

    async def set(self, name: str, value: Union[str, int], ex: Optional[int] = None):
        self._values[name] = str(value)
        if ex is not None:
            self._expires[name] = time.time() + ex
        else:
            self._expires.pop(name, None)
        return True

    async def setex(self, name: str, time_seconds: int, value: str):
        return await self.set(name, value, ex=time_seconds)

    async def delete(self, *names: str) -> int:
        removed = 0
        for name in names:
            self._purge(name)
            if self._values.pop(name, None) is not None or self._lists.pop(name, None) is not None:
                removed += 1
            self._expires.pop(name, None)
        return removed

    async def incr(self, name: str, amount: int = 1) -> int:
        self._purge(name)
        value = int(self._values.get(name, "0")) + amount
        self._values[name] = str(value)
        return value

    async def decr(self, name: str, amount: int = 1) -> int:
        return await self.incr(name, -amount)

    async def pexpire(self, name: str, time_ms: int) -> bool:
        self._purge(name)
        if name not in self._values and name not in self._lists:
            return False
        self._expires[name] = time.time() + time_ms / 1000
        return True

    async def ttl(self, name: str) -> int:
        self._purge(name)
        if name not in self._values and name not in self._lists:
            return -2
        deadline = self._expires.get(name)
        if deadline is None:
            return -1
        return max(0, round(deadline - time.time()))

    async def lpush(self, name: str, *values: str) -> int:
        self._purge(name)
        lst = self._lists.setdefault(name, [])
        for v in values:
            lst.insert(0, v)
        return len(lst)

    async def rpop(self, name: str) -> Optional[str]:
        self._purge(name)
        lst = self._lists.get(name, [])
        if not lst:
            return None
        return lst.pop()

    async def llen(self, name: str) -> int:
        self._purge(name)
        return len(self._lists.get(name, []))

    async def lrange(self, name: str, start: int, end: int) -> List[str]:
        self._purge(name)
        lst = self._lists.get(name, [])
        # Redis treats the end index as inclusive
        stop = None if end == -1 else end + 1
        return lst[start:stop]

    async def aclose(self):
        return None


def create_redis(settings: Settings):
    """Build a new store client. The caller owns it and must close it."""
    if settings.testing:
        return AsyncInMemoryRedis()
    return redis.Redis.from_url(settings.redis_url, decode_responses=True)


@contextmanager
def store_call(operation: str):
    """Re-raise backend failures inside the block as StoreUnavailable."""
    try:
        yield
    except (RedisError, OSError) as exc:
        logger.error("store %s failed: %s", operation, exc)
        raise StoreUnavailable(f"store {operation} failed: {exc}") from exc
