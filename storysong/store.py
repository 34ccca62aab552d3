import json
from typing import Any, List, Optional

from .models import Job
from .redis_helper import ERROR_KEY, JOB_KEY, PENDING_QUEUE, RESULT_KEY, store_call

DEFAULT_TTL_SECONDS = 3600


class JobStore:
    """Job records, results and the pending list in the shared store.

    The pending list holds JSON snapshots of jobs. push() adds to the left end
    and pop() takes from the right end, so jobs come out oldest first. Every
    record written here expires after `ttl_seconds`.
    """

    def __init__(self, redis_client, ttl_seconds: int = DEFAULT_TTL_SECONDS):
        self._redis = redis_client
        self.ttl_seconds = ttl_seconds

    async def push(self, job: Job):
        raw = job.to_json()
        with store_call("push"):
            await self._redis.lpush(PENDING_QUEUE, raw)
            await self._redis.setex(JOB_KEY.format(job.id), self.ttl_seconds, raw)

    async def pop(self) -> Optional[Job]:
        with store_call("pop"):
            raw = await self._redis.rpop(PENDING_QUEUE)
        if raw is None:
            return None
        return Job.from_json(raw)

    async def get(self, job_id: str) -> Optional[Job]:
        with store_call("get"):
            raw = await self._redis.get(JOB_KEY.format(job_id))
        if raw is None:
            return None
        return Job.from_json(raw)

    async def put(self, job: Job):
        with store_call("put"):
            await self._redis.setex(JOB_KEY.format(job.id), self.ttl_seconds, job.to_json())

    async def length(self) -> int:
        with store_call("length"):
            return int(await self._redis.llen(PENDING_QUEUE) or 0)

    async def range(self) -> List[Job]:
        """All pending jobs, next-to-be-popped first. Reads the whole list."""
        with store_call("range"):
            items = await self._redis.lrange(PENDING_QUEUE, 0, -1)
        return [Job.from_json(raw) for raw in reversed(items or [])]

    async def get_result(self, job_id: str) -> Optional[Any]:
        with store_call("get_result"):
            raw = await self._redis.get(RESULT_KEY.format(job_id))
        if raw is None:
            return None
        return json.loads(raw)

    async def put_result(self, job_id: str, result: Any):
        with store_call("put_result"):
            await self._redis.setex(RESULT_KEY.format(job_id), self.ttl_seconds, json.dumps(result))

    async def get_error(self, job_id: str) -> Optional[str]:
        with store_call("get_error"):
            return await self._redis.get(ERROR_KEY.format(job_id))

    async def put_error(self, job_id: str, message: str):
        with store_call("put_error"):
            await self._redis.setex(ERROR_KEY.format(job_id), self.ttl_seconds, message)
