"""Queue engine: the enqueue / dequeue / complete / fail state machine.

    pending -> processing            (dequeue_next)
    processing -> completed          (complete)
    processing -> pending            (fail, attempts < max_retries)
    processing -> failed             (fail, attempts >= max_retries)

Each store command is atomic on its own, but the load-mutate-persist sequences
here are not. Two overlapping drain ticks touching the same job id can lose
an update; that is part of this module's contract. There is no lock and no
recovery of jobs left in `processing` by a tick that died.
"""
import logging
from typing import Any, Dict, Optional

from . import metrics
from .models import Job, JobStatus, JobType, new_job_id
from .ratelimit import SlidingWindowRateLimiter
from .store import JobStore

logger = logging.getLogger(__name__)

RATE_LIMIT_KEY = "suno-api"
STATS_RATE_LIMIT_KEY = "suno-api-stats"
DEFAULT_MAX_RETRIES = 3


class QueueEngine:
    def __init__(self, store: JobStore, limiter: SlidingWindowRateLimiter):
        self.store = store
        self.limiter = limiter

    async def enqueue(self, job_type: JobType, user_id: Optional[str], payload: Dict[str, Any]) -> str:
        job = Job(
            id=new_job_id(),
            user_id=user_id or "anonymous",
            type=job_type,
            payload=payload,
        )
        await self.store.push(job)
        metrics.jobs_enqueued_total.labels(type=job.type.value).inc()
        logger.info("job %s enqueued (type: %s)", job.id, job.type.value)
        return job.id

    async def dequeue_next(self) -> Optional[Job]:
        """Pop the oldest pending job if the rate limiter admits one more call.

        Returns None both when admission is denied and when the list is empty.
        A slot consumed on an empty list is not given back.
        """
        admission = await self.limiter.try_acquire(RATE_LIMIT_KEY)
        if not admission.allowed:
            metrics.rate_limited_total.inc()
            logger.info("rate limit reached, next slot at %.3f", admission.reset_at)
            return None

        job = await self.store.pop()
        if job is None:
            logger.debug("pending list is empty")
            return None

        job.status = JobStatus.processing
        job.attempts += 1
        await self.store.put(job)
        logger.info("processing job %s (attempt %d)", job.id, job.attempts)
        return job

    async def complete(self, job_id: str, result: Any):
        job = await self.store.get(job_id)
        if job is None:
            logger.warning("job %s not found on complete, it may have expired", job_id)
            return

        job.status = JobStatus.completed
        await self.store.put(job)
        await self.store.put_result(job_id, result)
        metrics.jobs_completed_total.labels(type=job.type.value).inc()
        logger.info("job %s completed", job_id)

    async def fail(self, job_id: str, error: str, max_retries: int = DEFAULT_MAX_RETRIES):
        job = await self.store.get(job_id)
        if job is None:
            logger.warning("job %s not found on fail, it may have expired", job_id)
            return

        job.error = error
        if job.attempts < max_retries:
            # Back onto the push end: it waits behind everything already pending
            job.status = JobStatus.pending
            await self.store.push(job)
            metrics.jobs_retried_total.labels(type=job.type.value).inc()
            logger.info("job %s will retry (attempt %d/%d)", job_id, job.attempts + 1, max_retries)
        else:
            job.status = JobStatus.failed
            await self.store.put(job)
            await self.store.put_error(job_id, error)
            metrics.jobs_failed_total.labels(type=job.type.value).inc()
            logger.error("job %s failed after %d attempts: %s", job_id, job.attempts, error)

    async def stats(self) -> Dict[str, Any]:
        """Pending count and limiter headroom.

        The headroom probe consumes a slot on its own key, never on the one
        dequeue_next uses.
        """
        pending = await self.store.length()
        probe = await self.limiter.try_acquire(STATS_RATE_LIMIT_KEY)
        return {
            "pending": pending,
            "rateLimit": {"remaining": probe.remaining, "reset": probe.reset_at},
        }
