"""Drain loop run once per scheduler tick.

A tick keeps no state between runs; everything lives in the job store.
"""
import logging
import time
from dataclasses import dataclass
from typing import Any

from . import metrics
from .config import Settings
from .handlers import Handlers
from .models import Job, JobType
from .queue import QueueEngine

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DrainSummary:
    processed: int
    failed: int
    duration_seconds: float


async def dispatch(job: Job, handlers: Handlers) -> Any:
    payload = job.typed_payload()
    if job.type is JobType.lyrics:
        return await handlers.lyrics(payload)
    if job.type is JobType.music:
        return await handlers.music(payload)
    raise ValueError(f"Unknown job type: {job.type}")


async def drain(engine: QueueEngine, handlers: Handlers, settings: Settings) -> DrainSummary:
    """Process up to `max_requests` jobs.

    Stops at the first dequeue that returns nothing, whether the limiter said
    no or the list ran out. A failing handler only fails its own job.
    StoreUnavailable aborts the tick.
    """
    start = time.time()
    logger.info("drain started, rate limit %d req/%ds", settings.max_requests, settings.window_seconds)

    stats = await engine.stats()
    metrics.pending_jobs.set(stats["pending"])
    logger.info("queue stats: %d pending, %d calls remaining", stats["pending"], stats["rateLimit"]["remaining"])

    processed = 0
    failed = 0
    for _ in range(settings.max_requests):
        job = await engine.dequeue_next()
        if job is None:
            logger.info("no more jobs to process or rate limit reached")
            break

        try:
            result = await dispatch(job, handlers)
        except Exception as exc:
            logger.error("job %s failed: %s", job.id, exc)
            failed += 1
            await engine.fail(job.id, str(exc), settings.max_retries)
            continue

        await engine.complete(job.id, result)
        processed += 1

    duration = time.time() - start
    metrics.drain_duration_seconds.observe(duration)
    logger.info("drain finished in %.2fs: %d processed, %d failed", duration, processed, failed)
    return DrainSummary(processed=processed, failed=failed, duration_seconds=round(duration, 2))
