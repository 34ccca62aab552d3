#!/usr/bin/env python3
"""Runs drain ticks against the shared store without the HTTP trigger.

Stands in for the external scheduler during local development: one tick every
CRON_INTERVAL_SECONDS, or a single tick with `--once`.

Usage:
  REDIS_URL=redis://localhost:6379/0 python scripts/worker.py [--once]

Set TESTING=1 to use the in-memory store (only useful together with --once).
"""
import asyncio
import logging
import sys

import httpx

from storysong.config import Settings, configure_logging
from storysong.errors import StoreUnavailable
from storysong.handlers import build_handlers
from storysong.queue import QueueEngine
from storysong.ratelimit import SlidingWindowRateLimiter
from storysong.redis_helper import create_redis
from storysong.store import JobStore
from storysong.worker import drain

logger = logging.getLogger("storysong.scripts.worker")


async def run_worker(settings: Settings, once: bool = False):
    redis_client = create_redis(settings)
    engine = QueueEngine(
        JobStore(redis_client, ttl_seconds=settings.job_ttl_seconds),
        SlidingWindowRateLimiter(redis_client, settings.max_requests, settings.window_seconds),
    )
    async with httpx.AsyncClient(timeout=settings.http_timeout_seconds) as http:
        handlers = build_handlers(settings, http)
        logger.info("worker: connected, testing=%s", settings.testing)
        try:
            while True:
                try:
                    await drain(engine, handlers, settings)
                except StoreUnavailable as exc:
                    if once:
                        raise
                    logger.error("worker: tick aborted, retrying next tick: %s", exc)
                if once:
                    break
                await asyncio.sleep(settings.cron_interval_seconds)
        except asyncio.CancelledError:
            pass
        finally:
            await redis_client.aclose()


if __name__ == "__main__":
    settings = Settings.from_env()
    configure_logging(settings)
    try:
        asyncio.run(run_worker(settings, once="--once" in sys.argv[1:]))
    except KeyboardInterrupt:
        logger.info("worker: exiting")
