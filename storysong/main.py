import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from . import metrics
from .api import callback as callback_api
from .api import cron as cron_api
from .api import jobs as jobs_api
from .config import Settings, configure_logging
from .errors import StoreUnavailable
from .handlers import Handlers, build_handlers
from .queue import QueueEngine
from .ratelimit import SlidingWindowRateLimiter
from .redis_helper import create_redis
from .status import StatusReporter
from .store import JobStore

logger = logging.getLogger(__name__)


def wire_store(app: FastAPI, redis_client):
    """Attach the store client and everything built on it to the app."""
    settings: Settings = app.state.settings
    store = JobStore(redis_client, ttl_seconds=settings.job_ttl_seconds)
    limiter = SlidingWindowRateLimiter(redis_client, settings.max_requests, settings.window_seconds)
    app.state.redis = redis_client
    app.state.engine = QueueEngine(store, limiter)
    app.state.reporter = StatusReporter(
        store, settings.max_requests, settings.cron_interval_seconds, settings.max_retries
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    configure_logging(settings)
    owned_redis = None
    http: Optional[httpx.AsyncClient] = None

    if app.state.redis is None:
        owned_redis = create_redis(settings)
        wire_store(app, owned_redis)
    if app.state.handlers is None:
        http = httpx.AsyncClient(timeout=settings.http_timeout_seconds)
        app.state.handlers = build_handlers(settings, http)
    logger.info(
        "storysong ready: rate limit %d req/%ds, cron interval %ds",
        settings.max_requests,
        settings.window_seconds,
        settings.cron_interval_seconds,
    )

    yield

    if http is not None:
        await http.aclose()
    if owned_redis is not None:
        await owned_redis.aclose()
    logger.info("storysong shut down")


def create_app(
    settings: Optional[Settings] = None,
    redis_client=None,
    handlers: Optional[Handlers] = None,
) -> FastAPI:
    """Build the application. Missing collaborators are created at startup."""
    settings = settings or Settings.from_env()
    app = FastAPI(title="Storysong Queue", lifespan=lifespan)
    app.state.settings = settings
    app.state.redis = None
    app.state.handlers = handlers
    if redis_client is not None:
        wire_store(app, redis_client)

    app.include_router(jobs_api.router)
    app.include_router(cron_api.router)
    app.include_router(callback_api.router)

    @app.middleware("http")
    async def metrics_middleware(request: Request, call_next):
        start = time.time()
        try:
            response = await call_next(request)
            return response
        finally:
            metrics.request_latency_seconds.observe(time.time() - start)

    @app.exception_handler(StoreUnavailable)
    async def store_unavailable_handler(request: Request, exc: StoreUnavailable):
        metrics.error_count.inc()
        logger.error("%s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=503, content={"detail": str(exc)})

    @app.get("/healthz")
    async def healthz():
        return {"status": "ok"}

    @app.get("/readyz")
    async def readyz(request: Request):
        try:
            await request.app.state.redis.ping()
        except Exception as exc:
            logger.warning("readiness check failed: %s", exc)
            return JSONResponse(status_code=503, content={"ready": False})
        return {"ready": True}

    @app.get("/metrics")
    async def metrics_endpoint():
        return metrics.metrics_response()

    return app


app = create_app()
