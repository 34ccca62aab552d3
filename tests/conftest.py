import os

import pytest
from httpx import ASGITransport, AsyncClient
from redis.exceptions import ConnectionError as RedisConnectionError

os.environ["TESTING"] = "1"

from storysong.config import Settings
from storysong.handlers import Handlers
from storysong.main import create_app
from storysong.queue import QueueEngine
from storysong.ratelimit import SlidingWindowRateLimiter
from storysong.redis_helper import AsyncInMemoryRedis
from storysong.status import StatusReporter
from storysong.store import JobStore

CRON_SECRET = "test-cron-secret"
# A multiple of every window length used in the tests
START_TIME = 1_700_000_000.0


class FakeClock:
    def __init__(self, now: float = START_TIME):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class RecordingHandler:
    """Handler double. `fail_with` makes every call raise with a numbered message."""

    def __init__(self, result=None, fail_with=None):
        self.result = result if result is not None else {"ok": True}
        self.fail_with = fail_with
        self.calls = []

    async def __call__(self, payload):
        self.calls.append(payload)
        if self.fail_with is not None:
            raise RuntimeError(f"{self.fail_with} {len(self.calls)}")
        return self.result


class UnavailableRedis:
    """Every command fails the way a dropped connection does."""

    def __getattr__(self, name):
        async def _fail(*args, **kwargs):
            raise RedisConnectionError("Connection refused")

        return _fail


@pytest.fixture
def settings():
    return Settings(testing=True, max_requests=20, window_seconds=10, cron_interval_seconds=60, cron_secret=CRON_SECRET)


@pytest.fixture
def fake_redis():
    return AsyncInMemoryRedis()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(fake_redis, settings):
    return JobStore(fake_redis, ttl_seconds=settings.job_ttl_seconds)


@pytest.fixture
def limiter(fake_redis, settings, clock):
    return SlidingWindowRateLimiter(fake_redis, settings.max_requests, settings.window_seconds, clock=clock)


@pytest.fixture
def engine(store, limiter):
    return QueueEngine(store, limiter)


@pytest.fixture
def reporter(store, settings):
    return StatusReporter(store, settings.max_requests, settings.cron_interval_seconds, settings.max_retries)


@pytest.fixture
def handlers():
    return Handlers(
        lyrics=RecordingHandler(result={"summary": "s", "lyrics": [], "language": "en"}),
        music=RecordingHandler(result={"taskId": "task-1", "message": "Music generation started"}),
    )


@pytest.fixture
def app(settings, fake_redis, handlers, limiter):
    fastapi_app = create_app(settings, redis_client=fake_redis, handlers=handlers)
    fastapi_app.state.engine.limiter = limiter
    return fastapi_app


@pytest.fixture
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac


@pytest.fixture
def cron_headers():
    return {"Authorization": f"Bearer {CRON_SECRET}"}
