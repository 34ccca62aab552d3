import math
from dataclasses import fields

import pytest

from storysong.errors import StoreUnavailable
from storysong.handlers import Handlers
from storysong.models import PAYLOAD_MODELS, JobStatus, JobType, LyricsPayload, MusicPayload
from storysong.queue import QueueEngine
from storysong.ratelimit import SlidingWindowRateLimiter
from storysong.store import JobStore
from storysong.worker import dispatch, drain

from conftest import RecordingHandler, UnavailableRedis

LYRICS = {"story": "Summer at the seaside with Ana.", "moods": ["romantic", "upbeat"]}
MUSIC = {"endpoint": "https://api.example.com/generate", "requestBody": {"title": "Ana"}}


def test_every_job_type_has_payload_model_and_handler():
    assert set(PAYLOAD_MODELS) == set(JobType)
    assert {f.name for f in fields(Handlers)} == {t.value for t in JobType}


@pytest.mark.asyncio
async def test_dispatch_passes_typed_payload(engine, handlers):
    await engine.enqueue(JobType.lyrics, "u", LYRICS)
    await engine.enqueue(JobType.music, "u", MUSIC)

    lyrics_job = await engine.dequeue_next()
    music_job = await engine.dequeue_next()
    await dispatch(lyrics_job, handlers)
    result = await dispatch(music_job, handlers)

    assert handlers.lyrics.calls == [LyricsPayload(**LYRICS)]
    assert isinstance(handlers.music.calls[0], MusicPayload)
    assert handlers.music.calls[0].request_body == {"title": "Ana"}
    assert result["taskId"] == "task-1"


@pytest.mark.asyncio
async def test_tick_processes_up_to_rate_limit(engine, handlers, settings, reporter, store):
    ids = [await engine.enqueue(JobType.music, "u", MUSIC) for _ in range(25)]

    summary = await drain(engine, handlers, settings)
    assert summary.processed == 20
    assert summary.failed == 0
    assert len(handlers.music.calls) == 20
    assert await store.length() == 5

    for job_id in ids[:20]:
        assert (await reporter.get_status(job_id)).status is JobStatus.completed

    remaining = [await reporter.get_status(job_id) for job_id in ids[20:]]
    assert [v.queue_position for v in remaining] == [1, 2, 3, 4, 5]
    assert [v.estimated_wait_seconds for v in remaining] == [
        math.ceil(p / 20) * settings.cron_interval_seconds for p in range(1, 6)
    ]


@pytest.mark.asyncio
async def test_next_tick_picks_up_the_rest_once_window_recovers(engine, handlers, settings, store, clock):
    for _ in range(25):
        await engine.enqueue(JobType.music, "u", MUSIC)

    await drain(engine, handlers, settings)
    clock.advance(settings.cron_interval_seconds)
    summary = await drain(engine, handlers, settings)

    assert summary.processed == 5
    assert await store.length() == 0


@pytest.mark.asyncio
async def test_rate_limited_tick_processes_nothing(engine, handlers, settings, limiter, store):
    await engine.enqueue(JobType.music, "u", MUSIC)
    while (await limiter.try_acquire("suno-api")).allowed:
        pass

    summary = await drain(engine, handlers, settings)
    assert summary.processed == 0
    assert handlers.music.calls == []
    assert await store.length() == 1


@pytest.mark.asyncio
async def test_always_failing_job_ends_failed_with_last_error(engine, settings, reporter):
    handlers = Handlers(lyrics=RecordingHandler(fail_with="moderation rejected"), music=RecordingHandler())
    job_id = await engine.enqueue(JobType.lyrics, "u", LYRICS)

    summary = await drain(engine, handlers, settings)

    assert summary.processed == 0
    assert summary.failed == 3
    view = await reporter.get_status(job_id)
    assert view.status is JobStatus.failed
    assert view.attempts == 3
    assert view.error == "moderation rejected 3"


@pytest.mark.asyncio
async def test_failing_job_does_not_block_others(engine, settings, store):
    handlers = Handlers(lyrics=RecordingHandler(fail_with="boom"), music=RecordingHandler(result={"taskId": "t"}))
    bad = await engine.enqueue(JobType.lyrics, "u", LYRICS)
    good = [await engine.enqueue(JobType.music, "u", MUSIC) for _ in range(2)]

    summary = await drain(engine, handlers, settings)

    assert summary.processed == 2
    assert (await store.get(bad)).status is JobStatus.failed
    for job_id in good:
        assert (await store.get(job_id)).status is JobStatus.completed
        assert await store.get_result(job_id) == {"taskId": "t"}


@pytest.mark.asyncio
async def test_store_failure_aborts_the_tick(handlers, settings, clock):
    broken = UnavailableRedis()
    engine = QueueEngine(JobStore(broken), SlidingWindowRateLimiter(broken, clock=clock))
    with pytest.raises(StoreUnavailable):
        await drain(engine, handlers, settings)
