import importlib
import logging
from dataclasses import replace

import pytest
from httpx import ASGITransport, AsyncClient

import storysong.main
from storysong.main import create_app

from conftest import UnavailableRedis


@pytest.mark.asyncio
async def test_submit_and_poll_pending_job(client):
    res = await client.post(
        "/api/jobs",
        json={"type": "lyrics", "userId": "maria", "payload": {"story": "Our first trip to Cluj.", "moods": ["nostalgic"]}},
    )
    assert res.status_code == 200
    body = res.json()
    assert body["success"] is True
    job_id = body["jobId"]

    res2 = await client.get(f"/api/job/{job_id}")
    assert res2.status_code == 200
    data = res2.json()
    assert data["jobId"] == job_id
    assert data["status"] == "pending"
    assert data["type"] == "lyrics"
    assert data["attempts"] == 0
    assert data["queuePosition"] == 1
    assert data["estimatedWaitSeconds"] == 60
    assert "result" not in data
    assert "error" not in data


@pytest.mark.asyncio
async def test_unknown_type_is_rejected(client):
    res = await client.post("/api/jobs", json={"type": "video", "payload": {"story": "x"}})
    assert res.status_code == 422

    stats = await client.get("/api/queue/stats")
    assert stats.json()["pending"] == 0


@pytest.mark.asyncio
async def test_missing_payload_is_rejected(client):
    res = await client.post("/api/jobs", json={"type": "music"})
    assert res.status_code == 422


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body",
    [
        {"type": "lyrics", "payload": {"story": "   "}},
        {"type": "music", "payload": {"endpoint": " ", "requestBody": {"title": "t"}}},
        {"type": "music", "payload": {"endpoint": "https://api.example.com/generate", "requestBody": {}}},
    ],
)
async def test_blank_payload_fields_are_rejected(client, body):
    res = await client.post("/api/jobs", json=body)
    assert res.status_code == 422

    stats = await client.get("/api/queue/stats")
    assert stats.json()["pending"] == 0


@pytest.mark.asyncio
async def test_lyrics_enqueue_requires_story(client):
    res = await client.post("/api/lyrics/enqueue", json={"story": "   ", "moods": []})
    assert res.status_code == 400
    assert res.json()["detail"] == "Story is required"

    ok = await client.post("/api/lyrics/enqueue", json={"story": "Pepsi at the beach", "moods": ["upbeat"]})
    assert ok.status_code == 200
    assert ok.json()["jobId"].startswith("job_")


@pytest.mark.asyncio
async def test_music_enqueue_requires_endpoint_and_body(client):
    res = await client.post("/api/music/enqueue", json={"endpoint": "", "requestBody": {"title": "t"}})
    assert res.status_code == 400
    res = await client.post("/api/music/enqueue", json={"endpoint": "https://api.example.com/generate"})
    assert res.status_code == 400
    assert res.json()["detail"] == "Request body is required"

    ok = await client.post(
        "/api/music/enqueue",
        json={"endpoint": "https://api.example.com/generate", "requestBody": {"title": "t"}, "userId": "u"},
    )
    assert ok.status_code == 200


@pytest.mark.asyncio
async def test_unknown_job_is_not_found(client):
    res = await client.get("/api/job/job_0_missing")
    assert res.status_code == 404
    assert res.json()["detail"] == "Job not found"


@pytest.mark.asyncio
async def test_cron_requires_secret(client):
    res = await client.get("/api/cron/process-queue")
    assert res.status_code == 401
    res = await client.get("/api/cron/process-queue", headers={"Authorization": "Bearer wrong"})
    assert res.status_code == 403


@pytest.mark.asyncio
async def test_cron_rejects_everyone_without_configured_secret(settings, fake_redis, handlers):
    app = create_app(replace(settings, cron_secret=""), redis_client=fake_redis, handlers=handlers)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as ac:
        res = await ac.get("/api/cron/process-queue", headers={"Authorization": "Bearer anything"})
        assert res.status_code == 403


@pytest.mark.asyncio
async def test_cron_completes_jobs(client, cron_headers):
    submit = await client.post(
        "/api/music/enqueue",
        json={"endpoint": "https://api.example.com/generate", "requestBody": {"title": "t"}},
    )
    job_id = submit.json()["jobId"]

    res = await client.post("/api/cron/process-queue", headers=cron_headers)
    assert res.status_code == 200
    body = res.json()
    assert body["success"] is True
    assert body["processed"] == 1
    assert body["failed"] == 0
    assert isinstance(body["durationSeconds"], float)

    status = (await client.get(f"/api/job/{job_id}")).json()
    assert status["status"] == "completed"
    assert status["result"] == {"taskId": "task-1", "message": "Music generation started"}
    assert "queuePosition" not in status


@pytest.mark.asyncio
async def test_queue_stats(client):
    for _ in range(2):
        await client.post("/api/lyrics/enqueue", json={"story": "a story"})
    res = await client.get("/api/queue/stats")
    assert res.status_code == 200
    data = res.json()
    assert data["pending"] == 2
    assert data["rateLimit"]["remaining"] == 19


@pytest.mark.asyncio
async def test_store_unavailable_returns_503(settings, handlers, cron_headers):
    app = create_app(settings, redis_client=UnavailableRedis(), handlers=handlers)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as ac:
        res = await ac.post("/api/lyrics/enqueue", json={"story": "a story"})
        assert res.status_code == 503
        res = await ac.get("/api/job/job_1")
        assert res.status_code == 503
        res = await ac.get("/api/cron/process-queue", headers=cron_headers)
        assert res.status_code == 503
        res = await ac.get("/readyz")
        assert res.status_code == 503


@pytest.mark.asyncio
async def test_health_and_metrics(client):
    assert (await client.get("/healthz")).json() == {"status": "ok"}
    assert (await client.get("/readyz")).json() == {"ready": True}

    await client.post("/api/lyrics/enqueue", json={"story": "a story"})
    resm = await client.get("/metrics")
    assert resm.status_code == 200
    text = resm.text
    assert "jobs_enqueued_total" in text
    assert "rate_limited_total" in text


@pytest.mark.asyncio
async def test_callback_is_acknowledged(client):
    res = await client.post("/api/callback", json={"code": 200, "data": {"task_id": "t"}})
    assert res.json() == {"success": True, "message": "Callback received"}
    res = await client.post("/api/callback/lyrics", json={})
    assert res.status_code == 200
    res = await client.get("/api/callback")
    assert res.json()["message"] == "Callback endpoint is active"


@pytest.mark.asyncio
async def test_logging_is_configured_at_startup_not_import(monkeypatch, app):
    calls = []
    monkeypatch.setattr(logging, "basicConfig", lambda **kwargs: calls.append(kwargs))

    importlib.reload(storysong.main)
    assert calls == []

    async with app.router.lifespan_context(app):
        assert len(calls) == 1
    assert calls[0]["level"] == logging.INFO
