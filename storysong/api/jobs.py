from fastapi import APIRouter, Depends, HTTPException

from ..dependencies import get_engine, get_reporter
from ..models import JobType, LyricsPayload, MusicPayload
from ..queue import QueueEngine
from ..schemas import (
    EnqueueResponse,
    JobCreate,
    LyricsEnqueueRequest,
    MusicEnqueueRequest,
    QueueStatsResponse,
)
from ..status import JobStatusView, StatusReporter

router = APIRouter(prefix="/api")


def _enqueued(job_id: str, job_type: JobType) -> EnqueueResponse:
    return EnqueueResponse(
        job_id=job_id,
        message=f"{job_type.value.capitalize()} generation job enqueued. Check status with /api/job/{{jobId}}",
    )


@router.post("/jobs", response_model=EnqueueResponse)
async def create_job(body: JobCreate, engine: QueueEngine = Depends(get_engine)):
    job = body.root
    job_type = JobType(job.type)
    job_id = await engine.enqueue(job_type, job.user_id, job.payload.model_dump(by_alias=True))
    return _enqueued(job_id, job_type)


@router.post("/lyrics/enqueue", response_model=EnqueueResponse)
async def enqueue_lyrics(body: LyricsEnqueueRequest, engine: QueueEngine = Depends(get_engine)):
    if not body.story.strip():
        raise HTTPException(status_code=400, detail="Story is required")
    payload = LyricsPayload(story=body.story, moods=body.moods)
    job_id = await engine.enqueue(JobType.lyrics, body.user_id, payload.model_dump())
    return _enqueued(job_id, JobType.lyrics)


@router.post("/music/enqueue", response_model=EnqueueResponse)
async def enqueue_music(body: MusicEnqueueRequest, engine: QueueEngine = Depends(get_engine)):
    if not body.endpoint.strip():
        raise HTTPException(status_code=400, detail="Endpoint is required")
    if not body.request_body:
        raise HTTPException(status_code=400, detail="Request body is required")
    payload = MusicPayload(endpoint=body.endpoint, request_body=body.request_body)
    job_id = await engine.enqueue(JobType.music, body.user_id, payload.model_dump(by_alias=True))
    return _enqueued(job_id, JobType.music)


@router.get("/job/{job_id}", response_model=JobStatusView, response_model_exclude_none=True)
async def get_job(job_id: str, reporter: StatusReporter = Depends(get_reporter)):
    view = await reporter.get_status(job_id)
    if view is None:
        raise HTTPException(status_code=404, detail="Job not found")
    return view


@router.get("/queue/stats", response_model=QueueStatsResponse)
async def queue_stats(engine: QueueEngine = Depends(get_engine)):
    return await engine.stats()
