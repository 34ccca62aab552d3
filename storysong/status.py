import math
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from .models import JobStatus, JobType
from .store import JobStore


class JobStatusView(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    job_id: str = Field(alias="jobId")
    status: JobStatus
    type: JobType
    created_at: int = Field(alias="createdAt")
    attempts: int
    max_retries: int = Field(alias="maxRetries")
    queue_position: Optional[int] = Field(default=None, alias="queuePosition")
    estimated_wait_seconds: Optional[int] = Field(default=None, alias="estimatedWaitSeconds")
    result: Optional[Any] = None
    error: Optional[str] = None
    message: str = ""


def estimate_wait_seconds(position: int, max_requests: int, cron_interval_seconds: int) -> int:
    # Each tick drains at most max_requests jobs
    return math.ceil(position / max_requests) * cron_interval_seconds


class StatusReporter:
    def __init__(self, store: JobStore, max_requests: int, cron_interval_seconds: int, max_retries: int = 3):
        self.store = store
        self.max_requests = max_requests
        self.cron_interval_seconds = cron_interval_seconds
        self.max_retries = max_retries

    async def queue_position(self, job_id: str) -> Optional[int]:
        """1-based position among pending jobs, 1 being the next one out."""
        for index, job in enumerate(await self.store.range()):
            if job.id == job_id:
                return index + 1
        return None

    async def get_status(self, job_id: str) -> Optional[JobStatusView]:
        job = await self.store.get(job_id)
        if job is None:
            return None

        view = JobStatusView(
            job_id=job.id,
            status=job.status,
            type=job.type,
            created_at=job.created_at,
            attempts=job.attempts,
            max_retries=self.max_retries,
        )

        if job.status is JobStatus.pending:
            view.queue_position = await self.queue_position(job_id)
            if view.queue_position is not None:
                view.estimated_wait_seconds = estimate_wait_seconds(
                    view.queue_position, self.max_requests, self.cron_interval_seconds
                )
            if job.attempts > 0:
                view.message = f"Retrying... (attempt {job.attempts + 1}/{self.max_retries})"
            elif view.queue_position is not None:
                view.message = (
                    f"Your job is in the queue at position {view.queue_position}. "
                    f"Estimated wait: {view.estimated_wait_seconds}s"
                )
            else:
                view.message = "Job is in the queue and will be processed soon..."

        elif job.status is JobStatus.processing:
            if job.attempts > 1:
                view.message = f"Creating your song... (retry {job.attempts}/{self.max_retries})"
            else:
                view.message = "Your song is being created right now!"

        elif job.status is JobStatus.completed:
            view.result = await self.store.get_result(job_id)
            view.message = "Job completed"

        elif job.status is JobStatus.failed:
            view.error = job.error or await self.store.get_error(job_id) or "Job failed"
            view.message = (
                f"Generation failed after {job.attempts} attempts. "
                "Please try a fresh generation with different settings or try again later."
            )

        return view
