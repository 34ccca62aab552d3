from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, RootModel

from .models import LyricsPayload, MusicPayload


class _JobCreateBase(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: Optional[str] = Field(default=None, alias="userId")


class LyricsJobCreate(_JobCreateBase):
    type: Literal["lyrics"]
    payload: LyricsPayload


class MusicJobCreate(_JobCreateBase):
    type: Literal["music"]
    payload: MusicPayload


class JobCreate(RootModel[Annotated[Union[LyricsJobCreate, MusicJobCreate], Field(discriminator="type")]]):
    """Request body of the generic enqueue endpoint.

    Unknown `type` values are rejected here, before anything is enqueued.
    """


class LyricsEnqueueRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    story: str = ""
    moods: List[str] = Field(default_factory=list)
    user_id: Optional[str] = Field(default=None, alias="userId")


class MusicEnqueueRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    endpoint: str = ""
    request_body: Optional[Dict[str, Any]] = Field(default=None, alias="requestBody")
    user_id: Optional[str] = Field(default=None, alias="userId")


class EnqueueResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    job_id: str = Field(alias="jobId")
    message: str


class RateLimitStats(BaseModel):
    remaining: int
    reset: float


class QueueStatsResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    pending: int
    rate_limit: RateLimitStats = Field(alias="rateLimit")


class DrainResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    processed: int
    failed: int
    duration_seconds: float = Field(alias="durationSeconds")
