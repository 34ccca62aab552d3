import secrets
import string
import time
from enum import Enum
from typing import Any, Dict, List, Optional, Type

from pydantic import BaseModel, ConfigDict, Field, field_validator

_ID_ALPHABET = string.ascii_lowercase + string.digits


class JobType(str, Enum):
    lyrics = "lyrics"
    music = "music"


class JobStatus(str, Enum):
    pending = "pending"
    processing = "processing"
    completed = "completed"
    failed = "failed"


class LyricsPayload(BaseModel):
    story: str
    moods: List[str] = Field(default_factory=list)

    @field_validator("story")
    @classmethod
    def story_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Story is required")
        return value


class MusicPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    endpoint: str
    request_body: Dict[str, Any] = Field(alias="requestBody", min_length=1)

    @field_validator("endpoint")
    @classmethod
    def endpoint_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Endpoint is required")
        return value


# Every JobType needs an entry here
PAYLOAD_MODELS: Dict[JobType, Type[BaseModel]] = {
    JobType.lyrics: LyricsPayload,
    JobType.music: MusicPayload,
}


def now_ms() -> int:
    return int(time.time() * 1000)


def new_job_id() -> str:
    # Millisecond timestamp plus a random suffix so concurrent enqueues don't collide
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))
    return f"job_{now_ms()}_{suffix}"


class Job(BaseModel):
    """Snapshot of job:{id}. Stored as JSON with camelCase keys."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    user_id: str = Field(default="anonymous", alias="userId")
    type: JobType
    payload: Dict[str, Any]
    status: JobStatus = JobStatus.pending
    created_at: int = Field(default_factory=now_ms, alias="createdAt")
    attempts: int = 0
    error: Optional[str] = None

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)

    @classmethod
    def from_json(cls, raw: str) -> "Job":
        return cls.model_validate_json(raw)

    def typed_payload(self) -> BaseModel:
        return PAYLOAD_MODELS[self.type].model_validate(self.payload)
