from dataclasses import dataclass
from typing import Any, Awaitable, Callable

import httpx

from ..config import Settings
from ..models import LyricsPayload, MusicPayload
from .lyrics import LyricsHandler
from .music import MusicHandler
from .openai_client import OpenAIClient


@dataclass
class Handlers:
    """One coroutine per JobType, each taking that type's payload model."""

    lyrics: Callable[[LyricsPayload], Awaitable[Any]]
    music: Callable[[MusicPayload], Awaitable[Any]]


def build_handlers(settings: Settings, http: httpx.AsyncClient) -> Handlers:
    openai = OpenAIClient(http, settings.openai_api_key, settings.openai_base_url, settings.openai_model)
    return Handlers(
        lyrics=LyricsHandler(openai),
        music=MusicHandler(http, settings.suno_api_key),
    )
