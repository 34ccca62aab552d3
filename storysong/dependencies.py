from fastapi import Request

from .config import Settings
from .handlers import Handlers
from .queue import QueueEngine
from .status import StatusReporter


async def get_settings(request: Request) -> Settings:
    return request.app.state.settings


async def get_engine(request: Request) -> QueueEngine:
    return request.app.state.engine


async def get_reporter(request: Request) -> StatusReporter:
    return request.app.state.reporter


async def get_handlers(request: Request) -> Handlers:
    return request.app.state.handlers
