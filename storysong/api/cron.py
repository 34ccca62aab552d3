from fastapi import APIRouter, Depends

from ..auth import require_cron_secret
from ..config import Settings
from ..dependencies import get_engine, get_handlers, get_settings
from ..handlers import Handlers
from ..queue import QueueEngine
from ..schemas import DrainResponse
from ..worker import drain

router = APIRouter(prefix="/api/cron")


@router.api_route("/process-queue", methods=["GET", "POST"], response_model=DrainResponse)
async def process_queue(
    authorized: bool = Depends(require_cron_secret),
    engine: QueueEngine = Depends(get_engine),
    handlers: Handlers = Depends(get_handlers),
    settings: Settings = Depends(get_settings),
):
    summary = await drain(engine, handlers, settings)
    return DrainResponse(
        processed=summary.processed,
        failed=summary.failed,
        duration_seconds=summary.duration_seconds,
    )
