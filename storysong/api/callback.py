import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Request

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/callback")


# The music service posts progress here; clients poll the service themselves,
# so the body is only logged.
@router.post("")
@router.post("/lyrics")
async def receive_callback(request: Request):
    body = await request.body()
    logger.info("callback received on %s (%d bytes)", request.url.path, len(body))
    return {"success": True, "message": "Callback received"}


@router.get("")
async def callback_health():
    return {"message": "Callback endpoint is active", "timestamp": datetime.now(timezone.utc).isoformat()}
