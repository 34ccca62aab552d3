import logging
from typing import Any, Dict

import httpx

from ..errors import HandlerError
from ..models import MusicPayload

logger = logging.getLogger(__name__)


class MusicHandler:
    """Starts a generation on the music service and returns its task id.

    Completion of the track is polled by the client directly and is not
    tracked by the queue.
    """

    def __init__(self, http: httpx.AsyncClient, api_key: str):
        self._http = http
        self._api_key = api_key

    async def __call__(self, payload: MusicPayload) -> Dict[str, Any]:
        if not self._api_key:
            raise HandlerError("SUNO_API_KEY is not configured")

        logger.info("calling music service at %s (title: %s)", payload.endpoint, payload.request_body.get("title"))
        try:
            response = await self._http.post(
                payload.endpoint,
                json=payload.request_body,
                headers={"Authorization": f"Bearer {self._api_key}"},
            )
        except httpx.HTTPError as exc:
            raise HandlerError(f"Music service request failed: {exc}") from exc

        if response.is_error:
            logger.error("music service error (HTTP %d): %s", response.status_code, response.text)
            raise HandlerError(f"Music service request failed: {response.status_code} {response.reason_phrase}")

        body = response.json()
        if body.get("code") != 200:
            raise HandlerError(body.get("msg") or "Failed to generate music")

        task_id = (body.get("data") or {}).get("taskId")
        if not task_id:
            raise HandlerError("No task ID received from music service")

        logger.info("music generation started, task id %s", task_id)
        return {"taskId": task_id, "message": "Music generation started"}
