import logging
from typing import Any, Dict, List

import httpx

from ..errors import HandlerError

logger = logging.getLogger(__name__)


class OpenAIClient:
    """Minimal async client for the chat completion and moderation endpoints."""

    def __init__(self, http: httpx.AsyncClient, api_key: str, base_url: str, model: str):
        self._http = http
        self.api_key = api_key
        self._base_url = base_url.rstrip("/")
        self.model = model

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def _post(self, path: str, body: Dict[str, Any]) -> Dict[str, Any]:
        if not self.api_key:
            raise HandlerError("OPENAI_API_KEY is not configured")
        try:
            response = await self._http.post(
                f"{self._base_url}{path}",
                json=body,
                headers={"Authorization": f"Bearer {self.api_key}"},
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise HandlerError(f"OpenAI request failed: {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            raise HandlerError(f"OpenAI request failed: {exc}") from exc
        return response.json()

    async def moderate(self, text: str) -> bool:
        """True when the moderation endpoint flags `text`."""
        data = await self._post("/moderations", {"input": text})
        results = data.get("results") or [{}]
        return bool(results[0].get("flagged"))

    async def complete(self, system: str, user: str, temperature: float = 0.7, max_tokens: int = 150) -> str:
        messages: List[Dict[str, str]] = [
            {"role": "system", "content": system},
            {"role": "user", "content": user},
        ]
        data = await self._post(
            "/chat/completions",
            {
                "model": self.model,
                "messages": messages,
                "temperature": temperature,
                "max_tokens": max_tokens,
            },
        )
        choices = data.get("choices") or []
        if not choices:
            return ""
        return (choices[0].get("message", {}).get("content") or "").strip()
