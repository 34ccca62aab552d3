import asyncio
import logging
import re
import time
from typing import Any, Dict

from ..errors import HandlerError
from ..models import LyricsPayload
from .moderation import contains_profanity, remove_profanity
from .openai_client import OpenAIClient

logger = logging.getLogger(__name__)

SUMMARY_MAX_CHARS = 174
MIN_CLEAN_SUMMARY_CHARS = 10
DEFAULT_MOOD = "upbeat"

_RO_CHARS = re.compile(r"[ăâîșțĂÂÎȘȚ]")
_RO_WORDS = re.compile(r"\b(și|cu|la|de|pe|în|un|o|este|sunt|când|cum|pentru|mai)\b", re.IGNORECASE)

SUMMARY_SYSTEM_PROMPT = (
    "You condense personal stories into short summaries used as the basis for song lyrics. "
    "Keep every proper name, city and place exactly as written and keep the emotional details. "
    f"The summary must be at most {SUMMARY_MAX_CHARS} characters. "
    "Replace vulgar or offensive words with clean alternatives and keep the text family friendly."
)


def detect_language(text: str) -> str:
    if _RO_CHARS.search(text) or _RO_WORDS.search(text):
        return "ro"
    return "en"


class LyricsHandler:
    """Story -> moderated summary -> one set of lyrics per requested mood."""

    def __init__(self, client: OpenAIClient):
        self._client = client

    async def __call__(self, payload: LyricsPayload) -> Dict[str, Any]:
        if await contains_profanity(self._client, payload.story):
            raise HandlerError("Please avoid vulgar language in your story.")

        moods = payload.moods or []
        mood_hint = f" The story should have a {' and '.join(moods)} mood." if moods else ""
        summary = await self._client.complete(
            SUMMARY_SYSTEM_PROMPT + mood_hint,
            f"Summarize this memory in at most {SUMMARY_MAX_CHARS} characters:\n\n{payload.story}",
            temperature=0.7,
            max_tokens=150,
        )
        if not summary:
            raise HandlerError("Failed to generate summary")

        if await contains_profanity(self._client, summary):
            summary = await remove_profanity(self._client, summary)
            if len(summary) < MIN_CLEAN_SUMMARY_CHARS:
                raise HandlerError("Please rephrase your story without vulgar language.")
        summary = summary[:SUMMARY_MAX_CHARS]

        language = detect_language(payload.story)
        tasks = [
            asyncio.ensure_future(self._lyrics_for(mood, summary, language)) for mood in (moods or [DEFAULT_MOOD])
        ]
        try:
            variations = await asyncio.gather(*tasks)
        except BaseException:
            # Siblings must not keep calling upstream once the job has failed
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise
        logger.info("generated %d lyrics variation(s)", len(variations))
        return {"summary": summary, "lyrics": list(variations), "language": language}

    async def _lyrics_for(self, mood: str, summary: str, language: str) -> Dict[str, str]:
        language_name = "Romanian" if language == "ro" else "English"
        text = await self._client.complete(
            f"You are a professional song lyricist. Write structured lyrics in {language_name} with the "
            f"sections [Verse], [Prechorus], [Chorus], [Verse 2], [Bridge]. Make them catchy with a {mood} mood.",
            f"Create {mood} song lyrics based on: {summary}",
            temperature=0.8,
            max_tokens=800,
        )
        if not text:
            raise HandlerError(f"Failed to generate lyrics for {mood} mood")
        return {
            "id": f"lyrics-{mood}-{int(time.time() * 1000)}",
            "text": text,
            "title": f"{mood[:1].upper()}{mood[1:]} Version",
            "mood": mood,
        }

