import logging
import re

from ..errors import HandlerError
from .openai_client import OpenAIClient

logger = logging.getLogger(__name__)

# Only used when the moderation endpoint is not configured or unreachable
CRITICAL_PROFANITY = ["pula", "pulă", "pizda", "pizdă", "fut", "muie", "cacat", "căcat"]

_PROFANITY_RE = re.compile(r"\b(" + "|".join(map(re.escape, CRITICAL_PROFANITY)) + r")\b", re.IGNORECASE)

CLASSIFIER_SYSTEM_PROMPT = (
    "You are a content moderator that detects profanity and vulgar language in any language, especially Romanian. "
    "Respond with ONLY \"YES\" or \"NO\". "
    "YES if the text contains any profane, vulgar, offensive or sexually explicit words. "
    "NO if the text is clean and appropriate for all audiences."
)


def contains_profanity_fallback(text: str) -> bool:
    return bool(text) and _PROFANITY_RE.search(text) is not None


def scrub_profanity(text: str) -> str:
    cleaned = _PROFANITY_RE.sub("", text)
    return re.sub(r"\s{2,}", " ", cleaned).strip()


async def contains_profanity(client: OpenAIClient, text: str) -> bool:
    if not text:
        return False
    if not client.configured:
        logger.warning("moderation API key not configured, using fallback word list")
        return contains_profanity_fallback(text)
    try:
        flagged = await client.moderate(text)
    except HandlerError as exc:
        logger.warning("moderation request failed, using fallback word list: %s", exc)
        return contains_profanity_fallback(text)
    if flagged:
        logger.info("moderation flagged submitted text")
        return True
    # The moderation model misses a lot of Romanian slang, so ask the chat model as well
    try:
        answer = await client.complete(
            CLASSIFIER_SYSTEM_PROMPT,
            f'Does this text contain profanity or vulgar language?\n\nText: "{text}"',
            temperature=0,
            max_tokens=10,
        )
    except HandlerError as exc:
        logger.warning("profanity classifier failed, using fallback word list: %s", exc)
        return contains_profanity_fallback(text)
    if answer.strip().upper() == "YES":
        logger.info("profanity classifier flagged submitted text")
        return True
    return contains_profanity_fallback(text)


async def remove_profanity(client: OpenAIClient, text: str) -> str:
    """Rewrite `text` without vulgar words, keeping names and meaning."""
    if client.configured:
        try:
            cleaned = await client.complete(
                "You remove or replace profane and vulgar words in any language while keeping names, places, "
                "language and meaning unchanged. Return only the cleaned text.",
                f"Clean this text:\n\n{text}",
                temperature=0.3,
                max_tokens=500,
            )
        except HandlerError as exc:
            logger.warning("profanity rewrite failed, using fallback word list: %s", exc)
        else:
            if cleaned:
                text = cleaned
    return scrub_profanity(text)
