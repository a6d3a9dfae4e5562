"""Decide whether a completed turn holds a note worth keeping."""

import json
from typing import Any, Optional, Protocol

import structlog

from ..utils.clock import now_ms
from .models import Note

logger = structlog.get_logger()

TRIGGER_KEYWORDS = ("remember", "important", "note", "save", "favorite")
TOPIC_WORDS = 3

EXTRACT_NOTE_SYSTEM = """\
Decide whether the user's message contains a fact they want kept for later.
Return JSON only: {"keep": true|false, "topic": "<three to five words>"}"""


def derive_topic(message: str) -> str:
    """First three whitespace-separated tokens of the message."""
    return " ".join(message.split()[:TOPIC_WORDS])


def has_trigger(message: str) -> bool:
    lowered = message.lower()
    return any(keyword in lowered for keyword in TRIGGER_KEYWORDS)


class NoteExtractor(Protocol):
    """Text in, optional Note out."""

    async def extract(
        self, user_message: str, assistant_response: str
    ) -> Optional[Note]:
        ...


class KeywordNoteExtractor:
    """Keep the user's message when it contains a trigger keyword.

    The keyword test is a case-insensitive substring match against
    ``TRIGGER_KEYWORDS``; the topic is the first three tokens of the message
    and the content is the message itself.
    """

    async def extract(
        self, user_message: str, assistant_response: str
    ) -> Optional[Note]:
        if not has_trigger(user_message):
            return None

        now = now_ms()
        return Note(
            topic=derive_topic(user_message),
            content=user_message,
            created_at=now,
            updated_at=now,
        )


class ModelNoteExtractor:
    """Ask a cheap model whether to keep the message, keyword rule as fallback."""

    def __init__(self, chat_provider: Any, fallback: Optional[KeywordNoteExtractor] = None) -> None:
        self._provider = chat_provider
        self._fallback = fallback or KeywordNoteExtractor()

    async def extract(
        self, user_message: str, assistant_response: str
    ) -> Optional[Note]:
        if not user_message.strip():
            return None

        exchange = f"User: {user_message[:500]}\nAssistant: {assistant_response[:500]}"

        try:
            raw = await self._provider.classify(
                prompt=exchange,
                system=EXTRACT_NOTE_SYSTEM,
            )
            data = json.loads(raw.strip())
            if not isinstance(data, dict) or not isinstance(data.get("keep"), bool):
                raise ValueError("unexpected classifier payload")
        except (json.JSONDecodeError, ValueError, TypeError) as exc:
            logger.debug("Note classification parse error", error=str(exc))
            return await self._fallback.extract(user_message, assistant_response)
        except Exception as exc:
            logger.warning("Note classification failed", error=str(exc))
            return await self._fallback.extract(user_message, assistant_response)

        if not data["keep"]:
            return None

        topic = str(data.get("topic") or "").strip() or derive_topic(user_message)
        now = now_ms()
        return Note(
            topic=topic,
            content=user_message,
            created_at=now,
            updated_at=now,
        )
