"""Knowledge manager: run extraction on turns and keep the resulting notes."""

from typing import Optional

import structlog

from ..storage.repositories import NoteRepository
from .extractor import KeywordNoteExtractor, NoteExtractor
from .models import Note

logger = structlog.get_logger()


class KnowledgeManager:
    """Owns the knowledge base of notes."""

    def __init__(
        self,
        notes: NoteRepository,
        extractor: Optional[NoteExtractor] = None,
    ) -> None:
        self._notes = notes
        self._extractor = extractor or KeywordNoteExtractor()

    async def extract_and_store(
        self,
        session_id: str,
        message: str,
        response: str,
    ) -> Optional[Note]:
        """Run the extractor on a turn and persist the note it yields."""
        note = await self._extractor.extract(message, response)
        if note is None:
            return None

        saved = await self._notes.add(session_id, note)
        logger.info(
            "Note saved",
            session_id=session_id,
            note_id=saved.id,
            topic=saved.topic,
        )
        return saved

    async def list_notes(self, session_id: str, limit: int = 50) -> list[Note]:
        return await self._notes.recent(session_id, limit)

