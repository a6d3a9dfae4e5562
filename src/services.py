"""Wire storage, model and conversation components into one container."""

from dataclasses import dataclass
from typing import Optional

import structlog

from .config.settings import Settings
from .conversation.context import ContextBuilder
from .conversation.manager import ConversationManager
from .conversation.state import SessionStateStore
from .conversation.sweeper import RetentionSweeper
from .knowledge.extractor import KeywordNoteExtractor, ModelNoteExtractor, NoteExtractor
from .knowledge.manager import KnowledgeManager
from .llm.factory import create_chat_model, create_classifier
from .llm.interface import ChatModel
from .storage.database import DatabaseManager
from .storage.repositories import (
    MessageRepository,
    NoteRepository,
    SessionStateRepository,
)

logger = structlog.get_logger()


@dataclass
class AssistantServices:
    """Everything a transport needs to serve conversations."""

    settings: Settings
    db: DatabaseManager
    messages: MessageRepository
    state_store: SessionStateStore
    knowledge: KnowledgeManager
    conversation: ConversationManager
    sweeper: RetentionSweeper

    async def start(self) -> None:
        await self.db.initialize()
        await self.sweeper.start()

    async def close(self) -> None:
        await self.sweeper.stop()
        await self.db.close()


def _create_extractor(settings: Settings) -> NoteExtractor:
    if settings.note_extractor == "model":
        return ModelNoteExtractor(create_classifier(settings))
    return KeywordNoteExtractor()


def build_services(
    settings: Settings,
    chat_model: Optional[ChatModel] = None,
) -> AssistantServices:
    """Construct the component graph; nothing touches the database yet."""
    db = DatabaseManager(settings.database_url, pool_size=settings.db_pool_size)
    messages = MessageRepository(db)
    state_store = SessionStateStore(SessionStateRepository(db))
    knowledge = KnowledgeManager(NoteRepository(db), _create_extractor(settings))
    model = chat_model or create_chat_model(settings, state_store=state_store)

    conversation = ConversationManager(
        messages=messages,
        state_store=state_store,
        context_builder=ContextBuilder(
            messages,
            system_prompt=settings.system_prompt,
            window=settings.context_window_size,
        ),
        model=model,
        knowledge=knowledge,
        model_timeout=settings.model_timeout_seconds,
    )
    sweeper = RetentionSweeper(
        messages,
        state_store,
        keep=settings.retention_keep_messages,
        interval=settings.retention_interval_seconds,
    )

    logger.debug(
        "Services built",
        model_provider=settings.model_provider,
        note_extractor=settings.note_extractor,
    )
    return AssistantServices(
        settings=settings,
        db=db,
        messages=messages,
        state_store=state_store,
        knowledge=knowledge,
        conversation=conversation,
        sweeper=sweeper,
    )
