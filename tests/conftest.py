"""Shared fixtures: temporary database, repositories and a scripted model."""

from typing import List, Optional

import pytest

from src.config.settings import Settings
from src.conversation.state import SessionStateStore
from src.storage.database import DatabaseManager
from src.storage.repositories import (
    MessageRepository,
    NoteRepository,
    SessionStateRepository,
)


class ScriptedModel:
    """ChatModel test double that records every context it receives."""

    def __init__(self, reply: str = "scripted reply", error: Optional[BaseException] = None):
        self.reply = reply
        self.error = error
        self.calls: List[list[dict[str, str]]] = []

    async def complete(self, messages, session_id=None):
        self.calls.append(list(messages))
        if self.error is not None:
            raise self.error
        return self.reply

    async def healthcheck(self) -> bool:
        return True


@pytest.fixture(autouse=True)
def _clean_settings_env(monkeypatch):
    """Keep host environment variables out of Settings()."""
    for name in Settings.model_fields:
        monkeypatch.delenv(name.upper(), raising=False)


@pytest.fixture
async def db_manager(tmp_path):
    """Create test database manager with migrations applied."""
    manager = DatabaseManager(f"sqlite:///{tmp_path / 'test.db'}")
    await manager.initialize()
    yield manager
    await manager.close()


@pytest.fixture
def message_repo(db_manager):
    return MessageRepository(db_manager)


@pytest.fixture
def note_repo(db_manager):
    return NoteRepository(db_manager)


@pytest.fixture
def state_store(db_manager):
    return SessionStateStore(SessionStateRepository(db_manager))


@pytest.fixture
def scripted_model():
    return ScriptedModel()


@pytest.fixture
def model_factory():
    """Build ScriptedModel instances with a custom reply or error."""
    return ScriptedModel
