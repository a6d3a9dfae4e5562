"""SQLite persistence for messages, notes and session state."""

from .database import DatabaseManager
from .repositories import MessageRepository, NoteRepository, SessionStateRepository

__all__ = [
    "DatabaseManager",
    "MessageRepository",
    "NoteRepository",
    "SessionStateRepository",
]
