"""Conversation data models."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

ROLES = ("user", "assistant", "system")


@dataclass(frozen=True)
class Message:
    """One entry of a session's message log. Never updated once written."""

    role: str  # user, assistant, system
    content: str
    timestamp: int  # milliseconds since epoch
    id: Optional[int] = None
    session_id: Optional[str] = None

    def __post_init__(self) -> None:
        if self.role not in ROLES:
            raise ValueError(f"Invalid message role: {self.role!r}")

    @classmethod
    def from_row(cls, row: Any) -> "Message":
        """Create from database row."""
        data = dict(row)
        return cls(
            role=data["role"],
            content=data["content"],
            timestamp=data["timestamp"],
            id=data.get("id"),
            session_id=data.get("session_id"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"role": self.role, "content": self.content, "timestamp": self.timestamp}

    def to_prompt(self) -> Dict[str, str]:
        return {"role": self.role, "content": self.content}


class SessionState(BaseModel):
    """Small per-session record, always written as a whole."""

    model_config = ConfigDict(populate_by_name=True)

    initialized: bool = False
    message_count: int = Field(default=0, ge=0, alias="messageCount")
    last_interaction: Optional[int] = Field(default=None, alias="lastInteraction")
    last_scheduled_task: Optional[int] = Field(default=None, alias="lastScheduledTask")

    def to_record(self) -> Dict[str, Any]:
        """Serialized form with camelCase keys; unset timestamps are omitted."""
        return self.model_dump(by_alias=True, exclude_none=True)


class TurnStage(str, Enum):
    """Stages a turn passes through; DEGRADED replaces the model reply."""

    RECEIVED = "received"
    CONTEXT_BUILT = "context-built"
    MODEL_INVOKED = "model-invoked"
    PERSISTED = "persisted"
    RESPONDED = "responded"
    DEGRADED = "degraded-response"


@dataclass
class TurnResult:
    """Outcome of one processed turn."""

    session_id: str
    reply: str
    stage: TurnStage
    degraded: bool = False
    note_saved: bool = False
    message_count: int = 0
