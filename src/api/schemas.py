"""Request and response bodies."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_SESSION = "default"


class ChatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    session_id: Optional[str] = Field(
        default=None,
        alias="sessionId",
        min_length=1,
        max_length=128,
        description="Conversation key; falls back to the agentId query parameter.",
    )
    message: str = Field(..., min_length=1)


class ChatResponse(BaseModel):
    reply: str


class HistoryEntry(BaseModel):
    role: str
    content: str
    timestamp: int


class HistoryResponse(BaseModel):
    history: List[HistoryEntry]


class StateResponse(BaseModel):
    state: Dict[str, Any]


class NoteEntry(BaseModel):
    id: Optional[int]
    topic: str
    content: str
    created_at: int
    updated_at: int


class NotesResponse(BaseModel):
    notes: List[NoteEntry]


class SweepResponse(BaseModel):
    session_id: str
    deleted: int
    remaining: int


class ChatFrame(BaseModel):
    """Inbound WebSocket frame."""

    type: str
    message: str = Field(..., min_length=1)
