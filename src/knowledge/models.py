"""Knowledge data models."""

from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass
class Note:
    """A fact kept from a conversation turn."""

    topic: str
    content: str
    created_at: int
    updated_at: int
    session_id: Optional[str] = None
    id: Optional[int] = None

    @classmethod
    def from_row(cls, row: Any) -> "Note":
        """Create from database row."""
        data = dict(row)
        return cls(
            topic=data["topic"],
            content=data["content"],
            created_at=data["created_at"],
            updated_at=data["updated_at"],
            session_id=data.get("session_id"),
            id=data.get("id"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "topic": self.topic,
            "content": self.content,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
