"""Tests for conversation models."""

import pytest
from pydantic import ValidationError

from src.conversation.models import Message, SessionState, TurnStage


class TestMessage:
    def test_invalid_role(self):
        """Unknown roles are rejected."""
        with pytest.raises(ValueError):
            Message(role="bot", content="x", timestamp=1)

    def test_from_row_and_to_dict(self):
        """Row round trip keeps the public fields."""
        msg = Message.from_row(
            {"id": 7, "session_id": "s", "role": "user", "content": "hi", "timestamp": 5}
        )

        assert msg.id == 7
        assert msg.to_dict() == {"role": "user", "content": "hi", "timestamp": 5}
        assert msg.to_prompt() == {"role": "user", "content": "hi"}

    def test_immutable(self):
        """Messages cannot be modified after creation."""
        msg = Message(role="user", content="hi", timestamp=1)
        with pytest.raises(AttributeError):
            msg.content = "changed"  # type: ignore[misc]


class TestSessionState:
    def test_default_record(self):
        """A fresh state serializes to just initialized=false plus the counter."""
        assert SessionState().to_record() == {"initialized": False, "messageCount": 0}

    def test_camel_case_round_trip(self):
        """Records load from and dump to camelCase keys."""
        record = {
            "initialized": True,
            "messageCount": 6,
            "lastInteraction": 123,
            "lastScheduledTask": 456,
        }
        state = SessionState.model_validate(record)

        assert state.message_count == 6
        assert state.to_record() == record

    def test_negative_count_rejected(self):
        """messageCount is never negative."""
        with pytest.raises(ValidationError):
            SessionState(message_count=-1)


def test_turn_stage_values():
    """Stage names match the logged values."""
    assert [s.value for s in TurnStage] == [
        "received",
        "context-built",
        "model-invoked",
        "persisted",
        "responded",
        "degraded-response",
    ]
