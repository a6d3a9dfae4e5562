"""Scripted offline model used when no hosted backend is configured."""

from typing import Any, Optional

import structlog

logger = structlog.get_logger()

HELP_TEXT = """I'm your AI knowledge assistant! I can:
- Answer questions using my knowledge base
- Remember important information you share
- Help organize and retrieve information
- Have conversations with context from our chat history

Try asking me to remember something, or ask me a question!"""


class DemoChatModel:
    """Keyword-driven replies that need no network access.

    Checks run in a fixed order and the first match wins; matching is a
    case-insensitive substring test, so "this" counts as "hi".
    """

    def __init__(self, state_store: Any = None) -> None:
        self._state_store = state_store

    async def complete(
        self,
        messages: list[dict[str, str]],
        session_id: Optional[str] = None,
    ) -> str:
        last_user = messages[-1]["content"] if messages else ""
        lowered = last_user.lower()
        history_count = len([m for m in messages if m["role"] != "system"]) - 1

        if "remember" in lowered:
            return (
                "I'll remember that for you! I've saved it to my knowledge base "
                "so we can refer to it later in our conversations."
            )

        if "what" in lowered or "tell me" in lowered:
            return (
                "Based on our conversation history, I can help you with that. "
                "I remember our previous discussions. "
                "Is there something specific you'd like to know more about?"
            )

        if "hello" in lowered or "hi" in lowered:
            count = await self._message_count(session_id)
            return (
                "Hello! I'm your AI knowledge assistant. "
                "I'm here to help you organize information and answer questions. "
                f"We've had {count} messages so far. What would you like to talk about?"
            )

        if "help" in lowered:
            return HELP_TEXT

        return (
            f'I understand you said: "{last_user}". '
            f"The system maintains {max(history_count, 0)} previous messages for "
            "context, and I have access to our conversation history and knowledge base."
        )

    async def healthcheck(self) -> bool:
        return True

    async def _message_count(self, session_id: Optional[str]) -> int:
        if self._state_store is None or session_id is None:
            return 0
        state = await self._state_store.get_state(session_id)
        return state.message_count
