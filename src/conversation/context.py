"""Context window construction for a new user turn."""

from typing import Optional

import structlog

from ..storage.repositories import MessageRepository
from .models import Message

logger = structlog.get_logger()

DEFAULT_WINDOW = 10


class ContextBuilder:
    """Build the ordered role/content list sent to the model.

    The result is always: one system message (never read from storage),
    then up to ``window`` stored messages oldest-first, then the new user
    message.
    """

    def __init__(
        self,
        messages: MessageRepository,
        system_prompt: str,
        window: int = DEFAULT_WINDOW,
    ) -> None:
        if window < 0:
            raise ValueError("window must be >= 0")
        self._messages = messages
        self._system_prompt = system_prompt
        self._window = window

    @property
    def window(self) -> int:
        return self._window

    async def build(
        self,
        session_id: str,
        user_message: str,
        exclude_from_id: Optional[int] = None,
    ) -> list[dict[str, str]]:
        """Assemble context for ``user_message``.

        Args:
            session_id: Session whose log supplies the history.
            user_message: The new message, appended last.
            exclude_from_id: Row id of the already-stored copy of
                ``user_message``; it and anything newer are left out of the
                history so the message appears exactly once.
        """
        history = await self._messages.recent(
            session_id, self._window, before_id=exclude_from_id
        )
        context = self.assemble(history, user_message)
        logger.debug(
            "Context built",
            session_id=session_id,
            history_messages=len(history),
        )
        return context

    def assemble(
        self, history: list[Message], user_message: str
    ) -> list[dict[str, str]]:
        """Pure assembly step, usable without storage."""
        trimmed = history[-self._window :] if self._window else []
        return [
            {"role": "system", "content": self._system_prompt},
            *(m.to_prompt() for m in trimmed),
            {"role": "user", "content": user_message},
        ]
