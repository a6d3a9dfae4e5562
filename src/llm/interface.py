"""Language model interface shared by every backend.

The conversation layer only ever sees ``ChatModel``: an ordered list of
role/content messages goes in, generated text comes out. Backends are free to
raise on failure; the caller treats every call as fallible.
"""

from typing import Optional, Protocol, runtime_checkable


@runtime_checkable
class ChatModel(Protocol):
    """Protocol for chat completion backends."""

    async def complete(
        self,
        messages: list[dict[str, str]],
        session_id: Optional[str] = None,
    ) -> str:
        """Generate the assistant reply for ``messages``.

        Args:
            messages: Ordered role/content pairs, system message first and
                the new user message last.
            session_id: Conversation the request belongs to, for backends
                that look up session data.

        Returns:
            The generated reply text.
        """
        ...

    async def healthcheck(self) -> bool:
        """Return True if the backend is usable."""
        ...
