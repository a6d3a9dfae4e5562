"""Tests for ContextBuilder."""

import pytest

from src.conversation.context import ContextBuilder
from src.conversation.models import Message

SYSTEM = "You are a test assistant."


def _history(n: int) -> list[Message]:
    return [
        Message(role="user" if i % 2 == 0 else "assistant", content=f"m{i}", timestamp=i)
        for i in range(n)
    ]


class TestAssemble:
    """Pure assembly without storage."""

    def test_layout(self):
        """System first, history in order, new message last."""
        builder = ContextBuilder(messages=None, system_prompt=SYSTEM, window=10)

        context = builder.assemble(_history(2), "new")

        assert context == [
            {"role": "system", "content": SYSTEM},
            {"role": "user", "content": "m0"},
            {"role": "assistant", "content": "m1"},
            {"role": "user", "content": "new"},
        ]

    @pytest.mark.parametrize("stored", [0, 1, 9, 10, 11, 50])
    def test_never_exceeds_window_plus_two(self, stored):
        """Length is at most K + 2 whatever the history size."""
        builder = ContextBuilder(messages=None, system_prompt=SYSTEM, window=10)

        context = builder.assemble(_history(stored), "new")

        assert len(context) == min(stored, 10) + 2
        assert sum(1 for m in context if m["role"] == "system") == 1

    def test_zero_window(self):
        """With K=0 only the system and new messages remain."""
        builder = ContextBuilder(messages=None, system_prompt=SYSTEM, window=0)

        assert len(builder.assemble(_history(5), "new")) == 2

    def test_negative_window_rejected(self):
        with pytest.raises(ValueError):
            ContextBuilder(messages=None, system_prompt=SYSTEM, window=-1)


class TestBuild:
    """build() against a real message log."""

    async def test_uses_last_k_messages(self, message_repo):
        """Only the K most recent stored messages are included, oldest first."""
        for i in range(15):
            await message_repo.append("s1", "user", f"m{i}", timestamp=100 + i)
        builder = ContextBuilder(message_repo, SYSTEM, window=10)

        context = await builder.build("s1", "new")

        assert [m["content"] for m in context[1:-1]] == [f"m{i}" for i in range(5, 15)]

    async def test_stored_copy_not_duplicated(self, message_repo):
        """The already-written user message is not counted twice."""
        await message_repo.append("s1", "user", "earlier", timestamp=1)
        stored = await message_repo.append("s1", "user", "new", timestamp=2)
        builder = ContextBuilder(message_repo, SYSTEM, window=10)

        context = await builder.build("s1", "new", exclude_from_id=stored.id)

        assert [m["content"] for m in context] == [SYSTEM, "earlier", "new"]

    async def test_system_prompt_never_from_storage(self, message_repo):
        """A stored system-role row is history, not the system prompt."""
        await message_repo.append("s1", "system", "stored system text", timestamp=1)
        builder = ContextBuilder(message_repo, SYSTEM, window=10)

        context = await builder.build("s1", "hi")

        assert context[0] == {"role": "system", "content": SYSTEM}
