"""Test note extractors."""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.knowledge.extractor import (
    EXTRACT_NOTE_SYSTEM,
    TRIGGER_KEYWORDS,
    KeywordNoteExtractor,
    ModelNoteExtractor,
    derive_topic,
    has_trigger,
)


class TestKeywordNoteExtractor:
    """Baseline keyword rule."""

    async def test_favorite_color_scenario(self):
        """Topic is the first three tokens, content the full message."""
        note = await KeywordNoteExtractor().extract(
            "Please remember my favorite color is blue", "Sure!"
        )

        assert note is not None
        assert note.topic == "Please remember my"
        assert note.content == "Please remember my favorite color is blue"
        assert note.created_at == note.updated_at

    @pytest.mark.parametrize("keyword", TRIGGER_KEYWORDS)
    async def test_each_keyword_triggers(self, keyword):
        note = await KeywordNoteExtractor().extract(f"this is {keyword} stuff", "ok")
        assert note is not None

    async def test_case_insensitive(self):
        note = await KeywordNoteExtractor().extract("IMPORTANT: rent due", "ok")
        assert note is not None
        assert note.topic == "IMPORTANT: rent due"

    async def test_substring_match(self):
        """Keywords match inside longer words."""
        assert await KeywordNoteExtractor().extract("my notebook is red", "ok") is not None

    async def test_no_keyword_no_note(self):
        assert await KeywordNoteExtractor().extract("hello there", "hi!") is None

    async def test_reply_text_is_ignored(self):
        """Only the user's message is scanned."""
        assert await KeywordNoteExtractor().extract("hello", "I will remember") is None

    async def test_short_message_uses_all_tokens(self):
        note = await KeywordNoteExtractor().extract("save this", "ok")
        assert note.topic == "save this"

    async def test_deterministic(self):
        """Same input, same decision and topic."""
        extractor = KeywordNoteExtractor()
        first = await extractor.extract("Note:  buy   milk today", "ok")
        second = await extractor.extract("Note:  buy   milk today", "ok")

        assert first.topic == second.topic == "Note: buy milk"


def test_helpers():
    assert derive_topic("one two three four") == "one two three"
    assert derive_topic("") == ""
    assert has_trigger("Remember me") is True
    assert has_trigger("nothing here") is False


class TestModelNoteExtractor:
    """Model-assisted extraction with keyword fallback."""

    async def test_keep_with_topic(self):
        provider = MagicMock()
        provider.classify = AsyncMock(
            return_value=json.dumps({"keep": True, "topic": "favorite color"})
        )
        extractor = ModelNoteExtractor(provider)

        note = await extractor.extract("My favourite colour is blue", "Nice!")

        assert note.topic == "favorite color"
        assert note.content == "My favourite colour is blue"
        call = provider.classify.call_args
        assert call.kwargs["system"] == EXTRACT_NOTE_SYSTEM
        assert "My favourite colour is blue" in call.kwargs["prompt"]

    async def test_keep_without_topic_uses_first_tokens(self):
        provider = MagicMock()
        provider.classify = AsyncMock(return_value='{"keep": true}')

        note = await ModelNoteExtractor(provider).extract("I live in Lisbon now", "ok")

        assert note.topic == "I live in"

    async def test_model_says_no(self):
        provider = MagicMock()
        provider.classify = AsyncMock(return_value='{"keep": false}')

        assert await ModelNoteExtractor(provider).extract("remember nothing", "ok") is None

    async def test_invalid_json_falls_back_to_keywords(self):
        provider = MagicMock()
        provider.classify = AsyncMock(return_value="not json")
        extractor = ModelNoteExtractor(provider)

        assert (await extractor.extract("please remember this", "ok")).topic == "please remember this"
        assert await extractor.extract("plain chat", "ok") is None

    async def test_provider_error_falls_back_to_keywords(self):
        provider = MagicMock()
        provider.classify = AsyncMock(side_effect=ConnectionError("offline"))

        note = await ModelNoteExtractor(provider).extract("save my address", "ok")

        assert note is not None

    async def test_blank_message_skipped(self):
        provider = MagicMock()
        provider.classify = AsyncMock()

        assert await ModelNoteExtractor(provider).extract("   ", "ok") is None
        provider.classify.assert_not_called()

    @pytest.mark.parametrize("keep", ['"false"', '"true"', "1", "null"])
    async def test_non_boolean_keep_falls_back_to_keywords(self, keep):
        provider = MagicMock()
        provider.classify = AsyncMock(return_value='{"keep": %s, "topic": "x"}' % keep)
        extractor = ModelNoteExtractor(provider)

        assert await extractor.extract("plain chat", "ok") is None
        note = await extractor.extract("note the gate code", "ok")
        assert note.topic == "note the gate"
