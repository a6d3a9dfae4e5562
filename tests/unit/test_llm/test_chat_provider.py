"""Unit tests for the OpenAI-compatible chat provider."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from src.llm.chat_provider import ChatProvider, _estimate_cost
from src.llm.interface import ChatModel


def completion(content="generated", model="gpt-4o-mini", prompt_tokens=120, completion_tokens=30):
    """Fake chat.completions.create() result."""
    result = MagicMock()
    result.choices = [MagicMock()]
    result.choices[0].message.content = content
    result.model = model
    result.usage = MagicMock(prompt_tokens=prompt_tokens, completion_tokens=completion_tokens)
    return result


@pytest.fixture
def openai_client():
    """Patch AsyncOpenAI and hand back the client instance."""
    with patch("src.llm.chat_provider.AsyncOpenAI") as client_cls:
        client = MagicMock()
        client.chat.completions.create = AsyncMock(return_value=completion())
        client_cls.return_value = client
        yield client


class TestEstimateCost:
    def test_known_model(self):
        assert _estimate_cost("gpt-4o", 2000, 1000) == pytest.approx(0.015)

    def test_unknown_model_uses_default_rate(self):
        assert _estimate_cost("mystery", 1000, 500) == pytest.approx(0.0025)


class TestChat:
    async def test_returns_usage_and_cost(self, openai_client):
        provider = ChatProvider(model="gpt-4o-mini", api_key="k")

        response = await provider.chat([{"role": "user", "content": "Hi"}])

        assert response.content == "generated"
        assert response.input_tokens == 120
        assert response.output_tokens == 30
        assert response.cost > 0
        assert response.duration_ms >= 0

    async def test_defaults_come_from_constructor(self, openai_client):
        provider = ChatProvider(model="gpt-4o-mini", api_key="k", max_tokens=256, temperature=0.2)

        await provider.chat([{"role": "user", "content": "Hi"}])

        kwargs = openai_client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-4o-mini"
        assert kwargs["max_tokens"] == 256
        assert kwargs["temperature"] == 0.2

    async def test_missing_usage_and_content(self, openai_client):
        result = completion()
        result.usage = None
        result.choices[0].message.content = None
        openai_client.chat.completions.create.return_value = result
        provider = ChatProvider(model="gpt-4o-mini", api_key="k")

        response = await provider.chat([{"role": "user", "content": "Hi"}])

        assert response.content == ""
        assert response.cost == 0.0

    def test_client_gets_base_url(self):
        with patch("src.llm.chat_provider.AsyncOpenAI") as client_cls:
            ChatProvider(model="deepseek-chat", api_key="k", base_url="https://api.deepseek.com")

        client_cls.assert_called_once_with(api_key="k", base_url="https://api.deepseek.com")


class TestComplete:
    async def test_complete_returns_text(self, openai_client):
        provider = ChatProvider(model="gpt-4o-mini", api_key="k")
        context = [
            {"role": "system", "content": "be nice"},
            {"role": "user", "content": "hello"},
        ]

        text = await provider.complete(context, session_id="s1")

        assert text == "generated"
        assert openai_client.chat.completions.create.call_args.kwargs["messages"] == context

    async def test_errors_propagate(self, openai_client):
        """Failures reach the caller, which owns the fallback policy."""
        openai_client.chat.completions.create.side_effect = TimeoutError("slow")
        provider = ChatProvider(model="gpt-4o-mini", api_key="k")

        with pytest.raises(TimeoutError):
            await provider.complete([{"role": "user", "content": "hello"}])

    def test_satisfies_chat_model_protocol(self, openai_client):
        assert isinstance(ChatProvider(model="gpt-4o-mini", api_key="k"), ChatModel)


class TestClassify:
    async def test_classify_is_short_and_cold(self, openai_client):
        openai_client.chat.completions.create.return_value = completion(content='{"keep": true}')
        provider = ChatProvider(model="gpt-4o-mini", api_key="k")

        result = await provider.classify(prompt="User: remember X", system="decide")

        assert result == '{"keep": true}'
        kwargs = openai_client.chat.completions.create.call_args.kwargs
        assert kwargs["messages"][0] == {"role": "system", "content": "decide"}
        assert kwargs["max_tokens"] == 100
        assert kwargs["temperature"] == 0.0
