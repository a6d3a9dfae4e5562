"""OpenAI-compatible chat provider for GPT, DeepSeek, and other vendors.

Uses the openai SDK which is compatible with most hosted chat APIs.
"""

import time
from dataclasses import dataclass
from typing import Optional

import structlog
from openai import AsyncOpenAI

logger = structlog.get_logger()

# Approximate pricing per 1M tokens (input/output)
MODEL_PRICING = {
    "deepseek-chat": (0.14, 0.28),
    "gpt-4o-mini": (0.15, 0.60),
    "gpt-4o": (2.50, 10.00),
    "gpt-4.1-mini": (0.40, 1.60),
    "gpt-4.1-nano": (0.10, 0.40),
}


def _estimate_cost(model: str, input_tokens: int, output_tokens: int) -> float:
    """Estimate cost based on known pricing."""
    pricing = MODEL_PRICING.get(model, (1.0, 3.0))
    return (input_tokens * pricing[0] + output_tokens * pricing[1]) / 1_000_000


@dataclass
class ChatResponse:
    """Response from a chat completion."""

    content: str
    model: str
    cost: float
    input_tokens: int
    output_tokens: int
    duration_ms: int


class ChatProvider:
    """OpenAI-compatible chat provider."""

    def __init__(
        self,
        model: str,
        api_key: str,
        base_url: Optional[str] = None,
        max_tokens: int = 1024,
        temperature: float = 0.7,
    ) -> None:
        self.client = AsyncOpenAI(api_key=api_key, base_url=base_url)
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature

    async def chat(
        self,
        messages: list[dict[str, str]],
        model: Optional[str] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ) -> ChatResponse:
        """Send chat completion request."""
        used_model = model or self.model
        start = time.monotonic()

        response = await self.client.chat.completions.create(
            model=used_model,
            messages=messages,
            max_tokens=max_tokens if max_tokens is not None else self.max_tokens,
            temperature=temperature if temperature is not None else self.temperature,
        )

        duration_ms = int((time.monotonic() - start) * 1000)
        choice = response.choices[0]
        usage = response.usage

        input_tokens = usage.prompt_tokens if usage else 0
        output_tokens = usage.completion_tokens if usage else 0

        return ChatResponse(
            content=choice.message.content or "",
            model=response.model or used_model,
            cost=_estimate_cost(used_model, input_tokens, output_tokens),
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            duration_ms=duration_ms,
        )

    async def complete(
        self,
        messages: list[dict[str, str]],
        session_id: Optional[str] = None,
    ) -> str:
        """ChatModel entry point: reply text only."""
        response = await self.chat(messages)
        logger.debug(
            "Chat completion finished",
            session_id=session_id,
            model=response.model,
            input_tokens=response.input_tokens,
            output_tokens=response.output_tokens,
            cost=response.cost,
            duration_ms=response.duration_ms,
        )
        return response.content

    async def classify(
        self,
        prompt: str,
        system: str,
        model: Optional[str] = None,
    ) -> str:
        """Quick classification call with low max_tokens."""
        response = await self.chat(
            messages=[
                {"role": "system", "content": system},
                {"role": "user", "content": prompt},
            ],
            model=model,
            max_tokens=100,
            temperature=0.0,
        )
        return response.content

    async def healthcheck(self) -> bool:
        """Hosted APIs have no cheap ping; configured means usable."""
        return True
