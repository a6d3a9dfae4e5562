"""Chat model factory.

Creates the ChatModel selected by application settings.
"""

from typing import Any

from .chat_provider import ChatProvider
from .demo_model import DemoChatModel
from .interface import ChatModel


def create_chat_model(settings: Any, state_store: Any = None) -> ChatModel:
    """Create a chat model based on settings.

    Args:
        settings: Application settings with a `model_provider` attribute.
            Supported values: "demo", "openai".
        state_store: SessionStateStore handed to the demo model so it can
            report message counts.

    Returns:
        A ChatModel implementation.

    Raises:
        ValueError: If the provider name is unknown or the openai provider
            has no API key.
    """
    provider_name = getattr(settings, "model_provider", "demo")

    if provider_name == "demo":
        return DemoChatModel(state_store=state_store)

    if provider_name == "openai":
        api_key = settings.openai_api_key_str
        if not api_key:
            raise ValueError("model_provider 'openai' requires OPENAI_API_KEY")
        return ChatProvider(
            model=settings.model_name,
            api_key=api_key,
            base_url=settings.openai_base_url,
            max_tokens=settings.model_max_tokens,
            temperature=settings.model_temperature,
        )

    raise ValueError(
        f"Unknown model provider: '{provider_name}'. "
        f"Supported providers: 'demo', 'openai'"
    )


def create_classifier(settings: Any) -> ChatProvider:
    """Create the provider used for model-assisted note extraction."""
    api_key = settings.openai_api_key_str
    if not api_key:
        raise ValueError("note_extractor 'model' requires OPENAI_API_KEY")
    return ChatProvider(
        model=settings.model_name,
        api_key=api_key,
        base_url=settings.openai_base_url,
    )
