"""Settings loaded from environment variables and an optional .env file."""

from pathlib import Path
from typing import Any, Literal, Optional

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_SYSTEM_PROMPT = (
    "You are a helpful AI knowledge assistant. You help users organize "
    "information, answer questions, and remember important details. "
    "Be conversational, friendly, and concise. You can remember information "
    "from previous conversations."
)


class Settings(BaseSettings):
    """Runtime settings for the assistant service."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        protected_namespaces=("settings_",),
    )

    # Storage
    database_url: str = "sqlite:///data/assistant.db"
    db_pool_size: int = Field(default=3, ge=1, le=32)

    # Language model
    model_provider: Literal["demo", "openai"] = "demo"
    model_name: str = "gpt-4o-mini"
    openai_api_key: Optional[SecretStr] = None
    openai_base_url: Optional[str] = None
    model_timeout_seconds: float = Field(default=30.0, gt=0)
    model_max_tokens: int = Field(default=1024, ge=1)
    model_temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    system_prompt: str = DEFAULT_SYSTEM_PROMPT

    # Conversation
    context_window_size: int = Field(default=10, ge=0)
    history_default_limit: int = Field(default=20, ge=1)
    note_extractor: Literal["keyword", "model"] = "keyword"

    # Retention
    retention_keep_messages: int = Field(default=100, ge=1)
    retention_interval_seconds: float = Field(default=3600.0, ge=0)

    # Server
    host: str = "127.0.0.1"
    port: int = 8000
    debug: bool = False
    log_json: bool = False
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])

    @field_validator("database_url")
    @classmethod
    def _check_database_url(cls, value: str) -> str:
        if not value.startswith("sqlite:///"):
            raise ValueError("database_url must start with 'sqlite:///'")
        return value

    @property
    def database_path(self) -> Path:
        """Filesystem path of the SQLite database."""
        return Path(self.database_url[len("sqlite:///") :])

    @property
    def openai_api_key_str(self) -> Optional[str]:
        if self.openai_api_key is None:
            return None
        return self.openai_api_key.get_secret_value() or None


def load_settings(**overrides: Any) -> Settings:
    """Build settings, letting keyword overrides win over the environment."""
    return Settings(**overrides)
