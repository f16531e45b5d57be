"""Configuration management for Askflow."""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_prefix="ASKFLOW_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Storage
    home: Path | None = Field(default=None, description="Directory holding persisted chats; in-memory when unset")
    user_id: str = Field(default="", description="Owner recorded on stored chats")

    # Orchestration
    max_context: int = Field(default=10, ge=1, le=10, description="Most recent turns sent to reasoning collaborators")
    answer_delay_seconds: float = Field(default=0.5, ge=0, description="Pause before the answer turn is recorded")
    max_attempts: int = Field(default=5, ge=0, description="Executor attempts per submission, 0 means unbounded")
    use_tools_only: bool = Field(default=False, description="Ask the executor to only call tools")
    presentable_tools: list[str] = Field(default_factory=lambda: ["retrieve"])

    # Logging
    log_level: str = Field(default="INFO", description="Log level")
    log_profile: Literal["default", "chat"] = Field(default="default", description="Log output profile")

    def chat_root(self) -> Path | None:
        if self.home is None:
            return None
        return self.home.expanduser() / "chats"

    def pending_root(self) -> Path | None:
        if self.home is None:
            return None
        return self.home.expanduser() / "pending"


def get_settings(home: Path | None = None) -> Settings:
    """Get application settings.

    Args:
        home: Optional storage directory override

    Returns:
        Settings instance
    """
    if home is not None:
        return Settings(home=home)
    return Settings()
