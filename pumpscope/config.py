from pathlib import Path
from typing import Any, Tuple

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


BASE_DIR = Path(__file__).resolve().parents[1]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    def model_post_init(self, __context: Any) -> None:
        """Normalize the AI environment selector."""

        super().model_post_init(__context)
        object.__setattr__(self, "ai_env", (self.ai_env or "prod").strip().lower())

    # Server Settings
    host: str = Field(default="127.0.0.1", description="Server host")
    port: int = Field(default=8000, description="Server port")
    log_level: str = Field(default="INFO", description="Logging level")

    # Metabase (BI tool) backend
    metabase_url: str = Field(default="", description="Metabase base URL")
    metabase_username: str = Field(default="", description="Metabase login")
    metabase_password: str = Field(default="", description="Metabase password")
    metabase_session_ttl_seconds: int = Field(
        default=0,
        ge=0,
        description="Lifetime of a cached Metabase session token (0 = until rejected upstream)",
    )

    # Remote reasoning backend
    ai_env: str = Field(default="prod", description="Which reasoning backend to use: prod or dev")
    ai_endpoint: str = Field(default="", description="Production reasoning backend URL")
    ai_api_key: str = Field(
        default="",
        description="Production reasoning backend API key",
        validation_alias=AliasChoices("ai_api_key", "AI_API_KEY", "AI_BACKEND_API_KEY"),
    )
    ai_project_id: str = Field(default="", description="Default project id for routing")
    ai_dev_endpoint: str = Field(default="", description="Development reasoning backend URL")
    ai_dev_api_key: str = Field(default="", description="Development reasoning backend API key")
    ai_dev_project_id: str = Field(default="", description="Development default project id")

    # Rate Limiting
    request_timeout_seconds: int = Field(default=30, description="Request timeout")

    # Chat
    chat_history_window: int = Field(
        default=5,
        ge=1,
        description="Number of trailing messages forwarded to the reasoning backend",
    )

    @property
    def reasoner_target(self) -> Tuple[str, str, str]:
        """(endpoint, api_key, default project id) for the selected AI environment."""
        if self.ai_env == "dev":
            return self.ai_dev_endpoint, self.ai_dev_api_key, self.ai_dev_project_id
        return self.ai_endpoint, self.ai_api_key, self.ai_project_id


# Global settings instance
settings = Settings()
