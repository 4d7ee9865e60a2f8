"""Application configuration using Pydantic Settings."""

import logging
import warnings
from pathlib import Path
from typing import Annotated, Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", env_prefix="VOICENOTES_"
    )

    # App
    app_name: str = "Voice Notes"
    debug: bool = True

    # Security (shared secret sent as X-API-Key)
    api_secret_key: str | None = None

    # Storage
    data_dir: Path = Path("data")
    database_url: str | None = None

    # Transcription
    transcription_backend: Literal["remote", "local"] = "remote"
    openai_api_key: str | None = None
    openai_base_url: str = "https://api.openai.com/v1"
    transcription_model: str = "whisper-1"
    whisper_command: str = "whisper"
    whisper_model: str = "base"
    language_hint: str = "auto"
    transcription_timeout: float = 600.0

    # AI enrichment (OpenAI-compatible chat API, falls back to the OpenAI settings)
    enable_ai_processing: bool = False
    llm_base_url: str | None = None
    llm_api_key: str | None = None
    llm_model: str = "gpt-4-turbo-preview"
    llm_title_model: str = "gpt-3.5-turbo"
    enrichment_timeout: float = 120.0

    # Notification sink (e.g. an n8n webhook)
    notification_webhook_url: str | None = None
    notification_timeout: float = 10.0

    # Background processing
    worker_count: int = 2
    queue_size: int = 100
    max_upload_bytes: int = 50 * 1024 * 1024

    # Periodic digest
    digest_schedule_enabled: bool = False
    digest_hour: int = 20

    # Telegram bot
    telegram_bot_token: str | None = None
    telegram_allowed_users: Annotated[list[str], NoDecode] = []

    # CORS
    cors_origins: list[str] = ["*"]

    # Logging
    log_level: str = "INFO"
    log_file: Path | None = None

    def __init__(self, **kwargs):
        """Initialize settings and validate production configuration."""
        super().__init__(**kwargs)
        self._validate_production_settings()

    @field_validator("telegram_allowed_users", mode="before")
    @classmethod
    def _split_user_ids(cls, value):
        """Accept a comma separated string as well as a JSON list."""
        if isinstance(value, str):
            return [part.strip() for part in value.split(",") if part.strip()]
        return value

    @property
    def audio_dir(self) -> Path:
        """Directory holding the stored audio blobs."""
        return self.data_dir / "voice-notes"

    @property
    def resolved_database_url(self) -> str:
        """Database URL, defaulting to a SQLite file inside the data dir."""
        return self.database_url or f"sqlite:///{self.data_dir / 'voicenotes.db'}"

    @property
    def resolved_llm_base_url(self) -> str:
        return (self.llm_base_url or self.openai_base_url).rstrip("/")

    @property
    def resolved_llm_api_key(self) -> str | None:
        return self.llm_api_key or self.openai_api_key

    def _validate_production_settings(self) -> None:
        """Validate and warn about insecure production settings."""
        if not self.debug:
            # Production mode - check for insecure settings
            if not self.api_secret_key:
                warnings.warn(
                    "API_SECRET_KEY is not set. Every API request will be rejected!",
                    UserWarning,
                    stacklevel=2,
                )
                logger.warning(
                    "API_SECRET_KEY is not set. Every API request will be rejected!"
                )

            if "*" in self.cors_origins:
                warnings.warn(
                    "CORS is configured to allow all origins (*). Restrict this in production!",
                    UserWarning,
                    stacklevel=2,
                )
                logger.warning(
                    "CORS is configured to allow all origins (*). Restrict this in production!"
                )


settings = Settings()
