"""Application settings using Pydantic BaseSettings."""

import logging
from functools import lru_cache

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "StatGraph Query Service"
    app_version: str = "0.1.0"
    debug: bool = False
    log_level: str = "INFO"

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        upper = v.upper()
        if upper not in _VALID_LOG_LEVELS:
            raise ValueError(f"log_level must be one of {_VALID_LOG_LEVELS}, got '{v}'")
        return upper

    @model_validator(mode="after")
    def validate_timeouts_positive(self) -> "Settings":
        for field_name in (
            "llm_timeout",
            "neo4j_timeout",
            "job_timeout",
            "callback_timeout",
            "notification_timeout",
            "chat_query_timeout",
        ):
            value = getattr(self, field_name)
            if value <= 0:
                raise ValueError(f"{field_name} must be positive, got {value}")
        return self

    @model_validator(mode="after")
    def validate_retry_bounds(self) -> "Settings":
        if self.worker_concurrency < 1:
            raise ValueError(f"worker_concurrency must be at least 1, got {self.worker_concurrency}")
        for field_name in ("callback_max_attempts", "notification_max_attempts"):
            value = getattr(self, field_name)
            if value < 1:
                raise ValueError(f"{field_name} must be at least 1, got {value}")
        return self

    @model_validator(mode="after")
    def warn_wildcard_origins(self) -> "Settings":
        if self.allowed_origins == ["*"]:
            logging.getLogger(__name__).warning(
                "allowed_origins is set to ['*'], consider restricting in production"
            )
        return self

    # LLM oracle (any OpenAI-compatible chat completions endpoint)
    llm_api_key: str = ""
    llm_base_url: str | None = None
    llm_model: str = "gpt-4o-mini"
    llm_timeout: float = 60.0
    llm_max_tokens: int = 2048

    # Stage temperatures
    clarify_temperature: float = 0.7
    statform_temperature: float = 0.3
    section_temperature: float = 0.3
    view_cells_temperature: float = 0.3

    # Graph store
    neo4j_uri: str = "bolt://localhost:7687"
    neo4j_username: str = "neo4j"
    neo4j_password: str = ""
    neo4j_timeout: float = 30.0
    schema_sample_rows: int = 5

    # Catalog cache
    catalog_cache_max_size: int = 200
    catalog_cache_ttl: int = 600

    # Job queue
    queue_database_url: str = "sqlite+aiosqlite:///./statgraph_queue.db"
    worker_concurrency: int = 2
    job_timeout: float = 300.0
    queue_poll_interval: float = 1.0
    queue_sweep_interval: float = 15.0

    # Callback delivery
    callback_api_key: str = ""
    callback_max_attempts: int = 3
    callback_retry_delay: float = 2.0
    callback_timeout: float = 10.0

    # Notification fanout
    notification_max_attempts: int = 3
    notification_backoff: float = 2.0
    notification_timeout: float = 10.0
    notification_poll_interval: float = 1.0
    chat_query_timeout: float = 60.0
    dashboard_base_url: str = "http://localhost:3000"
    telegram_bot_token: str = ""
    telegram_api_url: str = "https://api.telegram.org"

    # Diagnostics
    llm_session_logs: bool = False
    llm_session_logs_dir: str | None = None

    # CORS
    allowed_origins: list[str] = ["*"]

    @property
    def sweep_grace_seconds(self) -> float:
        """Time a live worker may still spend delivering its callback after the deadline."""
        per_attempt = self.callback_timeout + self.callback_retry_delay
        return self.callback_max_attempts * per_attempt + self.queue_sweep_interval


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
