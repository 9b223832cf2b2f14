"""Environment-bound configuration objects.

This module provides Pydantic BaseSettings-based configuration loading from .env files.
All settings classes automatically load from environment variables with support for
multiple alias names (e.g., TEAM_MAX_ITERATIONS and MAX_ITERATIONS both work).

Example:
    from teamgraph.config.settings import get_settings

    settings = get_settings()  # Cached singleton
    max_iterations = settings.team.max_iterations
    model_id = settings.models.model_id
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv
from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


load_dotenv()


class TeamSettings(BaseSettings):
    """Decision-loop governance.

    Controls how long a team may keep deciding and how model calls are retried:
    - max_iterations: Decision cycles allowed per task (1-500, default: 8)
    - max_retries: Attempts per supervisor model call (default: 3)
    - retry_delay_ms: Base delay for linear backoff between attempts
    - finish_marker: Sentinel token ending the run (default derived from team name)
    - history_window: Recent steps shown to the supervisor (0 = all)
    """

    max_iterations: int = Field(
        default=8,
        ge=1,
        le=500,
        validation_alias=AliasChoices("TEAM_MAX_ITERATIONS", "MAX_ITERATIONS"),
    )
    max_retries: int = Field(
        default=3,
        ge=1,
        validation_alias=AliasChoices("TEAM_MAX_RETRIES", "MAX_RETRIES"),
    )
    retry_delay_ms: int = Field(
        default=1000,
        ge=0,
        validation_alias=AliasChoices("TEAM_RETRY_DELAY_MS", "RETRY_DELAY_MS"),
    )
    finish_marker: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("TEAM_FINISH_MARKER", "FINISH_MARKER"),
    )
    history_window: int = Field(
        default=5,
        ge=0,
        validation_alias=AliasChoices("TEAM_HISTORY_WINDOW"),
    )
    loop_min_cycle: int = Field(default=2, ge=2, validation_alias=AliasChoices("TEAM_LOOP_MIN_CYCLE"))
    loop_min_repeats: int = Field(default=2, ge=2, validation_alias=AliasChoices("TEAM_LOOP_MIN_REPEATS"))
    step_limit_factor: int = Field(default=4, ge=1, validation_alias=AliasChoices("TEAM_STEP_LIMIT_FACTOR"))

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


class ModelSettings(BaseSettings):
    """Vendor-neutral supervisor model identifier and credentials."""

    model_id: str = Field(
        default="chat-mid",
        validation_alias=AliasChoices("MODEL_ID", "MODEL_CHAT", "MODEL_CHAT_ID"),
    )
    api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("MODEL_API_KEY", "MODEL_CHAT_API_KEY", "OPENAI_API_KEY"),
    )
    base_url: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("MODEL_BASE_URL", "MODEL_CHAT_BASE_URL"),
    )
    temperature: float = Field(default=0.2, ge=0.0, le=2.0, validation_alias=AliasChoices("MODEL_TEMPERATURE"))
    timeout: float = Field(default=60.0, gt=0, validation_alias=AliasChoices("MODEL_TIMEOUT"))

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        protected_namespaces=(),
    )


class ObservabilitySettings(BaseSettings):
    """Logging and persistence configuration.

    - LOG_LEVEL: console/file level for the teamgraph logger
    - LOG_DIR: directory for log files (empty string disables the file handler)
    - LOG_PROMPT_MAX_LENGTH: truncation for logged prompts
    - SESSION_DB_PATH: SQLite file for StoredSession (None disables persistence)
    """

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_dir: str = Field(default="logs", alias="LOG_DIR")
    log_prompt_max_length: int = Field(default=500, ge=100, le=5000, alias="LOG_PROMPT_MAX_LENGTH")
    session_db_path: Optional[str] = Field(default=None, alias="SESSION_DB_PATH")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


class Settings(BaseSettings):
    """Root application settings loaded from .env file.

    Hierarchical structure containing three nested settings groups:
    - team: Decision loop governance (TeamSettings)
    - models: Supervisor model credentials (ModelSettings)
    - observability: Logging and persistence (ObservabilitySettings)

    Use get_settings() to obtain a cached singleton instance.
    """

    environment: str = Field(default="dev", alias="APP_ENV")
    team: TeamSettings = Field(default_factory=TeamSettings)
    models: ModelSettings = Field(default_factory=ModelSettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        validate_assignment=True,
        case_sensitive=False,
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached singleton Settings instance.

    Returns:
        Settings: Cached application settings instance
    """
    return Settings()
