"""Application settings using Pydantic BaseSettings."""

import logging
from functools import lru_cache

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
_VALID_AI_STRATEGIES = {"agent", "single_shot"}


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "sqlterm"
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

    @field_validator("ai_strategy")
    @classmethod
    def validate_ai_strategy(cls, v: str) -> str:
        lower = v.lower()
        if lower not in _VALID_AI_STRATEGIES:
            raise ValueError(f"ai_strategy must be one of {_VALID_AI_STRATEGIES}, got '{v}'")
        return lower

    @model_validator(mode="after")
    def validate_timeouts_positive(self) -> "Settings":
        for field_name in ("llm_timeout", "db_command_timeout"):
            value = getattr(self, field_name)
            if value <= 0:
                raise ValueError(f"{field_name} must be positive, got {value}")
        return self

    @model_validator(mode="after")
    def validate_pool_sizes(self) -> "Settings":
        if self.db_pool_min_size < 1:
            raise ValueError(f"db_pool_min_size must be at least 1, got {self.db_pool_min_size}")
        if self.db_pool_max_size < self.db_pool_min_size:
            raise ValueError(
                "db_pool_max_size must be >= db_pool_min_size "
                f"({self.db_pool_max_size} < {self.db_pool_min_size})"
            )
        return self

    @model_validator(mode="after")
    def warn_wildcard_origins(self) -> "Settings":
        if self.allowed_origins == ["*"]:
            logging.getLogger(__name__).warning(
                "allowed_origins is set to ['*'], consider restricting in production"
            )
        return self

    # Database
    database_url: str = ""
    db_pool_min_size: int = 1
    db_pool_max_size: int = 10
    db_command_timeout: float = 30.0

    # Anthropic
    anthropic_api_key: str | None = None

    # AI SQL generation
    ai_model: str = "claude-sonnet-4-5"
    ai_temperature: float = 0.1
    ai_max_tokens: int = 2048
    ai_strategy: str = "agent"
    ai_max_retries: int = 2
    llm_timeout: float = 60.0
    max_history_turns: int = 10

    # Table selection (agent stage A)
    table_selector_model: str = "claude-haiku-4-5"
    table_selector_max_tokens: int = 512

    # Schema introspection
    schema_max_rows: int = 500
    schema_sample_threshold: int = 20
    schema_sample_head: int = 10
    schema_sample_tail: int = 5

    # Authentication
    bcrypt_rounds: int = 10
    min_username_length: int = 3
    min_password_length: int = 6

    # CORS
    allowed_origins: list[str] = ["*"]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
