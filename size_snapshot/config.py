"""Runtime configuration management."""

import os
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class Settings(BaseSettings):
    """Tool settings loaded from ``SIZE_SNAPSHOT_*`` environment variables."""

    # Environment
    environment: Literal["development", "production", "testing"] = "production"

    # Logging
    log_level: str = "INFO"
    log_format: Literal["text", "json"] = "text"

    # Measurement
    max_concurrency: int = Field(default=4, ge=1)
    minifier: Literal["builtin", "terser"] = "builtin"
    terser_command: str = "npx terser"

    model_config = SettingsConfigDict(
        env_prefix="SIZE_SNAPSHOT_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"

    @property
    def is_testing(self) -> bool:
        """Check if running in testing environment."""
        pytest_flag = bool(os.getenv("PYTEST_CURRENT_TEST"))
        return self.environment == "testing" or pytest_flag

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"Unknown log level: {v}")
        return level


# Global settings instance
settings = Settings()
