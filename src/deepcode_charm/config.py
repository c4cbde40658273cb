"""Configuration management for DeepCode Charm."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

VALID_STATUSES = ("online", "idle", "dnd", "invisible")
# Streaming needs a stream URL and is not offered
VALID_ACTIVITY_TYPES = ("playing", "listening", "watching", "competing")


def _split_ids(value: str | None) -> list[str]:
    if value is None:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_parse_none_str="",
        populate_by_name=True,
    )

    # Discord
    discord_token: SecretStr = Field(description="Discord bot token")
    command_prefix: str = Field(
        default="$", alias="PREFIX", description="Prefix that marks a message as a charm call"
    )
    admin_user_ids_str: str | None = Field(
        default=None,
        alias="ADMIN_USERS",
        description="Discord user IDs with admin rights (comma-separated)",
    )
    allowed_guild_ids_str: str | None = Field(
        default=None,
        alias="ALLOWED_GUILDS",
        description="Guild IDs the bot answers in (comma-separated, empty = all)",
    )
    allow_bot_messages: bool = Field(
        default=False, description="Allow messages from other bots (for E2E testing only)"
    )

    # Presence
    bot_status: str = Field(default="online", description="Presence status")
    bot_activity_name: str = Field(
        default="with magic charms ✨", description="Activity text shown under the bot name"
    )
    bot_activity_type: str = Field(default="playing", description="Activity type")

    # Rate limiting
    rate_limit_max: int = Field(
        default=10, description="Commands allowed per user per window (0 disables)"
    )
    rate_limit_window: int = Field(default=60, description="Rate limit window in seconds")
    cleanup_interval_seconds: int = Field(
        default=3600, description="Seconds between rate limit / security state cleanups"
    )

    # Application
    environment: str = Field(default="production", description="Environment name")
    log_level: str = Field(default="INFO", description="Logging level")

    # Logging Configuration
    log_to_file: bool = Field(default=False, description="Enable file-based logging")
    log_directory: str = Field(default="logs", description="Directory for log files")
    log_file_max_bytes: int = Field(
        default=10485760,  # 10MB
        description="Max size per log file before rotation",
    )
    log_file_backup_count: int = Field(
        default=5, description="Number of rotated log files to keep"
    )
    log_file_prefix: str = Field(default="deepcode_charm", description="Prefix for log file names")

    @property
    def admin_user_ids(self) -> list[str]:
        """Parse and return admin user IDs as a list."""
        return _split_ids(self.admin_user_ids_str)

    @property
    def allowed_guild_ids(self) -> list[str]:
        """Parse and return allowed guild IDs as a list."""
        return _split_ids(self.allowed_guild_ids_str)

    @property
    def log_file_path(self) -> str:
        """Get the full log file path."""
        return f"{self.log_directory}/{self.log_file_prefix}.log"

    @property
    def security_log_file_path(self) -> str:
        """Path of the file that receives only security events."""
        return f"{self.log_directory}/{self.log_file_prefix}_security.log"

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment.lower() == "development"

    @field_validator("command_prefix")
    @classmethod
    def validate_prefix(cls, v: str) -> str:
        """Validate the prefix is non-empty and has no whitespace."""
        if not v or any(c.isspace() for c in v):
            raise ValueError(f"command_prefix must be non-empty without whitespace, got: {v!r}")
        return v

    @field_validator("bot_status")
    @classmethod
    def validate_status(cls, v: str) -> str:
        """Validate presence status."""
        v = v.lower()
        if v not in VALID_STATUSES:
            raise ValueError(f"bot_status must be one of {list(VALID_STATUSES)}, got: {v}")
        return v

    @field_validator("bot_activity_type")
    @classmethod
    def validate_activity_type(cls, v: str) -> str:
        """Validate activity type."""
        v = v.lower()
        if v not in VALID_ACTIVITY_TYPES:
            raise ValueError(
                f"bot_activity_type must be one of {list(VALID_ACTIVITY_TYPES)}, got: {v}"
            )
        return v

    @field_validator("rate_limit_max", "rate_limit_window", "cleanup_interval_seconds")
    @classmethod
    def validate_non_negative(cls, v: int) -> int:
        """Validate limits are not negative."""
        if v < 0:
            raise ValueError(f"Value must be >= 0, got: {v}")
        return v


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()  # type: ignore[call-arg]  # Pydantic loads from env vars
