"""Tests for configuration management."""

import discord
import pytest
from pydantic import SecretStr, ValidationError


def create_test_settings(**kwargs):
    """Helper to create Settings instance without loading .env file."""
    from deepcode_charm.config import Settings

    # Disable .env file loading for tests
    return Settings(_env_file=None, **kwargs)


class TestSettingsInitialization:
    """Tests for Settings initialization from environment variables."""

    def test_settings_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test defaults with only the token set."""
        monkeypatch.setenv("DISCORD_TOKEN", "test-discord-token")

        settings = create_test_settings()
        assert settings.discord_token.get_secret_value() == "test-discord-token"
        assert settings.command_prefix == "$"
        assert settings.admin_user_ids == []
        assert settings.allowed_guild_ids == []
        assert settings.allow_bot_messages is False
        assert settings.bot_status == "online"
        assert settings.bot_activity_type == "playing"
        assert settings.rate_limit_max == 10
        assert settings.rate_limit_window == 60
        assert settings.cleanup_interval_seconds == 3600
        assert settings.log_level == "INFO"

    def test_settings_from_env_complete(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test Settings initialization with all environment variables."""
        monkeypatch.setenv("DISCORD_TOKEN", "discord-token-123")
        monkeypatch.setenv("PREFIX", "!")
        monkeypatch.setenv("ADMIN_USERS", "111, 222,333")
        monkeypatch.setenv("ALLOWED_GUILDS", "555")
        monkeypatch.setenv("BOT_STATUS", "DND")
        monkeypatch.setenv("BOT_ACTIVITY_TYPE", "Watching")
        monkeypatch.setenv("BOT_ACTIVITY_NAME", "the charms")
        monkeypatch.setenv("RATE_LIMIT_MAX", "0")
        monkeypatch.setenv("RATE_LIMIT_WINDOW", "30")
        monkeypatch.setenv("ENVIRONMENT", "development")

        settings = create_test_settings()
        assert settings.command_prefix == "!"
        assert settings.admin_user_ids == ["111", "222", "333"]
        assert settings.allowed_guild_ids == ["555"]
        assert settings.bot_status == "dnd"
        assert settings.bot_activity_type == "watching"
        assert settings.bot_activity_name == "the charms"
        assert settings.rate_limit_max == 0
        assert settings.rate_limit_window == 30
        assert settings.is_development is True

    def test_settings_missing_token(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that Settings raises ValidationError without a token."""
        monkeypatch.delenv("DISCORD_TOKEN", raising=False)

        with pytest.raises(ValidationError) as exc_info:
            create_test_settings()

        error_fields = {error["loc"][0] for error in exc_info.value.errors()}
        assert "discord_token" in error_fields

    def test_token_is_secret(self) -> None:
        """Test the token is not shown in repr."""
        settings = create_test_settings(discord_token="very-secret")
        assert isinstance(settings.discord_token, SecretStr)
        assert "very-secret" not in repr(settings)


class TestIdLists:
    """Tests for comma-separated ID parsing."""

    def test_empty_entries_are_dropped(self) -> None:
        """Test stray commas and blanks are ignored."""
        settings = create_test_settings(discord_token="t", admin_user_ids_str=" 1,, 2 ,")
        assert settings.admin_user_ids == ["1", "2"]

    def test_empty_string_is_no_ids(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test an empty variable means no restriction."""
        monkeypatch.setenv("ALLOWED_GUILDS", "")
        settings = create_test_settings(discord_token="t")
        assert settings.allowed_guild_ids == []


class TestSettingsValidation:
    """Tests for field validators."""

    @pytest.mark.parametrize("prefix", ["", "! ", "a b"])
    def test_invalid_prefix(self, prefix: str) -> None:
        """Test empty prefixes and prefixes with whitespace are rejected."""
        with pytest.raises(ValidationError):
            create_test_settings(discord_token="t", command_prefix=prefix)

    def test_invalid_status(self) -> None:
        """Test unknown presence statuses are rejected."""
        with pytest.raises(ValidationError):
            create_test_settings(discord_token="t", bot_status="busy")

    def test_invalid_activity_type(self) -> None:
        """Test unknown activity types are rejected."""
        with pytest.raises(ValidationError):
            create_test_settings(discord_token="t", bot_activity_type="dancing")

    def test_streaming_activity_rejected(self) -> None:
        """Test streaming is refused since no stream URL is configured."""
        with pytest.raises(ValidationError):
            create_test_settings(discord_token="t", bot_activity_type="streaming")

    @pytest.mark.parametrize("activity", ["playing", "listening", "watching", "competing"])
    def test_supported_activity_types(self, activity: str) -> None:
        """Test every accepted activity type maps to a discord ActivityType."""
        settings = create_test_settings(discord_token="t", bot_activity_type=activity)
        assert discord.ActivityType[settings.bot_activity_type].name == activity

    def test_negative_limits(self) -> None:
        """Test negative limits are rejected."""
        with pytest.raises(ValidationError):
            create_test_settings(discord_token="t", rate_limit_max=-1)
        with pytest.raises(ValidationError):
            create_test_settings(discord_token="t", cleanup_interval_seconds=-5)


class TestGetSettings:
    """Tests for the cached accessor."""

    def test_cached(self) -> None:
        """Test get_settings returns the same instance until cleared."""
        from deepcode_charm.config import get_settings

        first = get_settings()
        assert get_settings() is first
        get_settings.cache_clear()
        assert get_settings() is not first
