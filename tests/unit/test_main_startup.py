"""Unit tests for main.py startup wiring.

Verifies that the entry point registers the built-in charms, wires the
dispatcher from settings and always closes the bot.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from pydantic import SecretStr


def make_settings(**overrides):
    """Settings double with the fields main() reads."""
    settings = MagicMock()
    settings.environment = "test"
    settings.command_prefix = "!"
    settings.admin_user_ids = ["1"]
    settings.allowed_guild_ids = []
    settings.rate_limit_max = 5
    settings.rate_limit_window = 30
    settings.cleanup_interval_seconds = 600
    settings.discord_token = SecretStr("fake-token")
    for key, value in overrides.items():
        setattr(settings, key, value)
    return settings


class TestMainStartup:
    """Tests for main() startup wiring."""

    @pytest.mark.asyncio
    @patch("deepcode_charm.main.CharmBot")
    @patch("deepcode_charm.main.get_settings")
    @patch("deepcode_charm.main.setup_logging")
    @patch("deepcode_charm.main.get_logger")
    async def test_wires_dispatcher_and_starts_bot(
        self,
        mock_get_logger,
        mock_setup_logging,
        mock_get_settings,
        mock_bot_cls,
    ) -> None:
        """The bot should get a dispatcher built from settings and be started."""
        from deepcode_charm.main import main

        mock_get_settings.return_value = make_settings()
        mock_get_logger.return_value = MagicMock()
        bot = MagicMock()
        bot.start = AsyncMock()
        bot.close = AsyncMock()
        mock_bot_cls.return_value = bot

        await main()

        mock_setup_logging.assert_called_once()
        dispatcher = mock_bot_cls.call_args.args[0]
        assert dispatcher.prefix == "!"
        assert dispatcher.is_admin("1") is True
        assert dispatcher.registry.list_names() == ["help", "ping", "say", "embed"]
        scheduler = mock_bot_cls.call_args.kwargs["cleanup_scheduler"]
        assert scheduler is not None
        bot.start.assert_awaited_once_with("fake-token")
        bot.close.assert_awaited_once()

    @pytest.mark.asyncio
    @patch("deepcode_charm.main.CharmBot")
    @patch("deepcode_charm.main.get_settings")
    @patch("deepcode_charm.main.setup_logging")
    @patch("deepcode_charm.main.get_logger")
    async def test_closes_bot_on_failure(
        self,
        mock_get_logger,
        mock_setup_logging,
        mock_get_settings,
        mock_bot_cls,
    ) -> None:
        """The bot should be closed even when start fails."""
        from deepcode_charm.main import main

        mock_get_settings.return_value = make_settings()
        mock_get_logger.return_value = MagicMock()
        bot = MagicMock()
        bot.start = AsyncMock(side_effect=RuntimeError("login failed"))
        bot.close = AsyncMock()
        mock_bot_cls.return_value = bot

        with pytest.raises(RuntimeError, match="login failed"):
            await main()

        bot.close.assert_awaited_once()

    @pytest.mark.asyncio
    @patch("deepcode_charm.main.CharmBot")
    @patch("deepcode_charm.main.get_settings")
    @patch("deepcode_charm.main.setup_logging")
    @patch("deepcode_charm.main.get_logger")
    async def test_warns_about_risky_settings(
        self,
        mock_get_logger,
        mock_setup_logging,
        mock_get_settings,
        mock_bot_cls,
    ) -> None:
        """Missing admins and a disabled quota should be logged as warnings."""
        from deepcode_charm.main import main

        mock_get_settings.return_value = make_settings(admin_user_ids=[], rate_limit_max=0)
        log = MagicMock()
        mock_get_logger.return_value = log
        bot = MagicMock()
        bot.start = AsyncMock()
        bot.close = AsyncMock()
        mock_bot_cls.return_value = bot

        await main()

        warnings = [c.args[0] for c in log.warning.call_args_list]
        assert "no_admin_users_configured" in warnings
        assert "global_rate_limit_disabled" in warnings
