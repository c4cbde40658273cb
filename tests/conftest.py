"""Pytest fixtures for DeepCode Charm tests."""

import os
from unittest.mock import AsyncMock, MagicMock

import discord
import pytest


@pytest.fixture(scope="session", autouse=True)
def setup_test_environment():
    """Set up test environment variables before any imports.

    This fixture runs automatically before any tests and ensures that
    Settings can be imported without validation errors.
    """
    os.environ.setdefault("DISCORD_TOKEN", "test-discord-token-placeholder")

    # Clear the settings cache to ensure tests start fresh
    from deepcode_charm.config import get_settings

    get_settings.cache_clear()

    yield

    get_settings.cache_clear()


@pytest.fixture(autouse=True)
def clear_settings_cache():
    """Clear settings cache before each test."""
    from deepcode_charm.config import get_settings

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class FakeClock:
    """Manually advanced time source."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    """Controllable clock for rate limiter and validator tests."""
    return FakeClock()


@pytest.fixture
def respond():
    """Responder that records what a charm sent."""
    return AsyncMock(return_value=None)


@pytest.fixture
def mock_discord_message():
    """Mock Discord message in a guild text channel."""
    message = MagicMock(spec=discord.Message)
    message.author = MagicMock(spec=discord.User)
    message.author.id = 123456789
    message.author.bot = False
    message.author.display_name = "tester"
    message.guild = MagicMock(spec=discord.Guild)
    message.guild.id = 555
    message.guild.name = "Test Guild"
    message.channel = MagicMock(spec=discord.TextChannel)
    message.channel.id = 987654321
    message.channel.send = AsyncMock()
    message.reply = AsyncMock()
    message.mentions = []
    message.content = "$ping"
    return message
