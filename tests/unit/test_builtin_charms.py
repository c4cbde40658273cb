"""Unit tests for the charms that ship with the bot."""

from unittest.mock import AsyncMock, MagicMock

import discord
import pytest

from deepcode_charm.charms.builtin import BUILTIN_CHARMS, register_builtin_charms
from deepcode_charm.charms.builtin.embed import DEFAULT_COLOR, USAGE_HINT, embed, parse_color
from deepcode_charm.charms.builtin.help_charm import help_charm
from deepcode_charm.charms.builtin.ping import ping
from deepcode_charm.charms.builtin.say import MAX_SAY_LENGTH, say
from deepcode_charm.charms.models import (
    CallerInfo,
    CharmCategory,
    CharmMetadata,
    ExecutionContext,
    GuildInfo,
)
from deepcode_charm.charms.registry import CharmRegistry
from deepcode_charm.discord.security.validator import SecurityValidator


async def purge(ctx):
    await ctx.respond("purged")


@pytest.fixture
def registry():
    """Registry holding the built-ins plus one admin-only charm."""
    registry = CharmRegistry(SecurityValidator())
    register_builtin_charms(registry)
    registry.register(
        purge,
        CharmMetadata(
            name="purge",
            description="Delete recent messages",
            usage="$purge count",
            admin_only=True,
            category=CharmCategory.MODERATION,
        ),
    )
    return registry


@pytest.fixture
def make_ctx(registry, respond):
    """Factory for execution contexts."""

    def factory(args="", is_admin=False):
        return ExecutionContext(
            args=args,
            caller=CallerInfo(id="42", display_name="tester", is_admin=is_admin),
            guild=GuildInfo(id="555", name="Test Guild"),
            registry=registry.query(),
            respond=respond,
        )

    return factory


def sent_embed(respond):
    """Return the embed passed to the last respond call."""
    card = respond.await_args.kwargs["embed"]
    assert isinstance(card, discord.Embed)
    return card


class TestRegistration:
    """Tests for registering the built-ins."""

    def test_builtins_pass_integrity_check(self):
        """Test every built-in registers without an integrity error."""
        registry = CharmRegistry(SecurityValidator())
        register_builtin_charms(registry)
        assert registry.charm_count == len(BUILTIN_CHARMS) == 4
        assert registry.list_names() == ["help", "ping", "say", "embed"]

    def test_metadata(self, registry):
        """Test built-in cooldowns and categories."""
        assert registry.get("ping").metadata.cooldown_seconds == 5
        assert registry.get("say").metadata.cooldown_seconds == 2
        assert registry.get("embed").metadata.cooldown_seconds == 3
        assert registry.get("help").metadata.category == CharmCategory.INFORMATION
        assert not any(registry.get(n).metadata.admin_only for n in ("help", "ping", "say"))


class TestPing:
    """Tests for ping."""

    @pytest.mark.asyncio
    async def test_edits_sent_message(self, make_ctx, respond):
        """Test the latency is written into the sent message."""
        sent = MagicMock()
        sent.edit = AsyncMock()
        respond.return_value = sent

        await ping(make_ctx())

        respond.assert_awaited_once_with("🏓 Pong!")
        sent.edit.assert_awaited_once()
        assert "Round trip" in sent.edit.await_args.kwargs["content"]

    @pytest.mark.asyncio
    async def test_without_sent_message(self, make_ctx, respond):
        """Test nothing is edited when respond returns no message."""
        await ping(make_ctx())
        respond.assert_awaited_once_with("🏓 Pong!")


class TestSay:
    """Tests for say."""

    @pytest.mark.asyncio
    async def test_echo(self, make_ctx, respond):
        """Test the arguments are posted back."""
        await say(make_ctx("hello world"))
        respond.assert_awaited_once_with("hello world")

    @pytest.mark.asyncio
    async def test_empty(self, make_ctx, respond):
        """Test empty args get a usage hint."""
        await say(make_ctx(""))
        assert "Usage" in respond.await_args.args[0]

    @pytest.mark.asyncio
    async def test_too_long(self, make_ctx, respond):
        """Test overly long text is refused."""
        await say(make_ctx("x" * (MAX_SAY_LENGTH + 1)))
        assert "too long" in respond.await_args.args[0]


class TestParseColor:
    """Tests for parse_color."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("red", 0xFF0000),
            ("Blue", 0x0000FF),
            ("#ff8800", 0xFF8800),
            ("ff8800", 0xFF8800),
            ("#f80", 0xFF8800),
            ("black", 0x000000),
            ("#000000", 0x000000),
        ],
    )
    def test_valid(self, value, expected):
        """Test names and hex codes."""
        assert parse_color(value) == expected

    @pytest.mark.parametrize("value", ["", "notacolor", "#12345", "#gggggg"])
    def test_invalid(self, value):
        """Test unknown values return None."""
        assert parse_color(value) is None


class TestEmbed:
    """Tests for embed."""

    @pytest.mark.asyncio
    async def test_builds_embed(self, make_ctx, respond):
        """Test title, description, color and footer."""
        await embed(make_ctx("My title|Some description|red"))

        card = sent_embed(respond)
        assert card.title == "My title"
        assert card.description == "Some description"
        assert card.color.value == 0xFF0000
        assert card.footer.text == "Requested by tester"
        assert card.timestamp is not None

    @pytest.mark.asyncio
    async def test_black_is_kept(self, make_ctx, respond):
        """Test a zero color value is not replaced by the default."""
        await embed(make_ctx("t|d|#000000"))
        assert sent_embed(respond).color.value == 0

    @pytest.mark.asyncio
    async def test_default_color(self, make_ctx, respond):
        """Test missing or unknown colors fall back to the default."""
        await embed(make_ctx("t|d"))
        assert sent_embed(respond).color.value == DEFAULT_COLOR

        await embed(make_ctx("t|d|notacolor"))
        assert sent_embed(respond).color.value == DEFAULT_COLOR

    @pytest.mark.asyncio
    async def test_empty_args(self, make_ctx, respond):
        """Test empty args get the usage hint."""
        await embed(make_ctx(""))
        respond.assert_awaited_once_with(USAGE_HINT)

    @pytest.mark.asyncio
    async def test_single_part(self, make_ctx, respond):
        """Test a title without a description is refused."""
        await embed(make_ctx("only a title"))
        assert "Invalid format" in respond.await_args.args[0]

    @pytest.mark.asyncio
    async def test_title_too_long(self, make_ctx, respond):
        """Test titles over 256 characters are refused."""
        await embed(make_ctx("t" * 257 + "|d"))
        assert "Title too long" in respond.await_args.args[0]


class TestHelp:
    """Tests for help."""

    @pytest.mark.asyncio
    async def test_overview(self, make_ctx, respond):
        """Test charms are grouped by category with admin-only names struck through."""
        await help_charm(make_ctx())

        card = sent_embed(respond)
        fields = {field.name: field.value for field in card.fields}
        assert "**5**" in card.description
        assert fields["🛠️ Utility"] == "`ping`, `say`, `embed`"
        assert fields["📋 Information"] == "`help`"
        assert fields["🛡️ Moderation"] == "`~~purge~~`"
        assert "🎮 Fun" not in fields
        assert "💡 Tip" in fields

    @pytest.mark.asyncio
    async def test_overview_for_admin(self, make_ctx, respond):
        """Test admins see admin-only names plainly."""
        await help_charm(make_ctx(is_admin=True))
        fields = {field.name: field.value for field in sent_embed(respond).fields}
        assert fields["🛡️ Moderation"] == "`purge`"

    @pytest.mark.asyncio
    async def test_detail(self, make_ctx, respond):
        """Test help for a single charm."""
        await help_charm(make_ctx("PURGE"))

        card = sent_embed(respond)
        fields = {field.name: field.value for field in card.fields}
        assert card.title == "🔮 Charm: purge"
        assert fields["📖 Usage"] == "`$purge count`"
        assert fields["📂 Category"] == "moderation"
        assert fields["🛡️ Permission"] == "Admins only"

    @pytest.mark.asyncio
    async def test_unknown_charm(self, make_ctx, respond):
        """Test help for a missing charm says so."""
        await help_charm(make_ctx("nothing"))
        respond.assert_awaited_once_with("❌ Charm `nothing` not found.")

    @pytest.mark.asyncio
    async def test_empty_registry(self, respond):
        """Test an empty registry gets a plain message."""
        ctx = ExecutionContext(
            args="",
            caller=CallerInfo(id="42", display_name="tester"),
            guild=None,
            registry=CharmRegistry(SecurityValidator()).query(),
            respond=respond,
        )
        await help_charm(ctx)
        respond.assert_awaited_once_with("❌ No charms are registered right now.")
