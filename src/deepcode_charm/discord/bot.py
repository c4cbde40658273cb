"""Discord bot implementation."""

import contextlib
import time
from typing import Any
from uuid import uuid4

import discord
import structlog

from deepcode_charm.charms.dispatcher import CharmDispatcher, DispatchOutcome
from deepcode_charm.charms.models import IncomingMessage, Responder
from deepcode_charm.config import get_settings
from deepcode_charm.discord.security.models import RateLimitStats, UserRateInfo
from deepcode_charm.logging import get_logger
from deepcode_charm.scheduler.cleanup import CleanupScheduler

log = get_logger("deepcode_charm.discord.bot")

MENTION_COLOR = 0x7289DA
INTERNAL_ERROR_MESSAGE = "❌ An internal error occurred. Please try again."


def to_incoming(message: discord.Message) -> IncomingMessage:
    """Convert a Discord message into the dispatcher's message type."""
    guild = message.guild
    return IncomingMessage(
        author_id=str(message.author.id),
        author_name=message.author.display_name,
        content=message.content,
        guild_id=str(guild.id) if guild is not None else None,
        guild_name=guild.name if guild is not None else None,
    )


def channel_responder(message: discord.Message) -> Responder:
    """Responder that posts into the channel ``message`` came from."""

    async def respond(content: str | None = None, *, embed: Any = None) -> discord.Message:
        return await message.channel.send(content=content, embed=embed)

    return respond


class CharmBot(discord.Client):
    """DeepCode Charm Discord bot."""

    def __init__(
        self,
        dispatcher: CharmDispatcher,
        cleanup_scheduler: CleanupScheduler | None = None,
    ) -> None:
        """Initialize the bot.

        Args:
            dispatcher: Runs prefixed messages through the charm pipeline.
            cleanup_scheduler: Optional periodic cleanup of security state,
                started in ``setup_hook`` and stopped in ``close``.
        """
        settings = get_settings()

        intents = discord.Intents.default()
        intents.message_content = True

        super().__init__(
            intents=intents,
            status=discord.Status(settings.bot_status),
            activity=discord.Activity(
                type=discord.ActivityType[settings.bot_activity_type],
                name=settings.bot_activity_name,
            ),
        )

        self._dispatcher = dispatcher
        self._cleanup_scheduler = cleanup_scheduler
        self._allow_bot_messages = settings.allow_bot_messages
        self._started_at = time.monotonic()

    @property
    def prefix(self) -> str:
        return self._dispatcher.prefix

    @property
    def uptime_seconds(self) -> float:
        return time.monotonic() - self._started_at

    async def setup_hook(self) -> None:
        """Called when the bot is ready to set up."""
        if self._cleanup_scheduler is not None:
            await self._cleanup_scheduler.start()

    async def close(self) -> None:
        """Clean up resources when bot is closing."""
        scheduler = self._cleanup_scheduler
        if scheduler is not None:
            await scheduler.stop()
            self._cleanup_scheduler = None

        await super().close()

    async def on_ready(self) -> None:
        """Called when the bot is fully ready."""
        log.info(
            "bot_ready",
            user=str(self.user),
            guilds=len(self.guilds),
            charms=self._dispatcher.registry.charm_count,
        )

    async def on_message(self, message: discord.Message) -> None:
        """Handle incoming messages."""
        # Ignore own messages
        if message.author == self.user:
            return

        # Ignore messages from bots (unless explicitly allowed for testing)
        if message.author.bot and not self._allow_bot_messages:
            return

        # A mention of the bot wins over the prefix
        if self.user is not None and self.user in message.mentions:
            await self._handle_mention(message)
            return

        if not message.content.startswith(self.prefix):
            return

        structlog.contextvars.bind_contextvars(
            request_id=str(uuid4())[:12],
            user_id=str(message.author.id),
            guild_id=str(message.guild.id) if message.guild else None,
        )
        try:
            outcome = await self._dispatcher.dispatch(
                to_incoming(message), channel_responder(message)
            )
            await self._send_reply(message, outcome)
        except Exception:
            log.exception("message_handling_failed")
            with contextlib.suppress(discord.HTTPException):
                await message.reply(INTERNAL_ERROR_MESSAGE)
        finally:
            structlog.contextvars.clear_contextvars()

    async def _send_reply(self, message: discord.Message, outcome: DispatchOutcome) -> None:
        if outcome.reply is None:
            return
        await message.reply(outcome.reply)

    async def _handle_mention(self, message: discord.Message) -> None:
        """Answer a direct mention with a short info card."""
        minutes = int(self.uptime_seconds // 60)
        lines = [
            f"👋 Hi {message.author.display_name}! I'm the **DeepCode Charm Bot**!",
            f"🔮 My prefix is `{self.prefix}`. Type `{self.prefix}help` to see my charms!",
            (
                f"📊 **Stats**: {self._dispatcher.registry.charm_count} charms | "
                f"{len(self.guilds)} servers | {minutes}min online"
            ),
            f"💡 Try: `{self.prefix}say Hello world!` or `{self.prefix}ping`",
        ]
        card = discord.Embed(
            description="\n".join(lines),
            color=MENTION_COLOR,
            timestamp=discord.utils.utcnow(),
        )
        card.set_footer(text="DeepCode Charm")
        await message.reply(embed=card)

    # ------------------------------------------------------------------
    # Admin surface
    # ------------------------------------------------------------------

    def unban_user(self, user_id: str, admin_id: str) -> bool:
        """Lift a user's rate limit ban and reset their violation count."""
        return self._dispatcher.unban_user(user_id, admin_id)

    def get_user_info(self, user_id: str) -> UserRateInfo:
        return self._dispatcher.get_user_info(user_id)

    def get_stats(self) -> RateLimitStats:
        return self._dispatcher.get_stats()

    def reset_security_violations(self, user_id: str) -> bool:
        """Clear a user's security violation counter (unblocks them)."""
        return self._dispatcher.reset_security_violations(user_id)
