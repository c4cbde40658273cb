"""Main entry point for DeepCode Charm."""

import asyncio

from deepcode_charm.charms.builtin import register_builtin_charms
from deepcode_charm.charms.dispatcher import CharmDispatcher
from deepcode_charm.charms.registry import CharmRegistry
from deepcode_charm.config import get_settings
from deepcode_charm.discord.bot import CharmBot
from deepcode_charm.discord.security import RateLimiter, SecurityValidator
from deepcode_charm.logging import get_logger, setup_logging
from deepcode_charm.scheduler.cleanup import CleanupScheduler


async def main() -> None:
    """Main application entry point."""
    setup_logging()
    log = get_logger("deepcode_charm.main")

    settings = get_settings()
    log.info(
        "starting_deepcode_charm",
        environment=settings.environment,
        prefix=settings.command_prefix,
        admin_users=len(settings.admin_user_ids),
        allowed_guilds=len(settings.allowed_guild_ids),
    )
    if not settings.admin_user_ids:
        log.warning("no_admin_users_configured")
    if settings.rate_limit_max == 0:
        log.warning("global_rate_limit_disabled")

    validator = SecurityValidator()
    rate_limiter = RateLimiter()

    # Integrity failures here abort startup
    registry = CharmRegistry(validator)
    register_builtin_charms(registry)

    dispatcher = CharmDispatcher(
        registry,
        rate_limiter,
        validator,
        prefix=settings.command_prefix,
        admin_user_ids=settings.admin_user_ids,
        allowed_guild_ids=settings.allowed_guild_ids,
        max_commands=settings.rate_limit_max,
        window_seconds=settings.rate_limit_window,
    )
    scheduler = CleanupScheduler(
        rate_limiter,
        validator,
        interval_seconds=settings.cleanup_interval_seconds,
    )

    bot = CharmBot(dispatcher, cleanup_scheduler=scheduler)
    log.info("bot_created", charms=registry.charm_count)

    try:
        await bot.start(settings.discord_token.get_secret_value())
    except KeyboardInterrupt:
        log.info("shutdown_requested")
    finally:
        await bot.close()
        log.info("deepcode_charm_stopped")


def run() -> None:
    """Run the application."""
    asyncio.run(main())


if __name__ == "__main__":
    run()
