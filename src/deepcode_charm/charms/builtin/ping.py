"""``ping``: answer and report how long the round trip took."""

import time

from deepcode_charm.charms.models import CharmCategory, CharmMetadata, ExecutionContext

METADATA = CharmMetadata(
    name="ping",
    description="Check that the bot is alive and how fast it answers",
    usage="$ping",
    cooldown_seconds=5,
    category=CharmCategory.UTILITY,
)


async def ping(ctx: ExecutionContext) -> None:
    started = time.perf_counter()
    sent = await ctx.respond("🏓 Pong!")
    latency_ms = round((time.perf_counter() - started) * 1000)
    if sent is not None:
        await sent.edit(content=f"🏓 **Pong!**\n💬 **Round trip:** {latency_ms}ms")
