"""``say``: repeat the given text into the channel."""

from deepcode_charm.charms.models import CharmCategory, CharmMetadata, ExecutionContext

MAX_SAY_LENGTH = 1900

METADATA = CharmMetadata(
    name="say",
    description="Make the bot post a message in this channel",
    usage="$say text to send",
    cooldown_seconds=2,
    category=CharmCategory.UTILITY,
)


async def say(ctx: ExecutionContext) -> None:
    if not ctx.args:
        await ctx.respond("❌ Usage: `$say text to send`")
        return
    if len(ctx.args) > MAX_SAY_LENGTH:
        await ctx.respond(f"❌ Message too long. Maximum is {MAX_SAY_LENGTH} characters.")
        return
    await ctx.respond(ctx.args)
