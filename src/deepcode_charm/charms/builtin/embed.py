"""``embed``: build a custom embed from ``title|description|color``."""

from __future__ import annotations

import re

import discord

from deepcode_charm.charms.models import CharmCategory, CharmMetadata, ExecutionContext

DEFAULT_COLOR = 0x00AE86
MAX_TITLE_LENGTH = 256
MAX_DESCRIPTION_LENGTH = 4096

NAMED_COLORS: dict[str, int] = {
    "red": 0xFF0000,
    "green": 0x00FF00,
    "blue": 0x0000FF,
    "yellow": 0xFFFF00,
    "purple": 0x800080,
    "pink": 0xFFC0CB,
    "orange": 0xFFA500,
    "black": 0x000000,
    "white": 0xFFFFFF,
    "gray": 0x808080,
    "grey": 0x808080,
    "cyan": 0x00FFFF,
    "magenta": 0xFF00FF,
}

_HEX_COLOR = re.compile(r"^#?([0-9a-f]{6}|[0-9a-f]{3})$", re.IGNORECASE)

USAGE_HINT = (
    "❌ Usage: `$embed[title|description|color]`\n"
    "**Example:** `$embed[My title|This is the description|#ff0000]`\n"
    "**Color (optional):** hex like #ff0000 or a name like red, blue, green"
)

METADATA = CharmMetadata(
    name="embed",
    description="Create a custom embed with a title, description and color",
    usage="$embed[title|description|color]",
    cooldown_seconds=3,
    category=CharmCategory.UTILITY,
)


def parse_color(value: str) -> int | None:
    """Named color or 3/6 digit hex, with or without ``#``."""
    value = value.strip().lower()
    if value in NAMED_COLORS:
        return NAMED_COLORS[value]
    match = _HEX_COLOR.match(value)
    if not match:
        return None
    digits = match.group(1)
    if len(digits) == 3:
        digits = "".join(c * 2 for c in digits)
    return int(digits, 16)


async def embed(ctx: ExecutionContext) -> None:
    if not ctx.args:
        await ctx.respond(USAGE_HINT)
        return

    parts = [part.strip() for part in ctx.args.split("|")]
    if len(parts) < 2:
        await ctx.respond("❌ Invalid format. At least a title and a description separated by |")
        return

    title, description = parts[0], parts[1]
    if len(title) > MAX_TITLE_LENGTH:
        await ctx.respond(f"❌ Title too long. Maximum is {MAX_TITLE_LENGTH} characters.")
        return
    if len(description) > MAX_DESCRIPTION_LENGTH:
        await ctx.respond(
            f"❌ Description too long. Maximum is {MAX_DESCRIPTION_LENGTH} characters."
        )
        return

    color = DEFAULT_COLOR
    if len(parts) > 2 and parts[2]:
        parsed = parse_color(parts[2])
        if parsed is not None:
            color = parsed

    card = discord.Embed(
        title=title,
        description=description,
        color=color,
        timestamp=discord.utils.utcnow(),
    )
    card.set_footer(text=f"Requested by {ctx.caller.display_name}")
    await ctx.respond(embed=card)
