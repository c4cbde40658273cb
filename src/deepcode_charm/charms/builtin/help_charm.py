"""``help``: list charms by category, or show one charm in detail."""

from __future__ import annotations

import discord

from deepcode_charm.charms.models import CharmCategory, CharmMetadata, ExecutionContext

HELP_COLOR = 0x00AE86

CATEGORY_EMOJI: dict[CharmCategory, str] = {
    CharmCategory.UTILITY: "🛠️",
    CharmCategory.FUN: "🎮",
    CharmCategory.MODERATION: "🛡️",
    CharmCategory.INFORMATION: "📋",
}

METADATA = CharmMetadata(
    name="help",
    description="List available charms, or show details for one charm",
    usage="$help or $help charm_name",
    cooldown_seconds=3,
    category=CharmCategory.INFORMATION,
)


def _detail_embed(metadata: CharmMetadata, requested_by: str) -> discord.Embed:
    card = discord.Embed(
        title=f"🔮 Charm: {metadata.name}",
        description=metadata.description,
        color=HELP_COLOR,
        timestamp=discord.utils.utcnow(),
    )
    card.add_field(name="📖 Usage", value=f"`{metadata.usage}`", inline=False)
    card.add_field(name="📂 Category", value=metadata.category.value, inline=True)
    card.add_field(name="⏱️ Cooldown", value=f"{metadata.cooldown_seconds:g}s", inline=True)
    card.add_field(
        name="🛡️ Permission",
        value="Admins only" if metadata.admin_only else "Everyone",
        inline=True,
    )
    card.set_footer(text=f"Requested by {requested_by}")
    return card


def _overview_embed(ctx: ExecutionContext) -> discord.Embed:
    registry = ctx.registry
    card = discord.Embed(
        title="🔮 DeepCode Charm - Charm list",
        description=(
            f"Charms available: **{registry.charm_count}**\n"
            "Use `help charm_name` for details on one charm."
        ),
        color=HELP_COLOR,
        timestamp=discord.utils.utcnow(),
    )
    for category in CharmCategory:
        charms = registry.list_by_category(category)
        if not charms:
            continue
        # Struck-through names need admin rights
        names = [
            f"~~{m.name}~~" if m.admin_only and not ctx.caller.is_admin else m.name
            for m in charms
        ]
        card.add_field(
            name=f"{CATEGORY_EMOJI[category]} {category.value.capitalize()}",
            value=", ".join(f"`{name}`" for name in names),
            inline=False,
        )
    card.add_field(
        name="💡 Tip",
        value="Struck-through charms require administrator permissions.",
        inline=False,
    )
    card.set_footer(text=f"Requested by {ctx.caller.display_name}")
    return card


async def help_charm(ctx: ExecutionContext) -> None:
    if ctx.args:
        name = ctx.args.split()[0].lower()
        metadata = ctx.registry.get(name)
        if metadata is None:
            await ctx.respond(f"❌ Charm `{name}` not found.")
            return
        await ctx.respond(embed=_detail_embed(metadata, ctx.caller.display_name))
        return

    if ctx.registry.charm_count == 0:
        await ctx.respond("❌ No charms are registered right now.")
        return
    await ctx.respond(embed=_overview_embed(ctx))
