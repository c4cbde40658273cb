"""Charms that ship with the bot."""

from deepcode_charm.charms.builtin import embed, help_charm, ping, say
from deepcode_charm.charms.registry import CharmRegistry
from deepcode_charm.logging import get_logger

log = get_logger("deepcode_charm.charms.builtin")

BUILTIN_CHARMS = [
    (help_charm.help_charm, help_charm.METADATA),
    (ping.ping, ping.METADATA),
    (say.say, say.METADATA),
    (embed.embed, embed.METADATA),
]


def register_builtin_charms(registry: CharmRegistry) -> None:
    """Register every built-in charm.

    Raises:
        CharmIntegrityError: If a built-in fails its integrity check.
    """
    for execute, metadata in BUILTIN_CHARMS:
        registry.register(execute, metadata)
    log.info("builtin_charms_registered", count=len(BUILTIN_CHARMS))


__all__ = ["BUILTIN_CHARMS", "register_builtin_charms"]
