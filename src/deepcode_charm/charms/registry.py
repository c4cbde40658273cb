"""Charm registry for storing and looking up charms.

The registry is responsible for:
- Integrity-checking a charm's source before it is stored
- Keeping one entry per name (re-registering a name replaces the entry)
- Lookup and listing, including by category
- Handing charms a read-only view of itself
"""

from __future__ import annotations

import functools
import inspect

from deepcode_charm.charms.errors import CharmIntegrityError
from deepcode_charm.charms.models import CharmCallable, CharmCategory, CharmEntry, CharmMetadata
from deepcode_charm.discord.security.validator import SecurityValidator
from deepcode_charm.logging import get_logger

log = get_logger("deepcode_charm.charms.registry")


def _getsource(obj: object) -> str | None:
    if not (inspect.isfunction(obj) or inspect.ismethod(obj)):
        obj = type(obj)
    try:
        return inspect.getsource(obj)
    except (OSError, TypeError):
        return None


def _source_of(execute: CharmCallable) -> str | None:
    """Source text of ``execute`` and everything it wraps.

    ``functools.partial`` objects are unwrapped, and each ``functools.wraps``
    layer contributes both the wrapper and the wrapped function. For a
    callable instance the source of its class is used. Returns None if any
    layer has no source.
    """
    sources: list[str] = []
    target: object | None = execute
    while target is not None:
        if isinstance(target, functools.partial):
            target = target.func
            continue
        source = _getsource(target)
        if source is None:
            return None
        sources.append(source)
        target = getattr(target, "__wrapped__", None) if inspect.isfunction(target) else None
    return "\n".join(sources)


class CharmRegistry:
    """Registry for managing charms."""

    def __init__(self, validator: SecurityValidator):
        """Initialize the charm registry.

        Args:
            validator: Used to integrity-check charms as they are registered.
        """
        self._validator = validator
        self._charms: dict[str, CharmEntry] = {}

        log.info("charm_registry_initialized")

    @property
    def charm_count(self) -> int:
        """Return the number of registered charms."""
        return len(self._charms)

    def __contains__(self, name: object) -> bool:
        return name in self._charms

    def register(
        self,
        execute: CharmCallable,
        metadata: CharmMetadata,
        *,
        source: str | None = None,
    ) -> CharmEntry:
        """Register a charm, replacing any existing charm of the same name.

        Args:
            execute: Async callable run with an ExecutionContext.
            metadata: The charm's metadata; ``metadata.name`` is the key.
            source: Source text to integrity-check. Defaults to the source
                of ``execute``.

        Returns:
            The stored entry.

        Raises:
            CharmIntegrityError: If the source fails the integrity check.
        """
        if source is None:
            source = _source_of(execute)

        result = self._validator.check_integrity(metadata.name, source)
        if not result.allowed:
            raise CharmIntegrityError(metadata.name, result.reason, result.rule)

        if metadata.name in self._charms:
            log.warning("charm_already_registered", charm=metadata.name, action="overwrite")

        entry = CharmEntry(metadata=metadata, execute=execute)
        self._charms[metadata.name] = entry

        log.info(
            "charm_registered",
            charm=metadata.name,
            category=metadata.category.value,
            admin_only=metadata.admin_only,
            cooldown=metadata.cooldown_seconds,
        )
        return entry

    def unregister(self, name: str) -> bool:
        """Unregister a charm.

        Returns:
            True if the charm was registered.
        """
        entry = self._charms.pop(name, None)
        if entry is None:
            return False
        log.info("charm_unregistered", charm=name)
        return True

    def get(self, name: str) -> CharmEntry | None:
        return self._charms.get(name)

    def list_names(self) -> list[str]:
        """Registered names, in registration order."""
        return list(self._charms)

    def list_by_category(self, category: CharmCategory) -> list[CharmEntry]:
        return [entry for entry in self._charms.values() if entry.metadata.category == category]

    def query(self) -> RegistryQuery:
        """Read-only view handed to charms."""
        return RegistryQuery(self)


class RegistryQuery:
    """Read-only facade over a :class:`CharmRegistry`."""

    __slots__ = ("_registry",)

    def __init__(self, registry: CharmRegistry):
        self._registry = registry

    @property
    def charm_count(self) -> int:
        return self._registry.charm_count

    def get(self, name: str) -> CharmMetadata | None:
        entry = self._registry.get(name)
        return entry.metadata if entry else None

    def list_names(self) -> list[str]:
        return self._registry.list_names()

    def list_by_category(self, category: CharmCategory) -> list[CharmMetadata]:
        return [entry.metadata for entry in self._registry.list_by_category(category)]
