"""Core data types for charms and their invocations."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from deepcode_charm.charms.registry import RegistryQuery


class CharmCategory(StrEnum):
    """Category a charm is listed under in help output."""

    UTILITY = "utility"
    FUN = "fun"
    MODERATION = "moderation"
    INFORMATION = "information"


@dataclass(frozen=True)
class CharmMetadata:
    """Static description of a charm."""

    name: str
    description: str
    usage: str
    admin_only: bool = False
    cooldown_seconds: float = 0
    category: CharmCategory = CharmCategory.UTILITY


@dataclass(frozen=True)
class Invocation:
    """A parsed ``name`` + argument string pulled out of a message."""

    name: str
    args: str
    raw: str = ""


@dataclass(frozen=True)
class IncomingMessage:
    """Platform-neutral view of an inbound chat message."""

    author_id: str
    author_name: str
    content: str
    guild_id: str | None = None
    guild_name: str | None = None


@dataclass(frozen=True)
class CallerInfo:
    """Who invoked a charm."""

    id: str
    display_name: str
    is_admin: bool = False


@dataclass(frozen=True)
class GuildInfo:
    """Guild a charm was invoked in."""

    id: str
    name: str


class Responder(Protocol):
    """Sends a message back into the channel the invocation came from."""

    def __call__(self, content: str | None = None, *, embed: Any = None) -> Awaitable[Any]: ...


@dataclass(frozen=True)
class ExecutionContext:
    """Everything a charm gets to see when it runs."""

    args: str
    caller: CallerInfo
    guild: GuildInfo | None
    registry: RegistryQuery
    respond: Responder


CharmCallable = Callable[[ExecutionContext], Awaitable[None]]


@dataclass
class CharmEntry:
    """A registered charm."""

    metadata: CharmMetadata
    execute: CharmCallable
    registered_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def name(self) -> str:
        return self.metadata.name
