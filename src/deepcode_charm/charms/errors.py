"""Error kinds for charm registration and dispatch.

Registration problems are exceptions (:class:`CharmError` and subclasses) and
propagate to whoever called ``register``. Per-message rejections are plain
values: each check in the dispatcher returns one of the :data:`Rejection`
variants or ``None``, and :func:`format_rejection` turns a variant into the
fixed text the user sees. Nothing user-facing ever includes the rule that
fired or the text of an exception.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import StrEnum
from typing import ClassVar

from deepcode_charm.discord.security.models import RateLimitScope, ViolationReason


class CharmError(Exception):
    """Base exception for charm errors."""

    pass


class CharmIntegrityError(CharmError):
    """Raised when a charm fails its integrity check at registration."""

    def __init__(self, name: str, reason: ViolationReason | None, rule: str | None = None):
        self.name = name
        self.reason = reason
        self.rule = rule
        super().__init__(f"Charm '{name}' failed integrity check: {reason}")


class RejectionKind(StrEnum):
    NOT_FOUND = "not_found"
    PERMISSION_DENIED = "permission_denied"
    RATE_LIMITED = "rate_limited"
    SECURITY_VIOLATION = "security_violation"
    EXECUTION_FAILED = "execution_failed"


@dataclass(frozen=True)
class NotFound:
    """No charm is registered under ``name``."""

    kind: ClassVar[RejectionKind] = RejectionKind.NOT_FOUND

    name: str
    suggestions: tuple[str, ...] = ()


@dataclass(frozen=True)
class PermissionDenied:
    """A non-admin tried to run an admin-only charm."""

    kind: ClassVar[RejectionKind] = RejectionKind.PERMISSION_DENIED

    name: str
    user_id: str


@dataclass(frozen=True)
class RateLimited:
    """Cooldown, global quota or an active ban."""

    kind: ClassVar[RejectionKind] = RejectionKind.RATE_LIMITED

    retry_after_seconds: int
    scope: RateLimitScope
    user_id: str
    name: str | None = None


@dataclass(frozen=True)
class SecurityViolation:
    """Arguments were rejected, or the user is blocked."""

    kind: ClassVar[RejectionKind] = RejectionKind.SECURITY_VIOLATION

    reason: ViolationReason
    user_id: str
    name: str | None = None


@dataclass(frozen=True)
class ExecutionFailed:
    """The charm body raised."""

    kind: ClassVar[RejectionKind] = RejectionKind.EXECUTION_FAILED

    name: str
    user_id: str
    error_type: str


Rejection = NotFound | PermissionDenied | RateLimited | SecurityViolation | ExecutionFailed

INVALID_FORMAT_MESSAGE = (
    "❌ Invalid format. Use: `{prefix}charm arguments` or `{prefix}charm[arguments]`"
)


def format_wait(seconds: int) -> str:
    """Human readable wait time: seconds up to a minute, whole minutes above."""
    if seconds > 60:
        minutes = math.ceil(seconds / 60)
        return f"{minutes} minute" if minutes == 1 else f"{minutes} minutes"
    return f"{seconds}s"


def format_rejection(rejection: Rejection, prefix: str = "$") -> str:
    """Fixed user-facing message for a rejection."""
    match rejection:
        case NotFound(name=name, suggestions=suggestions):
            text = f"❌ Charm `{name}` not found."
            if suggestions:
                hints = "\n".join(f"• `{prefix}{s}`" for s in suggestions)
                text += f"\n\n💡 Did you mean:\n{hints}"
            return text + f"\n\n📋 Use `{prefix}help` to see all charms."
        case PermissionDenied():
            return "🚫 You don't have permission to use this charm."
        case RateLimited(scope=RateLimitScope.BAN, retry_after_seconds=seconds):
            return (
                "⛔ You are temporarily banned from using charms. "
                f"Try again in {format_wait(seconds)}."
            )
        case RateLimited(scope=RateLimitScope.WINDOW, retry_after_seconds=seconds):
            return f"⏰ You're sending commands too fast. Try again in {format_wait(seconds)}."
        case RateLimited(retry_after_seconds=seconds):
            return f"⏰ This charm is on cooldown. Try again in {format_wait(seconds)}."
        case SecurityViolation():
            return "⚠️ Input rejected for security reasons."
        case ExecutionFailed():
            return "❌ Something went wrong while running that charm."
    raise TypeError(f"Unknown rejection: {rejection!r}")
