"""Dispatch engine: runs one inbound message through every check and the charm.

Check order for a prefixed message:

1. guild allow-list (silently ignored otherwise)
2. parse (invalid format)
3. global quota, counted before lookup so unknown names still drain it
4. registry lookup, with suggestions on a miss
5. admin-only gate
6. per-charm cooldown, reserved as it is checked (admins and zero
   cooldowns skip it)
7. blocked user / argument screening
8. execute, then restamp the cooldown and update stats

Each check returns a rejection value or ``None``; the first rejection ends
the dispatch. A cooldown reservation is released again if screening
rejects the call or the charm raises, so only successful runs leave a
cooldown, measured from when the charm finished.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from deepcode_charm.charms.errors import (
    INVALID_FORMAT_MESSAGE,
    ExecutionFailed,
    NotFound,
    PermissionDenied,
    RateLimited,
    Rejection,
    SecurityViolation,
    format_rejection,
)
from deepcode_charm.charms.fuzzy import suggest_similar
from deepcode_charm.charms.models import (
    CallerInfo,
    CharmEntry,
    ExecutionContext,
    GuildInfo,
    IncomingMessage,
    Invocation,
    Responder,
)
from deepcode_charm.charms.parser import parse_invocation
from deepcode_charm.charms.registry import CharmRegistry
from deepcode_charm.discord.security.forensics import log_security_event
from deepcode_charm.discord.security.models import (
    RateLimitScope,
    RateLimitStats,
    UserRateInfo,
    ViolationReason,
)
from deepcode_charm.discord.security.rate_limiter import RateLimiter
from deepcode_charm.discord.security.validator import SecurityValidator
from deepcode_charm.logging import get_logger

log = get_logger("deepcode_charm.charms.dispatcher")


class DispatchStatus(StrEnum):
    """Terminal state of a dispatch."""

    SUCCESS = "success"
    IGNORED = "ignored"
    INVALID_FORMAT = "invalid_format"
    NOT_FOUND = "not_found"
    PERMISSION_DENIED = "permission_denied"
    RATE_LIMITED = "rate_limited"
    SECURITY_VIOLATION = "security_violation"
    EXECUTION_FAILED = "execution_failed"


_STATUS_FOR_REJECTION: dict[type, DispatchStatus] = {
    NotFound: DispatchStatus.NOT_FOUND,
    PermissionDenied: DispatchStatus.PERMISSION_DENIED,
    RateLimited: DispatchStatus.RATE_LIMITED,
    SecurityViolation: DispatchStatus.SECURITY_VIOLATION,
    ExecutionFailed: DispatchStatus.EXECUTION_FAILED,
}


@dataclass(frozen=True)
class DispatchOutcome:
    """Result of dispatching one message.

    ``reply`` is the text to send back to the user, if any. Successful
    charms answer for themselves, so a success has no reply.
    """

    status: DispatchStatus
    invocation: Invocation | None = None
    rejection: Rejection | None = None
    reply: str | None = None


@dataclass
class DispatchStats:
    """Counters for executed charms."""

    commands_executed: int = 0
    failures: int = 0
    last_command_at: datetime | None = None
    per_charm: dict[str, int] = field(default_factory=dict)

    def record_success(self, name: str) -> None:
        self.commands_executed += 1
        self.last_command_at = datetime.now(UTC)
        self.per_charm[name] = self.per_charm.get(name, 0) + 1

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "commands_executed": self.commands_executed,
            "failures": self.failures,
            "last_command_at": self.last_command_at.isoformat() if self.last_command_at else None,
            "per_charm": dict(self.per_charm),
        }


class CharmDispatcher:
    """Route messages to charms under permission, rate limit and security checks."""

    def __init__(
        self,
        registry: CharmRegistry,
        rate_limiter: RateLimiter,
        validator: SecurityValidator,
        *,
        prefix: str = "$",
        admin_user_ids: list[str] | None = None,
        allowed_guild_ids: list[str] | None = None,
        max_commands: int = 10,
        window_seconds: float = 60,
    ) -> None:
        """Initialize the dispatcher.

        Args:
            registry: Charms to dispatch to.
            rate_limiter: Cooldowns, global quota and bans.
            validator: Argument screening and violation tracking.
            prefix: Command prefix.
            admin_user_ids: Users that bypass cooldowns and the admin gate.
            allowed_guild_ids: Guilds the bot answers in. Empty allows all.
            max_commands: Global quota per window. 0 disables the quota.
            window_seconds: Length of the global quota window.
        """
        self._registry = registry
        self._rate_limiter = rate_limiter
        self._validator = validator
        self.prefix = prefix
        self._admin_user_ids = frozenset(admin_user_ids or ())
        self._allowed_guild_ids = frozenset(allowed_guild_ids or ())
        self._max_commands = max_commands
        self._window_seconds = window_seconds
        self.stats = DispatchStats()

        log.info(
            "charm_dispatcher_initialized",
            prefix=prefix,
            admin_users=len(self._admin_user_ids),
            allowed_guilds=len(self._allowed_guild_ids),
            max_commands=max_commands,
            window_seconds=window_seconds,
        )

    @property
    def registry(self) -> CharmRegistry:
        return self._registry

    def is_admin(self, user_id: str) -> bool:
        return user_id in self._admin_user_ids

    def is_guild_allowed(self, guild_id: str | None) -> bool:
        """Direct messages and an empty allow-list are always allowed."""
        if guild_id is None or not self._allowed_guild_ids:
            return True
        return guild_id in self._allowed_guild_ids

    # ------------------------------------------------------------------
    # Checks
    # ------------------------------------------------------------------

    def _check_global_quota(self, user_id: str) -> Rejection | None:
        if self._max_commands <= 0:
            return None
        result = self._rate_limiter.check_global_rate_limit(
            user_id, self._max_commands, self._window_seconds
        )
        if result.allowed:
            return None
        return RateLimited(
            retry_after_seconds=result.retry_after_seconds,
            scope=result.scope or RateLimitScope.WINDOW,
            user_id=user_id,
        )

    def _check_registered(self, name: str) -> Rejection | None:
        if name in self._registry:
            return None
        suggestions = suggest_similar(name, self._registry.list_names())
        return NotFound(name=name, suggestions=tuple(suggestions))

    def _check_permission(
        self, entry: CharmEntry, user_id: str, is_admin: bool
    ) -> Rejection | None:
        if entry.metadata.admin_only and not is_admin:
            return PermissionDenied(name=entry.name, user_id=user_id)
        return None

    @staticmethod
    def _has_cooldown(entry: CharmEntry, is_admin: bool) -> bool:
        return not is_admin and entry.metadata.cooldown_seconds > 0

    def _reserve_cooldown(
        self, entry: CharmEntry, user_id: str, is_admin: bool
    ) -> Rejection | None:
        if not self._has_cooldown(entry, is_admin):
            return None
        result = self._rate_limiter.try_acquire_cooldown(
            user_id, entry.name, entry.metadata.cooldown_seconds
        )
        if result.allowed:
            return None
        return RateLimited(
            retry_after_seconds=result.retry_after_seconds,
            scope=result.scope or RateLimitScope.COOLDOWN,
            user_id=user_id,
            name=entry.name,
        )

    def _release_cooldown(self, entry: CharmEntry, user_id: str, is_admin: bool) -> None:
        if self._has_cooldown(entry, is_admin):
            self._rate_limiter.release_cooldown(user_id, entry.name)

    def _check_security(self, entry: CharmEntry, user_id: str, args: str) -> Rejection | None:
        if self._validator.is_blocked(user_id):
            return SecurityViolation(
                reason=ViolationReason.USER_BLOCKED, user_id=user_id, name=entry.name
            )
        if not args:
            return None
        result = self._validator.validate(args, user_id)
        if result.allowed:
            return None
        return SecurityViolation(
            reason=result.reason or ViolationReason.SUSPICIOUS_PATTERN,
            user_id=user_id,
            name=entry.name,
        )

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def _reject(self, invocation: Invocation | None, rejection: Rejection) -> DispatchOutcome:
        status = _STATUS_FOR_REJECTION[type(rejection)]
        log.info(
            "charm_rejected",
            status=status.value,
            charm=invocation.name if invocation else None,
            rejection=repr(rejection),
        )
        return DispatchOutcome(
            status=status,
            invocation=invocation,
            rejection=rejection,
            reply=format_rejection(rejection, self.prefix),
        )

    async def dispatch(self, message: IncomingMessage, respond: Responder) -> DispatchOutcome:
        """Run ``message`` through the checks and, if they pass, the charm.

        Args:
            message: The inbound message.
            respond: Sends output into the originating channel; handed to
                the charm through its ExecutionContext.

        Returns:
            The outcome, including the reply text for rejections.
        """
        if not message.content.startswith(self.prefix):
            return DispatchOutcome(status=DispatchStatus.IGNORED)

        user_id = message.author_id
        if not self.is_guild_allowed(message.guild_id):
            log_security_event(
                event_type="guild_not_allowed",
                user_id=user_id,
                guild_id=message.guild_id,
            )
            return DispatchOutcome(status=DispatchStatus.IGNORED)

        invocation = parse_invocation(message.content[len(self.prefix) :])
        if invocation is None:
            return DispatchOutcome(
                status=DispatchStatus.INVALID_FORMAT,
                reply=INVALID_FORMAT_MESSAGE.format(prefix=self.prefix),
            )

        rejection = self._check_global_quota(user_id) or self._check_registered(invocation.name)
        if rejection is not None:
            return self._reject(invocation, rejection)

        entry = self._registry.get(invocation.name)
        if entry is None:
            # Unregistered between lookup and now
            return self._reject(invocation, NotFound(name=invocation.name))

        is_admin = self.is_admin(user_id)
        rejection = self._check_permission(entry, user_id, is_admin) or self._reserve_cooldown(
            entry, user_id, is_admin
        )
        if rejection is not None:
            return self._reject(invocation, rejection)

        rejection = self._check_security(entry, user_id, invocation.args)
        if rejection is not None:
            self._release_cooldown(entry, user_id, is_admin)
            return self._reject(invocation, rejection)

        context = ExecutionContext(
            args=invocation.args,
            caller=CallerInfo(id=user_id, display_name=message.author_name, is_admin=is_admin),
            guild=(
                GuildInfo(id=message.guild_id, name=message.guild_name or "")
                if message.guild_id is not None
                else None
            ),
            registry=self._registry.query(),
            respond=respond,
        )

        log.info(
            "charm_executing",
            charm=entry.name,
            user_id=user_id,
            guild_id=message.guild_id,
            args_length=len(invocation.args),
        )
        try:
            await entry.execute(context)
        except Exception as e:
            log.exception("charm_execution_failed", charm=entry.name, user_id=user_id)
            self._release_cooldown(entry, user_id, is_admin)
            self.stats.failures += 1
            return self._reject(
                invocation,
                ExecutionFailed(name=entry.name, user_id=user_id, error_type=type(e).__name__),
            )

        if self._has_cooldown(entry, is_admin):
            self._rate_limiter.set_cooldown(user_id, entry.name)
        self.stats.record_success(entry.name)
        log.info("charm_executed", charm=entry.name, user_id=user_id)

        return DispatchOutcome(status=DispatchStatus.SUCCESS, invocation=invocation)

    # ------------------------------------------------------------------
    # Admin surface
    # ------------------------------------------------------------------

    def unban_user(self, user_id: str, admin_id: str) -> bool:
        return self._rate_limiter.unban_user(user_id, admin_id)

    def get_user_info(self, user_id: str) -> UserRateInfo:
        return self._rate_limiter.get_user_info(user_id)

    def get_stats(self) -> RateLimitStats:
        return self._rate_limiter.get_stats()

    def reset_security_violations(self, user_id: str) -> bool:
        return self._validator.reset_user(user_id)
