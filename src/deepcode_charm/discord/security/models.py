"""Data models for input screening and rate limiting."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any


class ViolationReason(StrEnum):
    """Why a piece of text (or a user) was rejected."""

    ARGUMENT_TOO_LONG = "argument_too_long"
    FORBIDDEN_CHARACTERS = "forbidden_characters"
    SUSPICIOUS_PATTERN = "suspicious_pattern"
    SUSPICIOUS_URL = "suspicious_url"
    MENTION_FLOOD = "mention_flood"
    EMOJI_FLOOD = "emoji_flood"
    CHARACTER_SPAM = "character_spam"
    USER_BLOCKED = "user_blocked"
    # Registration-time integrity failures
    SOURCE_TOO_LARGE = "source_too_large"
    DANGEROUS_CODE = "dangerous_code"
    SOURCE_UNAVAILABLE = "source_unavailable"


class RateLimitScope(StrEnum):
    """Which rate limiting mechanism produced a rejection."""

    COOLDOWN = "cooldown"
    WINDOW = "window"
    BAN = "ban"


@dataclass(frozen=True)
class SecurityRule:
    """A single regex rule: a match rejects the text with ``reason``."""

    name: str
    pattern: re.Pattern[str]
    reason: ViolationReason


@dataclass(frozen=True)
class RuleMatch:
    """A rule that fired against a piece of text."""

    rule: str
    reason: ViolationReason
    matched_text: str = ""


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of screening a piece of text."""

    allowed: bool
    reason: ViolationReason | None = None
    rule: str | None = None
    matched_text: str = ""

    @classmethod
    def ok(cls) -> ValidationResult:
        return cls(allowed=True)

    @classmethod
    def rejected(cls, match: RuleMatch) -> ValidationResult:
        return cls(
            allowed=False,
            reason=match.reason,
            rule=match.rule,
            matched_text=match.matched_text,
        )


@dataclass
class ViolationCounter:
    """Per-user count of rejected inputs."""

    count: int = 0
    last_violation_at: float = 0.0


@dataclass(frozen=True)
class RateLimitResult:
    """Outcome of a cooldown or global rate limit check."""

    allowed: bool
    retry_after_seconds: int = 0
    scope: RateLimitScope | None = None

    @property
    def banned(self) -> bool:
        return self.scope == RateLimitScope.BAN


@dataclass
class WindowState:
    """Command count inside the current global window."""

    count: int
    reset_at: float


@dataclass
class ViolationRecord:
    """Rate limit violations inside the rolling violation window."""

    count: int = 0
    last_violation_at: float = 0.0


@dataclass
class UserRateState:
    """All rate limiting state for one user."""

    cooldowns: dict[str, float] = field(default_factory=dict)
    window: WindowState | None = None
    violations: ViolationRecord | None = None
    banned_until: float | None = None

    def is_empty(self) -> bool:
        return (
            not self.cooldowns
            and self.window is None
            and self.violations is None
            and self.banned_until is None
        )


@dataclass(frozen=True)
class UserRateInfo:
    """Operator view of a single user's rate limiting state."""

    is_banned: bool
    unban_time: datetime | None
    violations: int
    current_commands: int
    rate_limit_reset: datetime | None
    active_cooldowns: int

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "is_banned": self.is_banned,
            "unban_time": self.unban_time.isoformat() if self.unban_time else None,
            "violations": self.violations,
            "current_commands": self.current_commands,
            "rate_limit_reset": (
                self.rate_limit_reset.isoformat() if self.rate_limit_reset else None
            ),
            "active_cooldowns": self.active_cooldowns,
        }


@dataclass(frozen=True)
class RateLimitStats:
    """Aggregate rate limiting statistics."""

    active_users: int
    total_cooldowns: int
    avg_commands_per_user: float
    total_commands: int
    total_violations: int
    banned_users: int
    uptime_hours: float
    commands_per_hour: float

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "active_users": self.active_users,
            "total_cooldowns": self.total_cooldowns,
            "avg_commands_per_user": self.avg_commands_per_user,
            "total_commands": self.total_commands,
            "total_violations": self.total_violations,
            "banned_users": self.banned_users,
            "uptime_hours": self.uptime_hours,
            "commands_per_hour": self.commands_per_hour,
        }


@dataclass(frozen=True)
class CleanupReport:
    """What a rate limiter cleanup pass removed."""

    cooldowns_removed: int = 0
    windows_removed: int = 0
    violations_removed: int = 0
    bans_removed: int = 0
    users_removed: int = 0
