"""Per-user rate limiting: cooldowns, a global window and temporary bans.

All state lives on a :class:`RateLimiter` instance. Every public method takes
the instance lock and never awaits, so a check and the mutation that follows
it happen as one step even when many messages from the same user are being
dispatched concurrently.
"""

import math
import threading
import time
from collections.abc import Callable
from datetime import UTC, datetime

from deepcode_charm.discord.security.models import (
    CleanupReport,
    RateLimitResult,
    RateLimitScope,
    RateLimitStats,
    UserRateInfo,
    UserRateState,
    ViolationRecord,
    WindowState,
)
from deepcode_charm.logging import get_logger

log = get_logger("deepcode_charm.discord.security.rate_limiter")

BAN_THRESHOLD = 5
BASE_BAN_MINUTES = 5
BAN_BACKOFF_FACTOR = 3
MAX_BAN_MINUTES = 24 * 60
VIOLATION_RESET_SECONDS = 60 * 60
STATE_MAX_AGE_SECONDS = 24 * 60 * 60


def ban_minutes_for(violations: int) -> int:
    """Ban length for the given running violation count."""
    return min(BASE_BAN_MINUTES * BAN_BACKOFF_FACTOR ** (violations - 1), MAX_BAN_MINUTES)


def _ceil_seconds(seconds: float) -> int:
    return max(0, math.ceil(seconds))


def _to_datetime(timestamp: float) -> datetime:
    return datetime.fromtimestamp(timestamp, tz=UTC)


class RateLimiter:
    """Rate limiter for charm invocations."""

    def __init__(self, *, clock: Callable[[], float] = time.time) -> None:
        """Initialize rate limiter.

        Args:
            clock: Time source in seconds since the epoch.
        """
        self._clock = clock
        self._users: dict[str, UserRateState] = {}
        self._lock = threading.Lock()
        self._started_at = clock()
        self._commands_seen = 0

    # ------------------------------------------------------------------
    # Bans
    # ------------------------------------------------------------------

    def _active_ban(self, user_id: str, state: UserRateState, now: float) -> float | None:
        """Seconds left on the user's ban, clearing it if it has elapsed."""
        if state.banned_until is None:
            return None
        if now >= state.banned_until:
            state.banned_until = None
            log.info("user_auto_unbanned", user_id=user_id)
            return None
        return state.banned_until - now

    def _record_violation(
        self, user_id: str, state: UserRateState, now: float, reason: str
    ) -> int | None:
        record = state.violations
        if record is None or now - record.last_violation_at > VIOLATION_RESET_SECONDS:
            record = ViolationRecord()
            state.violations = record
        record.count += 1
        record.last_violation_at = now

        log.warning(
            "rate_limit_violation",
            user_id=user_id,
            reason=reason,
            violations=record.count,
        )

        if record.count < BAN_THRESHOLD:
            return None

        minutes = ban_minutes_for(record.count)
        state.banned_until = now + minutes * 60
        log.warning(
            "user_banned",
            user_id=user_id,
            reason=reason,
            violations=record.count,
            ban_minutes=minutes,
            banned_until=_to_datetime(state.banned_until).isoformat(),
        )
        return minutes

    def handle_violation(self, user_id: str, reason: str) -> int | None:
        """Record a violation for a user.

        Args:
            user_id: The offending user.
            reason: Short description for the logs.

        Returns:
            Ban length in minutes if this violation triggered a ban, else None.
        """
        with self._lock:
            state = self._users.setdefault(user_id, UserRateState())
            return self._record_violation(user_id, state, self._clock(), reason)

    def is_banned(self, user_id: str) -> bool:
        return self.get_ban_remaining(user_id) > 0

    def get_ban_remaining(self, user_id: str) -> int:
        """Seconds left on a user's ban (0 when not banned)."""
        with self._lock:
            state = self._users.get(user_id)
            if state is None:
                return 0
            remaining = self._active_ban(user_id, state, self._clock())
            return _ceil_seconds(remaining) if remaining is not None else 0

    def unban_user(self, user_id: str, admin_id: str) -> bool:
        """Lift a ban and reset the user's violation counter.

        Returns:
            True if the user had an active ban.
        """
        with self._lock:
            state = self._users.get(user_id)
            if state is None:
                return False
            was_banned = self._active_ban(user_id, state, self._clock()) is not None
            state.banned_until = None
            state.violations = None

        log.info(
            "user_unbanned_by_admin", user_id=user_id, admin_id=admin_id, was_banned=was_banned
        )
        return was_banned

    # ------------------------------------------------------------------
    # Cooldowns
    # ------------------------------------------------------------------

    def is_on_cooldown(self, user_id: str, command: str, cooldown_seconds: float) -> bool:
        """Check whether ``command`` is cooling down for ``user_id``.

        A banned user is always on cooldown.
        """
        return not self.check_cooldown(user_id, command, cooldown_seconds).allowed

    def check_cooldown(
        self, user_id: str, command: str, cooldown_seconds: float
    ) -> RateLimitResult:
        """Check the per-command cooldown, returning the wait time if rejected."""
        with self._lock:
            state = self._users.get(user_id)
            if state is None:
                return RateLimitResult(allowed=True)
            return self._cooldown_result(user_id, state, command, cooldown_seconds, self._clock())

    def try_acquire_cooldown(
        self, user_id: str, command: str, cooldown_seconds: float
    ) -> RateLimitResult:
        """Check the cooldown and, if it allows the call, stamp it in one step.

        Of several concurrent callers for the same user and command, at most
        one is allowed. Undo the stamp with :meth:`release_cooldown` if the
        command does not go ahead.
        """
        with self._lock:
            now = self._clock()
            state = self._users.setdefault(user_id, UserRateState())
            result = self._cooldown_result(user_id, state, command, cooldown_seconds, now)
            if result.allowed:
                state.cooldowns[command] = now
            return result

    def release_cooldown(self, user_id: str, command: str) -> bool:
        """Drop the cooldown stamp for ``command``. Returns True if there was one."""
        with self._lock:
            state = self._users.get(user_id)
            if state is None or command not in state.cooldowns:
                return False
            del state.cooldowns[command]
            if state.is_empty():
                del self._users[user_id]
        log.debug("cooldown_released", user_id=user_id, command=command)
        return True

    def _cooldown_result(
        self,
        user_id: str,
        state: UserRateState,
        command: str,
        cooldown_seconds: float,
        now: float,
    ) -> RateLimitResult:
        ban_remaining = self._active_ban(user_id, state, now)
        if ban_remaining is not None:
            return RateLimitResult(
                allowed=False,
                retry_after_seconds=_ceil_seconds(ban_remaining),
                scope=RateLimitScope.BAN,
            )

        last_used = state.cooldowns.get(command)
        if last_used is None:
            return RateLimitResult(allowed=True)

        remaining = cooldown_seconds - (now - last_used)
        if remaining <= 0:
            return RateLimitResult(allowed=True)
        return RateLimitResult(
            allowed=False,
            retry_after_seconds=_ceil_seconds(remaining),
            scope=RateLimitScope.COOLDOWN,
        )

    def get_cooldown_remaining(self, user_id: str, command: str, cooldown_seconds: float) -> int:
        """Whole seconds (rounded up) before ``command`` can be used again."""
        return self.check_cooldown(user_id, command, cooldown_seconds).retry_after_seconds

    def set_cooldown(self, user_id: str, command: str) -> None:
        """Stamp ``command`` as used now by ``user_id``."""
        with self._lock:
            state = self._users.setdefault(user_id, UserRateState())
            state.cooldowns[command] = self._clock()

    # ------------------------------------------------------------------
    # Global window
    # ------------------------------------------------------------------

    def check_global_rate_limit(
        self, user_id: str, max_commands: int, window_seconds: float
    ) -> RateLimitResult:
        """Count one command against the user's window.

        Rejections are recorded as violations and may escalate into a ban.
        """
        with self._lock:
            now = self._clock()
            state = self._users.setdefault(user_id, UserRateState())

            ban_remaining = self._active_ban(user_id, state, now)
            if ban_remaining is not None:
                return RateLimitResult(
                    allowed=False,
                    retry_after_seconds=_ceil_seconds(ban_remaining),
                    scope=RateLimitScope.BAN,
                )

            window = state.window
            if window is None or now >= window.reset_at:
                state.window = WindowState(count=1, reset_at=now + window_seconds)
                self._commands_seen += 1
                return RateLimitResult(allowed=True)

            if window.count >= max_commands:
                ban_minutes = self._record_violation(user_id, state, now, "global_rate_limit")
                if ban_minutes is not None:
                    return RateLimitResult(
                        allowed=False,
                        retry_after_seconds=ban_minutes * 60,
                        scope=RateLimitScope.BAN,
                    )
                return RateLimitResult(
                    allowed=False,
                    retry_after_seconds=_ceil_seconds(window.reset_at - now),
                    scope=RateLimitScope.WINDOW,
                )

            window.count += 1
            self._commands_seen += 1
            return RateLimitResult(allowed=True)

    # ------------------------------------------------------------------
    # Maintenance and reporting
    # ------------------------------------------------------------------

    def cleanup(self) -> CleanupReport:
        """Drop stale state. Active bans are never removed."""
        cooldowns_removed = windows_removed = violations_removed = 0
        bans_removed = users_removed = 0

        with self._lock:
            now = self._clock()
            for user_id, state in list(self._users.items()):
                fresh = {
                    command: used_at
                    for command, used_at in state.cooldowns.items()
                    if now - used_at <= STATE_MAX_AGE_SECONDS
                }
                cooldowns_removed += len(state.cooldowns) - len(fresh)
                state.cooldowns = fresh

                if state.window is not None and now >= state.window.reset_at:
                    state.window = None
                    windows_removed += 1

                ban_active = state.banned_until is not None and state.banned_until > now
                if state.banned_until is not None and not ban_active:
                    state.banned_until = None
                    bans_removed += 1

                if (
                    state.violations is not None
                    and not ban_active
                    and now - state.violations.last_violation_at > STATE_MAX_AGE_SECONDS
                ):
                    state.violations = None
                    violations_removed += 1

                if state.is_empty():
                    del self._users[user_id]
                    users_removed += 1

        report = CleanupReport(
            cooldowns_removed=cooldowns_removed,
            windows_removed=windows_removed,
            violations_removed=violations_removed,
            bans_removed=bans_removed,
            users_removed=users_removed,
        )
        log.info(
            "rate_limit_cleanup_complete",
            cooldowns_removed=cooldowns_removed,
            windows_removed=windows_removed,
            violations_removed=violations_removed,
            bans_removed=bans_removed,
            users_removed=users_removed,
        )
        return report

    def get_user_info(self, user_id: str) -> UserRateInfo:
        """Snapshot of one user's rate limiting state."""
        with self._lock:
            now = self._clock()
            state = self._users.get(user_id)
            if state is None:
                return UserRateInfo(
                    is_banned=False,
                    unban_time=None,
                    violations=0,
                    current_commands=0,
                    rate_limit_reset=None,
                    active_cooldowns=0,
                )

            ban_remaining = self._active_ban(user_id, state, now)
            window = state.window
            window_active = window is not None and now < window.reset_at
            return UserRateInfo(
                is_banned=ban_remaining is not None,
                unban_time=(
                    _to_datetime(state.banned_until)
                    if ban_remaining is not None and state.banned_until is not None
                    else None
                ),
                violations=state.violations.count if state.violations else 0,
                current_commands=window.count if window is not None and window_active else 0,
                rate_limit_reset=(
                    _to_datetime(window.reset_at) if window is not None and window_active else None
                ),
                active_cooldowns=len(state.cooldowns),
            )

    def get_stats(self) -> RateLimitStats:
        """Aggregate statistics across all tracked users."""
        with self._lock:
            now = self._clock()
            windows = [
                s.window for s in self._users.values() if s.window and now < s.window.reset_at
            ]
            active_users = len(windows)
            total_commands = sum(w.count for w in windows)
            total_cooldowns = sum(len(s.cooldowns) for s in self._users.values())
            total_violations = sum(
                s.violations.count for s in self._users.values() if s.violations is not None
            )
            banned_users = sum(
                1
                for s in self._users.values()
                if s.banned_until is not None and s.banned_until > now
            )
            uptime_hours = max(0.0, now - self._started_at) / 3600
            commands_seen = self._commands_seen

        return RateLimitStats(
            active_users=active_users,
            total_cooldowns=total_cooldowns,
            avg_commands_per_user=(total_commands / active_users) if active_users else 0.0,
            total_commands=total_commands,
            total_violations=total_violations,
            banned_users=banned_users,
            uptime_hours=round(uptime_hours, 2),
            commands_per_hour=(
                round(commands_seen / uptime_hours, 2) if uptime_hours > 0 else float(commands_seen)
            ),
        )
