"""Periodic cleanup of rate limiter and security state.

The scheduler runs inside the bot process and, every interval:
1. Drops stale cooldowns, windows, violation records and expired bans
2. Drops stale security violation counters of unblocked users
3. Logs a snapshot of rate limiting statistics

Cleanup takes the same locks as dispatch, so it can run while messages are
being handled.
"""

import asyncio
import contextlib
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from deepcode_charm.discord.security.rate_limiter import RateLimiter
from deepcode_charm.discord.security.validator import SecurityValidator
from deepcode_charm.logging import get_logger

log = get_logger("deepcode_charm.scheduler.cleanup")

DEFAULT_INTERVAL_SECONDS = 3600


@dataclass
class CleanupStats:
    """Statistics about cleanup runs."""

    total_runs: int = 0
    failed_runs: int = 0
    users_removed: int = 0
    security_counters_removed: int = 0
    last_run: datetime | None = None
    last_error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "total_runs": self.total_runs,
            "failed_runs": self.failed_runs,
            "users_removed": self.users_removed,
            "security_counters_removed": self.security_counters_removed,
            "last_run": self.last_run.isoformat() if self.last_run else None,
            "last_error": self.last_error,
        }


class CleanupScheduler:
    """Async scheduler for periodic security state cleanup."""

    def __init__(
        self,
        rate_limiter: RateLimiter,
        validator: SecurityValidator,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
    ):
        """Initialize the cleanup scheduler.

        Args:
            rate_limiter: Rate limiter to clean.
            validator: Validator whose violation counters to clean.
            interval_seconds: Seconds between runs; the first run happens
                one interval after start.
        """
        self._rate_limiter = rate_limiter
        self._validator = validator
        self._interval = interval_seconds
        self._stats = CleanupStats()
        self._running = False
        self._task: asyncio.Task[None] | None = None

        log.info("cleanup_scheduler_initialized", interval=interval_seconds)

    @property
    def stats(self) -> CleanupStats:
        """Get scheduler statistics."""
        return self._stats

    @property
    def is_running(self) -> bool:
        """Check if scheduler is running."""
        return self._running

    async def start(self) -> None:
        """Start the cleanup scheduler."""
        if self._running:
            log.warning("scheduler_already_running")
            return
        if self._interval <= 0:
            log.warning("cleanup_scheduler_disabled", interval=self._interval)
            return

        self._running = True
        self._task = asyncio.create_task(self._run_loop())
        log.info("cleanup_scheduler_started")

    async def stop(self) -> None:
        """Stop the cleanup scheduler."""
        self._running = False
        task = self._task
        if task is not None:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
            self._task = None
        log.info("cleanup_scheduler_stopped")

    async def _run_loop(self) -> None:
        """Main scheduler loop."""
        while self._running:
            await asyncio.sleep(self._interval)
            try:
                self.run_cleanup()
            except Exception as e:
                log.exception("security_cleanup_failed")
                self._stats.failed_runs += 1
                self._stats.last_error = str(e)

    def run_cleanup(self) -> None:
        """Run a single cleanup pass."""
        self._stats.total_runs += 1
        self._stats.last_run = datetime.now(UTC)

        report = self._rate_limiter.cleanup()
        counters_removed = self._validator.cleanup()
        self._stats.users_removed += report.users_removed
        self._stats.security_counters_removed += counters_removed

        stats = self._rate_limiter.get_stats()
        log.info(
            "security_cleanup_complete",
            active_users=stats.active_users,
            total_commands=stats.total_commands,
            total_violations=stats.total_violations,
            banned_users=stats.banned_users,
            users_removed=report.users_removed,
            bans_removed=report.bans_removed,
            security_counters_removed=counters_removed,
        )
