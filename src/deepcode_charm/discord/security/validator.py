"""Argument screening, charm integrity checks and violation tracking.

The validator never raises on hostile input: it returns a
:class:`ValidationResult` and leaves the decision to the caller. The
per-user violation counter is advisory; callers gate on :meth:`is_blocked`.
"""

from __future__ import annotations

import re
import threading
import time
from collections.abc import Callable

from deepcode_charm.discord.security import rules
from deepcode_charm.discord.security.forensics import log_security_event
from deepcode_charm.discord.security.models import (
    RuleMatch,
    ValidationResult,
    ViolationCounter,
    ViolationReason,
)
from deepcode_charm.logging import get_logger

log = get_logger("deepcode_charm.discord.security.validator")

_DEFAULT_BLOCK_THRESHOLD = 10
_DEFAULT_COUNTER_MAX_AGE = 24 * 60 * 60

_WHITESPACE = re.compile(r"\s+")


class SecurityValidator:
    """Screen charm arguments and charm source code."""

    def __init__(
        self,
        *,
        block_threshold: int = _DEFAULT_BLOCK_THRESHOLD,
        counter_max_age: float = _DEFAULT_COUNTER_MAX_AGE,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the validator.

        Args:
            block_threshold: Violations at which a user counts as blocked.
            counter_max_age: Seconds after the last violation before an
                unblocked user's counter is dropped by :meth:`cleanup`.
            clock: Time source, in seconds.
        """
        self._block_threshold = block_threshold
        self._counter_max_age = counter_max_age
        self._clock = clock
        self._counters: dict[str, ViolationCounter] = {}
        self._lock = threading.Lock()

    def validate(self, text: str, user_id: str | None = None) -> ValidationResult:
        """Screen a charm argument string.

        Args:
            text: Raw argument text.
            user_id: Caller, for violation tracking and logging.

        Returns:
            An allowed result, or the first rule that rejected the text.
        """
        if not text:
            return ValidationResult.ok()

        match = rules.check_input(text)
        if match is None:
            return ValidationResult.ok()

        count = self.record_violation(user_id) if user_id is not None else None
        log_security_event(
            event_type="input_rejected",
            user_id=user_id,
            content=text,
            reason=match.reason.value,
            rule=match.rule,
            matched=match.matched_text,
            violations=count,
        )
        return ValidationResult.rejected(match)

    def check_integrity(self, name: str, source: str | None) -> ValidationResult:
        """Screen a charm's source text before it is registered.

        ``None`` means the source could not be found; such a charm is
        rejected since it cannot be checked.
        """
        if source is None:
            match = RuleMatch(rule="source_unavailable", reason=ViolationReason.SOURCE_UNAVAILABLE)
        else:
            match = rules.check_source(source)
        if match is None:
            log.debug("charm_integrity_ok", charm=name, source_length=len(source))
            return ValidationResult.ok()

        log_security_event(
            event_type="charm_integrity_failed",
            user_id=None,
            charm=name,
            reason=match.reason.value,
            rule=match.rule,
            matched=match.matched_text,
        )
        return ValidationResult.rejected(match)

    @staticmethod
    def sanitize(text: str) -> str:
        """Best-effort cleanup of ``text``; never raises."""
        if not text:
            return ""
        text = rules.ZERO_WIDTH_CHARS.sub("", text)
        text = rules.FORBIDDEN_CHARS.sub("", text)
        text = _WHITESPACE.sub(" ", text).strip()
        return text[: rules.MAX_ARG_LENGTH]

    def record_violation(self, user_id: str) -> int:
        """Increment and return a user's violation count."""
        with self._lock:
            counter = self._counters.setdefault(user_id, ViolationCounter())
            counter.count += 1
            counter.last_violation_at = self._clock()
            count = counter.count

        if count == self._block_threshold:
            log.warning("user_security_blocked", user_id=user_id, violations=count)
        return count

    def get_violation_count(self, user_id: str) -> int:
        with self._lock:
            counter = self._counters.get(user_id)
            return counter.count if counter else 0

    def is_blocked(self, user_id: str) -> bool:
        """Return True once a user reaches the block threshold."""
        return self.get_violation_count(user_id) >= self._block_threshold

    def reset_user(self, user_id: str) -> bool:
        """Clear a user's violations. Returns True if there was anything to clear."""
        with self._lock:
            removed = self._counters.pop(user_id, None)
        if removed is not None:
            log.info("security_violations_reset", user_id=user_id, violations=removed.count)
        return removed is not None

    @property
    def blocked_users(self) -> int:
        with self._lock:
            return sum(1 for c in self._counters.values() if c.count >= self._block_threshold)

    def cleanup(self) -> int:
        """Drop stale counters of users who are not blocked.

        Returns:
            Number of counters removed.
        """
        now = self._clock()
        with self._lock:
            kept = {
                user_id: counter
                for user_id, counter in self._counters.items()
                if counter.count >= self._block_threshold
                or now - counter.last_violation_at <= self._counter_max_age
            }
            removed = len(self._counters) - len(kept)
            self._counters = kept

        if removed:
            log.info("security_counters_cleaned", removed=removed)
        return removed
