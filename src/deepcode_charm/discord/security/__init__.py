"""Discord security package: input screening and rate limiting.

Public API
----------
- :class:`SecurityValidator`: argument screening, charm integrity checks,
  per-user violation counters
- :class:`RateLimiter`: cooldowns, global window and temporary bans
- :func:`log_security_event`: forensic logging
"""

from deepcode_charm.discord.security.forensics import log_security_event
from deepcode_charm.discord.security.models import (
    CleanupReport,
    RateLimitResult,
    RateLimitScope,
    RateLimitStats,
    UserRateInfo,
    ValidationResult,
    ViolationReason,
)
from deepcode_charm.discord.security.rate_limiter import RateLimiter
from deepcode_charm.discord.security.validator import SecurityValidator

__all__ = [
    "CleanupReport",
    "RateLimitResult",
    "RateLimitScope",
    "RateLimitStats",
    "RateLimiter",
    "SecurityValidator",
    "UserRateInfo",
    "ValidationResult",
    "ViolationReason",
    "log_security_event",
]
