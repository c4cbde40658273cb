"""Background scheduling.

This package provides:
- CleanupScheduler: periodic cleanup of rate limiter and security state
"""

from deepcode_charm.scheduler.cleanup import CleanupScheduler, CleanupStats

__all__ = [
    "CleanupScheduler",
    "CleanupStats",
]
