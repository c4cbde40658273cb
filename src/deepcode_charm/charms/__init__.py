"""Charm framework.

This package provides:
- Parser for ``name args`` / ``name[args]`` invocations
- Registry for charm storage, lookup and integrity checks
- Fuzzy "did you mean" suggestions
- Dispatcher that runs a message through every check and the charm
"""

from deepcode_charm.charms.dispatcher import (
    CharmDispatcher,
    DispatchOutcome,
    DispatchStats,
    DispatchStatus,
)
from deepcode_charm.charms.errors import (
    CharmError,
    CharmIntegrityError,
    ExecutionFailed,
    NotFound,
    PermissionDenied,
    RateLimited,
    Rejection,
    RejectionKind,
    SecurityViolation,
    format_rejection,
)
from deepcode_charm.charms.fuzzy import levenshtein_distance, suggest_similar
from deepcode_charm.charms.models import (
    CallerInfo,
    CharmCategory,
    CharmEntry,
    CharmMetadata,
    ExecutionContext,
    GuildInfo,
    IncomingMessage,
    Invocation,
)
from deepcode_charm.charms.parser import parse_invocation
from deepcode_charm.charms.registry import CharmRegistry, RegistryQuery

__all__ = [
    # Dispatch
    "CharmDispatcher",
    "DispatchOutcome",
    "DispatchStats",
    "DispatchStatus",
    # Errors
    "CharmError",
    "CharmIntegrityError",
    "ExecutionFailed",
    "NotFound",
    "PermissionDenied",
    "RateLimited",
    "Rejection",
    "RejectionKind",
    "SecurityViolation",
    "format_rejection",
    # Models
    "CallerInfo",
    "CharmCategory",
    "CharmEntry",
    "CharmMetadata",
    "ExecutionContext",
    "GuildInfo",
    "IncomingMessage",
    "Invocation",
    # Registry and helpers
    "CharmRegistry",
    "RegistryQuery",
    "levenshtein_distance",
    "parse_invocation",
    "suggest_similar",
]
